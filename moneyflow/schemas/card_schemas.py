from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from moneyflow.models.card import CardType
from moneyflow.schemas.common import Money


class CardCreate(BaseModel):
    """Schema for creating a card"""

    name: str = Field(..., min_length=1, max_length=255)
    type: CardType
    bank_account_id: Optional[int] = Field(None, gt=0)
    credit_limit: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    current_balance: Decimal = Field(
        default=Decimal("0.00"), ge=0, max_digits=12, decimal_places=2,
        description="Opening debt for credit cards",
    )
    card_network: Optional[str] = Field(None, max_length=50)
    last_four_digits: Optional[str] = Field(None, pattern=r"^\d{4}$")
    is_default: bool = False

    @model_validator(mode="after")
    def check_credit_fields(self):
        if self.type == CardType.DEBIT:
            if self.credit_limit is not None:
                raise ValueError("Debit cards cannot have a credit limit")
            if self.current_balance != 0:
                raise ValueError("Debit cards do not carry a balance of their own")
        return self


class CardUpdate(BaseModel):
    """Schema for updating a card (type and balance are not editable)"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    bank_account_id: Optional[int] = Field(None, gt=0)
    credit_limit: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    card_network: Optional[str] = Field(None, max_length=50)
    last_four_digits: Optional[str] = Field(None, pattern=r"^\d{4}$")


class CardResponse(BaseModel):
    """Schema for card response"""

    model_config = {"from_attributes": True}

    id: int
    user_id: int
    name: str
    type: CardType
    bank_account_id: Optional[int]
    credit_limit: Optional[Money]
    current_balance: Money
    available_credit: Optional[Money]
    card_network: Optional[str]
    last_four_digits: Optional[str]
    is_default: bool
    created_at: datetime
    updated_at: datetime


class CardListResponse(BaseModel):
    cards: list[CardResponse]
    total: int


class CardPaymentRequest(BaseModel):
    """Pay down a credit card from a bank account"""

    from_account_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    transaction_date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=1000)
