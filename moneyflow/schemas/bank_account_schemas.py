from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from moneyflow.schemas.common import Money


class BankAccountCreate(BaseModel):
    """Schema for creating a new bank account"""

    name: str = Field(..., min_length=1, max_length=255)
    initial_balance: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=3)
    bank_name: str | None = Field(None, max_length=255)
    is_default: bool = False


class BankAccountUpdate(BaseModel):
    """Schema for updating a bank account (balance is not editable)"""

    name: str | None = Field(None, min_length=1, max_length=255)
    currency: str | None = Field(None, min_length=3, max_length=3)
    bank_name: str | None = Field(None, max_length=255)


class BankAccountResponse(BaseModel):
    """Schema for bank account response"""

    model_config = {"from_attributes": True}

    id: int
    user_id: int
    name: str
    balance: Money
    currency: str
    bank_name: str | None
    is_default: bool
    created_at: datetime
    updated_at: datetime


class BankAccountListResponse(BaseModel):
    """Schema for list of bank accounts"""

    accounts: list[BankAccountResponse]
    total: int
