from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field, model_validator
from typing import Optional
from moneyflow.models.transaction import TransactionType
from moneyflow.schemas.common import Money


def endpoint_error(
    type: TransactionType,
    from_account_id: Optional[int],
    to_account_id: Optional[int],
    from_card_id: Optional[int],
    to_card_id: Optional[int],
) -> Optional[str]:
    """Return why the endpoints don't fit the transaction type, or None if they do"""
    if type == TransactionType.EXPENSE:
        if not (from_account_id or from_card_id):
            return "Expense requires from_account_id or from_card_id"
    elif type == TransactionType.INCOME:
        if not (to_account_id or to_card_id):
            return "Income requires to_account_id or to_card_id"
    elif type == TransactionType.TRANSFER:
        if not (from_account_id and to_account_id):
            return "Transfer requires from_account_id and to_account_id"
        if from_account_id == to_account_id:
            return "Transfer source and destination must differ"
    elif type == TransactionType.CARD_PAYMENT:
        if not (from_account_id and to_card_id):
            return "Card payment requires from_account_id and to_card_id"
    return None


class TransactionCreate(BaseModel):
    """Schema for creating a new transaction"""

    type: TransactionType
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    transaction_date: date = Field(default_factory=date.today)
    from_account_id: Optional[int] = Field(None, gt=0)
    to_account_id: Optional[int] = Field(None, gt=0)
    from_card_id: Optional[int] = Field(None, gt=0)
    to_card_id: Optional[int] = Field(None, gt=0)
    category_id: Optional[int] = Field(None, gt=0)
    merchant_id: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_endpoints(self):
        error = endpoint_error(
            self.type, self.from_account_id, self.to_account_id, self.from_card_id, self.to_card_id
        )
        if error:
            raise ValueError(error)
        return self


class TransactionUpdate(BaseModel):
    """
    Schema for updating a transaction.

    Only fields present in the request are changed; send null explicitly to
    clear an endpoint.
    """

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    transaction_date: Optional[date] = None
    from_account_id: Optional[int] = Field(None, gt=0)
    to_account_id: Optional[int] = Field(None, gt=0)
    from_card_id: Optional[int] = Field(None, gt=0)
    to_card_id: Optional[int] = Field(None, gt=0)
    category_id: Optional[int] = Field(None, gt=0)
    merchant_id: Optional[int] = Field(None, gt=0)


class TransactionResponse(BaseModel):
    """Schema for transaction response"""

    model_config = {"from_attributes": True}

    id: int
    user_id: int
    type: TransactionType
    amount: Money
    currency: str
    title: str
    description: Optional[str]
    transaction_date: date
    from_account_id: Optional[int]
    to_account_id: Optional[int]
    from_card_id: Optional[int]
    to_card_id: Optional[int]
    category_id: Optional[int]
    merchant_id: Optional[int]
    transactionable_type: Optional[str]
    transactionable_id: Optional[int]
    created_at: datetime
    updated_at: datetime


class TransactionListResponse(BaseModel):
    """Schema for list of transactions"""

    transactions: list[TransactionResponse]
    total: int


class TransferRequest(BaseModel):
    """Move money between two of the user's bank accounts"""

    from_account_id: int = Field(..., gt=0)
    to_account_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    transaction_date: Optional[date] = None

    @model_validator(mode="after")
    def check_distinct_accounts(self):
        if self.from_account_id == self.to_account_id:
            raise ValueError("Transfer source and destination must differ")
        return self
