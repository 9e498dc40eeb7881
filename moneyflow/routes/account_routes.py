from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from moneyflow.database import get_db
from moneyflow.dependencies import get_current_user
from moneyflow.models.user import User
from moneyflow.services.bank_account_service import BankAccountService
from moneyflow.services.transaction_service import TransactionService
from moneyflow.schemas.bank_account_schemas import (
    BankAccountCreate,
    BankAccountUpdate,
    BankAccountResponse,
    BankAccountListResponse,
)
from moneyflow.schemas.transaction_schemas import TransactionListResponse

router = APIRouter()


@router.post("/", response_model=BankAccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    data: BankAccountCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Create a new bank account with its opening balance"""
    service = BankAccountService(db)
    return service.create_account(data, user)


@router.get("/", response_model=BankAccountListResponse)
async def list_accounts(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get all accounts for the authenticated user"""
    service = BankAccountService(db)
    accounts = service.get_user_accounts(user)
    return BankAccountListResponse(accounts=accounts, total=len(accounts))


@router.get("/{account_id}", response_model=BankAccountResponse)
async def get_account(
    account_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = BankAccountService(db)
    return service.get_account(account_id, user)


@router.patch("/{account_id}", response_model=BankAccountResponse)
async def update_account(
    account_id: int,
    data: BankAccountUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update account details (the balance only changes through transactions)"""
    service = BankAccountService(db)
    return service.update_account(account_id, data, user)


@router.post("/{account_id}/default", response_model=BankAccountResponse)
async def set_default_account(
    account_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = BankAccountService(db)
    return service.set_default(account_id, user)


@router.get("/{account_id}/transactions", response_model=TransactionListResponse)
def list_account_transactions(
    account_id: int,
    limit: int = Query(20, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Transactions touching the account on either side, newest first"""
    service = TransactionService(db)
    transactions, total = service.get_transactions(
        user, account_id=account_id, limit=limit, offset=offset
    )
    return TransactionListResponse(transactions=transactions, total=total)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Delete account; its transactions are kept"""
    service = BankAccountService(db)
    service.delete_account(account_id, user)
    return None
