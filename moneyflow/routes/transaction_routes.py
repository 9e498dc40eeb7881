from datetime import date
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from moneyflow.database import get_db
from moneyflow.dependencies import get_current_user
from moneyflow.models.transaction import TransactionType
from moneyflow.models.user import User
from moneyflow.services.transaction_service import TransactionService
from moneyflow.schemas.transaction_schemas import (
    TransactionCreate,
    TransactionUpdate,
    TransactionResponse,
    TransactionListResponse,
    TransferRequest,
)

router = APIRouter()
transfer_router = APIRouter()


@router.post("/", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction_data: TransactionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a new transaction.

    - Balances of the referenced accounts/cards are updated in the same commit
    - Referenced accounts and cards must belong to the user
    """
    service = TransactionService(db)
    return service.create_transaction(transaction_data, user)


@router.get("/", response_model=TransactionListResponse)
def list_transactions(
    type: Optional[TransactionType] = Query(None, description="Filter by transaction type"),
    category_id: Optional[int] = Query(None, description="Filter by category ID"),
    merchant_id: Optional[int] = Query(None, description="Filter by merchant ID"),
    account_id: Optional[int] = Query(None, description="Account on either side"),
    card_id: Optional[int] = Query(None, description="Card on either side"),
    start_date: Optional[date] = Query(None, description="Start date (inclusive)"),
    end_date: Optional[date] = Query(None, description="End date (inclusive)"),
    search: Optional[str] = Query(None, description="Partial match on title or description"),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    limit: int = Query(20, ge=1, le=1000, description="Max results"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List transactions with filters, newest first"""
    service = TransactionService(db)
    transactions, total = service.get_transactions(
        user,
        type=type,
        category_id=category_id,
        merchant_id=merchant_id,
        account_id=account_id,
        card_id=card_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        min_amount=min_amount,
        max_amount=max_amount,
        limit=limit,
        offset=offset,
    )
    return TransactionListResponse(transactions=transactions, total=total)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = TransactionService(db)
    return service.get_transaction(transaction_id, user)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    transaction_data: TransactionUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update a transaction.

    - The old balance effects are reversed and the new ones posted atomically
    - Only fields present in the body change
    """
    service = TransactionService(db)
    return service.update_transaction(transaction_id, transaction_data, user)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Delete a transaction and reverse its balance effects"""
    service = TransactionService(db)
    service.delete_transaction(transaction_id, user)
    return None


@transfer_router.post("/", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    data: TransferRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """
    Move money between two of the user's accounts.

    - Fails with 422 when the source balance does not cover the amount
    """
    service = TransactionService(db)
    return service.transfer(data, user)
