from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from moneyflow.database import get_db
from moneyflow.dependencies import get_current_user
from moneyflow.models.user import User
from moneyflow.services.card_service import CardService
from moneyflow.services.transaction_service import TransactionService
from moneyflow.schemas.card_schemas import (
    CardCreate,
    CardUpdate,
    CardResponse,
    CardListResponse,
    CardPaymentRequest,
)
from moneyflow.schemas.transaction_schemas import TransactionListResponse, TransactionResponse

router = APIRouter()


@router.post("/", response_model=CardResponse, status_code=status.HTTP_201_CREATED)
async def create_card(
    data: CardCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = CardService(db)
    return service.create_card(data, user)


@router.get("/", response_model=CardListResponse)
async def list_cards(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = CardService(db)
    cards = service.get_user_cards(user)
    return CardListResponse(cards=cards, total=len(cards))


@router.get("/{card_id}", response_model=CardResponse)
async def get_card(card_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = CardService(db)
    return service.get_card(card_id, user)


@router.patch("/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: int,
    data: CardUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = CardService(db)
    return service.update_card(card_id, data, user)


@router.post("/{card_id}/default", response_model=CardResponse)
async def set_default_card(
    card_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = CardService(db)
    return service.set_default(card_id, user)


@router.post("/{card_id}/pay", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def pay_card(
    card_id: int,
    data: CardPaymentRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Pay down a credit card from a bank account.

    - Only credit cards can be paid
    - Fails with 422 when the account balance does not cover the amount
    """
    service = TransactionService(db)
    return service.pay_card(card_id, data, user)


@router.get("/{card_id}/transactions", response_model=TransactionListResponse)
def list_card_transactions(
    card_id: int,
    limit: int = Query(20, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = TransactionService(db)
    transactions, total = service.get_transactions(user, card_id=card_id, limit=limit, offset=offset)
    return TransactionListResponse(transactions=transactions, total=total)


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(card_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = CardService(db)
    service.delete_card(card_id, user)
    return None
