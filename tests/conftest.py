import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-moneyflow")

import pytest
from datetime import datetime, timedelta, UTC
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from jose import jwt

from moneyflow.database import get_db
from moneyflow.config import settings
# Import all model classes to ensure they're registered with SQLAlchemy
from moneyflow.models import Base, BankAccount, Card, CardType, User
# Import FastAPI app AFTER model imports
from moneyflow.main import app

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """FastAPI test client with test database"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_test_token(user_id: str = "test-user-123", expired: bool = False) -> str:
    """
    Generate valid JWT token for testing.

    Args:
        user_id: User ID to embed in 'sub' claim
        expired: If True, create expired token

    Returns:
        Encoded JWT token
    """
    if expired:
        exp = datetime.now(UTC) - timedelta(minutes=5)
    else:
        exp = datetime.now(UTC) + timedelta(minutes=15)

    payload = {"sub": user_id, "exp": exp, "iat": datetime.now(UTC)}

    token = jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")
    return token


@pytest.fixture
def mock_jwt_token():
    """Generate valid JWT token"""
    return create_test_token()


@pytest.fixture
def auth_headers(mock_jwt_token):
    """Authorization headers for authenticated requests"""
    return {"Authorization": f"Bearer {mock_jwt_token}"}


@pytest.fixture
def user_a_headers():
    """Authorization headers for user A"""
    token = create_test_token(user_id="user-a")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_b_headers():
    """Authorization headers for user B"""
    token = create_test_token(user_id="user-b")
    return {"Authorization": f"Bearer {token}"}


# Service-level fixtures


@pytest.fixture
def user(db_session):
    """Persisted user for tests that drive services directly"""
    user = User(auth_user_id="service-user")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def make_account(db_session, user):
    """Factory for bank accounts owned by ``user``"""

    def _make(name: str = "Checking", balance: str = "1000.00") -> BankAccount:
        account = BankAccount(user_id=user.id, name=name, balance=Decimal(balance), currency="CHF")
        db_session.add(account)
        db_session.commit()
        return account

    return _make


@pytest.fixture
def make_card(db_session, user):
    """Factory for cards owned by ``user``"""

    def _make(
        type: CardType = CardType.CREDIT,
        bank_account_id: int | None = None,
        balance: str = "0.00",
        credit_limit: str | None = "5000.00",
    ) -> Card:
        card = Card(
            user_id=user.id,
            name=f"{type.value} card",
            type=type,
            bank_account_id=bank_account_id,
            current_balance=Decimal(balance),
            credit_limit=Decimal(credit_limit) if credit_limit and type == CardType.CREDIT else None,
        )
        db_session.add(card)
        db_session.commit()
        return card

    return _make


@pytest.fixture
def balance_of(db_session):
    """Reload a holder's balance from the database"""

    def _balance(holder) -> Decimal:
        db_session.refresh(holder)
        return holder.current_balance if isinstance(holder, Card) else holder.balance

    return _balance
