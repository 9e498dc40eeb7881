from decimal import Decimal


class MoneyflowException(Exception):
    """Base exception for moneyflow"""

    pass


class UnauthorizedException(MoneyflowException):
    """Raised when JWT validation fails"""

    pass


class NotFoundException(MoneyflowException):
    """Raised when resource not found"""

    pass


class ForbiddenException(MoneyflowException):
    """Raised when user tries to access another user's data"""

    pass


class ValidationException(MoneyflowException):
    """Raised for business logic validation errors"""

    pass


class InsufficientFundsException(ValidationException):
    """Raised when a transfer or card payment exceeds the source account balance"""

    def __init__(self, account_id: int, balance: Decimal, requested: Decimal):
        self.account_id = account_id
        self.balance = balance
        self.requested = requested
        self.shortfall = requested - balance
        super().__init__(
            f"Insufficient balance in account {account_id}: "
            f"balance {balance}, requested {requested}, short by {self.shortfall}"
        )


class PostingError(MoneyflowException):
    """Raised when a transaction references a money holder that does not exist"""

    def __init__(self, holder_kind: str, holder_id: int, transaction_id: int | None = None):
        self.holder_kind = holder_kind
        self.holder_id = holder_id
        self.transaction_id = transaction_id
        super().__init__(
            f"Cannot post transaction {transaction_id}: {holder_kind} {holder_id} does not exist"
        )


class PeriodComputationError(MoneyflowException):
    """Raised when a budget period window cannot be established"""

    pass


class RecurrenceError(MoneyflowException):
    """Raised when a recurrence rule is malformed"""

    pass
