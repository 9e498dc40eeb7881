import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from moneyflow.config import settings
from moneyflow.core.exceptions import (
    UnauthorizedException,
    NotFoundException,
    ForbiddenException,
    ValidationException,
    InsufficientFundsException,
    PostingError,
    PeriodComputationError,
    RecurrenceError,
)
from moneyflow.core.logging import configure_logging
from moneyflow.routes import account_routes, budget_routes, card_routes, recurring_routes, transaction_routes

configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,  # Disable in production
    redoc_url="/redoc" if settings.DEBUG else None,
)

# CORS middleware
cors_origins = settings.cors_origins_list
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Exception handlers
@app.exception_handler(UnauthorizedException)
async def unauthorized_exception_handler(request: Request, exc: UnauthorizedException):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(NotFoundException)
async def not_found_exception_handler(request: Request, exc: NotFoundException):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ForbiddenException)
async def forbidden_exception_handler(request: Request, exc: ForbiddenException):
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})


# Registered before ValidationException; handlers match on the most specific class
@app.exception_handler(InsufficientFundsException)
async def insufficient_funds_exception_handler(request: Request, exc: InsufficientFundsException):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": str(exc),
            "account_id": exc.account_id,
            "balance": float(exc.balance),
            "requested": float(exc.requested),
            "shortfall": float(exc.shortfall),
        },
    )


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(PostingError)
@app.exception_handler(PeriodComputationError)
@app.exception_handler(RecurrenceError)
async def ledger_exception_handler(request: Request, exc: Exception):
    logger.error("Ledger error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": str(exc)}
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database temporarily unavailable, retry the request"},
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.APP_VERSION}


# Root endpoint
@app.get("/")
async def root():
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs" if settings.DEBUG else "Documentation disabled in production",
    }


# Include routers
app.include_router(account_routes.router, prefix="/api/accounts", tags=["Accounts"])
app.include_router(card_routes.router, prefix="/api/cards", tags=["Cards"])
app.include_router(transaction_routes.router, prefix="/api/transactions", tags=["Transactions"])
app.include_router(transaction_routes.transfer_router, prefix="/api/transfers", tags=["Transfers"])
app.include_router(budget_routes.router, prefix="/api/budgets", tags=["Budgets"])
app.include_router(
    recurring_routes.subscription_router, prefix="/api/subscriptions", tags=["Subscriptions"]
)
app.include_router(recurring_routes.income_router, prefix="/api/incomes", tags=["Incomes"])
app.include_router(recurring_routes.invoice_router, prefix="/api/invoices", tags=["Invoices"])
