"""
FastAPI REST API Module

HTTP endpoints for accounts, transactions, interest rules, interest runs
and statements over one BankingSystem session.
"""

from typing import Optional
from fastapi import FastAPI, Depends, Request, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
import uvicorn

from .errors import BankingError, ValidationError, DuplicateIdError, NotFoundError, AccountNotFoundError
from .system import BankingSystem
from .statements import StatementFormat
from .validators import TransactionRequest, InterestRuleRequest, format_date
from .accounts import Account
from .transactions import Transaction
from .interest import InterestRule
from . import __version__


class CreateAccountRequest(BaseModel):
    account_id: str
    balance: float = Field(0.0, description="Opening balance, must not be negative")


class CreateTransactionRequest(BaseModel):
    date: str = Field(..., description="Transaction date in YYYYMMDD format")
    account_id: str
    type: str = Field(..., description="D for deposit, W for withdrawal")
    amount: str = Field(..., description="Amount as string, at most 2 decimal places")


class CreateInterestRuleRequest(BaseModel):
    date: str = Field(..., description="Effective date in YYYYMMDD format")
    rule_id: str
    rate: str = Field(..., description="Annual rate in percent, 0 < rate < 100")


def account_to_dict(account: Account) -> dict:
    return {
        "id": account.id,
        "balance": account.balance,
        "accrued_interest": account.accrued_interest
    }


def transaction_to_dict(transaction: Transaction) -> dict:
    return {
        "id": transaction.id,
        "date": format_date(transaction.date),
        "account_id": transaction.account_id,
        "type": transaction.kind.value,
        "amount": transaction.amount
    }


def rule_to_dict(rule: InterestRule) -> dict:
    return {
        "rule_id": rule.rule_id,
        "date": format_date(rule.effective_date),
        "rate": rule.annual_rate_percent
    }


def get_banking_system(request: Request) -> BankingSystem:
    return request.app.state.banking_system


def create_app(system: Optional[BankingSystem] = None) -> FastAPI:
    """Create the FastAPI application around a BankingSystem session"""
    app = FastAPI(
        title="GIC Banking API",
        description="Accounts, transactions, interest rules and statements",
        version=__version__
    )
    app.state.banking_system = system or BankingSystem()

    @app.exception_handler(BankingError)
    async def banking_error_handler(request: Request, exc: BankingError):
        if isinstance(exc, NotFoundError):
            status_code = status.HTTP_404_NOT_FOUND
        elif isinstance(exc, DuplicateIdError):
            status_code = status.HTTP_409_CONFLICT
        else:
            status_code = status.HTTP_400_BAD_REQUEST
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error": type(exc).__name__}
        )

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "gic_banking_api", "version": __version__}

    @app.post("/accounts", status_code=status.HTTP_201_CREATED)
    async def create_account(
        request: CreateAccountRequest,
        system: BankingSystem = Depends(get_banking_system)
    ):
        account = system.register_account(request.account_id, request.balance)
        return account_to_dict(account)

    @app.get("/accounts/{account_id}")
    async def get_account(account_id: str, system: BankingSystem = Depends(get_banking_system)):
        account = system.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account_to_dict(account)

    @app.get("/accounts/{account_id}/transactions")
    async def get_account_transactions(
        account_id: str,
        system: BankingSystem = Depends(get_banking_system)
    ):
        if system.get_account(account_id) is None:
            raise AccountNotFoundError(account_id)
        return {"transactions": [transaction_to_dict(t) for t in system.get_transactions(account_id)]}

    @app.get("/accounts/{account_id}/statement")
    async def get_statement(
        account_id: str,
        month: str = Query(..., description="Month 1-12"),
        year: Optional[int] = None,
        output_format: str = Query("json", alias="format", description="json or text"),
        system: BankingSystem = Depends(get_banking_system)
    ):
        if output_format == StatementFormat.TEXT.value:
            return PlainTextResponse(system.generate_statement(account_id, month, year))
        if output_format not in (StatementFormat.JSON.value, StatementFormat.DICT.value):
            raise ValidationError(f"Unsupported statement format: {output_format}")
        return system.generate_statement(account_id, month, year, StatementFormat.DICT)

    @app.post("/transactions", status_code=status.HTTP_201_CREATED)
    async def create_transaction(
        request: CreateTransactionRequest,
        system: BankingSystem = Depends(get_banking_system)
    ):
        transaction = system.add_transaction(
            TransactionRequest(request.date, request.account_id, request.type, request.amount)
        )
        return transaction_to_dict(transaction)

    @app.post("/interest-rules", status_code=status.HTTP_201_CREATED)
    async def create_interest_rule(
        request: CreateInterestRuleRequest,
        system: BankingSystem = Depends(get_banking_system)
    ):
        rule = system.add_interest_rule(
            InterestRuleRequest(request.date, request.rule_id, request.rate)
        )
        return rule_to_dict(rule)

    @app.get("/interest-rules")
    async def list_interest_rules(system: BankingSystem = Depends(get_banking_system)):
        return {"rules": [rule_to_dict(rule) for rule in system.list_interest_rules()]}

    @app.get("/interest-rules/{rule_id}")
    async def get_interest_rule(rule_id: str, system: BankingSystem = Depends(get_banking_system)):
        rule = system.get_interest_rule(rule_id)
        if rule is None:
            raise NotFoundError("Interest rule not found.")
        return rule_to_dict(rule)

    @app.post("/interest/run")
    async def run_interest(
        month: Optional[str] = None,
        year: Optional[int] = None,
        system: BankingSystem = Depends(get_banking_system)
    ):
        results = system.calculate_interest(month, year)
        return {"interest": results}

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "gic_banking.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
