"""
Banking System Module

BankingSystem owns one session's stores (account registry, transaction
ledger, interest rule store) on a shared storage, validates every request
at the boundary, and runs each mutation as a single atomic unit so a
rejected request never leaves a partial change behind.
"""

import math
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple, Union, Any

from .storage import StorageInterface, InMemoryStorage
from .audit import AuditTrail, AuditEventType
from .config import GICConfig, get_config
from .errors import BankingError, ValidationError, AccountNotFoundError
from .logging_config import get_logger, log_action
from .accounts import Account, AccountRegistry
from .transactions import Transaction, TransactionKind, TransactionLedger
from .interest import (
    InterestEngine, InterestRule, InterestRuleStore, AccrualMethod, DayCountConvention
)
from .statements import StatementFormatter, StatementFormat, period_bounds
from .validators import (
    TransactionRequest, InterestRuleRequest, TransactionValidator, InterestRuleValidator,
    DefaultTransactionValidator, DefaultInterestRuleValidator, parse_date, validate_month, validate_year
)


class BankingSystem:
    """
    Accounts, transactions, interest rules, interest runs and statements
    for one session
    """

    def __init__(
        self,
        transaction_validator: Optional[TransactionValidator] = None,
        interest_rule_validator: Optional[InterestRuleValidator] = None,
        storage: Optional[StorageInterface] = None,
        config: Optional[GICConfig] = None,
        interest_engine: Optional[InterestEngine] = None,
        statement_formatter: Optional[StatementFormatter] = None
    ):
        self.config = config or get_config()
        self.storage = storage or InMemoryStorage()

        self.audit_trail = AuditTrail(self.storage)
        self.accounts = AccountRegistry(self.storage)
        self.ledger = TransactionLedger(self.storage)
        self.rules = InterestRuleStore(self.storage)

        self.transaction_validator = transaction_validator or DefaultTransactionValidator()
        self.interest_rule_validator = interest_rule_validator or DefaultInterestRuleValidator()
        self.interest_engine = interest_engine or InterestEngine(
            method=AccrualMethod(self.config.accrual_method),
            day_count=DayCountConvention(self.config.day_count)
        )
        self.statement_formatter = statement_formatter or StatementFormatter(
            precision=self.config.statement_amount_precision
        )

        self.logger = get_logger("gic.system")

    # Accounts

    def register_account(self, account_id: str, balance: float = 0.0) -> Account:
        """
        Register an account with an opening balance

        Raises:
            ValidationError: empty id or negative/non-finite opening balance
            DuplicateAccountIdError: the id is already registered
        """
        try:
            account_id = str(account_id or "").strip()
            if not account_id:
                raise ValidationError("Invalid account data: account id is required")
            balance = float(balance)
            if not math.isfinite(balance) or balance < 0:
                raise ValidationError("Invalid account data: opening balance must not be negative")

            with self.storage.atomic():
                account = self.accounts.register(Account(id=account_id, balance=balance))
                self._audit(AuditEventType.ACCOUNT_REGISTERED, "account", account.id,
                            {"opening_balance": balance})
        except BankingError as e:
            self._reject("register_account", e, f"account:{account_id}")
            raise

        log_action(self.logger, "info", "Account registered",
                   action="register_account", resource=f"account:{account.id}",
                   extra={"opening_balance": balance})
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        return self.accounts.find(account_id)

    def list_accounts(self) -> List[Account]:
        return self.accounts.all_accounts()

    # Transactions

    def add_transaction(self, request: TransactionRequest) -> Transaction:
        """
        Validate a transaction request, post it to the ledger and update the balance

        Unknown accounts are opened with a zero balance when
        auto_register_accounts is enabled.

        Raises:
            ValidationError: the request failed the transaction validator
            AccountNotFoundError: unknown account and auto registration disabled
        """
        try:
            self.transaction_validator.validate(request)
            account_id = str(request.account_id).strip()
            txn_date = parse_date(request.date)
            try:
                kind = TransactionKind(str(request.kind).strip().upper())
                amount = float(str(request.amount).strip())
            except ValueError as e:
                raise ValidationError(f"Invalid transaction data: {e}") from e

            with self.storage.atomic():
                account = self.accounts.find(account_id)
                if account is None:
                    # With auto registration off the transaction is rejected rather
                    # than appended to the ledger without an account
                    if not self.config.auto_register_accounts:
                        raise AccountNotFoundError(account_id)
                    account = self.accounts.register(Account(id=account_id))
                    self._audit(AuditEventType.ACCOUNT_REGISTERED, "account", account_id,
                                {"opening_balance": 0.0, "auto_registered": True})

                transaction = Transaction(
                    id=self.ledger.next_transaction_id(account_id, txn_date),
                    date=txn_date,
                    account_id=account_id,
                    kind=kind,
                    amount=amount
                )
                self.ledger.append(transaction)
                account.apply(transaction)
                self.accounts.update(account)

                self._audit(AuditEventType.TRANSACTION_POSTED, "transaction", transaction.id, {
                    "account_id": account_id,
                    "kind": kind.value,
                    "amount": amount,
                    "balance_after": account.balance
                })
        except BankingError as e:
            self._reject("add_transaction", e, f"account:{request.account_id}")
            raise

        log_action(self.logger, "info", "Transaction posted",
                   action="add_transaction", resource=f"transaction:{transaction.id}",
                   extra={"kind": kind.value, "amount": amount, "balance": account.balance})
        return transaction

    def add_transactions(self, requests: Sequence[TransactionRequest]) -> List[Transaction]:
        """
        Post several transactions, each on its own

        A rejected request is logged and skipped; the rest are still posted.
        """
        posted = []
        for request in requests:
            try:
                posted.append(self.add_transaction(request))
            except BankingError:
                continue
        return posted

    def get_transactions(self, account_id: str) -> List[Transaction]:
        return self.ledger.transactions_for(account_id)

    # Interest rules

    def add_interest_rule(self, request: InterestRuleRequest) -> InterestRule:
        """
        Raises:
            ValidationError: the request failed the interest rule validator
            DuplicateRuleIdError: the rule id exists; the stored rule is kept
        """
        try:
            self.interest_rule_validator.validate(request)
            try:
                rate = float(str(request.rate).strip())
            except ValueError as e:
                raise ValidationError(f"Invalid interest rule data: {e}") from e
            rule = InterestRule(
                effective_date=parse_date(request.date),
                rule_id=str(request.rule_id).strip(),
                annual_rate_percent=rate
            )
            with self.storage.atomic():
                self.rules.add_rule(rule)
                self._audit(AuditEventType.INTEREST_RULE_ADDED, "interest_rule", rule.rule_id, {
                    "effective_date": rule.effective_date.isoformat(),
                    "annual_rate_percent": rule.annual_rate_percent
                })
        except BankingError as e:
            self._reject("add_interest_rule", e, f"interest_rule:{request.rule_id}")
            raise

        log_action(self.logger, "info", "Interest rule added",
                   action="add_interest_rule", resource=f"interest_rule:{rule.rule_id}",
                   extra={"effective_date": rule.effective_date.isoformat(),
                          "annual_rate_percent": rule.annual_rate_percent})
        return rule

    def get_interest_rule(self, rule_id: str) -> Optional[InterestRule]:
        return self.rules.find_rule_by_id(rule_id)

    def list_interest_rules(self) -> List[InterestRule]:
        return self.rules.all_rules()

    # Interest

    def compute_account_interest(
        self,
        account_id: str,
        month: Optional[Union[str, int]] = None,
        year: Optional[int] = None
    ) -> float:
        """Interest for one account without crediting it"""
        month_number = validate_month(month) if month is not None else None
        year = validate_year(year)
        account = self.accounts.find(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        transactions = self.ledger.transactions_for(account_id)
        return self._compute(account, transactions, self.rules.all_rules(), month_number, year)

    def calculate_interest(
        self,
        month: Optional[Union[str, int]] = None,
        year: Optional[int] = None
    ) -> Dict[str, float]:
        """
        Batch interest run over every registered account

        Each account's result is added to its accrued interest, so running
        the batch twice credits the interest twice.

        Returns:
            Interest credited per account id
        """
        month_number = validate_month(month) if month is not None else None
        year = validate_year(year)
        rules = self.rules.all_rules()
        results = {}

        with self.storage.atomic():
            for account in self.accounts.all_accounts():
                transactions = self.ledger.transactions_for(account.id)
                interest = self._compute(account, transactions, rules, month_number, year)
                account.accrued_interest += interest
                self.accounts.update(account)
                results[account.id] = interest

                self._audit(AuditEventType.INTEREST_ACCRUED, "account", account.id, {
                    "interest": interest,
                    "accrued_interest": account.accrued_interest,
                    "method": self.interest_engine.method.value
                })

        log_action(self.logger, "info", "Interest run completed",
                   action="calculate_interest",
                   extra={"accounts": len(results), "method": self.interest_engine.method.value})
        return results

    # Statements

    def generate_statement(
        self,
        account_id: str,
        month: Union[str, int],
        year: Optional[int] = None,
        output_format: StatementFormat = StatementFormat.TEXT
    ) -> Union[str, Dict[str, Any]]:
        """
        Statement for an account and billing month

        The month is checked before the account is looked up.

        Raises:
            InvalidMonthError: month outside 1..12
            ValidationError: year outside the calendar range
            AccountNotFoundError: no account with that id
        """
        try:
            month_number = validate_month(month)
            year = validate_year(year)
            account = self.accounts.find(account_id)
            if account is None:
                raise AccountNotFoundError(account_id)
        except BankingError as e:
            self._reject("generate_statement", e, f"account:{account_id}")
            raise

        transactions = self.ledger.transactions_for(account_id)
        statement_year = self._statement_year(transactions, year)
        interest = self._compute(account, transactions, self.rules.all_rules(),
                                 month_number, statement_year)

        self._audit(AuditEventType.STATEMENT_GENERATED, "account", account_id, {
            "month": month_number,
            "year": statement_year,
            "interest": interest
        })
        log_action(self.logger, "info", "Statement generated",
                   action="generate_statement", resource=f"account:{account_id}",
                   extra={"month": month_number, "year": statement_year})

        return self.statement_formatter.format_statement(
            account, transactions, interest, month_number, statement_year, output_format
        )

    # Internals

    def _statement_year(self, transactions: Sequence[Transaction], year: Optional[int]) -> int:
        if year is not None:
            return int(year)
        if transactions:
            return max(t.date for t in transactions).year
        return self.config.default_statement_year

    def _billing_period(
        self,
        transactions: Sequence[Transaction],
        month: Optional[int],
        year: Optional[int]
    ) -> Optional[Tuple[date, date]]:
        """Calendar month to integrate over; None when there is nothing to anchor it"""
        if month is None:
            if not transactions:
                return None
            latest = max(t.date for t in transactions)
            month = latest.month
            year = year if year is not None else latest.year
        return period_bounds(month, self._statement_year(transactions, year))

    def _compute(
        self,
        account: Account,
        transactions: Sequence[Transaction],
        rules: Sequence[InterestRule],
        month: Optional[int],
        year: Optional[int]
    ) -> float:
        if self.interest_engine.method == AccrualMethod.EVENT_DRIVEN:
            return self.interest_engine.compute(account, transactions, rules)

        period = self._billing_period(transactions, month, year)
        if period is None:
            return 0.0
        return self.interest_engine.compute(account, transactions, rules, *period)

    def _audit(self, event_type: AuditEventType, entity_type: str, entity_id: str,
               metadata: Dict[str, Any]) -> None:
        if self.config.enable_audit_logging:
            self.audit_trail.log_event(event_type, entity_type, entity_id, metadata)

    def _reject(self, operation: str, error: BankingError, resource: str) -> None:
        log_action(self.logger, "warning", f"{operation} rejected: {error}",
                   action=operation, resource=resource,
                   extra={"error": type(error).__name__})
        self._audit(AuditEventType.OPERATION_REJECTED, "operation", operation, {
            "resource": resource,
            "error": type(error).__name__,
            "message": str(error)
        })
