"""
Input Validation Module

Field-level checks for raw console/API input and the validator strategies
injected into BankingSystem. Validators only inspect requests; they never
touch a store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Union
import re

from .errors import ValidationError, InvalidMonthError

DATE_FORMAT = "%Y%m%d"

_DATE_PATTERN = re.compile(r"^\d{8}$")
_AMOUNT_PATTERN = re.compile(r"^(\d+(\.\d{0,2})?|\.\d{1,2})$")
_RATE_PATTERN = re.compile(r"^(\d+(\.\d*)?|\.\d+)$")
_MONTH_PATTERN = re.compile(r"^\d{1,2}$")
_YEAR_PATTERN = re.compile(r"^\d{1,4}$")

Number = Union[str, int, float]


@dataclass
class TransactionRequest:
    """Raw transaction input: <Date>|<Account>|<Type>|<Amount>"""
    date: str
    account_id: str
    kind: str
    amount: Number


@dataclass
class InterestRuleRequest:
    """Raw interest rule input: <Date>|<RuleId>|<Rate in %>"""
    date: str
    rule_id: str
    rate: Number


def is_valid_date(value: str) -> bool:
    """Check that value is a real calendar date in YYYYMMDD form"""
    text = str(value).strip()
    if not _DATE_PATTERN.match(text):
        return False
    try:
        datetime.strptime(text, DATE_FORMAT)
    except ValueError:
        return False
    return True


def parse_date(value: str) -> date:
    """Parse a YYYYMMDD string, raising ValidationError when malformed"""
    if not is_valid_date(value):
        raise ValidationError(f"Invalid date '{value}'. Date should be in YYYYMMDD format.")
    return datetime.strptime(str(value).strip(), DATE_FORMAT).date()


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def is_valid_amount(value: Number) -> bool:
    """Positive number with at most two decimal places"""
    text = str(value).strip()
    if not _AMOUNT_PATTERN.match(text):
        return False
    return float(text) > 0


def is_valid_type(value: str) -> bool:
    return str(value).strip().upper() in ("D", "W")


def is_valid_interest_rate(value: Number) -> bool:
    """Plain decimal rate in percent, strictly between 0 and 100"""
    text = str(value).strip()
    if not _RATE_PATTERN.match(text):
        return False
    return 0 < float(text) < 100


def is_valid_month(value: Union[str, int]) -> bool:
    text = str(value).strip()
    if not _MONTH_PATTERN.match(text):
        return False
    return 1 <= int(text) <= 12


def validate_month(value: Union[str, int]) -> int:
    """Return the month as an int, raising InvalidMonthError outside 1..12"""
    if not is_valid_month(value):
        raise InvalidMonthError(value)
    return int(str(value).strip())


def validate_year(value: Optional[Union[str, int]]) -> Optional[int]:
    """Return the year as an int, raising ValidationError outside the calendar range"""
    if value is None:
        return None
    text = str(value).strip()
    if not _YEAR_PATTERN.match(text) or not date.min.year <= int(text) <= date.max.year:
        raise ValidationError(f"Invalid year '{value}'. Year should be between {date.min.year} and {date.max.year}.")
    return int(text)


class TransactionValidator(ABC):
    """Strategy deciding whether a transaction request may reach the ledger"""

    @abstractmethod
    def errors(self, request: TransactionRequest) -> List[str]:
        """Return a list of problems; empty when the request is acceptable"""
        pass

    def is_valid_transaction(self, request: TransactionRequest) -> bool:
        return not self.errors(request)

    def validate(self, request: TransactionRequest) -> None:
        problems = self.errors(request)
        if problems:
            raise ValidationError("Invalid transaction data: " + "; ".join(problems))


class InterestRuleValidator(ABC):
    """Strategy deciding whether an interest rule request may reach the rule store"""

    @abstractmethod
    def errors(self, request: InterestRuleRequest) -> List[str]:
        """Return a list of problems; empty when the request is acceptable"""
        pass

    def is_valid_interest_rule(self, request: InterestRuleRequest) -> bool:
        return not self.errors(request)

    def validate(self, request: InterestRuleRequest) -> None:
        problems = self.errors(request)
        if problems:
            raise ValidationError("Invalid interest rule data: " + "; ".join(problems))


class DefaultTransactionValidator(TransactionValidator):
    """Date, account, type (D/W) and amount checks"""

    def errors(self, request: TransactionRequest) -> List[str]:
        problems = []
        if not is_valid_date(request.date):
            problems.append("date must be a valid YYYYMMDD date")
        if not str(request.account_id or "").strip():
            problems.append("account is required")
        if not is_valid_type(request.kind):
            problems.append("type must be D or W")
        if not is_valid_amount(request.amount):
            problems.append("amount must be greater than zero with at most 2 decimal places")
        return problems


class DefaultInterestRuleValidator(InterestRuleValidator):
    """Date, rule id and rate (0 < rate < 100) checks"""

    def errors(self, request: InterestRuleRequest) -> List[str]:
        problems = []
        if not is_valid_date(request.date):
            problems.append("date must be a valid YYYYMMDD date")
        if not str(request.rule_id or "").strip():
            problems.append("rule id is required")
        if not is_valid_interest_rate(request.rate):
            problems.append("rate must be greater than 0 and less than 100")
        return problems
