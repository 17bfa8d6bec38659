"""
Interest Engine Module

Date-effective interest rules, the rule store, and the accrual engine that
turns an account's transaction history and the rule timeline into an
interest amount.

Two accrual methods are available:

* EVENT_DRIVEN (default): every transaction event contributes
  ``running_balance * rate / 100`` once for *each* rule whose effective date
  is on or before the transaction date. The annual rate is not converted to a
  daily rate, superseded rules keep contributing, and the replay starts from
  the account's recorded balance. These are known simplifications kept so
  that existing figures are reproduced exactly.
* DAILY_BALANCE: day-weighted integration over a billing period. Each
  calendar day contributes ``end_of_day_balance * rate / 100 / basis`` using
  only the latest-effective rule in force that day.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence
from enum import Enum

from .storage import StorageInterface, StorageRecord
from .errors import DuplicateRuleIdError, ValidationError
from .accounts import Account
from .transactions import Transaction


class AccrualMethod(Enum):
    """How interest is accumulated over the transaction history"""
    EVENT_DRIVEN = "event_driven"    # One rate application per transaction per applicable rule
    DAILY_BALANCE = "daily_balance"  # End-of-day balance integrated over the billing period


class DayCountConvention(Enum):
    """Day-count basis used to derive a daily rate from the annual rate"""
    ACTUAL_365 = "actual_365"
    ACTUAL_360 = "actual_360"

    @property
    def days_in_year(self) -> int:
        return 360 if self is DayCountConvention.ACTUAL_360 else 365


@dataclass(frozen=True)
class InterestRule(StorageRecord):
    """Annual interest rate in percent, effective from a date"""
    effective_date: date
    rule_id: str
    annual_rate_percent: float

    def __post_init__(self):
        if not 0 < self.annual_rate_percent < 100:
            raise ValidationError("Interest rate must be greater than 0 and less than 100")

    def applies_on(self, on_date: date) -> bool:
        return self.effective_date <= on_date

    @classmethod
    def from_dict(cls, data: Dict) -> 'InterestRule':
        return cls(
            effective_date=date.fromisoformat(data['effective_date']),
            rule_id=data['rule_id'],
            annual_rate_percent=float(data['annual_rate_percent'])
        )


class InterestRuleStore:
    """
    Interest rules keyed by rule id, kept in insertion order
    """

    def __init__(self, storage: StorageInterface, table_name: str = "interest_rules"):
        self.storage = storage
        self.table_name = table_name

    def add_rule(self, rule: InterestRule) -> InterestRule:
        """
        Add a rule

        Raises:
            DuplicateRuleIdError: a rule with the same id exists; it is left unchanged
        """
        if self.storage.exists(self.table_name, rule.rule_id):
            raise DuplicateRuleIdError(rule.rule_id)
        self.storage.save(self.table_name, rule.rule_id, rule.to_dict())
        return rule

    def find_rule_by_id(self, rule_id: str) -> Optional[InterestRule]:
        data = self.storage.load(self.table_name, rule_id)
        if data:
            return InterestRule.from_dict(data)
        return None

    def all_rules(self) -> List[InterestRule]:
        """Rules in insertion order; temporal ordering is the engine's concern"""
        return [InterestRule.from_dict(data) for data in self.storage.load_all(self.table_name)]

    def count(self) -> int:
        return self.storage.count(self.table_name)


def compute_interest(
    account: Account,
    transactions: Iterable[Transaction],
    rules: Sequence[InterestRule]
) -> float:
    """
    Event-driven interest for an account

    Args:
        account: Account whose recorded balance seeds the running balance
        transactions: Transactions in replay order; other accounts' are skipped
        rules: Rule timeline in any order

    Returns:
        Sum over matching transactions of running_balance * rate / 100 for
        every rule effective on or before the transaction date
    """
    running_balance = account.balance
    total = 0.0

    for transaction in transactions:
        if transaction.account_id != account.id:
            continue
        running_balance += transaction.signed_amount
        for rule in rules:
            if rule.applies_on(transaction.date):
                total += running_balance * rule.annual_rate_percent / 100

    return total


def applicable_rule(rules: Sequence[InterestRule], on_date: date) -> Optional[InterestRule]:
    """Latest-effective rule in force on a date; later insertions win ties"""
    current = None
    for rule in rules:
        if rule.applies_on(on_date) and (current is None or rule.effective_date >= current.effective_date):
            current = rule
    return current


def compute_period_interest(
    opening_balance: float,
    transactions: Iterable[Transaction],
    rules: Sequence[InterestRule],
    period_start: date,
    period_end: date,
    day_count: DayCountConvention = DayCountConvention.ACTUAL_365
) -> float:
    """
    Day-weighted interest over the inclusive period [period_start, period_end]

    Args:
        opening_balance: Balance before any of the given transactions
        transactions: One account's transactions, any order
        rules: Rule timeline in insertion order
        period_start: First day of the billing period
        period_end: Last day of the billing period
        day_count: Basis for the daily rate

    Returns:
        Interest accrued on end-of-day balances for every day in the period
    """
    if period_end < period_start:
        return 0.0

    balance = opening_balance
    movements: Dict[date, float] = defaultdict(float)
    for transaction in transactions:
        if transaction.date < period_start:
            balance += transaction.signed_amount
        elif transaction.date <= period_end:
            movements[transaction.date] += transaction.signed_amount

    total = 0.0
    day = period_start
    while day <= period_end:
        balance += movements.get(day, 0.0)
        rule = applicable_rule(rules, day)
        if rule:
            total += balance * rule.annual_rate_percent / 100 / day_count.days_in_year
        day += timedelta(days=1)

    return total


class InterestEngine:
    """
    Stateless interest calculator configured with an accrual method

    Holds no stores; callers pass the account, its transactions and the rules.
    """

    def __init__(
        self,
        method: AccrualMethod = AccrualMethod.EVENT_DRIVEN,
        day_count: DayCountConvention = DayCountConvention.ACTUAL_365
    ):
        self.method = method
        self.day_count = day_count

    def compute(
        self,
        account: Account,
        transactions: Sequence[Transaction],
        rules: Sequence[InterestRule],
        period_start: Optional[date] = None,
        period_end: Optional[date] = None
    ) -> float:
        """
        Interest for one account

        The billing period is ignored by the event-driven method and required
        by the daily-balance method.
        """
        if self.method == AccrualMethod.EVENT_DRIVEN:
            return compute_interest(account, transactions, rules)

        if period_start is None or period_end is None:
            raise ValueError("Daily balance accrual requires a billing period")

        own = [t for t in transactions if t.account_id == account.id]
        # The recorded balance already includes every posted transaction
        opening_balance = account.balance - sum(t.signed_amount for t in own)
        return compute_period_interest(
            opening_balance, own, rules, period_start, period_end, self.day_count
        )
