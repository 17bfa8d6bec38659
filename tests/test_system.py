"""
Test suite for the banking system session

Tests account registration, transaction posting, interest rules, interest
runs and statements through BankingSystem, including rejection paths.
"""

import pytest

from gic_banking.config import GICConfig
from gic_banking.audit import AuditEventType
from gic_banking.errors import (
    ValidationError, InvalidMonthError, DuplicateAccountIdError, DuplicateRuleIdError,
    AccountNotFoundError
)
from gic_banking.statements import StatementFormat
from gic_banking.system import BankingSystem
from gic_banking.validators import (
    TransactionRequest, InterestRuleRequest, TransactionValidator, InterestRuleValidator
)


class TestAccounts:
    """Test account registration"""

    def setup_method(self):
        self.system = BankingSystem(config=GICConfig())

    def test_register_account(self):
        account = self.system.register_account("AC001", 1000.0)

        assert account.balance == 1000.0
        assert self.system.get_account("AC001").balance == 1000.0
        assert [a.id for a in self.system.list_accounts()] == ["AC001"]

    def test_duplicate_account(self):
        self.system.register_account("AC001", 1000.0)

        with pytest.raises(DuplicateAccountIdError):
            self.system.register_account("AC001", 5.0)

        assert self.system.get_account("AC001").balance == 1000.0

    @pytest.mark.parametrize("account_id,balance,message", [
        ("", 0.0, "account id is required"),
        ("AC001", -1.0, "must not be negative"),
        ("AC001", float("nan"), "must not be negative"),
    ])
    def test_invalid_account(self, account_id, balance, message):
        with pytest.raises(ValidationError, match=message):
            self.system.register_account(account_id, balance)

        assert self.system.list_accounts() == []


class TestTransactions:
    """Test transaction posting"""

    def setup_method(self):
        self.system = BankingSystem(config=GICConfig())

    def test_balance_follows_transactions(self):
        """0 + 100 - 50 = 50"""
        self.system.register_account("AC001")
        self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "100.00"))
        self.system.add_transaction(TransactionRequest("20230602", "AC001", "w", "50"))

        assert self.system.get_account("AC001").balance == pytest.approx(50.0)

    def test_transaction_fields_and_ids(self):
        first = self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "100"))
        second = self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "25.5"))

        assert first.id == "AC001-20230601-01"
        assert second.id == "AC001-20230601-02"
        assert second.amount == 25.5
        assert [t.id for t in self.system.get_transactions("AC001")] == [first.id, second.id]

    def test_unknown_account_is_auto_registered(self):
        self.system.add_transaction(TransactionRequest("20230601", "AC009", "D", "10"))

        assert self.system.get_account("AC009").balance == 10.0

    def test_unknown_account_rejected_without_auto_registration(self):
        system = BankingSystem(config=GICConfig(auto_register_accounts=False))

        with pytest.raises(AccountNotFoundError):
            system.add_transaction(TransactionRequest("20230601", "AC009", "D", "10"))

        assert system.get_transactions("AC009") == []
        assert system.ledger.count() == 0

    def test_invalid_transaction_leaves_no_trace(self):
        """A rejected request changes neither balances nor the ledger"""
        self.system.register_account("AC001", 100.0)

        with pytest.raises(ValidationError, match="Invalid transaction data"):
            self.system.add_transaction(TransactionRequest("20230631", "AC001", "D", "10"))

        assert self.system.get_account("AC001").balance == 100.0
        assert self.system.get_transactions("AC001") == []

    def test_failed_posting_is_rolled_back(self, monkeypatch):
        """An error after the ledger append undoes the whole posting"""
        self.system.register_account("AC001", 100.0)

        def broken_update(account):
            raise AccountNotFoundError(account.id)

        monkeypatch.setattr(self.system.accounts, "update", broken_update)

        with pytest.raises(AccountNotFoundError):
            self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "10"))

        assert self.system.get_transactions("AC001") == []
        assert self.system.get_account("AC001").balance == 100.0
        assert self.system.audit_trail.verify_integrity()["valid"]

    def test_add_transactions_skips_rejected(self):
        posted = self.system.add_transactions([
            TransactionRequest("20230601", "AC001", "D", "100"),
            TransactionRequest("bad", "AC001", "D", "100"),
            TransactionRequest("20230602", "AC001", "W", "40"),
        ])

        assert len(posted) == 2
        assert self.system.get_account("AC001").balance == pytest.approx(60.0)

    def test_custom_validator(self):
        class NoWithdrawals(TransactionValidator):
            def errors(self, request):
                return ["withdrawals are disabled"] if request.kind.upper() == "W" else []

        system = BankingSystem(transaction_validator=NoWithdrawals(), config=GICConfig())
        system.add_transaction(TransactionRequest("20230601", "AC001", "D", "100"))

        with pytest.raises(ValidationError, match="withdrawals are disabled"):
            system.add_transaction(TransactionRequest("20230602", "AC001", "W", "40"))


class TestInterestRules:
    """Test interest rule definition"""

    def setup_method(self):
        self.system = BankingSystem(config=GICConfig())

    def test_add_rule(self):
        rule = self.system.add_interest_rule(InterestRuleRequest("20230615", "RULE01", "2.00"))

        assert rule.annual_rate_percent == 2.0
        assert self.system.get_interest_rule("RULE01") == rule
        assert self.system.list_interest_rules() == [rule]

    def test_duplicate_rule_keeps_original(self):
        self.system.add_interest_rule(InterestRuleRequest("20230615", "RULE01", "2.00"))

        with pytest.raises(DuplicateRuleIdError):
            self.system.add_interest_rule(InterestRuleRequest("20230101", "RULE01", "5.00"))

        assert self.system.get_interest_rule("RULE01").annual_rate_percent == 2.0

    def test_invalid_rule(self):
        with pytest.raises(ValidationError, match="Invalid interest rule data"):
            self.system.add_interest_rule(InterestRuleRequest("20230615", "RULE01", "0"))

        assert self.system.list_interest_rules() == []


class TestInterest:
    """Test interest computation and batch runs"""

    def setup_method(self):
        self.system = BankingSystem(config=GICConfig())
        self.system.register_account("AC001", 1000.0)
        self.system.add_interest_rule(InterestRuleRequest("20230615", "RULE01", "2.00"))

    def test_transaction_before_rule(self):
        self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "500"))

        assert self.system.compute_account_interest("AC001") == 0.0

    def test_replay_starts_from_recorded_balance(self):
        """The recorded balance already includes the deposit: (1500 + 500) * 2%"""
        self.system.add_transaction(TransactionRequest("20230620", "AC001", "D", "500"))

        assert self.system.compute_account_interest("AC001") == pytest.approx(40.0)

    def test_unknown_account(self):
        with pytest.raises(AccountNotFoundError):
            self.system.compute_account_interest("AC404")

    def test_batch_run_is_cumulative(self):
        self.system.add_transaction(TransactionRequest("20230620", "AC001", "D", "500"))
        self.system.register_account("AC002", 10.0)

        first = self.system.calculate_interest()
        self.system.calculate_interest()

        assert first == {"AC001": pytest.approx(40.0), "AC002": 0.0}
        assert self.system.get_account("AC001").accrued_interest == pytest.approx(80.0)
        assert self.system.get_account("AC001").balance == pytest.approx(1500.0)
        assert len(self.system.audit_trail.get_events_by_type(AuditEventType.INTEREST_ACCRUED)) == 4

    def test_batch_run_rejects_bad_month(self):
        with pytest.raises(InvalidMonthError):
            self.system.calculate_interest("13")

        assert self.system.get_account("AC001").accrued_interest == 0.0


class TestDailyBalanceInterest:
    """Test the day-weighted accrual method through the session"""

    def setup_method(self):
        self.system = BankingSystem(config=GICConfig(accrual_method="daily_balance"))
        self.system.add_interest_rule(InterestRuleRequest("20230101", "RULE01", "10"))

    def test_billing_month(self):
        self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "365"))

        assert self.system.compute_account_interest("AC001", "06", 2023) == pytest.approx(3.0)
        assert self.system.compute_account_interest("AC001", "05", 2023) == 0.0

    def test_defaults_to_latest_transaction_month(self):
        self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "365"))

        assert self.system.compute_account_interest("AC001") == pytest.approx(3.0)

    def test_account_without_transactions(self):
        self.system.register_account("AC002", 365.0)

        assert self.system.compute_account_interest("AC002") == 0.0
        assert self.system.compute_account_interest("AC002", "06", 2023) == pytest.approx(3.0)


class TestStatements:
    """Test statement generation"""

    def setup_method(self):
        self.system = BankingSystem(config=GICConfig())
        self.system.register_account("AC001", 1000.0)
        self.system.add_interest_rule(InterestRuleRequest("20230615", "RULE01", "2.00"))
        self.system.add_transaction(TransactionRequest("20230620", "AC001", "D", "500"))

    def test_text_statement(self):
        lines = self.system.generate_statement("AC001", "6").splitlines()

        assert lines[0] == "Account: AC001"
        assert "AC001-20230620-01" in lines[2]
        assert "1500.00" in lines[2]
        assert lines[3].startswith("| 20230630 |")
        assert lines[3].endswith("|  40.00 | 1540.00 |")

    def test_dict_statement(self):
        data = self.system.generate_statement("AC001", "06", output_format=StatementFormat.DICT)

        assert data["period_end"] == "2023-06-30"
        assert data["interest"] == 40.0
        assert data["projected_balance"] == 1540.0

    def test_explicit_year(self):
        data = self.system.generate_statement("AC001", "2", 2024, StatementFormat.DICT)

        assert data["period_end"] == "2024-02-29"

    def test_default_year_without_transactions(self):
        self.system.register_account("AC002", 100.0)
        data = self.system.generate_statement("AC002", "2", output_format=StatementFormat.DICT)

        assert data["period_end"] == "2023-02-28"
        assert data["lines"] == []
        assert data["projected_balance"] == 100.0

    def test_unknown_account(self):
        with pytest.raises(AccountNotFoundError, match="Account not found."):
            self.system.generate_statement("AC404", "6")

    @pytest.mark.parametrize("account_id", ["AC001", "AC404"])
    def test_invalid_month_checked_first(self, account_id):
        with pytest.raises(InvalidMonthError):
            self.system.generate_statement(account_id, "13")

    def test_statement_does_not_change_balances(self):
        self.system.generate_statement("AC001", "6")

        account = self.system.get_account("AC001")
        assert account.balance == 1500.0
        assert account.accrued_interest == 0.0


class TestAuditing:
    """Test the session's audit trail"""

    def test_operations_are_audited(self):
        system = BankingSystem(config=GICConfig())
        system.register_account("AC001")
        system.add_transaction(TransactionRequest("20230601", "AC001", "D", "100"))
        system.add_interest_rule(InterestRuleRequest("20230615", "RULE01", "2"))
        system.generate_statement("AC001", "6")

        types = [e.event_type for e in system.audit_trail.get_all_events()]
        assert types == [
            AuditEventType.ACCOUNT_REGISTERED,
            AuditEventType.TRANSACTION_POSTED,
            AuditEventType.INTEREST_RULE_ADDED,
            AuditEventType.STATEMENT_GENERATED,
        ]
        assert system.audit_trail.verify_integrity()["valid"]

    def test_rejections_are_audited(self):
        system = BankingSystem(config=GICConfig())

        with pytest.raises(ValidationError):
            system.add_transaction(TransactionRequest("bad", "AC001", "D", "100"))

        events = system.audit_trail.get_events_by_type(AuditEventType.OPERATION_REJECTED)
        assert len(events) == 1
        assert events[0].entity_id == "add_transaction"
        assert events[0].metadata["error"] == "ValidationError"

    def test_audit_can_be_disabled(self):
        system = BankingSystem(config=GICConfig(enable_audit_logging=False))
        system.add_transaction(TransactionRequest("20230601", "AC001", "D", "100"))

        assert system.audit_trail.count_events() == 0


class TestYearValidation:
    """Years outside the calendar range are rejected before any work"""

    def setup_method(self):
        self.system = BankingSystem(config=GICConfig())
        self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "100"))

    @pytest.mark.parametrize("year", [0, 10000])
    def test_statement(self, year):
        with pytest.raises(ValidationError, match="Invalid year"):
            self.system.generate_statement("AC001", "6", year)

    def test_compute_account_interest(self):
        with pytest.raises(ValidationError, match="Invalid year"):
            self.system.compute_account_interest("AC001", "6", 0)

    def test_batch_run(self):
        with pytest.raises(ValidationError, match="Invalid year"):
            self.system.calculate_interest("6", 10000)

        assert self.system.get_account("AC001").accrued_interest == 0.0


class PermissiveTransactionValidator(TransactionValidator):
    def errors(self, request):
        return []


class PermissiveInterestRuleValidator(InterestRuleValidator):
    def errors(self, request):
        return []


class TestRecordInvariants:
    """Record-level checks still reject input a custom validator lets through"""

    def setup_method(self):
        self.system = BankingSystem(
            transaction_validator=PermissiveTransactionValidator(),
            interest_rule_validator=PermissiveInterestRuleValidator(),
            config=GICConfig()
        )

    def test_rate_out_of_range(self):
        with pytest.raises(ValidationError, match="less than 100"):
            self.system.add_interest_rule(InterestRuleRequest("20230101", "RULE01", "150"))

        assert self.system.list_interest_rules() == []

    def test_non_numeric_rate(self):
        with pytest.raises(ValidationError, match="Invalid interest rule data"):
            self.system.add_interest_rule(InterestRuleRequest("20230101", "RULE01", "abc"))

    def test_non_numeric_amount(self):
        with pytest.raises(ValidationError, match="Invalid transaction data"):
            self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "abc"))

        assert self.system.list_accounts() == []

    def test_unknown_type(self):
        with pytest.raises(ValidationError, match="Invalid transaction data"):
            self.system.add_transaction(TransactionRequest("20230601", "AC001", "X", "10"))

    def test_zero_amount_is_rolled_back(self):
        """The amount check fires inside the posting, after auto registration"""
        with pytest.raises(ValidationError, match="must be positive"):
            self.system.add_transaction(TransactionRequest("20230601", "AC001", "D", "0"))

        assert self.system.list_accounts() == []
        assert self.system.ledger.count() == 0
