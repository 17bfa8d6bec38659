"""Domain exceptions raised at the banking system boundary"""


class BankingError(ValueError):
    """Base exception for rejected banking operations"""

    pass


class ValidationError(BankingError):
    """Transaction, interest rule or statement input is malformed"""

    pass


class InvalidMonthError(ValidationError):
    """Statement month is outside 1..12"""

    def __init__(self, month=None):
        self.month = month
        super().__init__("Invalid month. Month should be between 01 and 12.")


class DuplicateIdError(BankingError):
    """An entity with the same identifier already exists"""

    pass


class DuplicateAccountIdError(DuplicateIdError):
    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account with ID '{account_id}' already exists.")


class DuplicateRuleIdError(DuplicateIdError):
    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Interest rule with ID '{rule_id}' already exists.")


class NotFoundError(BankingError):
    """Requested entity is not registered"""

    pass


class AccountNotFoundError(NotFoundError):
    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Account not found.")
