"""
Account Management Module

Account records and the registry that maps account identifiers to their
current balance and accrued interest.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .storage import StorageInterface, StorageRecord
from .errors import DuplicateAccountIdError, AccountNotFoundError
from .transactions import Transaction


@dataclass
class Account(StorageRecord):
    """
    Bank account state

    balance changes only when a validated transaction is applied;
    accrued_interest changes only when an interest run credits it.
    """
    id: str
    balance: float = 0.0
    accrued_interest: float = 0.0

    def apply(self, transaction: Transaction) -> None:
        """Add a deposit to, or subtract a withdrawal from, the balance"""
        self.balance += transaction.signed_amount

    @classmethod
    def from_dict(cls, data: Dict) -> 'Account':
        return cls(
            id=data['id'],
            balance=float(data['balance']),
            accrued_interest=float(data['accrued_interest'])
        )


class AccountRegistry:
    """
    Registry of accounts keyed by identifier

    Identifiers are unique; the first registration wins.
    """

    def __init__(self, storage: StorageInterface, table_name: str = "accounts"):
        self.storage = storage
        self.table_name = table_name

    def register(self, account: Account) -> Account:
        """
        Register a new account

        Raises:
            DuplicateAccountIdError: an account with the same id already exists
        """
        if self.storage.exists(self.table_name, account.id):
            raise DuplicateAccountIdError(account.id)
        self.storage.save(self.table_name, account.id, account.to_dict())
        return account

    def find(self, account_id: str) -> Optional[Account]:
        """Get account by ID"""
        data = self.storage.load(self.table_name, account_id)
        if data:
            return Account.from_dict(data)
        return None

    def exists(self, account_id: str) -> bool:
        return self.storage.exists(self.table_name, account_id)

    def all_accounts(self) -> List[Account]:
        """All accounts in registration order"""
        return [Account.from_dict(data) for data in self.storage.load_all(self.table_name)]

    def update(self, account: Account) -> Account:
        """Persist a modified copy of a registered account"""
        if not self.storage.exists(self.table_name, account.id):
            raise AccountNotFoundError(account.id)
        self.storage.save(self.table_name, account.id, account.to_dict())
        return account

    def count(self) -> int:
        return self.storage.count(self.table_name)
