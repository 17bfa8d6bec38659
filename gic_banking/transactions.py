"""
Transaction Ledger Module

Deposit and withdrawal records and the append-only ledger that holds them.
The ledger performs no validation; requests are validated before they get here.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List
from enum import Enum

from .storage import StorageInterface, StorageRecord
from .errors import ValidationError


class TransactionKind(Enum):
    """Kinds of account movements, valued by their input code"""
    DEPOSIT = "D"
    WITHDRAWAL = "W"

    @property
    def sign(self) -> int:
        return 1 if self is TransactionKind.DEPOSIT else -1


@dataclass(frozen=True)
class Transaction(StorageRecord):
    """
    Immutable deposit or withdrawal against one account
    """
    id: str
    date: date
    account_id: str
    kind: TransactionKind
    amount: float

    def __post_init__(self):
        if not self.amount > 0:
            raise ValidationError("Transaction amount must be positive")

    @property
    def signed_amount(self) -> float:
        """Amount with the sign of its effect on the balance"""
        return self.kind.sign * self.amount

    @classmethod
    def from_dict(cls, data: Dict) -> 'Transaction':
        return cls(
            id=data['id'],
            date=date.fromisoformat(data['date']),
            account_id=data['account_id'],
            kind=TransactionKind(data['kind']),
            amount=float(data['amount'])
        )


class TransactionLedger:
    """
    Append-only transaction log

    Transactions are returned in the order they were appended; the ledger
    never sorts by date.
    """

    def __init__(self, storage: StorageInterface, table_name: str = "transactions",
                 sequence_table: str = "transaction_sequences"):
        self.storage = storage
        self.table_name = table_name
        self.sequence_table = sequence_table

    def append(self, transaction: Transaction) -> Transaction:
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())
        return transaction

    def transactions_for(self, account_id: str) -> List[Transaction]:
        """Transactions of one account in append order"""
        records = self.storage.find(self.table_name, {"account_id": account_id})
        return [Transaction.from_dict(data) for data in records]

    def all_transactions(self) -> List[Transaction]:
        return [Transaction.from_dict(data) for data in self.storage.load_all(self.table_name)]

    def next_transaction_id(self, account_id: str, txn_date: date) -> str:
        """
        Reserve the next identifier for an account

        Format is {account}-{YYYYMMDD}-{seq:02d} where seq increases by one
        for every identifier reserved for the account.
        """
        state = self.storage.load(self.sequence_table, account_id) or {"id": account_id, "last": 0}
        state["last"] += 1
        self.storage.save(self.sequence_table, account_id, state)
        return f"{account_id}-{txn_date.strftime('%Y%m%d')}-{state['last']:02d}"

    def count(self) -> int:
        return self.storage.count(self.table_name)
