"""
Statement Module

Lays out an account's ledger with running balances and a closing interest
line. No business rules live here; the interest figure comes from the engine.
"""

import calendar
import json
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Sequence, Tuple, Union
from enum import Enum

from .accounts import Account
from .transactions import Transaction

INTEREST_KIND = "I"


class StatementFormat(Enum):
    """Supported statement renderings"""
    TEXT = "text"
    DICT = "dict"
    JSON = "json"


@dataclass
class StatementLine:
    """One row of a statement"""
    date: date
    txn_id: str
    kind: str
    amount: float
    balance: float


@dataclass
class Statement:
    """Ledger rows for an account plus the interest row for the billing period"""
    account_id: str
    period_start: date
    period_end: date
    lines: List[StatementLine] = field(default_factory=list)
    interest: float = 0.0
    projected_balance: float = 0.0


def period_bounds(month: int, year: int) -> Tuple[date, date]:
    """First and last day of a calendar month"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class StatementFormatter:
    """
    Renders (account, transactions, interest) as a statement

    Running balances start from the balance the account held before the
    listed transactions, i.e. its recorded balance minus their net effect.
    """

    def __init__(self, precision: int = 2):
        self.precision = precision

    def build(
        self,
        account: Account,
        transactions: Sequence[Transaction],
        interest: float,
        month: int,
        year: int
    ) -> Statement:
        period_start, period_end = period_bounds(month, year)
        own = [t for t in transactions if t.account_id == account.id]

        running = account.balance - sum(t.signed_amount for t in own)
        lines = []
        for transaction in own:
            running += transaction.signed_amount
            lines.append(StatementLine(
                date=transaction.date,
                txn_id=transaction.id,
                kind=transaction.kind.value,
                amount=transaction.amount,
                balance=running
            ))

        return Statement(
            account_id=account.id,
            period_start=period_start,
            period_end=period_end,
            lines=lines,
            interest=interest,
            projected_balance=account.balance + interest
        )

    def format_statement(
        self,
        account: Account,
        transactions: Sequence[Transaction],
        interest: float,
        month: int,
        year: int,
        output_format: StatementFormat = StatementFormat.TEXT
    ) -> Union[str, Dict[str, Any]]:
        statement = self.build(account, transactions, interest, month, year)
        return self.render(statement, output_format)

    def render(self, statement: Statement, output_format: StatementFormat) -> Union[str, Dict[str, Any]]:
        if output_format == StatementFormat.TEXT:
            return self._render_text(statement)

        elif output_format == StatementFormat.DICT:
            return self._to_dict(statement)

        elif output_format == StatementFormat.JSON:
            return json.dumps(self._to_dict(statement), indent=2)

        else:
            raise ValueError(f"Unsupported statement format: {output_format}")

    def _money(self, value: float) -> str:
        return f"{value:.{self.precision}f}"

    def _rows(self, statement: Statement) -> List[List[str]]:
        rows = [
            [line.date.strftime("%Y%m%d"), line.txn_id, line.kind,
             self._money(line.amount), self._money(line.balance)]
            for line in statement.lines
        ]
        rows.append([
            statement.period_end.strftime("%Y%m%d"), "", INTEREST_KIND,
            self._money(statement.interest), self._money(statement.projected_balance)
        ])
        return rows

    def _render_text(self, statement: Statement) -> str:
        header = ["Date", "Txn Id", "Type", "Amount", "Balance"]
        rows = self._rows(statement)
        widths = [max(len(row[i]) for row in [header] + rows) for i in range(len(header))]
        numeric = {3, 4}

        def line(cells: List[str], align_numbers: bool = True) -> str:
            padded = [
                cell.rjust(widths[i]) if align_numbers and i in numeric else cell.ljust(widths[i])
                for i, cell in enumerate(cells)
            ]
            return "| " + " | ".join(padded) + " |"

        output = [f"Account: {statement.account_id}", line(header, align_numbers=False)]
        output.extend(line(row) for row in rows)
        return "\n".join(output)

    def _to_dict(self, statement: Statement) -> Dict[str, Any]:
        return {
            "account_id": statement.account_id,
            "period_start": statement.period_start.isoformat(),
            "period_end": statement.period_end.isoformat(),
            "lines": [
                {
                    "date": line.date.isoformat(),
                    "txn_id": line.txn_id,
                    "type": line.kind,
                    "amount": round(line.amount, self.precision),
                    "balance": round(line.balance, self.precision)
                }
                for line in statement.lines
            ],
            "interest": round(statement.interest, self.precision),
            "projected_balance": round(statement.projected_balance, self.precision)
        }
