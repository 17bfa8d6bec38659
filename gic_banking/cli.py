"""
Interactive Console Module

Menu-driven console over a BankingSystem: input transactions, define
interest rules, print statements, quit. Every rejected command prints a
one-line message and the loop carries on.
"""

from typing import List, Optional, TextIO
import sys

from .errors import BankingError
from .system import BankingSystem
from .validators import TransactionRequest, InterestRuleRequest

MENU = [
    "[I]nput transactions",
    "[D]efine interest rules",
    "[P]rint statement",
    "[Q]uit",
]

BACK_HINT = "(or enter blank to go back to main menu):"


class BankingConsole:
    """
    Line-oriented console

    Reads commands from ``stdin`` and writes to ``stdout`` so it can be driven
    by any pair of text streams.
    """

    def __init__(self, system: BankingSystem, stdin: Optional[TextIO] = None,
                 stdout: Optional[TextIO] = None):
        self.system = system
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.bank_name = system.config.bank_name

    def run(self) -> int:
        """Run the menu loop until Q or end of input; returns the exit status"""
        first = True
        while True:
            self._show_menu(first)
            first = False

            choice = self._read()
            if choice is None:
                self._quit()
                return 0

            choice = choice.upper()
            if choice == "I":
                self.handle_input_transaction()
            elif choice == "D":
                self.handle_define_interest_rule()
            elif choice == "P":
                self.handle_print_statement()
            elif choice == "Q":
                self._quit()
                return 0
            else:
                self._write("Invalid input. Please enter a valid option.")

    def handle_input_transaction(self) -> None:
        self._write("Please enter transaction details in <Date>|<Account>|<Type>|<Amount> format")
        line = self._prompt()
        if not line:
            return

        parts = self._split(line, 4)
        if parts is None:
            self._write("Invalid transaction data. Please check the input values.")
            return

        date, account_id, kind, amount = parts
        try:
            self.system.add_transaction(TransactionRequest(date, account_id, kind, amount))
        except BankingError as e:
            self._write(f"An error occurred: {e}")
            return
        self._write("Transaction added successfully!")

    def handle_define_interest_rule(self) -> None:
        self._write("Please enter interest rule details in <Date>|<RuleId>|<Rate in %> format")
        line = self._prompt()
        if not line:
            return

        parts = self._split(line, 3)
        if parts is None:
            self._write("Invalid interest rule data. Please check the input values.")
            return

        date, rule_id, rate = parts
        try:
            self.system.add_interest_rule(InterestRuleRequest(date, rule_id, rate))
        except BankingError as e:
            self._write(f"An error occurred: {e}")
            return
        self._write("Interest rule added successfully!")

    def handle_print_statement(self) -> None:
        self._write("Please enter account and month to generate the statement <Account>|<Month>")
        line = self._prompt()
        if not line:
            return

        parts = self._split(line, 2)
        if parts is None:
            self._write("Invalid statement request. Please check the input values.")
            return

        account_id, month = parts
        try:
            statement = self.system.generate_statement(account_id, month)
        except BankingError as e:
            self._write(f"An error occurred: {e}")
            return
        self._write(statement)

    def _show_menu(self, first: bool) -> None:
        if first:
            self._write(f"Welcome to {self.bank_name}! What would you like to do?")
        else:
            self._write("Is there anything else you'd like to do?")
        for item in MENU:
            self._write(item)

    def _quit(self) -> None:
        self._write(f"Thank you for banking with {self.bank_name}.")
        self._write("Have a nice day!")

    def _prompt(self) -> str:
        self._write(BACK_HINT)
        return self._read() or ""

    def _read(self) -> Optional[str]:
        line = self.stdin.readline()
        if line == "":
            return None
        return line.strip()

    def _write(self, text: str) -> None:
        self.stdout.write(f"{text}\n")
        self.stdout.flush()

    @staticmethod
    def _split(line: str, expected: int) -> Optional[List[str]]:
        parts = [part.strip() for part in line.split("|")]
        if len(parts) != expected:
            return None
        return parts
