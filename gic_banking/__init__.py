"""
GIC Banking

Account ledger with date-effective interest rules, an interest accrual
engine and monthly statements.
"""

__version__ = "1.0.0"
