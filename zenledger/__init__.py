"""
ZenLedger - Source Package

The ledger and balance reconstruction engine behind a personal
budgeting app. Turns an append-style list of income/expense events
into balances, net-worth trends, period aggregates and budget
rollover adjustments.

DESIGN PRINCIPLES:
1. Every value is rederived from the ledger on read
2. The engine is pure: snapshot in, plain values out
3. Malformed input is rejected at the boundary, never coerced
4. Dangling references are tolerated, not raised
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "ZenLedger Team"
