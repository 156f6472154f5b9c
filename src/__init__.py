"""
Pocket Ledger - Source Package

A single-screen personal finance tracker: record income, expenses and
pending payments, and always see the balance they add up to.

DESIGN PRINCIPLES:
1. The balance is derived, never edited
2. Bad input is rejected before anything changes
3. Stored data is validated, never trusted
4. Every change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
