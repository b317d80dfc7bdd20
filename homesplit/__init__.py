"""
HomeSplit - Source Package

A household expense and shopping-list tracker for a small, fixed group
of housemates.

DESIGN PRINCIPLES:
1. Balances are never stored - they are folded from the expense ledger
2. One bad record can never blank the whole balance sheet
3. Validation happens when an expense is created, not when it is folded
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "HomeSplit Team"
