"""
FinanceWise - Source Package

The budget/expense consistency engine behind a personal-finance dashboard:
expenses, per-category monthly budgets and monthly income.

DESIGN PRINCIPLES:
1. The expense record is authoritative, budget totals are derived
2. Derived totals are kept up to date incrementally, never recomputed
3. Failures of the derived write are reported, never hidden
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinanceWise Team"
