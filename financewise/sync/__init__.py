"""Budget synchronization package."""

from financewise.sync.synchronizer import BudgetIndex, BudgetSynchronizer

__all__ = ["BudgetIndex", "BudgetSynchronizer"]
