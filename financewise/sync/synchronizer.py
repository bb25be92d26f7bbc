"""
Budget Synchronizer

Keeps each budget's `spent` in step with the expenses of the same owner and
category, one compensating update per expense mutation.

DESIGN DECISION: The update is a plain read-then-write against the store:
read the budget, compute the new total, write it back. It is NOT an atomic
increment. Two mutations for the same (owner, category) that overlap in
time can both read the same starting total, and the second write then
discards the first one's adjustment (lost update). This is kept as-is for
compatibility with the data already in the store; nothing here locks,
retries or compares-and-swaps.

The synchronizer runs after the expense write has already succeeded. It
raises StorageError on failure and leaves it to the caller to report; it
never undoes the expense.

Category matching is exact string equality scoped to the owner. "Food" and
"food " are different categories.
"""

from decimal import Decimal
from typing import Iterable, Optional

from financewise.models.records import Budget
from financewise.models.results import SyncOutcome, SyncResult
from financewise.services.storage import RecordStoreClient


ZERO = Decimal("0")


class BudgetIndex:
    """
    Lookup of budget id by (owner, category).

    Maintained alongside the coordinator's budget list so a synchronization
    does not have to query by category on every call. The index only ever
    names a budget; the current spent is always read fresh from the store.
    """

    def __init__(self, budgets: Iterable[Budget] = ()):
        self._ids: dict[tuple[str, str], str] = {}
        self.rebuild(budgets)

    def rebuild(self, budgets: Iterable[Budget]) -> None:
        self._ids.clear()
        for budget in budgets:
            self.add(budget)

    def add(self, budget: Budget) -> None:
        self._ids[(budget.owner, budget.category)] = budget.id

    def get(self, owner: str, category: str) -> Optional[str]:
        return self._ids.get((owner, category))

    def discard(self, owner: str, category: str) -> None:
        self._ids.pop((owner, category), None)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._ids)


class BudgetSynchronizer:
    """Applies compensating updates to budget totals."""

    def __init__(
        self,
        client: RecordStoreClient,
        index: Optional[BudgetIndex] = None,
    ):
        self._client = client
        self.index = index if index is not None else BudgetIndex()

    async def _locate(self, owner: str, category: str) -> Optional[Budget]:
        """
        Find the budget for (owner, category) with its current spent.

        Index hit: re-read that budget by id. Index miss, or the indexed
        budget is gone: query the store by (owner, category) and remember
        the answer.
        """
        budget_id = self.index.get(owner, category)
        if budget_id is not None:
            budget = await self._client.get_budget(budget_id)
            if budget is not None and budget.owner == owner and budget.category == category:
                return budget
            self.index.discard(owner, category)

        budget = await self._client.find_budget(owner, category)
        if budget is not None:
            self.index.add(budget)
        return budget

    async def sync_on_create(
        self,
        owner: str,
        category: str,
        amount: Decimal,
    ) -> SyncResult:
        """
        Add a new expense's amount to its budget.

        Returns a NO_BUDGET result when the category has no budget.

        Raises:
            StorageError: If the lookup or the write fails
        """
        if amount < ZERO:
            raise ValueError(f"Expense amount cannot be negative: {amount}")

        budget = await self._locate(owner, category)
        if budget is None:
            return SyncResult(
                outcome=SyncOutcome.NO_BUDGET,
                owner=owner,
                category=category,
                amount=amount,
            )

        new_spent = budget.spent + amount
        await self._client.set_budget_spent(budget.id, new_spent)

        return SyncResult(
            outcome=SyncOutcome.APPLIED,
            owner=owner,
            category=category,
            amount=amount,
            budget_id=budget.id,
            previous_spent=budget.spent,
            new_spent=new_spent,
        )

    async def sync_on_delete(
        self,
        owner: str,
        category: str,
        amount: Decimal,
    ) -> SyncResult:
        """
        Take a deleted expense's amount off its budget.

        The new total is clamped at zero, so deletions can never drive spent
        negative, even when it has already drifted below the true sum.

        Raises:
            StorageError: If the lookup or the write fails
        """
        if amount < ZERO:
            raise ValueError(f"Expense amount cannot be negative: {amount}")

        budget = await self._locate(owner, category)
        if budget is None:
            return SyncResult(
                outcome=SyncOutcome.NO_BUDGET,
                owner=owner,
                category=category,
                amount=amount,
            )

        new_spent = max(ZERO, budget.spent - amount)
        await self._client.set_budget_spent(budget.id, new_spent)

        return SyncResult(
            outcome=SyncOutcome.APPLIED,
            owner=owner,
            category=category,
            amount=amount,
            budget_id=budget.id,
            previous_spent=budget.spent,
            new_spent=new_spent,
        )
