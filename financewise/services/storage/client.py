"""
Typed Record Store Client

Wraps the kind-generic record store interface with the handful of typed
operations the synchronizer and coordinator need. Every query is scoped by
the owner id it is given; this layer never authenticates.

Records coming back from the store are parsed into models here. A record
the models reject is reported as a StorageError: from the caller's point of
view the store returned garbage.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from financewise.models.records import Budget, Expense, Profile, RecordKind
from financewise.services.storage.interface import (
    Record,
    RecordStoreInterface,
    StorageError,
)


ModelT = TypeVar("ModelT", bound=BaseModel)


class RecordStoreClient:
    """Typed operations over a RecordStoreInterface."""

    def __init__(self, store: RecordStoreInterface):
        self._store = store

    @property
    def store(self) -> RecordStoreInterface:
        return self._store

    @staticmethod
    def _parse(model: type[ModelT], record: Record) -> ModelT:
        try:
            return model.model_validate(record)
        except PydanticValidationError as e:
            raise StorageError(
                f"Malformed {model.__name__.lower()} record {record.get('id', '?')}: {e}"
            )

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def list_expenses(self, owner: str) -> list[Expense]:
        """Owner's expenses, newest date first."""
        records = await self._store.read(
            RecordKind.EXPENSE,
            {"owner": owner},
            order_by="date",
            descending=True,
        )
        return [self._parse(Expense, record) for record in records]

    async def create_expense(
        self,
        owner: str,
        amount: Decimal,
        category: str,
        description: str,
        expense_date: date,
    ) -> Expense:
        record = await self._store.create(
            RecordKind.EXPENSE,
            {
                "owner": owner,
                "amount": amount,
                "category": category,
                "description": description,
                "date": expense_date,
            },
        )
        return self._parse(Expense, record)

    async def delete_expense(self, expense_id: str) -> None:
        await self._store.delete(RecordKind.EXPENSE, expense_id)

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    async def list_budgets(self, owner: str) -> list[Budget]:
        """Owner's budgets, most recently created first."""
        records = await self._store.read(
            RecordKind.BUDGET,
            {"owner": owner},
            order_by="created_at",
            descending=True,
        )
        return [self._parse(Budget, record) for record in records]

    async def create_budget(
        self,
        owner: str,
        category: str,
        limit_amount: Decimal,
    ) -> Budget:
        """New budgets always start with nothing spent."""
        record = await self._store.create(
            RecordKind.BUDGET,
            {
                "owner": owner,
                "category": category,
                "limit_amount": limit_amount,
                "spent": Decimal("0"),
            },
        )
        return self._parse(Budget, record)

    async def find_budget(self, owner: str, category: str) -> Optional[Budget]:
        """The budget for (owner, category), matched by exact category text."""
        record = await self._store.read_one(
            RecordKind.BUDGET,
            {"owner": owner, "category": category},
        )
        return self._parse(Budget, record) if record else None

    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        record = await self._store.read_one(RecordKind.BUDGET, {"id": budget_id})
        return self._parse(Budget, record) if record else None

    async def set_budget_spent(self, budget_id: str, spent: Decimal) -> Budget:
        """Overwrite spent. Plain write, no compare-and-swap."""
        record = await self._store.update(
            RecordKind.BUDGET,
            budget_id,
            {"spent": spent},
        )
        return self._parse(Budget, record)

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def get_profile(self, owner: str) -> Optional[Profile]:
        record = await self._store.read_one(RecordKind.PROFILE, {"id": owner})
        return self._parse(Profile, record) if record else None

    async def set_monthly_income(self, owner: str, monthly_income: Decimal) -> Profile:
        """Update the owner's profile in place, creating it on first use."""
        existing = await self._store.read_one(RecordKind.PROFILE, {"id": owner})
        if existing is None:
            record = await self._store.create(
                RecordKind.PROFILE,
                {"id": owner, "monthly_income": monthly_income},
            )
        else:
            record = await self._store.update(
                RecordKind.PROFILE,
                owner,
                {"monthly_income": monthly_income},
            )
        return self._parse(Profile, record)
