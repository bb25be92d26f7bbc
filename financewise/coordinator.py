"""
View-State Coordinator for FinanceWise

This module ties together all the components and defines the end-to-end
flows behind each user action:
1. Load (expenses + budgets + profile → local mirrors)
2. Add / delete expense (validate → write expense → sync budget → mirror)
3. Add budget, set income (validate → write → mirror)
4. Dashboard (mirrors → aggregation)

DESIGN DECISION: The coordinator enforces the boundaries:
- Invalid input never reaches the store
- The expense write is authoritative; a failed budget sync is reported as a
  warning and never rolls the expense back
- Every step is audited

The local mirrors are optimistic. After an expense mutation the expense
list is patched in place, but the budget list is NOT re-fetched, so budget
percentages on the dashboard lag behind until the next load_all(). That
window is tracked explicitly in `budgets_stale`.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from financewise.aggregation import build_dashboard
from financewise.audit import AuditLogger, create_correlation_id
from financewise.config import get_settings, validate_all_settings
from financewise.models.records import (
    Budget,
    BudgetInput,
    Expense,
    ExpenseInput,
    RawAmount,
    RecordKind,
    ValidationResult,
)
from financewise.models.results import (
    Committed,
    CommittedWithSyncWarning,
    DashboardSummary,
    ExpenseAction,
    ExpenseMutation,
)
from financewise.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    RecordStoreClient,
    StorageError,
)
from financewise.sync import BudgetSynchronizer
from financewise.validation import InputValidator, ValidationError


class LoadError(Exception):
    """
    One or more record kinds failed to load.

    `failures` maps each failed kind to the underlying error. Kinds that
    loaded fine were still applied to the mirrors.
    """

    def __init__(self, failures: dict[RecordKind, Exception]):
        self.failures = failures
        details = ", ".join(
            f"{kind.value}: {error}" for kind, error in failures.items()
        )
        super().__init__(f"Failed to load {details}")

    @property
    def cause(self) -> Exception:
        """The first underlying error."""
        return next(iter(self.failures.values()))


class ViewStateCoordinator:
    """
    Per-session state for one owner.

    Holds:
    - expenses, newest date first
    - budgets, newest first as loaded, new ones appended
    - monthly income

    One user action runs to completion before the next one starts. Nothing
    here locks; concurrent sessions for the same owner can race on budget
    totals exactly as the synchronizer documents.
    """

    def __init__(
        self,
        owner: str,
        client: RecordStoreClient,
        synchronizer: Optional[BudgetSynchronizer] = None,
        validator: Optional[InputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._owner = owner
        self._client = client
        self._synchronizer = synchronizer or BudgetSynchronizer(client)
        self._validator = validator or InputValidator()
        self._audit_logger = audit_logger
        self._settings = get_settings().app

        self._expenses: list[Expense] = []
        self._budgets: list[Budget] = []
        self._monthly_income = Decimal("0")
        self._budgets_stale = False

    # -------------------------------------------------------------------------
    # Mirrors
    # -------------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def expenses(self) -> list[Expense]:
        return list(self._expenses)

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    @property
    def monthly_income(self) -> Decimal:
        return self._monthly_income

    @property
    def budgets_stale(self) -> bool:
        """True when an expense mutation adjusted a budget since the last load."""
        return self._budgets_stale

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _reject(
        self,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            issues = [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
                if i.severity == "error"
            ]
            await self._audit_logger.log_validation_failed(
                owner=self._owner,
                subject=result.subject,
                issues=issues,
                correlation_id=correlation_id,
            )
        raise ValidationError(result)

    async def _store_failed(
        self,
        operation: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_store_error(
                operation=operation,
                error_message=str(error),
                owner=self._owner,
                correlation_id=correlation_id,
            )

    async def _sync_budget(
        self,
        action: ExpenseAction,
        expense: Expense,
        correlation_id: UUID,
    ) -> ExpenseMutation:
        """
        Second step of an expense mutation: adjust the matching budget.

        The expense is already committed when this runs. Store failures are
        turned into a CommittedWithSyncWarning, never re-raised.
        """
        if action == ExpenseAction.CREATED:
            sync_step = self._synchronizer.sync_on_create
        else:
            sync_step = self._synchronizer.sync_on_delete

        try:
            sync = await sync_step(self._owner, expense.category, expense.amount)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_budget_sync_failed(
                    owner=self._owner,
                    category=expense.category,
                    amount=expense.amount,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return CommittedWithSyncWarning(
                action=action,
                expense=expense,
                warning=(
                    f"Expense {action.value}, but the {expense.category} budget "
                    "could not be updated"
                ),
                error_message=str(e),
            )

        if sync.applied:
            self._budgets_stale = True
            if self._audit_logger:
                await self._audit_logger.log_budget_synced(
                    budget_id=sync.budget_id,
                    owner=self._owner,
                    category=expense.category,
                    previous_spent=sync.previous_spent,
                    new_spent=sync.new_spent,
                    correlation_id=correlation_id,
                )
        elif self._audit_logger:
            await self._audit_logger.log_budget_sync_skipped(
                owner=self._owner,
                category=expense.category,
                correlation_id=correlation_id,
            )

        return Committed(action=action, expense=expense, sync=sync)

    # -------------------------------------------------------------------------
    # User actions
    # -------------------------------------------------------------------------

    async def load_all(self, correlation_id: Optional[UUID] = None) -> None:
        """
        Replace every mirror with a fresh copy from the store.

        Each kind is all-or-nothing: a kind that fails to load keeps its
        previous mirror untouched. Kinds that succeed are applied even when
        another kind fails.

        Raises:
            LoadError: If any kind failed, after applying the others
        """
        correlation_id = correlation_id or create_correlation_id()
        failures: dict[RecordKind, Exception] = {}

        try:
            expenses = await self._client.list_expenses(self._owner)
        except StorageError as e:
            failures[RecordKind.EXPENSE] = e
        else:
            self._expenses = expenses

        try:
            budgets = await self._client.list_budgets(self._owner)
        except StorageError as e:
            failures[RecordKind.BUDGET] = e
        else:
            self._budgets = budgets
            self._synchronizer.index.rebuild(budgets)
            self._budgets_stale = False

        try:
            profile = await self._client.get_profile(self._owner)
        except StorageError as e:
            failures[RecordKind.PROFILE] = e
        else:
            self._monthly_income = profile.monthly_income if profile else Decimal("0")

        if failures:
            if self._audit_logger:
                await self._audit_logger.log_load_failed(
                    owner=self._owner,
                    failures={kind.value: str(e) for kind, e in failures.items()},
                    correlation_id=correlation_id,
                )
            raise LoadError(failures)

        if self._audit_logger:
            await self._audit_logger.log_data_loaded(
                owner=self._owner,
                counts={
                    "expenses": len(self._expenses),
                    "budgets": len(self._budgets),
                },
                correlation_id=correlation_id,
            )

    async def add_expense(
        self,
        data: ExpenseInput,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseMutation:
        """
        Record a new expense and add it to its budget.

        Returns:
            Committed, or CommittedWithSyncWarning when the budget could not
            be adjusted (the expense is kept either way)

        Raises:
            ValidationError: Input rejected, store not contacted
            StorageError: The expense itself could not be written
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate_expense(data)
        if not result.is_valid:
            await self._reject(result, correlation_id)

        cleaned = result.cleaned
        try:
            expense = await self._client.create_expense(
                owner=self._owner,
                amount=cleaned["amount"],
                category=cleaned["category"],
                description=cleaned["description"],
                expense_date=cleaned["date"],
            )
        except StorageError as e:
            await self._store_failed("create_expense", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                expense_id=expense.id,
                owner=self._owner,
                category=expense.category,
                amount=expense.amount,
                correlation_id=correlation_id,
            )

        outcome = await self._sync_budget(ExpenseAction.CREATED, expense, correlation_id)

        # Optimistic: the write succeeded, no re-fetch
        self._expenses.insert(0, expense)
        return outcome

    async def delete_expense(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[ExpenseMutation]:
        """
        Delete an expense and take it off its budget.

        An id that is not in the local mirror is ignored: None is returned
        and the store is not contacted at all.

        Raises:
            StorageError: The expense itself could not be deleted
        """
        expense = next((e for e in self._expenses if e.id == expense_id), None)
        if expense is None:
            return None

        correlation_id = correlation_id or create_correlation_id()

        try:
            await self._client.delete_expense(expense.id)
        except StorageError as e:
            await self._store_failed("delete_expense", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense.id,
                owner=self._owner,
                category=expense.category,
                amount=expense.amount,
                correlation_id=correlation_id,
            )

        outcome = await self._sync_budget(ExpenseAction.DELETED, expense, correlation_id)

        self._expenses = [e for e in self._expenses if e.id != expense_id]
        return outcome

    async def add_budget(
        self,
        data: BudgetInput,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Create a budget for a category, starting at nothing spent.

        Existing expenses in the category are NOT counted into the new
        budget; only expenses mutated from now on adjust it.

        Raises:
            ValidationError: Input rejected, store not contacted
            DuplicateError: The owner already has a budget for this category
            StorageError: The budget could not be written
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate_budget(data)
        if not result.is_valid:
            await self._reject(result, correlation_id)

        try:
            budget = await self._client.create_budget(
                owner=self._owner,
                category=result.cleaned["category"],
                limit_amount=result.cleaned["limit_amount"],
            )
        except StorageError as e:
            await self._store_failed("create_budget", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_budget_created(
                budget_id=budget.id,
                owner=self._owner,
                category=budget.category,
                limit_amount=budget.limit_amount,
                correlation_id=correlation_id,
            )

        self._budgets.append(budget)
        self._synchronizer.index.add(budget)
        return budget

    async def set_income(
        self,
        value: RawAmount,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Set the owner's monthly income.

        Raises:
            ValidationError: Input rejected, store not contacted
            StorageError: The profile could not be written
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate_income(value)
        if not result.is_valid:
            await self._reject(result, correlation_id)

        try:
            profile = await self._client.set_monthly_income(
                self._owner,
                result.cleaned["monthly_income"],
            )
        except StorageError as e:
            await self._store_failed("set_income", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_income_updated(
                owner=self._owner,
                monthly_income=profile.monthly_income,
                correlation_id=correlation_id,
            )

        self._monthly_income = profile.monthly_income
        return self._monthly_income

    def dashboard(self) -> DashboardSummary:
        """Aggregate the current mirrors, stale budgets included."""
        return build_dashboard(
            self._expenses,
            self._budgets,
            self._monthly_income,
            budgets_stale=self._budgets_stale,
            warning_threshold=self._settings.warning_threshold,
            critical_threshold=self._settings.critical_threshold,
        )


def create_app_components(
    owner: str,
    use_storage: bool = True,
) -> ViewStateCoordinator:
    """
    Factory function to build a coordinator for one owner's session.

    Args:
        owner: Authenticated owner id, supplied by the caller
        use_storage: Whether to use Google Sheets. When False, or when
                    Sheets is not configured, an in-memory store is used.

    Returns:
        A coordinator ready for load_all()
    """
    logger = structlog.get_logger(__name__)
    store = None
    audit_logger = None

    if use_storage:
        status = validate_all_settings()
        if status["google_sheets"]:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsRecordStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        else:
            # Storage not configured - continue without it
            logger.warning(
                "storage_not_configured",
                error=status.get("google_sheets_error"),
            )

    if store is None:
        store = InMemoryRecordStore()
        audit_logger = AuditLogger()  # Local-only logging

    client = RecordStoreClient(store)
    return ViewStateCoordinator(
        owner=owner,
        client=client,
        synchronizer=BudgetSynchronizer(client),
        audit_logger=audit_logger,
    )
