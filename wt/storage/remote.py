"""Repositories over the remote timers / week_history tables"""
from typing import Any, Callable, Dict, List, Optional

from supabase import Client  # type: ignore

from wt.core.timer import Timer, WeekHistory
from wt.storage.mapping import (
    HISTORY_COLUMNS,
    TIMER_COLUMNS,
    history_from_row,
    timer_from_row,
)


class UserScopedRepository:
    """
    Base repository for tables whose rows belong to one user.
    Hides Supabase query details from the rest of the application, and pins
    every query to the owning ``user_id``. Row-level security on the server is
    what actually enforces ownership; the filter just keeps queries honest.
    """

    def __init__(self, client: Client, table_name: str, columns, to_model: Callable[[Dict[str, Any]], Any], user_id: str):
        self._client = client
        self._table_name = table_name
        self._columns = ",".join(columns)
        self._to_model = to_model
        self._user_id = user_id

    @property
    def user_id(self) -> str:
        return self._user_id

    def _to_models(self, data: List[Dict[str, Any]]) -> list:
        """Convert list of database dicts to domain models"""
        return [self._to_model(item) for item in data]

    def _find_all(self, order_by: str, desc: bool) -> list:
        response = (
            self._client.table(self._table_name)
            .select(self._columns)
            .eq("user_id", self._user_id)
            .order(order_by, desc=desc)
            .execute()
        )
        return self._to_models(response.data or [])

    def insert(self, row: Dict[str, Any]) -> None:
        """Insert a new record. The row's user_id must be the repository's."""
        if row.get("user_id") != self._user_id:
            raise ValueError(f"Refusing to insert a {self._table_name} row for another user")
        self._client.table(self._table_name).insert(row).execute()


class TimerRepository(UserScopedRepository):
    """Repository for timer rows"""

    def __init__(self, client: Client, user_id: str):
        super().__init__(client, "timers", TIMER_COLUMNS, timer_from_row, user_id)

    def find_all(self) -> List[Timer]:
        """All of the user's timers, oldest first (the order they were added)"""
        return self._find_all("created_at", desc=False)

    def update(self, timer_id: str, fields: Dict[str, Any]) -> None:
        """Field-level update of one timer"""
        if not fields:
            return
        (
            self._client.table(self._table_name)
            .update(fields)
            .eq("id", timer_id)
            .eq("user_id", self._user_id)
            .execute()
        )

    def delete(self, timer_id: str) -> None:
        """Delete one timer. Deleting a row that's already gone is not an error."""
        (
            self._client.table(self._table_name)
            .delete()
            .eq("id", timer_id)
            .eq("user_id", self._user_id)
            .execute()
        )


class HistoryRepository(UserScopedRepository):
    """Repository for archived weeks. Rows are only ever inserted and read."""

    def __init__(self, client: Client, user_id: str):
        super().__init__(client, "week_history", HISTORY_COLUMNS, history_from_row, user_id)

    def find_all(self) -> List[WeekHistory]:
        """All archived weeks, most recent first"""
        return self._find_all("week_start", desc=True)


class RepositoryFactory:
    """Factory for creating repository instances"""

    def __init__(self, client: Client, user_id: str):
        self._client = client
        self._user_id = user_id
        self._timers: Optional[TimerRepository] = None
        self._history: Optional[HistoryRepository] = None

    @property
    def timers(self) -> TimerRepository:
        """Get timers repository"""
        if self._timers is None:
            self._timers = TimerRepository(self._client, self._user_id)
        return self._timers

    @property
    def history(self) -> HistoryRepository:
        """Get history repository"""
        if self._history is None:
            self._history = HistoryRepository(self._client, self._user_id)
        return self._history
