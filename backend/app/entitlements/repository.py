"""PostgreSQL access for subscription rows, plan rows, and resource counts."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .models import PlanRecord, ResourceKind, SubscriptionRecord

try:  # pragma: no cover - resolve connection helper when imported from FastAPI app
    from backend.app_context import get_conn
except ModuleNotFoundError as exc:  # pragma: no cover
    if exc.name != "backend":
        raise
    from ...app_context import get_conn  # type: ignore[no-redef]


# Table and liveness predicate per resource kind. Identifiers are fixed here,
# never taken from callers.
_RESOURCE_TABLES: Dict[ResourceKind, Tuple[str, str]] = {
    ResourceKind.USERS: ("users", "is_active = TRUE"),
    ResourceKind.INGREDIENTS: ("ingredients", "is_active = TRUE"),
    ResourceKind.BATCHES: ("batches", "TRUE"),
    ResourceKind.STORAGE_LOCATIONS: ("storage_locations", "is_active = TRUE"),
    ResourceKind.RECIPES: ("recipes", "is_active = TRUE"),
    ResourceKind.PRODUCTS: ("products", "TRUE"),
}


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Yield ``conn`` as-is, or open a connection that is closed afterwards."""

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_subscription(row: dict) -> SubscriptionRecord:
    return SubscriptionRecord(
        tenant_id=str(row["tenant_id"]),
        status=row["status"],
        current_period_end=row.get("current_period_end"),
        plan_id=str(row["plan_id"]) if row.get("plan_id") is not None else None,
    )


def _row_to_plan(row: dict) -> PlanRecord:
    return PlanRecord(
        plan_id=str(row["id"]),
        name=row.get("name"),
        max_users=row.get("max_users"),
        max_ingredients=row.get("max_ingredients"),
        max_batches=row.get("max_batches"),
        max_storage_locations=row.get("max_storage_locations"),
        max_recipes=row.get("max_recipes"),
        max_products=row.get("max_products"),
        features=row.get("features"),
    )


class PostgresSubscriptionStore:
    """Reads subscription and plan rows; never writes them."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._conn) as (connection, _managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    def fetch_subscription(self, tenant_id: str) -> Optional[SubscriptionRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT tenant_id, status, current_period_end, plan_id
                FROM subscriptions
                WHERE tenant_id = %s
                """,
                (tenant_id,),
            )
            row = cursor.fetchone()
        return _row_to_subscription(row) if row else None

    def fetch_plan(self, plan_id: str) -> Optional[PlanRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT
                    id,
                    name,
                    max_users,
                    max_ingredients,
                    max_batches,
                    max_storage_locations,
                    max_recipes,
                    max_products,
                    features
                FROM subscription_plans
                WHERE id = %s
                """,
                (plan_id,),
            )
            row = cursor.fetchone()
        return _row_to_plan(row) if row else None


class PostgresResourceCounter:
    """Counts tenant resources straight from their tables."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    def count_resources(self, tenant_id: str, kind: ResourceKind, *, active_only: bool = True) -> int:
        table, live_clause = _RESOURCE_TABLES[kind]
        query = f"SELECT COUNT(*) AS total FROM {table} WHERE tenant_id = %s"
        if active_only:
            query += f" AND {live_clause}"
        with managed_connection(self._conn) as (connection, _managed):
            with connection.cursor() as cursor:
                cursor.execute(query, (tenant_id,))
                row = cursor.fetchone()
        return int(row[0]) if row else 0


__all__ = ["PostgresResourceCounter", "PostgresSubscriptionStore", "managed_connection"]
