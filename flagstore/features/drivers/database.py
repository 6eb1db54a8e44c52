"""
Database feature storage.

Stores one row per (feature, scope key) in a SQLAlchemy table with a unique
constraint on the pair. Writes are upserts and bulk reads are a single SELECT.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import MetaData, Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from flagstore.db.models import StoredFeature
from flagstore.errors import StorageError
from flagstore.features.drivers.base import MISSING, Pair

logger = logging.getLogger(__name__)


def _dialect_insert(dialect_name: str):
    """Return the dialect specific insert() supporting ON CONFLICT, if any."""
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert

        return pg_insert
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert

        return sqlite_insert
    return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DatabaseDriver:
    """
    Storage driver backed by a relational table.

    Attributes:
        session_factory: sessionmaker bound to the target database
        table: The SQLAlchemy Table holding feature values
    """

    def __init__(self, session_factory: sessionmaker, table: str = "features"):
        """
        Initialize the driver.

        Args:
            session_factory: Session factory for the target database.
            table: Table name. Names other than "features" get a copy of the
                default schema under that name.
        """
        self.session_factory = session_factory
        default_table = StoredFeature.__table__
        if table == default_table.name:
            self.table: Table = default_table
        else:
            self.table = default_table.to_metadata(MetaData(), name=table)

    def create_table(self) -> None:
        """Create the backing table if it does not exist."""
        with self._transaction("create_table") as session:
            self.table.create(bind=session.connection(), checkfirst=True)

    def get(self, feature: str, scope_key: str) -> Any:
        with self._transaction("get") as session:
            row = session.execute(
                select(self.table.c.value).where(
                    self.table.c.name == feature,
                    self.table.c.scope == scope_key,
                )
            ).first()
        return MISSING if row is None else row.value

    def get_all(self, pairs: Iterable[Pair]) -> Dict[Pair, Any]:
        requested = list(dict.fromkeys(pairs))
        if not requested:
            return {}

        with self._transaction("get_all") as session:
            stored = self._select_pairs(session, requested)

        return {pair: stored.get(pair, MISSING) for pair in requested}

    def set(self, feature: str, scope_key: str, value: Any) -> None:
        with self._transaction("set") as session:
            dialect_insert = _dialect_insert(session.get_bind().dialect.name)
            now = _now()

            if dialect_insert is not None:
                statement = dialect_insert(self.table).values(
                    name=feature, scope=scope_key, value=value, created_at=now, updated_at=now
                )
                session.execute(
                    statement.on_conflict_do_update(
                        index_elements=["name", "scope"],
                        set_={"value": statement.excluded["value"], "updated_at": now},
                    )
                )
                return

            updated = session.execute(
                update(self.table)
                .where(self.table.c.name == feature, self.table.c.scope == scope_key)
                .values(value=value, updated_at=now)
            )
            if updated.rowcount == 0:
                session.execute(
                    insert(self.table).values(
                        name=feature, scope=scope_key, value=value, created_at=now, updated_at=now
                    )
                )

    def insert_many(self, values: Dict[Pair, Any]) -> Dict[Pair, Any]:
        if not values:
            return {}

        now = _now()
        rows = [
            {"name": feature, "scope": scope_key, "value": value, "created_at": now, "updated_at": now}
            for (feature, scope_key), value in values.items()
        ]

        with self._transaction("insert_many") as session:
            dialect_insert = _dialect_insert(session.get_bind().dialect.name)

            if dialect_insert is not None:
                session.execute(
                    dialect_insert(self.table).on_conflict_do_nothing(index_elements=["name", "scope"]),
                    rows,
                )
            else:
                existing = self._select_pairs(session, list(values))
                missing_rows = [row for row in rows if (row["name"], row["scope"]) not in existing]
                if missing_rows:
                    session.execute(insert(self.table), missing_rows)

            stored = self._select_pairs(session, list(values))

        return {pair: stored.get(pair, value) for pair, value in values.items()}

    def set_for_all_scopes(self, feature: str, value: Any) -> None:
        with self._transaction("set_for_all_scopes") as session:
            session.execute(
                update(self.table)
                .where(self.table.c.name == feature)
                .values(value=value, updated_at=_now())
            )

    def delete(self, feature: str, scope_key: str) -> None:
        with self._transaction("delete") as session:
            session.execute(
                delete(self.table).where(
                    self.table.c.name == feature,
                    self.table.c.scope == scope_key,
                )
            )

    def purge(self, features: Optional[List[str]] = None) -> None:
        with self._transaction("purge") as session:
            statement = delete(self.table)
            if features is not None:
                statement = statement.where(self.table.c.name.in_(features))
            session.execute(statement)
        logger.debug(f"Purged stored features: {features or 'all'}")

    def defined(self) -> List[str]:
        with self._transaction("defined") as session:
            rows = session.execute(
                select(self.table.c.name).distinct().order_by(self.table.c.name)
            ).all()
        return [row.name for row in rows]

    def _select_pairs(self, session: Session, pairs: List[Pair]) -> Dict[Pair, Any]:
        """
        Fetch stored values for the given pairs in one query.

        Filters on the feature names and scope keys separately and discards the
        cross-product rows that were not requested.
        """
        features = {feature for feature, _ in pairs}
        scope_keys = {scope_key for _, scope_key in pairs}
        wanted = set(pairs)

        rows = session.execute(
            select(self.table.c.name, self.table.c.scope, self.table.c.value).where(
                self.table.c.name.in_(features),
                self.table.c.scope.in_(scope_keys),
            )
        ).all()

        return {
            (row.name, row.scope): row.value
            for row in rows
            if (row.name, row.scope) in wanted
        }

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        try:
            with self.session_factory() as session:
                with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.exception(f"Database error during feature {operation}")
            raise StorageError(operation, type(e).__name__, details={"table": self.table.name}) from e
