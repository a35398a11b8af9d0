"""
Database connection and setup
SQLAlchemy engine behind a small gateway that only runs bound statements
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import Executable
from sqlalchemy.sql.expression import TextClause

from config.settings import settings
from wfn24.errors import DatabaseConnectionError, QueryError
from wfn24.models import Base

logger = logging.getLogger("db")

Statement = Union[str, Executable]


@dataclass
class RowSet:
    """Result of one statement: rows for queries, counts and ids for writes."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0
    inserted_id: Optional[int] = None

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        """First column of the first row, or None."""
        row = self.first()
        if not row:
            return None
        return next(iter(row.values()))


class Executor(Protocol):
    """Anything that can run a bound statement (Database or an open Transaction)."""

    def execute(
        self, statement: Statement, parameters: Optional[Mapping[str, Any]] = None
    ) -> RowSet:
        ...

    def transaction(self):
        ...


def _translate_error(exc: SQLAlchemyError) -> Exception:
    """Map SQLAlchemy errors onto QueryError / DatabaseConnectionError."""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return DatabaseConnectionError(f"Database connection lost: {exc.orig}")
    if isinstance(exc, IntegrityError):
        return QueryError(f"Constraint violation: {exc.orig}", is_integrity_error=True)
    detail = exc.orig if isinstance(exc, DBAPIError) else exc
    return QueryError(f"Query failed: {detail}")


def _is_raw_insert(statement: TextClause) -> bool:
    return statement.text.lstrip().upper().startswith("INSERT")


def _run(
    conn: Connection, statement: Statement, parameters: Optional[Mapping[str, Any]]
) -> RowSet:
    """Execute on an open connection and materialize the result."""
    if isinstance(statement, str):
        statement = text(statement)

    if parameters:
        result = conn.execute(statement, dict(parameters))
    else:
        result = conn.execute(statement)

    if result.returns_rows:
        rows = [dict(row) for row in result.mappings()]
        return RowSet(rows=rows, rowcount=len(rows))

    inserted_id = None
    if result.is_insert:
        primary_key = result.inserted_primary_key
        inserted_id = primary_key[0] if primary_key else None
    elif isinstance(statement, TextClause) and _is_raw_insert(statement):
        inserted_id = result.lastrowid or None

    return RowSet(rowcount=result.rowcount, inserted_id=inserted_id)


class Transaction:
    """
    Gateway bound to one connection and one open transaction.

    Obtained from Database.transaction(); commits when the block exits
    normally and rolls back when it raises.
    """

    def __init__(self, conn: Connection):
        self._conn = conn

    def execute(
        self, statement: Statement, parameters: Optional[Mapping[str, Any]] = None
    ) -> RowSet:
        try:
            return _run(self._conn, statement, parameters)
        except SQLAlchemyError as e:
            raise _translate_error(e) from e

    @contextmanager
    def transaction(self) -> Iterator["Transaction"]:
        # Already inside one; nested blocks share it
        yield self


class Database:
    """
    Persistence gateway.

    Holds one engine for the process lifetime. Every execute() runs in its own
    transaction; use transaction() to group statements.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or settings.resolved_database_url()
        self.echo = settings.db_echo if echo is None else echo
        self._engine: Optional[Engine] = None
        self._lock = threading.Lock()

    @property
    def safe_url(self) -> str:
        """URL with the password masked, for logs."""
        return make_url(self.url).render_as_string(hide_password=True)

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def _engine_options(self) -> Dict[str, Any]:
        url = make_url(self.url)
        options: Dict[str, Any] = {"echo": self.echo}
        if url.get_backend_name() == "sqlite":
            options["connect_args"] = {"check_same_thread": False}  # Needed for SQLite
            if url.database in (None, "", ":memory:"):
                # In-memory SQLite lives inside one connection
                options["poolclass"] = StaticPool
        else:
            options["pool_pre_ping"] = True
        return options

    def initialize(self) -> Engine:
        """
        Open the engine and check connectivity.

        Safe to call multiple times - returns the existing engine.

        Raises:
            DatabaseConnectionError: database unreachable or login rejected
        """
        if self._engine is not None:
            return self._engine

        with self._lock:
            if self._engine is not None:
                return self._engine

            engine = create_engine(self.url, **self._engine_options())
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except SQLAlchemyError as e:
                engine.dispose()
                logger.error(f"Database connection failed ({self.safe_url}): {e}")
                raise DatabaseConnectionError(f"Could not connect to database: {e}") from e

            self._engine = engine
            logger.info(f"Database initialized at: {self.safe_url}")
            return engine

    def _connect(self) -> Connection:
        engine = self.initialize()
        try:
            return engine.connect()
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Could not connect to database: {e}") from e

    def execute(
        self, statement: Statement, parameters: Optional[Mapping[str, Any]] = None
    ) -> RowSet:
        """
        Run one statement in its own transaction.

        Args:
            statement: SQL template with :name placeholders, or a SQLAlchemy Core statement
            parameters: Values bound to the placeholders

        Returns:
            RowSet with rows (queries) or rowcount / inserted_id (writes)

        Raises:
            QueryError: syntax error or constraint violation
            DatabaseConnectionError: transport failure
        """
        conn = self._connect()
        try:
            with conn, conn.begin():
                return _run(conn, statement, parameters)
        except SQLAlchemyError as e:
            raise _translate_error(e) from e

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Group several statements into one transaction.

        Usage:
            with db.transaction() as tx:
                league_id = LeagueModel(tx).create({...})
                TeamModel(tx).create({"league_id": league_id, ...})
        """
        conn = self._connect()
        with conn:
            try:
                with conn.begin():
                    yield Transaction(conn)
            except SQLAlchemyError as e:
                raise _translate_error(e) from e

    def create_all(self) -> None:
        """
        Create all tables.
        Safe to call multiple times (won't recreate existing tables)
        """
        Base.metadata.create_all(bind=self.initialize())
        logger.info(f"Schema ready at: {self.safe_url}")

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.initialize())

    def dispose(self) -> None:
        """Close pooled connections; the next execute() reconnects."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None


# Process-wide gateway for the web layer and scripts
_database: Optional[Database] = None


def get_database() -> Database:
    """Get or create the process database gateway (opened lazily)."""
    global _database
    if _database is None:
        _database = Database()
    return _database


def init_db() -> Database:
    """
    Initialize database - create all tables
    Safe to call multiple times (won't recreate existing tables)
    """
    database = get_database()
    database.create_all()
    return database
