"""
Generic record model.

One RecordModel subclass per table, each declaring a RecordSchema that lists
which columns callers may write, which must never leave the model and which
are matched by free-text search. Records are plain dicts.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from sqlalchemy import Table, func, or_, select
from sqlalchemy.sql import Select

from config.settings import settings
from wfn24.db import Executor
from wfn24.errors import InvalidFieldError
from wfn24.utils.helpers import slugify

logger = logging.getLogger("records")

Record = Dict[str, Any]


@dataclass(frozen=True)
class RecordSchema:
    """
    Field declarations for one table.

    Every name must be a column of the table; an unknown name raises
    InvalidFieldError as soon as the schema is declared.
    """
    table: Table
    writable_fields: Tuple[str, ...]
    sensitive_fields: FrozenSet[str] = frozenset()
    searchable_fields: Tuple[str, ...] = ()
    primary_key: str = "id"

    def __post_init__(self):
        object.__setattr__(self, "writable_fields", tuple(self.writable_fields))
        object.__setattr__(self, "sensitive_fields", frozenset(self.sensitive_fields))
        object.__setattr__(self, "searchable_fields", tuple(self.searchable_fields))

        declared = (
            (self.primary_key,)
            + self.writable_fields
            + tuple(sorted(self.sensitive_fields))
            + self.searchable_fields
        )
        for name in declared:
            if name not in self.table.c:
                raise InvalidFieldError(self.table.name, name)

    @property
    def collection(self) -> str:
        return self.table.name

    def column(self, name: str):
        """Column by name; InvalidFieldError if the table has no such column."""
        if name not in self.table.c:
            raise InvalidFieldError(self.collection, name)
        return self.table.c[name]


@dataclass
class PageResult:
    """One page of records plus the numbers needed to render pagination."""
    items: List[Record] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    per_page: int = 20

    @property
    def last_page(self) -> int:
        return math.ceil(self.total_count / self.per_page)

    @property
    def from_index(self) -> int:
        """1-based position of the first item on this page (0 when empty)."""
        if not self.items:
            return 0
        return (self.page - 1) * self.per_page + 1

    @property
    def to_index(self) -> int:
        if not self.items:
            return 0
        return self.from_index + len(self.items) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.items,
            "total": self.total_count,
            "per_page": self.per_page,
            "current_page": self.page,
            "last_page": self.last_page,
            "from": self.from_index,
            "to": self.to_index,
        }


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class RecordModel:
    """
    CRUD, search and pagination over the table named by `schema`.

    Subclasses set `schema` and may override default_order(),
    before_create() and before_update().
    """

    schema: RecordSchema

    def __init__(self, db: Executor):
        self.db = db

    # ===== SCHEMA HELPERS =====

    @property
    def table(self) -> Table:
        return self.schema.table

    @property
    def collection(self) -> str:
        return self.schema.collection

    @property
    def pk(self):
        return self.table.c[self.schema.primary_key]

    def default_order(self) -> List[Any]:
        """ORDER BY used by search() and paginate()."""
        return [self.pk.desc()]

    def _strip(self, row: Optional[Mapping[str, Any]]) -> Optional[Record]:
        if row is None:
            return None
        hidden = self.schema.sensitive_fields
        return {key: value for key, value in row.items() if key not in hidden}

    def _strip_all(self, rows: List[Mapping[str, Any]]) -> List[Record]:
        return [self._strip(row) for row in rows]

    def _writable(self, fields: Mapping[str, Any]) -> Record:
        allowed = self.schema.writable_fields
        return {key: value for key, value in fields.items() if key in allowed}

    def _search_condition(self, query: Optional[str]):
        query = (query or "").strip()
        if not query or not self.schema.searchable_fields:
            return None
        pattern = _like_pattern(query)
        return or_(
            *[self.table.c[name].ilike(pattern, escape="\\") for name in self.schema.searchable_fields]
        )

    def _fetch(self, stmt) -> List[Record]:
        return self._strip_all(self.db.execute(stmt).rows)

    def _fetch_one(self, stmt) -> Optional[Record]:
        return self._strip(self.db.execute(stmt).first())

    # ===== HOOKS =====

    def before_create(self, fields: Record) -> Record:
        """Derive values before insert. Runs before writable filtering."""
        return fields

    def before_update(self, record_id: Any, fields: Record) -> Record:
        """Derive values before update. Runs before writable filtering."""
        return fields

    # ===== READS =====

    def find(self, record_id: Any) -> Optional[Record]:
        return self._fetch_one(select(self.table).where(self.pk == record_id))

    def find_by(self, field_name: str, value: Any) -> Optional[Record]:
        """
        First record whose `field_name` equals `value`.

        Raises:
            InvalidFieldError: field_name is not a column (raised before querying)
        """
        column = self.schema.column(field_name)
        return self._fetch_one(select(self.table).where(column == value).order_by(self.pk).limit(1))

    def where(self, field_name: str, value: Any) -> List[Record]:
        column = self.schema.column(field_name)
        return self._fetch(select(self.table).where(column == value).order_by(self.pk))

    def all(self) -> List[Record]:
        return self._fetch(select(self.table).order_by(self.pk))

    def count(self, query: str = "") -> int:
        stmt = select(func.count()).select_from(self.table)
        condition = self._search_condition(query)
        if condition is not None:
            stmt = stmt.where(condition)
        return int(self.db.execute(stmt).scalar() or 0)

    # ===== WRITES =====

    def create(self, fields: Mapping[str, Any]) -> int:
        """
        Insert a record from the writable subset of `fields`.

        Returns:
            The new primary key
        """
        values = self._writable(self.before_create(dict(fields)))
        result = self.db.execute(self.table.insert().values(**values))
        logger.debug(f"Created {self.collection} #{result.inserted_id}")
        return result.inserted_id

    def update(self, record_id: Any, fields: Mapping[str, Any]) -> bool:
        """
        Partial update with the writable subset of `fields`.

        Returns:
            False when no row matched or nothing writable was supplied
        """
        values = self._writable(self.before_update(record_id, dict(fields)))
        if not values:
            return False
        result = self.db.execute(
            self.table.update().where(self.pk == record_id).values(**values)
        )
        return result.rowcount > 0

    def delete(self, record_id: Any) -> bool:
        result = self.db.execute(self.table.delete().where(self.pk == record_id))
        if result.rowcount:
            logger.debug(f"Deleted {self.collection} #{record_id}")
        return result.rowcount > 0

    # ===== PAGINATION =====

    def _page_bounds(self, page: Any, per_page: Optional[int]) -> Tuple[int, int]:
        try:
            page = int(page)
        except (TypeError, ValueError):
            page = 1
        page = max(page, 1)

        if per_page is None:
            per_page = settings.default_per_page
        per_page = int(per_page)
        if per_page <= 0:
            raise ValueError(f"per_page must be positive, got {per_page}")
        return page, min(per_page, settings.max_per_page)

    def _paginate_select(
        self,
        stmt: Select,
        page: Any = 1,
        per_page: Optional[int] = None,
        order_by: Optional[List[Any]] = None,
    ) -> PageResult:
        """Count and slice an arbitrary select over this table."""
        page, per_page = self._page_bounds(page, per_page)

        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = int(self.db.execute(count_stmt).scalar() or 0)

        order = order_by if order_by is not None else self.default_order()
        rows = self.db.execute(
            stmt.order_by(*order).limit(per_page).offset((page - 1) * per_page)
        ).rows

        return PageResult(
            items=self._strip_all(rows),
            total_count=total,
            page=page,
            per_page=per_page,
        )

    def paginate(self, page: Any = 1, per_page: Optional[int] = None) -> PageResult:
        return self._paginate_select(select(self.table), page, per_page)

    def search(self, query: str = "", page: Any = 1, per_page: Optional[int] = None) -> PageResult:
        """
        Case-insensitive substring match across searchable_fields (OR-combined).
        An empty query returns an unfiltered page.
        """
        stmt = select(self.table)
        condition = self._search_condition(query)
        if condition is not None:
            stmt = stmt.where(condition)
        return self._paginate_select(stmt, page, per_page)

    # ===== SLUGS =====

    def unique_slug(self, text: str, field_name: str = "slug", exclude_id: Any = None) -> str:
        """
        Slug for `text` that no other record uses.
        Collisions get a numeric suffix: "derby-day", "derby-day-1", "derby-day-2"...
        """
        column = self.schema.column(field_name)
        base = slugify(text) or "untitled"
        candidate = base
        suffix = 1
        while True:
            stmt = select(self.pk).where(column == candidate)
            if exclude_id is not None:
                stmt = stmt.where(self.pk != exclude_id)
            if not self.db.execute(stmt.limit(1)).rows:
                return candidate
            candidate = f"{base}-{suffix}"
            suffix += 1
