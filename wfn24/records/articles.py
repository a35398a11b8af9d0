"""News articles: the CMS content."""
from typing import Any, List, Optional

from sqlalchemy import select

from wfn24.models import ARTICLE_STATUSES, Category, NewsArticle, User
from wfn24.records.base import PageResult, Record, RecordModel, RecordSchema
from wfn24.utils.helpers import utcnow

articles = NewsArticle.__table__
categories = Category.__table__
users = User.__table__


class ArticleModel(RecordModel):
    schema = RecordSchema(
        table=articles,
        writable_fields=(
            "title", "slug", "excerpt", "content", "featured_image",
            "category_id", "author_id", "author_name", "status", "published_at",
            "meta_title", "meta_description", "tags", "is_featured", "view_count",
        ),
        searchable_fields=("title", "content", "excerpt"),
    )

    def _listing(self):
        """Articles joined with category and author display names."""
        return (
            select(
                articles,
                categories.c.name.label("category_name"),
                categories.c.slug.label("category_slug"),
                users.c.first_name.label("author_first_name"),
                users.c.last_name.label("author_last_name"),
            )
            .select_from(
                articles
                .outerjoin(categories, articles.c.category_id == categories.c.id)
                .outerjoin(users, articles.c.author_id == users.c.id)
            )
        )

    def _newest_first(self) -> List[Any]:
        return [articles.c.published_at.desc(), articles.c.id.desc()]

    def _check_status(self, fields: Record) -> None:
        status = fields.get("status")
        if status is not None and status not in ARTICLE_STATUSES:
            raise ValueError(f"Invalid article status '{status}'")

    def before_create(self, fields: Record) -> Record:
        self._check_status(fields)
        fields["slug"] = self.unique_slug(fields.get("slug") or fields.get("title") or "")
        fields.setdefault("status", "draft")
        if fields["status"] == "published" and not fields.get("published_at"):
            fields["published_at"] = utcnow()
        return fields

    def before_update(self, record_id: Any, fields: Record) -> Record:
        self._check_status(fields)
        if "slug" in fields:
            slug = fields.pop("slug")
            if slug:
                fields["slug"] = self.unique_slug(slug, exclude_id=record_id)
        if fields.get("status") == "published" and not fields.get("published_at"):
            current = self.find(record_id)
            if current and not current.get("published_at"):
                fields["published_at"] = utcnow()
        return fields

    # ===== PUBLIC QUERIES =====

    def published(self, page: Any = 1, per_page: Optional[int] = None) -> PageResult:
        stmt = self._listing().where(articles.c.status == "published")
        return self._paginate_select(stmt, page, per_page, order_by=self._newest_first())

    def featured(self, limit: int = 5) -> List[Record]:
        stmt = (
            self._listing()
            .where(articles.c.status == "published", articles.c.is_featured.is_(True))
            .order_by(*self._newest_first())
            .limit(limit)
        )
        return self._fetch(stmt)

    def by_category(self, category_id: int, page: Any = 1, per_page: Optional[int] = None) -> PageResult:
        stmt = self._listing().where(
            articles.c.category_id == category_id,
            articles.c.status == "published",
        )
        return self._paginate_select(stmt, page, per_page, order_by=self._newest_first())

    def get_by_slug(self, slug: str) -> Optional[Record]:
        return self._fetch_one(self._listing().where(articles.c.slug == slug))

    def search_published(self, query: str, page: Any = 1, per_page: Optional[int] = None) -> PageResult:
        stmt = self._listing().where(articles.c.status == "published")
        condition = self._search_condition(query)
        if condition is not None:
            stmt = stmt.where(condition)
        return self._paginate_select(stmt, page, per_page, order_by=self._newest_first())

    def recent(self, limit: int = 5) -> List[Record]:
        """Latest articles in any status (admin dashboard)."""
        stmt = self._listing().order_by(articles.c.created_at.desc(), articles.c.id.desc()).limit(limit)
        return self._fetch(stmt)

    def increment_view_count(self, article_id: int) -> bool:
        result = self.db.execute(
            articles.update()
            .where(articles.c.id == article_id)
            .values(view_count=articles.c.view_count + 1)
        )
        return result.rowcount > 0
