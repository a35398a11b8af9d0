"""News categories."""
from typing import Any, List, Optional

from sqlalchemy import func, select

from wfn24.models import Category, NewsArticle
from wfn24.records.base import Record, RecordModel, RecordSchema

categories = Category.__table__
articles = NewsArticle.__table__


class CategoryModel(RecordModel):
    schema = RecordSchema(
        table=categories,
        writable_fields=("name", "slug", "description", "color", "icon", "is_active", "sort_order"),
        searchable_fields=("name", "description"),
    )

    def default_order(self) -> List[Any]:
        return [categories.c.sort_order.asc(), categories.c.name.asc(), categories.c.id.asc()]

    def before_create(self, fields: Record) -> Record:
        fields["slug"] = self.unique_slug(fields.get("slug") or fields.get("name") or "")
        return fields

    def before_update(self, record_id: Any, fields: Record) -> Record:
        if "slug" in fields:
            slug = fields.pop("slug")
            if slug:
                fields["slug"] = self.unique_slug(slug, exclude_id=record_id)
        return fields

    def _with_counts(self):
        article_count = (
            select(func.count(articles.c.id))
            .where(articles.c.category_id == categories.c.id, articles.c.status == "published")
            .scalar_subquery()
        )
        return select(categories, article_count.label("article_count"))

    def active(self) -> List[Record]:
        stmt = self._with_counts().where(categories.c.is_active.is_(True)).order_by(*self.default_order())
        return self._fetch(stmt)

    def get_by_slug(self, slug: str) -> Optional[Record]:
        return self.find_by("slug", slug)

    def with_article_count(self, category_id: int) -> Optional[Record]:
        return self._fetch_one(self._with_counts().where(categories.c.id == category_id))
