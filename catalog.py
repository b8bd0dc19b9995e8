"""
Catalog query building and rating helpers.

``build_catalog_query`` compiles a ``CatalogFilters`` into a MongoDB
filter, sort and skip/limit pair without touching the database, so the
listing routes only have to resolve category/creator names and execute
the result.
"""
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from pydantic import BaseModel, Field, model_validator
from pymongo import ASCENDING, DESCENDING

DEFAULT_PAGE_SIZE = 12
DEFAULT_SORT = "-createdAt"

# Public sort keys -> document fields
SORT_FIELDS = {
    "createdAt": "created_at",
    "price": "price",
    "title": "title",
    "rating": "ratings.average",
    "reviews": "ratings.count",
    "discount": "discount",
    "stock": "stock",
}

# Condition that matches no document
NO_MATCH = {"$in": []}


@dataclass(frozen=True)
class CatalogConfig:
    """Describes one storefront collection (books or movies)."""

    kind: str
    label: str
    creator_field: str
    creator_collection: str
    search_fields: Tuple[str, ...]
    create_schema: Any = None
    update_schema: Any = None

    @property
    def of_the_day_path(self) -> str:
        return f"/{self.kind}-of-the-day"


class CatalogFilters(BaseModel):
    search: Optional[str] = None
    category: Optional[str] = None
    creator: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_rating: Optional[float] = Field(None, ge=0, le=5)
    featured: Optional[bool] = None
    best_seller: Optional[bool] = None
    page: int = Field(1, ge=1)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1)
    sort: str = DEFAULT_SORT

    @model_validator(mode="after")
    def _check_price_range(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("minPrice cannot exceed maxPrice")
        return self


@dataclass
class CatalogQuery:
    filter: Dict[str, Any]
    sort: List[Tuple[str, int]] = field(default_factory=list)
    skip: int = 0
    limit: int = DEFAULT_PAGE_SIZE


def parse_sort(sort: Optional[str]) -> List[Tuple[str, int]]:
    """Parse ``"-price,title"`` into pymongo sort pairs.

    Raises ValueError on unknown keys.
    """
    keys = [k.strip() for k in (sort or DEFAULT_SORT).split(",") if k.strip()]
    if not keys:
        keys = [DEFAULT_SORT]
    pairs = []
    for key in keys:
        direction = DESCENDING if key.startswith("-") else ASCENDING
        name = key.lstrip("-+")
        if name not in SORT_FIELDS:
            raise ValueError(f"Unknown sort key: {name}")
        pairs.append((SORT_FIELDS[name], direction))
    return pairs


def _contains(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


def build_catalog_query(
    filters: CatalogFilters,
    config: CatalogConfig,
    category_id: Optional[ObjectId] = None,
    creator_id: Optional[ObjectId] = None,
) -> CatalogQuery:
    """Compile listing filters into a query on ``config``'s collection.

    ``category_id`` and ``creator_id`` are the resolved references for
    ``filters.category`` and ``filters.creator``. When a name was given
    but could not be resolved the query matches nothing.
    """
    query: Dict[str, Any] = {"is_active": True}

    search = (filters.search or "").strip()
    if search:
        query["$or"] = [{f: _contains(search)} for f in config.search_fields]

    if filters.category:
        query["category"] = category_id if category_id is not None else NO_MATCH

    if filters.creator:
        query[config.creator_field] = creator_id if creator_id is not None else NO_MATCH

    price: Dict[str, float] = {}
    if filters.min_price is not None:
        price["$gte"] = filters.min_price
    if filters.max_price is not None:
        price["$lte"] = filters.max_price
    if price:
        query["price"] = price

    if filters.min_rating is not None:
        query["ratings.average"] = {"$gte": filters.min_rating}

    if filters.featured:
        query["featured"] = True
    if filters.best_seller:
        query["best_seller"] = True

    return CatalogQuery(
        filter=query,
        sort=parse_sort(filters.sort),
        skip=(filters.page - 1) * filters.limit,
        limit=filters.limit,
    )


def compute_ratings(reviews: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    count = len(reviews)
    if count == 0:
        return {"average": 0.0, "count": 0}
    total = sum(Decimal(str(r["rating"])) for r in reviews)
    # halves round up: 2.25 -> 2.3
    average = (total / count).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return {"average": float(average), "count": count}


def pick_of_the_day(items: Sequence[Dict[str, Any]], today: date) -> Optional[Dict[str, Any]]:
    """Pick from featured items already sorted by rating, rotating daily."""
    if not items:
        return None
    return items[today.day % len(items)]


def discounted_price(item: Dict[str, Any]) -> float:
    price = float(item.get("price", 0))
    discount = float(item.get("discount") or 0)
    return round(price * (1 - discount / 100), 2)
