"""
Route definitions for the catalog storefronts.

``build_catalog_router`` returns the same set of endpoints for every
catalog kind:

- GET    /                  : list items with filters and pagination
- GET    /trending          : most reviewed, best rated items
- GET    /{kind}-of-the-day : featured item rotating by day of month
- GET    /stats             : public counters
- GET    /{id}              : one item with populated references
- POST   /                  : create (admin)
- PUT    /{id}              : update (admin)
- DELETE /{id}              : soft delete (admin)
- POST   /{id}/reviews      : add the caller's review
- DELETE /{id}/reviews      : remove the caller's review
"""
import logging
import math
import re
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user, get_optional_user, is_admin, require_admin
from catalog import (
    CatalogConfig,
    CatalogFilters,
    build_catalog_query,
    compute_ratings,
    pick_of_the_day,
)
from database import create_document, get_db, parse_object_id, to_public, utcnow
from schemas import Book, BookUpdate, Movie, MovieUpdate, ReviewCreate

logger = logging.getLogger(__name__)

BOOKS = CatalogConfig(
    kind="book",
    label="Book",
    creator_field="author",
    creator_collection="author",
    search_fields=("title", "description", "isbn"),
    create_schema=Book,
    update_schema=BookUpdate,
)

MOVIES = CatalogConfig(
    kind="movie",
    label="Movie",
    creator_field="director",
    creator_collection="director",
    search_fields=("title", "description"),
    create_schema=Movie,
    update_schema=MovieUpdate,
)

CATALOGS = {c.kind: c for c in (BOOKS, MOVIES)}


def _by_id(docs: List[Dict[str, Any]]) -> Dict[Any, Dict[str, Any]]:
    return {d["_id"]: d for d in docs}


def populate(db, config: CatalogConfig, items: List[Dict[str, Any]], detail: bool = False) -> List[Dict[str, Any]]:
    """Replace category/creator ids with small embedded documents."""
    if not items:
        return []
    creator_ids = {i.get(config.creator_field) for i in items if i.get(config.creator_field)}
    category_ids = {i.get("category") for i in items if i.get("category")}
    creator_fields = {"name": 1, "bio": 1, "nationality": 1} if detail else {"name": 1}
    creators = _by_id(list(db[config.creator_collection].find({"_id": {"$in": list(creator_ids)}}, creator_fields)))
    categories = _by_id(list(db["category"].find({"_id": {"$in": list(category_ids)}}, {"name": 1, "slug": 1})))

    users = {}
    if detail:
        user_ids = {r.get("user") for i in items for r in i.get("reviews", [])}
        users = _by_id(list(db["user"].find({"_id": {"$in": list(user_ids)}}, {"name": 1})))

    out = []
    for item in items:
        doc = dict(item)
        creator = creators.get(doc.get(config.creator_field))
        category = categories.get(doc.get("category"))
        if creator:
            doc[config.creator_field] = creator
        if category:
            doc["category"] = category
        if detail:
            reviews = []
            for r in doc.get("reviews", []):
                r = dict(r)
                reviewer = users.get(r.get("user"))
                if reviewer:
                    r["user"] = reviewer
                reviews.append(r)
            doc["reviews"] = reviews
        out.append(to_public(doc))
    return out


def _references(db, config: CatalogConfig, data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert category/creator id strings to ObjectIds, checking they exist."""
    refs = (("category", "category", "Category"), (config.creator_field, config.creator_collection, config.creator_field.title()))
    for field_name, collection, label in refs:
        if field_name not in data:
            continue
        oid = parse_object_id(data[field_name])
        if oid is None or db[collection].find_one({"_id": oid}) is None:
            raise HTTPException(status_code=400, detail=f"{label} not found")
        data[field_name] = oid
    return data


def _reviews_from_payload(reviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out = []
    seen = set()
    for r in reviews:
        user_id = parse_object_id(r.get("user"))
        if user_id is None:
            raise HTTPException(status_code=400, detail="Invalid review user")
        if user_id in seen:
            raise HTTPException(status_code=400, detail="A user can only review an item once")
        seen.add(user_id)
        out.append({
            "user": user_id,
            "name": r.get("name"),
            "rating": r["rating"],
            "comment": r.get("comment", ""),
            "created_at": r.get("created_at") or utcnow(),
        })
    return out


def resolve_category(db, slug: Optional[str]):
    if not slug:
        return None
    doc = db["category"].find_one({"slug": slug})
    return doc["_id"] if doc else None


def resolve_creator(db, config: CatalogConfig, name: Optional[str]):
    if not name:
        return None
    doc = db[config.creator_collection].find_one({"name": {"$regex": re.escape(name), "$options": "i"}})
    return doc["_id"] if doc else None


def build_catalog_router(config: CatalogConfig) -> APIRouter:
    router = APIRouter(prefix=f"/api/{config.kind}s", tags=[f"{config.kind}s"])
    collection = config.kind
    not_found = f"{config.label} not found"

    def load(db, item_id: str) -> Dict[str, Any]:
        oid = parse_object_id(item_id)
        doc = db[collection].find_one({"_id": oid}) if oid else None
        if doc is None:
            raise HTTPException(status_code=404, detail=not_found)
        return doc

    @router.get("")
    def list_items(
        search: Optional[str] = Query(None),
        category: Optional[str] = Query(None, description="Category slug"),
        creator: Optional[str] = Query(None, alias=config.creator_field, description="Creator name"),
        min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
        max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
        min_rating: Optional[float] = Query(None, alias="minRating", ge=0, le=5),
        featured: Optional[bool] = Query(None),
        best_seller: Optional[bool] = Query(None, alias="bestSeller"),
        page: int = Query(1, ge=1),
        limit: int = Query(12, ge=1),
        sort: str = Query("-createdAt"),
        db=Depends(get_db),
    ):
        try:
            filters = CatalogFilters(
                search=search, category=category, creator=creator,
                min_price=min_price, max_price=max_price, min_rating=min_rating,
                featured=featured, best_seller=best_seller,
                page=page, limit=limit, sort=sort,
            )
            query = build_catalog_query(
                filters, config,
                category_id=resolve_category(db, filters.category),
                creator_id=resolve_creator(db, config, filters.creator),
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        cursor = db[collection].find(query.filter, {"reviews": 0}).sort(query.sort).skip(query.skip).limit(query.limit)
        items = populate(db, config, list(cursor))
        total = db[collection].count_documents(query.filter)
        return {
            "success": True,
            "count": len(items),
            "total": total,
            "page": filters.page,
            "pages": math.ceil(total / filters.limit),
            "data": items,
        }

    @router.get("/trending")
    def trending(limit: int = Query(8, ge=1), db=Depends(get_db)):
        cursor = (
            db[collection].find({"is_active": True}, {"reviews": 0})
            .sort([("ratings.count", -1), ("ratings.average", -1)])
            .limit(limit)
        )
        return {"success": True, "data": populate(db, config, list(cursor))}

    @router.get(config.of_the_day_path)
    def item_of_the_day(db=Depends(get_db)):
        featured = list(
            db[collection].find({"is_active": True, "featured": True}, {"reviews": 0})
            .sort("ratings.average", -1)
        )
        selected = pick_of_the_day(featured, date.today())
        if selected is None:
            raise HTTPException(status_code=404, detail=f"No featured {config.kind}s available")
        return {"success": True, "data": populate(db, config, [selected])[0]}

    @router.get("/stats")
    def stats(db=Depends(get_db)):
        return {
            "success": True,
            "data": {
                f"{config.kind}s": db[collection].count_documents({"is_active": True}),
                "users": db["user"].count_documents({"role": "customer", "is_active": True}),
                "orders": db["order"].count_documents({}),
            },
        }

    @router.get("/{item_id}")
    def get_item(item_id: str, user=Depends(get_optional_user), db=Depends(get_db)):
        doc = load(db, item_id)
        if not doc.get("is_active", True) and not is_admin(user):
            raise HTTPException(status_code=404, detail=not_found)
        return {"success": True, "data": populate(db, config, [doc], detail=True)[0]}

    @router.post("", status_code=201)
    def create_item(payload: config.create_schema, admin=Depends(require_admin), db=Depends(get_db)):
        data = _references(db, config, payload.model_dump())
        data.update(is_active=True, reviews=[], ratings={"average": 0.0, "count": 0})
        new_id = create_document(db, collection, data)
        logger.info("%s %s created by %s", config.label, new_id, admin["_id"])
        return {"success": True, "data": to_public(db[collection].find_one({"_id": parse_object_id(new_id)}))}

    @router.put("/{item_id}")
    def update_item(item_id: str, payload: config.update_schema, admin=Depends(require_admin), db=Depends(get_db)):
        doc = load(db, item_id)
        data = {k: v for k, v in payload.model_dump().items() if v is not None}
        data = _references(db, config, data)
        if data.get("reviews") is not None:
            data["reviews"] = _reviews_from_payload(data["reviews"])
            data["ratings"] = compute_ratings(data["reviews"])
        data["updated_at"] = utcnow()
        db[collection].update_one({"_id": doc["_id"]}, {"$set": data})
        return {"success": True, "data": to_public(db[collection].find_one({"_id": doc["_id"]}))}

    @router.delete("/{item_id}")
    def delete_item(item_id: str, admin=Depends(require_admin), db=Depends(get_db)):
        doc = load(db, item_id)
        db[collection].update_one({"_id": doc["_id"]}, {"$set": {"is_active": False, "updated_at": utcnow()}})
        logger.info("%s %s soft-deleted by %s", config.label, item_id, admin["_id"])
        return {"success": True, "message": f"{config.label} deleted successfully"}

    @router.post("/{item_id}/reviews", status_code=201)
    def add_review(item_id: str, payload: ReviewCreate, user=Depends(get_current_user), db=Depends(get_db)):
        doc = load(db, item_id)
        if not doc.get("is_active", True):
            raise HTTPException(status_code=404, detail=not_found)
        reviews = list(doc.get("reviews", []))
        if any(r.get("user") == user["_id"] for r in reviews):
            raise HTTPException(status_code=400, detail=f"{config.label} already reviewed")
        reviews.append({
            "user": user["_id"],
            "name": user.get("name"),
            "rating": payload.rating,
            "comment": payload.comment,
            "created_at": utcnow(),
        })
        ratings = compute_ratings(reviews)
        db[collection].update_one({"_id": doc["_id"]}, {"$set": {"reviews": reviews, "ratings": ratings}})
        return {
            "success": True,
            "message": "Review added",
            "data": to_public(db[collection].find_one({"_id": doc["_id"]})),
        }

    @router.delete("/{item_id}/reviews")
    def remove_review(item_id: str, user=Depends(get_current_user), db=Depends(get_db)):
        doc = load(db, item_id)
        reviews = [r for r in doc.get("reviews", []) if r.get("user") != user["_id"]]
        if len(reviews) == len(doc.get("reviews", [])):
            raise HTTPException(status_code=404, detail="Review not found")
        ratings = compute_ratings(reviews)
        db[collection].update_one({"_id": doc["_id"]}, {"$set": {"reviews": reviews, "ratings": ratings}})
        return {"success": True, "message": "Review removed", "data": to_public(db[collection].find_one({"_id": doc["_id"]}))}

    return router
