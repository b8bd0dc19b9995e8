"""Categories, authors and directors: public reads, admin writes."""
import logging
import re
from typing import Any, Dict, Tuple, Type

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from auth import require_admin
from database import create_document, get_db, parse_object_id, to_public, utcnow
from schemas import Category, CategoryUpdate, Person, PersonUpdate

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "category"


def build_reference_router(
    collection: str,
    label: str,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    referenced_by: Tuple[Tuple[str, str], ...],
    slugged: bool = False,
) -> APIRouter:
    """Build CRUD routes for a reference collection.

    ``referenced_by`` lists ``(catalog collection, field)`` pairs that may
    point at a document; such documents cannot be deleted.
    """
    plural = "categories" if collection == "category" else f"{collection}s"
    router = APIRouter(prefix=f"/api/{plural}", tags=[plural])
    not_found = f"{label} not found"

    def load(db, ref: str) -> Dict[str, Any]:
        oid = parse_object_id(ref)
        doc = db[collection].find_one({"_id": oid}) if oid else None
        if doc is None and slugged:
            doc = db[collection].find_one({"slug": ref})
        if doc is None:
            raise HTTPException(status_code=404, detail=not_found)
        return doc

    def check_slug(db, data: Dict[str, Any], exclude=None) -> None:
        if not slugged or "name" not in data:
            return
        data["slug"] = slugify(data["name"])
        clash = db[collection].find_one({"slug": data["slug"]})
        if clash and clash["_id"] != exclude:
            raise HTTPException(status_code=400, detail=f"{label} already exists")

    @router.get("")
    def list_refs(db=Depends(get_db)):
        docs = list(db[collection].find().sort("name", 1))
        return {"success": True, "count": len(docs), "data": [to_public(d) for d in docs]}

    @router.get("/{ref}")
    def get_ref(ref: str, db=Depends(get_db)):
        return {"success": True, "data": to_public(load(db, ref))}

    @router.post("", status_code=201)
    def create_ref(payload: create_schema, admin=Depends(require_admin), db=Depends(get_db)):
        data = payload.model_dump()
        check_slug(db, data)
        new_id = create_document(db, collection, data)
        logger.info("%s %s created by %s", label, new_id, admin["_id"])
        return {"success": True, "data": to_public(db[collection].find_one({"_id": parse_object_id(new_id)}))}

    @router.put("/{ref}")
    def update_ref(ref: str, payload: update_schema, admin=Depends(require_admin), db=Depends(get_db)):
        doc = load(db, ref)
        data = {k: v for k, v in payload.model_dump().items() if v is not None}
        check_slug(db, data, exclude=doc["_id"])
        data["updated_at"] = utcnow()
        db[collection].update_one({"_id": doc["_id"]}, {"$set": data})
        return {"success": True, "data": to_public(db[collection].find_one({"_id": doc["_id"]}))}

    @router.delete("/{ref}")
    def delete_ref(ref: str, admin=Depends(require_admin), db=Depends(get_db)):
        doc = load(db, ref)
        for items, field in referenced_by:
            if db[items].count_documents({field: doc["_id"]}) > 0:
                raise HTTPException(status_code=400, detail=f"{label} is still used by {items}s")
        db[collection].delete_one({"_id": doc["_id"]})
        logger.info("%s %s deleted by %s", label, doc["_id"], admin["_id"])
        return {"success": True, "message": f"{label} deleted successfully"}

    return router


categories_router = build_reference_router(
    "category", "Category", Category, CategoryUpdate,
    referenced_by=(("book", "category"), ("movie", "category")),
    slugged=True,
)
authors_router = build_reference_router(
    "author", "Author", Person, PersonUpdate,
    referenced_by=(("book", "author"),),
)
directors_router = build_reference_router(
    "director", "Director", Person, PersonUpdate,
    referenced_by=(("movie", "director"),),
)
