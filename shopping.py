"""Per-user cart and wishlist. One document per user in ``cart`` / ``wishlist``."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user
from catalog import discounted_price
from database import get_db, parse_object_id, to_public, utcnow
from schemas import CartItem, CartQuantity, ItemKind, WishlistItem

cart_router = APIRouter(prefix="/api/cart", tags=["cart"])
wishlist_router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


def find_active_item(db, kind: str, item_id: str) -> Dict[str, Any]:
    oid = parse_object_id(item_id)
    doc = db[kind].find_one({"_id": oid, "is_active": True}) if oid else None
    if doc is None:
        raise HTTPException(status_code=404, detail=f"{kind.title()} not found")
    return doc


def get_items(db, collection: str, user_id) -> List[Dict[str, Any]]:
    doc = db[collection].find_one({"user": user_id})
    return list(doc.get("items", [])) if doc else []


def save_items(db, collection: str, user_id, items: List[Dict[str, Any]]) -> None:
    db[collection].update_one(
        {"user": user_id},
        {"$set": {"items": items, "updated_at": utcnow()}, "$setOnInsert": {"created_at": utcnow()}},
        upsert=True,
    )


def _index(items: List[Dict[str, Any]], kind: str, item_id) -> Optional[int]:
    for i, line in enumerate(items):
        if line["kind"] == kind and line["item_id"] == item_id:
            return i
    return None


def _check_stock(item: Dict[str, Any], quantity: int) -> None:
    if quantity > int(item.get("stock", 0)):
        raise HTTPException(status_code=400, detail=f"Only {item.get('stock', 0)} left in stock")


def cart_view(db, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    lines = []
    total = 0.0
    for line in items:
        item = db[line["kind"]].find_one({"_id": line["item_id"]}, {"reviews": 0})
        if item is None:
            continue
        unit_price = discounted_price(item)
        subtotal = round(unit_price * line["quantity"], 2)
        total += subtotal
        lines.append({
            "item_id": str(line["item_id"]),
            "kind": line["kind"],
            "title": item.get("title"),
            "unit_price": unit_price,
            "quantity": line["quantity"],
            "subtotal": subtotal,
            "in_stock": bool(item.get("is_active", True)) and item.get("stock", 0) >= line["quantity"],
        })
    return {"success": True, "count": len(lines), "total": round(total, 2), "data": lines}


@cart_router.get("")
def get_cart(user=Depends(get_current_user), db=Depends(get_db)):
    return cart_view(db, get_items(db, "cart", user["_id"]))


@cart_router.post("")
def add_to_cart(payload: CartItem, user=Depends(get_current_user), db=Depends(get_db)):
    item = find_active_item(db, payload.kind, payload.item_id)
    items = get_items(db, "cart", user["_id"])
    idx = _index(items, payload.kind, item["_id"])
    if idx is None:
        _check_stock(item, payload.quantity)
        items.append({"item_id": item["_id"], "kind": payload.kind, "quantity": payload.quantity})
    else:
        quantity = items[idx]["quantity"] + payload.quantity
        _check_stock(item, quantity)
        items[idx]["quantity"] = quantity
    save_items(db, "cart", user["_id"], items)
    return cart_view(db, items)


@cart_router.put("/{kind}/{item_id}")
def set_cart_quantity(kind: ItemKind, item_id: str, payload: CartQuantity,
                      user=Depends(get_current_user), db=Depends(get_db)):
    item = find_active_item(db, kind, item_id)
    items = get_items(db, "cart", user["_id"])
    idx = _index(items, kind, item["_id"])
    if idx is None:
        raise HTTPException(status_code=404, detail="Item not in cart")
    _check_stock(item, payload.quantity)
    items[idx]["quantity"] = payload.quantity
    save_items(db, "cart", user["_id"], items)
    return cart_view(db, items)


@cart_router.delete("/{kind}/{item_id}")
def remove_from_cart(kind: ItemKind, item_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    items = get_items(db, "cart", user["_id"])
    idx = _index(items, kind, parse_object_id(item_id))
    if idx is None:
        raise HTTPException(status_code=404, detail="Item not in cart")
    items.pop(idx)
    save_items(db, "cart", user["_id"], items)
    return cart_view(db, items)


@cart_router.delete("")
def clear_cart(user=Depends(get_current_user), db=Depends(get_db)):
    save_items(db, "cart", user["_id"], [])
    return {"success": True, "message": "Cart cleared"}


@wishlist_router.get("")
def get_wishlist(user=Depends(get_current_user), db=Depends(get_db)):
    data = []
    for line in get_items(db, "wishlist", user["_id"]):
        item = db[line["kind"]].find_one({"_id": line["item_id"], "is_active": True}, {"reviews": 0})
        if item is not None:
            data.append({"kind": line["kind"], **to_public(item)})
    return {"success": True, "count": len(data), "data": data}


@wishlist_router.post("")
def add_to_wishlist(payload: WishlistItem, user=Depends(get_current_user), db=Depends(get_db)):
    item = find_active_item(db, payload.kind, payload.item_id)
    items = get_items(db, "wishlist", user["_id"])
    if _index(items, payload.kind, item["_id"]) is None:
        items.append({"item_id": item["_id"], "kind": payload.kind})
        save_items(db, "wishlist", user["_id"], items)
    return {"success": True, "message": "Added to wishlist", "count": len(items)}


@wishlist_router.delete("/{kind}/{item_id}")
def remove_from_wishlist(kind: ItemKind, item_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    items = get_items(db, "wishlist", user["_id"])
    idx = _index(items, kind, parse_object_id(item_id))
    if idx is None:
        raise HTTPException(status_code=404, detail="Item not in wishlist")
    items.pop(idx)
    save_items(db, "wishlist", user["_id"], items)
    return {"success": True, "message": "Removed from wishlist", "count": len(items)}
