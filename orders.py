import logging
import os
from typing import Any, Dict, List, Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user, is_admin, require_admin
from catalog import discounted_price
from database import create_document, get_db, parse_object_id, to_public, utcnow
from schemas import Order, OrderCreate, OrderItem, OrderStatusUpdate
from shopping import get_items, save_items

logger = logging.getLogger(__name__)

STRIPE_SECRET = os.getenv("STRIPE_SECRET_KEY", "")
if STRIPE_SECRET:
    stripe.api_key = STRIPE_SECRET
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
CURRENCY = os.getenv("CURRENCY", "inr")

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _restock(db, items: List[Dict[str, Any]]) -> None:
    for it in items:
        db[it["kind"]].update_one({"_id": parse_object_id(it["item_id"])}, {"$inc": {"stock": it["quantity"]}})


def reserve_stock(db, lines: List[Dict[str, Any]]) -> List[OrderItem]:
    """Decrement stock for every line, undoing earlier lines on failure."""
    reserved: List[OrderItem] = []
    for line in lines:
        oid = parse_object_id(line["item_id"])
        kind = line["kind"]
        quantity = int(line["quantity"])
        item = db[kind].find_one({"_id": oid, "is_active": True}) if oid else None
        if item is None:
            _restock(db, [r.model_dump() for r in reserved])
            raise HTTPException(status_code=404, detail=f"{kind.title()} not found")
        res = db[kind].update_one({"_id": oid, "stock": {"$gte": quantity}}, {"$inc": {"stock": -quantity}})
        if res.modified_count == 0:
            _restock(db, [r.model_dump() for r in reserved])
            raise HTTPException(status_code=400, detail=f"Not enough stock for {item.get('title', kind)}")
        unit_price = discounted_price(item)
        reserved.append(OrderItem(
            item_id=str(oid),
            kind=kind,
            title=item.get("title", ""),
            unit_price=unit_price,
            quantity=quantity,
            subtotal=round(unit_price * quantity, 2),
        ))
    return reserved


def _checkout_session(items: List[OrderItem], email: str) -> str:
    session = stripe.checkout.Session.create(
        mode="payment",
        line_items=[
            {
                "price_data": {
                    "currency": CURRENCY,
                    "product_data": {"name": it.title or "Item"},
                    # Stripe expects amount in smallest unit
                    "unit_amount": int(round(it.unit_price * 100)),
                },
                "quantity": it.quantity,
            }
            for it in items
        ],
        success_url=FRONTEND_URL + "/checkout/success",
        cancel_url=FRONTEND_URL + "/checkout/cancel",
        customer_email=email,
    )
    return session.url


def _load_order(db, order_id: str, user) -> Dict[str, Any]:
    oid = parse_object_id(order_id)
    order = db["order"].find_one({"_id": oid}) if oid else None
    if order is None or (order["user"] != user["_id"] and not is_admin(user)):
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.post("", status_code=201)
def place_order(payload: OrderCreate, user=Depends(get_current_user), db=Depends(get_db)):
    from_cart = payload.items is None
    if from_cart:
        lines = get_items(db, "cart", user["_id"])
    else:
        lines = [it.model_dump() for it in payload.items]
    if not lines:
        raise HTTPException(status_code=400, detail="No order items")

    items = reserve_stock(db, lines)
    total = round(sum(it.subtotal for it in items), 2)

    payment_url: Optional[str] = None
    status = "paid"
    if STRIPE_SECRET:
        try:
            payment_url = _checkout_session(items, user["email"])
        except stripe.StripeError as e:
            _restock(db, [it.model_dump() for it in items])
            raise HTTPException(status_code=400, detail=str(e))
        status = "pending"

    order = Order(
        user=str(user["_id"]),
        items=items,
        total=total,
        currency=CURRENCY,
        status=status,
        shipping_address=payload.shipping_address,
        payment_url=payment_url,
    )
    doc = order.model_dump()
    doc["user"] = user["_id"]
    order_id = create_document(db, "order", doc)
    if from_cart:
        save_items(db, "cart", user["_id"], [])
    logger.info("Order %s placed by %s, total %.2f, status %s", order_id, user["_id"], total, status)
    return {"success": True, "data": to_public(db["order"].find_one({"_id": parse_object_id(order_id)}))}


@router.get("/mine")
def my_orders(user=Depends(get_current_user), db=Depends(get_db)):
    orders = list(db["order"].find({"user": user["_id"]}).sort("created_at", -1))
    return {"success": True, "count": len(orders), "data": [to_public(o) for o in orders]}


@router.get("")
def list_orders(admin=Depends(require_admin), db=Depends(get_db)):
    orders = list(db["order"].find().sort("created_at", -1))
    return {"success": True, "count": len(orders), "data": [to_public(o) for o in orders]}


@router.get("/{order_id}")
def get_order(order_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    return {"success": True, "data": to_public(_load_order(db, order_id, user))}


@router.put("/{order_id}/status")
def update_order_status(order_id: str, payload: OrderStatusUpdate, admin=Depends(require_admin), db=Depends(get_db)):
    order = _load_order(db, order_id, admin)
    if order.get("status") == "cancelled" and payload.status != "cancelled":
        raise HTTPException(status_code=400, detail="Cancelled orders cannot be reopened")
    update: Dict[str, Any] = {"status": payload.status, "updated_at": utcnow()}
    if payload.status == "cancelled" and not order.get("restocked"):
        _restock(db, order.get("items", []))
        update["restocked"] = True
    db["order"].update_one({"_id": order["_id"]}, {"$set": update})
    logger.info("Order %s moved to %s", order_id, payload.status)
    return {"success": True, "data": to_public(db["order"].find_one({"_id": order["_id"]}))}
