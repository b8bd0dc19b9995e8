"""
Storefront Schemas

Define MongoDB collection schemas using Pydantic models.
Each collection model maps to the collection with its lowercase name
(Book -> "book", Category -> "category"). Request bodies forbid unknown
fields so malformed payloads are rejected before reaching a handler.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

ItemKind = Literal["book", "movie"]
Role = Literal["customer", "admin"]
OrderStatus = Literal["pending", "paid", "shipped", "delivered", "cancelled"]


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


# --- Reference data ---

class Category(StrictModel):
    name: str = Field(..., min_length=1, description="Category name")
    description: Optional[str] = Field(None, description="Short description")


class CategoryUpdate(StrictModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class Person(StrictModel):
    """An author (books) or a director (movies)."""

    name: str = Field(..., min_length=1)
    bio: Optional[str] = None
    nationality: Optional[str] = None
    birth_date: Optional[str] = Field(None, description="ISO date, e.g. 1965-07-31")


class PersonUpdate(StrictModel):
    name: Optional[str] = Field(None, min_length=1)
    bio: Optional[str] = None
    nationality: Optional[str] = None
    birth_date: Optional[str] = None


# --- Catalog items ---

class Review(StrictModel):
    user: str = Field(..., description="Reviewer user _id as string")
    name: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    created_at: Optional[datetime] = None


class ReviewCreate(StrictModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class CatalogItem(StrictModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: str = Field(..., description="Category _id as string")
    price: float = Field(..., ge=0)
    discount: float = Field(0, ge=0, le=100, description="Discount percent")
    stock: int = Field(0, ge=0, description="Units in stock")
    featured: bool = False
    best_seller: bool = False


class Book(CatalogItem):
    author: str = Field(..., description="Author _id as string")
    isbn: Optional[str] = None
    cover_image: Optional[str] = None
    publisher: Optional[str] = None
    publish_year: Optional[int] = None
    pages: Optional[int] = Field(None, ge=1)
    language: str = "English"
    format: Literal["Paperback", "Hardcover", "eBook", "Audiobook"] = "Paperback"


class Movie(CatalogItem):
    director: str = Field(..., description="Director _id as string")
    release_date: Optional[str] = None
    duration: Optional[int] = Field(None, ge=1, description="Runtime in minutes")
    poster_image: Optional[str] = None
    trailer_url: Optional[str] = None


class CatalogItemUpdate(StrictModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0, le=100)
    stock: Optional[int] = Field(None, ge=0)
    featured: Optional[bool] = None
    best_seller: Optional[bool] = None
    is_active: Optional[bool] = None
    reviews: Optional[List[Review]] = None


class BookUpdate(CatalogItemUpdate):
    author: Optional[str] = None
    isbn: Optional[str] = None
    cover_image: Optional[str] = None
    publisher: Optional[str] = None
    publish_year: Optional[int] = None
    pages: Optional[int] = Field(None, ge=1)
    language: Optional[str] = None
    format: Optional[Literal["Paperback", "Hardcover", "eBook", "Audiobook"]] = None


class MovieUpdate(CatalogItemUpdate):
    director: Optional[str] = None
    release_date: Optional[str] = None
    duration: Optional[int] = Field(None, ge=1)
    poster_image: Optional[str] = None
    trailer_url: Optional[str] = None


# --- Users ---

class Address(StrictModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class User(BaseModel):
    name: str
    email: EmailStr
    password_hash: str
    role: Role = "customer"
    is_active: bool = True
    phone: Optional[str] = None
    address: Optional[Address] = None


class RegisterRequest(StrictModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    address: Optional[Address] = None


class AuthRequest(StrictModel):
    email: EmailStr
    password: str


# --- Cart, wishlist, orders ---

class CartItem(StrictModel):
    item_id: str
    kind: ItemKind
    quantity: int = Field(1, ge=1)


class CartQuantity(StrictModel):
    quantity: int = Field(..., ge=1)


class WishlistItem(StrictModel):
    item_id: str
    kind: ItemKind


class OrderItem(BaseModel):
    item_id: str
    kind: ItemKind
    title: str
    unit_price: float
    quantity: int
    subtotal: float


class Order(BaseModel):
    user: str
    items: List[OrderItem]
    total: float
    currency: str = "inr"
    status: OrderStatus = "pending"
    shipping_address: Optional[Address] = None
    payment_url: Optional[str] = None
    restocked: bool = False


class OrderCreate(StrictModel):
    items: Optional[List[CartItem]] = None
    shipping_address: Optional[Address] = None


class OrderStatusUpdate(StrictModel):
    status: OrderStatus
