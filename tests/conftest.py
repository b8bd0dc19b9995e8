from datetime import datetime, timedelta, timezone
from itertools import count

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import hash_password, issue_token
from database import Database
from main import create_app

_seq = count(1)


@pytest.fixture
def database():
    return Database(name="storefront_test", client=mongomock.MongoClient())


@pytest.fixture
def client(database):
    with TestClient(create_app(database, seed_demo=False)) as c:
        yield c


@pytest.fixture
def db(client, database):
    return database.db


def make_user(db, role="customer", name=None, is_active=True):
    n = next(_seq)
    doc = {
        "name": name or f"User {n}",
        "email": f"user{n}@example.com",
        "password_hash": hash_password("secret123"),
        "role": role,
        "is_active": is_active,
    }
    doc["_id"] = db["user"].insert_one(doc).inserted_id
    headers = {"Authorization": f"Bearer {issue_token(db, doc['_id'])}"}
    return doc, headers


@pytest.fixture
def admin_headers(db):
    return make_user(db, role="admin")[1]


@pytest.fixture
def customer(db):
    return make_user(db)


@pytest.fixture
def customer_headers(customer):
    return customer[1]


@pytest.fixture
def category(db):
    _id = db["category"].insert_one({"name": "Fiction", "slug": "fiction"}).inserted_id
    return db["category"].find_one({"_id": _id})


@pytest.fixture
def author(db):
    _id = db["author"].insert_one({"name": "Jane Austen", "nationality": "British"}).inserted_id
    return db["author"].find_one({"_id": _id})


@pytest.fixture
def director(db):
    _id = db["director"].insert_one({"name": "Frank Darabont", "nationality": "American"}).inserted_id
    return db["director"].find_one({"_id": _id})


@pytest.fixture
def make_book(db, category, author):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _make(**overrides):
        n = next(_seq)
        doc = {
            "title": f"Book {n}",
            "description": "A story",
            "isbn": f"978-{n:010d}",
            "category": category["_id"],
            "author": author["_id"],
            "price": 100.0,
            "discount": 0,
            "stock": 10,
            "featured": False,
            "best_seller": False,
            "is_active": True,
            "reviews": [],
            "ratings": {"average": 0.0, "count": 0},
            "created_at": base + timedelta(minutes=n),
        }
        doc.update(overrides)
        doc["_id"] = db["book"].insert_one(doc).inserted_id
        return doc

    return _make


@pytest.fixture
def make_movie(db, category, director):
    def _make(**overrides):
        n = next(_seq)
        doc = {
            "title": f"Movie {n}",
            "description": "A film",
            "category": category["_id"],
            "director": director["_id"],
            "price": 150.0,
            "discount": 0,
            "stock": 5,
            "featured": False,
            "best_seller": False,
            "is_active": True,
            "reviews": [],
            "ratings": {"average": 0.0, "count": 0},
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=n),
        }
        doc.update(overrides)
        doc["_id"] = db["movie"].insert_one(doc).inserted_id
        return doc

    return _make
