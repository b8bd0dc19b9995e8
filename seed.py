"""
Demo data for an empty storefront database.

Run ``python seed.py`` to (re)seed, or let the app seed at startup when
``SEED_DEMO_DATA`` is enabled and the catalog is empty.
"""
import logging

from auth import ensure_admin
from database import Database, create_document
from taxonomy import slugify

logger = logging.getLogger(__name__)

CATEGORIES = [
    {"name": "Fiction", "description": "Fictional stories and novels"},
    {"name": "Science Fiction", "description": "Sci-fi and fantasy"},
    {"name": "Mystery & Thriller", "description": "Mystery and thriller"},
    {"name": "Romance", "description": "Romance"},
    {"name": "Comedy", "description": "Comedies"},
    {"name": "Self-Help", "description": "Self-improvement books"},
]

AUTHORS = [
    {"name": "J.K. Rowling", "bio": "British author, best known for the Harry Potter series",
     "nationality": "British", "birth_date": "1965-07-31"},
    {"name": "Stephen King", "bio": "American author of horror, supernatural fiction, suspense, and fantasy novels",
     "nationality": "American", "birth_date": "1947-09-21"},
    {"name": "Jane Austen", "bio": "English novelist known primarily for her six major novels",
     "nationality": "British", "birth_date": "1775-12-16"},
    {"name": "Mark Manson", "bio": "American self-help author and blogger",
     "nationality": "American", "birth_date": "1984-03-09"},
]

DIRECTORS = [
    {"name": "Venky Atluri", "nationality": "Indian"},
    {"name": "Ayan Mukerji", "nationality": "Indian"},
    {"name": "Frank Darabont", "nationality": "American"},
]

BOOKS = [
    {"title": "Harry Potter and the Philosopher's Stone", "author": 0, "category": "Fiction",
     "isbn": "978-0747532699", "price": 500, "discount": 10, "stock": 50,
     "description": "The first book in the Harry Potter series.",
     "publisher": "Bloomsbury", "publish_year": 1997, "pages": 223, "format": "Paperback",
     "featured": True, "best_seller": True},
    {"title": "The Shining", "author": 1, "category": "Mystery & Thriller",
     "isbn": "978-0307743657", "price": 600, "discount": 0, "stock": 30,
     "description": "A writer takes a job as an off-season caretaker at an isolated hotel.",
     "publisher": "Doubleday", "publish_year": 1977, "pages": 447, "format": "Hardcover",
     "featured": True},
    {"title": "Pride and Prejudice", "author": 2, "category": "Romance",
     "isbn": "978-0141439518", "price": 400, "discount": 15, "stock": 75,
     "description": "A romantic novel of manners following Elizabeth Bennet.",
     "publisher": "T. Egerton", "publish_year": 1813, "pages": 432, "best_seller": True},
    {"title": "The Subtle Art of Not Giving a F*ck", "author": 3, "category": "Self-Help",
     "isbn": "978-0062457714", "price": 450, "discount": 5, "stock": 40,
     "description": "A counterintuitive approach to living a good life.",
     "publisher": "HarperOne", "publish_year": 2016, "pages": 224},
]

MOVIES = [
    {"title": "Lucky Bhaskar", "director": 0, "category": "Science Fiction", "price": 199, "stock": 100,
     "description": "An astronaut copes with isolation and the mysteries beyond the stars.",
     "release_date": "2021-06-18", "duration": 118, "featured": True,
     "trailer_url": "https://www.youtube.com/watch?v=Kv5RKsqVe-Y"},
    {"title": "Brahmastra", "director": 1, "category": "Mystery & Thriller", "price": 249, "stock": 100,
     "description": "A fast-paced thriller about a courier on the run with a secret package.",
     "release_date": "2019-10-11", "duration": 105, "featured": True},
    {"title": "The Shawshank Redemption", "director": 2, "category": "Comedy", "price": 149, "discount": 20,
     "stock": 100, "description": "Three friends try to open a food truck.",
     "release_date": "2020-05-22", "duration": 95, "best_seller": True},
]


def _catalog_doc(entry, category_ids, creator_field, creator_ids):
    doc = dict(entry)
    doc["category"] = category_ids[entry["category"]]
    doc[creator_field] = creator_ids[entry[creator_field]]
    doc.setdefault("discount", 0)
    doc.setdefault("featured", False)
    doc.setdefault("best_seller", False)
    doc.update(is_active=True, reviews=[], ratings={"average": 0.0, "count": 0})
    return doc


def seed_catalog(db) -> bool:
    """Insert demo reference data and items. Returns False if the catalog is not empty."""
    if db["book"].count_documents({}) > 0 or db["movie"].count_documents({}) > 0:
        return False

    category_ids = {}
    for c in CATEGORIES:
        slug = slugify(c["name"])
        existing = db["category"].find_one({"slug": slug})
        if existing:
            category_ids[c["name"]] = existing["_id"]
        else:
            category_ids[c["name"]] = db["category"].insert_one({**c, "slug": slug}).inserted_id
    author_ids = [db["author"].insert_one(dict(a)).inserted_id for a in AUTHORS]
    director_ids = [db["director"].insert_one(dict(d)).inserted_id for d in DIRECTORS]

    for b in BOOKS:
        create_document(db, "book", _catalog_doc(b, category_ids, "author", author_ids))
    for m in MOVIES:
        create_document(db, "movie", _catalog_doc(m, category_ids, "director", director_ids))
    logger.info("Seeded %d books and %d movies", len(BOOKS), len(MOVIES))
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    database = Database()
    db = database.connect()
    try:
        ensure_admin(db)
        if not seed_catalog(db):
            logger.info("Catalog already has data, nothing seeded")
    finally:
        database.close()
