import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
import orders
import shopping
import taxonomy
from database import Database
from items import CATALOGS, build_catalog_router
from seed import seed_catalog

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(database: Optional[Database] = None, seed_demo: Optional[bool] = None) -> FastAPI:
    database = database or Database()
    if seed_demo is None:
        seed_demo = os.getenv("SEED_DEMO_DATA", "1") == "1"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database.connect()
        auth.ensure_admin(db)
        if seed_demo:
            seed_catalog(db)
        yield
        database.close()

    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.database = database

    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def server_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Server Error")

    @app.get("/")
    def root():
        return {"name": "Storefront API", "status": "ok"}

    @app.get("/test")
    def test_database():
        resp = {"backend": "running", "database": "not configured"}
        try:
            db = database.db
            resp["database"] = "connected"
            resp["collections"] = db.list_collection_names()
        except Exception as e:
            resp["error"] = str(e)
        return resp

    app.include_router(auth.router)
    for config in CATALOGS.values():
        app.include_router(build_catalog_router(config))
    app.include_router(taxonomy.categories_router)
    app.include_router(taxonomy.authors_router)
    app.include_router(taxonomy.directors_router)
    app.include_router(shopping.cart_router)
    app.include_router(shopping.wishlist_router)
    app.include_router(orders.router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
