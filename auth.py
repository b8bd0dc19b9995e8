import hashlib
import hmac
import logging
import os
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db, to_public, utcnow
from schemas import AuthRequest, RegisterRequest, User

logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@storefront.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin@123")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin")

PBKDF2_ITERATIONS = 120_000

router = APIRouter(prefix="/api/auth", tags=["auth"])


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        salt, _ = password_hash.split("$", 1)
        candidate = hash_password(password, salt)
    except ValueError:
        return False
    return hmac.compare_digest(candidate, password_hash)


def issue_token(db, user_id) -> str:
    token = secrets.token_urlsafe(32)
    db["session"].insert_one({"token": token, "user": user_id, "created_at": utcnow()})
    return token


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _user_for_token(db, token: Optional[str]):
    if not token:
        return None
    session = db["session"].find_one({"token": token})
    if not session:
        return None
    user = db["user"].find_one({"_id": session["user"]})
    if not user or not user.get("is_active", True):
        return None
    return user


def get_optional_user(authorization: Optional[str] = Header(None), db=Depends(get_db)):
    return _user_for_token(db, _bearer_token(authorization))


def get_current_user(authorization: Optional[str] = Header(None), db=Depends(get_db)):
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Not authorized, no token")
    user = _user_for_token(db, token)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authorized, token failed")
    return user


def require_admin(user=Depends(get_current_user)):
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail=f"User role {user.get('role')} is not authorized to access this route")
    return user


def is_admin(user) -> bool:
    return bool(user) and user.get("role") == "admin"


def ensure_admin(db) -> None:
    """Create the bootstrap admin account if it does not exist yet."""
    email = ADMIN_EMAIL.lower()
    if db["user"].find_one({"email": email}):
        return
    admin = User(name=ADMIN_NAME, email=email, password_hash=hash_password(ADMIN_PASSWORD), role="admin")
    create_document(db, "user", admin)
    logger.info("Created bootstrap admin %s", email)


@router.post("/register", status_code=201)
def register(req: RegisterRequest, db=Depends(get_db)):
    email = req.email.lower()
    if db["user"].find_one({"email": email}):
        raise HTTPException(status_code=400, detail="User already exists")
    user = User(
        name=req.name,
        email=email,
        password_hash=hash_password(req.password),
        phone=req.phone,
        address=req.address,
    )
    try:
        user_id = create_document(db, "user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists")
    doc = db["user"].find_one({"email": email})
    logger.info("Registered user %s", user_id)
    return {"success": True, "token": issue_token(db, doc["_id"]), "data": to_public(doc)}


@router.post("/login")
def login(req: AuthRequest, db=Depends(get_db)):
    user = db["user"].find_one({"email": req.email.lower()})
    if not user or not verify_password(req.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.get("is_active", True):
        raise HTTPException(status_code=401, detail="Account is deactivated")
    return {"success": True, "token": issue_token(db, user["_id"]), "data": to_public(user)}


@router.get("/me")
def me(user=Depends(get_current_user)):
    return {"success": True, "data": to_public(user)}


@router.post("/logout")
def logout(authorization: Optional[str] = Header(None), user=Depends(get_current_user), db=Depends(get_db)):
    db["session"].delete_one({"token": _bearer_token(authorization)})
    return {"success": True, "message": "Logged out"}
