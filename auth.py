"""
Identity and role resolution.

Identity comes from a bearer JWT, role from the `roles_admin` collection:
a user is an admin exactly when a document keyed by their uid exists there.
Granting and revoking admin never touches the user's own profile.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Header

import settings
from database import (
    create_document,
    delete_document,
    document_exists,
    get_document,
    get_db,
    now_utc,
    serialize_doc,
    set_document,
    update_document,
)
from errors import Conflict, NotAuthenticated, PermissionDenied
from schemas import LoginRequest, SignupRequest, UserProfile

logger = logging.getLogger(__name__)

ROLES_COLLECTION = "roles_admin"


@dataclass(frozen=True)
class Identity:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    is_anonymous: bool = False


@dataclass(frozen=True)
class Session:
    """Who is asking and whether they are an admin.

    `identity_resolved` is False until the token has been checked; `is_admin`
    stays None until the role lookup has finished.
    """

    identity: Optional[Identity] = None
    identity_resolved: bool = False
    is_admin: Optional[bool] = None

    @property
    def is_loading(self) -> bool:
        return not self.identity_resolved or (self.signed_in and self.is_admin is None)

    @property
    def signed_in(self) -> bool:
        return self.identity is not None and not self.identity.is_anonymous

    @classmethod
    def loading(cls) -> "Session":
        return cls()

    @classmethod
    def signed_out(cls) -> "Session":
        return cls(identity=None, identity_resolved=True, is_admin=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def create_token(identity: Identity) -> str:
    payload = {
        "sub": identity.uid,
        "email": identity.email,
        "name": identity.display_name,
        "anon": identity.is_anonymous,
        "exp": now_utc() + timedelta(days=settings.JWT_EXPIRE_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGO)


def _identity_from_profile(doc) -> Identity:
    return Identity(
        uid=str(doc["_id"]),
        email=doc.get("email"),
        display_name=doc.get("display_name"),
        photo_url=doc.get("photo_url"),
    )


def resolve_identity(db, token: Optional[str]) -> Optional[Identity]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGO])
    except jwt.PyJWTError as e:
        logger.debug("Rejected token: %s", e)
        return None
    if payload.get("anon"):
        return Identity(uid=payload["sub"], is_anonymous=True)
    doc = get_document(db, "users", payload.get("sub"))
    if not doc:
        return None
    return _identity_from_profile(doc)


def resolve_role(db, identity: Optional[Identity]) -> bool:
    if identity is None or identity.is_anonymous:
        return False
    try:
        return document_exists(db, ROLES_COLLECTION, identity.uid)
    except Exception:
        logger.exception("Admin role lookup failed for %s", identity.uid)
        return False


def resolve_session(db, token: Optional[str]) -> Session:
    identity = resolve_identity(db, token)
    return Session(identity=identity, identity_resolved=True, is_admin=resolve_role(db, identity))


def grant_admin(db, uid: str) -> None:
    set_document(db, ROLES_COLLECTION, uid, {"role": "admin"})
    logger.info("Granted admin to %s", uid)


def revoke_admin(db, uid: str) -> None:
    delete_document(db, ROLES_COLLECTION, uid)
    logger.info("Revoked admin from %s", uid)


# Sign-up / sign-in

def signup(db, payload: SignupRequest) -> Identity:
    email = payload.email.lower()
    if db["users"].find_one({"email": email}):
        raise Conflict("Email already registered")
    now = now_utc()
    profile = UserProfile(
        email=email,
        display_name=payload.display_name,
        password_hash=hash_password(payload.password),
        last_login_at=now,
    )
    uid = create_document(db, "users", profile)
    if email in settings.ADMIN_EMAILS:
        grant_admin(db, uid)
    return Identity(uid=uid, email=email, display_name=payload.display_name)


def login(db, payload: LoginRequest) -> Identity:
    user = db["users"].find_one({"email": payload.email.lower()})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise NotAuthenticated("Invalid credentials")
    update_document(db, "users", user["_id"], {"last_login_at": now_utc()})
    return _identity_from_profile(user)


def anonymous_identity() -> Identity:
    from bson import ObjectId

    return Identity(uid="anon-" + str(ObjectId()), is_anonymous=True)


def public_profile(doc, is_admin: bool = False) -> dict:
    out = serialize_doc(doc)
    out.pop("password_hash", None)
    out["is_admin"] = is_admin
    return out


# FastAPI dependencies

def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_session(authorization: Optional[str] = Header(None), db=Depends(get_db)) -> Session:
    return resolve_session(db, bearer_token(authorization))


def require_user(session: Session = Depends(get_session)) -> Session:
    if not session.signed_in:
        raise NotAuthenticated("Sign in required")
    return session


def require_admin(session: Session = Depends(require_user)) -> Session:
    if not session.is_admin:
        raise PermissionDenied("Admin only")
    return session
