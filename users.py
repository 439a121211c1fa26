"""
User profiles and admin role management.
"""

import logging
from typing import Dict, List

from auth import ROLES_COLLECTION, grant_admin, public_profile, revoke_admin
from database import delete_document, document_exists, get_document, get_documents, update_document
from errors import NotFound
from schemas import ProfileUpdate

logger = logging.getLogger(__name__)


def list_users(db) -> List[Dict]:
    admin_ids = {str(r["_id"]) for r in db[ROLES_COLLECTION].find({}, {"_id": 1})}
    return [public_profile(u, str(u["_id"]) in admin_ids) for u in get_documents(db, "users")]


def get_profile(db, uid: str) -> Dict:
    doc = get_document(db, "users", uid)
    if not doc:
        raise NotFound("User not found")
    return public_profile(doc, document_exists(db, ROLES_COLLECTION, uid))


def update_profile(db, uid: str, payload: ProfileUpdate) -> Dict:
    fields = payload.model_dump(exclude_unset=True)
    if fields and not update_document(db, "users", uid, fields):
        raise NotFound("User not found")
    return get_profile(db, uid)


def set_admin(db, uid: str, make_admin: bool) -> Dict:
    if not get_document(db, "users", uid):
        raise NotFound("User not found")
    if make_admin:
        grant_admin(db, uid)
    else:
        revoke_admin(db, uid)
    return get_profile(db, uid)


def delete_user(db, uid: str) -> None:
    if not delete_document(db, "users", uid):
        raise NotFound("User not found")
    delete_document(db, ROLES_COLLECTION, uid)
    logger.info("Deleted user %s", uid)
