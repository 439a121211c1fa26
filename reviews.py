"""
Review moderation.

Submissions go to `reviews_private`. Approving copies the public fields into
`reviews_public` under the same id, so public reads never see anything that
has not been approved. Rejecting or deleting removes both copies.
"""

import logging
from typing import Dict, List, Optional

from database import (
    create_document,
    delete_document,
    get_document,
    get_documents,
    now_utc,
    serialize_doc,
    set_document,
    to_local_datetime,
    update_document,
)
from errors import NotFound
from schemas import PrivateReview, PublicReview, ReviewIn

logger = logging.getLogger(__name__)

PRIVATE = "reviews_private"
PUBLIC = "reviews_public"


def submit_review(db, session, payload: ReviewIn) -> Dict:
    identity = session.identity
    review = PrivateReview(
        user_id=identity.uid,
        name=identity.display_name or identity.email or "Anonymous User",
        rating=payload.rating,
        message=payload.message,
        status="pending",
    )
    review_id = create_document(db, PRIVATE, review)
    return serialize_doc(get_document(db, PRIVATE, review_id))


def list_public_reviews(db, limit: Optional[int] = None) -> List[Dict]:
    return [serialize_doc(r) for r in get_documents(db, PUBLIC, limit=limit)]


def list_moderation_queue(db, status: Optional[str] = None) -> List[Dict]:
    filt = {"status": status} if status else {}
    return [serialize_doc(r) for r in get_documents(db, PRIVATE, filt)]


def _require_private(db, review_id: str) -> Dict:
    doc = get_document(db, PRIVATE, review_id)
    if not doc:
        raise NotFound("Review not found")
    return doc


def approve_review(db, review_id: str) -> Dict:
    doc = _require_private(db, review_id)
    public = PublicReview(
        name=doc["name"],
        rating=doc["rating"],
        message=doc["message"],
        created_at=to_local_datetime(doc.get("created_at")),
        approved_at=now_utc(),
    )
    set_document(db, PUBLIC, doc["_id"], public)
    update_document(db, PRIVATE, doc["_id"], {"status": "approved"})
    logger.info("Approved review %s", review_id)
    return serialize_doc(get_document(db, PUBLIC, doc["_id"]))


def reject_review(db, review_id: str) -> None:
    doc = _require_private(db, review_id)
    delete_document(db, PRIVATE, doc["_id"])
    delete_document(db, PUBLIC, doc["_id"])
    logger.info("Rejected review %s", review_id)


def delete_review(db, review_id: str) -> None:
    removed_private = delete_document(db, PRIVATE, review_id)
    removed_public = delete_document(db, PUBLIC, review_id)
    if not (removed_private or removed_public):
        raise NotFound("Review not found")
    logger.info("Deleted review %s", review_id)
