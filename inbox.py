"""
Contact-form messages and newsletter subscribers.
"""

from typing import Dict, List

from database import create_document, delete_document, get_document, get_documents, serialize_doc, update_document
from errors import NotFound
from schemas import ContactMessage, Subscriber


def send_message(db, payload: ContactMessage) -> Dict:
    message_id = create_document(db, "messages", payload.model_copy(update={"is_read": False}))
    return serialize_doc(get_document(db, "messages", message_id))


def list_messages(db) -> List[Dict]:
    return [serialize_doc(m) for m in get_documents(db, "messages")]


def toggle_read(db, message_id: str) -> Dict:
    doc = get_document(db, "messages", message_id)
    if not doc:
        raise NotFound("Message not found")
    return serialize_doc(update_document(db, "messages", message_id, {"is_read": not doc.get("is_read", False)}))


def delete_message(db, message_id: str) -> None:
    if not delete_document(db, "messages", message_id):
        raise NotFound("Message not found")


def subscribe(db, payload: Subscriber) -> Dict:
    email = payload.email.lower()
    existing = db["newsletter_subscribers"].find_one({"email": email})
    if existing:
        return serialize_doc(existing)
    sub_id = create_document(db, "newsletter_subscribers", Subscriber(email=email))
    return serialize_doc(get_document(db, "newsletter_subscribers", sub_id))


def list_subscribers(db) -> List[Dict]:
    return [serialize_doc(s) for s in get_documents(db, "newsletter_subscribers")]


def delete_subscriber(db, subscriber_id: str) -> None:
    if not delete_document(db, "newsletter_subscribers", subscriber_id):
        raise NotFound("Subscriber not found")
