import asyncio
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import auth
import catalog
import inbox
import orders
import reviews
import settings
import users
from ai_flows import chat_reply, get_llm, recommend_products, report_insights
from auth import Identity, Session, get_session, require_admin, require_user, resolve_identity, resolve_role
from database import get_db
from errors import PermissionDenied, StoreError
from live import FeedState, LiveQuery, RoleGatedFeed
from reports import sales_report
from schemas import (
    ChatRequest,
    CheckoutRequest,
    ContactMessage,
    DirectSaleRequest,
    LoginRequest,
    Product,
    ProductUpdate,
    ProfileUpdate,
    RecommendationRequest,
    ReviewIn,
    SignupRequest,
    StatusUpdate,
    Subscriber,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("storefront")

app = FastAPI(title="Furniture Store API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(request, exc: StoreError):
    if isinstance(exc, PermissionDenied):
        if settings.DEBUG:
            # surface authorization bugs loudly while developing
            raise exc
        logger.warning("Permission denied on %s: %s", request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": "You do not have permission to do that."})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


class TokenResponse(BaseModel):
    token: str
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_admin: bool = False
    is_anonymous: bool = False


def token_response(db, identity: Identity) -> TokenResponse:
    return TokenResponse(
        token=auth.create_token(identity),
        uid=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
        is_admin=resolve_role(db, identity),
        is_anonymous=identity.is_anonymous,
    )


@app.get("/")
def root():
    return {"status": "ok", "service": "furniture-store-backend"}


@app.get("/schema")
def schema_overview():
    return {
        "collections": [
            "products", "orders", "users", "roles_admin", "reviews_private",
            "reviews_public", "messages", "newsletter_subscribers",
        ],
    }


# Auth Endpoints
@app.post("/api/auth/signup", response_model=TokenResponse)
def signup(payload: SignupRequest, db=Depends(get_db)):
    return token_response(db, auth.signup(db, payload))


@app.post("/api/auth/login", response_model=TokenResponse)
def login(payload: LoginRequest, db=Depends(get_db)):
    return token_response(db, auth.login(db, payload))


@app.post("/api/auth/anonymous", response_model=TokenResponse)
def anonymous_login(db=Depends(get_db)):
    return token_response(db, auth.anonymous_identity())


@app.get("/api/auth/me")
def me(session: Session = Depends(get_session)):
    identity = session.identity
    if identity is None:
        return {"signed_in": False, "is_admin": False}
    return {
        "signed_in": session.signed_in,
        "uid": identity.uid,
        "email": identity.email,
        "display_name": identity.display_name,
        "photo_url": identity.photo_url,
        "is_anonymous": identity.is_anonymous,
        "is_admin": bool(session.is_admin),
    }


@app.get("/api/account/profile")
def read_profile(session: Session = Depends(require_user), db=Depends(get_db)):
    return users.get_profile(db, session.identity.uid)


@app.patch("/api/account/profile")
def edit_profile(payload: ProfileUpdate, session: Session = Depends(require_user), db=Depends(get_db)):
    return users.update_profile(db, session.identity.uid, payload)


# Catalog Endpoints
@app.get("/api/categories")
def list_categories():
    return catalog.CATEGORIES


@app.get("/api/products")
def list_products(category: Optional[str] = None, featured: Optional[bool] = None, db=Depends(get_db)):
    return catalog.list_products(db, category=category, featured=featured)


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db=Depends(get_db)):
    return catalog.get_product(db, product_id)


@app.post("/api/admin/products")
def admin_create_product(payload: Product, session: Session = Depends(require_admin), db=Depends(get_db)):
    return catalog.create_product(db, payload)


@app.patch("/api/admin/products/{product_id}")
def admin_update_product(product_id: str, payload: ProductUpdate, session: Session = Depends(require_admin), db=Depends(get_db)):
    return catalog.update_product(db, product_id, payload)


@app.delete("/api/admin/products/{product_id}")
def admin_delete_product(product_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    catalog.delete_product(db, product_id)
    return {"status": "deleted"}


# Orders
@app.post("/api/orders")
def create_order(payload: CheckoutRequest, session: Session = Depends(require_user), db=Depends(get_db)):
    return orders.checkout(db, session, payload)


@app.get("/api/orders")
def list_orders(status: Optional[str] = None, session: Session = Depends(get_session), db=Depends(get_db)):
    return orders.list_orders(db, session, status)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, session: Session = Depends(require_user), db=Depends(get_db)):
    return orders.get_order(db, session, order_id)


@app.post("/api/orders/{order_id}/cancel")
def cancel_order(order_id: str, session: Session = Depends(require_user), db=Depends(get_db)):
    return orders.cancel_order(db, session, order_id)


@app.patch("/api/admin/orders/{order_id}/status")
def admin_set_status(order_id: str, payload: StatusUpdate, session: Session = Depends(require_admin), db=Depends(get_db)):
    return orders.set_status(db, session, order_id, payload.status)


@app.delete("/api/admin/orders/{order_id}")
def admin_delete_order(order_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    orders.delete_order(db, order_id)
    return {"status": "deleted"}


@app.post("/api/admin/direct-sale")
def admin_direct_sale(payload: DirectSaleRequest, session: Session = Depends(require_admin), db=Depends(get_db)):
    return orders.direct_sale(db, session, payload)


# Reviews
@app.get("/api/reviews")
def public_reviews(limit: Optional[int] = Query(None, ge=1), db=Depends(get_db)):
    return reviews.list_public_reviews(db, limit)


@app.post("/api/reviews")
def submit_review(payload: ReviewIn, session: Session = Depends(require_user), db=Depends(get_db)):
    return reviews.submit_review(db, session, payload)


@app.get("/api/admin/reviews")
def moderation_queue(status: Optional[str] = None, session: Session = Depends(require_admin), db=Depends(get_db)):
    return reviews.list_moderation_queue(db, status)


@app.post("/api/admin/reviews/{review_id}/approve")
def approve_review(review_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    return reviews.approve_review(db, review_id)


@app.post("/api/admin/reviews/{review_id}/reject")
def reject_review(review_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    reviews.reject_review(db, review_id)
    return {"status": "rejected"}


@app.delete("/api/admin/reviews/{review_id}")
def delete_review(review_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    reviews.delete_review(db, review_id)
    return {"status": "deleted"}


# Users
@app.get("/api/admin/users")
def admin_users(session: Session = Depends(require_admin), db=Depends(get_db)):
    return users.list_users(db)


@app.put("/api/admin/users/{user_id}/admin")
def admin_grant(user_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    return users.set_admin(db, user_id, True)


@app.delete("/api/admin/users/{user_id}/admin")
def admin_revoke(user_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    return users.set_admin(db, user_id, False)


@app.delete("/api/admin/users/{user_id}")
def admin_delete_user(user_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    users.delete_user(db, user_id)
    return {"status": "deleted"}


# Inbox
@app.post("/api/messages")
def send_message(payload: ContactMessage, db=Depends(get_db)):
    return inbox.send_message(db, payload)


@app.get("/api/admin/messages")
def admin_messages(session: Session = Depends(require_admin), db=Depends(get_db)):
    return inbox.list_messages(db)


@app.post("/api/admin/messages/{message_id}/toggle-read")
def admin_toggle_read(message_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    return inbox.toggle_read(db, message_id)


@app.delete("/api/admin/messages/{message_id}")
def admin_delete_message(message_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    inbox.delete_message(db, message_id)
    return {"status": "deleted"}


@app.post("/api/newsletter")
def subscribe(payload: Subscriber, db=Depends(get_db)):
    return inbox.subscribe(db, payload)


@app.get("/api/admin/subscribers")
def admin_subscribers(session: Session = Depends(require_admin), db=Depends(get_db)):
    return inbox.list_subscribers(db)


@app.delete("/api/admin/subscribers/{subscriber_id}")
def admin_delete_subscriber(subscriber_id: str, session: Session = Depends(require_admin), db=Depends(get_db)):
    inbox.delete_subscriber(db, subscriber_id)
    return {"status": "deleted"}


# AI
@app.post("/api/ai/chat")
def ai_chat(payload: ChatRequest, db=Depends(get_db), llm=Depends(get_llm)):
    products = catalog.list_products(db)
    return {"reply": chat_reply(llm, products, payload.history, payload.message)}


@app.post("/api/ai/recommendations")
def ai_recommendations(payload: RecommendationRequest, db=Depends(get_db), llm=Depends(get_llm)):
    products = catalog.list_products(db)
    return recommend_products(
        llm,
        products,
        payload.viewed_product_ids,
        payload.cart_product_ids,
        current_product_id=payload.current_product_id,
    )


@app.get("/api/admin/reports")
def admin_report(session: Session = Depends(require_admin), db=Depends(get_db)):
    return sales_report(db)


@app.get("/api/admin/reports/insights")
def admin_report_insights(session: Session = Depends(require_admin), db=Depends(get_db), llm=Depends(get_llm)):
    return {"insights": report_insights(llm, sales_report(db))}


@app.get("/api/admin/stats")
def admin_stats(session: Session = Depends(require_admin), db=Depends(get_db)):
    return {
        "users": db["users"].count_documents({}),
        "products": db["products"].count_documents({}),
        "orders": db["orders"].count_documents({}),
        "pending_orders": db["orders"].count_documents({"status": "Pending"}),
        "unread_messages": db["messages"].count_documents({"is_read": False}),
        "pending_reviews": db["reviews_private"].count_documents({"status": "pending"}),
    }


# Seed demo data if empty
@app.post("/api/admin/seed")
def seed_demo(session: Session = Depends(require_admin), db=Depends(get_db)):
    count = catalog.seed_products(db)
    if not count:
        return {"status": "already-seeded"}
    return {"status": "seeded", "count": count}


# Live feeds
async def _pump(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        payload = await queue.get()
        await websocket.send_json(jsonable_encoder(payload))


async def _resolve_into(feed: RoleGatedFeed, db, token: Optional[str]) -> None:
    """Resolve identity, then role, updating the feed after each phase."""
    identity = await run_in_threadpool(resolve_identity, db, token)
    await run_in_threadpool(feed.update, Session(identity=identity, identity_resolved=True))
    is_admin = await run_in_threadpool(resolve_role, db, identity)
    await run_in_threadpool(feed.update, Session(identity=identity, identity_resolved=True, is_admin=is_admin))


@app.websocket("/ws/orders")
async def orders_feed(websocket: WebSocket, token: Optional[str] = None, db=Depends(get_db)):
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(state: FeedState):
        loop.call_soon_threadsafe(queue.put_nowait, {"data": state.data, "is_loading": state.is_loading})

    def fail(exc: Exception):
        logger.error("Orders feed query failed: %s", exc)
        loop.call_soon_threadsafe(queue.put_nowait, {"error": "Could not load orders."})

    feed = RoleGatedFeed(db, "orders", push, on_error=fail)
    feed.update(Session.loading())
    sender = asyncio.create_task(_pump(websocket, queue))
    try:
        await _resolve_into(feed, db, token)
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                logger.warning("Ignoring non-JSON frame on orders feed")
                continue
            if not isinstance(message, dict):
                logger.warning("Ignoring orders feed frame that is not an object")
                continue
            if "token" in message:
                feed.update(Session.loading())
                await _resolve_into(feed, db, message["token"])
    except WebSocketDisconnect:
        pass
    finally:
        feed.close()
        sender.cancel()


@app.websocket("/ws/products")
async def products_feed(websocket: WebSocket, db=Depends(get_db)):
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(data: List[dict]):
        loop.call_soon_threadsafe(queue.put_nowait, {"data": data, "is_loading": False})

    subscription = await run_in_threadpool(LiveQuery(db, "products").subscribe, push)
    sender = asyncio.create_task(_pump(websocket, queue))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        subscription.cancel()
        sender.cancel()


# Simple health
@app.get("/test")
def test_database(db=Depends(get_db)):
    status = {
        "backend": "running",
        "database": "not-configured",
    }
    try:
        db.list_collection_names()
        status["database"] = "connected"
    except Exception:
        status["database"] = "error"
    return status


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
