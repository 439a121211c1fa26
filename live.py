"""
Live subscriptions and the role-gated collection query.

A LiveQuery re-delivers its full, newest-first result set whenever its
collection is written. RoleGatedFeed picks which query a session is allowed
to see (all records for admins, own records otherwise) and keeps at most one
subscription alive, cancelling the old one before starting a new one.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from database import changes, get_documents, serialize_doc

logger = logging.getLogger(__name__)


class PlanKind(str, Enum):
    PENDING = "pending"
    EMPTY = "empty"
    PRIVILEGED = "privileged"
    SCOPED = "scoped"


@dataclass(frozen=True)
class QueryPlan:
    kind: PlanKind
    filter: Optional[Dict[str, Any]] = None


@dataclass
class FeedState:
    data: List[Dict[str, Any]] = field(default_factory=list)
    is_loading: bool = True


def plan_role_gated_query(session, owner_field: str = "user_id", extra: Optional[Dict[str, Any]] = None) -> QueryPlan:
    """Decide which query, if any, `session` may run.

    Nothing is queried until the identity is known and, for a signed-in
    identity, until the admin check has finished.
    """
    if not session.identity_resolved:
        return QueryPlan(PlanKind.PENDING)
    if not session.signed_in:
        return QueryPlan(PlanKind.EMPTY)
    if session.is_admin is None:
        return QueryPlan(PlanKind.PENDING)
    if session.is_admin:
        return QueryPlan(PlanKind.PRIVILEGED, dict(extra or {}))
    return QueryPlan(PlanKind.SCOPED, {**(extra or {}), owner_field: session.identity.uid})


def run_query(db, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return [serialize_doc(d) for d in get_documents(db, collection_name, filter_dict)]


def run_plan(db, collection_name: str, plan: QueryPlan) -> List[Dict[str, Any]]:
    if plan.kind in (PlanKind.PENDING, PlanKind.EMPTY):
        return []
    return run_query(db, collection_name, plan.filter)


class Subscription:
    def __init__(self, collection_name: str):
        self.collection_name = collection_name
        self._token: Optional[int] = None
        self._lock = threading.Lock()
        self.active = True

    def cancel(self) -> None:
        with self._lock:
            if not self.active:
                return
            self.active = False
            token, self._token = self._token, None
        if token is not None:
            changes.unlisten(self.collection_name, token)


class LiveQuery:
    def __init__(self, db, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None):
        self.db = db
        self.collection_name = collection_name
        self.filter = filter_dict or {}

    def snapshot(self) -> List[Dict[str, Any]]:
        return run_query(self.db, self.collection_name, self.filter)

    def subscribe(self, callback: Callable[[List[Dict[str, Any]]], None], on_error: Optional[Callable[[Exception], None]] = None) -> Subscription:
        """Deliver the current snapshot now and a fresh one after every write."""
        sub = Subscription(self.collection_name)

        def deliver(_collection_name=None):
            if not sub.active:
                return
            try:
                data = self.snapshot()
            except Exception as e:
                if on_error is None:
                    raise
                on_error(e)
                return
            # re-checked after the read so a cancel during the read wins
            if sub.active:
                callback(data)

        sub._token = changes.listen(self.collection_name, deliver)
        deliver()
        return sub


class RoleGatedFeed:
    """Owns the single live subscription behind one logical data need."""

    def __init__(self, db, collection_name: str, on_state: Callable[[FeedState], None], owner_field: str = "user_id", on_error: Optional[Callable[[Exception], None]] = None):
        self.db = db
        self.collection_name = collection_name
        self.owner_field = owner_field
        self.on_state = on_state
        self.on_error = on_error
        self.plan: Optional[QueryPlan] = None
        self.state = FeedState()
        self._subscription: Optional[Subscription] = None
        self._lock = threading.RLock()

    def _emit(self, state: FeedState) -> None:
        self.state = state
        self.on_state(state)

    def update(self, session) -> QueryPlan:
        plan = plan_role_gated_query(session, self.owner_field)
        with self._lock:
            if plan == self.plan:
                return plan
            self.plan = plan
            self._cancel()
            if plan.kind == PlanKind.PENDING:
                self._emit(FeedState(data=[], is_loading=True))
            elif plan.kind == PlanKind.EMPTY:
                self._emit(FeedState(data=[], is_loading=False))
            else:
                query = LiveQuery(self.db, self.collection_name, plan.filter)
                self._subscription = query.subscribe(self._on_snapshot(plan), on_error=self.on_error)
        logger.debug("%s feed switched to %s", self.collection_name, plan.kind.value)
        return plan

    def _on_snapshot(self, plan: QueryPlan):
        def handle(data):
            with self._lock:
                if self.plan != plan:
                    return
                self._emit(FeedState(data=data, is_loading=False))
        return handle

    def _cancel(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    @property
    def active_subscriptions(self) -> int:
        return 1 if self._subscription is not None and self._subscription.active else 0

    def close(self) -> None:
        with self._lock:
            self._cancel()
            self.plan = None
