"""
Sales analytics computed from the orders collection.

Only Delivered orders count as revenue. Weeks start on Monday (UTC).
"""

from collections import Counter, OrderedDict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from catalog import CATEGORIES
from database import get_documents, now_utc, to_local_datetime
from schemas import CategoryRevenue, SalesReport, StatusCount, WeeklySales

WEEKS = 8


def week_start(moment: datetime) -> datetime:
    day = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return day - timedelta(days=day.weekday())


def build_report(orders: List[Dict], products: List[Dict], now: Optional[datetime] = None) -> SalesReport:
    now = now or now_utc()
    delivered = [o for o in orders if o.get("status") == "Delivered"]
    total_revenue = sum(int(o.get("total", 0)) for o in delivered)

    current_week = week_start(now)
    weekly = OrderedDict()
    for i in range(WEEKS - 1, -1, -1):
        weekly[(current_week - timedelta(weeks=i)).date().isoformat()] = 0
    for o in delivered:
        key = week_start(to_local_datetime(o.get("created_at"))).date().isoformat()
        if key in weekly:
            weekly[key] += int(o.get("total", 0))

    status_counts = Counter(o.get("status", "Pending") for o in orders)

    product_category = {p["id"]: p.get("category") for p in products}
    by_category = OrderedDict((c["id"], 0) for c in CATEGORIES)
    for o in delivered:
        for item in o.get("items", []):
            category = product_category.get(item.get("product_id"))
            if category in by_category:
                by_category[category] += int(item.get("price", 0)) * int(item.get("quantity", 0))
    names = {c["id"]: c["name"] for c in CATEGORIES}

    return SalesReport(
        weekly_sales=[WeeklySales(date=d, revenue=r) for d, r in weekly.items()],
        order_status_counts=[StatusCount(name=s, value=n) for s, n in status_counts.items()],
        category_revenue=[CategoryRevenue(name=names[c], revenue=r) for c, r in by_category.items() if r > 0],
        total_revenue=total_revenue,
    )


def sales_report(db) -> SalesReport:
    orders = get_documents(db, "orders")
    products = [{"id": str(p["_id"]), "category": p.get("category")} for p in get_documents(db, "products")]
    return build_report(orders, products)
