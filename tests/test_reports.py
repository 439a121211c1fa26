from datetime import datetime, timedelta, timezone

from reports import build_report, week_start

from .conftest import bearer

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)  # a Wednesday


def order(status, total, days_ago, items=()):
    return {"status": status, "total": total, "created_at": NOW - timedelta(days=days_ago), "items": list(items)}


def test_week_start_is_monday():
    assert week_start(NOW).date().isoformat() == "2024-05-13"


def test_report_counts_only_delivered_revenue():
    products = [{"id": "p1", "category": "living-room"}, {"id": "p2", "category": "office"}]
    orders = [
        order("Delivered", 30000, 0, [{"product_id": "p1", "price": 10000, "quantity": 3}]),
        order("Delivered", 5000, 7, [{"product_id": "p2", "price": 5000, "quantity": 1}]),
        order("Pending", 99999, 1, [{"product_id": "p1", "price": 99999, "quantity": 1}]),
        order("Cancelled", 1000, 2),
        order("Delivered", 7000, 70),
    ]

    report = build_report(orders, products, now=NOW)

    assert report.total_revenue == 42000
    assert len(report.weekly_sales) == 8
    assert report.weekly_sales[-1].date == "2024-05-13"
    assert report.weekly_sales[-1].revenue == 30000
    assert report.weekly_sales[-2].revenue == 5000
    assert sum(w.revenue for w in report.weekly_sales) == 35000
    assert {s.name: s.value for s in report.order_status_counts} == {"Delivered": 3, "Pending": 1, "Cancelled": 1}
    assert {c.name: c.revenue for c in report.category_revenue} == {"Living Room": 30000, "Office": 5000}


def test_report_endpoints(client, admin, make_product):
    pid = make_product(stock=5, price=10000)
    client.post("/api/admin/direct-sale", json={"product_id": pid, "quantity": 2}, headers=bearer(admin["token"]))

    report = client.get("/api/admin/reports", headers=bearer(admin["token"])).json()
    assert report["total_revenue"] == 20000
    assert report["category_revenue"] == [{"name": "Dining", "revenue": 20000}]

    insights = client.get("/api/admin/reports/insights", headers=bearer(admin["token"])).json()
    assert insights["insights"] == ["AI insights could not be generated at this time. Please try again later."]
