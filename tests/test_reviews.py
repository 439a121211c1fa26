from database import get_document

from .conftest import bearer


def submit(client, token, rating=5, message="Beautiful carved sofa, fast delivery"):
    res = client.post("/api/reviews", json={"rating": rating, "message": message}, headers=bearer(token))
    assert res.status_code == 200, res.text
    return res.json()


def test_submission_lands_in_moderation_queue_only(client, customer, admin):
    review = submit(client, customer["token"])

    assert review["status"] == "pending"
    assert review["name"] == "Amina"
    assert client.get("/api/reviews").json() == []
    queue = client.get("/api/admin/reviews", headers=bearer(admin["token"])).json()
    assert [r["id"] for r in queue] == [review["id"]]


def test_submission_requires_sign_in(client):
    assert client.post("/api/reviews", json={"rating": 4, "message": "Nice"}).status_code == 401


def test_rating_out_of_range_is_rejected(client, customer):
    res = client.post("/api/reviews", json={"rating": 6, "message": "Too good"}, headers=bearer(customer["token"]))
    assert res.status_code == 422


def test_approval_copies_public_fields_and_marks_private_approved(client, db, customer, admin):
    review = submit(client, customer["token"], rating=4)
    private_before = get_document(db, "reviews_private", review["id"])

    res = client.post(f"/api/admin/reviews/{review['id']}/approve", headers=bearer(admin["token"]))
    assert res.status_code == 200

    public = get_document(db, "reviews_public", review["id"])
    assert set(public) == {"_id", "name", "rating", "message", "created_at", "approved_at"}
    assert public["rating"] == 4
    assert public["name"] == "Amina"
    assert abs((public["created_at"] - private_before["created_at"]).total_seconds()) < 1
    assert db["reviews_public"].count_documents({}) == 1

    private = get_document(db, "reviews_private", review["id"])
    assert private is not None
    assert private["status"] == "approved"

    listed = client.get("/api/reviews").json()
    assert [r["id"] for r in listed] == [review["id"]]


def test_approving_twice_keeps_one_public_copy(client, db, customer, admin):
    review = submit(client, customer["token"])
    headers = bearer(admin["token"])
    client.post(f"/api/admin/reviews/{review['id']}/approve", headers=headers)
    client.post(f"/api/admin/reviews/{review['id']}/approve", headers=headers)
    assert db["reviews_public"].count_documents({}) == 1


def test_reject_removes_private_and_public_copies(client, db, customer, admin):
    review = submit(client, customer["token"])
    headers = bearer(admin["token"])
    client.post(f"/api/admin/reviews/{review['id']}/approve", headers=headers)

    res = client.post(f"/api/admin/reviews/{review['id']}/reject", headers=headers)
    assert res.status_code == 200
    assert get_document(db, "reviews_private", review["id"]) is None
    assert get_document(db, "reviews_public", review["id"]) is None


def test_delete_missing_review_is_404(client, admin):
    res = client.delete("/api/admin/reviews/64b7f0c2a1b2c3d4e5f60718", headers=bearer(admin["token"]))
    assert res.status_code == 404


def test_moderation_is_admin_only(client, customer):
    review = submit(client, customer["token"])
    res = client.post(f"/api/admin/reviews/{review['id']}/approve", headers=bearer(customer["token"]))
    assert res.status_code == 403
