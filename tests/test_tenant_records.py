from fixtures_data import (
    CHECK_IN_PAYLOAD,
    COMPANY_ONE_ADMIN,
    COMPANY_ONE_TECH,
    COMPANY_TWO_ADMIN,
    SUPER_ADMIN,
)
from rankitpro.services.directory import Directory


def _check_in(technician_id: int, **overrides) -> dict:
    return {**CHECK_IN_PAYLOAD, "technician_id": technician_id, **overrides}


def test_technician_records_own_check_in(client_for, seeded):
    client = client_for(COMPANY_ONE_TECH)

    response = client.post("/api/check-ins", json=_check_in(seeded.technician_one.id))

    assert response.status_code == 201
    body = response.json()
    assert body["company_id"] == seeded.company_one.id
    assert body["technician_id"] == seeded.technician_one.id
    assert body["job_type"] == "AC Repair"


def test_technician_cannot_record_for_a_colleague(client_for, seeded):
    client = client_for(COMPANY_ONE_TECH)

    response = client.post("/api/check-ins", json=_check_in(seeded.spare_technician_one.id))

    assert response.status_code == 403
    assert response.json() == {"message": "Technicians can only record their own check-ins"}


def test_check_in_for_technician_of_other_company_is_forbidden(client_for, seeded):
    client = client_for(COMPANY_ONE_ADMIN)

    response = client.post("/api/check-ins", json=_check_in(seeded.technician_two.id))

    assert response.status_code == 403
    assert response.json() == {"message": "Access denied to this company"}


def test_check_in_limit_is_enforced(client_for, seeded, db):
    Directory(db).update_company(seeded.company_one, usage_limit=1)
    db.commit()
    client = client_for(COMPANY_ONE_ADMIN)

    first = client.post("/api/check-ins", json=_check_in(seeded.technician_one.id))
    second = client.post("/api/check-ins", json=_check_in(seeded.spare_technician_one.id))

    assert first.status_code == 201
    assert second.status_code == 400
    assert second.json() == {"message": "Check-in limit reached for the current plan"}
    assert Directory(db).count_check_ins_by_company(seeded.company_one.id) == 1


def test_check_in_reads_are_tenant_scoped(client_for, seeded):
    created = client_for(COMPANY_ONE_ADMIN).post("/api/check-ins", json=_check_in(seeded.technician_one.id))
    check_in_id = created.json()["id"]
    other_admin = client_for(COMPANY_TWO_ADMIN)

    listing = other_admin.get("/api/check-ins")
    direct = other_admin.get(f"/api/check-ins/{check_in_id}")
    patch = other_admin.patch(f"/api/check-ins/{check_in_id}", json={"notes": "hijack"})

    assert listing.status_code == 200
    assert listing.json() == []
    assert direct.status_code == 403
    assert patch.status_code == 403


def test_only_company_admin_deletes_check_ins(client_for, seeded):
    tech = client_for(COMPANY_ONE_TECH)
    created = tech.post("/api/check-ins", json=_check_in(seeded.technician_one.id)).json()

    denied = tech.delete(f"/api/check-ins/{created['id']}")
    allowed = client_for(COMPANY_ONE_ADMIN).delete(f"/api/check-ins/{created['id']}")

    assert denied.status_code == 403
    assert allowed.status_code == 200


def test_usage_reports_remaining_check_ins(client_for, seeded):
    admin = client_for(COMPANY_ONE_ADMIN)
    admin.post("/api/check-ins", json=_check_in(seeded.technician_one.id))

    response = admin.get("/api/billing/usage")

    assert response.status_code == 200
    assert response.json() == {
        "company_id": seeded.company_one.id,
        "plan": "pro",
        "usage_limit": 200,
        "check_ins_used": 1,
        "remaining": 199,
        "technicians": 2,
    }


def test_company_admin_creates_technician_in_own_company(client_for, seeded):
    admin = client_for(COMPANY_ONE_ADMIN)

    created = admin.post("/api/technicians", json={"name": "New Tech", "email": "new@testcompany.com"})
    duplicate = admin.post("/api/technicians", json={"name": "Again", "email": "NEW@testcompany.com"})
    foreign = admin.post(
        "/api/technicians",
        json={"name": "Sneaky", "email": "sneaky@testcompany.com", "company_id": seeded.company_two.id},
    )

    assert created.status_code == 201
    assert created.json()["company_id"] == seeded.company_one.id
    assert duplicate.status_code == 400
    assert foreign.status_code == 403


def test_technician_edits_only_own_record(client_for, seeded):
    tech = client_for(COMPANY_ONE_TECH)

    own = tech.put(f"/api/technicians/{seeded.technician_one.id}", json={"phone": "555-0100"})
    colleague = tech.put(f"/api/technicians/{seeded.spare_technician_one.id}", json={"phone": "555-0101"})
    deactivate_self = tech.put(f"/api/technicians/{seeded.technician_one.id}", json={"active": False})

    assert own.status_code == 200
    assert own.json()["phone"] == "555-0100"
    assert colleague.status_code == 403
    assert deactivate_self.status_code == 403


def test_blog_post_with_foreign_check_in_is_forbidden(client_for, seeded):
    foreign = client_for(COMPANY_TWO_ADMIN).post(
        "/api/check-ins", json=_check_in(seeded.technician_two.id)
    ).json()

    response = client_for(COMPANY_ONE_ADMIN).post(
        "/api/blog-posts",
        json={"title": "Summer tips", "content": "Keep it cool", "check_in_id": foreign["id"]},
    )

    assert response.status_code == 403


def test_blog_post_lifecycle_within_company(client_for, seeded):
    admin = client_for(COMPANY_ONE_ADMIN)

    created = admin.post("/api/blog-posts", json={"title": "Summer tips", "content": "Keep it cool"})
    post_id = created.json()["id"]
    updated = admin.put(f"/api/blog-posts/{post_id}", json={"title": "Summer AC tips"})
    listing = admin.get("/api/blog-posts")
    other = client_for(COMPANY_TWO_ADMIN).get(f"/api/blog-posts/{post_id}")

    assert created.status_code == 201
    assert created.json()["status"] == "draft"
    assert updated.json()["title"] == "Summer AC tips"
    assert [item["id"] for item in listing.json()] == [post_id]
    assert other.status_code == 403


def test_review_request_needs_contact_for_method(client_for, seeded):
    tech = client_for(COMPANY_ONE_TECH)

    missing = tech.post(
        "/api/review-requests",
        json={"technician_id": seeded.technician_one.id, "customer_name": "Pat", "method": "sms"},
    )
    created = tech.post(
        "/api/review-requests",
        json={
            "technician_id": seeded.technician_one.id,
            "customer_name": "Pat",
            "method": "email",
            "email": "pat@customer.com",
        },
    )

    assert missing.status_code == 400
    assert created.status_code == 201
    assert created.json()["status"] == "pending"
    assert created.json()["company_id"] == seeded.company_one.id


def test_review_request_for_other_company_technician_is_forbidden(client_for, seeded):
    response = client_for(COMPANY_ONE_TECH).post(
        "/api/review-requests",
        json={
            "technician_id": seeded.technician_two.id,
            "customer_name": "Pat",
            "method": "email",
            "email": "pat@customer.com",
        },
    )

    assert response.status_code == 403


def test_technician_stats_count_activity(client_for, seeded):
    admin = client_for(COMPANY_ONE_ADMIN)
    admin.post("/api/check-ins", json=_check_in(seeded.technician_one.id))
    admin.post("/api/check-ins", json=_check_in(seeded.technician_one.id))

    response = admin.get(f"/api/technicians/company/{seeded.company_one.id}/stats")

    assert response.status_code == 200
    counts = {item["id"]: item["check_ins_count"] for item in response.json()}
    assert counts == {seeded.technician_one.id: 2, seeded.spare_technician_one.id: 0}


def test_super_admin_lists_technicians_across_companies(client_for, seeded):
    response = client_for(SUPER_ADMIN).get("/api/technicians/all")

    assert response.status_code == 200
    assert len(response.json()) == 3
