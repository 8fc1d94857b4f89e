import logging

from fixtures_data import COMPANY_ONE_ADMIN, COMPANY_ONE_TECH, COMPANY_TWO_ADMIN, SUPER_ADMIN
from rankitpro.core.logging_setup import AUDIT_LOGGER_NAME

PLAN_PAYLOAD = {
    "name": "Pro Monthly",
    "tier": "pro",
    "price": "49.00",
    "billing_period": "monthly",
    "max_technicians": 10,
    "max_check_ins": 200,
    "features": ["wordpress", "reviews"],
}


def test_system_stats_counts_everything(client_for, seeded):
    response = client_for(SUPER_ADMIN).get("/api/admin/system-stats")

    assert response.status_code == 200
    assert response.json() == {
        "total_companies": 2,
        "active_companies": 2,
        "total_users": 5,
        "total_technicians": 3,
        "total_check_ins": 0,
    }


def test_company_status_toggle(client_for, seeded):
    client = client_for(SUPER_ADMIN)

    off = client.patch(f"/api/admin/companies/{seeded.company_two.id}/status", json={"is_active": False})
    missing = client.patch("/api/admin/companies/9999/status", json={"is_active": False})

    assert off.status_code == 200
    assert off.json()["is_active"] is False
    assert off.json()["status"] == "Inactive"
    assert missing.status_code == 404


def test_company_admin_cannot_toggle_company_status(client_for, seeded):
    response = client_for(COMPANY_ONE_ADMIN).patch(
        f"/api/admin/companies/{seeded.company_one.id}/status", json={"is_active": False}
    )

    assert response.status_code == 403


def test_create_admin_account_validates_company(client_for, seeded):
    client = client_for(SUPER_ADMIN)

    no_company = client.post(
        "/api/admin/admin-users",
        json={"email": "boss@testcompany.com", "username": "boss", "password": "boss-pass-1", "role": "company_admin"},
    )
    created = client.post(
        "/api/admin/admin-users",
        json={
            "email": "boss@testcompany.com",
            "username": "boss",
            "password": "boss-pass-1",
            "role": "company_admin",
            "company_id": seeded.company_one.id,
        },
    )

    assert no_company.status_code == 400
    assert created.status_code == 201
    assert created.json()["company_id"] == seeded.company_one.id


def test_admin_accounts_cannot_touch_self_or_super_admins(client_for, seeded, db):
    client = client_for(SUPER_ADMIN)
    other_root = client.post(
        "/api/admin/admin-users",
        json={"email": "root2@rankitpro.com", "username": "root2", "password": "root-pass-22", "role": "super_admin"},
    ).json()

    own = client.patch(f"/api/admin/admin-users/{seeded.super_admin.id}/status", json={"active": False})
    other = client.delete(f"/api/admin/admin-users/{other_root['id']}")
    company_admin = client.patch(f"/api/admin/admin-users/{seeded.admin_two.id}/status", json={"active": False})

    assert own.status_code == 400
    assert other.status_code == 403
    assert company_admin.status_code == 200
    assert company_admin.json()["active"] is False


def test_super_admin_account_denials_reach_the_audit_log(client_for, seeded, caplog):
    client = client_for(SUPER_ADMIN)
    other_root = client.post(
        "/api/admin/admin-users",
        json={"email": "root3@rankitpro.com", "username": "root3", "password": "root-pass-33", "role": "super_admin"},
    ).json()

    with caplog.at_level(logging.WARNING, logger=AUDIT_LOGGER_NAME):
        own = client.delete(f"/api/admin/admin-users/{seeded.super_admin.id}")
        other = client.patch(f"/api/admin/admin-users/{other_root['id']}/status", json={"active": False})

    assert own.status_code == 400
    assert other.status_code == 403
    assert other.json() == {"message": "Cannot modify super admin accounts"}
    audit = [record for record in caplog.records if record.name == AUDIT_LOGGER_NAME]
    denied = next(record for record in audit if getattr(record, "event", None) == "access_denied")
    assert denied.reason == "role_required"
    assert denied.role == "super_admin"
    assert denied.user_id == seeded.super_admin.id
    assert denied.status_code == 403
    assert any(getattr(record, "event", None) == "self_action_blocked" for record in audit)


def test_change_user_password_revokes_sessions(client_for, seeded, store):
    victim = client_for(COMPANY_TWO_ADMIN)
    root = client_for(SUPER_ADMIN)

    response = root.post(
        "/api/admin/change-user-password",
        json={"user_id": seeded.admin_two.id, "new_password": "brand-new-pass"},
    )

    assert response.status_code == 200
    assert victim.get("/api/auth/me").status_code == 401
    relogin = client_for().post(
        "/api/auth/login", json={"email": COMPANY_TWO_ADMIN["email"], "password": "brand-new-pass"}
    )
    assert relogin.status_code == 200


def test_subscription_plan_crud(client_for, seeded):
    client = client_for(SUPER_ADMIN)

    created = client.post("/api/admin/subscription-plans", json=PLAN_PAYLOAD)
    duplicate = client.post("/api/admin/subscription-plans", json=PLAN_PAYLOAD)
    plan_id = created.json()["id"]
    updated = client.put(f"/api/admin/subscription-plans/{plan_id}", json={"price": "59.00"})
    listing = client.get("/api/admin/subscription-plans")

    assert created.status_code == 201
    assert duplicate.status_code == 400
    assert duplicate.json() == {"message": "Plan name already exists"}
    assert updated.status_code == 200
    assert float(updated.json()["price"]) == 59.0
    assert [plan["name"] for plan in listing.json()] == ["Pro Monthly"]


def test_plan_with_subscribers_cannot_be_deleted(client_for, seeded):
    client = client_for(SUPER_ADMIN)
    in_use = client.post("/api/admin/subscription-plans", json=PLAN_PAYLOAD).json()
    unused = client.post(
        "/api/admin/subscription-plans",
        json={**PLAN_PAYLOAD, "name": "Agency Yearly", "tier": "agency", "billing_period": "yearly"},
    ).json()

    blocked = client.delete(f"/api/admin/subscription-plans/{in_use['id']}")
    deleted = client.delete(f"/api/admin/subscription-plans/{unused['id']}")

    assert blocked.status_code == 400
    assert deleted.status_code == 200


def test_active_plans_visible_to_any_session(client_for, seeded):
    client_for(SUPER_ADMIN).post("/api/admin/subscription-plans", json={**PLAN_PAYLOAD, "is_active": False})

    response = client_for(COMPANY_ONE_TECH).get("/api/billing/plans")

    assert response.status_code == 200
    assert response.json() == []


def test_audit_trail_records_admin_actions(client_for, seeded):
    client = client_for(SUPER_ADMIN)
    client.patch(f"/api/admin/companies/{seeded.company_two.id}/status", json={"is_active": False})

    response = client.get(f"/api/admin/audit?company_id={seeded.company_two.id}")

    assert response.status_code == 200
    actions = [entry["action"] for entry in response.json()]
    assert "deactivate_company" in actions


def test_metrics_snapshot_includes_served_routes(client_for, seeded):
    client = client_for(SUPER_ADMIN)
    client.get(f"/api/companies/{seeded.company_one.id}")

    response = client.get("/api/admin/metrics")

    assert response.status_code == 200
    assert any(key.startswith("GET /api/companies/") for key in response.json()["endpoints"])


def test_company_admin_user_rules(client_for, seeded):
    admin = client_for(COMPANY_ONE_ADMIN)

    created = admin.post(
        "/api/users",
        json={
            "email": "helper@testcompany.com",
            "username": "helper",
            "password": "helper-pass-1",
            "role": "sales_staff",
            "company_id": seeded.company_one.id,
        },
    )
    another_admin = admin.post(
        "/api/users",
        json={"email": "a2@testcompany.com", "username": "admin_two_b", "password": "admin-pass-1", "role": "company_admin"},
    )
    foreign = admin.post(
        "/api/users",
        json={
            "email": "f@testcompany.com",
            "username": "foreign",
            "password": "foreign-pass",
            "company_id": seeded.company_two.id,
        },
    )
    promote = admin.put(f"/api/users/{seeded.tech_user_one.id}", json={"role": "company_admin"})
    own_status = admin.patch(f"/api/users/{seeded.admin_one.id}/status", json={"active": False})
    other_tenant = admin.get(f"/api/users/{seeded.admin_two.id}")

    assert created.status_code == 201
    assert created.json()["company_id"] == seeded.company_one.id
    assert another_admin.status_code == 403
    assert foreign.status_code == 403
    assert promote.status_code == 403
    assert own_status.status_code == 403
    assert other_tenant.status_code == 403


def test_technician_user_rules(client_for, seeded):
    tech = client_for(COMPANY_ONE_TECH)

    listing = tech.get("/api/users")
    own = tech.put(f"/api/users/{seeded.tech_user_one.id}", json={"username": "johnny"})
    other = tech.put(f"/api/users/{seeded.admin_one.id}", json={"username": "hacked"})
    own_role = tech.put(f"/api/users/{seeded.tech_user_one.id}", json={"role": "sales_staff"})

    assert listing.status_code == 403
    assert own.status_code == 200
    assert own.json()["username"] == "johnny"
    assert other.status_code == 403
    assert own_role.status_code == 403
    assert own_role.json() == {"message": "You cannot change your own role"}
