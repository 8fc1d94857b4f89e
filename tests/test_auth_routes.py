from conftest import login
from fixtures_data import COMPANY_ONE_ADMIN, COMPANY_ONE_TECH
from rankitpro.core import config
from rankitpro.services.audit import list_audit_events
from rankitpro.services.login_attempts import MAX_FAILED_ATTEMPTS, get_login_attempt


def test_login_sets_http_only_session_cookie(client_for, seeded):
    client = client_for()

    response = client.post(
        "/api/auth/login",
        json={"email": COMPANY_ONE_ADMIN["email"], "password": COMPANY_ONE_ADMIN["password"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == COMPANY_ONE_ADMIN["email"]
    assert body["user"]["role"] == "company_admin"
    assert body["company"]["id"] == seeded.company_one.id

    set_cookie = response.headers.get("set-cookie", "")
    assert f"{config.SESSION_COOKIE_NAME}=" in set_cookie
    assert "HttpOnly" in set_cookie
    assert "Path=/" in set_cookie
    assert "SameSite=lax" in set_cookie
    assert f"Max-Age={config.SESSION_MAX_AGE_SECONDS}" in set_cookie


def test_remember_me_uses_long_cookie_lifetime(client_for, seeded):
    client = client_for()

    response = client.post(
        "/api/auth/login",
        json={
            "email": COMPANY_ONE_ADMIN["email"],
            "password": COMPANY_ONE_ADMIN["password"],
            "remember_me": True,
        },
    )

    assert response.status_code == 200
    assert f"Max-Age={config.REMEMBER_ME_MAX_AGE_SECONDS}" in response.headers.get("set-cookie", "")


def test_login_is_case_insensitive_on_email(client_for, seeded):
    client = client_for()

    response = client.post(
        "/api/auth/login",
        json={"email": COMPANY_ONE_ADMIN["email"].upper(), "password": COMPANY_ONE_ADMIN["password"]},
    )

    assert response.status_code == 200


def test_wrong_password_is_generic_401_and_audited(client_for, seeded, db):
    client = client_for()

    response = client.post(
        "/api/auth/login",
        json={"email": COMPANY_ONE_ADMIN["email"], "password": "wrong-password"},
    )
    unknown = client.post(
        "/api/auth/login",
        json={"email": "nobody@testcompany.com", "password": "wrong-password"},
    )

    assert response.status_code == 401
    assert response.json() == {"message": "Invalid credentials"}
    assert unknown.json() == response.json()
    assert "set-cookie" not in response.headers
    events = list_audit_events(db, action="login_failed")
    assert len(events) == 2


def test_repeated_failures_lock_the_account(client_for, seeded, db):
    client = client_for()
    payload = {"email": COMPANY_ONE_TECH["email"], "password": "wrong-password"}

    statuses = [client.post("/api/auth/login", json=payload).status_code for _ in range(MAX_FAILED_ATTEMPTS)]

    assert statuses[:-1] == [401] * (MAX_FAILED_ATTEMPTS - 1)
    assert statuses[-1] == 429
    attempt = get_login_attempt(db, COMPANY_ONE_TECH["email"])
    assert attempt is not None and attempt.locked_until is not None

    correct = client.post(
        "/api/auth/login",
        json={"email": COMPANY_ONE_TECH["email"], "password": COMPANY_ONE_TECH["password"]},
    )
    assert correct.status_code == 429
    assert list_audit_events(db, action="login_locked")


def test_successful_login_clears_failed_attempts(client_for, seeded, db):
    client = client_for()
    client.post("/api/auth/login", json={"email": COMPANY_ONE_TECH["email"], "password": "nope-nope"})
    assert get_login_attempt(db, COMPANY_ONE_TECH["email"]) is not None

    login(client, COMPANY_ONE_TECH)

    assert get_login_attempt(db, COMPANY_ONE_TECH["email"]) is None
    assert seeded.tech_user_one.last_login_at is not None


def test_disabled_account_cannot_log_in(client_for, seeded, db):
    seeded.tech_user_one.active = False
    db.commit()

    response = client_for().post(
        "/api/auth/login",
        json={"email": COMPANY_ONE_TECH["email"], "password": COMPANY_ONE_TECH["password"]},
    )

    assert response.status_code == 401
    assert response.json() == {"message": "Account is disabled"}


def test_login_replaces_previous_session_of_the_same_client(client_for, seeded, store):
    client = client_for(COMPANY_ONE_ADMIN)
    login(client, COMPANY_ONE_ADMIN)

    assert store.count_for_user(seeded.admin_one.id) == 1


def test_session_cap_evicts_oldest_login(client_for, seeded, store):
    clients = [client_for(COMPANY_ONE_ADMIN) for _ in range(config.MAX_SESSIONS_PER_USER + 1)]

    assert store.count_for_user(seeded.admin_one.id) == config.MAX_SESSIONS_PER_USER
    assert clients[0].get("/api/auth/me").status_code == 401
    assert clients[-1].get("/api/auth/me").status_code == 200


def test_me_returns_user_and_company(client_for, seeded):
    response = client_for(COMPANY_ONE_TECH).get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["user"]["username"] == COMPANY_ONE_TECH["username"]
    assert response.json()["company"]["name"] == "Test Company"


def test_register_creates_company_admin_and_session(client_for, db):
    client = client_for()

    response = client.post(
        "/api/auth/register",
        json={
            "email": "owner@newco.com",
            "username": "newco_owner",
            "password": "newco-pass-1",
            "company_name": "NewCo",
            "plan": "agency",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["role"] == "company_admin"
    assert body["company"]["plan"] == "agency"
    assert body["company"]["usage_limit"] == 1000
    assert body["user"]["company_id"] == body["company"]["id"]

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["company"]["name"] == "NewCo"


def test_register_rejects_taken_email(client_for, seeded):
    response = client_for().post(
        "/api/auth/register",
        json={
            "email": COMPANY_ONE_ADMIN["email"],
            "username": "another_name",
            "password": "long-enough-1",
            "company_name": "Dup Co",
        },
    )

    assert response.status_code == 400
    assert response.json() == {"message": "Email already in use"}


def test_login_validation_errors_use_message_shape(client_for):
    response = client_for().post("/api/auth/login", json={"email": "not-an-email"})

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation error"
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "password"} <= fields
