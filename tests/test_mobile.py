from fixtures_data import CHECK_IN_PAYLOAD, COMPANY_ONE_ADMIN, COMPANY_ONE_TECH
from rankitpro.services.auth import create_access_token, decode_access_token
from rankitpro.services.login_attempts import MAX_FAILED_ATTEMPTS, get_login_attempt


def _token(client, credentials: dict) -> str:
    response = client.post(
        "/api/mobile/auth/login",
        json={"email": credentials["email"], "password": credentials["password"]},
    )
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def test_mobile_login_issues_bearer_token_without_cookie(client_for, seeded):
    response = client_for().post(
        "/api/mobile/auth/login",
        json={"email": COMPANY_ONE_TECH["email"], "password": COMPANY_ONE_TECH["password"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["id"] == seeded.tech_user_one.id
    assert "set-cookie" not in response.headers
    claims = decode_access_token(body["access_token"])
    assert claims["sub"] == str(seeded.tech_user_one.id)
    assert claims["company_id"] == seeded.company_one.id


def test_mobile_login_rejects_bad_password(client_for, seeded):
    response = client_for().post(
        "/api/mobile/auth/login",
        json={"email": COMPANY_ONE_TECH["email"], "password": "not-it"},
    )

    assert response.status_code == 401
    assert response.json() == {"message": "Invalid credentials"}


def test_technician_sees_only_own_check_ins(client_for, seeded):
    admin = client_for(COMPANY_ONE_ADMIN)
    admin.post("/api/check-ins", json={**CHECK_IN_PAYLOAD, "technician_id": seeded.technician_one.id})
    admin.post("/api/check-ins", json={**CHECK_IN_PAYLOAD, "technician_id": seeded.spare_technician_one.id})
    client = client_for()
    token = _token(client, COMPANY_ONE_TECH)

    response = client.get("/api/mobile/check-ins", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert [item["technician_id"] for item in response.json()] == [seeded.technician_one.id]


def test_company_admin_token_sees_company_check_ins(client_for, seeded):
    admin = client_for(COMPANY_ONE_ADMIN)
    admin.post("/api/check-ins", json={**CHECK_IN_PAYLOAD, "technician_id": seeded.technician_one.id})
    admin.post("/api/check-ins", json={**CHECK_IN_PAYLOAD, "technician_id": seeded.spare_technician_one.id})
    token = _token(admin, COMPANY_ONE_ADMIN)

    response = client_for().get("/api/mobile/check-ins", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert len(response.json()) == 2


def test_missing_token_is_401_with_challenge(client_for, seeded):
    response = client_for().get("/api/mobile/check-ins")

    assert response.status_code == 401
    assert response.json() == {"message": "Authentication required"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_garbage_token_is_rejected(client_for, seeded):
    response = client_for().get("/api/mobile/check-ins", headers={"Authorization": "Bearer not.a.jwt"})

    assert response.status_code == 401
    assert response.json() == {"message": "Invalid or expired token"}


def test_token_of_disabled_user_is_rejected(client_for, seeded, db):
    token = create_access_token(seeded.tech_user_one.id)
    seeded.tech_user_one.active = False
    db.commit()

    response = client_for().get("/api/mobile/check-ins", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json() == {"message": "Account is disabled"}


def test_expired_token_is_rejected(client_for, seeded):
    token = create_access_token(seeded.tech_user_one.id, expires_minutes=-5)

    response = client_for().get("/api/mobile/check-ins", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_with_non_ascii_digit_subject_is_rejected(client_for, seeded):
    token = create_access_token("²")

    response = client_for().get("/api/mobile/check-ins", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json() == {"message": "User not found"}


def test_disabled_account_with_right_password_does_not_lock_email(client_for, seeded, db):
    seeded.tech_user_one.active = False
    db.commit()
    client = client_for()
    payload = {"email": COMPANY_ONE_TECH["email"], "password": COMPANY_ONE_TECH["password"]}

    responses = [client.post("/api/mobile/auth/login", json=payload) for _ in range(MAX_FAILED_ATTEMPTS + 2)]

    assert {response.status_code for response in responses} == {401}
    assert responses[-1].json() == {"message": "Account is disabled"}
    assert get_login_attempt(db, COMPANY_ONE_TECH["email"]) is None
