from fixtures_data import COMPANY_ONE_ADMIN, COMPANY_ONE_TECH, COMPANY_TWO_ADMIN, SUPER_ADMIN, TENANT_ACCESS_DENIED
from rankitpro.models.review_request import ReviewResponse


def _review_request(client, technician_id: int, customer_name: str = "Pat Doe") -> dict:
    response = client.post(
        "/api/review-requests",
        json={
            "technician_id": technician_id,
            "customer_name": customer_name,
            "method": "email",
            "email": "pat@example.com",
            "job_type": "AC Repair",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_customer_sees_form_and_submits_once(client_for, seeded):
    created = _review_request(client_for(COMPANY_ONE_ADMIN), seeded.technician_one.id)
    customer = client_for()

    form = customer.get(f"/api/review-responses/request/{created['token']}")
    submitted = customer.post(
        f"/api/review-responses/submit/{created['token']}",
        json={"rating": 5, "feedback": "Fast and friendly"},
    )
    again = customer.post(f"/api/review-responses/submit/{created['token']}", json={"rating": 1})
    form_after = customer.get(f"/api/review-responses/request/{created['token']}")

    assert form.status_code == 200
    assert form.json()["company_name"] == "Test Company"
    assert form.json()["technician_name"] == "John Smith"
    assert form.json()["customer_name"] == "Pat Doe"
    assert submitted.status_code == 201
    assert submitted.json()["rating"] == 5
    assert submitted.json()["company_id"] == seeded.company_one.id
    assert submitted.json()["public_display"] is True
    assert again.status_code == 400
    assert again.json() == {"message": "This review has already been submitted."}
    assert form_after.status_code == 400


def test_unknown_token_is_not_found(client_for, seeded):
    response = client_for().get("/api/review-responses/request/not-a-token")

    assert response.status_code == 404
    assert response.json() == {"message": "Review request not found or has expired."}


def test_rating_outside_range_is_rejected(client_for, seeded):
    created = _review_request(client_for(COMPANY_ONE_ADMIN), seeded.technician_one.id)

    response = client_for().post(f"/api/review-responses/submit/{created['token']}", json={"rating": 6})

    assert response.status_code == 400


def test_company_listing_and_stats_are_tenant_scoped(client_for, seeded):
    admin = client_for(COMPANY_ONE_ADMIN)
    customer = client_for()
    for rating, technician_id in ((5, seeded.technician_one.id), (3, seeded.spare_technician_one.id)):
        created = _review_request(admin, technician_id)
        customer.post(f"/api/review-responses/submit/{created['token']}", json={"rating": rating})

    listing = admin.get(f"/api/review-responses/company/{seeded.company_one.id}")
    stats = admin.get(f"/api/review-responses/stats/{seeded.company_one.id}")
    other = client_for(COMPANY_TWO_ADMIN).get(f"/api/review-responses/company/{seeded.company_one.id}")
    other_stats = client_for(COMPANY_TWO_ADMIN).get(f"/api/review-responses/stats/{seeded.company_one.id}")

    assert listing.status_code == 200
    assert {item["technician_name"] for item in listing.json()} == {"John Smith", "Alex Field"}
    assert stats.json() == {
        "total_responses": 2,
        "average_rating": 4.0,
        "rating_distribution": {"1": 0, "2": 0, "3": 1, "4": 0, "5": 1},
    }
    assert other.status_code == TENANT_ACCESS_DENIED["expected_status_code"]
    assert other.json() == {"message": TENANT_ACCESS_DENIED["expected_message"]}
    assert other_stats.status_code == 403


def test_technician_reviews_require_admin_of_that_company(client_for, seeded):
    created = _review_request(client_for(COMPANY_ONE_ADMIN), seeded.technician_one.id)
    client_for().post(f"/api/review-responses/submit/{created['token']}", json={"rating": 4})
    path = f"/api/review-responses/technician/{seeded.technician_one.id}"

    own = client_for(COMPANY_ONE_ADMIN).get(path)
    cross_tenant = client_for(COMPANY_TWO_ADMIN).get(path)
    technician = client_for(COMPANY_ONE_TECH).get(path)
    anonymous = client_for().get(path)
    missing = client_for(COMPANY_ONE_ADMIN).get("/api/review-responses/technician/9999")

    assert own.status_code == 200
    assert [item["rating"] for item in own.json()] == [4]
    assert cross_tenant.status_code == 403
    assert cross_tenant.json() == {"message": TENANT_ACCESS_DENIED["expected_message"]}
    assert technician.status_code == 403
    assert anonymous.status_code == 401
    assert missing.status_code == 404


def test_deleting_company_removes_its_reviews(client_for, seeded, db):
    created = _review_request(client_for(COMPANY_ONE_ADMIN), seeded.technician_one.id)
    client_for().post(f"/api/review-responses/submit/{created['token']}", json={"rating": 2})

    response = client_for(SUPER_ADMIN).delete(f"/api/companies/{seeded.company_one.id}")

    assert response.status_code == 200
    assert db.query(ReviewResponse).count() == 0
