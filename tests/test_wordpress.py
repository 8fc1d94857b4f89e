import base64
import json

import httpx
import pytest

from fixtures_data import COMPANY_ONE_ADMIN, COMPANY_ONE_TECH, COMPANY_TWO_ADMIN, WORDPRESS_CONFIG
from rankitpro.integrations.wordpress import WordPressClient, WordPressError, get_wordpress_client_factory


class _FakeWordPress:
    def __init__(self, *, fail_with: int | None = None) -> None:
        self.fail_with = fail_with
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(self.fail_with, text="upstream exploded")
        path = request.url.path
        if path.endswith("/users/me"):
            return httpx.Response(200, json={"id": 3, "name": "WP Bot", "slug": "wp-bot"})
        if path.endswith("/categories"):
            return httpx.Response(200, json=[{"id": 12, "name": "HVAC", "slug": "hvac", "count": 4}])
        if path.endswith("/posts"):
            return httpx.Response(
                201,
                json={"id": 987, "link": "https://blog.testcompany.com/?p=987", "status": "publish"},
            )
        return httpx.Response(404, text="not found")


def _client(handler) -> WordPressClient:
    return WordPressClient.from_config(WORDPRESS_CONFIG, transport=httpx.MockTransport(handler))


def test_client_uses_application_password_basic_auth():
    handler = _FakeWordPress()

    with _client(handler) as client:
        result = client.test_connection()

    assert result == {"connected": True, "user": "WP Bot"}
    request = handler.requests[0]
    assert str(request.url) == "https://blog.testcompany.com/wp-json/wp/v2/users/me"
    expected = base64.b64encode(b"wp-bot:abcd efgh ijkl mnop").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"


def test_publish_sends_title_content_and_categories():
    handler = _FakeWordPress()

    with _client(handler) as client:
        published = client.publish_post(title="Fixed an AC", content="<p>Done</p>", categories=[12])

    assert published == {"id": 987, "link": "https://blog.testcompany.com/?p=987", "status": "publish"}
    body = json.loads(handler.requests[0].content)
    assert body == {"title": "Fixed an AC", "content": "<p>Done</p>", "status": "publish", "categories": [12]}


def test_error_status_raises_wordpress_error():
    with _client(_FakeWordPress(fail_with=401)) as client:
        with pytest.raises(WordPressError) as excinfo:
            client.list_categories()

    assert excinfo.value.status_code == 401


def test_incomplete_config_is_rejected():
    with pytest.raises(ValueError):
        WordPressClient.from_config({"site_url": "https://blog.testcompany.com"})
    with pytest.raises(ValueError):
        WordPressClient.from_config(None)


@pytest.fixture
def fake_wordpress(app):
    handler = _FakeWordPress()

    def factory(config):
        return WordPressClient.from_config(config, transport=httpx.MockTransport(handler))

    app.dependency_overrides[get_wordpress_client_factory] = lambda: factory
    return handler


def _configure(client):
    response = client.put("/api/wordpress/config", json=WORDPRESS_CONFIG)
    assert response.status_code == 200
    return response


def test_config_update_never_returns_the_password(client_for, seeded, fake_wordpress):
    admin = client_for(COMPANY_ONE_ADMIN)

    response = _configure(admin)
    fetched = admin.get("/api/wordpress/config")

    for body in (response.json(), fetched.json()):
        assert body == {
            "site_url": "https://blog.testcompany.com",
            "username": "wp-bot",
            "application_password_set": True,
            "default_category_id": 12,
        }
    assert "abcd" not in fetched.text


def test_wordpress_settings_need_company_admin(client_for, seeded, fake_wordpress):
    response = client_for(COMPANY_ONE_TECH).get("/api/wordpress/config")

    assert response.status_code == 403


def test_missing_config_is_reported(client_for, seeded, fake_wordpress):
    response = client_for(COMPANY_ONE_ADMIN).post("/api/wordpress/test-connection")

    assert response.status_code == 400
    assert response.json() == {"message": "WordPress is not configured"}
    assert fake_wordpress.requests == []


def test_connection_and_categories_through_the_api(client_for, seeded, fake_wordpress):
    admin = client_for(COMPANY_ONE_ADMIN)
    _configure(admin)

    connection = admin.post("/api/wordpress/test-connection")
    categories = admin.get("/api/wordpress/categories")

    assert connection.json() == {"connected": True, "user": "WP Bot"}
    assert categories.json() == [{"id": 12, "name": "HVAC", "slug": "hvac"}]


def test_publish_blog_post_marks_it_published(client_for, seeded, fake_wordpress):
    admin = client_for(COMPANY_ONE_ADMIN)
    _configure(admin)
    post = admin.post("/api/blog-posts", json={"title": "Summer tips", "content": "Keep it cool"}).json()

    response = admin.post(f"/api/blog-posts/{post['id']}/publish")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "published"
    assert body["wordpress_post_id"] == 987
    sent = json.loads(fake_wordpress.requests[-1].content)
    assert sent["categories"] == [12]


def test_publish_of_foreign_post_is_forbidden(client_for, seeded, fake_wordpress):
    admin = client_for(COMPANY_ONE_ADMIN)
    _configure(admin)
    post = admin.post("/api/blog-posts", json={"title": "Summer tips", "content": "Keep it cool"}).json()

    response = client_for(COMPANY_TWO_ADMIN).post(f"/api/blog-posts/{post['id']}/publish")

    assert response.status_code == 403
    assert fake_wordpress.requests == []


def test_upstream_failure_maps_to_bad_gateway(client_for, seeded, fake_wordpress):
    admin = client_for(COMPANY_ONE_ADMIN)
    _configure(admin)
    fake_wordpress.fail_with = 500

    response = admin.get("/api/wordpress/categories")

    assert response.status_code == 502
    assert response.json() == {"message": "WordPress request failed (status 500)"}
