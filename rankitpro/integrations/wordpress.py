from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from rankitpro.core.config import WORDPRESS_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

API_PREFIX = "/wp-json/wp/v2"


class WordPressError(RuntimeError):
    def __init__(self, status_code: int, body_text: str):
        super().__init__(f"WordPress error {status_code}: {body_text[:200]}")
        self.status_code = status_code
        self.body_text = body_text


class WordPressClient:
    """Minimal WordPress REST client authenticated with an application password."""

    def __init__(
        self,
        site_url: str,
        username: str,
        application_password: str,
        *,
        timeout: float = WORDPRESS_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not site_url or not username or not application_password:
            raise ValueError("WordPress site_url, username and application_password are required")
        self.site_url = site_url.rstrip("/")
        self._client = httpx.Client(
            base_url=f"{self.site_url}{API_PREFIX}",
            auth=(username, application_password),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]], **kwargs: Any) -> "WordPressClient":
        config = config or {}
        return cls(
            config.get("site_url") or "",
            config.get("username") or "",
            config.get("application_password") or "",
            **kwargs,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "WordPressClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            logger.warning("wordpress request failed site=%s path=%s error=%s", self.site_url, path, exc)
            raise WordPressError(0, str(exc)) from exc

        if not 200 <= response.status_code < 300:
            logger.warning(
                "wordpress returned status=%s site=%s path=%s",
                response.status_code,
                self.site_url,
                path,
            )
            raise WordPressError(response.status_code, response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise WordPressError(response.status_code, "invalid JSON response") from exc

    def test_connection(self) -> Dict[str, Any]:
        me = self._request("GET", "/users/me")
        return {"connected": True, "user": me.get("name") or me.get("slug")}

    def list_categories(self) -> List[Dict[str, Any]]:
        categories = self._request("GET", "/categories", params={"per_page": 100})
        return [
            {"id": item.get("id"), "name": item.get("name"), "slug": item.get("slug")}
            for item in categories
        ]

    def publish_post(
        self,
        *,
        title: str,
        content: str,
        status: str = "publish",
        categories: Optional[List[int]] = None,
        excerpt: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": title, "content": content, "status": status}
        if categories:
            payload["categories"] = categories
        if excerpt:
            payload["excerpt"] = excerpt
        created = self._request("POST", "/posts", json=payload)
        return {"id": created.get("id"), "link": created.get("link"), "status": created.get("status")}


ClientFactory = Callable[[Optional[Dict[str, Any]]], WordPressClient]


def get_wordpress_client_factory() -> ClientFactory:
    return WordPressClient.from_config
