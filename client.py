"""
HTTP client for the portfolio API, used by the public pages and the admin
console.

`session` can be any requests-compatible session (a `requests.Session`, or a
FastAPI `TestClient` in tests).
"""

import os
from typing import Any, Dict, Iterable, List, Optional, Union

import requests

from resources import Collection

API_URL = os.getenv("PORTFOLIO_API_URL", "http://localhost:5002")

CollectionName = Union[Collection, str]


class APIError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


class PortfolioClient:
    def __init__(self, base_url: str = API_URL, token: Optional[str] = None,
                 session=None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, auth: bool = False, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if auth:
            headers.update(self._auth_headers())
        resp = self.session.request(
            method, f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs
        )
        if resp.status_code >= 400:
            try:
                message = resp.json().get("message")
            except (ValueError, AttributeError):
                message = None
            raise APIError(resp.status_code, message or resp.text or f"HTTP {resp.status_code}")
        return resp.json()

    @staticmethod
    def _path(collection: CollectionName) -> str:
        return f"/api/{Collection(collection).value}"

    # Public
    def health(self) -> dict:
        return self._request("GET", "/api/health")

    def list(self, collection: CollectionName, **filters) -> List[dict]:
        params = {k: v for k, v in filters.items() if v}
        return self._request("GET", self._path(collection), params=params or None)

    def get_post(self, slug: str) -> dict:
        return self._request("GET", f"/api/blog/{slug}")

    # Admin
    def login(self, password: str) -> str:
        self.token = self._request("POST", "/api/admin/login", json={"password": password})["token"]
        return self.token

    def logout(self):
        self.token = None

    def list_all_posts(self) -> List[dict]:
        return self._request("GET", "/api/blog/all", auth=True)

    def create(self, collection: CollectionName, data: dict) -> dict:
        return self._request("POST", self._path(collection), auth=True, json=data)

    def update(self, collection: CollectionName, item_id: str, data: dict) -> dict:
        return self._request("PUT", f"{self._path(collection)}/{item_id}", auth=True, json=data)

    def delete(self, collection: CollectionName, item_id: str) -> dict:
        return self._request("DELETE", f"{self._path(collection)}/{item_id}", auth=True)

    def reorder(self, collection: CollectionName, items: Iterable[dict]) -> dict:
        return self._request(
            "PUT", f"{self._path(collection)}/reorder", auth=True, json={"items": list(items)}
        )

    def upload(self, data: bytes, filename: str, content_type: str, folder: str = "general") -> dict:
        return self._request(
            "POST",
            "/api/upload",
            auth=True,
            params={"folder": folder},
            files={"image": (filename, data, content_type)},
        )
