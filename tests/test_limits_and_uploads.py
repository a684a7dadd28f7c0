import time

import cloudinary.uploader
import pytest
from cloudinary.exceptions import Error as CloudinaryError
from limits import parse

import main
import ratelimit

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_default_limits_use_fifteen_minute_windows():
    api, login = parse(ratelimit.API_RATE_LIMIT), parse(ratelimit.LOGIN_RATE_LIMIT)
    assert api.get_expiry() == login.get_expiry() == 15 * 60
    assert (api.amount, login.amount) == (1000, 50)


def test_api_requests_are_limited(client, monkeypatch):
    monkeypatch.setattr(ratelimit, "API_RATE_LIMIT", "2/15 minutes")
    assert client.get("/api/courses").status_code == 200
    assert client.get("/api/courses").status_code == 200
    resp = client.get("/api/courses")
    assert resp.status_code == 429
    assert resp.json() == {"message": "Too many requests"}
    # non-API routes are not counted
    assert client.get("/").status_code == 200
    assert client.get("/test").status_code == 200


def test_login_is_limited_more_strictly(client, monkeypatch):
    monkeypatch.setattr(ratelimit, "LOGIN_RATE_LIMIT", "1/15 minutes")
    assert client.post("/api/admin/login", json={"password": "nope"}).status_code == 401
    resp = client.post("/api/admin/login", json={"password": "nope"})
    assert resp.status_code == 429
    assert resp.json() == {"message": "Too many login attempts"}
    assert client.get("/api/health").status_code == 200


def test_limit_resets_when_window_expires(client, monkeypatch):
    monkeypatch.setattr(ratelimit, "API_RATE_LIMIT", "1/second")
    assert client.get("/api/health").status_code == 200
    assert client.get("/api/health").status_code == 429
    time.sleep(1.2)
    assert client.get("/api/health").status_code == 200


@pytest.fixture
def uploaded(monkeypatch):
    calls = []

    def fake_upload(file, **options):
        calls.append({"data": file.read(), **options})
        return {
            "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/portfolio/photography/abc.png",
            "public_id": "portfolio/photography/abc",
            "width": 640,
            "height": 480,
        }

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    return calls


def test_upload_stores_image_under_folder(client, admin_headers, uploaded):
    resp = client.post(
        "/api/upload",
        params={"folder": "photography"},
        files={"image": ("dunes.png", PNG, "image/png")},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json() == {
        "url": "https://res.cloudinary.com/demo/image/upload/v1/portfolio/photography/abc.png",
        "publicId": "portfolio/photography/abc",
        "width": 640,
        "height": 480,
    }
    assert uploaded[0]["folder"] == "portfolio/photography"
    assert uploaded[0]["data"] == PNG


def test_upload_defaults_to_general_folder(client, admin_headers, uploaded):
    client.post("/api/upload", files={"image": ("a.png", PNG, "image/png")}, headers=admin_headers)
    assert uploaded[0]["folder"] == "portfolio/general"


def test_upload_requires_admin(client, uploaded):
    resp = client.post("/api/upload", files={"image": ("a.png", PNG, "image/png")})
    assert resp.status_code == 401
    assert uploaded == []


def test_upload_rejects_non_images(client, admin_headers, uploaded):
    resp = client.post(
        "/api/upload", files={"image": ("notes.txt", b"hello", "text/plain")}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "Only image files are allowed"}
    assert uploaded == []


def test_upload_rejects_oversized_files(client, admin_headers, uploaded, monkeypatch):
    monkeypatch.setattr(main, "MAX_UPLOAD_BYTES", 16)
    resp = client.post("/api/upload", files={"image": ("a.png", PNG, "image/png")}, headers=admin_headers)
    assert resp.status_code == 400
    assert uploaded == []


def test_upload_rejects_unsafe_folder(client, admin_headers, uploaded):
    resp = client.post(
        "/api/upload",
        params={"folder": "../secrets"},
        files={"image": ("a.png", PNG, "image/png")},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert uploaded == []


def test_upload_provider_failure_is_500(client, admin_headers, monkeypatch):
    def broken(file, **options):
        raise CloudinaryError("Invalid cloud_name")

    monkeypatch.setattr(cloudinary.uploader, "upload", broken)
    resp = client.post("/api/upload", files={"image": ("a.png", PNG, "image/png")}, headers=admin_headers)
    assert resp.status_code == 500
    assert resp.json() == {"message": "Invalid cloud_name"}
