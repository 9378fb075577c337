"""Smoke tests - verify the app starts and the auth gate responds."""

import httpx

from app.config import settings


async def test_health_returns_ok(client: httpx.AsyncClient):
    """GET /health needs no authentication."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_missing_auth_header_is_401(client: httpx.AsyncClient):
    response = await client.get("/api/student/progress")
    assert response.status_code == 401


async def test_unregistered_user_is_403(client: httpx.AsyncClient, student_headers: dict):
    """A proxy-authenticated email with no account cannot use the API."""
    response = await client.get("/api/student/progress", headers=student_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Not registered"


async def test_roles_are_enforced(client: httpx.AsyncClient, build, admin_headers, student_headers):
    await build.admin()
    await build.student()

    denied = await client.get("/api/admin/stats", headers=student_headers)
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Admin access required"
    assert (await client.get("/api/student/progress", headers=admin_headers)).status_code == 403
    assert (await client.get("/api/admin/stats", headers=admin_headers)).status_code == 200


async def test_auth_header_is_case_insensitive_on_email(client: httpx.AsyncClient, build):
    await build.student()
    response = await client.get("/api/student/profile", headers={settings.AUTH_HEADER: "Student@Example.com"})
    assert response.status_code == 200
    assert response.json()["email"] == "student@example.com"
