from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from corpus_admin.models.security_event import SecurityEvent, SecurityEventType
from corpus_admin.services.security_tracker import security_tracker


@pytest.mark.asyncio
async def test_record_event(client: AsyncClient, db_session):
    """Clients can report events without authenticating"""
    response = await client.post(
        "/api/v1/security/events",
        json={"event": "page_access", "path": "/datasets/browse"},
        headers={"X-Forwarded-For": "203.0.113.50, 10.0.0.1", "User-Agent": "browser"}
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}

    await security_tracker.drain()
    events = await security_tracker.get_recent_events(db_session)
    assert len(events) == 1
    assert events[0].event == SecurityEventType.PAGE_ACCESS
    assert events[0].path == "/datasets/browse"
    assert events[0].ip == "203.0.113.50"
    assert events[0].user_agent == "browser"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"path": "/datasets"},
    {"event": "page_access"},
    {"event": "page_access", "path": ""},
    {"event": "sudo", "path": "/datasets"},
])
async def test_record_event_requires_event_and_path(client: AsyncClient, body):
    response = await client.post("/api/v1/security/events", json=body)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_recent_events_admin_only(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/security/events", headers=auth_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_recent_events(client: AsyncClient, admin_auth_headers, db_session):
    now = datetime.utcnow()
    for minutes_ago, event in [(3, SecurityEventType.LOGOUT), (1, SecurityEventType.LOGIN_SUCCESS), (2, SecurityEventType.PAGE_ACCESS)]:
        db_session.add(SecurityEvent(event=event, ip="10.0.0.9", path="/", timestamp=now - timedelta(minutes=minutes_ago)))
    await db_session.commit()

    response = await client.get("/api/v1/security/events?limit=2", headers=admin_auth_headers)

    assert response.status_code == 200
    events = response.json()["events"]
    assert [e["event"] for e in events] == ["login_success", "page_access"]


@pytest.mark.asyncio
async def test_failed_attempts(client: AsyncClient, admin_auth_headers, test_user):
    for _ in range(3):
        await client.post(
            "/api/v1/auth/login",
            json={"email": test_user.email, "password": "wrongpassword"},
            headers={"X-Real-IP": "198.51.100.23"}
        )
    await security_tracker.drain()

    response = await client.get(
        "/api/v1/security/failed-attempts?ip=198.51.100.23",
        headers=admin_auth_headers
    )

    assert response.status_code == 200
    assert response.json() == {"ip": "198.51.100.23", "window_minutes": 15, "failed_attempts": 3}


@pytest.mark.asyncio
async def test_failed_attempts_requires_ip(client: AsyncClient, admin_auth_headers):
    response = await client.get("/api/v1/security/failed-attempts", headers=admin_auth_headers)

    assert response.status_code == 400
