"""Integration tests for Invitation Links API."""

from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient

from tests.conftest import RecordingSink, headers_for


def _joiner(domain: str = "example.com") -> dict[str, str]:
    return headers_for(uuid4(), f"{uuid4().hex[:12]}@{domain}")


async def _create_link(
    client: AsyncClient, headers: dict[str, str], **body: Any
) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": "workspace", "target_id": str(uuid4())}
    payload.update(body)
    response = await client.post(
        f"/api/v1/workspaces/{uuid4()}/links", json=payload, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestLinkManagement:
    @pytest.mark.asyncio
    async def test_create_and_list(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        target_id = str(uuid4())
        link = await _create_link(
            api_client, caller_headers, target_id=target_id, default_role="guest"
        )

        assert link["default_permission"] == "view_only"
        assert link["is_active"]
        assert link["use_count"] == 0
        assert link["created_by_id"] == caller_headers["X-User-Id"]

        listed = await api_client.get(
            "/api/v1/links",
            params={"type": "workspace", "target_id": target_id},
            headers=caller_headers,
        )
        assert [item["id"] for item in listed.json()["data"]] == [link["id"]]

    @pytest.mark.asyncio
    async def test_patch_clears_limit_only_when_sent(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        expires = (datetime.utcnow() + timedelta(days=3)).isoformat()
        link = await _create_link(api_client, caller_headers, max_uses=5, expires_at=expires)
        url = f"/api/v1/links/{link['id']}"

        untouched = await api_client.patch(
            url, json={"requires_approval": True}, headers=caller_headers
        )
        assert untouched.json()["data"]["max_uses"] == 5
        assert untouched.json()["data"]["requires_approval"]

        cleared = await api_client.patch(url, json={"max_uses": None}, headers=caller_headers)
        assert cleared.json()["data"]["max_uses"] is None
        assert cleared.json()["data"]["expires_at"] is not None

    @pytest.mark.asyncio
    async def test_deactivate_activate_delete(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        link = await _create_link(api_client, caller_headers)
        url = f"/api/v1/links/{link['id']}"

        off = await api_client.post(f"{url}/deactivate", headers=caller_headers)
        assert not off.json()["data"]["is_active"]
        on = await api_client.post(f"{url}/activate", headers=caller_headers)
        assert on.json()["data"]["is_active"]

        deleted = await api_client.delete(url, headers=caller_headers)
        assert deleted.status_code == 204
        missing = await api_client.get(url, headers=caller_headers)
        assert missing.status_code == 404
        assert missing.json()["error_code"] == "LINK_NOT_FOUND"


class TestValidateLink:
    @pytest.mark.asyncio
    async def test_valid_link(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        link = await _create_link(api_client, caller_headers)

        response = await api_client.post(
            "/api/v1/links/validate",
            json={"link_token": link["link_token"]},
            headers=_joiner(),
        )

        assert response.status_code == 200
        assert response.json()["valid"]
        assert response.json()["target_id"] == link["target_id"]

    @pytest.mark.asyncio
    async def test_inactive_link_is_gone(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        link = await _create_link(api_client, caller_headers)
        await api_client.post(f"/api/v1/links/{link['id']}/deactivate", headers=caller_headers)

        response = await api_client.post(
            "/api/v1/links/validate",
            json={"link_token": link["link_token"]},
            headers=_joiner(),
        )

        assert response.status_code == 410
        assert response.json()["details"] == {"reason": "inactive"}

    @pytest.mark.asyncio
    async def test_domain_checked_against_given_email(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        link = await _create_link(api_client, caller_headers, allowed_domains=["acme.com"])

        response = await api_client.post(
            "/api/v1/links/validate",
            json={"link_token": link["link_token"], "email": "jo@other.com"},
            headers=_joiner("acme.com"),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "DOMAIN_REJECTED"


class TestJoinLink:
    @pytest.mark.asyncio
    async def test_join_grants_access_and_counts_use(
        self, api_client: AsyncClient, caller_headers: dict[str, str], sink: RecordingSink
    ) -> None:
        link = await _create_link(api_client, caller_headers, default_role="admin")
        joiner = _joiner()

        response = await api_client.post(
            "/api/v1/links/join", json={"link_token": link["link_token"]}, headers=joiner
        )

        assert response.status_code == 200
        body = response.json()
        assert not body["pending_approval"]
        invitation = body["invitation"]
        assert invitation["status"] == "accepted"
        assert invitation["method"] == "link"
        assert invitation["role"] == "admin"
        assert invitation["email"] == joiner["X-User-Email"]
        assert invitation["invited_by_id"] == caller_headers["X-User-Id"]
        assert "accepted" in sink.actions()

        stored = await api_client.get(f"/api/v1/links/{link['id']}", headers=caller_headers)
        assert stored.json()["data"]["use_count"] == 1

    @pytest.mark.asyncio
    async def test_use_limit_exhausts(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        link = await _create_link(api_client, caller_headers, max_uses=1)
        payload = {"link_token": link["link_token"]}

        first = await api_client.post("/api/v1/links/join", json=payload, headers=_joiner())
        second = await api_client.post("/api/v1/links/join", json=payload, headers=_joiner())

        assert first.status_code == 200
        assert second.status_code == 410
        assert second.json()["details"] == {"reason": "exhausted"}

    @pytest.mark.asyncio
    async def test_blocked_domain_rejected(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        link = await _create_link(api_client, caller_headers, blocked_domains=["spam.io"])

        response = await api_client.post(
            "/api/v1/links/join",
            json={"link_token": link["link_token"]},
            headers=_joiner("spam.io"),
        )

        assert response.status_code == 403
        stored = await api_client.get(f"/api/v1/links/{link['id']}", headers=caller_headers)
        assert stored.json()["data"]["use_count"] == 0

    @pytest.mark.asyncio
    async def test_approval_link_files_request(
        self, api_client: AsyncClient, caller_headers: dict[str, str], sink: RecordingSink
    ) -> None:
        link = await _create_link(api_client, caller_headers, requires_approval=True)
        joiner = _joiner()
        payload = {"link_token": link["link_token"], "message": "hi"}

        response = await api_client.post("/api/v1/links/join", json=payload, headers=joiner)

        assert response.status_code == 200
        body = response.json()
        assert body["pending_approval"]
        assert body["invitation"] is None
        assert body["access_request"]["status"] == "pending"
        assert body["access_request"]["message"] == "hi"
        assert sink.actions() == ["access_requested"]

        again = await api_client.post("/api/v1/links/join", json=payload, headers=joiner)
        assert again.status_code == 409
        assert again.json()["error_code"] == "DUPLICATE_ACCESS_REQUEST"

    @pytest.mark.asyncio
    async def test_unknown_token(self, api_client: AsyncClient) -> None:
        response = await api_client.post(
            "/api/v1/links/join", json={"link_token": "missing"}, headers=_joiner()
        )

        assert response.status_code == 404
