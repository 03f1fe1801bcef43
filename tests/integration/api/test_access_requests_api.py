"""Integration tests for Access Requests API."""

from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient

from tests.conftest import RecordingSink, headers_for


async def _request_access(
    client: AsyncClient, headers: dict[str, str], target_id: str
) -> dict[str, Any]:
    response = await client.post(
        f"/api/v1/workspaces/{uuid4()}/access-requests",
        json={"type": "project", "target_id": target_id, "message": "please"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestAccessRequests:
    @pytest.mark.asyncio
    async def test_request_then_approve(
        self, api_client: AsyncClient, caller_headers: dict[str, str], sink: RecordingSink
    ) -> None:
        requester = headers_for(uuid4(), "Requester@Example.com")
        target_id = str(uuid4())

        created = await _request_access(api_client, requester, target_id)
        assert created["status"] == "pending"
        assert created["email"] == "requester@example.com"

        approved = await api_client.post(
            f"/api/v1/access-requests/{created['id']}/approve", headers=caller_headers
        )

        assert approved.status_code == 200
        data = approved.json()["data"]
        assert data["status"] == "approved"
        assert data["processed_by"] == caller_headers["X-User-Id"]
        assert sink.actions() == ["access_requested", "access_approved"]

    @pytest.mark.asyncio
    async def test_deny_with_reason_then_reprocess_conflicts(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        created = await _request_access(
            api_client, headers_for(uuid4(), "r@example.com"), str(uuid4())
        )
        url = f"/api/v1/access-requests/{created['id']}"

        denied = await api_client.post(
            f"{url}/deny", json={"reason": "not this quarter"}, headers=caller_headers
        )
        again = await api_client.post(f"{url}/approve", headers=caller_headers)

        assert denied.json()["data"]["denial_reason"] == "not this quarter"
        assert again.status_code == 409
        body = again.json()
        assert body["error_code"] == "ACCESS_REQUEST_ALREADY_PROCESSED"
        assert body["details"]["status"] == "denied"

    @pytest.mark.asyncio
    async def test_requester_cannot_approve_own_request(self, api_client: AsyncClient) -> None:
        requester = headers_for(uuid4(), "self@example.com")
        created = await _request_access(api_client, requester, str(uuid4()))
        url = f"/api/v1/access-requests/{created['id']}"

        approved = await api_client.post(f"{url}/approve", headers=requester)
        denied = await api_client.post(f"{url}/deny", json={}, headers=requester)

        assert approved.status_code == 403
        assert approved.json()["error_code"] == "INSUFFICIENT_PERMISSIONS"
        assert denied.status_code == 403
        fetched = await api_client.get(url, headers=requester)
        assert fetched.json()["data"]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_duplicate_pending_request(self, api_client: AsyncClient) -> None:
        requester = headers_for(uuid4(), "dup@example.com")
        target_id = str(uuid4())
        await _request_access(api_client, requester, target_id)

        response = await api_client.post(
            f"/api/v1/workspaces/{uuid4()}/access-requests",
            json={"type": "project", "target_id": target_id},
            headers=requester,
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_list_for_target_and_mine(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        target_id = str(uuid4())
        requester = headers_for(uuid4(), "mine@example.com")
        first = await _request_access(api_client, requester, target_id)
        second = await _request_access(
            api_client, headers_for(uuid4(), "other@example.com"), target_id
        )
        await api_client.post(
            f"/api/v1/access-requests/{second['id']}/approve", headers=caller_headers
        )

        pending = await api_client.get(
            "/api/v1/access-requests",
            params={"type": "project", "target_id": target_id, "status": "pending"},
            headers=caller_headers,
        )
        mine = await api_client.get("/api/v1/access-requests/mine", headers=requester)

        assert [r["id"] for r in pending.json()["data"]] == [first["id"]]
        assert [r["id"] for r in mine.json()["data"]] == [first["id"]]

    @pytest.mark.asyncio
    async def test_unknown_request(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        response = await api_client.get(
            f"/api/v1/access-requests/{uuid4()}", headers=caller_headers
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "ACCESS_REQUEST_NOT_FOUND"
