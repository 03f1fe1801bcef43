"""Integration tests for Invitations API."""

from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient

from tests.conftest import RecordingSink, headers_for


def _invitee() -> tuple[str, dict[str, str]]:
    """A fresh invitee email and the headers that identify them."""
    email = f"{uuid4().hex[:12]}@example.com"
    return email, headers_for(uuid4(), email)


async def _create(
    client: AsyncClient,
    headers: dict[str, str],
    email: str,
    **body: Any,
) -> dict[str, Any]:
    workspace_id = body.pop("workspace_id", uuid4())
    payload: dict[str, Any] = {
        "email": email,
        "type": "project",
        "target_id": str(uuid4()),
        "role": "member",
    }
    payload.update(body)
    response = await client.post(
        f"/api/v1/workspaces/{workspace_id}/invitations", json=payload, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


# --- Create ---


class TestCreateInvitation:
    @pytest.mark.asyncio
    async def test_create_returns_token_once(
        self, api_client: AsyncClient, caller_headers: dict[str, str], sink: RecordingSink
    ) -> None:
        email, _ = _invitee()

        body = await _create(api_client, caller_headers, email.upper())

        data = body["data"]
        assert data["email"] == email
        assert data["status"] == "pending"
        assert data["permission"] == "edit"
        assert data["expires_at"] is not None
        assert body["token"]
        assert "token_hash" not in data
        assert sink.actions() == ["created"]
        assert sink.events[0].raw_token == body["token"]

        fetched = await api_client.get(
            f"/api/v1/invitations/{data['id']}", headers=caller_headers
        )
        assert fetched.status_code == 200
        assert "token" not in fetched.json()

    @pytest.mark.asyncio
    async def test_duplicate_pending_invitation_conflicts(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, _ = _invitee()
        target_id = str(uuid4())
        await _create(api_client, caller_headers, email, target_id=target_id)

        response = await api_client.post(
            f"/api/v1/workspaces/{uuid4()}/invitations",
            json={"email": email, "type": "project", "target_id": target_id, "role": "member"},
            headers=caller_headers,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_INVITATION"

    @pytest.mark.asyncio
    async def test_role_not_allowed_for_scope(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        response = await api_client.post(
            f"/api/v1/workspaces/{uuid4()}/invitations",
            json={
                "email": "someone@example.com",
                "type": "team",
                "target_id": str(uuid4()),
                "role": "guest",
            },
            headers=caller_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_ROLE_FOR_TYPE"
        assert body["details"]["allowed_roles"] == ["member"]

    @pytest.mark.asyncio
    async def test_invalid_email(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        response = await api_client.post(
            f"/api/v1/workspaces/{uuid4()}/invitations",
            json={"email": "not-an-email", "type": "project", "target_id": str(uuid4())},
            headers=caller_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_EMAIL"

    @pytest.mark.asyncio
    async def test_requires_caller_identity(self, api_client: AsyncClient) -> None:
        response = await api_client.post(
            f"/api/v1/workspaces/{uuid4()}/invitations",
            json={"email": "a@example.com", "type": "project", "target_id": str(uuid4())},
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"


# --- Accept / decline ---


class TestRespondToInvitation:
    @pytest.mark.asyncio
    async def test_accept_by_token(
        self, api_client: AsyncClient, caller_headers: dict[str, str], sink: RecordingSink
    ) -> None:
        email, invitee_headers = _invitee()
        created = await _create(api_client, caller_headers, email)

        response = await api_client.post(
            "/api/v1/invitations/accept",
            json={"token": created["token"]},
            headers=invitee_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "accepted"
        assert data["accepted_at"] is not None
        assert data["invitee_user_id"] == invitee_headers["X-User-Id"]
        assert sink.actions() == ["created", "accepted"]

        history = await api_client.get(
            f"/api/v1/invitations/{data['id']}/history", headers=caller_headers
        )
        actions = [entry["action"] for entry in history.json()["data"]]
        assert actions == ["invitation.created", "invitation.accepted"]

    @pytest.mark.asyncio
    async def test_accept_twice_conflicts(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, invitee_headers = _invitee()
        created = await _create(api_client, caller_headers, email)
        invitation_id = created["data"]["id"]

        first = await api_client.post(
            f"/api/v1/invitations/{invitation_id}/accept", headers=invitee_headers
        )
        second = await api_client.post(
            f"/api/v1/invitations/{invitation_id}/decline", headers=invitee_headers
        )

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["error_code"] == "INVITATION_ALREADY_RESOLVED"

    @pytest.mark.asyncio
    async def test_wrong_email_is_forbidden(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, _ = _invitee()
        created = await _create(api_client, caller_headers, email)

        response = await api_client.post(
            "/api/v1/invitations/accept",
            json={"token": created["token"]},
            headers=headers_for(uuid4(), "intruder@example.com"),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "INVITATION_EMAIL_MISMATCH"

    @pytest.mark.asyncio
    async def test_expired_invitation_is_moved_to_expired(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, invitee_headers = _invitee()
        past = (datetime.utcnow() - timedelta(hours=1)).isoformat()
        created = await _create(api_client, caller_headers, email, expires_at=past)

        response = await api_client.post(
            "/api/v1/invitations/accept",
            json={"token": created["token"]},
            headers=invitee_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVITATION_EXPIRED"
        fetched = await api_client.get(
            f"/api/v1/invitations/{created['data']['id']}", headers=caller_headers
        )
        assert fetched.json()["data"]["status"] == "expired"

    @pytest.mark.asyncio
    async def test_decline_by_token(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, invitee_headers = _invitee()
        created = await _create(api_client, caller_headers, email)

        response = await api_client.post(
            "/api/v1/invitations/decline",
            json={"token": created["token"]},
            headers=invitee_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "declined"
        assert response.json()["data"]["declined_at"] is not None

    @pytest.mark.asyncio
    async def test_unknown_token(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        response = await api_client.post(
            "/api/v1/invitations/lookup", json={"token": "nope"}, headers=caller_headers
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "INVITATION_NOT_FOUND"


# --- Inviter actions ---


class TestInviterActions:
    @pytest.mark.asyncio
    async def test_cancel(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, _ = _invitee()
        created = await _create(api_client, caller_headers, email)

        response = await api_client.post(
            f"/api/v1/invitations/{created['data']['id']}/cancel", headers=caller_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_other_callers_cannot_manage(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, invitee_headers = _invitee()
        created = await _create(api_client, caller_headers, email)
        url = f"/api/v1/invitations/{created['data']['id']}"
        stranger = headers_for(uuid4(), "stranger@example.com")

        for action in ("cancel", "revoke", "resend", "regenerate-token"):
            response = await api_client.post(f"{url}/{action}", headers=stranger)
            assert response.status_code == 403, action
            assert response.json()["error_code"] == "INSUFFICIENT_PERMISSIONS"
        invitee_cancel = await api_client.post(f"{url}/cancel", headers=invitee_headers)
        assert invitee_cancel.status_code == 403

        still_pending = await api_client.get(url, headers=caller_headers)
        assert still_pending.json()["data"]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_revoke_with_reason(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, _ = _invitee()
        created = await _create(api_client, caller_headers, email)
        invitation_id = created["data"]["id"]

        response = await api_client.post(
            f"/api/v1/invitations/{invitation_id}/revoke",
            json={"reason": "token leaked"},
            headers=caller_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "revoked"
        history = await api_client.get(
            f"/api/v1/invitations/{invitation_id}/history", headers=caller_headers
        )
        revoked = history.json()["data"][-1]
        assert revoked["action"] == "invitation.revoked"
        assert revoked["details"] == "token leaked"

    @pytest.mark.asyncio
    async def test_resend_rotates_token(
        self, api_client: AsyncClient, caller_headers: dict[str, str], sink: RecordingSink
    ) -> None:
        email, invitee_headers = _invitee()
        created = await _create(api_client, caller_headers, email)
        old_token = created["token"]

        resent = await api_client.post(
            f"/api/v1/invitations/{created['data']['id']}/resend", headers=caller_headers
        )

        assert resent.status_code == 200
        new_token = resent.json()["token"]
        assert new_token != old_token
        assert resent.json()["data"]["reminder_count"] == 0
        assert sink.actions() == ["created", "resent"]

        stale = await api_client.post(
            "/api/v1/invitations/lookup", json={"token": old_token}, headers=invitee_headers
        )
        fresh = await api_client.post(
            "/api/v1/invitations/lookup", json={"token": new_token}, headers=invitee_headers
        )
        assert stale.status_code == 404
        assert fresh.status_code == 200

    @pytest.mark.asyncio
    async def test_regenerate_requires_pending(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, _ = _invitee()
        created = await _create(api_client, caller_headers, email)
        invitation_id = created["data"]["id"]
        await api_client.post(f"/api/v1/invitations/{invitation_id}/cancel", headers=caller_headers)

        response = await api_client.post(
            f"/api/v1/invitations/{invitation_id}/regenerate-token", headers=caller_headers
        )

        assert response.status_code == 409


# --- Permissions ---


class TestPermissions:
    @pytest.mark.asyncio
    async def test_defaults_then_override(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, _ = _invitee()
        created = await _create(api_client, caller_headers, email, role="guest")
        url = f"/api/v1/invitations/{created['data']['id']}/permissions"

        defaults = await api_client.get(url, headers=caller_headers)
        assert defaults.status_code == 200
        body = defaults.json()
        assert body["permission"] == "view_only"
        assert not body["explicit"]
        assert not any(body["capabilities"].values())

        updated = await api_client.put(
            url,
            json={"permission_flags": {"can_comment": True, "bogus": True}},
            headers=caller_headers,
        )
        assert updated.status_code == 200
        body = updated.json()
        assert body["explicit"]
        assert body["capabilities"]["can_comment"]
        assert "bogus" not in body["capabilities"]

    @pytest.mark.asyncio
    async def test_create_with_flags(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, _ = _invitee()
        created = await _create(
            api_client,
            caller_headers,
            email,
            permission_flags={"can_export": False},
            custom_permissions={"dashboards": ["q1"]},
        )

        response = await api_client.get(
            f"/api/v1/invitations/{created['data']['id']}/permissions", headers=caller_headers
        )

        body = response.json()
        assert body["explicit"]
        assert body["capabilities"]["can_edit_tasks"]
        assert not body["capabilities"]["can_export"]
        assert body["custom_permissions"] == {"dashboards": ["q1"]}


# --- Queries ---


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_filters_and_paginates(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        workspace_id = uuid4()
        for _ in range(3):
            email, _ = _invitee()
            await _create(api_client, caller_headers, email, workspace_id=workspace_id)
        email, invitee_headers = _invitee()
        accepted = await _create(api_client, caller_headers, email, workspace_id=workspace_id)
        await api_client.post(
            f"/api/v1/invitations/{accepted['data']['id']}/accept", headers=invitee_headers
        )

        response = await api_client.get(
            f"/api/v1/workspaces/{workspace_id}/invitations",
            params={"status": "pending", "limit": 2},
            headers=caller_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["meta"] == {"total": 3, "limit": 2, "offset": 0}
        assert len(body["data"]) == 2
        assert all(inv["status"] == "pending" for inv in body["data"])

        count = await api_client.get(
            f"/api/v1/workspaces/{workspace_id}/invitations/count", headers=caller_headers
        )
        assert count.json()["count"] == 4

    @pytest.mark.asyncio
    async def test_pending_for_caller_email(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        email, invitee_headers = _invitee()
        first = await _create(api_client, caller_headers, email)
        second = await _create(api_client, caller_headers, email)
        await api_client.post(
            f"/api/v1/invitations/{second['data']['id']}/cancel", headers=caller_headers
        )

        response = await api_client.get("/api/v1/invitations/pending", headers=invitee_headers)

        assert [inv["id"] for inv in response.json()["data"]] == [first["data"]["id"]]

    @pytest.mark.asyncio
    async def test_target_stats_and_pending_count(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        target_id = str(uuid4())
        outcomes = ["accept", "accept", "accept", "decline", None]
        for outcome in outcomes:
            email, invitee_headers = _invitee()
            created = await _create(api_client, caller_headers, email, target_id=target_id)
            if outcome:
                await api_client.post(
                    f"/api/v1/invitations/{created['data']['id']}/{outcome}",
                    headers=invitee_headers,
                )

        stats = await api_client.get(
            "/api/v1/invitations/stats",
            params={"type": "project", "target_id": target_id},
            headers=caller_headers,
        )
        pending = await api_client.get(
            "/api/v1/invitations/pending-count",
            params={"type": "project", "target_id": target_id},
            headers=caller_headers,
        )

        body = stats.json()
        assert body["total_invitations"] == 5
        assert body["accepted_count"] == 3
        assert body["declined_count"] == 1
        assert body["acceptance_rate"] == pytest.approx(75.0)
        assert pending.json()["count"] == 1

    @pytest.mark.asyncio
    async def test_unknown_invitation(
        self, api_client: AsyncClient, caller_headers: dict[str, str]
    ) -> None:
        missing = uuid4()
        response = await api_client.get(f"/api/v1/invitations/{missing}", headers=caller_headers)

        assert response.status_code == 404
        assert response.json()["details"]["invitation_id"] == str(missing)
