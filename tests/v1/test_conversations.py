# tests/v1/test_conversations.py
"""Tests for conversation endpoints."""

from collections.abc import Callable
from typing import Any

from fastapi import status
from fastapi.testclient import TestClient


class TestConversations:
    def test_default_conversation(self, client: TestClient, auth_user: dict[str, Any]) -> None:
        first = client.get("/api/v1/conversations/default", headers=auth_user["headers"])
        second = client.get("/api/v1/conversations/default", headers=auth_user["headers"])

        assert first.status_code == status.HTTP_200_OK
        assert first.json()["id"] == second.json()["id"]
        assert first.json()["kind"] == "public"
        assert auth_user["user_id"] in first.json()["participant_ids"]

    def test_start_chat_deduplicates_direct_conversations(
        self, client: TestClient, auth_user: dict[str, Any], other_user: dict[str, Any]
    ) -> None:
        mine = client.post(
            "/api/v1/conversations",
            json={"participant_ids": [other_user["user_id"]]},
            headers=auth_user["headers"],
        )
        theirs = client.post(
            "/api/v1/conversations",
            json={"participant_ids": [auth_user["user_id"]]},
            headers=other_user["headers"],
        )

        assert mine.status_code == status.HTTP_201_CREATED
        assert mine.json()["id"] == theirs.json()["id"]
        assert mine.json()["kind"] == "direct"
        assert sorted(mine.json()["participant_ids"]) == sorted([auth_user["user_id"], other_user["user_id"]])

    def test_group_chat(
        self,
        client: TestClient,
        sign_in: Callable[[], dict[str, Any]],
        auth_user: dict[str, Any],
        other_user: dict[str, Any],
    ) -> None:
        third = sign_in()
        response = client.post(
            "/api/v1/conversations",
            json={"participant_ids": [other_user["user_id"], third["user_id"]], "title": "Plans"},
            headers=auth_user["headers"],
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["kind"] == "group"
        assert response.json()["title"] == "Plans"
        assert len(response.json()["participant_ids"]) == 3

    def test_chat_with_only_yourself_is_invalid(self, client: TestClient, auth_user: dict[str, Any]) -> None:
        response = client.post(
            "/api/v1/conversations",
            json={"participant_ids": [auth_user["user_id"]]},
            headers=auth_user["headers"],
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error_code"] == "INVALID_INPUT"

    def test_chat_with_unknown_user(self, client: TestClient, auth_user: dict[str, Any]) -> None:
        response = client.post(
            "/api/v1/conversations",
            json={"participant_ids": ["A" * 43]},
            headers=auth_user["headers"],
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_list_conversations(
        self, client: TestClient, auth_user: dict[str, Any], other_user: dict[str, Any]
    ) -> None:
        created = client.post(
            "/api/v1/conversations",
            json={"participant_ids": [other_user["user_id"]]},
            headers=auth_user["headers"],
        ).json()

        response = client.get("/api/v1/conversations", headers=auth_user["headers"])

        kinds = {c["id"]: c["kind"] for c in response.json()}
        assert kinds[created["id"]] == "direct"
        assert "public" in kinds.values()

    def test_participants_visible_only_to_members(
        self,
        client: TestClient,
        sign_in: Callable[[], dict[str, Any]],
        auth_user: dict[str, Any],
        other_user: dict[str, Any],
    ) -> None:
        outsider = sign_in()
        created = client.post(
            "/api/v1/conversations",
            json={"participant_ids": [other_user["user_id"]]},
            headers=auth_user["headers"],
        ).json()
        url = f"/api/v1/conversations/{created['id']}/participants"

        member_view = client.get(url, headers=other_user["headers"])
        outsider_view = client.get(url, headers=outsider["headers"])
        missing = client.get("/api/v1/conversations/999/participants", headers=auth_user["headers"])

        assert member_view.status_code == status.HTTP_200_OK
        assert set(member_view.json()["participant_ids"]) == {auth_user["user_id"], other_user["user_id"]}
        assert outsider_view.status_code == status.HTTP_403_FORBIDDEN
        assert missing.status_code == status.HTTP_404_NOT_FOUND
