# tests/v1/test_users.py
"""Tests for profile and contact endpoints."""

from typing import Any

from fastapi import status
from fastapi.testclient import TestClient


class TestProfileUpdate:
    def test_get_my_profile(self, client: TestClient, auth_user: dict[str, Any]) -> None:
        response = client.get("/api/v1/users/me/profile", headers=auth_user["headers"])

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user_id"] == auth_user["user_id"]
        assert response.json()["display_name"] == auth_user["user_id"]

    def test_get_my_profile_unauthorized(self, client: TestClient) -> None:
        assert client.get("/api/v1/users/me/profile").status_code == status.HTTP_401_UNAUTHORIZED

    def test_update_display_name_only(self, client: TestClient, auth_user: dict[str, Any]) -> None:
        client.patch(
            "/api/v1/users/me/profile",
            json={"avatar_ref": "/api/v1/media/abc"},
            headers=auth_user["headers"],
        )

        response = client.patch(
            "/api/v1/users/me/profile",
            json={"display_name": "  Ada  "},
            headers=auth_user["headers"],
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["display_name"] == "Ada"
        assert response.json()["avatar_ref"] == "/api/v1/media/abc"

    def test_update_with_null_keeps_value(self, client: TestClient, auth_user: dict[str, Any]) -> None:
        client.patch("/api/v1/users/me/profile", json={"display_name": "Ada"}, headers=auth_user["headers"])

        response = client.patch(
            "/api/v1/users/me/profile", json={"display_name": None}, headers=auth_user["headers"]
        )

        assert response.json()["display_name"] == "Ada"

    def test_blank_display_name(self, client: TestClient, auth_user: dict[str, Any]) -> None:
        response = client.patch(
            "/api/v1/users/me/profile", json={"display_name": "   "}, headers=auth_user["headers"]
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_other_users_profile(
        self, client: TestClient, auth_user: dict[str, Any], other_user: dict[str, Any]
    ) -> None:
        client.patch("/api/v1/users/me/profile", json={"display_name": "Grace"}, headers=other_user["headers"])

        response = client.get(f"/api/v1/users/{other_user['user_id']}/profile", headers=auth_user["headers"])

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["display_name"] == "Grace"

    def test_unknown_or_malformed_user(self, client: TestClient, auth_user: dict[str, Any]) -> None:
        unknown = client.get(f"/api/v1/users/{'B' * 43}/profile", headers=auth_user["headers"])
        malformed = client.get("/api/v1/users/not-an-id/profile", headers=auth_user["headers"])

        assert unknown.status_code == status.HTTP_404_NOT_FOUND
        assert malformed.status_code == status.HTTP_404_NOT_FOUND


class TestContacts:
    def test_contacts_exclude_self_and_filter(
        self, client: TestClient, sign_in, auth_user: dict[str, Any], other_user: dict[str, Any]
    ) -> None:
        third = sign_in()
        client.patch("/api/v1/users/me/profile", json={"display_name": "Linus"}, headers=other_user["headers"])
        client.patch("/api/v1/users/me/profile", json={"display_name": "Margaret"}, headers=third["headers"])

        everyone = client.get("/api/v1/users/contacts", headers=auth_user["headers"]).json()
        filtered = client.get(
            "/api/v1/users/contacts", params={"search": "lin"}, headers=auth_user["headers"]
        ).json()

        assert {u["user_id"] for u in everyone} == {other_user["user_id"], third["user_id"]}
        assert [u["display_name"] for u in filtered] == ["Linus"]
