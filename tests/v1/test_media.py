# tests/v1/test_media.py
"""Tests for media upload and download."""

from typing import Any

from fastapi import status
from fastapi.testclient import TestClient


def test_upload_fetch_and_delete(
    client: TestClient, auth_user: dict[str, Any], other_user: dict[str, Any]
) -> None:
    upload = client.post(
        "/api/v1/media",
        content=b"\x89PNG fake image",
        headers={**auth_user["headers"], "Content-Type": "image/png"},
    )

    assert upload.status_code == status.HTTP_201_CREATED
    body = upload.json()
    assert body["url"].startswith("/api/v1/media/")
    assert body["size"] == len(b"\x89PNG fake image")

    fetched = client.get(body["url"], headers=other_user["headers"])
    assert fetched.status_code == status.HTTP_200_OK
    assert fetched.content == b"\x89PNG fake image"
    assert fetched.headers["content-type"] == "image/png"

    forbidden = client.delete(body["url"], headers=other_user["headers"])
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    deleted = client.delete(body["url"], headers=auth_user["headers"])
    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    assert client.get(body["url"], headers=auth_user["headers"]).status_code == status.HTTP_404_NOT_FOUND


def test_upload_used_as_avatar(client: TestClient, auth_user: dict[str, Any]) -> None:
    url = client.post(
        "/api/v1/media",
        content=b"avatar-bytes",
        headers={**auth_user["headers"], "Content-Type": "image/jpeg"},
    ).json()["url"]

    profile = client.patch("/api/v1/users/me/profile", json={"avatar_ref": url}, headers=auth_user["headers"])

    assert profile.json()["avatar_ref"] == url


def test_empty_upload(client: TestClient, auth_user: dict[str, Any]) -> None:
    response = client.post("/api/v1/media", content=b"", headers=auth_user["headers"])
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_upload_requires_authentication(client: TestClient) -> None:
    assert client.post("/api/v1/media", content=b"data").status_code == status.HTTP_401_UNAUTHORIZED
