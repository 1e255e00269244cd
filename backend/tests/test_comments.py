"""Tests for comment endpoints"""
import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def image(client: TestClient, signup, upload_png):
    owner = signup("alice")
    gallery = client.post("/api/galleries", json={"name": "Holidays"}, headers=owner).json()
    created = upload_png(gallery["id"], "Beach", owner)
    return {"id": created["id"], "owner": owner}


def test_create_comment(client: TestClient, image, signup):
    bob = signup("bob")

    response = client.post(f"/api/comments/{image['id']}", json={"content": "Lovely"}, headers=bob)
    assert response.status_code == 201

    data = response.json()
    assert data["content"] == "Lovely"
    assert data["author"] == "bob"
    assert data["imageId"] == image["id"]
    assert data["isOwnComment"] is True
    assert data["canDelete"] is True


def test_create_comment_requires_auth(client: TestClient, image):
    response = client.post(f"/api/comments/{image['id']}", json={"content": "Lovely"})
    assert response.status_code == 401


def test_create_comment_missing_image(client: TestClient, signup):
    headers = signup("bob")
    response = client.post("/api/comments/999", json={"content": "Lovely"}, headers=headers)
    assert response.status_code == 404


def test_create_comment_empty_content(client: TestClient, image):
    response = client.post(f"/api/comments/{image['id']}", json={"content": ""}, headers=image["owner"])
    assert response.status_code == 422


def test_list_comments_flags(client: TestClient, image, signup):
    bob = signup("bob")
    carol = signup("carol")
    client.post(f"/api/comments/{image['id']}", json={"content": "from bob"}, headers=bob)
    client.post(f"/api/comments/{image['id']}", json={"content": "from carol"}, headers=carol)

    as_bob = client.get(f"/api/comments/{image['id']}", headers=bob).json()
    by_content = {c["content"]: c for c in as_bob["items"]}
    assert [c["content"] for c in as_bob["items"]] == ["from carol", "from bob"]
    assert by_content["from bob"]["isOwnComment"] is True
    assert by_content["from bob"]["canDelete"] is True
    assert by_content["from carol"]["isOwnComment"] is False
    assert by_content["from carol"]["canDelete"] is False

    # The gallery owner may delete every comment on their images
    as_owner = client.get(f"/api/comments/{image['id']}", headers=image["owner"]).json()
    assert all(c["canDelete"] for c in as_owner["items"])
    assert not any(c["isOwnComment"] for c in as_owner["items"])


def test_list_comments_paginates(client: TestClient, image):
    for i in range(5):
        client.post(f"/api/comments/{image['id']}", json={"content": f"c{i}"}, headers=image["owner"])

    first = client.get(f"/api/comments/{image['id']}", params={"limit": 3}, headers=image["owner"]).json()
    second = client.get(
        f"/api/comments/{image['id']}",
        params={"limit": 3, "cursor": first["nextCursor"]},
        headers=image["owner"],
    ).json()

    assert [c["content"] for c in first["items"]] == ["c4", "c3", "c2"]
    assert [c["content"] for c in second["items"]] == ["c1", "c0"]
    assert second["nextCursor"] is None


def test_list_comments_anonymous(client: TestClient, image):
    assert client.get(f"/api/comments/{image['id']}").status_code == 401


def test_list_comments_missing_image_before_auth(client: TestClient):
    assert client.get("/api/comments/999").status_code == 404


def test_list_comments_invalid_limit(client: TestClient, image):
    response = client.get(f"/api/comments/{image['id']}", params={"limit": 0}, headers=image["owner"])
    assert response.status_code == 400
    assert response.json()["field"] == "limit"


def test_delete_own_comment(client: TestClient, image, signup):
    bob = signup("bob")
    comment = client.post(f"/api/comments/{image['id']}", json={"content": "oops"}, headers=bob).json()

    assert client.delete(f"/api/comments/{comment['id']}", headers=bob).status_code == 204
    assert client.get(f"/api/comments/{image['id']}", headers=bob).json()["items"] == []


def test_gallery_owner_deletes_comment(client: TestClient, image, signup):
    bob = signup("bob")
    comment = client.post(f"/api/comments/{image['id']}", json={"content": "spam"}, headers=bob).json()

    assert client.delete(f"/api/comments/{comment['id']}", headers=image["owner"]).status_code == 204


def test_stranger_cannot_delete_comment(client: TestClient, image, signup):
    bob = signup("bob")
    carol = signup("carol")
    comment = client.post(f"/api/comments/{image['id']}", json={"content": "mine"}, headers=bob).json()

    assert client.delete(f"/api/comments/{comment['id']}", headers=carol).status_code == 403


def test_delete_missing_comment(client: TestClient, signup):
    headers = signup("bob")
    assert client.delete("/api/comments/999", headers=headers).status_code == 404
