"""
Feature: HTTP API
  As a client application
  I want REST endpoints for notes, files, categories and auth
  So that users can share study notes

Scenario: Register, login and create a note
  Given a new user registers
  When they log in and create a note with their token
  Then the note is returned with derived values

Scenario: Authentication is required for writes
  Given no valid authentication token is provided
  When a client tries to create a note
  Then the system returns 401 Unauthorized

Scenario: Errors are structured
  Given a request that fails validation or refers to a missing note
  When the API responds
  Then the body carries message, code and request_id

Scenario: Counters follow read visibility
  Given a private note and a deleted note
  When an anonymous caller bumps their view or download counters
  Then they get 403 and 404 and no counter moves

Scenario: Oversized uploads stop early
  Given a part larger than the upload ceiling
  When it is uploaded
  Then reading stops with 422 before anything is stored
"""
from notehub.core.config import settings

API = settings.api_prefix_normalized


def _create(client, headers, **fields):
    body = {"title": "Photosynthesis", "content": "Light becomes chemical energy.", "category": "Science"}
    body.update(fields)
    r = client.post(f"{API}/notes", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    assert client.get(f"{API}/ping").json() == {"message": "pong"}
    r = client.get(f"{API}/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_register_login_and_create_note(client):
    # Given a new user registers
    r = client.post(
        f"{API}/auth/register",
        json={"username": "carol", "email": "Carol@Example.com", "password": "secret123"},
    )
    assert r.status_code == 201, r.text

    # When they log in and create a note with their token
    r = client.post(f"{API}/auth/login", json={"email": "carol@example.com", "password": "secret123"})
    assert r.status_code == 200, r.text
    headers = {"Authorization": f"Bearer {r.json()['access_token']}"}
    note = _create(client, headers, tags=["Bio"])

    # Then the note is returned with derived values
    assert note["author_name"] == "carol"
    assert note["slug"].startswith("photosynthesis-")
    assert note["tags"] == ["bio"]
    assert note["reading_time"] == 1
    assert note["average_rating"] == 0
    assert note["favorite_count"] == 0
    assert "previous_versions" not in note
    assert "revision" not in note


def test_duplicate_registration_conflicts(client):
    body = {"username": "dave", "email": "dave@example.com", "password": "secret123"}
    assert client.post(f"{API}/auth/register", json=body).status_code == 201

    r = client.post(f"{API}/auth/register", json=body)

    assert r.status_code == 409
    assert r.json()["code"] == "conflict"


def test_wrong_password_is_unauthorized(client):
    client.post(f"{API}/auth/register", json={"username": "erin", "email": "erin@example.com", "password": "secret123"})
    r = client.post(f"{API}/auth/login", json={"email": "erin@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"


def test_login_is_rate_limited(client, monkeypatch):
    monkeypatch.setattr(settings, "login_rate_per_min", 2)
    body = {"email": "nobody@example.com", "password": "x"}
    responses = [client.post(f"{API}/auth/login", json=body) for _ in range(3)]
    assert [r.status_code for r in responses] == [401, 401, 429]
    assert responses[-1].json()["code"] == "rate_limited"
    assert 0 < responses[-1].json()["details"]["retry_after"] <= 60


def test_writes_require_authentication(client):
    # Given no token
    r = client.post(f"{API}/notes", json={"title": "t", "content": "c"})

    # Then the system returns 401 with a structured body
    assert r.status_code == 401
    assert r.json()["code"] == "unauthorized"

    r = client.post(f"{API}/notes", json={"title": "t", "content": "c"}, headers={"Authorization": "Bearer junk"})
    assert r.status_code == 401


def test_structured_errors_carry_request_id(client, auth_header, alice):
    r = client.get(f"{API}/notes/{'0' * 24}", headers={"X-Request-Id": "req-123"})
    assert r.status_code == 404
    assert r.json() == {
        "message": "Note not found",
        "code": "not_found",
        "details": {"note_id": "0" * 24},
        "request_id": "req-123",
    }
    assert r.headers["X-Request-Id"] == "req-123"

    r = client.post(f"{API}/notes", json={"title": "x" * 201, "content": "c"}, headers=auth_header(alice))
    assert r.status_code == 422
    assert r.json()["code"] == "validation_failed"
    assert r.json()["details"]["field"] == "title"

    r = client.post(f"{API}/notes", json={"content": "missing title"}, headers=auth_header(alice))
    assert r.status_code == 422
    assert r.json()["errors"]


def test_list_search_and_popular(client, auth_header, alice):
    headers = auth_header(alice)
    _create(client, headers, title="Mitosis", content="cell division", tags=["bio"])
    _create(client, headers, title="Kings", content="medieval history", category="History")
    _create(client, headers, title="Hidden", content="cell secrets", is_public=False)

    listed = client.get(f"{API}/notes", params={"category": "Science", "tags": "bio,cell"}).json()
    assert [n["title"] for n in listed["items"]] == ["Mitosis"]
    assert listed["total"] == 1 and listed["page"] == 1 and listed["limit"] == 20

    found = client.get(f"{API}/notes", params={"search": "medieval"}).json()
    assert [n["title"] for n in found["items"]] == ["Kings"]

    popular = client.get(f"{API}/notes/popular", params={"timeframe": "month"})
    assert popular.status_code == 200
    assert popular.json()["limit"] == 10

    assert client.get(f"{API}/notes/popular", params={"timeframe": "decade"}).status_code == 422
    assert client.get(f"{API}/notes", params={"page": 0}).status_code == 422

    mine = client.get(f"{API}/notes/mine", headers=headers).json()
    assert mine["total"] == 3


def test_update_versions_and_visibility(client, auth_header, alice, bob):
    note = _create(client, auth_header(alice))

    r = client.put(
        f"{API}/notes/{note['id']}",
        json={"content": "Updated body", "change_description": "Expand"},
        headers=auth_header(alice),
    )
    assert r.status_code == 200
    assert r.json()["version"] == 2

    versions = client.get(f"{API}/notes/{note['id']}/versions").json()
    assert versions[0]["content"] == "Light becomes chemical energy."
    assert versions[0]["change_description"] == "Expand"

    r = client.put(f"{API}/notes/{note['id']}", json={"title": "Mine now"}, headers=auth_header(bob))
    assert r.status_code == 403

    r = client.post(f"{API}/notes/{note['id']}/status", json={"status": "draft"}, headers=auth_header(alice))
    assert r.json()["status"] == "draft"
    assert client.get(f"{API}/notes/slug/{note['slug']}").status_code == 403
    assert client.get(f"{API}/notes/slug/{note['slug']}", headers=auth_header(alice)).status_code == 200


def test_rate_favorite_and_counters(client, auth_header, alice, bob):
    note = _create(client, auth_header(alice))
    url = f"{API}/notes/{note['id']}"

    r = client.post(f"{url}/rate", json={"rating": 5, "comment": "great"}, headers=auth_header(bob))
    assert r.json()["created"] is True
    r = client.post(f"{url}/rate", json={"rating": 3}, headers=auth_header(bob))
    assert r.json() == {
        "message": "Rating updated successfully",
        "created": False,
        "rating": 3.0,
        "rating_count": 1,
        "average_rating": 3.0,
    }
    assert client.post(f"{url}/rate", json={"rating": 6}, headers=auth_header(bob)).status_code == 422
    assert client.post(f"{url}/rate", json={"rating": "5"}, headers=auth_header(bob)).status_code == 422

    assert client.post(f"{url}/favorite", headers=auth_header(bob)).json() == {"favorited": True, "favorite_count": 1}
    assert client.post(f"{url}/favorite", headers=auth_header(bob)).json() == {"favorited": False, "favorite_count": 0}

    assert client.post(f"{url}/view").json()["view_count"] == 1
    assert client.post(f"{url}/download").json()["download_count"] == 1
    assert client.post(f"{API}/notes/{'0' * 24}/download").status_code == 404


def test_anonymous_counters_respect_visibility(client, auth_header, alice, note_store):
    # Given a private note and a note moved to deleted
    headers = auth_header(alice)
    private = _create(client, headers, is_public=False)
    gone = _create(client, headers, title="Old notes")
    client.post(f"{API}/notes/{gone['id']}/status", json={"status": "deleted"}, headers=headers)

    # When an anonymous caller hits the counters
    # Then private notes are 403, deleted ones 404, and no counter moves
    for counter in ("view", "download"):
        assert client.post(f"{API}/notes/{private['id']}/{counter}").status_code == 403
        assert client.post(f"{API}/notes/{gone['id']}/{counter}").status_code == 404
    for note_id in (private["id"], gone["id"]):
        assert note_store.docs[note_id].view_count == 0
        assert note_store.docs[note_id].download_count == 0

    # And the author still counts their private note
    r = client.post(f"{API}/notes/{private['id']}/view", headers=headers)
    assert r.status_code == 200
    assert r.json()["view_count"] == 1


def test_upload_attach_download_and_delete(client, auth_header, alice, bob, blobs):
    headers = auth_header(alice)
    r = client.post(
        f"{API}/files",
        files=[
            ("files", ("slides.pdf", b"%PDF-1.4 slides", "application/pdf")),
            ("files", ("notes.txt", b"plain notes", "text/plain")),
        ],
        data={"description": "week 1", "tags": "bio, Lab"},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    uploaded = r.json()["files"]
    assert [f["human_readable_size"] for f in uploaded] == ["15 Bytes", "11 Bytes"]
    assert uploaded[0]["tags"] == ["bio", "lab"]
    assert "storage_ref" not in uploaded[0]

    note = _create(client, headers, files=[f["id"] for f in uploaded])

    r = client.get(f"{API}/files/{uploaded[0]['id']}/download")
    assert r.status_code == 200
    assert r.content == b"%PDF-1.4 slides"
    assert r.headers["content-disposition"].startswith("inline;")
    assert client.get(f"{API}/files/{uploaded[0]['id']}").json()["download_count"] == 1

    r = client.delete(f"{API}/notes/{note['id']}", headers=auth_header(bob))
    assert r.status_code == 403

    r = client.delete(f"{API}/notes/{note['id']}", headers=headers)
    assert r.json()["files_deleted"] == 2
    assert blobs.blobs == {}
    assert client.delete(f"{API}/notes/{note['id']}", headers=headers).status_code == 404


def test_zip_upload_is_rejected(client, auth_header, alice, blobs):
    r = client.post(
        f"{API}/files",
        files=[("files", ("code.zip", b"PK\x03\x04", "application/zip"))],
        headers=auth_header(alice),
    )
    assert r.status_code == 422
    assert r.json()["details"]["field"] == "mimetype"
    assert blobs.store_calls == 0


def test_oversized_upload_is_rejected_while_reading(client, auth_header, alice, blobs, monkeypatch):
    # Given a small upload ceiling and a part spanning several read chunks
    monkeypatch.setattr(settings, "max_upload_bytes", 300 * 1024)
    big = b"%PDF" + b"0" * (600 * 1024)

    # When the part is uploaded
    r = client.post(
        f"{API}/files",
        files=[("files", ("huge.pdf", big, "application/pdf"))],
        headers=auth_header(alice),
    )

    # Then it is rejected as 422 on size and nothing reaches the blob storage
    assert r.status_code == 422
    body = r.json()
    assert body["details"]["field"] == "size"
    assert body["details"]["filename"] == "huge.pdf"
    assert blobs.store_calls == 0


def test_categories(client, auth_header, alice):
    r = client.post(f"{API}/categories", json={"name": "Data Science", "color": "#00FF00"}, headers=auth_header(alice))
    assert r.status_code == 201
    assert r.json()["slug"] == "data-science"

    dup = client.post(f"{API}/categories", json={"name": "Data Science"}, headers=auth_header(alice))
    assert dup.status_code == 409

    bad = client.post(f"{API}/categories", json={"name": "X", "color": "green"}, headers=auth_header(alice))
    assert bad.status_code == 422

    items = client.get(f"{API}/categories").json()["items"]
    assert [c["name"] for c in items] == ["Data Science"]
