import itertools

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
import storage


@pytest.fixture
def mongo(monkeypatch):
    mock_db = mongomock.MongoClient()["video_sharing_test"]
    database.ensure_indexes(mock_db)
    monkeypatch.setattr(database, "db", mock_db)
    monkeypatch.setattr(main, "db", mock_db)
    return mock_db


@pytest.fixture
def client(mongo, monkeypatch, tmp_path):
    monkeypatch.setattr(storage, "UPLOAD_DIR", str(tmp_path))
    monkeypatch.setattr(storage, "probe_duration", lambda path: 12.5)
    return TestClient(main.app)


@pytest.fixture
def failing_client(client):
    """Client that returns 500 responses instead of re-raising server errors."""
    return TestClient(main.app, raise_server_exceptions=False)


@pytest.fixture
def make_user(client):
    counter = itertools.count(1)

    def _make(username=None):
        username = username or f"user{next(counter)}"
        resp = client.post(
            "/auth/register",
            json={"username": username, "email": f"{username}@mailbox.org", "password": "secret123"},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["id"]

    return _make


@pytest.fixture
def publish(client):
    def _publish(user_id, title="Intro", description="Hello world"):
        files = {
            "video_file": ("clip.mp4", b"fake-video-bytes", "video/mp4"),
            "thumbnail": ("thumb.jpg", b"fake-image-bytes", "image/jpeg"),
        }
        return client.post(
            "/videos",
            data={"title": title, "description": description},
            files=files,
            headers={"X-User-Id": user_id},
        )

    return _publish

