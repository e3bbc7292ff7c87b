import mongomock
from pymongo.errors import PyMongoError


def auth(user_id):
    return {"X-User-Id": user_id}


def test_stats_for_new_channel_are_zero(client, make_user):
    u1 = make_user()
    resp = client.get("/dashboard/stats", headers=auth(u1))
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "total_videos": 0,
        "total_subscribers": 0,
        "total_views": 0,
        "total_likes": 0,
    }


def test_stats_aggregate_channel_activity(client, make_user, publish):
    creator = make_user()
    fan = make_user()
    other = make_user()

    first = publish(creator, title="First").json()["data"]["id"]
    second = publish(creator, title="Second").json()["data"]["id"]
    publish(other, title="Not counted")
    for _ in range(2):
        client.get(f"/videos/{first}")
    client.get(f"/videos/{second}")

    client.post(f"/channels/{creator}/subscribe", headers=auth(fan))
    client.post(f"/channels/{creator}/subscribe", headers=auth(other))
    client.post(f"/videos/{first}/like", headers=auth(creator))

    data = client.get("/dashboard/stats", headers=auth(creator)).json()["data"]
    assert data == {
        "total_videos": 2,
        "total_subscribers": 2,
        "total_views": 3,
        "total_likes": 1,
    }


def test_stats_require_identity(client):
    assert client.get("/dashboard/stats").status_code == 401
    assert client.get("/dashboard/stats", headers=auth("garbage")).status_code == 401


def test_channel_videos_include_unpublished(client, make_user, publish):
    u1 = make_user()
    u2 = make_user()
    hidden = publish(u1, title="Draft").json()["data"]["id"]
    publish(u1, title="Public")
    publish(u2, title="Someone else")
    client.patch(f"/videos/{hidden}/publish", headers=auth(u1))

    data = client.get("/dashboard/videos", headers=auth(u1)).json()["data"]
    assert data["total"] == 2
    assert {v["title"] for v in data["items"]} == {"Draft", "Public"}


def test_store_failure_returns_envelope(failing_client, make_user, monkeypatch):
    u1 = make_user()

    def unreachable(self, *args, **kwargs):
        raise PyMongoError("connection refused")

    monkeypatch.setattr(mongomock.Collection, "count_documents", unreachable)
    resp = failing_client.get("/dashboard/stats", headers=auth(u1))
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal server error", "data": None}
