from bson import ObjectId


def auth(user_id):
    return {"X-User-Id": user_id}


def test_add_and_list_comments(client, make_user, publish):
    u1 = make_user()
    u2 = make_user()
    vid = publish(u1).json()["data"]["id"]

    resp = client.post(f"/videos/{vid}/comments", json={"text": "First!"}, headers=auth(u2))
    assert resp.status_code == 201
    comment = resp.json()["data"]
    assert comment["text"] == "First!"
    assert comment["user_id"] == u2
    assert comment["video_id"] == vid

    client.post(f"/videos/{vid}/comments", json={"text": "Second"}, headers=auth(u1))

    data = client.get(f"/videos/{vid}/comments").json()["data"]
    assert data["total"] == 2
    assert data["total_pages"] == 1
    assert {c["text"] for c in data["items"]} == {"First!", "Second"}
    owners = {c["text"]: c["owner"]["id"] for c in data["items"]}
    assert owners["First!"] == u2


def test_comment_pagination(client, make_user, publish):
    u1 = make_user()
    vid = publish(u1).json()["data"]["id"]
    for i in range(5):
        client.post(f"/videos/{vid}/comments", json={"text": f"c{i}"}, headers=auth(u1))

    data = client.get(f"/videos/{vid}/comments", params={"limit": 2, "page": 3}).json()["data"]
    assert data["total"] == 5
    assert data["total_pages"] == 3
    assert len(data["items"]) == 1


def test_comment_on_missing_video(client, make_user):
    u1 = make_user()
    resp = client.post(f"/videos/{ObjectId()}/comments", json={"text": "Hello"}, headers=auth(u1))
    assert resp.status_code == 404
    assert client.get(f"/videos/{ObjectId()}/comments").status_code == 404


def test_comment_text_is_required(client, make_user, publish):
    u1 = make_user()
    vid = publish(u1).json()["data"]["id"]
    assert client.post(f"/videos/{vid}/comments", json={}, headers=auth(u1)).status_code == 400
    assert client.post(f"/videos/{vid}/comments", json={"text": ""}, headers=auth(u1)).status_code == 400
    assert client.post(f"/videos/{vid}/comments", json={"text": "x" * 501}, headers=auth(u1)).status_code == 400


def test_only_owner_updates_and_deletes(client, mongo, make_user, publish):
    u1 = make_user()
    u2 = make_user()
    vid = publish(u1).json()["data"]["id"]
    cid = client.post(f"/videos/{vid}/comments", json={"text": "Mine"}, headers=auth(u2)).json()["data"]["id"]

    resp = client.patch(f"/comments/{cid}", json={"text": "Not yours"}, headers=auth(u1))
    assert resp.status_code == 403
    assert resp.json()["message"] == "You are not authorized to update this comment"
    assert client.delete(f"/comments/{cid}", headers=auth(u1)).status_code == 403
    assert mongo["comment"].find_one({"_id": ObjectId(cid)})["text"] == "Mine"

    resp = client.patch(f"/comments/{cid}", json={"text": "Edited"}, headers=auth(u2))
    assert resp.status_code == 200
    assert resp.json()["data"]["text"] == "Edited"

    assert client.delete(f"/comments/{cid}", headers=auth(u2)).status_code == 200
    assert mongo["comment"].count_documents({}) == 0
    assert client.delete(f"/comments/{cid}", headers=auth(u2)).status_code == 404


def test_invalid_comment_ids(client, make_user):
    u1 = make_user()
    resp = client.patch("/comments/xyz", json={"text": "Edited"}, headers=auth(u1))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid comment id"
    assert client.delete("/comments/xyz", headers=auth(u1)).status_code == 400
    assert client.get("/videos/xyz/comments").status_code == 400
