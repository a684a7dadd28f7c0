import pytest

PHOTO = {"title": "Dunes", "imageUrl": "https://img.example/dunes.jpg"}


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "OK"}


def test_database_diagnostics_lists_collections(client, create):
    create("photography", **PHOTO)
    body = client.get("/test").json()
    assert body["backend"] == "running"
    assert "photography" in body["collections"]


def test_create_then_list_round_trip(client, create):
    created = create("photography", **PHOTO, tags=["sand", " dusk "])
    assert created["id"]
    assert created["createdAt"] and created["updatedAt"]
    assert created["category"] == "other"
    assert created["tags"] == ["sand", "dusk"]
    assert created["order"] == 0

    listed = client.get("/api/photography").json()
    assert listed == [created]


@pytest.mark.parametrize("collection,fields", [
    ("videos", {"title": "Reel", "youtubeId": "abc123"}),
    ("experience", {"title": "Engineer", "company": "Acme", "startDate": "2021-01", "type": "work"}),
    ("projects", {"name": "Site", "description": "This site"}),
    ("skills", {"category": "Languages", "skills": [{"name": "Python"}]}),
    ("courses", {"name": "Algorithms"}),
    ("creatives", {"title": "Zine"}),
])
def test_every_collection_supports_crud(client, admin_headers, collection, fields):
    resp = client.post(f"/api/{collection}", json=fields, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    item = resp.json()

    resp = client.put(f"/api/{collection}/{item['id']}", json={"featured": True}, headers=admin_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["featured"] is True

    resp = client.delete(f"/api/{collection}/{item['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Deleted"}
    assert client.get(f"/api/{collection}").json() == []


def test_defaults_follow_the_schemas(create):
    assert create("videos", title="Reel", youtubeId="x")["category"] == "general"
    exp = create("experience", title="Volunteer", company="Shelter", startDate="2019", type="volunteer")
    assert exp["endDate"] == "Present"
    skill = create("skills", category="Tools", skills=[{"name": "git"}])
    assert skill["featured"] is True
    assert skill["skills"] == [{"name": "git", "featured": True}]
    assert create("courses", name="Compilers")["featured"] is True


def test_missing_required_field_is_rejected(client, admin_headers):
    resp = client.post("/api/photography", json={"title": "No image"}, headers=admin_headers)
    assert resp.status_code == 400
    assert "imageUrl" in resp.json()["message"]


def test_invalid_enum_is_rejected(client, admin_headers):
    resp = client.post("/api/photography", json={**PHOTO, "category": "macro"}, headers=admin_headers)
    assert resp.status_code == 400

    resp = client.post(
        "/api/experience",
        json={"title": "x", "company": "y", "startDate": "2020", "type": "hobby"},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_blank_required_string_is_rejected(client, admin_headers):
    resp = client.post("/api/courses", json={"name": "   "}, headers=admin_headers)
    assert resp.status_code == 400


def test_update_merges_and_revalidates(client, admin_headers, create):
    photo = create("photography", **PHOTO, description="first")
    resp = client.put(f"/api/photography/{photo['id']}", json={"title": "Dunes at dusk"}, headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Dunes at dusk"
    assert body["description"] == "first"
    assert body["createdAt"] == photo["createdAt"]

    resp = client.put(f"/api/photography/{photo['id']}", json={"category": "macro"}, headers=admin_headers)
    assert resp.status_code == 400


def test_update_ignores_server_fields_sent_back(client, admin_headers, create):
    photo = create("photography", **PHOTO)
    resp = client.put(
        f"/api/photography/{photo['id']}",
        json={**photo, "id": "something-else", "title": "Renamed"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["id"] == photo["id"]


@pytest.mark.parametrize("item_id", ["64b7f0c2a1b2c3d4e5f60718", "not-an-id"])
def test_unknown_ids_are_not_found(client, admin_headers, item_id):
    resp = client.put(f"/api/courses/{item_id}", json={"name": "x"}, headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Not found"}

    resp = client.delete(f"/api/courses/{item_id}", headers=admin_headers)
    assert resp.status_code == 404


def test_experience_type_filter_and_sort(client, create):
    create("experience", title="Old job", company="A", startDate="2018-01", type="work")
    create("experience", title="New job", company="B", startDate="2022-01", type="work")
    create("experience", title="Degree", company="Uni", startDate="2014-09", type="education")

    work = client.get("/api/experience", params={"type": "work"}).json()
    assert [e["title"] for e in work] == ["New job", "Old job"]

    education = client.get("/api/experience", params={"type": "education"}).json()
    assert [e["title"] for e in education] == ["Degree"]

    assert len(client.get("/api/experience").json()) == 3
    assert client.get("/api/experience", params={"type": "hobby"}).status_code == 400


def test_manual_order_wins_over_secondary_sort(client, create):
    create("projects", name="First", description="d", order=2)
    create("projects", name="Second", description="d", order=1)
    create("projects", name="Third", description="d", order=0)
    names = [p["name"] for p in client.get("/api/projects").json()]
    assert names == ["Third", "Second", "First"]


def _ids(client, collection):
    return [item["id"] for item in client.get(f"/api/{collection}").json()]


def test_reorder_with_current_order_is_a_no_op(client, admin_headers, create):
    for title in ("A", "B", "C"):
        create("photography", **{**PHOTO, "title": title})
    before = _ids(client, "photography")

    items = [{"id": item_id, "order": i} for i, item_id in enumerate(before)]
    resp = client.put("/api/photography/reorder", json={"items": items}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Updated", "updated": 3}
    assert _ids(client, "photography") == before


def test_reorder_with_reversed_permutation_reverses_list(client, admin_headers, create):
    for title in ("A", "B", "C"):
        create("photography", **{**PHOTO, "title": title})
    before = _ids(client, "photography")

    items = [{"id": item_id, "order": i} for i, item_id in enumerate(reversed(before))]
    resp = client.put("/api/photography/reorder", json={"items": items}, headers=admin_headers)
    assert resp.status_code == 200
    assert _ids(client, "photography") == list(reversed(before))


def test_reorder_applies_what_it_can(client, admin_headers, create):
    a = create("courses", name="A")
    b = create("courses", name="B")
    items = [
        {"id": b["id"], "order": 0},
        {"id": "64b7f0c2a1b2c3d4e5f60718", "order": 1},
        {"id": a["id"], "order": 2},
    ]
    resp = client.put("/api/courses/reorder", json={"items": items}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["failed"] == ["64b7f0c2a1b2c3d4e5f60718"]
    # no rollback: the valid items were still moved
    assert _ids(client, "courses") == [b["id"], a["id"]]


def test_reorder_requires_items(client, admin_headers):
    resp = client.put("/api/courses/reorder", json={}, headers=admin_headers)
    assert resp.status_code == 400
