from __future__ import annotations

BASE = "/api/v1/restaurants"

NEW_RESTAURANT = {
    "name": "Casa Grande 12",
    "cuisine": "Mexican",
    "borough": "Zapopan",
    "address": {
        "building": "100",
        "street": "Avenida Vallarta",
        "zipcode": "44100",
        "coordinate": [-103.35, 20.66],
    },
}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["success"] is True


def test_api_index(client):
    body = client.get("/api/v1").json()
    assert body["endpoints"]["restaurants"] == BASE


def test_list_envelope(client):
    resp = client.get(BASE, params={"page": 2, "limit": 4})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "page": 2,
        "limit": 4,
        "total": 6,
        "totalPages": 2,
        "hasNext": False,
        "hasPrev": True,
    }
    assert "averageScore" not in body["data"][0]
    assert "_id" not in body["data"][0]


def test_search_requires_query(client):
    resp = client.get(f"{BASE}/search")
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["statusCode"] == 400
    assert body["errors"] == ["q is required"]


def test_search(client):
    body = client.get(f"{BASE}/search", params={"q": "sushi"}).json()
    assert [r["name"] for r in body["data"]] == ["Sushi Roll"]


def test_cuisine_and_borough_routes(client):
    assert client.get(f"{BASE}/cuisine/japanese").json()["pagination"]["total"] == 1
    assert client.get(f"{BASE}/borough/zapopan").json()["data"][0]["name"] == "La Trattoria"
    resp = client.get(f"{BASE}/filter", params={"cuisine": "Mexican"})
    assert resp.status_code == 400


def test_score_route(client):
    body = client.get(f"{BASE}/score", params={"minScore": 20, "maxScore": 30}).json()
    assert [(r["name"], r["averageScore"]) for r in body["data"]] == [
        ("La Trattoria", 25.0),
        ("Mariscos Chapala", 30.0),
    ]
    assert client.get(f"{BASE}/score", params={"minScore": 30, "maxScore": 5}).status_code == 400


def test_nearby_route(client):
    body = client.get(f"{BASE}/nearby", params={"lng": -103.3496, "lat": 20.6597, "radius": 500}).json()
    assert [r["name"] for r in body["data"]] == ["Tacos El Güero", "Sushi Roll"]
    assert all(r["distance"] <= 0.5 for r in body["data"])
    assert client.get(f"{BASE}/nearby", params={"lng": "x", "lat": 1}).status_code == 400


def test_lookup_routes(client, id_of):
    doc_id = id_of("Sushi Roll")
    assert client.get(f"{BASE}/{doc_id}").json()["data"]["businessId"] == 1003
    assert client.get(f"{BASE}/restaurant-id/1003").json()["data"]["id"] == doc_id
    assert client.get(f"{BASE}/not-an-id").status_code == 400
    assert client.get(f"{BASE}/{'e' * 24}").status_code == 404


def test_stats_route(client):
    body = client.get(f"{BASE}/stats").json()
    assert body["data"] == {"totalRestaurants": 6}


def test_create_update_delete_flow(client):
    resp = client.post(BASE, json=NEW_RESTAURANT)
    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["businessId"] == 1011

    resp = client.patch(f"{BASE}/{created['id']}", json={"cuisine": "Italian"})
    assert resp.status_code == 200
    assert resp.json()["data"]["cuisine"] == "Italian"
    assert resp.json()["data"]["name"] == "Casa Grande 12"

    resp = client.post(f"{BASE}/{created['id']}/grades", json={"date": "2024-05-01T00:00:00", "score": 20})
    assert resp.status_code == 201
    graded = client.get(f"{BASE}/score", params={"minScore": 20, "maxScore": 20}).json()["data"]
    assert [r["name"] for r in graded] == ["Casa Grande 12"]

    resp = client.delete(f"{BASE}/{created['id']}")
    assert resp.json() == {"success": True, "message": "Restaurant deleted successfully"}
    assert client.get(f"{BASE}/{created['id']}").status_code == 404


def test_create_conflict(client):
    resp = client.post(BASE, json={**NEW_RESTAURANT, "businessId": 1001})
    assert resp.status_code == 409
    assert client.get(f"{BASE}/stats").json()["data"]["totalRestaurants"] == 6


def test_create_validation_errors(client):
    resp = client.post(BASE, json={"name": "Solo"})
    assert resp.status_code == 400
    assert "address is required" in resp.json()["errors"]


def test_type_errors_do_not_hide_missing_fields(client):
    resp = client.post(BASE, json={"name": "Solo", "address": {"coordinate": ["x", 1]}})
    assert resp.status_code == 400
    errors = resp.json()["errors"]
    assert "address.coordinate must contain finite numbers [longitude, latitude]" in errors
    assert "cuisine is required and must be a non-empty string" in errors
    assert "borough is required and must be a non-empty string" in errors
    assert "address.building is required and must be a non-empty string" in errors


def test_put_keeps_omitted_grades(client, id_of):
    doc_id = id_of("Birria Express")
    resp = client.put(f"{BASE}/{doc_id}", json=NEW_RESTAURANT)
    assert resp.status_code == 200
    assert [g["score"] for g in resp.json()["data"]["grades"]] == [18, 19]


def test_malformed_body_is_bad_request(client):
    resp = client.post(BASE, json={**NEW_RESTAURANT, "grades": [{"score": "lots"}]})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation failed"


def test_put_requires_full_payload(client, id_of):
    doc_id = id_of("Birria Express")
    assert client.put(f"{BASE}/{doc_id}", json={"name": "Birria"}).status_code == 400
    resp = client.put(f"{BASE}/{doc_id}", json={**NEW_RESTAURANT, "name": "Birria Nueva"})
    assert resp.status_code == 200
    assert resp.json()["data"]["businessId"] == 1005


def test_add_comment_route(client, id_of):
    doc_id = id_of("Birria Express")
    resp = client.post(f"{BASE}/{doc_id}/comments", json={"text": "Best birria", "date": "2024-05-01T10:00:00"})
    assert resp.status_code == 201
    assert resp.json()["data"]["comments"][0]["text"] == "Best birria"
