from uuid import uuid4

import pytest


def _payload(**overrides):
    payload = {"name": "Ann Lee", "company": "Acme", "rating": 5, "testimonial": "Great team"}
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_testimonial(client):
    response = await client.post("/api/testimonials", json=_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Testimonial created successfully"
    assert body["testimonial"]["rating"] == 5
    assert body["testimonial"]["active"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6])
async def test_rating_out_of_range_is_rejected(client, rating):
    response = await client.post("/api/testimonials", json=_payload(rating=rating))

    assert response.status_code == 400
    body = response.json()
    assert "Rating" in body["error"]
    assert set(body) == {"error", "details"}

    assert (await client.get("/api/testimonials/all")).json() == []


@pytest.mark.asyncio
async def test_required_fields(client):
    response = await client.post("/api/testimonials", json={"name": "Ann", "rating": 4})

    assert response.status_code == 400
    assert "company" in response.json()["error"]


@pytest.mark.asyncio
async def test_public_list_only_shows_active(client):
    shown = (await client.post("/api/testimonials", json=_payload(name="Shown"))).json()["testimonial"]
    hidden = (await client.post("/api/testimonials", json=_payload(name="Hidden", active=False))).json()["testimonial"]

    public = (await client.get("/api/testimonials")).json()
    assert [t["id"] for t in public] == [shown["id"]]

    everything = (await client.get("/api/testimonials/all")).json()
    assert [t["id"] for t in everything] == [hidden["id"], shown["id"]]


@pytest.mark.asyncio
async def test_toggle_active(client):
    created = (await client.post("/api/testimonials", json=_payload())).json()["testimonial"]

    response = await client.put(f"/api/testimonials/{created['id']}/active", json={"active": False})

    assert response.status_code == 200
    assert response.json()["message"] == "Testimonial deactivated"
    assert response.json()["testimonial"]["active"] is False
    assert (await client.get("/api/testimonials")).json() == []


@pytest.mark.asyncio
async def test_update_and_delete(client):
    created = (await client.post("/api/testimonials", json=_payload())).json()["testimonial"]

    response = await client.put(f"/api/testimonials/{created['id']}", json=_payload(rating=3, company="Beta"))
    assert response.status_code == 200
    assert response.json()["testimonial"]["company"] == "Beta"
    assert response.json()["testimonial"]["rating"] == 3

    response = await client.put(f"/api/testimonials/{created['id']}", json=_payload(rating=9))
    assert response.status_code == 400

    response = await client.delete(f"/api/testimonials/{created['id']}")
    assert response.status_code == 200
    assert response.json() == {"message": "Testimonial deleted successfully"}
    assert (await client.get(f"/api/testimonials/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_unknown_testimonial(client):
    missing = uuid4()

    assert (await client.get(f"/api/testimonials/{missing}")).status_code == 404
    assert (await client.put(f"/api/testimonials/{missing}", json=_payload())).status_code == 404
    assert (await client.delete(f"/api/testimonials/{missing}")).status_code == 404
    response = await client.put(f"/api/testimonials/{missing}/active", json={"active": True})
    assert response.status_code == 404
    assert response.json()["error"] == "Testimonial not found"
