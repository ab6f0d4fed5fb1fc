import json
from uuid import uuid4

import pytest

from conftest import PDF_BYTES, PNG_BYTES


async def _subscribe(client, email, name=None):
    payload = {"email": email}
    if name is not None:
        payload["name"] = name
    return await client.post("/api/newsletter/subscribe", json=payload)


@pytest.mark.asyncio
async def test_subscribe_creates_subscriber(client):
    response = await _subscribe(client, "  Reader@Example.com ", name="Reader")

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Successfully subscribed"
    assert body["subscriber"]["email"] == "reader@example.com"
    assert body["subscriber"]["name"] == "Reader"
    assert body["subscriber"]["unsubscribed"] is False
    assert body["subscriber"]["unsubscribed_at"] is None


@pytest.mark.asyncio
async def test_subscribe_rejects_active_duplicate(client):
    await _subscribe(client, "reader@example.com")

    response = await _subscribe(client, "READER@example.com")

    assert response.status_code == 400
    assert response.json()["error"] == "Email already subscribed"


@pytest.mark.asyncio
async def test_subscribe_rejects_malformed_email(client):
    response = await _subscribe(client, "not-an-email")

    assert response.status_code == 400
    assert "email" in response.json()["error"]


@pytest.mark.asyncio
async def test_resubscribe_reactivates_existing_row(client):
    created = (await _subscribe(client, "reader@example.com")).json()["subscriber"]

    response = await client.put(f"/api/newsletter/subscribers/{created['id']}/unsubscribe")
    assert response.status_code == 200
    gone = response.json()["subscriber"]
    assert gone["unsubscribed"] is True
    assert gone["unsubscribed_at"] is not None

    response = await _subscribe(client, "reader@example.com")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Subscription reactivated"
    assert body["subscriber"]["id"] == created["id"]
    assert body["subscriber"]["unsubscribed"] is False
    assert body["subscriber"]["unsubscribed_at"] is None

    listed = (await client.get("/api/newsletter/subscribers")).json()
    assert len(listed) == 1


@pytest.mark.asyncio
async def test_unsubscribe_and_resubscribe_by_id(client):
    created = (await _subscribe(client, "reader@example.com")).json()["subscriber"]

    await client.put(f"/api/newsletter/subscribers/{created['id']}/unsubscribe")
    response = await client.put(f"/api/newsletter/subscribers/{created['id']}/resubscribe")

    assert response.status_code == 200
    assert response.json()["subscriber"]["unsubscribed"] is False
    assert response.json()["subscriber"]["unsubscribed_at"] is None

    response = await client.put(f"/api/newsletter/subscribers/{uuid4()}/unsubscribe")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unsubscribe_by_email(client):
    await _subscribe(client, "reader@example.com")

    response = await client.post("/api/newsletter/unsubscribe", json={"email": "Reader@example.com"})
    assert response.status_code == 200
    assert response.json()["subscriber"]["unsubscribed"] is True

    response = await client.post("/api/newsletter/unsubscribe", json={"email": "nobody@example.com"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_subscriber_crud(client):
    first = (await _subscribe(client, "a@example.com")).json()["subscriber"]
    second = (await _subscribe(client, "b@example.com")).json()["subscriber"]

    listed = (await client.get("/api/newsletter/subscribers")).json()
    assert [s["id"] for s in listed] == [second["id"], first["id"]]

    fetched = await client.get(f"/api/newsletter/subscribers/{first['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["email"] == "a@example.com"

    response = await client.put(
        f"/api/newsletter/subscribers/{first['id']}",
        json={"email": "b@example.com", "name": "Clash"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Email already subscribed"

    response = await client.put(
        f"/api/newsletter/subscribers/{first['id']}",
        json={"email": "a2@example.com", "name": "Renamed"},
    )
    assert response.status_code == 200
    assert response.json()["subscriber"]["email"] == "a2@example.com"

    response = await client.delete(f"/api/newsletter/subscribers/{first['id']}")
    assert response.status_code == 200
    assert (await client.get(f"/api/newsletter/subscribers/{first['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_send_newsletter_by_audience(client):
    a = (await _subscribe(client, "a@example.com")).json()["subscriber"]
    b = (await _subscribe(client, "b@example.com")).json()["subscriber"]
    c = (await _subscribe(client, "c@example.com")).json()["subscriber"]
    await client.put(f"/api/newsletter/subscribers/{c['id']}/unsubscribe")

    response = await client.post(
        "/api/newsletter/send",
        json={"subject": "Issue 1", "content": "Hello", "sendTo": "all"},
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Newsletter sent to 2 subscribers", "sentTo": 2}

    response = await client.post(
        "/api/newsletter/send",
        json={"subject": "Issue 1", "content": "Hello", "sendTo": "selected", "subscriberIds": [b["id"], c["id"]]},
    )
    assert response.json()["sentTo"] == 1

    response = await client.post(
        "/api/newsletter/send",
        json={"subject": "Win-back", "content": "Come back", "sendTo": "unsubscribed"},
    )
    assert response.json()["sentTo"] == 1
    assert a["id"] != c["id"]


@pytest.mark.asyncio
async def test_send_newsletter_without_audience_reaches_nobody(client, services, monkeypatch):
    await _subscribe(client, "a@example.com")
    sent = []
    original_send = services.notifications.send

    async def recording_send(subject, content, recipients):
        sent.append(list(recipients))
        return await original_send(subject, content, recipients)

    monkeypatch.setattr(services.notifications, "send", recording_send)

    response = await client.post("/api/newsletter/send", json={"subject": "Issue 1", "content": "Hello"})

    assert response.status_code == 200
    assert response.json() == {"message": "Newsletter sent to 0 subscribers", "sentTo": 0}
    assert sent == [[]]


@pytest.mark.asyncio
async def test_send_newsletter_requires_subject(client):
    response = await client.post("/api/newsletter/send", json={"subject": "", "content": "Hello"})

    assert response.status_code == 400
    assert "subject" in response.json()["error"]


# Newsletter PDF uploads


async def _upload(client, pdf=("issue-1.pdf", PDF_BYTES, "application/pdf"), **fields):
    metadata = {"name": "Issue 1", "category": "Monthly", "date": "2024-03-01"}
    metadata.update(fields)
    files = {"pdf": pdf} if pdf else None
    return await client.post("/api/newsletter/upload", data={"data": json.dumps(metadata)}, files=files)


@pytest.mark.asyncio
async def test_upload_newsletter_pdf(client, settings):
    response = await _upload(client)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Newsletter uploaded successfully"
    newsletter = body["newsletter"]
    assert newsletter["original_name"] == "issue-1.pdf"
    assert newsletter["filename"] != "issue-1.pdf"
    assert newsletter["date"] == "2024-03-01"
    assert body["url"] == f"/uploads/newsletters/{newsletter['filename']}"
    assert (settings.newsletters_dir / newsletter["filename"]).read_bytes() == PDF_BYTES

    served = await client.get(body["url"])
    assert served.status_code == 200
    assert served.content == PDF_BYTES


@pytest.mark.asyncio
async def test_upload_accepts_plain_form_fields(client):
    response = await client.post(
        "/api/newsletter/upload",
        data={"name": "Issue 2", "category": "Weekly", "date": "2024-04-01"},
        files={"pdf": ("issue-2.pdf", PDF_BYTES, "application/pdf")},
    )

    assert response.status_code == 201
    assert response.json()["newsletter"]["category"] == "Weekly"


@pytest.mark.asyncio
async def test_upload_requires_a_file(client):
    response = await _upload(client, pdf=None)

    assert response.status_code == 400
    assert response.json()["error"] == "No file uploaded"


@pytest.mark.asyncio
async def test_upload_rejects_non_pdf(client, settings):
    response = await _upload(client, pdf=("cover.png", PNG_BYTES, "image/png"))

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid file type"
    assert list(settings.newsletters_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_upload_validates_metadata_before_writing(client, settings):
    response = await _upload(client, name="")

    assert response.status_code == 400
    assert "name" in response.json()["error"]
    assert list(settings.newsletters_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_list_and_fetch_uploads(client):
    first = (await _upload(client, name="Issue 1")).json()["newsletter"]
    second = (await _upload(client, name="Issue 2")).json()["newsletter"]

    listed = (await client.get("/api/newsletter/uploads")).json()
    assert [n["id"] for n in listed] == [second["id"], first["id"]]

    response = await client.get(f"/api/newsletter/uploads/{first['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "Issue 1"

    assert (await client.get(f"/api/newsletter/uploads/{uuid4()}")).status_code == 404


@pytest.mark.asyncio
async def test_update_upload_replaces_pdf(client, settings):
    original = (await _upload(client)).json()["newsletter"]

    response = await client.put(
        f"/api/newsletter/uploads/{original['id']}",
        data={"data": json.dumps({"name": "Issue 1 (rev)", "category": "Monthly", "date": "2024-03-02"})},
        files={"pdf": ("issue-1-rev.pdf", PDF_BYTES, "application/pdf")},
    )

    assert response.status_code == 200
    updated = response.json()["newsletter"]
    assert updated["name"] == "Issue 1 (rev)"
    assert updated["original_name"] == "issue-1-rev.pdf"
    assert not (settings.newsletters_dir / original["filename"]).exists()
    assert (settings.newsletters_dir / updated["filename"]).is_file()
    assert response.json()["url"] == f"/uploads/newsletters/{updated['filename']}"


@pytest.mark.asyncio
async def test_update_upload_metadata_only(client, settings):
    original = (await _upload(client)).json()["newsletter"]

    response = await client.put(
        f"/api/newsletter/uploads/{original['id']}",
        data={"name": "Renamed", "category": "Monthly", "date": "2024-03-01"},
    )

    assert response.status_code == 200
    assert response.json()["newsletter"]["filename"] == original["filename"]
    assert (settings.newsletters_dir / original["filename"]).is_file()


@pytest.mark.asyncio
async def test_delete_upload_removes_pdf(client, settings):
    newsletter = (await _upload(client)).json()["newsletter"]

    response = await client.delete(f"/api/newsletter/uploads/{newsletter['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Newsletter deleted successfully"}
    assert not (settings.newsletters_dir / newsletter["filename"]).exists()
    assert (await client.get(f"/api/newsletter/uploads/{newsletter['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_upload_with_missing_file(client, settings):
    newsletter = (await _upload(client)).json()["newsletter"]
    (settings.newsletters_dir / newsletter["filename"]).unlink()

    response = await client.delete(f"/api/newsletter/uploads/{newsletter['id']}")

    assert response.status_code == 200
