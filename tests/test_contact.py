"""Contact intake tests."""

import pytest

from storefront.models import ContactSubmission


def _payload(**overrides):
    payload = {
        "name": "Ada",
        "email": "ada@example.com",
        "subject": "Custom ring",
        "message": "Could you size a ring for me?",
    }
    payload.update(overrides)
    return payload


def test_submit_contact(client, db):
    response = client.post("/api/contact", json=_payload(phone="204-555-0100"))
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Thank you for your message! We'll get back to you soon."

    row = db.query(ContactSubmission).filter(ContactSubmission.id == body["id"]).one()
    assert row.email == "ada@example.com"
    assert row.phone == "204-555-0100"
    assert row.is_consultation is False


def test_consultation_request(client, db):
    response = client.post(
        "/api/contact",
        json=_payload(isConsultation=True, preferredDate="2026-11-02T15:00:00Z"),
    )
    assert response.status_code == 201
    row = db.query(ContactSubmission).one()
    assert row.is_consultation is True
    assert row.preferred_date is not None


@pytest.mark.parametrize("field", ["name", "email", "subject", "message"])
def test_required_fields(client, db, field):
    response = client.post("/api/contact", json=_payload(**{field: "   "}))
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Name, email, subject, and message are required"
    assert body["details"] == {"missing": [field]}
    assert db.query(ContactSubmission).count() == 0


def test_missing_fields_are_listed(client):
    response = client.post("/api/contact", json={"name": "Ada"})
    assert response.status_code == 400
    assert response.json()["details"] == {"missing": ["email", "subject", "message"]}


def test_fields_are_stripped(client, db):
    client.post("/api/contact", json=_payload(name="  Ada  "))
    assert db.query(ContactSubmission).one().name == "Ada"
