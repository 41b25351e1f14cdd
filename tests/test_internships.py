from datetime import datetime, timedelta

from factories import (
    future, headers_for, make_admin, make_application, make_intern, make_internship, make_org,
)


def _payload(**overrides):
    payload = {
        "title": "Frontend Developer Intern",
        "description": "Build UI components",
        "requirements": "React basics",
        "duration": "3 months",
        "type": "UNPAID",
        "location": "Remote",
        "skills": ["react", "typescript"],
        "deadline": future().isoformat(),
    }
    payload.update(overrides)
    return payload


def test_create_internship_starts_as_draft(client, db):
    org = make_org(db)
    resp = client.post("/api/internships", json=_payload(), headers=headers_for(org))
    assert resp.status_code == 201
    body = resp.json()
    assert body["slug"] == "frontend-developer-intern"
    assert body["published"] is False
    assert body["approved"] is False
    assert body["organization_id"] == org.organization_profile.id


def test_duplicate_titles_get_distinct_slugs(client, db):
    org = make_org(db)
    first = client.post("/api/internships", json=_payload(), headers=headers_for(org)).json()
    second = client.post("/api/internships", json=_payload(), headers=headers_for(org)).json()
    third = client.post("/api/internships", json=_payload(), headers=headers_for(org)).json()
    assert [first["slug"], second["slug"], third["slug"]] == [
        "frontend-developer-intern",
        "frontend-developer-intern-2",
        "frontend-developer-intern-3",
    ]


def test_paid_internship_requires_amount(client, db):
    org = make_org(db)
    assert client.post("/api/internships", json=_payload(type="PAID"), headers=headers_for(org)).status_code == 422
    ok = client.post("/api/internships", json=_payload(type="PAID", amount=1500), headers=headers_for(org))
    assert ok.status_code == 201


def test_deadline_must_be_in_the_future(client, db):
    org = make_org(db)
    past = (datetime.utcnow() - timedelta(days=1)).isoformat()
    assert client.post("/api/internships", json=_payload(deadline=past), headers=headers_for(org)).status_code == 422


def test_only_organizations_create_internships(client, db):
    intern = make_intern(db)
    admin = make_admin(db)
    assert client.post("/api/internships", json=_payload(), headers=headers_for(intern)).status_code == 403
    assert client.post("/api/internships", json=_payload(), headers=headers_for(admin)).status_code == 403
    assert client.post("/api/internships", json=_payload()).status_code == 401


def test_list_public_only_returns_published_and_approved(client, db):
    org = make_org(db)
    active = [make_internship(db, org) for _ in range(25)]
    for _ in range(5):
        make_internship(db, org, published=False, approved=False)
    make_internship(db, org, published=True, approved=False)

    resp = client.get("/api/internships/public", params={"take": 10, "skip": 0})
    assert resp.status_code == 200
    rows = resp.json()
    assert len(rows) == 10
    assert all(row["published"] and row["approved"] for row in rows)
    # Newest first
    assert [row["id"] for row in rows] == [i.id for i in reversed(active)][:10]

    everything = []
    for skip in (0, 10, 20, 30):
        everything += client.get("/api/internships/public", params={"take": 10, "skip": skip}).json()
    assert len(everything) == 25


def test_list_public_caps_page_size(client):
    assert client.get("/api/internships/public", params={"take": 51}).status_code == 422
    assert client.get("/api/internships/public", params={"skip": -1}).status_code == 422


def test_slug_follows_title_while_draft(client, db):
    org = make_org(db)
    created = client.post("/api/internships", json=_payload(), headers=headers_for(org)).json()

    resp = client.patch(f"/api/internships/{created['id']}", json={"title": "Backend Intern"}, headers=headers_for(org))
    assert resp.status_code == 200
    assert resp.json()["slug"] == "backend-intern"


def test_slug_is_frozen_once_published(client, db):
    org = make_org(db)
    created = client.post("/api/internships", json=_payload(), headers=headers_for(org)).json()
    client.post(f"/api/internships/{created['id']}/publish", headers=headers_for(org))

    resp = client.patch(f"/api/internships/{created['id']}", json={"title": "Renamed"}, headers=headers_for(org))
    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"
    assert resp.json()["slug"] == "frontend-developer-intern"


def test_update_rechecks_paid_amount(client, db):
    org = make_org(db)
    internship = make_internship(db, org)
    resp = client.patch(f"/api/internships/{internship.id}", json={"type": "PAID"}, headers=headers_for(org))
    assert resp.status_code == 422


def test_update_requires_owner(client, db):
    owner, other = make_org(db), make_org(db)
    intern, admin = make_intern(db), make_admin(db)
    internship = make_internship(db, owner)

    url = f"/api/internships/{internship.id}"
    assert client.patch(url, json={"location": "NYC"}, headers=headers_for(other)).status_code == 403
    assert client.patch(url, json={"location": "NYC"}, headers=headers_for(intern)).status_code == 403
    assert client.patch(url, json={"location": "Berlin"}, headers=headers_for(admin)).json()["location"] == "Berlin"
    assert client.patch("/api/internships/9999", json={"location": "NYC"}, headers=headers_for(owner)).status_code == 404


def test_publish_is_idempotent(client, db):
    org = make_org(db)
    internship = make_internship(db, org, published=False, approved=False)

    first = client.post(f"/api/internships/{internship.id}/publish", headers=headers_for(org))
    second = client.post(f"/api/internships/{internship.id}/publish", headers=headers_for(org))
    assert first.status_code == 200 and first.json()["published"] is True
    assert second.status_code == 200 and second.json()["published"] is True


def test_publish_requires_owner(client, db):
    owner, other = make_org(db), make_org(db)
    internship = make_internship(db, owner, published=False, approved=False)
    assert client.post(f"/api/internships/{internship.id}/publish", headers=headers_for(other)).status_code == 403
    assert client.post("/api/internships/9999/publish", headers=headers_for(owner)).status_code == 404


def test_approval_is_admin_only_and_needs_publication(client, db):
    org, admin = make_org(db), make_admin(db)
    internship = make_internship(db, org, published=False, approved=False)
    url = f"/api/internships/{internship.id}/approve"

    assert client.post(url, json={"approved": True}, headers=headers_for(org)).status_code == 403
    assert client.post(url, json={"approved": True}, headers=headers_for(admin)).status_code == 409

    client.post(f"/api/internships/{internship.id}/publish", headers=headers_for(org))
    resp = client.post(url, json={"approved": True}, headers=headers_for(admin))
    assert resp.status_code == 200
    assert resp.json()["approved"] is True
    assert [row["id"] for row in client.get("/api/internships/public").json()] == [internship.id]


def test_drafts_are_hidden_from_the_public(client, db):
    org = make_org(db)
    intern = make_intern(db)
    draft = make_internship(db, org, published=False, approved=False)

    assert client.get(f"/api/internships/{draft.id}").status_code == 404
    assert client.get(f"/api/internships/slug/{draft.slug}", headers=headers_for(intern)).status_code == 404
    assert client.get(f"/api/internships/{draft.id}", headers=headers_for(org)).status_code == 200


def test_detail_by_slug_includes_the_interns_application(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)
    application = make_application(db, intern, internship)

    body = client.get(f"/api/internships/slug/{internship.slug}", headers=headers_for(intern)).json()
    assert body["user_application"]["id"] == application.id
    assert body["user_application"]["status"] == "PENDING"

    anonymous = client.get(f"/api/internships/slug/{internship.slug}").json()
    assert anonymous["user_application"] is None


def test_browse_for_intern(client, db):
    org, intern = make_org(db), make_intern(db)
    applied = make_internship(db, org)
    other = make_internship(db, org)
    make_internship(db, org, published=False, approved=False)
    make_application(db, intern, applied)

    body = client.get("/api/internships/browse", headers=headers_for(intern)).json()
    assert body["total"] == 2
    by_id = {item["id"]: item for item in body["items"]}
    assert by_id[applied.id]["application"]["status"] == "PENDING"
    assert by_id[other.id]["application"] is None

    mine = client.get("/api/internships/mine", headers=headers_for(intern)).json()
    assert [item["id"] for item in mine] == [applied.id]


def test_organization_and_admin_lists(client, db):
    org, other, admin = make_org(db), make_org(db), make_admin(db)
    draft = make_internship(db, org, published=False, approved=False)
    live = make_internship(db, org)
    make_internship(db, other)

    own = client.get("/api/internships/organization", headers=headers_for(org)).json()
    assert {row["id"] for row in own} == {draft.id, live.id}

    drafts = client.get("/api/internships/organization", params={"published": False}, headers=headers_for(org)).json()
    assert [row["id"] for row in drafts] == [draft.id]

    assert len(client.get("/api/internships/admin", headers=headers_for(admin)).json()) == 3
    assert client.get("/api/internships/admin", headers=headers_for(org)).status_code == 403


def test_delete_is_blocked_by_applications(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)
    make_application(db, intern, internship)

    resp = client.delete(f"/api/internships/{internship.id}", headers=headers_for(org))
    assert resp.status_code == 409


def test_delete_by_owner_or_admin(client, db):
    org, other, admin = make_org(db), make_org(db), make_admin(db)
    first = make_internship(db, org)
    second = make_internship(db, org)

    assert client.delete(f"/api/internships/{first.id}", headers=headers_for(other)).status_code == 403
    assert client.delete(f"/api/internships/{first.id}", headers=headers_for(org)).status_code == 204
    assert client.delete(f"/api/internships/{second.id}", headers=headers_for(admin)).status_code == 204
    assert client.get(f"/api/internships/{first.id}").status_code == 404


def test_blank_title_is_rejected(client, db):
    org = make_org(db)
    assert client.post("/api/internships", json=_payload(title="   "), headers=headers_for(org)).status_code == 422

    internship = make_internship(db, org)
    resp = client.patch(f"/api/internships/{internship.id}", json={"description": "  "}, headers=headers_for(org))
    assert resp.status_code == 422


def test_switching_to_unpaid_clears_amount(client, db):
    org = make_org(db)
    created = client.post("/api/internships", json=_payload(type="PAID", amount=1200), headers=headers_for(org)).json()
    url = f"/api/internships/{created['id']}"

    resp = client.patch(url, json={"type": "UNPAID"}, headers=headers_for(org))
    assert resp.status_code == 200
    assert resp.json()["type"] == "UNPAID"
    assert resp.json()["amount"] is None

    resp = client.patch(url, json={"type": "PAID", "amount": 900}, headers=headers_for(org))
    assert resp.json()["amount"] == 900
