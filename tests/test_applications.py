from internhub.models import Application, ApplicationStatus, SubmissionStatus

from factories import (
    headers_for, make_admin, make_application, make_intern, make_internship, make_org, make_submission, make_task,
)


def _apply(client, intern, internship, **overrides):
    payload = {"internship_id": internship.id, "availability": "Full time from June"}
    payload.update(overrides)
    return client.post("/api/applications", json=payload, headers=headers_for(intern))


def test_apply_creates_pending_application_with_profile_resume(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)

    resp = _apply(client, intern, internship, cover_letter="/uploads/cover-letter/me.pdf")
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "PENDING"
    assert body["resume"] == intern.intern_profile.resume
    assert body["cover_letter"] == "/uploads/cover-letter/me.pdf"


def test_attached_resume_wins_over_profile(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)

    resp = _apply(client, intern, internship, resume="/uploads/resume/tailored.pdf")
    assert resp.json()["resume"] == "/uploads/resume/tailored.pdf"


def test_apply_without_any_resume(client, db):
    org, intern = make_org(db), make_intern(db, resume=None)
    internship = make_internship(db, org)

    resp = _apply(client, intern, internship)
    assert resp.status_code == 422
    assert resp.json()["code"] == "VALIDATION"


def test_apply_twice_conflicts(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)

    assert _apply(client, intern, internship).status_code == 201
    second = _apply(client, intern, internship)
    assert second.status_code == 409
    assert second.json()["code"] == "CONFLICT"

    db.expire_all()
    assert db.query(Application).count() == 1


def test_cannot_apply_to_hidden_internship(client, db):
    org, intern = make_org(db), make_intern(db)
    draft = make_internship(db, org, published=True, approved=False)

    assert _apply(client, intern, draft).status_code == 404
    assert client.post("/api/applications", json={"internship_id": 9999, "availability": "Now"},
                       headers=headers_for(intern)).status_code == 404


def test_only_interns_apply(client, db):
    org = make_org(db)
    internship = make_internship(db, org)
    assert _apply(client, org, internship).status_code == 403


def test_organization_accepts_application(client, db):
    org, intern = make_org(db), make_intern(db)
    application = make_application(db, intern, make_internship(db, org))

    resp = client.patch(f"/api/applications/{application.id}/status", json={"status": "ACCEPTED"},
                        headers=headers_for(org))
    assert resp.status_code == 200
    assert resp.json()["status"] == "ACCEPTED"


def test_status_update_permissions(client, db):
    org, other, intern, admin = make_org(db), make_org(db), make_intern(db), make_admin(db)
    application = make_application(db, intern, make_internship(db, org))
    url = f"/api/applications/{application.id}/status"

    assert client.patch(url, json={"status": "ACCEPTED"}, headers=headers_for(intern)).status_code == 403
    assert client.patch(url, json={"status": "ACCEPTED"}, headers=headers_for(other)).status_code == 403
    assert client.patch(url, json={"status": "REJECTED"}, headers=headers_for(admin)).json()["status"] == "REJECTED"


def test_status_update_only_accepts_decisions(client, db):
    org, intern = make_org(db), make_intern(db)
    application = make_application(db, intern, make_internship(db, org))
    url = f"/api/applications/{application.id}/status"

    assert client.patch(url, json={"status": "PENDING"}, headers=headers_for(org)).status_code == 422
    assert client.patch(url, json={"status": "WITHDRAWN"}, headers=headers_for(org)).status_code == 422


def test_decided_application_cannot_be_decided_again(client, db):
    org, intern = make_org(db), make_intern(db)
    application = make_application(db, intern, make_internship(db, org), status=ApplicationStatus.ACCEPTED)

    resp = client.patch(f"/api/applications/{application.id}/status", json={"status": "REJECTED"},
                        headers=headers_for(org))
    assert resp.status_code == 409


def test_withdraw_then_reapply(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)
    first = _apply(client, intern, internship).json()

    resp = client.post(f"/api/applications/{first['id']}/withdraw", headers=headers_for(intern))
    assert resp.status_code == 200
    assert resp.json()["status"] == "WITHDRAWN"

    again = _apply(client, intern, internship)
    assert again.status_code == 201
    assert again.json()["id"] != first["id"]

    detail = client.get(f"/api/internships/{internship.id}", headers=headers_for(intern)).json()
    assert detail["user_application"]["id"] == again.json()["id"]


def test_no_reapply_after_rejection(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)
    make_application(db, intern, internship, status=ApplicationStatus.REJECTED)

    assert _apply(client, intern, internship).status_code == 409


def test_withdraw_rules(client, db):
    org, intern, stranger = make_org(db), make_intern(db), make_intern(db)
    internship = make_internship(db, org)
    pending = make_application(db, intern, internship)

    assert client.post(f"/api/applications/{pending.id}/withdraw", headers=headers_for(stranger)).status_code == 403
    assert client.post(f"/api/applications/{pending.id}/withdraw", headers=headers_for(org)).status_code == 403

    pending.status = ApplicationStatus.ACCEPTED
    db.commit()
    assert client.post(f"/api/applications/{pending.id}/withdraw", headers=headers_for(intern)).status_code == 409


def test_get_application_visibility(client, db):
    org, other, intern, stranger, admin = (
        make_org(db), make_org(db), make_intern(db), make_intern(db), make_admin(db),
    )
    application = make_application(db, intern, make_internship(db, org))
    url = f"/api/applications/{application.id}"

    assert client.get(url, headers=headers_for(intern)).status_code == 200
    assert client.get(url, headers=headers_for(org)).status_code == 200
    assert client.get(url, headers=headers_for(admin)).status_code == 200
    assert client.get(url, headers=headers_for(stranger)).status_code == 403
    assert client.get(url, headers=headers_for(other)).status_code == 403
    assert client.get("/api/applications/9999", headers=headers_for(intern)).status_code == 404


def test_application_lists(client, db):
    org, other, intern, admin = make_org(db), make_org(db), make_intern(db), make_admin(db)
    accepted = make_application(db, intern, make_internship(db, org), status=ApplicationStatus.ACCEPTED)
    pending = make_application(db, intern, make_internship(db, org))
    make_application(db, make_intern(db), make_internship(db, other))

    own = client.get("/api/applications", headers=headers_for(org)).json()
    assert {a["id"] for a in own} == {accepted.id, pending.id}

    filtered = client.get("/api/applications", params={"status": "PENDING"}, headers=headers_for(org)).json()
    assert [a["id"] for a in filtered] == [pending.id]

    mine = client.get("/api/applications/mine", headers=headers_for(intern)).json()
    assert [a["id"] for a in mine] == [pending.id, accepted.id]

    assert len(client.get("/api/applications/all", headers=headers_for(admin)).json()) == 3
    assert client.get("/api/applications/all", headers=headers_for(org)).status_code == 403


def test_delete_application(client, db):
    org, other, intern = make_org(db), make_org(db), make_intern(db)
    application = make_application(db, intern, make_internship(db, org))
    url = f"/api/applications/{application.id}"

    assert client.delete(url, headers=headers_for(intern)).status_code == 403
    assert client.delete(url, headers=headers_for(other)).status_code == 403
    assert client.delete(url, headers=headers_for(org)).status_code == 204
    assert client.get(url, headers=headers_for(org)).status_code == 404


def test_workspace_requires_acceptance(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)
    make_task(db, internship)
    application = make_application(db, intern, internship)
    url = f"/api/internships/slug/{internship.slug}/workspace"

    assert client.get(url, headers=headers_for(intern)).status_code == 403
    assert client.get(url, headers=headers_for(org)).status_code == 403

    application.status = ApplicationStatus.ACCEPTED
    db.commit()
    resp = client.get(url, headers=headers_for(intern))
    assert resp.status_code == 200
    assert resp.json()["application"]["status"] == "ACCEPTED"


def test_workspace_progress(client, db):
    org, intern = make_org(db), make_intern(db)
    internship = make_internship(db, org)
    done, started, untouched = make_task(db, internship), make_task(db, internship), make_task(db, internship)
    make_task(db, internship)
    make_application(db, intern, internship, status=ApplicationStatus.ACCEPTED)
    make_submission(db, intern, done, status=SubmissionStatus.ACCEPTED)
    make_submission(db, intern, started, status=SubmissionStatus.NEEDS_REVISION)

    body = client.get(f"/api/internships/slug/{internship.slug}/workspace", headers=headers_for(intern)).json()
    progress = {t["task"]["id"]: t["progress"] for t in body["tasks"]}
    assert progress[done.id] == "COMPLETED"
    assert progress[started.id] == "IN_PROGRESS"
    assert progress[untouched.id] == "NOT_STARTED"
    assert body["progress"] == 25
