"""
Internships router — the organization-owned catalog.

Lifecycle: draft (published=False) -> published -> active (approved by an
admin). Only active internships are visible to interns and anonymous
visitors; drafts are visible to their organization and to admins.

Endpoints:
- POST   /api/internships                          — create a draft (organization)
- GET    /api/internships/public                   — active internships, newest first
- GET    /api/internships/browse                   — same, with the intern's own application
- GET    /api/internships/mine                     — internships the intern applied to
- GET    /api/internships/organization             — the organization's own internships
- GET    /api/internships/admin                    — everything (admin)
- GET    /api/internships/slug/{slug}              — detail by slug
- GET    /api/internships/slug/{slug}/workspace    — accepted intern's task workspace
- GET    /api/internships/{id}                     — detail by id
- PATCH  /api/internships/{id}                     — update (owner or admin)
- POST   /api/internships/{id}/publish             — publish (owner, idempotent)
- POST   /api/internships/{id}/approve             — approve / unapprove (admin)
- DELETE /api/internships/{id}                     — delete (owner or admin)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from internhub.database import get_db
from internhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from internhub.models import (
    Application, Internship, InternshipType, SubmissionStatus, TaskSubmission,
)
from internhub.pagination import Page, page_params
from internhub.schemas import (
    ApplicationBrief, ApprovalRequest, InternshipBrowseItem, InternshipBrowsePage, InternshipCreate,
    InternshipDetail, InternshipOut, InternshipUpdate, SubmissionOut, TaskOut, Workspace, WorkspaceTask,
)
from internhub.security import Caller, InternCaller, get_caller, get_optional_caller
from internhub.services.authz import (
    accepted_application, assert_admin, assert_intern, assert_not_intern, assert_organization,
    assert_owns_internship, is_owner,
)
from internhub.services.slugs import unique_internship_slug

logger = logging.getLogger(__name__)

router = APIRouter()


def _newest_first(query):
    # id breaks ties between rows created within the same clock tick
    return query.order_by(Internship.created_at.desc(), Internship.id.desc())


def _visible(query):
    return query.filter(Internship.published.is_(True), Internship.approved.is_(True))


def _own_application(db: Session, intern_id: int, internship_id: int) -> Optional[Application]:
    """The intern's most recent application to the internship, if any."""
    return (
        db.query(Application)
        .filter(Application.intern_id == intern_id, Application.internship_id == internship_id)
        .order_by(Application.id.desc())
        .first()
    )


def _detail(db: Session, internship: Internship, caller: Optional[Caller]) -> InternshipDetail:
    if not internship.is_visible and not is_owner(caller, internship):
        raise NotFoundError("Internship not found")

    detail = InternshipDetail.model_validate(internship)
    if isinstance(caller, InternCaller) and caller.profile is not None:
        application = _own_application(db, caller.profile.id, internship.id)
        if application:
            detail.user_application = ApplicationBrief.model_validate(application)
    return detail


# ─── Create ──────────────────────────────────────────────────────────

@router.post("/internships", response_model=InternshipOut, status_code=201)
def create_internship(data: InternshipCreate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """Create a draft internship owned by the caller's organization."""
    organization = assert_organization(caller)

    internship = Internship(
        **data.model_dump(),
        slug=unique_internship_slug(db, data.title),
        organization_id=organization.id,
        published=False,
        approved=False,
    )
    db.add(internship)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("An internship with this slug was created concurrently, please retry")
    db.refresh(internship)

    logger.info("Organization %s created internship %s (%s)", organization.id, internship.id, internship.slug)
    return internship


# ─── Lists ───────────────────────────────────────────────────────────

@router.get("/internships/public", response_model=list[InternshipOut])
def list_public(page: Page = Depends(page_params), db: Session = Depends(get_db)):
    """Published AND approved internships, newest first. No session needed."""
    return page.apply(_newest_first(_visible(db.query(Internship)))).all()


@router.get("/internships/browse", response_model=InternshipBrowsePage)
def list_for_intern(page: Page = Depends(page_params), caller: Caller = Depends(get_caller),
                    db: Session = Depends(get_db)):
    """Active internships with the intern's own application attached, plus the total count."""
    intern = assert_intern(caller)

    query = _visible(db.query(Internship))
    total = query.count()
    internships = page.apply(_newest_first(query)).all()

    items = []
    for internship in internships:
        item = InternshipBrowseItem.model_validate(internship)
        application = _own_application(db, intern.id, internship.id)
        if application:
            item.application = ApplicationBrief.model_validate(application)
        items.append(item)
    return InternshipBrowsePage(items=items, total=total)


@router.get("/internships/mine", response_model=list[InternshipBrowseItem])
def list_my_internships(page: Page = Depends(page_params), caller: Caller = Depends(get_caller),
                        db: Session = Depends(get_db)):
    """Internships the intern has applied to, whatever the application status."""
    intern = assert_intern(caller)

    applied = select(Application.internship_id).where(Application.intern_id == intern.id)
    internships = page.apply(_newest_first(db.query(Internship).filter(Internship.id.in_(applied)))).all()

    items = []
    for internship in internships:
        item = InternshipBrowseItem.model_validate(internship)
        item.application = ApplicationBrief.model_validate(_own_application(db, intern.id, internship.id))
        items.append(item)
    return items


@router.get("/internships/organization", response_model=list[InternshipOut])
def list_for_organization(published: Optional[bool] = Query(None), approved: Optional[bool] = Query(None),
                          page: Page = Depends(page_params), caller: Caller = Depends(get_caller),
                          db: Session = Depends(get_db)):
    organization = assert_organization(caller)

    query = db.query(Internship).filter(Internship.organization_id == organization.id)
    if published is not None:
        query = query.filter(Internship.published.is_(published))
    if approved is not None:
        query = query.filter(Internship.approved.is_(approved))
    return page.apply(_newest_first(query)).all()


@router.get("/internships/admin", response_model=list[InternshipOut])
def list_for_admin(published: Optional[bool] = Query(None), approved: Optional[bool] = Query(None),
                   page: Page = Depends(page_params), caller: Caller = Depends(get_caller),
                   db: Session = Depends(get_db)):
    assert_admin(caller)

    query = db.query(Internship)
    if published is not None:
        query = query.filter(Internship.published.is_(published))
    if approved is not None:
        query = query.filter(Internship.approved.is_(approved))
    return page.apply(_newest_first(query)).all()


# ─── Detail ──────────────────────────────────────────────────────────

@router.get("/internships/slug/{slug}", response_model=InternshipDetail)
def get_by_slug(slug: str, caller: Optional[Caller] = Depends(get_optional_caller), db: Session = Depends(get_db)):
    internship = db.query(Internship).filter(Internship.slug == slug).first()
    if not internship:
        raise NotFoundError("Internship not found")
    return _detail(db, internship, caller)


def _task_progress(submission: Optional[TaskSubmission]) -> str:
    if submission is None:
        return "NOT_STARTED"
    if submission.status == SubmissionStatus.ACCEPTED:
        return "COMPLETED"
    return "IN_PROGRESS"


@router.get("/internships/slug/{slug}/workspace", response_model=Workspace)
def get_workspace(slug: str, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """
    The task workspace. Only reachable once the intern's application is ACCEPTED.
    Each task carries the intern's submission (with its evaluation) and a
    progress status derived from it.
    """
    intern = assert_intern(caller)
    internship = db.query(Internship).filter(Internship.slug == slug).first()
    if not internship:
        raise NotFoundError("Internship not found")

    application = accepted_application(db, intern, internship.id)
    if application is None:
        raise ForbiddenError("Your application to this internship has not been accepted")

    task_ids = [task.id for task in internship.tasks]
    submissions = {}
    if task_ids:
        rows = (
            db.query(TaskSubmission)
            .filter(TaskSubmission.intern_id == intern.id, TaskSubmission.task_id.in_(task_ids))
            .all()
        )
        submissions = {submission.task_id: submission for submission in rows}

    tasks = []
    for task in internship.tasks:
        submission = submissions.get(task.id)
        tasks.append(WorkspaceTask(
            task=TaskOut.model_validate(task),
            submission=SubmissionOut.model_validate(submission) if submission else None,
            progress=_task_progress(submission),
        ))

    completed = sum(1 for t in tasks if t.progress == "COMPLETED")
    progress = (completed * 100 // len(tasks)) if tasks else 0

    return Workspace(
        internship=InternshipOut.model_validate(internship),
        application=ApplicationBrief.model_validate(application),
        tasks=tasks,
        progress=progress,
    )


@router.get("/internships/{internship_id}", response_model=InternshipDetail)
def get_by_id(internship_id: int, caller: Optional[Caller] = Depends(get_optional_caller),
              db: Session = Depends(get_db)):
    internship = db.query(Internship).filter(Internship.id == internship_id).first()
    if not internship:
        raise NotFoundError("Internship not found")
    return _detail(db, internship, caller)


# ─── Mutations ───────────────────────────────────────────────────────

@router.patch("/internships/{internship_id}", response_model=InternshipOut)
def update_internship(internship_id: int, data: InternshipUpdate, caller: Caller = Depends(get_caller),
                      db: Session = Depends(get_db)):
    """
    Partial update by the owning organization or an admin.
    The slug follows the title only while the internship is still a draft.
    """
    assert_not_intern(caller)
    internship = assert_owns_internship(db, caller, internship_id, allow_admin=True, for_update=True)

    # Explicit nulls only make sense for the amount
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k == "amount"}

    new_type = changes.get("type", internship.type)
    new_amount = changes.get("amount", internship.amount)
    if new_type == InternshipType.PAID and new_amount is None:
        raise ValidationFailedError("Amount is required for paid internships")
    if new_type != InternshipType.PAID and "amount" not in changes:
        changes["amount"] = None

    new_title = changes.get("title")
    if not internship.published and new_title and new_title.strip() != internship.title.strip():
        internship.slug = unique_internship_slug(db, new_title, exclude_id=internship.id)

    for key, value in changes.items():
        setattr(internship, key, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("An internship with this slug was created concurrently, please retry")
    db.refresh(internship)
    return internship


@router.post("/internships/{internship_id}/publish", response_model=InternshipOut)
def publish_internship(internship_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """Publish a draft. Publishing an already-published internship is a no-op."""
    internship = assert_owns_internship(db, caller, internship_id, for_update=True)

    if internship.published:
        return internship

    internship.published = True
    db.commit()
    db.refresh(internship)
    logger.info("Internship %s published (slug %s is now frozen)", internship.id, internship.slug)
    return internship


@router.post("/internships/{internship_id}/approve", response_model=InternshipOut)
def approve_internship(internship_id: int, data: ApprovalRequest = ApprovalRequest(),
                       caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """Admin review. Only published internships can be approved."""
    assert_admin(caller)
    internship = assert_owns_internship(db, caller, internship_id, allow_admin=True, for_update=True)

    if data.approved and not internship.published:
        raise ConflictError("Only published internships can be approved")

    internship.approved = data.approved
    db.commit()
    db.refresh(internship)
    logger.info("Internship %s approved=%s by admin %s", internship.id, internship.approved, caller.user.id)
    return internship


@router.delete("/internships/{internship_id}", status_code=204)
def delete_internship(internship_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """
    Delete an internship with its tasks and resources.
    Refused while applications reference it, so interns never lose their history.
    """
    assert_not_intern(caller)
    internship = assert_owns_internship(db, caller, internship_id, allow_admin=True, for_update=True)

    if db.query(Application).filter(Application.internship_id == internship.id).count():
        raise ConflictError("Internship has applications and cannot be deleted")

    db.delete(internship)
    db.commit()
    logger.info("Internship %s deleted by user %s", internship_id, caller.user.id)
