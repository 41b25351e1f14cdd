"""
Applications router — an intern's request to join an internship.

Status machine:
    PENDING -> ACCEPTED | REJECTED   (owning organization or admin)
    PENDING -> WITHDRAWN             (the applicant)
Nothing leaves ACCEPTED, REJECTED or WITHDRAWN. ACCEPTED is what opens the
internship's task workspace to the intern.

At most one live (non-withdrawn) application exists per intern and
internship. That is a partial unique index in the database, not a
read-then-insert check, so concurrent submits cannot both succeed.
Withdrawing frees the slot; rejection does not.

Endpoints:
- POST   /api/applications                 — apply (intern)
- GET    /api/applications                 — applications to the caller's internships
- GET    /api/applications/all             — every application (admin)
- GET    /api/applications/mine            — the intern's own applications
- GET    /api/applications/{id}            — one application
- PATCH  /api/applications/{id}/status     — accept / reject
- POST   /api/applications/{id}/withdraw   — withdraw (applicant)
- DELETE /api/applications/{id}            — delete (owner or admin)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from internhub.database import get_db
from internhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from internhub.models import Application, ApplicationStatus, Internship
from internhub.pagination import Page, page_params
from internhub.schemas import ApplicationCreate, ApplicationOut, ApplicationStatusUpdate
from internhub.security import Caller, InternCaller, get_caller
from internhub.services.authz import (
    assert_admin, assert_intern, assert_not_intern, assert_organization, assert_owns_application,
    get_application_or_404, get_internship_or_404,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _newest_first(query):
    return query.order_by(Application.created_at.desc(), Application.id.desc())


@router.post("/applications", response_model=ApplicationOut, status_code=201)
def create_application(data: ApplicationCreate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """
    Apply to an active internship.
    Without a resume attached, the one on the intern's profile is used; with
    neither, the application is refused.
    """
    intern = assert_intern(caller)

    internship = get_internship_or_404(db, data.internship_id)
    if not internship.is_visible:
        raise NotFoundError("Internship not found")

    resume = data.resume or intern.resume
    if not resume:
        raise ValidationFailedError("A resume is required. Attach one or add it to your profile.")

    application = Application(
        intern_id=intern.id,
        internship_id=internship.id,
        status=ApplicationStatus.PENDING,
        cover_letter=data.cover_letter,
        resume=resume,
        portfolio_link=data.portfolio_link,
        availability=data.availability,
    )
    db.add(application)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Duplicate application by intern %s to internship %s", intern.id, internship.id)
        raise ConflictError("You have already applied to this internship")
    db.refresh(application)

    logger.info("Intern %s applied to internship %s (application %s)", intern.id, internship.id, application.id)
    return application


@router.get("/applications", response_model=list[ApplicationOut])
def list_for_organization(status: Optional[ApplicationStatus] = Query(None), page: Page = Depends(page_params),
                          caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    organization = assert_organization(caller)

    query = db.query(Application).join(Internship).filter(Internship.organization_id == organization.id)
    if status is not None:
        query = query.filter(Application.status == status)
    return page.apply(_newest_first(query)).all()


@router.get("/applications/all", response_model=list[ApplicationOut])
def list_all(page: Page = Depends(page_params), caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    assert_admin(caller)
    return page.apply(_newest_first(db.query(Application))).all()


@router.get("/applications/mine", response_model=list[ApplicationOut])
def list_mine(page: Page = Depends(page_params), caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    intern = assert_intern(caller)
    return page.apply(_newest_first(db.query(Application).filter(Application.intern_id == intern.id))).all()


@router.get("/applications/{application_id}", response_model=ApplicationOut)
def get_application(application_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    if isinstance(caller, InternCaller):
        intern = assert_intern(caller)
        application = get_application_or_404(db, application_id)
        if application.intern_id != intern.id:
            raise ForbiddenError("You can only view your own applications")
        return application
    return assert_owns_application(db, caller, application_id, allow_admin=True)


@router.patch("/applications/{application_id}/status", response_model=ApplicationOut)
def update_status(application_id: int, data: ApplicationStatusUpdate, caller: Caller = Depends(get_caller),
                  db: Session = Depends(get_db)):
    """Accept or reject a pending application."""
    assert_not_intern(caller)
    application = assert_owns_application(db, caller, application_id, allow_admin=True, for_update=True)

    if application.status != ApplicationStatus.PENDING:
        raise ConflictError(f"Application is already {application.status.value}")

    application.status = data.status
    db.commit()
    db.refresh(application)

    logger.info("Application %s -> %s by user %s", application.id, application.status.value, caller.user.id)
    return application


@router.post("/applications/{application_id}/withdraw", response_model=ApplicationOut)
def withdraw_application(application_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    intern = assert_intern(caller)
    application = get_application_or_404(db, application_id, for_update=True)

    if application.intern_id != intern.id:
        raise ForbiddenError("You can only withdraw your own applications")
    if application.status != ApplicationStatus.PENDING:
        raise ConflictError(f"Application is already {application.status.value}")

    application.status = ApplicationStatus.WITHDRAWN
    db.commit()
    db.refresh(application)

    logger.info("Application %s withdrawn by intern %s", application.id, intern.id)
    return application


@router.delete("/applications/{application_id}", status_code=204)
def delete_application(application_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    assert_not_intern(caller)
    application = assert_owns_application(db, caller, application_id, allow_admin=True, for_update=True)
    db.delete(application)
    db.commit()
    logger.info("Application %s deleted by user %s", application_id, caller.user.id)
