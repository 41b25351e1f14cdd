"""
Submissions router — an intern's deliverable for a task.

Per (task, intern): (none) -> SUBMITTED -> ... -> ACCEPTED | REJECTED.
Creating is once-only (a unique constraint on task_id + intern_id); later
changes go through update, which only the author may call and only until
the organization finalizes the submission. Organizations move the status
with update_status; a finalized submission never moves again.

Endpoints:
- POST  /api/submissions                   — submit (accepted intern)
- PATCH /api/submissions/{id}              — author edits before finalization
- GET   /api/submissions/mine              — the intern's submissions
- GET   /api/submissions/organization      — submissions to the caller's tasks
- GET   /api/submissions/{id}              — one submission
- PATCH /api/submissions/{id}/status       — review (owning organization)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from internhub.database import get_db
from internhub.errors import ConflictError, ForbiddenError, ValidationFailedError
from internhub.models import (
    FINAL_SUBMISSION_STATUSES, Internship, SubmissionStatus, Task, TaskSubmission, utcnow,
)
from internhub.pagination import Page, page_params
from internhub.schemas import (
    SubmissionContent, SubmissionCreate, SubmissionOut, SubmissionStatusUpdate, SubmissionUpdate,
)
from internhub.security import Caller, InternCaller, get_caller
from internhub.services.authz import (
    assert_accepted_intern, assert_intern, assert_organization, assert_owns_submission,
    get_submission_or_404, get_task_or_404,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _newest_first(query):
    return query.order_by(TaskSubmission.submitted_at.desc(), TaskSubmission.id.desc())


def _check_formats(task: Task, content: SubmissionContent) -> None:
    """The content must be non-empty and use only the formats the task accepts."""
    provided = content.provided_formats()
    if not provided:
        raise ValidationFailedError("A submission needs a file, a text or a url")

    accepted = {
        "file": task.submit_as_file,
        "text": task.submit_as_text,
        "url": task.submit_as_url,
    }
    refused = sorted(fmt for fmt in provided if not accepted[fmt])
    if refused:
        raise ValidationFailedError(f"This task does not accept {', '.join(refused)} submissions")


@router.post("/submissions", response_model=SubmissionOut, status_code=201)
def create_submission(data: SubmissionCreate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """Submit a task once. A second submit for the same task is a CONFLICT; use update."""
    assert_intern(caller)
    task = get_task_or_404(db, data.task_id)
    intern = assert_accepted_intern(db, caller, task.internship_id)
    _check_formats(task, data)

    submission = TaskSubmission(
        task_id=task.id,
        intern_id=intern.id,
        status=SubmissionStatus.SUBMITTED,
        text_content=data.text_content,
        file_url=data.file_url,
        url=data.url,
    )
    db.add(submission)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Duplicate submission by intern %s for task %s", intern.id, task.id)
        raise ConflictError("You have already submitted this task")
    db.refresh(submission)

    logger.info("Intern %s submitted task %s (submission %s)", intern.id, task.id, submission.id)
    return submission


@router.patch("/submissions/{submission_id}", response_model=SubmissionOut)
def update_submission(submission_id: int, data: SubmissionUpdate, caller: Caller = Depends(get_caller),
                      db: Session = Depends(get_db)):
    """
    The author replaces parts of the content. A submission sent back with
    NEEDS_REVISION returns to SUBMITTED.
    """
    intern = assert_intern(caller)
    submission = get_submission_or_404(db, submission_id, for_update=True)

    if submission.intern_id != intern.id:
        raise ForbiddenError("You can only update your own submissions")
    if submission.status in FINAL_SUBMISSION_STATUSES:
        raise ForbiddenError("Cannot update a finalized submission")

    changes = data.model_dump(exclude_unset=True)
    merged = SubmissionContent(
        text_content=changes.get("text_content", submission.text_content),
        file_url=changes.get("file_url", submission.file_url),
        url=changes.get("url", submission.url),
    )
    _check_formats(submission.task, merged)

    submission.text_content = merged.text_content
    submission.file_url = merged.file_url
    submission.url = merged.url
    submission.submitted_at = utcnow()
    if submission.status == SubmissionStatus.NEEDS_REVISION:
        submission.status = SubmissionStatus.SUBMITTED

    db.commit()
    db.refresh(submission)
    return submission


@router.get("/submissions/mine", response_model=list[SubmissionOut])
def list_my_submissions(page: Page = Depends(page_params), caller: Caller = Depends(get_caller),
                        db: Session = Depends(get_db)):
    intern = assert_intern(caller)
    query = db.query(TaskSubmission).filter(TaskSubmission.intern_id == intern.id)
    return page.apply(_newest_first(query)).all()


@router.get("/submissions/organization", response_model=list[SubmissionOut])
def list_for_organization(status: Optional[SubmissionStatus] = Query(None), page: Page = Depends(page_params),
                          caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    organization = assert_organization(caller)

    query = (
        db.query(TaskSubmission)
        .join(Task)
        .join(Internship)
        .filter(Internship.organization_id == organization.id)
    )
    if status is not None:
        query = query.filter(TaskSubmission.status == status)
    return page.apply(_newest_first(query)).all()


@router.get("/submissions/{submission_id}", response_model=SubmissionOut)
def get_submission(submission_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """Interns see their own; organizations see those under their internships; admins see all."""
    if isinstance(caller, InternCaller):
        intern = assert_intern(caller)
        submission = get_submission_or_404(db, submission_id)
        if submission.intern_id != intern.id:
            raise ForbiddenError("You can only view your own submissions")
        return submission
    return assert_owns_submission(db, caller, submission_id, allow_admin=True)


@router.patch("/submissions/{submission_id}/status", response_model=SubmissionOut)
def update_status(submission_id: int, data: SubmissionStatusUpdate, caller: Caller = Depends(get_caller),
                  db: Session = Depends(get_db)):
    """Review step. ACCEPTED and REJECTED are final."""
    submission = assert_owns_submission(db, caller, submission_id, for_update=True)

    if submission.status in FINAL_SUBMISSION_STATUSES:
        raise ConflictError(f"Submission is already {submission.status.value}")

    submission.status = data.status
    db.commit()
    db.refresh(submission)

    logger.info("Submission %s -> %s by user %s", submission.id, submission.status.value, caller.user.id)
    return submission
