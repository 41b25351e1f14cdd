"""
Tasks router — units of work inside an internship.

Every mutation re-checks that the caller's organization owns the parent
internship. A task must accept at least one submission format; the schema
checks it and the create/update handlers check it again on what is about to
be written.

Endpoints:
- POST   /api/tasks                         — create (with inline resources)
- GET    /api/tasks/public?internship_id=   — tasks of an active internship
- GET    /api/tasks?internship_id=          — owner, admin, or accepted intern
- GET    /api/tasks/organization            — every task of the caller's organization
- GET    /api/tasks/{id}                    — one task
- PATCH  /api/tasks/{id}                    — update (resources are replaced when given)
- DELETE /api/tasks/{id}                    — delete, refused once interns have submitted
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from internhub.database import get_db
from internhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from internhub.models import Internship, Resource, Task, TaskSubmission
from internhub.schemas import TaskCreate, TaskOut, TaskUpdate, task_accepts_submission
from internhub.security import Caller, get_caller, get_optional_caller
from internhub.services.authz import (
    assert_not_intern, assert_organization, assert_owns_internship, assert_owns_task, can_see_tasks,
    get_internship_or_404, get_visible_task_or_404,
)
from internhub.services.slugs import slugify

logger = logging.getLogger(__name__)

router = APIRouter()


def _in_insertion_order(query):
    return query.order_by(Task.created_at.asc(), Task.id.asc())


@router.post("/tasks", response_model=TaskOut, status_code=201)
def create_task(data: TaskCreate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """Add a task to an internship the caller's organization owns."""
    internship = assert_owns_internship(db, caller, data.internship_id, for_update=True)

    if not task_accepts_submission(data.submit_as_file, data.submit_as_text, data.submit_as_url):
        raise ValidationFailedError("At least one submission type is required")

    task = Task(
        **data.model_dump(exclude={"resources", "internship_id"}),
        internship_id=internship.id,
        slug=slugify(data.title),
    )
    task.resources = [Resource(**resource.model_dump()) for resource in data.resources]
    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info("Task %s added to internship %s", task.id, internship.id)
    return task


@router.get("/tasks/public", response_model=list[TaskOut])
def list_public_tasks(internship_id: int = Query(...), db: Session = Depends(get_db)):
    internship = get_internship_or_404(db, internship_id)
    if not internship.is_visible:
        raise NotFoundError("Internship not found")
    return _in_insertion_order(db.query(Task).filter(Task.internship_id == internship.id)).all()


@router.get("/tasks/organization", response_model=list[TaskOut])
def list_organization_tasks(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    organization = assert_organization(caller)
    query = db.query(Task).join(Internship).filter(Internship.organization_id == organization.id)
    return _in_insertion_order(query).all()


@router.get("/tasks", response_model=list[TaskOut])
def list_tasks(internship_id: int = Query(...), caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    internship = get_internship_or_404(db, internship_id)
    if not can_see_tasks(db, caller, internship):
        raise ForbiddenError("Not authorized")
    return _in_insertion_order(db.query(Task).filter(Task.internship_id == internship.id)).all()


@router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task(task_id: int, caller: Optional[Caller] = Depends(get_optional_caller), db: Session = Depends(get_db)):
    return get_visible_task_or_404(db, caller, task_id)


@router.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(task_id: int, data: TaskUpdate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    assert_not_intern(caller)
    task = assert_owns_task(db, caller, task_id, allow_admin=True, for_update=True)

    changes = data.model_dump(exclude_unset=True, exclude={"resources"})
    flags = {
        name: changes.get(name) if changes.get(name) is not None else getattr(task, name)
        for name in ("submit_as_file", "submit_as_text", "submit_as_url")
    }
    if not task_accepts_submission(**flags):
        raise ValidationFailedError("At least one submission type is required")

    for key, value in changes.items():
        if value is None and key not in ("background", "video_url"):
            continue
        setattr(task, key, value)
    if "title" in changes and changes["title"]:
        task.slug = slugify(changes["title"])

    if data.resources is not None:
        task.resources = [Resource(**resource.model_dump()) for resource in data.resources]

    db.commit()
    db.refresh(task)
    return task


@router.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    assert_not_intern(caller)
    task = assert_owns_task(db, caller, task_id, allow_admin=True, for_update=True)

    if db.query(TaskSubmission).filter(TaskSubmission.task_id == task.id).count():
        raise ConflictError("Task has submissions and cannot be deleted")

    db.delete(task)
    db.commit()
    logger.info("Task %s deleted by user %s", task_id, caller.user.id)
