"""
Resources router — reference material attached to a task.

Endpoints:
- POST   /api/resources                 — add to a task the caller owns
- GET    /api/resources?task_id=        — list a task's resources
- PATCH  /api/resources/{id}            — update
- DELETE /api/resources/{id}            — delete
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from internhub.database import get_db
from internhub.errors import NotFoundError, ValidationFailedError
from internhub.models import Resource, ResourceType
from internhub.schemas import ResourceCreate, ResourceOut, ResourceUpdate
from internhub.security import Caller, get_caller, get_optional_caller
from internhub.services.authz import assert_owns_task, get_visible_task_or_404

router = APIRouter()


def _owned_resource(db: Session, caller: Caller, resource_id: int) -> Resource:
    resource = db.query(Resource).filter(Resource.id == resource_id).first()
    if not resource:
        raise NotFoundError("Resource not found")
    assert_owns_task(db, caller, resource.task_id, allow_admin=True)
    return resource


@router.post("/resources", response_model=ResourceOut, status_code=201)
def create_resource(data: ResourceCreate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    task = assert_owns_task(db, caller, data.task_id, allow_admin=True)
    resource = Resource(**data.model_dump(exclude={"task_id"}), task_id=task.id)
    db.add(resource)
    db.commit()
    db.refresh(resource)
    return resource


@router.get("/resources", response_model=list[ResourceOut])
def list_resources(task_id: int = Query(...), caller: Optional[Caller] = Depends(get_optional_caller),
                   db: Session = Depends(get_db)):
    """Same visibility as the task itself."""
    return get_visible_task_or_404(db, caller, task_id).resources


@router.patch("/resources/{resource_id}", response_model=ResourceOut)
def update_resource(resource_id: int, data: ResourceUpdate, caller: Caller = Depends(get_caller),
                    db: Session = Depends(get_db)):
    resource = _owned_resource(db, caller, resource_id)

    changes = data.model_dump(exclude_unset=True)
    for key, value in changes.items():
        if value is None and key in ("name", "type"):
            continue
        setattr(resource, key, value)

    if resource.type == ResourceType.URL and not resource.url:
        raise ValidationFailedError("URL resources need a url")
    if resource.type == ResourceType.FILE and not resource.file:
        raise ValidationFailedError("FILE resources need a file")

    db.commit()
    db.refresh(resource)
    return resource


@router.delete("/resources/{resource_id}", status_code=204)
def delete_resource(resource_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    resource = _owned_resource(db, caller, resource_id)
    db.delete(resource)
    db.commit()
