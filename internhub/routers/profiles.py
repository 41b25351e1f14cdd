"""
Profiles router — the role-specific half of a user.

Endpoints:
- GET /api/profiles/me            — caller's intern or organization profile
- PUT /api/profiles/intern        — intern updates own profile
- PUT /api/profiles/organization  — organization updates own profile
"""

from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from internhub.database import get_db
from internhub.errors import ForbiddenError
from internhub.schemas import (
    InternProfileOut, InternProfileUpdate, OrganizationProfileOut, OrganizationProfileUpdate,
)
from internhub.security import Caller, InternCaller, OrganizationCaller, get_caller
from internhub.services.authz import assert_intern, assert_organization

router = APIRouter()


@router.get("/profiles/me", response_model=Union[InternProfileOut, OrganizationProfileOut])
def get_current_profile(caller: Caller = Depends(get_caller)):
    """Tagged with `type` so the client knows which form to render."""
    if isinstance(caller, InternCaller):
        return InternProfileOut.model_validate(assert_intern(caller))
    if isinstance(caller, OrganizationCaller):
        return OrganizationProfileOut.model_validate(assert_organization(caller))
    raise ForbiddenError("Admins have no profile")


@router.put("/profiles/intern", response_model=InternProfileOut)
def update_intern_profile(data: InternProfileUpdate, caller: Caller = Depends(get_caller),
                          db: Session = Depends(get_db)):
    profile = assert_intern(caller)

    fields = data.model_dump(exclude={"image"}, exclude_unset=True)
    for key, value in fields.items():
        setattr(profile, key, value)

    user = profile.user
    user.name = f"{data.first_name} {data.last_name}"
    if data.image is not None:
        user.image = data.image

    db.commit()
    db.refresh(profile)
    return profile


@router.put("/profiles/organization", response_model=OrganizationProfileOut)
def update_organization_profile(data: OrganizationProfileUpdate, caller: Caller = Depends(get_caller),
                                db: Session = Depends(get_db)):
    profile = assert_organization(caller)

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(profile, key, value)
    profile.user.name = f"{data.contact_first_name} {data.contact_last_name}"

    db.commit()
    db.refresh(profile)
    return profile
