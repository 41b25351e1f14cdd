"""
Auth router — signup and sessions.

Endpoints:
- POST /api/auth/register  — create a user and its intern/organization profile
- POST /api/auth/login     — exchange email + password for a bearer token
- GET  /api/auth/me        — the signed-in user
"""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from internhub.database import get_db
from internhub.errors import ConflictError
from internhub.models import InternProfile, OrganizationProfile, Role, User
from internhub.schemas import (
    InternRegister, LoginRequest, RegisterRequest, TokenOut, UserOut,
)
from internhub.security import Caller, create_token, get_caller, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/auth/register", response_model=TokenOut, status_code=201)
def register(data: RegisterRequest = Body(...), db: Session = Depends(get_db)):
    """
    Create the user and its profile in one transaction.
    Admins are provisioned out of band, never through signup.
    """
    existing = db.query(User).filter(User.email == data.email).first()
    if existing:
        raise ConflictError("Email already in use")

    if isinstance(data, InternRegister):
        user = User(
            email=data.email,
            name=f"{data.first_name} {data.last_name}",
            role=Role.INTERN,
            password_hash=hash_password(data.password),
        )
        user.intern_profile = InternProfile(
            first_name=data.first_name,
            last_name=data.last_name,
            university=data.university,
            major=data.major,
            skills=data.skills,
            bio=data.bio,
        )
    else:
        user = User(
            email=data.email,
            name=f"{data.contact_first_name} {data.contact_last_name}",
            role=Role.ORGANIZATION,
            password_hash=hash_password(data.password),
        )
        user.organization_profile = OrganizationProfile(
            organization_name=data.organization_name,
            contact_first_name=data.contact_first_name,
            contact_last_name=data.contact_last_name,
            job_title=data.job_title,
            industry=data.industry,
            company_size=data.company_size,
            website=data.website,
            location=data.location,
            description=data.description,
            internship_goals=data.internship_goals,
        )

    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        db.rollback()
        raise ConflictError("Email already in use")
    db.refresh(user)

    logger.info("Registered %s user %s", user.role.value, user.id)
    return TokenOut(access_token=create_token(user), user=UserOut.model_validate(user))


@router.post("/auth/login", response_model=TokenOut)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return TokenOut(access_token=create_token(user), user=UserOut.model_validate(user))


@router.get("/auth/me", response_model=UserOut)
def me(caller: Caller = Depends(get_caller)):
    return caller.user
