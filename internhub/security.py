"""
Sessions and callers.

Credentials are issued by the identity provider (or by /api/auth/login in
development) as HS256 bearer tokens carrying the user id and role. Each
request resolves its token once into a typed caller:

- InternCaller(user, profile)
- OrganizationCaller(user, profile)
- AdminCaller(user)

The profile can be None when the user signed up but the profile row is not
there yet; services/authz.py turns that into NOT_FOUND after the role check.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from internhub.config import settings
from internhub.database import get_db
from internhub.models import InternProfile, OrganizationProfile, Role, User

ALGORITHM = "HS256"

auth_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


def create_token(user: User) -> str:
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRES_MIN),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


# ─── Callers ─────────────────────────────────────────────────────────

@dataclass
class InternCaller:
    user: User
    profile: Optional[InternProfile]
    role = Role.INTERN


@dataclass
class OrganizationCaller:
    user: User
    profile: Optional[OrganizationProfile]
    role = Role.ORGANIZATION


@dataclass
class AdminCaller:
    user: User
    role = Role.ADMIN


Caller = Union[InternCaller, OrganizationCaller, AdminCaller]


def caller_for(db: Session, user: User) -> Caller:
    """Resolve a user into the caller variant for its role."""
    if user.role == Role.INTERN:
        profile = db.query(InternProfile).filter(InternProfile.user_id == user.id).first()
        return InternCaller(user=user, profile=profile)
    if user.role == Role.ORGANIZATION:
        profile = db.query(OrganizationProfile).filter(OrganizationProfile.user_id == user.id).first()
        return OrganizationCaller(user=user, profile=profile)
    return AdminCaller(user=user)


def _user_from_token(token: str, db: Session) -> User:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
        user_id = int(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: Session = Depends(get_db),
) -> Caller:
    """FastAPI dependency for endpoints that require a session."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return caller_for(db, _user_from_token(credentials.credentials, db))


def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: Session = Depends(get_db),
) -> Optional[Caller]:
    """FastAPI dependency for public endpoints that personalise for signed-in users."""
    if credentials is None:
        return None
    return caller_for(db, _user_from_token(credentials.credentials, db))
