"""
Authorization helpers shared by every router.

Each helper either returns what the caller is allowed to touch or raises a
typed error before the router writes anything. Ownership is always read back
from the database; client-supplied organization ids are never trusted.
Loaders used on a write path pass for_update=True so the row is locked
(SELECT ... FOR UPDATE on Postgres) between the check and the write.
"""

from typing import Optional

from sqlalchemy.orm import Session

from internhub.errors import ForbiddenError, NotFoundError
from internhub.models import (
    Application, ApplicationStatus, InternProfile, Internship, OrganizationProfile, Role, Task,
    TaskSubmission,
)
from internhub.security import AdminCaller, Caller, InternCaller, OrganizationCaller


# ─── Role checks ─────────────────────────────────────────────────────

def assert_role(caller: Caller, *allowed: Role) -> None:
    if caller.role not in allowed:
        raise ForbiddenError("Not authorized")


def assert_admin(caller: Caller) -> None:
    if not isinstance(caller, AdminCaller):
        raise ForbiddenError("Only admins can perform this action")


def assert_not_intern(caller: Caller) -> None:
    """Allows ORGANIZATION and ADMIN."""
    assert_role(caller, Role.ORGANIZATION, Role.ADMIN)


def assert_organization(caller: Caller) -> OrganizationProfile:
    """Return the caller's organization profile, or fail."""
    if not isinstance(caller, OrganizationCaller):
        raise ForbiddenError("Only organizations can perform this action")
    if caller.profile is None:
        raise NotFoundError("Organization profile not found")
    return caller.profile


def assert_intern(caller: Caller) -> InternProfile:
    """Return the caller's intern profile, or fail."""
    if not isinstance(caller, InternCaller):
        raise ForbiddenError("Only interns can perform this action")
    if caller.profile is None:
        raise NotFoundError("Intern profile not found")
    return caller.profile


# ─── Loaders ─────────────────────────────────────────────────────────

def _load(db: Session, model, entity_id: int, label: str, for_update: bool):
    query = db.query(model).filter(model.id == entity_id)
    if for_update:
        query = query.with_for_update()
    entity = query.first()
    if entity is None:
        raise NotFoundError(f"{label} not found")
    return entity


def get_internship_or_404(db: Session, internship_id: int, for_update: bool = False) -> Internship:
    return _load(db, Internship, internship_id, "Internship", for_update)


def get_task_or_404(db: Session, task_id: int, for_update: bool = False) -> Task:
    return _load(db, Task, task_id, "Task", for_update)


def get_application_or_404(db: Session, application_id: int, for_update: bool = False) -> Application:
    return _load(db, Application, application_id, "Application", for_update)


def get_submission_or_404(db: Session, submission_id: int, for_update: bool = False) -> TaskSubmission:
    return _load(db, TaskSubmission, submission_id, "Submission", for_update)


# ─── Ownership ───────────────────────────────────────────────────────

def _check_owner(caller: Caller, organization_id: int, allow_admin: bool) -> None:
    if allow_admin and isinstance(caller, AdminCaller):
        return
    profile = assert_organization(caller)
    if organization_id != profile.id:
        raise ForbiddenError("Not authorized")


def assert_owns_internship(db: Session, caller: Caller, internship_id: int, *,
                           allow_admin: bool = False, for_update: bool = False) -> Internship:
    """Load an internship the caller's organization owns (or any, for admins when allowed)."""
    if not (allow_admin and isinstance(caller, AdminCaller)):
        assert_organization(caller)
    internship = get_internship_or_404(db, internship_id, for_update)
    _check_owner(caller, internship.organization_id, allow_admin)
    return internship


def assert_owns_task(db: Session, caller: Caller, task_id: int, *,
                     allow_admin: bool = False, for_update: bool = False) -> Task:
    if not (allow_admin and isinstance(caller, AdminCaller)):
        assert_organization(caller)
    task = get_task_or_404(db, task_id, for_update)
    _check_owner(caller, task.internship.organization_id, allow_admin)
    return task


def assert_owns_submission(db: Session, caller: Caller, submission_id: int, *,
                           allow_admin: bool = False, for_update: bool = False) -> TaskSubmission:
    if not (allow_admin and isinstance(caller, AdminCaller)):
        assert_organization(caller)
    submission = get_submission_or_404(db, submission_id, for_update)
    _check_owner(caller, submission.task.internship.organization_id, allow_admin)
    return submission


def assert_owns_application(db: Session, caller: Caller, application_id: int, *,
                            allow_admin: bool = False, for_update: bool = False) -> Application:
    """An application to one of the caller organization's internships."""
    if not (allow_admin and isinstance(caller, AdminCaller)):
        assert_organization(caller)
    application = get_application_or_404(db, application_id, for_update)
    _check_owner(caller, application.internship.organization_id, allow_admin)
    return application


def is_owner(caller: Optional[Caller], internship: Internship) -> bool:
    """True for the owning organization and for admins; never raises."""
    if isinstance(caller, AdminCaller):
        return True
    return (isinstance(caller, OrganizationCaller) and caller.profile is not None
            and caller.profile.id == internship.organization_id)


# ─── Workspace gate ──────────────────────────────────────────────────

def accepted_application(db: Session, intern: InternProfile, internship_id: int) -> Optional[Application]:
    return (
        db.query(Application)
        .filter(
            Application.intern_id == intern.id,
            Application.internship_id == internship_id,
            Application.status == ApplicationStatus.ACCEPTED,
        )
        .first()
    )


def assert_accepted_intern(db: Session, caller: Caller, internship_id: int) -> InternProfile:
    """Only interns accepted into the internship may work on its tasks."""
    intern = assert_intern(caller)
    if accepted_application(db, intern, internship_id) is None:
        raise ForbiddenError("Your application to this internship has not been accepted")
    return intern


def can_see_tasks(db: Session, caller: Optional[Caller], internship: Internship) -> bool:
    """Owner and admins always; accepted interns always; everyone else only for active internships."""
    if internship.is_visible or is_owner(caller, internship):
        return True
    if isinstance(caller, InternCaller) and caller.profile is not None:
        return accepted_application(db, caller.profile, internship.id) is not None
    return False


def get_visible_task_or_404(db: Session, caller: Optional[Caller], task_id: int) -> Task:
    """A task the caller may read. Hidden tasks are reported as missing."""
    task = get_task_or_404(db, task_id)
    if not can_see_tasks(db, caller, task.internship):
        raise NotFoundError("Task not found")
    return task
