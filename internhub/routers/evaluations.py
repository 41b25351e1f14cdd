"""
Evaluations router — an organization's score and feedback for a submission.

Unlike submissions, evaluating is an upsert: a second evaluate call on the
same submission rewrites score, feedback and evaluated_at in place. It is a
single INSERT ... ON CONFLICT (task_submission_id) DO UPDATE statement, so
two concurrent calls still leave exactly one row.

Endpoints:
- PUT    /api/evaluations                                — create or update (owning organization)
- GET    /api/evaluations/submission/{submission_id}     — evaluation of one submission
- GET    /api/evaluations                                — the organization's evaluations
- GET    /api/evaluations/all                            — every evaluation (admin)
- DELETE /api/evaluations/{id}                           — delete (owning organization)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from internhub.database import get_db
from internhub.errors import ForbiddenError, NotFoundError
from internhub.models import TaskEvaluation, utcnow
from internhub.pagination import Page, page_params
from internhub.schemas import EvaluationOut, EvaluationUpsert
from internhub.security import Caller, InternCaller, get_caller
from internhub.services.authz import (
    assert_admin, assert_intern, assert_organization, assert_owns_submission, get_submission_or_404,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _newest_first(query):
    return query.order_by(TaskEvaluation.evaluated_at.desc(), TaskEvaluation.id.desc())


def upsert_evaluation(db: Session, task_submission_id: int, organization_id: int, score: float,
                      feedback: str | None) -> TaskEvaluation:
    """Atomic create-or-update of the one evaluation a submission may have."""
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Evaluation upsert is not supported on {dialect}")

    stmt = insert(TaskEvaluation).values(
        task_submission_id=task_submission_id,
        organization_id=organization_id,
        score=score,
        feedback=feedback,
        evaluated_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["task_submission_id"],
        set_={
            "score": stmt.excluded.score,
            "feedback": stmt.excluded.feedback,
            "evaluated_at": stmt.excluded.evaluated_at,
        },
    )
    db.execute(stmt)
    db.commit()

    return db.query(TaskEvaluation).filter(TaskEvaluation.task_submission_id == task_submission_id).one()


@router.put("/evaluations", response_model=EvaluationOut)
def evaluate(data: EvaluationUpsert, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    organization = assert_organization(caller)
    submission = assert_owns_submission(db, caller, data.task_submission_id)

    evaluation = upsert_evaluation(db, submission.id, organization.id, data.score, data.feedback)
    logger.info("Submission %s evaluated %.1f by organization %s", submission.id, evaluation.score, organization.id)
    return evaluation


@router.get("/evaluations/submission/{submission_id}", response_model=EvaluationOut)
def get_by_submission(submission_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """Visible to the submitting intern, the owning organization and admins."""
    if isinstance(caller, InternCaller):
        intern = assert_intern(caller)
        submission = get_submission_or_404(db, submission_id)
        if submission.intern_id != intern.id:
            raise ForbiddenError("You can only view evaluations for your own submissions")
    else:
        submission = assert_owns_submission(db, caller, submission_id, allow_admin=True)

    if submission.evaluation is None:
        raise NotFoundError("Evaluation not found")
    return submission.evaluation


@router.get("/evaluations", response_model=list[EvaluationOut])
def list_for_organization(page: Page = Depends(page_params), caller: Caller = Depends(get_caller),
                          db: Session = Depends(get_db)):
    organization = assert_organization(caller)
    query = db.query(TaskEvaluation).filter(TaskEvaluation.organization_id == organization.id)
    return page.apply(_newest_first(query)).all()


@router.get("/evaluations/all", response_model=list[EvaluationOut])
def list_all(page: Page = Depends(page_params), caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    assert_admin(caller)
    return page.apply(_newest_first(db.query(TaskEvaluation))).all()


@router.delete("/evaluations/{evaluation_id}", status_code=204)
def delete_evaluation(evaluation_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    assert_organization(caller)
    evaluation = db.query(TaskEvaluation).filter(TaskEvaluation.id == evaluation_id).first()
    if not evaluation:
        raise NotFoundError("Evaluation not found")

    assert_owns_submission(db, caller, evaluation.task_submission_id)
    db.delete(evaluation)
    db.commit()
