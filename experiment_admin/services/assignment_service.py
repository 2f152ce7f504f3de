"""Service for handling user assignments - sticky, hash based, idempotent"""
import logging
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from experiment_admin.exceptions import ExperimentNotFound, InvalidInput, NoVariantsConfigured
from experiment_admin.models import Assignment, Experiment
from experiment_admin.services.user_service import ensure_user
from experiment_admin.utils.assignment import select_variant

logger = logging.getLogger(__name__)


def find_assignment(db: Session, experiment_id: str, user_id: str) -> Optional[Assignment]:
    return db.query(Assignment).filter(
        Assignment.experiment_id == experiment_id,
        Assignment.user_id == user_id
    ).first()


def _validate_ids(user_id: str, experiment_id: str):
    if not user_id:
        raise InvalidInput("User ID is required")
    if not experiment_id:
        raise InvalidInput("Experiment ID is required")


def get_or_create_assignment(
    db: Session,
    experiment_id: str,
    user_id: str
) -> Tuple[Assignment, bool]:
    """
    Get existing assignment or create new one.
    This is the core idempotent assignment logic shared by resolve and assign.

    Returns (assignment, is_new). is_new is best effort when requests race:
    at most one caller sees True.
    """
    _validate_ids(user_id, experiment_id)

    # Existing assignment always wins over recomputing
    assignment = find_assignment(db, experiment_id, user_id)
    if assignment:
        return assignment, False

    # Always read the experiment fresh - variant sets change between calls
    experiment = db.query(Experiment).options(
        selectinload(Experiment.variants)
    ).filter(Experiment.id == experiment_id).first()
    if not experiment:
        logger.warning("Assignment requested for unknown experiment %s", experiment_id)
        raise ExperimentNotFound(experiment_id)

    if not experiment.variants:
        logger.warning("Experiment %s (%s) has no variants", experiment.name, experiment_id)
        raise NoVariantsConfigured(experiment.name)

    experiment_name = experiment.name
    variant_key = select_variant(user_id, experiment_name, experiment.variants).key

    # User row has to exist before the assignment references it
    ensure_user(db, user_id)

    new_assignment = Assignment(
        experiment_id=experiment_id,
        user_id=user_id,
        variant_key=variant_key
    )
    db.add(new_assignment)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race on (experiment_id, user_id): someone else created it
        db.rollback()
        existing = find_assignment(db, experiment_id, user_id)
        if existing is None:
            raise
        logger.info(
            "Concurrent assignment detected for user %s in experiment %s, using %s",
            user_id, experiment_name, existing.variant_key
        )
        return existing, False

    db.refresh(new_assignment)
    logger.info(
        "Assigned user %s to variant %s in experiment %s",
        user_id, new_assignment.variant_key, experiment_name
    )
    return new_assignment, True


def resolve_assignment(db: Session, user_id: str, experiment_id: str) -> Tuple[str, bool]:
    """Query-style entry point: (variant_key, is_new)"""
    assignment, is_new = get_or_create_assignment(db, experiment_id, user_id)
    return assignment.variant_key, is_new


def assign_user(db: Session, user_id: str, experiment_id: str) -> Tuple[str, bool]:
    """Mutation-style entry point, same logic as resolve_assignment"""
    assignment, is_new = get_or_create_assignment(db, experiment_id, user_id)
    return assignment.variant_key, is_new


def list_by_experiment(db: Session, experiment_id: str) -> List[Assignment]:
    """Assignments for an experiment, newest first, with the user loaded"""
    return db.query(Assignment).options(
        joinedload(Assignment.user)
    ).filter(
        Assignment.experiment_id == experiment_id
    ).order_by(Assignment.created_at.desc(), Assignment.id.desc()).all()


def list_by_user(db: Session, user_id: str) -> List[Assignment]:
    """Assignments for a user, newest first, with the experiment loaded"""
    return db.query(Assignment).options(
        joinedload(Assignment.experiment)
    ).filter(
        Assignment.user_id == user_id
    ).order_by(Assignment.created_at.desc(), Assignment.id.desc()).all()
