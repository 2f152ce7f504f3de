"""Service for experiment management"""
from typing import List
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from fastapi import HTTPException
from experiment_admin.exceptions import ExperimentNotFound
from experiment_admin.models import Assignment, Experiment
from experiment_admin.schemas import ExperimentCreate, ExperimentResponse, ExperimentUpdate, VariantResponse


def _name_taken(db: Session, name: str, exclude_id: str = None) -> bool:
    query = db.query(Experiment.id).filter(Experiment.name == name)
    if exclude_id is not None:
        query = query.filter(Experiment.id != exclude_id)
    return query.first() is not None


def _get_or_404(db: Session, experiment_id: str) -> Experiment:
    experiment = db.query(Experiment).options(
        selectinload(Experiment.variants)
    ).filter(Experiment.id == experiment_id).first()
    if not experiment:
        raise ExperimentNotFound(experiment_id)
    return experiment


def to_response(experiment: Experiment, assignment_count: int = 0) -> ExperimentResponse:
    """Build the API response, including variant and assignment counts"""
    return ExperimentResponse(
        id=experiment.id,
        name=experiment.name,
        status=experiment.status,
        strategy=experiment.strategy,
        start_at=experiment.start_at,
        end_at=experiment.end_at,
        created_at=experiment.created_at,
        updated_at=experiment.updated_at,
        variants=[VariantResponse.model_validate(v) for v in experiment.variants],
        variant_count=len(experiment.variants),
        assignment_count=assignment_count,
    )


def _assignment_count(db: Session, experiment_id: str) -> int:
    return db.query(func.count(Assignment.id)).filter(
        Assignment.experiment_id == experiment_id
    ).scalar()


def create_experiment(db: Session, experiment_data: ExperimentCreate) -> ExperimentResponse:
    """
    Create a new experiment (no variants yet - those get added separately).
    Name format is validated by the schema, uniqueness here.
    """
    if _name_taken(db, experiment_data.name):
        raise HTTPException(
            status_code=400,
            detail="Experiment with this name already exists"
        )

    experiment = Experiment(
        name=experiment_data.name,
        status=experiment_data.status,
        strategy=experiment_data.strategy,
        start_at=experiment_data.start_at,
        end_at=experiment_data.end_at
    )

    db.add(experiment)
    db.commit()
    db.refresh(experiment)

    return to_response(experiment)


def get_experiment_by_id(db: Session, experiment_id: str) -> ExperimentResponse:
    """Get experiment by ID (always straight from the DB)"""
    experiment = _get_or_404(db, experiment_id)
    return to_response(experiment, _assignment_count(db, experiment_id))


def list_experiments(db: Session) -> List[ExperimentResponse]:
    """All experiments, newest first"""
    experiments = db.query(Experiment).options(
        selectinload(Experiment.variants)
    ).order_by(Experiment.created_at.desc(), Experiment.name.asc()).all()

    counts = dict(
        db.query(Assignment.experiment_id, func.count(Assignment.id))
        .group_by(Assignment.experiment_id)
        .all()
    )
    return [to_response(e, counts.get(e.id, 0)) for e in experiments]


def update_experiment(db: Session, experiment_id: str, update_data: ExperimentUpdate) -> ExperimentResponse:
    """
    Partial update. Only fields present in the request body are touched, so
    start_at/end_at can be cleared by sending null explicitly.

    NOTE: renaming an experiment re-buckets every user who hasn't been
    assigned yet (the hash is keyed on the name).
    """
    experiment = _get_or_404(db, experiment_id)
    changes = update_data.model_dump(exclude_unset=True)

    if changes.get("name") and _name_taken(db, changes["name"], exclude_id=experiment_id):
        raise HTTPException(
            status_code=400,
            detail="Experiment with this name already exists"
        )

    for field in ("name", "status", "strategy"):
        # these columns are NOT NULL, so an explicit null just means "leave it"
        if changes.get(field) is not None:
            setattr(experiment, field, changes[field])
    for field in ("start_at", "end_at"):
        if field in changes:
            setattr(experiment, field, changes[field])

    db.commit()
    db.refresh(experiment)
    return to_response(experiment, _assignment_count(db, experiment_id))


def delete_experiment(db: Session, experiment_id: str) -> ExperimentResponse:
    """Delete an experiment along with its variants and assignments"""
    experiment = _get_or_404(db, experiment_id)
    response = to_response(experiment, _assignment_count(db, experiment_id))

    db.delete(experiment)
    db.commit()
    return response
