"""Experiment endpoints (basic CRUD)."""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from experiment_admin.database import get_db
from experiment_admin.auth import verify_token
from experiment_admin.schemas import ExperimentCreate, ExperimentResponse, ExperimentUpdate
from experiment_admin.services.experiment_service import (
    create_experiment,
    delete_experiment,
    get_experiment_by_id,
    list_experiments,
    update_experiment,
)

# NOTE: prefix means all routes in here start with /experiments
router = APIRouter(prefix="/experiments", tags=["experiments"], dependencies=[Depends(verify_token)])


@router.post("", response_model=ExperimentResponse, status_code=201)
def create_experiment_endpoint(experiment_data: ExperimentCreate, db: Session = Depends(get_db)):
    """
    Create a new experiment.

    Variants are added afterwards through PUT /experiments/{id}/variants.
    """
    return create_experiment(db, experiment_data)


@router.get("", response_model=List[ExperimentResponse])
def list_experiments_endpoint(db: Session = Depends(get_db)):
    return list_experiments(db)


@router.get("/{experiment_id}", response_model=ExperimentResponse)
def get_experiment_endpoint(experiment_id: str, db: Session = Depends(get_db)):
    """Get experiment by id."""
    return get_experiment_by_id(db, experiment_id)


@router.patch("/{experiment_id}", response_model=ExperimentResponse)
def update_experiment_endpoint(
    experiment_id: str,
    update_data: ExperimentUpdate,
    db: Session = Depends(get_db)
):
    return update_experiment(db, experiment_id, update_data)


@router.delete("/{experiment_id}", response_model=ExperimentResponse)
def delete_experiment_endpoint(experiment_id: str, db: Session = Depends(get_db)):
    """Delete an experiment (variants and assignments go with it)."""
    return delete_experiment(db, experiment_id)
