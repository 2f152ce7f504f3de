"""Assignment endpoints.

resolve (GET) and assign (POST) run the exact same service code; they only
differ in how they read to a client.
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from experiment_admin.database import get_db
from experiment_admin.auth import verify_token
from experiment_admin.schemas import (
    AssignmentRequest,
    AssignmentResult,
    AssignmentWithExperiment,
    AssignmentWithUser,
)
from experiment_admin.services.assignment_service import (
    assign_user,
    list_by_experiment,
    list_by_user,
    resolve_assignment,
)

router = APIRouter(tags=["assignments"], dependencies=[Depends(verify_token)])


@router.get("/assignments/resolve", response_model=AssignmentResult)
def resolve_assignment_endpoint(
    user_id: str = Query(..., min_length=1),
    experiment_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    """
    Get a user's variant for an experiment, creating the assignment on first call.
    Calling it again with the same ids always returns the same variant.
    """
    variant_key, is_new = resolve_assignment(db, user_id, experiment_id)
    return AssignmentResult(variant_key=variant_key, is_new=is_new)


@router.post("/assignments", response_model=AssignmentResult)
def assign_endpoint(request: AssignmentRequest, db: Session = Depends(get_db)):
    """Assign a user to a variant (same as resolve, but as a POST)."""
    variant_key, is_new = assign_user(db, request.user_id, request.experiment_id)
    return AssignmentResult(variant_key=variant_key, is_new=is_new)


@router.get("/experiments/{experiment_id}/assignments", response_model=List[AssignmentWithUser])
def list_experiment_assignments(experiment_id: str, db: Session = Depends(get_db)):
    """All assignments for an experiment, newest first."""
    return list_by_experiment(db, experiment_id)


@router.get("/users/{user_id}/assignments", response_model=List[AssignmentWithExperiment])
def list_user_assignments(user_id: str, db: Session = Depends(get_db)):
    """All assignments for a user, newest first."""
    return list_by_user(db, user_id)
