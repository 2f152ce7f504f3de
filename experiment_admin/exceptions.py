"""Errors raised by the assignment engine.

They subclass HTTPException so FastAPI turns them into proper responses,
but callers can still catch the specific type.
"""
from fastapi import HTTPException


class AssignmentError(HTTPException):
    """Base class for expected, operator-actionable assignment failures"""


class InvalidInput(AssignmentError):
    def __init__(self, detail: str):
        super().__init__(status_code=422, detail=detail)


class ExperimentNotFound(AssignmentError):
    def __init__(self, experiment_id: str):
        super().__init__(status_code=404, detail=f"Experiment {experiment_id} not found")
        self.experiment_id = experiment_id


class NoVariantsConfigured(AssignmentError):
    def __init__(self, experiment_name: str):
        super().__init__(
            status_code=400,
            detail=(
                f'Experiment "{experiment_name}" has no variants configured. '
                "Please add at least 2 variants before assigning users."
            ),
        )
        self.experiment_name = experiment_name
