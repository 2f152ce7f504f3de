from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime


ExperimentStatus = Literal["draft", "active", "paused", "completed"]

# snake_case, lowercase only
EXPERIMENT_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"


class ExperimentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, pattern=EXPERIMENT_NAME_PATTERN)
    status: ExperimentStatus = "draft"
    strategy: str = "uniform"
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None


class ExperimentUpdate(BaseModel):
    # everything optional - only fields that were sent get applied
    name: Optional[str] = Field(None, min_length=1, max_length=100, pattern=EXPERIMENT_NAME_PATTERN)
    status: Optional[ExperimentStatus] = None
    strategy: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None


class VariantIn(BaseModel):
    key: str = Field(..., min_length=1, max_length=50)
    weight: int = Field(..., ge=0, le=100)


class VariantsReplace(BaseModel):
    variants: List[VariantIn] = Field(..., min_length=2)


class VariantResponse(BaseModel):
    id: str
    experiment_id: str
    key: str
    weight: int

    class Config:
        from_attributes = True


class ExperimentResponse(BaseModel):
    id: str
    name: str
    status: str
    strategy: str
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    variants: List[VariantResponse]
    variant_count: int = 0
    assignment_count: int = 0

    class Config:
        from_attributes = True


# Assignment schemas
class AssignmentRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    experiment_id: str = Field(..., min_length=1)


class AssignmentResult(BaseModel):
    variant_key: str
    is_new: bool


class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None

    class Config:
        from_attributes = True


class ExperimentSummary(BaseModel):
    id: str
    name: str
    status: str

    class Config:
        from_attributes = True


class AssignmentBase(BaseModel):
    id: int
    experiment_id: str
    user_id: str
    variant_key: str
    created_at: datetime

    class Config:
        from_attributes = True


class AssignmentWithUser(AssignmentBase):
    user: UserSummary


class AssignmentWithExperiment(AssignmentBase):
    experiment: ExperimentSummary
