"""User endpoints. Users are only created by assignments."""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from experiment_admin.database import get_db
from experiment_admin.auth import verify_token
from experiment_admin.schemas import UserSummary
from experiment_admin.services.user_service import list_users

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(verify_token)])


@router.get("", response_model=List[UserSummary])
def list_users_endpoint(db: Session = Depends(get_db)):
    return list_users(db)
