"""Variant endpoints."""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from experiment_admin.database import get_db
from experiment_admin.auth import verify_token
from experiment_admin.schemas import VariantResponse, VariantsReplace
from experiment_admin.services.variant_service import delete_variant, list_variants, replace_variants

router = APIRouter(tags=["variants"], dependencies=[Depends(verify_token)])


@router.get("/experiments/{experiment_id}/variants", response_model=List[VariantResponse])
def list_variants_endpoint(experiment_id: str, db: Session = Depends(get_db)):
    return list_variants(db, experiment_id)


@router.put("/experiments/{experiment_id}/variants", response_model=List[VariantResponse])
def replace_variants_endpoint(
    experiment_id: str,
    payload: VariantsReplace,
    db: Session = Depends(get_db)
):
    """Replace all variants of an experiment (needs at least 2, unique keys)."""
    return replace_variants(db, experiment_id, payload.variants)


@router.delete("/variants/{variant_id}", response_model=VariantResponse)
def delete_variant_endpoint(variant_id: str, db: Session = Depends(get_db)):
    return delete_variant(db, variant_id)
