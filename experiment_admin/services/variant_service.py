"""Service for variant management"""
import logging
from typing import List
from sqlalchemy.orm import Session
from fastapi import HTTPException
from experiment_admin.exceptions import ExperimentNotFound
from experiment_admin.models import Experiment, Variant
from experiment_admin.schemas import VariantIn, VariantResponse

logger = logging.getLogger(__name__)

MIN_VARIANTS = 2


def list_variants(db: Session, experiment_id: str) -> List[Variant]:
    """Variants of an experiment, ordered by key"""
    return db.query(Variant).filter(
        Variant.experiment_id == experiment_id
    ).order_by(Variant.key.asc()).all()


def replace_variants(db: Session, experiment_id: str, variants: List[VariantIn]) -> List[Variant]:
    """
    Replace the full variant set of an experiment.

    Existing assignments keep their stored variant_key, so users already
    bucketed don't move even if their variant disappears.
    """
    if len(variants) < MIN_VARIANTS:
        raise HTTPException(status_code=400, detail="Experiment must have at least 2 variants")

    experiment = db.query(Experiment).filter(Experiment.id == experiment_id).first()
    if not experiment:
        raise ExperimentNotFound(experiment_id)

    keys = [v.key for v in variants]
    if len(keys) != len(set(keys)):
        raise HTTPException(status_code=400, detail="Duplicate variant keys are not allowed")

    # delete + insert in one transaction
    db.query(Variant).filter(Variant.experiment_id == experiment_id).delete(synchronize_session=False)
    for variant_data in variants:
        db.add(Variant(
            experiment_id=experiment_id,
            key=variant_data.key,
            weight=variant_data.weight
        ))
    db.commit()

    logger.info("Replaced variants of experiment %s with %s", experiment.name, keys)
    return list_variants(db, experiment_id)


def delete_variant(db: Session, variant_id: str) -> VariantResponse:
    """Delete one variant, refusing to go below the minimum"""
    variant = db.query(Variant).filter(Variant.id == variant_id).first()
    if not variant:
        raise HTTPException(status_code=404, detail="Variant not found")

    remaining = db.query(Variant).filter(Variant.experiment_id == variant.experiment_id).count()
    if remaining <= MIN_VARIANTS:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete variant: experiment must have at least 2 variants"
        )

    deleted = VariantResponse.model_validate(variant)
    db.delete(variant)
    db.commit()
    return deleted
