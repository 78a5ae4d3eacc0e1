"""Weight override repository (append-only)"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.matching.models import WeightSet
from domain.matching.ports import WeightStorePort
from models.weight_override import WeightOverride

logger = logging.getLogger(__name__)


class WeightRepository(WeightStorePort):
    """Stores each calibrated WeightSet as a new weight_override row.

    The row id is the weight set version.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_active(self) -> Optional[WeightSet]:
        query = select(WeightOverride).order_by(WeightOverride.id.desc()).limit(1)
        row = self.db.execute(query).scalars().first()
        if row is None:
            return None
        return WeightSet.from_dict(row.weights, version=row.id, created_at=row.calibrated_at)

    def append(self, weights: WeightSet, metadata: Dict[str, Any]) -> WeightSet:
        row = WeightOverride(
            weights=weights.as_dict(),
            baseline_weights=metadata.get("baseline_weights"),
            sample_size=metadata.get("sample_size", 0),
            accuracy_before=metadata.get("accuracy_before"),
            accuracy_after=metadata.get("accuracy_after"),
            meta_json=metadata,
        )
        self.db.add(row)
        self.db.flush()
        logger.info(f"Stored weight set version {row.id}", extra={"weights_version": row.id})
        return WeightSet.from_dict(row.weights, version=row.id, created_at=row.calibrated_at)
