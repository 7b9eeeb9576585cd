"""Threshold alerting for glove readings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from models.readings import Reading


@dataclass(frozen=True)
class Threshold:
    """Upper bound for one scalar field and the label raised above it."""

    field: str
    limit: float
    label: str

    def exceeded_by(self, value: Optional[float]) -> bool:
        if value is None:
            return False
        return value > self.limit


# Evaluation order is the order of this table.
THRESHOLDS: Tuple[Threshold, ...] = (
    Threshold("temp", 38.5, "Temperature Too High"),
    Threshold("gsr", 500.0, "GSR Too High"),
    Threshold("force_left", 30.0, "Left Grip Unsafe"),
    Threshold("force_right", 30.0, "Right Grip Unsafe"),
    Threshold("hall_x", 2.0, "Hall X Abnormal"),
    Threshold("hall_y", 2.0, "Hall Y Abnormal"),
    Threshold("hall_z", 2.0, "Hall Z Abnormal"),
    Threshold("flex", 90.0, "Flex Too Large"),
)


class AlertEvaluator:
    """Pure threshold evaluator shared by ingest and latest lookups."""

    def __init__(self, thresholds: Tuple[Threshold, ...] = THRESHOLDS) -> None:
        self._thresholds = tuple(thresholds)

    @property
    def thresholds(self) -> Tuple[Threshold, ...]:
        return self._thresholds

    def evaluate(self, reading: Reading) -> List[str]:
        return [
            threshold.label
            for threshold in self._thresholds
            if threshold.exceeded_by(getattr(reading, threshold.field))
        ]
