"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


SCALAR_FIELDS: Tuple[str, ...] = (
    "temp",
    "gsr",
    "force_left",
    "force_right",
    "hall_x",
    "hall_y",
    "hall_z",
    "flex",
)


@dataclass(frozen=True, slots=True)
class ArraySchema:
    """Declared shape of an array-valued sensor channel.

    Fixed-length channels name their axes; variable-length channels only
    bound how many points a single reading may carry.
    """

    name: str
    axes: Tuple[str, ...] = ()
    max_points: int = 16

    @property
    def fixed(self) -> bool:
        return bool(self.axes)

    def validate(self, values: Tuple[float, ...]) -> None:
        if self.fixed:
            if len(values) != len(self.axes):
                raise ValueError(
                    f"{self.name} expects {len(self.axes)} values "
                    f"({', '.join(self.axes)}), got {len(values)}"
                )
            return
        if not 1 <= len(values) <= self.max_points:
            raise ValueError(
                f"{self.name} expects between 1 and {self.max_points} values, got {len(values)}"
            )


ARRAY_SCHEMAS: Tuple[ArraySchema, ...] = (
    ArraySchema("accel", axes=("x", "y", "z")),
    ArraySchema("gyro", axes=("x", "y", "z")),
    ArraySchema("temp_points"),
    ArraySchema("fsr"),
)

ARRAY_FIELDS: Tuple[str, ...] = tuple(schema.name for schema in ARRAY_SCHEMAS)


class MissingFieldPolicy(str, Enum):
    """How absent scalar sensor values are normalized at ingest.

    ``null`` keeps them absent so they can never trip a threshold; ``zero``
    stores ``0.0`` in their place.
    """

    null = "null"
    zero = "zero"


@dataclass(frozen=True, slots=True)
class Reading:
    """A single normalized telemetry sample from one glove."""

    ts: int
    device_id: str
    temp: Optional[float] = None
    gsr: Optional[float] = None
    force_left: Optional[float] = None
    force_right: Optional[float] = None
    hall_x: Optional[float] = None
    hall_y: Optional[float] = None
    hall_z: Optional[float] = None
    flex: Optional[float] = None
    accel: Optional[Tuple[float, ...]] = None
    gyro: Optional[Tuple[float, ...]] = None
    temp_points: Optional[Tuple[float, ...]] = None
    fsr: Optional[Tuple[float, ...]] = None


@dataclass(frozen=True, slots=True)
class AlertRecord:
    """Alert labels raised by one reading."""

    ts: int
    device_id: str
    alerts: Tuple[str, ...]
