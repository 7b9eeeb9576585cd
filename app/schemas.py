"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    ValidationInfo,
    field_validator,
)

from models.readings import ARRAY_SCHEMAS, AlertRecord, Reading

_SCHEMAS_BY_NAME = {schema.name: schema for schema in ARRAY_SCHEMAS}


class ReadingIn(BaseModel):
    """Raw telemetry payload posted by a glove; every sensor field is optional.

    Sensor values must be JSON numbers; booleans and numeric strings are rejected.
    """

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    device_id: Optional[str] = Field(
        default=None, description="Glove identifier; the configured default is used when blank."
    )
    ts: Optional[StrictInt] = Field(
        default=None, ge=0, description="Capture time in ms since epoch; server time when omitted."
    )
    temp: Optional[StrictFloat] = None
    gsr: Optional[StrictFloat] = None
    force_left: Optional[StrictFloat] = None
    force_right: Optional[StrictFloat] = None
    hall_x: Optional[StrictFloat] = None
    hall_y: Optional[StrictFloat] = None
    hall_z: Optional[StrictFloat] = None
    flex: Optional[StrictFloat] = None
    accel: Optional[List[StrictFloat]] = Field(default=None, description="Accelerometer x, y, z.")
    gyro: Optional[List[StrictFloat]] = Field(default=None, description="Gyroscope x, y, z.")
    temp_points: Optional[List[StrictFloat]] = Field(
        default=None, description="Multi-point skin temperature samples."
    )
    fsr: Optional[List[StrictFloat]] = Field(
        default=None, description="Force-sensing resistor array."
    )

    @field_validator("accel", "gyro", "temp_points", "fsr")
    @classmethod
    def _check_array_shape(
        cls, value: Optional[List[float]], info: ValidationInfo
    ) -> Optional[List[float]]:
        if value is None:
            return value
        _SCHEMAS_BY_NAME[info.field_name].validate(tuple(value))
        return value


class ReadingOut(BaseModel):
    """A stored reading as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

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
    accel: Optional[List[float]] = None
    gyro: Optional[List[float]] = None
    temp_points: Optional[List[float]] = None
    fsr: Optional[List[float]] = None

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls.model_validate(reading)


class IngestResponse(BaseModel):
    """Result of ingesting one reading."""

    ok: bool = True
    reading: ReadingOut
    alerts: List[str] = Field(default_factory=list)


class LatestResponse(BaseModel):
    """Most recent reading, or ``ok=False`` when nothing was recorded yet."""

    ok: bool
    reading: Optional[ReadingOut] = None
    alerts: List[str] = Field(default_factory=list)


class AlertEntry(BaseModel):
    """One alert log entry."""

    model_config = ConfigDict(from_attributes=True)

    ts: int
    device_id: str
    alerts: List[str]

    @classmethod
    def from_record(cls, record: AlertRecord) -> "AlertEntry":
        return cls.model_validate(record)


DeviceCounts = Dict[str, int]
