"""CSV rendering of stored readings."""

from __future__ import annotations

import csv
import io
from typing import Callable, Iterable, List, Optional, Sequence

from models.readings import ARRAY_SCHEMAS, SCALAR_FIELDS, Reading

_LIST_SEPARATOR = ";"


def _format_number(value: Optional[float]) -> str:
    return "" if value is None else repr(value)


def _format_points(values: Optional[Sequence[float]]) -> str:
    if values is None:
        return ""
    return _LIST_SEPARATOR.join(repr(value) for value in values)


def csv_header() -> List[str]:
    header = ["ts", "device_id", *SCALAR_FIELDS]
    for schema in ARRAY_SCHEMAS:
        if schema.fixed:
            header.extend(f"{schema.name}_{axis}" for axis in schema.axes)
        else:
            header.append(schema.name)
    header.append("alerts")
    return header


def csv_row(reading: Reading, alerts: Sequence[str]) -> List[str]:
    row = [str(reading.ts), reading.device_id]
    row.extend(_format_number(getattr(reading, name)) for name in SCALAR_FIELDS)
    for schema in ARRAY_SCHEMAS:
        values = getattr(reading, schema.name)
        if schema.fixed:
            if values is None:
                row.extend("" for _ in schema.axes)
            else:
                row.extend(_format_number(value) for value in values)
        else:
            row.append(_format_points(values))
    row.append(_LIST_SEPARATOR.join(alerts))
    return row


def render_csv(
    readings: Iterable[Reading],
    evaluate: Callable[[Reading], Sequence[str]],
) -> str:
    """Render readings, oldest first, with their alert labels in the last column."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(csv_header())
    for reading in readings:
        writer.writerow(csv_row(reading, evaluate(reading)))
    return buffer.getvalue()
