import math
import re

import numpy as np
import pandas as pd

from typing import Any

from transforms.errors import FieldParseError, MissingFieldError

# Leading decimal integer, the rest of the text is ignored
int_prefix_regex = re.compile(r"\s*[+-]?\d+")


def parse_number(value: Any, field: str, row: Any) -> float:
    """
    Parse a single field value as a finite float.

    NaN and infinities are rejected like any other garbage, so they can never
    leak into an aggregate.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise FieldParseError(field, row, value) from None
    if not math.isfinite(number):
        raise FieldParseError(field, row, value)
    return number


def parse_int(value: Any, field: str, row: Any) -> int:
    """
    Parse the leading integer of a text value, so "1.9" is 1 and "1e3" is 1.
    Values that are already numbers are truncated toward zero.
    """
    if isinstance(value, str):
        match = int_prefix_regex.match(value)
        if match is None:
            raise FieldParseError(field, row, value)
        return int(match.group(0))
    return int(parse_number(value, field, row))


def _row_label(row: Any) -> Any:
    return int(row) if isinstance(row, (int, np.integer)) else row


def numeric_column(frame: pd.DataFrame, field: str) -> pd.Series:
    """
    Parse the whole column as floats, failing on the first row that does not parse.
    :return: Float series with the same index as the frame
    """
    if field not in frame.columns:
        raise MissingFieldError(field)

    column = frame[field]
    values = pd.to_numeric(column, errors="coerce").astype(float)
    invalid = np.flatnonzero(~np.isfinite(values.to_numpy()))
    if len(invalid) != 0:
        position = invalid[0]
        raise FieldParseError(field, _row_label(frame.index[position]), column.iloc[position])
    return values


def int_column(frame: pd.DataFrame, field: str) -> pd.Series:
    if field not in frame.columns:
        raise MissingFieldError(field)

    values = [parse_int(value, field, _row_label(row)) for row, value in frame[field].items()]
    return pd.Series(values, index=frame.index, dtype=np.int64)


def cast_column(frame: pd.DataFrame, field: str, type_name: str) -> pd.Series:
    if type_name == "float":
        return numeric_column(frame, field)
    elif type_name == "int":
        return int_column(frame, field)
    raise ValueError(f"Unknown column type {type_name}")
