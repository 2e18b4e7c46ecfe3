import numpy as np
import pandas as pd

from typing import Any, Dict, List

from transforms.errors import MissingFieldError
from transforms.expressions import evaluate


def value_list(value: Any) -> List[str]:
    """
    Filter values are always compared as strings, a single value is a one element list.
    """
    if isinstance(value, list):
        return [str(item) for item in value]
    return [str(value)]


def conditions_from_dict(data: Any) -> Dict[str, List[str]]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Conditions must map fields to values, got {data}")
    return {str(field): value_list(value) for field, value in data.items()}


def matches(frame: pd.DataFrame, conditions: Dict[str, List[str]]) -> np.ndarray:
    """
    Rows whose fields are equal, as raw strings, to one of the listed values
    for every field in conditions.
    """
    mask = np.ones(len(frame), dtype=bool)
    for field, values in conditions.items():
        if field not in frame.columns:
            raise MissingFieldError(field)
        mask &= frame[field].astype(str).isin(values).to_numpy()
    return mask


def apply_filter(frame: pd.DataFrame, conditions: Dict[str, List[str]]) -> pd.DataFrame:
    return frame[matches(frame, conditions)]


def apply_where(frame: pd.DataFrame, expressions: List[str]) -> pd.DataFrame:
    for expression in expressions:
        if len(frame) == 0:
            break
        mask = evaluate(frame, expression)
        if mask.dtype != bool:
            raise ValueError(f"Condition \"{expression}\" does not evaluate to a boolean")
        frame = frame[mask.to_numpy()]
    return frame
