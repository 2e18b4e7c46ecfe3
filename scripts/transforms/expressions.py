import keyword
import re

import numpy as np
import pandas as pd

from typing import List

from transforms.errors import ExpressionError, MissingFieldError
from transforms.numeric import numeric_column

# Not preceded by a word character or a dot, so the exponent of 1e3 is not a name
identifier_regex = re.compile(r"(?<![\w.])[A-Za-z_][A-Za-z0-9_]*")
call_regex = re.compile(r"\s*\(")


def expression_names(expression: str) -> List[str]:
    """
    Field names an expression refers to, skipping keywords and function calls.
    """
    names = []
    for match in identifier_regex.finditer(expression):
        name = match.group(0)
        if keyword.iskeyword(name) or call_regex.match(expression, match.end()):
            continue
        if name not in names:
            names.append(name)
    return names


def referenced_columns(frame: pd.DataFrame, expression: str) -> List[str]:
    names = expression_names(expression)
    for name in names:
        if name not in frame.columns:
            raise MissingFieldError(name)
    return names


def evaluate(frame: pd.DataFrame, expression: str) -> pd.Series:
    """
    Evaluate an arithmetic or comparison expression over the numeric values
    of the columns it references.

    :param frame: Table with string columns
    :param expression: pandas.eval expression, e.g. "width * height / total_duration"
    :return: Series aligned with the frame index
    """
    names = referenced_columns(frame, expression)
    if len(names) == 0:
        raise ValueError(f"Expression \"{expression}\" does not reference any column")

    numeric = pd.DataFrame(
        {name: numeric_column(frame, name).to_numpy() for name in names},
        index=frame.index
    )
    try:
        result = numeric.eval(expression, engine="python")
    except (NameError, SyntaxError, TypeError, ValueError) as e:
        raise ExpressionError(expression, str(e)) from e
    if not isinstance(result, pd.Series):
        result = pd.Series(np.full(len(frame), result), index=frame.index)
    return result
