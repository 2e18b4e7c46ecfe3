import math
import numbers

import pandas as pd

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from transforms.errors import MalformedInputError, MissingInputError, SchemaError

Record = Dict[str, Any]

# Above this, Python prints integral floats digit by digit instead of in exponent form
MAX_PLAIN_INTEGER = 1e21


def load_table(
        path: Path,
        columns: Optional[List[str]],
        check_header: bool = True,
        delimiter: str = ","
) -> pd.DataFrame:
    """
    Load a header-bearing CSV file with every value kept as the original string.

    :param path: Path to the CSV file
    :param columns: Declared columns in file order, None to take the header as is
    :param check_header: Fail if the header differs from the declared columns,
        otherwise the declared names are assigned to the columns by position
    :param delimiter: Field delimiter
    :return: Table indexed by 0-based data row number
    """
    if not path.is_file():
        raise MissingInputError(path)

    try:
        if columns is None or check_header:
            frame = pd.read_csv(
                path,
                sep=delimiter,
                dtype=str,
                keep_default_na=False,
                index_col=False,
            )
        else:
            frame = pd.read_csv(
                path,
                sep=delimiter,
                dtype=str,
                keep_default_na=False,
                header=0,
                names=columns,
                index_col=False,
            )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise MalformedInputError(path, str(e)) from e
    except OSError as e:
        raise MissingInputError(path) from e

    if columns is not None and check_header and list(frame.columns) != list(columns):
        raise SchemaError(path, list(columns), [str(column) for column in frame.columns])

    return frame


def format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        value = float(value)
        if math.isfinite(value) and value.is_integer() and abs(value) < MAX_PLAIN_INTEGER:
            return str(int(value))
        return repr(value)
    return str(value)


def write_table(
        frame: pd.DataFrame,
        path: Path,
        columns: Optional[List[str]] = None,
        delimiter: str = ","
):
    """
    Write the table as CSV through a temporary file, so that the path only ever
    holds a complete table.
    """
    columns = list(frame.columns) if columns is None else columns
    text = pd.DataFrame(
        {column: [format_value(value) for value in frame[column]] for column in columns},
        columns=columns
    )

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.stem}.tmp{path.suffix}")
    text.to_csv(tmp_path, sep=delimiter, index=False)
    tmp_path.rename(path)


def to_records(frame: pd.DataFrame) -> List[Record]:
    return frame.to_dict(orient="records")


def from_records(records: Sequence[Mapping[str, Any]], columns: List[str]) -> pd.DataFrame:
    return pd.DataFrame.from_records(list(records), columns=columns)
