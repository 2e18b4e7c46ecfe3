import pandas as pd

from typing import Any, Dict, List, Optional

from transforms.errors import MissingFieldError
from transforms.numeric import cast_column

COLUMN_TYPES = ["int", "float"]


class OutputColumn:
    def __init__(self, name: str, source: str, type_name: Optional[str]):
        self.name = name
        self.source = source
        self.type_name = type_name

    @classmethod
    def from_dict(cls, data) -> "OutputColumn":
        if isinstance(data, str):
            return cls(data, data, None)
        elif isinstance(data, dict):
            if "name" not in data:
                raise ValueError(f"Output column {data} is missing a name")
            name = str(data["name"])
            type_name = data.get("type", None)
            if type_name is not None and type_name not in COLUMN_TYPES:
                raise ValueError(f"Unknown type {type_name} of output column {name}")
            return cls(name, str(data.get("from", name)), type_name)
        raise TypeError(f"Unexpected output column definition {type(data)}")

    def to_dict(self) -> Any:
        if self.source == self.name and self.type_name is None:
            return self.name
        data: Dict[str, Any] = {"name": self.name}
        if self.source != self.name:
            data["from"] = self.source
        if self.type_name is not None:
            data["type"] = self.type_name
        return data

    def select(self, frame: pd.DataFrame) -> pd.Series:
        if self.source not in frame.columns:
            raise MissingFieldError(self.source)
        if self.type_name is None:
            return frame[self.source]
        return cast_column(frame, self.source, self.type_name)


def project(frame: pd.DataFrame, columns: List[OutputColumn]) -> pd.DataFrame:
    return pd.DataFrame(
        {column.name: column.select(frame).to_numpy() for column in columns},
        index=frame.index,
        columns=[column.name for column in columns]
    )
