import numpy as np
import pandas as pd

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from transforms.expressions import evaluate, expression_names
from transforms.filters import conditions_from_dict, matches


class Derivation(ABC):
    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def compute(self, frame: pd.DataFrame) -> pd.Series:
        pass

    @abstractmethod
    def fields(self) -> List[str]:
        pass

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        return frame.assign(**{self.name: self.compute(frame).to_numpy()})

    @classmethod
    def from_dict(cls, name: str, data) -> "Derivation":
        if isinstance(data, str):
            return ExpressionDerivation(name, data)
        elif isinstance(data, dict) and "cases" in data:
            return LabelDerivation.from_dict(name, data)
        else:
            raise ValueError(f"Invalid definition of derived field {name}")

    @abstractmethod
    def to_dict(self) -> Any:
        pass


class ExpressionDerivation(Derivation):
    def __init__(self, name: str, expression: str):
        super().__init__(name)
        self.expression = expression

    def fields(self) -> List[str]:
        return expression_names(self.expression)

    def compute(self, frame: pd.DataFrame) -> pd.Series:
        if len(frame) == 0:
            return pd.Series([], index=frame.index, dtype=float)
        return evaluate(frame, self.expression).astype(float)

    def to_dict(self) -> Any:
        return self.expression


class LabelDerivation(Derivation):
    def __init__(self, name: str, cases: List[Tuple[Dict[str, List[str]], str]], default: str):
        super().__init__(name)
        self.cases = cases
        self.default = default

    @classmethod
    def from_dict(cls, name: str, data) -> "LabelDerivation":
        if "default" not in data:
            raise ValueError(f"Derived field {name} is missing a default label")
        if len(data["cases"]) == 0:
            raise ValueError(f"Derived field {name} has no cases")
        cases = []
        for case in data["cases"]:
            if "when" not in case or "value" not in case:
                raise ValueError(f"Each case of derived field {name} needs both \"when\" and \"value\"")
            cases.append((conditions_from_dict(case["when"]), str(case["value"])))
        return cls(name, cases, str(data["default"]))

    def fields(self) -> List[str]:
        names = []
        for conditions, _ in self.cases:
            for field in conditions:
                if field not in names:
                    names.append(field)
        return names

    def compute(self, frame: pd.DataFrame) -> pd.Series:
        # np.select picks the first matching case
        selected = np.select(
            [matches(frame, conditions) for conditions, _ in self.cases],
            [label for _, label in self.cases],
            default=self.default
        )
        return pd.Series(selected, index=frame.index, dtype=object)

    def to_dict(self) -> Any:
        return {
            "cases": [{"when": conditions, "value": label} for conditions, label in self.cases],
            "default": self.default,
        }
