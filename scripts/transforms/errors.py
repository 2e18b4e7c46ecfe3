from pathlib import Path

from typing import Any, Dict, List, Optional


class CollectionError(Exception):
    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": str(self),
        }


class MissingInputError(CollectionError):
    def __init__(self, path: Path):
        super().__init__(f"Input file {str(path)} does not exist or cannot be read")
        self.path = path

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "path": str(self.path),
        }


class MalformedInputError(CollectionError):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"Failed to parse {str(path)}: {reason}")
        self.path = path
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "path": str(self.path),
            "reason": self.reason,
        }


class SchemaError(CollectionError):
    def __init__(self, path: Path, expected: List[str], actual: List[str]):
        super().__init__(
            f"Header of {str(path)} does not match the declared columns, "
            f"expected {','.join(expected)} got {','.join(actual)}"
        )
        self.path = path
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "path": str(self.path),
            "expected": list(self.expected),
            "actual": list(self.actual),
        }


class MissingFieldError(CollectionError):
    def __init__(self, field: str, row: Optional[int] = None):
        location = f" in row {row}" if row is not None else ""
        super().__init__(f"Missing field \"{field}\"{location}")
        self.field = field
        self.row = row

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "field": self.field,
            "row": self.row,
        }


class FieldParseError(CollectionError):
    def __init__(self, field: str, row: Any, value: Any):
        super().__init__(f"Field \"{field}\" in row {row} is not a number: \"{value}\"")
        self.field = field
        self.row = row
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "field": self.field,
            "row": self.row if isinstance(self.row, int) else str(self.row),
            "value": str(self.value),
        }


class ExpressionError(CollectionError):
    def __init__(self, expression: str, reason: str):
        super().__init__(f"Failed to evaluate \"{expression}\": {reason}")
        self.expression = expression
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "expression": self.expression,
            "reason": self.reason,
        }
