import argparse
import sys

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import shared

from transforms.errors import CollectionError, MissingFieldError
from transforms.numeric import parse_number

GROUP_KEY_SEPARATOR = "-"


class GroupMean:
    def __init__(self, first: Mapping[str, Any]):
        # Copy, so the caller's record is never modified
        self.first = dict(first)
        self.total = 0.0
        self.count = 0

    def add(self, value: float):
        self.total += value
        self.count += 1

    def aggregate(self, target_field: str) -> Dict[str, Any]:
        return {**self.first, target_field: self.total / self.count}


def group_key(record: Mapping[str, Any], group_by_fields: Sequence[str], row: int) -> str:
    values = []
    for field in group_by_fields:
        if field not in record:
            raise MissingFieldError(field, row)
        values.append(str(record[field]))
    return GROUP_KEY_SEPARATOR.join(values)


def average(
        records: Sequence[Mapping[str, Any]],
        target_field: str,
        group_by_fields: Sequence[str]
) -> List[Dict[str, Any]]:
    """
    Average target_field over the records sharing the same values of group_by_fields.

    Each group is represented by its first record, only the target field is replaced
    by the mean. Groups are returned in the order they were first encountered.

    :param records: Records with the target field parseable as a float
    :param target_field: Field to average
    :param group_by_fields: Fields identifying a group, empty for a single group of all records
    :return: One new record per group
    """
    groups: Dict[str, GroupMean] = {}
    for row, record in enumerate(records):
        if target_field not in record:
            raise MissingFieldError(target_field, row)
        value = parse_number(record[target_field], target_field, row)

        key = group_key(record, group_by_fields, row)
        group = groups.get(key)
        if group is None:
            group = GroupMean(record)
            groups[key] = group
        group.add(value)

    return [group.aggregate(target_field) for group in groups.values()]


def average_file(
        input_path: Path,
        target_field: str,
        group_by_fields: List[str],
        output_path: Path,
        columns: Optional[List[str]] = None,
        delimiter: str = ","
):
    frame = shared.load_table(input_path, columns, check_header=columns is not None, delimiter=delimiter)
    averaged = average(shared.to_records(frame), target_field, group_by_fields)
    shared.write_table(
        shared.from_records(averaged, list(frame.columns)),
        output_path,
        delimiter=delimiter
    )
    print(f"Averaged {len(frame)} rows into {len(averaged)} groups, saved to {str(output_path)}")


def _average_file(args: argparse.Namespace):
    output_path = args.output_path
    if output_path is None:
        output_path = args.input_path.with_name(f"{args.input_path.stem}-avg{args.input_path.suffix}")
    try:
        average_file(
            args.input_path,
            args.target,
            args.group_by,
            output_path,
            args.columns,
            args.delimiter
        )
    except CollectionError as e:
        print(f"Failed to average {str(args.input_path)}: {e}", file=sys.stderr)
        sys.exit(1)


def average_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("-o", "--output_path",
                        type=Path,
                        help="Output file path (defaults to the input path with -avg suffix)")
    parser.add_argument("-g", "--group_by",
                        nargs="+",
                        default=[],
                        help="Fields identifying a group, all rows form a single group by default")
    parser.add_argument("-c", "--columns",
                        nargs="+",
                        help="Expected columns of the input file, the header is not checked if not given")
    parser.add_argument("-d", "--delimiter",
                        default=",",
                        help="CSV delimiter (defaults to ,)")
    parser.add_argument("input_path",
                        type=Path,
                        help="Path to the CSV file to average")
    parser.add_argument("target",
                        type=str,
                        help="Numeric field to average")
    parser.set_defaults(action=_average_file)


def main():
    parser = argparse.ArgumentParser(description="Average a numeric field of a CSV file over groups of rows.")
    average_arguments(parser)
    args = parser.parse_args()
    args.action(args)


if __name__ == "__main__":
    main()
