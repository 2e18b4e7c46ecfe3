import argparse
import sys

import pandas as pd

from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Tuple

from ruamel.yaml import YAML

import shared

from average import average
from transforms import derive, expressions, filters, ordering, projection
from transforms.errors import CollectionError

DEFINITIONS_PATH = Path(__file__).parent / "definitions"
DEFAULT_OUTPUT_DIR = "assets"

yaml = YAML(typ='safe')


def flag_from_dict(data, key: str, default: bool, owner: str) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{owner}: {key} must be true or false, got {value!r}")
    return value


class GlobalConfig:
    def __init__(
            self,
            base_dir_path: Path,
            output_path: Path,
            check_header: bool,
            delimiter: str,
    ):
        """

        :param base_dir_path: Directory the source paths are relative to
        :param output_path: Directory the reports are written to
        :param check_header: Default flag if headers of the sources should be checked against their declared columns
        :param delimiter: CSV delimiter of both sources and reports
        """
        self.base_dir_path = base_dir_path
        self.output_path = output_path
        self.check_header = check_header
        self.delimiter = delimiter

    @classmethod
    def from_dict(
            cls,
            data,
            definition_dir_path: Path,
            base_dir_path: Optional[Path],
            output_path: Optional[Path],
            check_header: Optional[bool]
    ) -> "GlobalConfig":

        data = data if data is not None else {}

        if base_dir_path is None:
            if "base_dir" in data:
                base_dir_path = Path(data["base_dir"])
                base_dir_path = base_dir_path if base_dir_path.is_absolute() else definition_dir_path / base_dir_path
            else:
                base_dir_path = Path.cwd()

        if output_path is None:
            output_path = Path(data.get("output_dir", DEFAULT_OUTPUT_DIR))
            output_path = output_path if output_path.is_absolute() else base_dir_path / output_path

        if check_header is None:
            check_header = flag_from_dict(data, "check_header", True, "Collection config")

        return cls(
            base_dir_path,
            output_path,
            check_header,
            str(data.get("delimiter", ",")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_dir": str(self.base_dir_path),
            "output_dir": str(self.output_path),
            "check_header": self.check_header,
            "delimiter": self.delimiter,
        }


class Source:
    def __init__(self, name: str, path: Path, columns: List[str], check_header: bool):
        self.name = name
        self.path = path
        self.columns = columns
        self.check_header = check_header

    @classmethod
    def from_dict(
            cls,
            name: str,
            data,
            global_config: GlobalConfig,
            check_header: Optional[bool] = None
    ) -> "Source":
        if "path" not in data:
            raise ValueError(f"Source {name} is missing a path")
        if "columns" not in data or len(data["columns"]) == 0:
            raise ValueError(f"Source {name} is missing the list of columns")

        path = Path(data["path"])
        path = path if path.is_absolute() else global_config.base_dir_path / path
        if check_header is None:
            check_header = flag_from_dict(data, "check_header", global_config.check_header, f"Source {name}")
        return cls(
            name,
            path,
            [str(column) for column in data["columns"]],
            check_header
        )

    def load(self, delimiter: str) -> pd.DataFrame:
        return shared.load_table(self.path, self.columns, self.check_header, delimiter)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "columns": list(self.columns),
            "check_header": self.check_header,
        }


class Input:
    def __init__(self, source: str, assign: Dict[str, str]):
        self.source = source
        self.assign = assign

    @classmethod
    def from_dict(cls, data, sources: Dict[str, Source]) -> "Input":
        if isinstance(data, str):
            data = {"source": data}
        name = data.get("source", None)
        if name not in sources:
            raise ValueError(f"Unknown source {name}")
        assign = {str(field): str(value) for field, value in data.get("assign", {}).items()}
        return cls(name, assign)

    def select(self, tables: Dict[str, pd.DataFrame]) -> pd.DataFrame:
        return tables[self.source].assign(**self.assign)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "assign": dict(self.assign),
        }


class Averaging:
    def __init__(self, target: str, group_by: List[str]):
        self.target = target
        self.group_by = group_by

    @classmethod
    def from_dict(cls, data) -> "Averaging":
        if "target" not in data:
            raise ValueError("Averaging is missing the target field")
        return cls(str(data["target"]), [str(field) for field in data.get("group_by", [])])

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        averaged = average(shared.to_records(frame), self.target, self.group_by)
        return shared.from_records(averaged, list(frame.columns))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "group_by": list(self.group_by),
        }


class Report:
    keys = {"name", "inputs", "filter", "where", "derive", "average", "sort", "columns", "output"}

    def __init__(
            self,
            name: str,
            inputs: List[Input],
            conditions: Dict[str, List[str]],
            where: List[str],
            derivations: List[derive.Derivation],
            averaging: Optional[Averaging],
            sort: List[str],
            columns: List[projection.OutputColumn],
            output_path: Path,
    ):
        self.name = name
        self.inputs = inputs
        self.conditions = conditions
        self.where = where
        self.derivations = derivations
        self.averaging = averaging
        self.sort = sort
        self.columns = columns
        self.output_path = output_path

    @property
    def sources(self) -> List[str]:
        return [report_input.source for report_input in self.inputs]

    @classmethod
    def from_dict(cls, data, index: int, sources: Dict[str, Source], global_config: GlobalConfig) -> "Report":
        name = str(data.get("name", index))

        unknown = set(data.keys()) - cls.keys
        if len(unknown) != 0:
            raise ValueError(f"Report {name}: unknown keys {', '.join(sorted(unknown))}")

        try:
            raw_inputs = data.get("inputs", [])
            raw_inputs = raw_inputs if isinstance(raw_inputs, list) else [raw_inputs]
            inputs = [Input.from_dict(raw_input, sources) for raw_input in raw_inputs]
            conditions = filters.conditions_from_dict(data.get("filter", {}))
            derivations = [derive.Derivation.from_dict(str(field), definition)
                           for field, definition in data.get("derive", {}).items()]
            averaging = Averaging.from_dict(data["average"]) if "average" in data else None
            columns = [projection.OutputColumn.from_dict(column) for column in data.get("columns", [])]
        except (AttributeError, ValueError, TypeError) as e:
            raise ValueError(f"Report {name}: {e}") from e

        if len(inputs) == 0:
            raise ValueError(f"Report {name}: no inputs given")
        if len(columns) == 0:
            raise ValueError(f"Report {name}: no output columns given")
        column_names = [column.name for column in columns]
        if len(set(column_names)) != len(column_names):
            raise ValueError(f"Report {name}: duplicate output columns")

        where = data.get("where", [])
        where = where if isinstance(where, list) else [where]
        sort = data.get("sort", [])
        sort = sort if isinstance(sort, list) else [sort]

        output_path = Path(data.get("output", f"{name}.csv"))
        output_path = output_path if output_path.is_absolute() else global_config.output_path / output_path

        report = cls(
            name,
            inputs,
            conditions,
            [str(condition) for condition in where],
            derivations,
            averaging,
            [str(field) for field in sort],
            columns,
            output_path,
        )
        report.check_fields(sources)
        return report

    def check_fields(self, sources: Dict[str, Source]):
        """Reject references to fields that none of the inputs or earlier derivations provide."""
        available = []
        for report_input in self.inputs:
            for field in sources[report_input.source].columns + list(report_input.assign):
                if field not in available:
                    available.append(field)

        def require(fields: List[str], where: str):
            unknown = [field for field in fields if field not in available]
            if len(unknown) != 0:
                raise ValueError(f"Report {self.name}: unknown fields {', '.join(unknown)} in {where}")

        require(list(self.conditions), "filter")
        for condition in self.where:
            require(expressions.expression_names(condition), f"where \"{condition}\"")
        for derivation in self.derivations:
            require(derivation.fields(), f"derive {derivation.name}")
            available.append(derivation.name)
        if self.averaging is not None:
            require([self.averaging.target] + self.averaging.group_by, "average")
        require(self.sort, "sort")
        require([column.source for column in self.columns], "columns")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "inputs": [report_input.to_dict() for report_input in self.inputs],
            "filter": dict(self.conditions),
            "where": list(self.where),
            "derive": {derivation.name: derivation.to_dict() for derivation in self.derivations},
            "sort": list(self.sort),
            "columns": [column.to_dict() for column in self.columns],
            "output": str(self.output_path),
        }
        if self.averaging is not None:
            data["average"] = self.averaging.to_dict()
        return data

    def build(self, tables: Dict[str, pd.DataFrame]) -> pd.DataFrame:
        frames = [report_input.select(tables) for report_input in self.inputs]
        frame = frames[0] if len(frames) == 1 else pd.concat(frames)

        frame = filters.apply_filter(frame, self.conditions)
        frame = filters.apply_where(frame, self.where)
        for derivation in self.derivations:
            frame = derivation.apply(frame)
        if self.averaging is not None:
            frame = self.averaging.apply(frame)
        frame = ordering.sort_by(frame, self.sort)
        return projection.project(frame, self.columns)


class Logger:
    def __init__(self, num_steps: int, verbose: bool, log_stream: TextIO, failure_log_stream: TextIO):
        self.num_steps = num_steps
        self.step = 1
        self.verbose = verbose
        self.log_stream = log_stream
        self.failure_log_stream = failure_log_stream
        self.last_msg = ""

    def log_step(self, message: str) -> None:
        self.log(f"[{self.step}/{self.num_steps}] {message}")
        self.step += 1

    def log_detail(self, message: str) -> None:
        if self.verbose:
            self.log(message)

    def log_failure(self, report: Optional[Report], error: CollectionError):
        # Single entry list, so that consecutive dumps form one top level list
        data = [{
            "report": report.name if report is not None else None,
            "error": error.to_dict(),
        }]
        yaml.dump(data, self.failure_log_stream)

    def log(self, message):
        print(message, file=self.log_stream)
        self.last_msg = message

    def underline_last_message(self):
        print("-"*len(self.last_msg), file=self.log_stream)


class Collection:
    def __init__(
            self,
            name: str,
            config: GlobalConfig,
            sources: Dict[str, Source],
            reports: List[Report]
    ):
        self.name = name
        self.config = config
        self.sources = sources
        self.reports = reports

    def used_sources(self) -> List[Source]:
        names = []
        for report in self.reports:
            names.extend(name for name in report.sources if name not in names)
        return [self.sources[name] for name in names]

    def load_sources(self, logger: Logger) -> Dict[str, pd.DataFrame]:
        tables = {}
        for source in self.used_sources():
            logger.log_step(f"Loading source {source.name}")
            try:
                tables[source.name] = source.load(self.config.delimiter)
            except CollectionError as e:
                logger.log_failure(None, e)
                raise
            logger.log_detail(f"Read {len(tables[source.name])} rows from {str(source.path)}")
        return tables

    def build(self, logger: Logger) -> List[Tuple[Report, pd.DataFrame]]:
        tables = self.load_sources(logger)
        logger.underline_last_message()

        results = []
        for report in self.reports:
            logger.log_step(f"Building report {report.name}")
            try:
                frame = report.build(tables)
            except CollectionError as e:
                logger.log_failure(report, e)
                raise
            logger.log_detail(f"Report {report.name} has {len(frame)} rows")
            results.append((report, frame))
        return results

    def run(self, logger: Logger):
        # Nothing is written unless every report has been built
        results = self.build(logger)
        logger.underline_last_message()

        for report, frame in results:
            logger.log_step(f"Writing {report.name}")
            shared.write_table(
                frame,
                report.output_path,
                [column.name for column in report.columns],
                self.config.delimiter
            )
            logger.log_detail(f"Saved to {str(report.output_path.absolute())}")

    def num_steps(self) -> int:
        return len(self.used_sources()) + 2 * len(self.reports)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": {
                "name": self.name,
                "config": self.config.to_dict(),
                "sources": {name: source.to_dict() for name, source in self.sources.items()},
                "reports": [report.to_dict() for report in self.reports],
            }
        }


def resolve_definition_path(definition: str) -> Path:
    path = Path(definition)
    if path.exists():
        return path
    named = DEFINITIONS_PATH / f"{definition}.yml"
    if named.exists():
        return named
    raise ValueError(f"Collection definition {definition} not found")


def parse_collection_definition(path: Path):
    return yaml.load(path)


def parse_collection(
        definition_file: Path,
        report_filter: List[str],
        base_dir_path: Optional[Path] = None,
        out_dir_path: Optional[Path] = None,
        check_header: Optional[bool] = None,
) -> Collection:
    definition = parse_collection_definition(definition_file)
    if definition is None or "collection" not in definition:
        raise ValueError(f"{str(definition_file)} is not a collection definition")
    collection = definition["collection"]
    name = collection.get("name", definition_file.stem)

    global_config = GlobalConfig.from_dict(
        collection.get("config", None),
        definition_file.parent,
        base_dir_path,
        out_dir_path,
        check_header
    )
    sources = {str(source_name): Source.from_dict(str(source_name), source_data, global_config, check_header)
               for source_name, source_data in collection.get("sources", {}).items()}
    reports = [Report.from_dict(report_data, report_idx, sources, global_config)
               for report_idx, report_data in enumerate(collection.get("reports", []))]

    names = [report.name for report in reports]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate report names in {str(definition_file)}")

    if len(report_filter) != 0:
        unknown = [name for name in report_filter if name not in names]
        if len(unknown) != 0:
            raise ValueError(f"Unknown reports {', '.join(unknown)}")
        reports = [report for report in reports if report.name in report_filter]

    return Collection(name, global_config, sources, reports)


def run_collection(
        definition: str,
        report_filter: List[str],
        base_dir_path: Optional[Path],
        out_dir_path: Optional[Path],
        check_header: Optional[bool],
        verbose: bool,
        log_stream: Optional[TextIO] = None,
        failure_log_stream: Optional[TextIO] = None,
):
    log_stream = log_stream if log_stream is not None else sys.stdout
    failure_log_stream = failure_log_stream if failure_log_stream is not None else sys.stderr

    collection = parse_collection(
        resolve_definition_path(definition),
        report_filter,
        base_dir_path,
        out_dir_path,
        check_header
    )

    print(f"-- Collecting {collection.name} --", file=log_stream)
    logger = Logger(collection.num_steps(), verbose, log_stream, failure_log_stream)
    collection.run(logger)


def clear_collection(
        definition: str,
        report_filter: List[str],
        base_dir_path: Optional[Path],
        out_dir_path: Optional[Path],
):
    collection = parse_collection(
        resolve_definition_path(definition),
        report_filter,
        base_dir_path,
        out_dir_path
    )

    for report in collection.reports:
        if report.output_path.exists():
            print(f"Delete {report.output_path.absolute()}")
            report.output_path.unlink()


def list_reports(definition: str, verbose: bool = False):
    collection = parse_collection(resolve_definition_path(definition), [])
    if verbose:
        yaml.dump(collection.to_dict(), sys.stdout)
        return
    for report in collection.reports:
        print(f"{report.name}: {', '.join(report.sources)} -> {str(report.output_path)}")


def _run_collection(args: argparse.Namespace):
    try:
        run_collection(
            args.definition,
            args.reports,
            args.base_dir,
            args.output_path,
            False if args.no_header_check else None,
            args.verbose
        )
    except ValueError as e:
        print(f"Failed to load collection: {e}", file=sys.stderr)
        sys.exit(1)
    except CollectionError as e:
        print(f"Collection failed, no reports were written: {e}", file=sys.stderr)
        sys.exit(1)


def _clear_collection(args: argparse.Namespace):
    try:
        clear_collection(
            args.definition,
            args.reports,
            args.base_dir,
            args.output_path,
        )
    except ValueError as e:
        print(f"Failed to load collection: {e}", file=sys.stderr)
        sys.exit(1)


def _list_reports(args: argparse.Namespace):
    try:
        list_reports(args.definition, args.verbose)
    except ValueError as e:
        print(f"Failed to load collection: {e}", file=sys.stderr)
        sys.exit(1)


def location_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("-b", "--base_dir",
                        type=Path,
                        help="Directory the source paths are relative to (defaults to the current directory)")
    parser.add_argument("-o", "--output_path",
                        type=Path,
                        help=f"Output directory path (defaults to {DEFAULT_OUTPUT_DIR} in the base directory)")


def run_arguments(parser: argparse.ArgumentParser):
    location_arguments(parser)
    parser.add_argument("-v", "--verbose",
                        action="store_true",
                        help="Increase verbosity of the commandline output")
    parser.add_argument("--no_header_check",
                        action="store_true",
                        help="Assign declared columns by position instead of checking the CSV headers")
    parser.add_argument("definition",
                        type=str,
                        help=f"Path to the collection definition YAML file or name of a definition in {str(DEFINITIONS_PATH)}")
    parser.add_argument("reports",
                        type=str,
                        nargs="*",
                        help="Reports to collect, all by default")
    parser.set_defaults(action=_run_collection)


def clear_arguments(parser: argparse.ArgumentParser):
    location_arguments(parser)
    parser.add_argument("definition",
                        type=str,
                        help="Path to the collection definition YAML file or name of a shipped definition")
    parser.add_argument("reports",
                        type=str,
                        nargs="*",
                        help="Reports to delete, all by default")
    parser.set_defaults(action=_clear_collection)


def list_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("-v", "--verbose",
                        action="store_true",
                        help="Print the resolved definition as YAML")
    parser.add_argument("definition",
                        type=str,
                        help="Path to the collection definition YAML file or name of a shipped definition")
    parser.set_defaults(action=_list_reports)


def main():
    parser = argparse.ArgumentParser(description="Collect report CSV files from benchmark results")
    subparsers = parser.add_subparsers(required=True, dest="collection",
                                       description="Collecting reports")
    run_arguments(subparsers.add_parser("run", help="Collect reports"))
    list_arguments(subparsers.add_parser("list", help="List reports"))
    clear_arguments(subparsers.add_parser("clear", help="Delete collected reports"))

    args = parser.parse_args()
    args.action(args)


if __name__ == "__main__":
    main()
