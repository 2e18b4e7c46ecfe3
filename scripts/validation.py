import argparse
import sys

from pathlib import Path
from typing import List, Optional, TextIO

import pandas as pd

import collection

from transforms.errors import CollectionError


def check_sources(
        definition: str,
        base_dir_path: Optional[Path],
        confirm: bool,
        log_stream: Optional[TextIO] = None
) -> List[str]:
    """
    Check that every source of the collection exists and carries the declared header.

    :param definition: Path to the definition or name of a shipped definition
    :param base_dir_path: Directory the source paths are relative to, the definition config or cwd by default
    :param confirm: Print a line for valid sources as well
    :return: Names of the failed sources
    """
    log_stream = log_stream if log_stream is not None else sys.stdout
    loaded = collection.parse_collection(
        collection.resolve_definition_path(definition),
        [],
        base_dir_path,
        None,
        True
    )

    failed = []
    for source in loaded.sources.values():
        try:
            header = pd.read_csv(
                source.path,
                sep=loaded.config.delimiter,
                dtype=str,
                nrows=0,
            ).columns
        except (OSError, pd.errors.EmptyDataError, pd.errors.ParserError) as e:
            print(f"ERROR[{str(source.path.absolute())}]: {str(e)}", file=log_stream)
            failed.append(source.name)
            continue

        header = [str(column) for column in header]
        if header != source.columns:
            missing = [column for column in source.columns if column not in header]
            extra = [column for column in header if column not in source.columns]
            detail = "columns out of order"
            if len(missing) != 0 or len(extra) != 0:
                detail = f"missing {missing}, unexpected {extra}"
            print(f"FAIL[{str(source.path.absolute())}]: Header does not match source {source.name}, {detail}", file=log_stream)
            failed.append(source.name)
        elif confirm:
            print(f"OK[{str(source.path.absolute())}]: {len(header)} columns", file=log_stream)
    return failed


def _check_sources(args: argparse.Namespace):
    try:
        failed = check_sources(args.definition, args.base_dir, args.confirm)
    except (ValueError, CollectionError) as e:
        print(f"Failed to load collection: {e}", file=sys.stderr)
        sys.exit(1)
    if len(failed) != 0:
        sys.exit(1)


def check_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("-b", "--base_dir",
                        type=Path,
                        help="Directory the source paths are relative to (defaults to the current directory)")
    parser.add_argument("-c", "--confirm",
                        action="store_true",
                        help="Print confirmation for each valid source")
    parser.add_argument("definition",
                        type=str,
                        help="Path to the collection definition YAML file or name of a shipped definition")
    parser.set_defaults(action=_check_sources)


def main():
    parser = argparse.ArgumentParser(description="Check benchmark result files against the declared columns")
    check_arguments(parser)
    args = parser.parse_args()
    args.action(args)


if __name__ == "__main__":
    main()
