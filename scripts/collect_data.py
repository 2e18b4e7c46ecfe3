#!/usr/bin/env python3
import argparse

import average
import collection
import validation


def main():
    parser = argparse.ArgumentParser(description="Tool for collecting report data from benchmark results")

    subparsers = parser.add_subparsers(required=True, dest="collecting",
                                       description="Tools for collecting report data")
    collection.run_arguments(subparsers.add_parser("run", help="Collect reports of a definition"))
    collection.list_arguments(subparsers.add_parser("list", help="List reports of a definition"))
    collection.clear_arguments(subparsers.add_parser("clear", help="Delete collected reports"))
    validation.check_arguments(subparsers.add_parser("check", help="Check benchmark results against the declared columns"))
    average.average_arguments(subparsers.add_parser("average", help="Average a field of a CSV file over groups of rows"))

    args = parser.parse_args()
    args.action(args)


if __name__ == "__main__":
    main()
