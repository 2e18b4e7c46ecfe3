"""
Shared pytest fixtures: small benchmark result files laid out the way the
shipped collection definitions expect them.
"""

import csv

import pytest
from pathlib import Path

KICKOFF_COLUMNS = ["name", "threads", "n", "run", "duration"]

LGCA_COLUMNS = [
    "name", "slurm_node", "vectorization", "randomness", "run_id", "nodes", "cpus",
    "tasks_per_node", "width", "height", "rounds", "size", "threads",
    "core_duration", "core_duration_per_cell", "top_bottom_duration",
    "top_bottom_duration_per_cell", "calculation_duration",
    "calculation_duration_per_cell", "communication_duration", "total_duration",
    "render_duration", "images",
]

SORTING_COLUMNS = [
    "implementation", "name", "batch", "run", "nodes", "tasks_per_node", "tasks",
    "cpus", "entries", "total_ram", "ram_per_task", "reading_the_input",
    "dividing_the_input_into_buckets", "sending_to_workers", "writing_to_disk",
    "receiving_from_workers", "fetching_time_from_workers", "receiving_on_worker",
    "sorting_on_worker", "sending_to_manager", "duration",
]


def write_csv(path: Path, columns, rows):
    """Write rows given as dicts, missing fields are filled with "0"."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(columns)
        for row in rows:
            writer.writerow([row.get(column, "0") for column in columns])
    return path


def read_lines(path: Path):
    return path.read_text().splitlines()


def lgca_row(name, vectorization, randomness, nodes, tasks_per_node, width, rounds, size, threads, total_duration):
    return {
        "name": name,
        "slurm_node": "node01",
        "vectorization": vectorization,
        "randomness": randomness,
        "nodes": nodes,
        "tasks_per_node": tasks_per_node,
        "width": width,
        "height": width,
        "rounds": rounds,
        "size": size,
        "threads": threads,
        "total_duration": total_duration,
    }


def sorting_row(implementation, nodes, tasks_per_node, tasks, entries, reading, writing, sorting, duration):
    return {
        "implementation": implementation,
        "name": f"{implementation}-{tasks}",
        "nodes": nodes,
        "tasks_per_node": tasks_per_node,
        "tasks": tasks,
        "entries": entries,
        "reading_the_input": reading,
        "writing_to_disk": writing,
        "sorting_on_worker": sorting,
        "duration": duration,
    }


@pytest.fixture
def kickoff_dir(tmp_path):
    """Base directory with clang and gcc results of the pi kickoff benchmarks."""
    write_csv(tmp_path / "KickOff" / "results_clang.csv", KICKOFF_COLUMNS, [
        {"name": "mpi-pi++", "threads": "8", "n": "1024", "run": "0", "duration": "1.5"},
        {"name": "mpi-pi++", "threads": "4", "n": "2048", "run": "0", "duration": "2.25"},
        {"name": "openmp-pi", "threads": "8", "n": "2048", "run": "0", "duration": "0.75"},
        {"name": "openmp-pi", "threads": "08", "n": "2048", "run": "1", "duration": "0.5"},
    ])
    write_csv(tmp_path / "KickOff" / "results_gcc.csv", KICKOFF_COLUMNS, [
        {"name": "mpi-pi++", "threads": "8", "n": "1024", "run": "0", "duration": "1.75"},
        {"name": "cpp11-pi", "threads": "2", "n": "2048", "run": "0", "duration": "3"},
    ])
    return tmp_path


@pytest.fixture
def lgca_dir(tmp_path):
    """Base directory with lattice-gas simulation results, the multi node run comes first."""
    write_csv(tmp_path / "lgca" / "results.csv", LGCA_COLUMNS, [
        lgca_row("lgca-10000", "avx512", "pseudo", "2", "1", "10000", "1000", "2", "48", "120"),
        lgca_row("lgca-10000", "avx512", "pseudo", "1", "1", "10000", "1000", "1", "48", "100"),
        lgca_row("lgca-10000", "avx2", "real", "1", "1", "10000", "1000", "1", "24", "200"),
        lgca_row("lgca-10000", "avx2", "pseudo", "1", "1", "10000", "1000", "1", "12", "400"),
        lgca_row("lgca-1000", "avx512", "pseudo", "1", "1", "1000", "1000", "1", "48", "8"),
        lgca_row("lgca-10000", "avx512", "pseudo", "1", "2", "10000", "1000", "2", "24", "50"),
    ])
    return tmp_path


@pytest.fixture
def sorting_dir(tmp_path):
    """Base directory with distributed sorting results."""
    write_csv(tmp_path / "Sorting" / "results.csv", SORTING_COLUMNS, [
        sorting_row("radix-sort", "1", "1", "1", "1000", "0.5", "0.25", "1.0", "2.0"),
        sorting_row("sort-unstable", "1", "2", "2", "1000", "0.5", "0.25", "0.75", "1.50"),
        sorting_row("mpi-block-sort", "1", "32", "32", "2000", "0.1", "0.1", "0.1", "0.125"),
        sorting_row("mpi-block-sort", "2", "32", "64", "2000", "0.1", "0.1", "0.1", "0.0625"),
        sorting_row("mpi-block-sort", "1", "4", "4", "2000", "0.1", "0.1", "0.1", "0.3"),
    ])
    return tmp_path
