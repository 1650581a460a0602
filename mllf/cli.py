"""Command-line entry point: simulate MLLF for a task file and an AET file.

Usage:
    mllf-sim TASK_FILE AET_FILE OUTPUT_FILE [--config PATH] [--log-level LEVEL]

Unless all three filenames are given on the command line, all three are
prompted for. The output file is opened before simulating, so a bad output
path fails during setup.
Exit status is 0 on success or on an empty task/job set, 1 on any fatal
validation, parse or I/O error.
"""

import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

from mllf.analysis import analyze_results
from mllf.config import SimulationConfig, load_config
from mllf.generators import compute_hyperperiod, generate_jobs
from mllf.loaders import read_aets, read_tasks
from mllf.report import format_report, format_summary
from mllf.simulation import Simulator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mllf-sim",
        description="Simulate Modified Least Laxity First scheduling over one hyperperiod.",
    )
    parser.add_argument("task_file", nargs="?", help="Task set file (arrival period wcet deadline per line)")
    parser.add_argument("aet_file", nargs="?", help="Actual execution times, one per generated job")
    parser.add_argument("output_file", nargs="?", help="Report output path")
    parser.add_argument("--config", default=None, help="YAML file with limits and logging settings")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    return parser


def prompt_for(label: str) -> str:
    """Ask for a filename on stdin. Raises ValueError on EOF or empty input."""
    try:
        value = input(f"Enter {label}: ")
    except EOFError:
        raise ValueError(f"No {label} given") from None
    value = value.strip()
    if not value:
        raise ValueError(f"No {label} given")
    return value


def run(task_file: str, aet_file: str, output_file: str, config: SimulationConfig) -> int:
    """Load inputs, simulate, write the report. Returns the exit status."""
    taskset = read_tasks(task_file, max_tasks=config.max_tasks)
    if not taskset:
        print("[mllf] No tasks loaded.")
        return 0

    hyperperiod = compute_hyperperiod(taskset, config.hyperperiod_limit, config.hyperperiod_warning)
    jobs = generate_jobs(taskset, hyperperiod, max_jobs=config.max_jobs)
    if not jobs:
        print("[mllf] No jobs generated within hyperperiod.")
        return 0
    read_aets(aet_file, jobs)

    with open(output_file, "w", encoding="utf-8") as out:
        print(f"[mllf] Output will be written to {output_file}")
        result = Simulator(jobs, hyperperiod).run()
        analysis = analyze_results(result, taskset)
        out.write(format_report(result, analysis))

    print()
    print(format_summary(result, analysis, jobs_table=False))
    print(f"\n[mllf] Simulation finished. Results saved to {output_file}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.log_level is not None:
            config = dataclasses.replace(config, log_level=args.log_level)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(level=config.logging_level, format="%(levelname)s: %(message)s")

    try:
        filenames = [args.task_file, args.aet_file, args.output_file]
        if None in filenames:
            if any(filenames):
                print("[mllf] Expected three filenames, prompting for all of them.")
            filenames = [prompt_for(label) for label in ("task set filename", "AET filename", "output filename")]
        task_file, aet_file, output_file = filenames
        return run(task_file, aet_file, output_file, config)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
