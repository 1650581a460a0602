"""MLLF: Modified Least Laxity First scheduling simulator.

This package simulates MLLF scheduling of a periodic task set on a single
processor over one hyperperiod, producing a tick-by-tick trace, deadline
miss detection and derived performance statistics.
"""

from mllf.models import Task, TaskSet, Job, JobStatus
from mllf.generators import compute_hyperperiod, generate_jobs
from mllf.scheduler import ReadyQueue, select_task, compute_quantum
from mllf.simulation import Simulator, SimulationResult, simulate
from mllf.analysis import analyze_results

__version__ = "0.1.0"
__all__ = [
    "Task",
    "TaskSet",
    "Job",
    "JobStatus",
    "compute_hyperperiod",
    "generate_jobs",
    "ReadyQueue",
    "select_task",
    "compute_quantum",
    "Simulator",
    "SimulationResult",
    "simulate",
    "analyze_results",
]
