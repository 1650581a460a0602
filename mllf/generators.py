"""Job instance generation and random workloads for experiments and tests."""

import logging
import math
import random
from typing import List, Optional, Sequence

from mllf.config import (
    DEFAULT_HYPERPERIOD_LIMIT,
    DEFAULT_HYPERPERIOD_WARNING,
    DEFAULT_MAX_JOBS,
)
from mllf.models import Job, Task, TaskSet

logger = logging.getLogger(__name__)

DEFAULT_PERIODS = (4, 5, 8, 10, 20, 40)


def compute_hyperperiod(
    taskset: TaskSet,
    limit: int = DEFAULT_HYPERPERIOD_LIMIT,
    warn_threshold: int = DEFAULT_HYPERPERIOD_WARNING,
) -> int:
    """Return the simulation horizon (LCM of all periods).

    Args:
        taskset: The tasks to simulate.
        limit: Largest acceptable hyperperiod. Larger values are rejected the
            same way a fixed-width LCM overflow would be.
        warn_threshold: Hyperperiods above this are accepted but logged.

    Raises:
        ValueError: If the hyperperiod is non-positive or exceeds limit.
    """
    hyperperiod = taskset.hyperperiod
    if hyperperiod <= 0:
        raise ValueError(f"Invalid hyperperiod ({hyperperiod})")
    if hyperperiod > limit:
        raise ValueError(f"Hyperperiod {hyperperiod} exceeds the limit of {limit}")
    if hyperperiod > warn_threshold:
        logger.warning("Hyperperiod %d is possibly excessive (> %d)", hyperperiod, warn_threshold)
    logger.info("System hyperperiod calculated: %d", hyperperiod)
    return hyperperiod


def generate_jobs(
    taskset: TaskSet,
    hyperperiod: Optional[int] = None,
    max_jobs: int = DEFAULT_MAX_JOBS,
) -> List[Job]:
    """Instantiate every job released strictly before the hyperperiod.

    Jobs are created task by task, in task order, and numbered in creation
    order. This list is the arena the simulator references by identity.

    Args:
        taskset: Source tasks.
        hyperperiod: Simulation horizon. Defaults to the task set's LCM.
        max_jobs: Capacity limit on the number of generated instances.

    Returns:
        Job instances with no AET assigned yet.

    Raises:
        ValueError: If more than max_jobs instances would be generated.
    """
    if hyperperiod is None:
        hyperperiod = taskset.hyperperiod

    jobs: List[Job] = []
    for task in taskset:
        k = 0
        arrival = task.arrival_time
        while arrival < hyperperiod:
            if len(jobs) >= max_jobs:
                raise ValueError(f"Exceeded maximum of {max_jobs} jobs while generating instances")
            jobs.append(Job(
                job_id=len(jobs),
                task_id=task.id,
                instance_number=k,
                arrival_time=arrival,
                wcet=task.wcet,
                absolute_deadline=arrival + task.deadline,
            ))
            k += 1
            arrival = task.arrival_time + k * task.period

    logger.info("Generated %d job instances up to time %d", len(jobs), hyperperiod)
    return jobs


def uunifast(n: int, u_total: float, seed: Optional[int] = None) -> List[float]:
    """Generate task utilizations using the UUniFast algorithm.

    Reference:
    Bini, E., & Buttazzo, G. C. (2005). Measuring the performance of schedulability tests.
    Real-Time Systems, 30(1-2), 129-154.

    Args:
        n: Number of tasks.
        u_total: Target total utilization.
        seed: Optional random seed for reproducibility.

    Returns:
        List of n utilization values that sum to approximately u_total.

    Raises:
        ValueError: If n <= 0 or u_total < 0.
    """
    if n <= 0:
        raise ValueError("Number of tasks must be positive")
    if u_total < 0:
        raise ValueError("Target utilization must be non-negative")

    rng = random.Random(seed)

    utilizations = []
    sum_u = u_total
    for i in range(1, n):
        next_sum_u = sum_u * (rng.random() ** (1.0 / (n - i)))
        utilizations.append(sum_u - next_sum_u)
        sum_u = next_sum_u
    utilizations.append(sum_u)

    return utilizations


def generate_taskset(
    n: int,
    target_utilization: float,
    periods: Sequence[int] = DEFAULT_PERIODS,
    deadline_factor_min: float = 1.0,
    deadline_factor_max: float = 1.0,
    seed: Optional[int] = None,
) -> TaskSet:
    """Generate a random integer task set using UUniFast.

    Periods are drawn from a short candidate list so that hyperperiods stay
    small enough to simulate tick by tick. Rounding to integers means the
    realised utilization only approximates the target.

    Args:
        n: Number of tasks to generate.
        target_utilization: Target total utilization.
        periods: Candidate periods.
        deadline_factor_min: Minimum ratio D/T.
        deadline_factor_max: Maximum ratio D/T.
        seed: Random seed for reproducibility.

    Returns:
        A TaskSet with n tasks, all released at time 0.

    Raises:
        ValueError: If parameters are invalid.
    """
    if not periods or any(p <= 0 for p in periods):
        raise ValueError("Candidate periods must be positive")
    if deadline_factor_min <= 0 or deadline_factor_max < deadline_factor_min:
        raise ValueError("Invalid deadline factor range")
    if deadline_factor_max > 1.0:
        raise ValueError("Deadline factor cannot exceed 1.0 (D must be <= T)")

    rng = random.Random(seed)
    utilizations = uunifast(n, target_utilization, seed=seed)

    tasks = []
    for i, u in enumerate(utilizations):
        period = rng.choice(list(periods))
        wcet = max(1, round(u * period))

        if deadline_factor_min == deadline_factor_max:
            deadline_factor = deadline_factor_min
        else:
            deadline_factor = rng.uniform(deadline_factor_min, deadline_factor_max)
        deadline = min(period, max(wcet, round(period * deadline_factor)))

        tasks.append(Task(id=i, arrival_time=0, period=period, wcet=wcet, deadline=deadline))

    return TaskSet(tasks=tasks)


def generate_aets(
    jobs: Sequence[Job],
    min_fraction: float = 0.0,
    seed: Optional[int] = None,
) -> List[int]:
    """Draw one actual execution time per job, in job order.

    Each value is uniform in [max(1, ceil(wcet * min_fraction)), wcet].
    With min_fraction=1.0 every AET equals the WCET.

    Raises:
        ValueError: If min_fraction is outside [0, 1].
    """
    if not 0.0 <= min_fraction <= 1.0:
        raise ValueError(f"min_fraction must be within [0, 1], got {min_fraction}")

    rng = random.Random(seed)
    aets = []
    for job in jobs:
        low = max(1, math.ceil(job.wcet * min_fraction))
        aets.append(rng.randint(low, job.wcet))
    return aets
