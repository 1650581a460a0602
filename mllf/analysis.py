"""Performance statistics derived from a finished simulation.

For a completed job j:
    turnaround_j = finish_j - arrival_j
    waiting_j    = max(0, turnaround_j - aet_j)
    response_j   = max(0, first_start_j - arrival_j)

Per task, over its completed jobs in instance order:
    absolute jitter     = max(response) - min(response)
    max relative jitter = max |response_k - response_(k-1)|

Only Completed jobs contribute to averages and jitter; Missed jobs are
listed separately.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from mllf.models import Job, JobStatus, TaskSet
from mllf.simulation import SimulationResult


@dataclass(frozen=True)
class JobMetrics:
    """Timing figures of one completed job."""
    job_id: int
    task_id: int
    instance_number: int
    arrival_time: int
    aet: int
    wcet: int
    finish_time: int
    turnaround: int
    waiting: int
    response: int


@dataclass(frozen=True)
class TaskJitter:
    """Response-time spread of one task's completed jobs."""
    task_id: int
    samples: int
    avg_response: float
    min_response: int
    max_response: int
    absolute_jitter: int
    max_relative_jitter: int


@dataclass
class ScheduleAnalysis:
    """Aggregate view of a run.

    Attributes:
        job_metrics: Metrics for each completed job, in job order.
        missed_jobs: Jobs that ended in the Missed state, in job order.
        task_jitter: Jitter per task id; None for tasks with no completed job.
        avg_turnaround: Average over completed jobs (None if there are none).
        avg_waiting: Average over completed jobs (None if there are none).
        avg_response: Average over completed jobs (None if there are none).
        cpu_utilization: Busy fraction of the hyperperiod.
    """
    job_metrics: List[JobMetrics] = field(default_factory=list)
    missed_jobs: List[Job] = field(default_factory=list)
    task_jitter: Dict[int, Optional[TaskJitter]] = field(default_factory=dict)
    avg_turnaround: Optional[float] = None
    avg_waiting: Optional[float] = None
    avg_response: Optional[float] = None
    cpu_utilization: float = 0.0


def job_metrics(job: Job) -> Optional[JobMetrics]:
    """Return metrics for a completed job, None for any other state."""
    if job.status is not JobStatus.COMPLETED or job.finish_time is None:
        return None
    turnaround = job.finish_time - job.arrival_time
    waiting = max(0, turnaround - job.aet)
    first_start = job.first_start_time if job.first_start_time is not None else job.arrival_time
    response = max(0, first_start - job.arrival_time)
    return JobMetrics(
        job_id=job.job_id,
        task_id=job.task_id,
        instance_number=job.instance_number,
        arrival_time=job.arrival_time,
        aet=job.aet,
        wcet=job.wcet,
        finish_time=job.finish_time,
        turnaround=turnaround,
        waiting=waiting,
        response=response,
    )


def compute_jitter(task_id: int, response_times: List[int]) -> Optional[TaskJitter]:
    """Summarise the response times of one task, None if there are none."""
    if not response_times:
        return None
    max_relative = 0
    for previous, current in zip(response_times, response_times[1:]):
        max_relative = max(max_relative, abs(current - previous))
    return TaskJitter(
        task_id=task_id,
        samples=len(response_times),
        avg_response=sum(response_times) / len(response_times),
        min_response=min(response_times),
        max_response=max(response_times),
        absolute_jitter=max(response_times) - min(response_times),
        max_relative_jitter=max_relative,
    )


def analyze_results(result: SimulationResult, taskset: TaskSet) -> ScheduleAnalysis:
    """Compute per-job, per-task and average statistics of a run."""
    analysis = ScheduleAnalysis()
    responses_by_task: Dict[int, List[int]] = defaultdict(list)

    for job in result.jobs:
        if job.status is JobStatus.MISSED:
            analysis.missed_jobs.append(job)
            continue
        metrics = job_metrics(job)
        if metrics is None:
            continue
        analysis.job_metrics.append(metrics)
        responses_by_task[job.task_id].append(metrics.response)

    completed = analysis.job_metrics
    if completed:
        count = len(completed)
        analysis.avg_turnaround = sum(m.turnaround for m in completed) / count
        analysis.avg_waiting = sum(m.waiting for m in completed) / count
        analysis.avg_response = sum(m.response for m in completed) / count

    for task in taskset:
        analysis.task_jitter[task.id] = compute_jitter(task.id, responses_by_task.get(task.id, []))

    if result.hyperperiod > 0:
        analysis.cpu_utilization = (result.hyperperiod - result.idle_time) / result.hyperperiod

    return analysis
