"""Modified Least Laxity First (MLLF) scheduling policy.

This module holds the decision rules used by the simulator at every
scheduling point on a single processor.

Laxity of job i at time t:
    L_i(t) = D_i - t - C_i(t)

where:
    - D_i is the absolute deadline of job i
    - C_i(t) is its remaining worst-case execution time

Selection of Ta: the Ready or Running job with minimum laxity, ties broken
by smaller remaining WCET, then by smaller job id.

Quantum of Ta: plain LLF re-evaluates at every tick, MLLF lets Ta run
uninterrupted for
    Q_a = D_min - L_a
where D_min is the earliest deadline among the other jobs that either
    - are Ready/Running with laxity strictly greater than L_a, or
    - have not arrived yet (taken unconditionally, no laxity test).
If no such job exists, or D_a <= D_min, Ta runs for its whole remaining
actual execution time. Q_a is clamped to [1, remaining AET].
"""

import logging
from typing import Iterable, Iterator, List, Optional

from mllf.models import Job, JobStatus

logger = logging.getLogger(__name__)


class ReadyQueue:
    """Insertion-ordered set of Ready jobs.

    Holds references into the job arena, never copies. Order carries no
    scheduling meaning; it is kept for trace display.
    """

    def __init__(self, capacity: Optional[int] = None) -> None:
        self.capacity = capacity
        self._jobs: List[Job] = []

    def add(self, job: Job) -> None:
        """Enqueue a READY job. Non-ready jobs and duplicates are ignored.

        Raises:
            RuntimeError: If the queue is full. Capacity is bounded by the
                generated job count, so this signals a broken invariant.
        """
        if job.status is not JobStatus.READY or job in self:
            return
        if self.capacity is not None and len(self._jobs) >= self.capacity:
            raise RuntimeError(f"Ready queue full ({self.capacity}) while adding J{job.job_id}")
        self._jobs.append(job)

    def remove(self, job: Job) -> None:
        """Remove job if present."""
        for i, queued in enumerate(self._jobs):
            if queued is job:
                del self._jobs[i]
                return

    def __contains__(self, job: Job) -> bool:
        return any(queued is job for queued in self._jobs)

    def __iter__(self) -> Iterator[Job]:
        return iter(list(self._jobs))

    def __len__(self) -> int:
        return len(self._jobs)

    def __repr__(self) -> str:
        return f"ReadyQueue([{', '.join(f'J{j.job_id}' for j in self._jobs)}])"


def update_laxities(ready_queue: Iterable[Job], running: Optional[Job], now: int) -> None:
    """Refresh calculated_laxity of every Ready job and the Running job."""
    for job in ready_queue:
        job.calculated_laxity = job.laxity_at(now) if job.status is JobStatus.READY else None
    if running is not None and running.status is JobStatus.RUNNING:
        running.calculated_laxity = running.laxity_at(now)


def _priority_key(job: Job):
    return (job.calculated_laxity, job.remaining_wcet, job.job_id)


def select_task(ready_queue: Iterable[Job], running: Optional[Job]) -> Optional[Job]:
    """Choose Ta among Ready jobs and the Running job.

    Laxities must be fresh (see update_laxities).

    Returns:
        The job with minimum (laxity, remaining WCET, job id), or None if
        nothing is Ready or Running.
    """
    candidates = [job for job in ready_queue if job.status is JobStatus.READY]
    if running is not None and running.status is JobStatus.RUNNING:
        candidates.append(running)
    if not candidates:
        return None
    return min(candidates, key=_priority_key)


def find_tmin_deadline(ta: Job, jobs: Iterable[Job]) -> Optional[int]:
    """Return D_min, the deadline of Tmin, or None if no job constrains Ta.

    Jobs that have not arrived yet are constraints regardless of laxity;
    arrived jobs only when their laxity is strictly greater than Ta's.
    """
    d_min: Optional[int] = None
    for job in jobs:
        if job is ta or job.is_terminal:
            continue
        if job.status is JobStatus.NOT_ARRIVED:
            constrains = True
        else:
            constrains = job.calculated_laxity > ta.calculated_laxity
        if constrains and (d_min is None or job.absolute_deadline < d_min):
            d_min = job.absolute_deadline
    return d_min


def compute_quantum(ta: Optional[Job], jobs: Iterable[Job]) -> int:
    """Return how many ticks Ta may run before a forced re-evaluation."""
    if ta is None or ta.remaining_aet <= 0:
        return 0

    d_min = find_tmin_deadline(ta, jobs)
    if d_min is None or ta.absolute_deadline <= d_min:
        return ta.remaining_aet

    quantum = d_min - ta.calculated_laxity
    if quantum <= 0:
        quantum = 1
    quantum = min(quantum, ta.remaining_aet)
    logger.debug("J%d quantum bounded by D_min=%d: %d", ta.job_id, d_min, quantum)
    return quantum
