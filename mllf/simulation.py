"""Tick-by-tick MLLF simulation over one hyperperiod.

Every tick runs the same fixed sequence:

    a. arrivals            -> force a reschedule
    b. completion          -> retire the occupant, force a reschedule
    c. quantum expiry      -> force a reschedule
    d. decision            -> start / continue / preempt / idle
    e. trace emission
    f. execution of one unit on the occupant
    g. deadline enforcement at the end of the tick
    h. time advance

Status changes have a single owner each: the decision step moves jobs
between Ready and Running, completion retirement sets Completed and the
deadline check sets Missed.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging

from mllf.models import Job, JobStatus
from mllf.scheduler import ReadyQueue, compute_quantum, select_task, update_laxities

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobSnapshot:
    """State of one job as shown in a trace line."""
    job_id: int
    task_id: int
    laxity: Optional[int]
    remaining_wcet: int
    remaining_aet: int
    absolute_deadline: int
    quantum: Optional[int] = None

    @classmethod
    def of(cls, job: Job, quantum: Optional[int] = None) -> "JobSnapshot":
        return cls(
            job_id=job.job_id,
            task_id=job.task_id,
            laxity=job.calculated_laxity,
            remaining_wcet=job.remaining_wcet,
            remaining_aet=job.remaining_aet,
            absolute_deadline=job.absolute_deadline,
            quantum=quantum,
        )


@dataclass(frozen=True)
class DeadlineMiss:
    """A job found past its deadline with work left at the end of a tick."""
    job_id: int
    task_id: int
    absolute_deadline: int
    time: int


@dataclass
class TraceEntry:
    """One tick of the execution trace.

    Attributes:
        time: Tick index.
        events: Event labels in the order they happened.
        running: Occupant after the decision step, or None when idle.
        ready: Ready queue contents after the decision step, in queue order.
        rescheduled: Whether the decision step ran this tick.
        misses: Deadline misses detected at the end of this tick.
    """
    time: int
    events: List[str]
    running: Optional[JobSnapshot]
    ready: List[JobSnapshot]
    rescheduled: bool
    misses: List[DeadlineMiss] = field(default_factory=list)


@dataclass
class SimulationResult:
    """Counters and records accumulated over one run.

    Attributes:
        hyperperiod: Number of simulated ticks.
        jobs: The job arena, in generation order, with final states.
        idle_time: Ticks with no occupant.
        completed: Jobs that reached Completed.
        missed: Jobs that reached Missed.
        context_switches: Occupant changes between two busy ticks.
        trace: One entry per tick.
        misses: All deadline misses in detection order.
        occupancy: Ticks executed per job id.
    """
    hyperperiod: int
    jobs: List[Job]
    idle_time: int = 0
    completed: int = 0
    missed: int = 0
    context_switches: int = 0
    trace: List[TraceEntry] = field(default_factory=list)
    misses: List[DeadlineMiss] = field(default_factory=list)
    occupancy: Dict[int, int] = field(default_factory=dict)

    @property
    def busy_time(self) -> int:
        return sum(self.occupancy.values())

    @property
    def unfinished(self) -> List[Job]:
        """Jobs left without a terminal state at the end of the horizon."""
        return [job for job in self.jobs if not job.is_terminal]


def _label(job: Job, quantum: int) -> str:
    return f"J{job.job_id}(L{job.calculated_laxity},Q{quantum})"


class Simulator:
    """Owns all mutable simulation state for one run over the hyperperiod.

    Args:
        jobs: The job arena, every job with its AET assigned.
        hyperperiod: Number of ticks to simulate.
        ready_capacity: Ready queue capacity, defaults to the job count.
    """

    def __init__(self, jobs: Sequence[Job], hyperperiod: int, ready_capacity: Optional[int] = None) -> None:
        if hyperperiod < 0:
            raise ValueError(f"Hyperperiod cannot be negative, got {hyperperiod}")
        missing = [job.job_id for job in jobs if job.aet is None]
        if missing:
            raise ValueError(f"AET not assigned for jobs {missing}")

        self.jobs: List[Job] = list(jobs)
        self.hyperperiod = hyperperiod
        self.ready_queue = ReadyQueue(len(self.jobs) if ready_capacity is None else ready_capacity)
        self.running: Optional[Job] = None
        self.quantum_remaining = 0
        self.last_running_id: Optional[int] = None
        self.now = 0
        self.result = SimulationResult(hyperperiod=hyperperiod, jobs=self.jobs)

    @property
    def done(self) -> bool:
        return self.now >= self.hyperperiod

    def run(self) -> SimulationResult:
        """Simulate every remaining tick and return the result."""
        logger.info("Running MLLF simulation for %d ticks over %d jobs", self.hyperperiod, len(self.jobs))
        while not self.done:
            self.step()
        logger.info("Simulation finished: %d completed, %d missed, %d context switches, %d idle",
                    self.result.completed, self.result.missed,
                    self.result.context_switches, self.result.idle_time)
        return self.result

    def step(self) -> TraceEntry:
        """Advance the simulation by one tick and return its trace entry."""
        if self.done:
            raise RuntimeError("Simulation already reached the hyperperiod")

        events: List[str] = []
        reschedule = self._handle_arrivals(events)
        reschedule = self._retire_completed(events) or reschedule
        reschedule = self._quantum_expired(events) or reschedule

        rescheduled = reschedule or self.running is None
        update_laxities(self.ready_queue, self.running, self.now)
        if rescheduled:
            candidate = select_task(self.ready_queue, self.running)
            self._decide(candidate, events)
        else:
            events.append(f"Continue {_label(self.running, self.quantum_remaining)}")

        entry = self._emit(events, rescheduled)
        self._execute()
        self._check_deadlines(entry)
        self.now += 1
        return entry

    def _handle_arrivals(self, events: List[str]) -> bool:
        arrived = False
        for job in self.jobs:
            if job.status is JobStatus.NOT_ARRIVED and job.arrival_time == self.now:
                job.status = JobStatus.READY
                self.ready_queue.add(job)
                events.append(f"Arrival J{job.job_id}(T{job.task_id})")
                arrived = True
        return arrived

    def _retire_completed(self, events: List[str]) -> bool:
        job = self.running
        if job is None or job.remaining_aet > 0 or job.is_terminal:
            return False
        job.status = JobStatus.COMPLETED
        job.finish_time = self.now
        job.calculated_laxity = None
        self.result.completed += 1
        self.running = None
        self.quantum_remaining = 0
        events.append(f"Complete J{job.job_id}")
        return True

    def _quantum_expired(self, events: List[str]) -> bool:
        job = self.running
        if job is None or job.remaining_aet <= 0 or self.quantum_remaining > 0:
            return False
        events.append(f"Quantum Exp J{job.job_id}")
        return True

    def _decide(self, candidate: Optional[Job], events: List[str]) -> None:
        """Apply the start / continue / preempt / idle transition."""
        running = self.running
        if running is None:
            if candidate is None:
                events.append("CPU Idle")
                self.result.idle_time += 1
                self.quantum_remaining = 0
            else:
                self._dispatch(candidate, events)
        elif candidate is None:
            # unreachable while an occupant exists
            logger.error("t=%d: no candidate selected while J%d occupies the CPU", self.now, running.job_id)
            events.append(f"Continue {_label(running, self.quantum_remaining)}")
        elif candidate is not running:
            events.append(f"Preempt J{running.job_id}(L{running.calculated_laxity}) "
                          f"for J{candidate.job_id}(L{candidate.calculated_laxity})")
            running.status = JobStatus.READY
            self.ready_queue.add(running)
            self.running = None
            self._dispatch(candidate, events)
        elif self.quantum_remaining <= 0 and running.remaining_aet > 0:
            self.quantum_remaining = compute_quantum(running, self.jobs)
            events.append(f"Renew {_label(running, self.quantum_remaining)}")
        else:
            events.append(f"Continue {_label(running, self.quantum_remaining)}")

        self._count_context_switch(events)

    def _dispatch(self, job: Job, events: List[str]) -> None:
        job.status = JobStatus.RUNNING
        self.ready_queue.remove(job)
        self.running = job
        self.quantum_remaining = compute_quantum(job, self.jobs)
        if job.first_start_time is None:
            job.first_start_time = self.now
        job.last_start_time = self.now
        events.append(f"Start {_label(job, self.quantum_remaining)}")
        logger.debug("t=%d: start J%d", self.now, job.job_id)

    def _count_context_switch(self, events: List[str]) -> None:
        current_id = self.running.job_id if self.running is not None else None
        if (current_id is not None and self.last_running_id is not None
                and current_id != self.last_running_id):
            self.result.context_switches += 1
            events.append("(CS)")
        self.last_running_id = current_id

    def _emit(self, events: List[str], rescheduled: bool) -> TraceEntry:
        running = None
        if self.running is not None:
            running = JobSnapshot.of(self.running, self.quantum_remaining)
        entry = TraceEntry(
            time=self.now,
            events=events,
            running=running,
            ready=[JobSnapshot.of(job) for job in self.ready_queue],
            rescheduled=rescheduled,
        )
        self.result.trace.append(entry)
        return entry

    def _execute(self) -> None:
        job = self.running
        if job is None or job.status is not JobStatus.RUNNING:
            return
        job.remaining_aet = max(0, job.remaining_aet - 1)
        job.remaining_wcet = max(0, job.remaining_wcet - 1)
        self.quantum_remaining = max(0, self.quantum_remaining - 1)
        self.result.occupancy[job.job_id] = self.result.occupancy.get(job.job_id, 0) + 1

    def _check_deadlines(self, entry: TraceEntry) -> None:
        next_time = self.now + 1
        running = self.running
        if running is not None and next_time > running.absolute_deadline and running.remaining_aet > 0:
            self._mark_missed(running, next_time, entry)
            self.running = None
            self.quantum_remaining = 0

        for job in self.ready_queue:
            if next_time > job.absolute_deadline and job.remaining_aet > 0:
                self._mark_missed(job, next_time, entry)
                self.ready_queue.remove(job)

    def _mark_missed(self, job: Job, time: int, entry: TraceEntry) -> None:
        job.status = JobStatus.MISSED
        job.calculated_laxity = None
        self.result.missed += 1
        miss = DeadlineMiss(job_id=job.job_id, task_id=job.task_id,
                            absolute_deadline=job.absolute_deadline, time=time)
        entry.misses.append(miss)
        self.result.misses.append(miss)
        logger.warning("DEADLINE MISS: J%d deadline %d at time %d", job.job_id, job.absolute_deadline, time)


def simulate(jobs: Sequence[Job], hyperperiod: int) -> SimulationResult:
    """Run a full MLLF simulation over jobs and return the result."""
    return Simulator(jobs, hyperperiod).run()
