"""Data models for periodic tasks, job instances and task sets."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
import math


class JobStatus(Enum):
    """Lifecycle of a job instance.

    Legal transitions:
        NOT_ARRIVED -> READY      (arrival)
        READY       -> RUNNING    (dispatch)
        RUNNING     -> READY      (preemption)
        RUNNING     -> COMPLETED  (remaining AET reaches 0)
        READY/RUNNING -> MISSED   (deadline passed with work left)
    """
    NOT_ARRIVED = "NotArrived"
    READY = "Ready"
    RUNNING = "Running"
    COMPLETED = "Completed"
    MISSED = "Missed"


@dataclass(frozen=True)
class Task:
    """Represents a periodic task.

    Attributes:
        id: Task index in load order.
        arrival_time: Release time of the first instance.
        period: Inter-arrival time of consecutive instances.
        wcet: Worst-case execution time.
        deadline: Relative deadline.
    """
    id: int
    arrival_time: int
    period: int
    wcet: int
    deadline: int

    def __post_init__(self) -> None:
        """Validate task parameters."""
        if self.period <= 0:
            raise ValueError(f"Task {self.id}: period must be positive, got {self.period}")
        if self.wcet <= 0:
            raise ValueError(f"Task {self.id}: WCET must be positive, got {self.wcet}")
        if self.deadline <= 0:
            raise ValueError(f"Task {self.id}: deadline must be positive, got {self.deadline}")
        if self.arrival_time < 0:
            raise ValueError(f"Task {self.id}: arrival time cannot be negative, got {self.arrival_time}")

    @property
    def utilization(self) -> float:
        """Return the utilization of this task (wcet/period)."""
        return self.wcet / self.period

    def __str__(self) -> str:
        return (f"Task(T{self.id}: A={self.arrival_time}, P={self.period}, "
                f"C={self.wcet}, D={self.deadline})")


@dataclass(eq=False)
class Job:
    """A single instance of a periodic task.

    WCET bookkeeping drives laxity (priority), AET bookkeeping drives
    progress and completion. Both counters only decrease through execution.

    Attributes:
        job_id: Unique id, assigned in creation order.
        task_id: Id of the owning task.
        instance_number: Occurrence index within the task.
        arrival_time: Absolute release time.
        wcet: Worst-case execution time copied from the task.
        absolute_deadline: arrival_time + task deadline.
        aet: Actual execution time, None until assigned.
        calculated_laxity: Last computed laxity, None when undefined.
    """
    job_id: int
    task_id: int
    instance_number: int
    arrival_time: int
    wcet: int
    absolute_deadline: int
    aet: Optional[int] = None
    remaining_wcet: int = field(init=False, default=0)
    remaining_aet: int = field(init=False, default=0)
    calculated_laxity: Optional[int] = field(init=False, default=None)
    status: JobStatus = field(init=False, default=JobStatus.NOT_ARRIVED)
    first_start_time: Optional[int] = field(init=False, default=None)
    last_start_time: Optional[int] = field(init=False, default=None)
    finish_time: Optional[int] = field(init=False, default=None)

    def __post_init__(self) -> None:
        self.remaining_wcet = self.wcet
        if self.aet is not None:
            self.remaining_aet = self.aet

    def assign_aet(self, aet: int) -> None:
        """Set the actual execution time. Allowed once, before arrival."""
        if self.aet is not None:
            raise ValueError(f"J{self.job_id}: AET already assigned")
        if aet <= 0:
            raise ValueError(f"J{self.job_id}: AET must be positive, got {aet}")
        self.aet = aet
        self.remaining_aet = aet

    def laxity_at(self, now: int) -> int:
        """Slack at time now: deadline - now - remaining worst-case work."""
        return self.absolute_deadline - now - self.remaining_wcet

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.MISSED)

    @property
    def is_active(self) -> bool:
        return self.status in (JobStatus.READY, JobStatus.RUNNING)

    def __str__(self) -> str:
        return f"J{self.job_id}(T{self.task_id}#{self.instance_number})"


@dataclass
class TaskSet:
    """An ordered collection of periodic tasks.

    Attributes:
        tasks: Tasks in load order; task ids match their positions.
    """
    tasks: List[Task] = field(default_factory=list)

    @property
    def hyperperiod(self) -> int:
        """Return the least common multiple of all periods (0 if empty)."""
        if not self.tasks:
            return 0
        return math.lcm(*(t.period for t in self.tasks))

    @property
    def total_utilization(self) -> float:
        """Return the total utilization of all tasks."""
        return sum(t.utilization for t in self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self):
        return iter(self.tasks)

    def __getitem__(self, index: int) -> Task:
        return self.tasks[index]
