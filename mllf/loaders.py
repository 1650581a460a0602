"""Readers for the task-set file and the actual-execution-time file.

Task file: one task per line, four whitespace-separated integers

    arrival_time period wcet relative_deadline

AET file: one positive integer per line, one per generated job, in job
generation order.

Blank lines and lines starting with '#' are ignored in both files.
"""

import logging
from typing import Iterator, List, Sequence, Tuple

from mllf.config import DEFAULT_MAX_TASKS
from mllf.models import Job, Task, TaskSet

logger = logging.getLogger(__name__)


def _content_lines(path: str) -> Iterator[Tuple[int, str]]:
    """Yield (line_number, stripped_text) for each meaningful line."""
    with open(path, "r", encoding="utf-8") as f:
        for line_num, raw in enumerate(f, start=1):
            text = raw.strip()
            if not text or text.startswith("#"):
                continue
            yield line_num, text


def parse_task_line(text: str, task_id: int) -> Task:
    """Parse one task line. Raises ValueError if malformed or invalid."""
    fields = text.split()
    if len(fields) != 4:
        raise ValueError(f"expected 4 integers, got {len(fields)} fields")
    try:
        arrival, period, wcet, deadline = (int(x) for x in fields)
    except ValueError:
        raise ValueError(f"non-integer value in {text!r}") from None
    return Task(id=task_id, arrival_time=arrival, period=period, wcet=wcet, deadline=deadline)


def read_tasks(path: str, max_tasks: int = DEFAULT_MAX_TASKS) -> TaskSet:
    """Load and validate a task set.

    Args:
        path: Task file path.
        max_tasks: Static capacity for tasks.

    Returns:
        The TaskSet, possibly empty if the file has no task lines.

    Raises:
        ValueError: On malformed lines, invalid parameters or too many tasks.
        OSError: If the file cannot be read.
    """
    logger.info("Reading tasks from %s", path)
    tasks: List[Task] = []
    for line_num, text in _content_lines(path):
        if len(tasks) >= max_tasks:
            raise ValueError(f"{path} line {line_num}: more than {max_tasks} tasks")
        try:
            task = parse_task_line(text, len(tasks))
        except ValueError as e:
            raise ValueError(f"{path} line {line_num}: {e}") from e
        if task.wcet > task.deadline:
            logger.warning("Task %d line %d: WCET (%d) > deadline (%d)",
                           task.id, line_num, task.wcet, task.deadline)
        tasks.append(task)

    logger.info("Successfully read %d tasks", len(tasks))
    return TaskSet(tasks=tasks)


def read_aets(path: str, jobs: Sequence[Job]) -> List[int]:
    """Read one AET per job and assign it.

    Values larger than the job's WCET are kept and logged. Extra trailing
    values are ignored with a warning.

    Returns:
        The AET values assigned, in job order.

    Raises:
        ValueError: On non-integer or non-positive values, or too few values.
        OSError: If the file cannot be read.
    """
    logger.info("Reading AETs from %s", path)
    values: List[int] = []
    extra = 0
    for line_num, text in _content_lines(path):
        if len(values) >= len(jobs):
            extra += 1
            continue
        try:
            aet = int(text)
        except ValueError:
            raise ValueError(f"{path} line {line_num}: invalid AET {text!r}") from None
        job = jobs[len(values)]
        if aet <= 0:
            raise ValueError(f"{path} line {line_num}: non-positive AET ({aet}) for J{job.job_id}")
        if aet > job.wcet:
            logger.warning("AET (%d) for J%d line %d > WCET (%d)", aet, job.job_id, line_num, job.wcet)
        values.append(aet)

    if len(values) != len(jobs):
        raise ValueError(f"{path}: AET count ({len(values)}) != job count ({len(jobs)})")
    if extra:
        logger.warning("AET file %s has %d value(s) beyond the job count (%d)", path, extra, len(jobs))

    for job, aet in zip(jobs, values):
        job.assign_aet(aet)
    logger.info("Successfully read AET for %d jobs", len(values))
    return values
