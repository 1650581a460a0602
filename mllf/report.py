"""Human-readable trace and summary text."""

from typing import List, Optional

from mllf.analysis import JobMetrics, ScheduleAnalysis
from mllf.simulation import JobSnapshot, SimulationResult, TraceEntry

_RULE = "-----|--------------------------------------------------|-----------------|--------------------------"


def _fmt_avg(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f}"


def format_occupant(snapshot: Optional[JobSnapshot]) -> str:
    if snapshot is None:
        return "Idle"
    return f"J{snapshot.job_id}(L{snapshot.laxity},Q{snapshot.quantum})"


def format_trace_entry(entry: TraceEntry) -> List[str]:
    """Return the trace line for a tick followed by its deadline-miss alerts."""
    ready = " ".join(f"J{s.job_id}:{s.laxity}" for s in entry.ready)
    lines = [f"{entry.time:4d} | {' '.join(entry.events):<48} | {format_occupant(entry.running):<15} | {ready}"]
    for miss in entry.misses:
        lines.append(f"!!! DEADLINE MISS: J{miss.job_id} deadline {miss.absolute_deadline} at time {miss.time} !!!")
    return lines


def format_trace(result: SimulationResult) -> str:
    lines = [
        f"--- MLLF Simulation Trace (Hyperperiod: {result.hyperperiod}) ---",
        f"Time | {'Events':<48} | {'Run Job(L,Q)':<15} | Ready Queue (JobId:Laxity)",
        _RULE,
    ]
    for entry in result.trace:
        lines.extend(format_trace_entry(entry))
    lines.append(_RULE)
    return "\n".join(lines)


def format_counts(result: SimulationResult) -> List[str]:
    idle_pct = result.idle_time * 100.0 / result.hyperperiod if result.hyperperiod > 0 else 0.0
    return [
        "--- Simulation Analysis ---",
        "Algorithm: MLLF",
        f"Total time simulated: {result.hyperperiod}",
        f"Total CPU idle time: {result.idle_time} ({idle_pct:.2f}%)",
        f"Total jobs generated: {len(result.jobs)}",
        f"Total jobs completed: {result.completed}",
        f"Total deadline misses: {result.missed}",
        f"Total context switches: {result.context_switches}",
        f"Jobs unfinished at horizon: {len(result.unfinished)}",
    ]


def format_job_table(analysis: ScheduleAnalysis) -> List[str]:
    lines = [
        "--- Per-Job Analysis ---",
        "JobID | Task(Inst) | Arriv | AET | WCET | Finish | Turnaround | Waiting | Response",
        "------|------------|-------|-----|------|--------|------------|---------|---------",
    ]
    rows = [(m.job_id, m) for m in analysis.job_metrics] + [(j.job_id, j) for j in analysis.missed_jobs]
    for _, item in sorted(rows, key=lambda r: r[0]):
        task_inst = f"T{item.task_id}({item.instance_number})"
        if isinstance(item, JobMetrics):
            lines.append(f"J{item.job_id:<4} | {task_inst:<10} | {item.arrival_time:5d} | {item.aet:3d} | "
                         f"{item.wcet:4d} | {item.finish_time:6d} | {item.turnaround:10d} | "
                         f"{item.waiting:7d} | {item.response:8d}")
        else:
            lines.append(f"J{item.job_id:<4} | {task_inst:<10} | {item.arrival_time:5d} | {item.aet:3d} | "
                         f"{item.wcet:4d} | MISSED D:{item.absolute_deadline}")
    return lines


def format_averages(analysis: ScheduleAnalysis) -> List[str]:
    lines = ["--- Average Performance Metrics (Completed Jobs) ---"]
    if not analysis.job_metrics:
        lines.append("No jobs completed successfully.")
        return lines
    lines += [
        f"Average Turnaround Time: {_fmt_avg(analysis.avg_turnaround)}",
        f"Average Waiting Time:    {_fmt_avg(analysis.avg_waiting)}",
        f"Average Response Time:   {_fmt_avg(analysis.avg_response)}",
        f"CPU Utilization:         {analysis.cpu_utilization:.2%}",
    ]
    return lines


def format_jitter(analysis: ScheduleAnalysis) -> List[str]:
    lines = ["--- Response Time Jitter Analysis (Completed Jobs) ---"]
    for task_id, jitter in analysis.task_jitter.items():
        if jitter is None:
            lines.append(f"Task {task_id}: No completed jobs or response times recorded.")
            continue
        lines.append(f"Task {task_id}: Avg RT={jitter.avg_response:.2f}, Min RT={jitter.min_response}, "
                     f"Max RT={jitter.max_response}, Abs Jitter={jitter.absolute_jitter}, "
                     f"Max Rel Jitter={jitter.max_relative_jitter} ({jitter.samples} samples)")
    return lines


def format_summary(result: SimulationResult, analysis: ScheduleAnalysis, jobs_table: bool = True) -> str:
    """Counts, optional per-job table, averages and per-task jitter."""
    sections = [format_counts(result)]
    if jobs_table:
        sections.append(format_job_table(analysis))
    sections.append(format_averages(analysis))
    sections.append(format_jitter(analysis))
    return "\n\n".join("\n".join(section) for section in sections)


def format_report(result: SimulationResult, analysis: ScheduleAnalysis) -> str:
    """Full trace followed by the summary."""
    return f"{format_trace(result)}\n\n{format_summary(result, analysis)}\n"


def write_report(path: str, result: SimulationResult, analysis: ScheduleAnalysis) -> None:
    """Write the full trace and summary to path."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(format_report(result, analysis))
