"""Deadline-Miss-Free Ratio vs Utilisation Experiment.

Generates random integer task sets at various utilisation levels using
UUniFast, simulates each under MLLF for one hyperperiod with AET = WCET,
and plots the fraction of task sets that finished without a deadline miss.
Also provides a Gantt chart of a single simulation run.
"""

from pathlib import Path
from typing import Sequence

try:
    import matplotlib
    matplotlib.use('Agg')  # Non-interactive backend
    import matplotlib.pyplot as plt
    MATPLOTLIB_AVAILABLE = True
except ImportError:
    MATPLOTLIB_AVAILABLE = False

from mllf.generators import DEFAULT_PERIODS, generate_aets, generate_jobs, generate_taskset
from mllf.simulation import SimulationResult, simulate


def run_miss_ratio_experiment(
    utilisation_points: list,
    num_task_sets_per_point: int = 100,
    num_tasks: int = 5,
    periods: Sequence[int] = DEFAULT_PERIODS,
    seed: int = 42,
) -> dict:
    """Run the MLLF simulation experiment across utilisation levels.

    Args:
        utilisation_points: Utilisation values to test (e.g. [0.1, 0.2, ..., 1.0]).
        num_task_sets_per_point: Number of random task sets per utilisation.
        num_tasks: Number of tasks per task set.
        periods: Candidate task periods.
        seed: Base random seed (varied per task set).

    Returns:
        Dictionary mapping utilisation -> fraction of task sets with no misses.
    """
    results = {}

    for u_total in utilisation_points:
        miss_free_count = 0

        for i in range(num_task_sets_per_point):
            task_set_seed = seed + int(u_total * 1000) + i
            taskset = generate_taskset(
                n=num_tasks,
                target_utilization=u_total,
                periods=periods,
                seed=task_set_seed,
            )

            hyperperiod = taskset.hyperperiod
            jobs = generate_jobs(taskset, hyperperiod, max_jobs=len(taskset) * hyperperiod)
            for job, aet in zip(jobs, generate_aets(jobs, min_fraction=1.0)):
                job.assign_aet(aet)

            result = simulate(jobs, hyperperiod)
            if result.missed == 0:
                miss_free_count += 1

        results[u_total] = miss_free_count / num_task_sets_per_point

    return results


def plot_miss_ratio(
    results: dict,
    output_path: str = "results/mllf_miss_free_vs_utilisation.png",
) -> None:
    """Plot the miss-free ratio against utilisation.

    Args:
        results: Dictionary mapping utilisation -> miss-free ratio.
        output_path: Path to save the plot.
    """
    if not MATPLOTLIB_AVAILABLE:
        raise ImportError("matplotlib is required for plotting")

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    utilisations = sorted(results.keys())
    ratios = [results[u] for u in utilisations]

    plt.figure(figsize=(10, 6))
    plt.plot(utilisations, ratios, 'bo-', linewidth=2, markersize=8)
    plt.xlabel('Total Utilisation', fontsize=12)
    plt.ylabel('Miss-Free Ratio', fontsize=12)
    plt.title('Deadline-Miss-Free Task Sets vs Utilisation (MLLF)', fontsize=14)
    plt.grid(True, alpha=0.3)
    plt.ylim(0, 1.05)

    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()

    print(f"Plot saved to {output_path}")


def occupancy_blocks(result: SimulationResult) -> list:
    """Merge consecutive ticks of the same occupant into (start, length, job) blocks."""
    blocks = []
    current_start, current_job = None, None
    for entry in result.trace:
        job_id = entry.running.job_id if entry.running is not None else None
        if job_id != current_job:
            if current_job is not None:
                blocks.append((current_start, entry.time - current_start, current_job))
            current_start, current_job = entry.time, job_id
    if current_job is not None:
        blocks.append((current_start, len(result.trace) - current_start, current_job))
    return blocks


def plot_gantt(result: SimulationResult, output_path: str = "results/mllf_gantt.png") -> None:
    """Draw one row per task with the executed job blocks of a run."""
    if not MATPLOTLIB_AVAILABLE:
        raise ImportError("matplotlib is required for plotting")

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    task_of = {job.job_id: job.task_id for job in result.jobs}
    task_ids = sorted(set(task_of.values()))
    colors = plt.get_cmap('tab10')

    fig, ax = plt.subplots(figsize=(12, 6))
    for start, length, job_id in occupancy_blocks(result):
        task_id = task_of[job_id]
        ax.broken_barh([(start, length)], (task_id * 10, 9), facecolors=colors(task_id % 10))
        ax.text(start + length / 2, task_id * 10 + 4.5, f"J{job_id}", ha='center', va='center', fontsize=8)

    for miss in result.misses:
        ax.axvline(miss.time, color='red', linestyle='--', alpha=0.5)

    ax.set_xlim(0, result.hyperperiod)
    ax.set_ylim(0, (max(task_ids) + 1) * 10 if task_ids else 10)
    ax.set_xlabel('Time')
    ax.set_ylabel('Task')
    ax.set_yticks([t * 10 + 4.5 for t in task_ids])
    ax.set_yticklabels([f'T{t}' for t in task_ids])
    ax.set_title(f'MLLF Schedule (Hyperperiod: {result.hyperperiod})')
    ax.grid(True, axis='x')

    fig.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    print(f"Gantt chart saved to {output_path}")


def main():
    """Run the full miss-free ratio vs utilisation experiment."""
    print("Running MLLF miss-free ratio vs utilisation experiment...")

    utilisation_points = [u / 10.0 for u in range(1, 13)]  # 0.1, 0.2, ..., 1.2

    results = run_miss_ratio_experiment(
        utilisation_points=utilisation_points,
        num_task_sets_per_point=100,
        num_tasks=5,
        seed=42,
    )

    print("\nResults:")
    for u, ratio in sorted(results.items()):
        print(f"  U = {u:.1f}: {ratio:.3f} miss-free")

    plot_miss_ratio(results)

    print("\nExperiment complete!")


if __name__ == "__main__":
    main()
