"""
Velocity analysis across sprints
"""
import math
from typing import List, Sequence

from ..constants import VelocityThresholds
from ..models import SprintMetrics, VelocityAnalysis, VelocityEntry
from .sprint_metrics import percentage


def velocity_entry(metrics: SprintMetrics) -> VelocityEntry:
    stats = metrics.statistics
    return VelocityEntry(
        sprint_name=metrics.sprint.name,
        completed_points=stats.completed_story_points,
        planned_points=stats.total_story_points,
        completion_rate=percentage(stats.completed_story_points, stats.total_story_points),
    )


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def velocity_trend(velocities: Sequence[float]) -> str:
    """
    Compare the last three sprints with the three before them.

    "increasing" above +10 %, "decreasing" below -10 %, otherwise
    "stable". Fewer than five sprints is always "stable".
    """
    window = VelocityThresholds.TREND_WINDOW
    if len(velocities) < window:
        return "stable"

    recent = list(velocities[-window:])
    earlier = list(velocities[:-window][-window:])
    if len(recent) < 2 or len(earlier) < 2:
        return "stable"

    recent_avg = _mean(recent)
    earlier_avg = _mean(earlier)
    if recent_avg > earlier_avg * VelocityThresholds.INCREASE_FACTOR:
        return "increasing"
    if recent_avg < earlier_avg * VelocityThresholds.DECREASE_FACTOR:
        return "decreasing"
    return "stable"


def velocity_consistency(velocities: Sequence[float]) -> str:
    """Classify spread by coefficient of variation"""
    if not velocities:
        return "low"
    average = _mean(velocities)
    variance = sum((v - average) ** 2 for v in velocities) / len(velocities)
    cv = math.sqrt(variance) / average if average > 0 else 1

    if cv < VelocityThresholds.HIGH_CONSISTENCY_CV:
        return "high"
    if cv < VelocityThresholds.MEDIUM_CONSISTENCY_CV:
        return "medium"
    return "low"


def analyze_velocity(
    metrics: Sequence[SprintMetrics],
    skipped: Sequence[str] = ()
) -> VelocityAnalysis:
    """
    Velocity summary for sprints given in chronological order.

    Args:
        metrics: Resolved sprints, oldest first
        skipped: Labels that could not be resolved

    Returns:
        VelocityAnalysis with average, trend, consistency and extremes
    """
    entries: List[VelocityEntry] = [velocity_entry(m) for m in metrics]
    if not entries:
        return VelocityAnalysis(
            entries=(),
            average_velocity=0,
            trend="stable",
            consistency="low",
            skipped=tuple(skipped),
        )

    velocities = [e.completed_points for e in entries]
    best = max(entries, key=lambda e: e.completed_points)
    worst = min(entries, key=lambda e: e.completed_points)

    return VelocityAnalysis(
        entries=tuple(entries),
        average_velocity=math.floor(_mean(velocities) + 0.5),
        trend=velocity_trend(velocities),
        consistency=velocity_consistency(velocities),
        best_sprint=best.sprint_name,
        worst_sprint=worst.sprint_name,
        skipped=tuple(skipped),
    )
