"""Layer 2: Phases - Audit / Stabilize / Scale phases and duration estimates."""

from .phase_builder import (
    PhaseBuilder,
    DurationEstimate,
    estimate_durations,
    calculate_total_duration,
)

__all__ = [
    "PhaseBuilder",
    "DurationEstimate",
    "estimate_durations",
    "calculate_total_duration",
]
