"""Pose source adapter."""
from .observations import (
    ObservationBuilder,
    PoseConfig,
    hands_from_landmarker_result,
    hands_from_records,
)

__all__ = [
    "ObservationBuilder",
    "PoseConfig",
    "hands_from_landmarker_result",
    "hands_from_records",
]
