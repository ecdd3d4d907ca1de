"""
Hand Landmark Model
===================

Container types for the 21-point hand landmark sets produced by the pose
source (MediaPipe hand landmark convention, normalized image coordinates).
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import List, NamedTuple, Tuple

import numpy as np

NUM_LANDMARKS = 21


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# Fingertips of index..pinky and the PIP joint two points below each
FINGER_TIPS = (LandmarkIndex.INDEX_TIP, LandmarkIndex.MIDDLE_TIP,
               LandmarkIndex.RING_TIP, LandmarkIndex.PINKY_TIP)
FINGER_PIPS = (LandmarkIndex.INDEX_PIP, LandmarkIndex.MIDDLE_PIP,
               LandmarkIndex.RING_PIP, LandmarkIndex.PINKY_PIP)


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float = 0.0  # Depth relative to wrist

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Convert normalized coordinates to pixel coordinates (floored)."""
        return (int(math.floor(self.x * width)), int(math.floor(self.y * height)))


@dataclass
class HandLandmarks:
    """One detected hand: its landmarks and the handedness reported by the model.

    ``handedness`` is the label in *image* space, exactly as the landmark
    model reports it ("Left" or "Right").
    """
    landmarks: List[Landmark]
    handedness: str

    def get(self, index: LandmarkIndex) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    @property
    def wrist(self) -> Landmark:
        return self.landmarks[LandmarkIndex.WRIST]

    @property
    def is_valid(self) -> bool:
        """True if there are 21 landmarks with finite x/y coordinates."""
        if len(self.landmarks) != NUM_LANDMARKS:
            return False
        return all(math.isfinite(lm.x) and math.isfinite(lm.y) for lm in self.landmarks)

    def to_numpy(self) -> np.ndarray:
        """Convert landmarks to numpy array of shape (21, 3)."""
        return np.array([[lm.x, lm.y, lm.z] for lm in self.landmarks], dtype=float)

    @classmethod
    def from_points(cls, points, handedness: str) -> "HandLandmarks":
        """Build from any sequence of objects with ``x``/``y`` (and optional ``z``)."""
        landmarks = [
            Landmark(x=float(p.x), y=float(p.y), z=float(getattr(p, "z", 0.0) or 0.0))
            for p in points
        ]
        return cls(landmarks=landmarks, handedness=handedness)
