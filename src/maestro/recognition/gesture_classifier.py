"""
Finger-Count Gesture Classifier
===============================

Rule-based gesture recognition from hand landmark geometry.

Gesture Recognition Logic:
- Index..pinky: extended when the fingertip sits above (smaller y than)
  its PIP joint.
- Thumb: extended when the tip sits further from the palm than the IP
  joint along the horizontal axis. Which side is "away from the palm"
  depends on the handedness the landmark model reported for the image.
- The label is a function of how many of the five fingers are extended.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from maestro.core.types import FingerExtensionVector, GestureLabel
from maestro.recognition.landmarks import (
    FINGER_PIPS,
    FINGER_TIPS,
    HandLandmarks,
    LandmarkIndex,
)

logger = logging.getLogger(__name__)


@dataclass
class GestureClassifierConfig:
    """Gesture classifier configuration."""
    # Enable per-frame finger state logging
    debug: bool = False


def thumb_extended(tip_x: float, ip_x: float, handedness: str) -> bool:
    """Horizontal thumb rule.

    For an image-space "Right" hand the thumb points toward smaller x when
    open; for "Left" it points toward larger x.
    """
    if handedness == "Right":
        return tip_x < ip_x
    return tip_x > ip_x


class GestureClassifier:
    """
    Stateless finger-count classifier.

    Example:
        >>> classifier = GestureClassifier()
        >>> label = classifier.classify(hand_landmarks)
        >>> label.finger_count
        2
    """

    def __init__(self, config: Optional[GestureClassifierConfig] = None):
        self.config = config or GestureClassifierConfig()
        self._tips = np.array([int(i) for i in FINGER_TIPS])
        self._pips = np.array([int(i) for i in FINGER_PIPS])

    def finger_states(self, hand: HandLandmarks) -> FingerExtensionVector:
        """Compute the five extension flags (thumb, index, middle, ring, pinky)."""
        points = hand.to_numpy()

        fingers = points[self._tips, 1] < points[self._pips, 1]

        thumb_tip = points[LandmarkIndex.THUMB_TIP]
        thumb_ip = points[LandmarkIndex.THUMB_IP]
        thumb = thumb_extended(thumb_tip[0], thumb_ip[0], hand.handedness)

        vector = FingerExtensionVector(bool(thumb), *(bool(f) for f in fingers))

        if self.config.debug:
            logger.debug("Finger states (%s): %s", hand.handedness, vector)

        return vector

    @staticmethod
    def label_for(vector: FingerExtensionVector) -> GestureLabel:
        """Map an extension vector to a gesture label by its popcount."""
        return GestureLabel.from_count(vector.count)

    def classify(self, hand: HandLandmarks) -> GestureLabel:
        """Classify a hand into a gesture label."""
        return self.label_for(self.finger_states(hand))
