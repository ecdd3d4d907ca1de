"""
Pose Source Adapter
===================

Turns raw per-hand landmark results into the ``HandFrame`` the controller
consumes: classifies each hand, resolves handedness (with optional mirror
correction), and converts the wrist landmark into canvas pixel coordinates.

Malformed hands are dropped with a warning; the rest of the frame is kept.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from maestro.core.types import HandFrame, HandObservation, Handedness, Position
from maestro.recognition.gesture_classifier import GestureClassifier
from maestro.recognition.landmarks import HandLandmarks, Landmark
from maestro.utils.config import config_value

logger = logging.getLogger(__name__)


@dataclass
class PoseConfig:
    """Pose source geometry and handedness handling."""
    # Swap Left/Right labels to compensate for a mirrored camera feed
    mirror_correction: bool = True
    canvas_width: int = 640
    canvas_height: int = 480

    @classmethod
    def from_dict(cls, config: dict) -> "PoseConfig":
        return cls(
            mirror_correction=config_value(config, "mirror_correction", True),
            canvas_width=config_value(config, "canvas_width", 640),
            canvas_height=config_value(config, "canvas_height", 480),
        )


def hands_from_landmarker_result(result) -> List[HandLandmarks]:
    """Convert a MediaPipe ``HandLandmarkerResult``-shaped object to HandLandmarks.

    Only the attributes ``hand_landmarks`` and ``handedness`` are read, so any
    object with the same shape works.
    """
    hands = []
    handedness_list = getattr(result, "handedness", None) or []
    for i, hand_landmarks in enumerate(getattr(result, "hand_landmarks", None) or []):
        handedness = "Right"
        if len(handedness_list) > i and handedness_list[i]:
            handedness = handedness_list[i][0].category_name
        hands.append(HandLandmarks.from_points(hand_landmarks, handedness))
    return hands


def hands_from_records(records) -> List[HandLandmarks]:
    """Convert recorded hands, ``[{"handedness": "Right", "landmarks": [[x, y, z], ...]}]``."""
    hands = []
    for record in records or []:
        try:
            landmarks = [Landmark(*(float(v) for v in point[:3])) for point in record["landmarks"]]
            hands.append(HandLandmarks(landmarks=landmarks, handedness=record.get("handedness")))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping unreadable recorded hand: %s", e)
    return hands


class ObservationBuilder:
    """
    Builds one ``HandFrame`` per pose-source frame.

    Example:
        >>> builder = ObservationBuilder(PoseConfig(mirror_correction=True))
        >>> frame = builder.build(hands)
        >>> frame.left.gesture
        <GestureLabel.TWO_FINGERS: 'Two Fingers'>
    """

    def __init__(self, config: Optional[PoseConfig] = None,
                 classifier: Optional[GestureClassifier] = None):
        self.config = config or PoseConfig()
        self.classifier = classifier or GestureClassifier()
        self._dropped = 0

    def observe(self, hand: HandLandmarks) -> Optional[HandObservation]:
        """Classify one hand, or return None if its data is unusable."""
        image_side = Handedness.from_string(hand.handedness)
        if image_side is None:
            logger.warning("Dropping hand with unknown handedness: %r", hand.handedness)
            self._dropped += 1
            return None
        if not hand.is_valid:
            logger.warning("Dropping malformed %s hand (%d landmarks)",
                           image_side.value, len(hand.landmarks))
            self._dropped += 1
            return None

        # The thumb rule works in image space, so classify before correcting
        gesture = self.classifier.classify(
            HandLandmarks(landmarks=hand.landmarks, handedness=image_side.value))

        side = image_side.mirrored if self.config.mirror_correction else image_side
        x, y = hand.wrist.to_pixel(self.config.canvas_width, self.config.canvas_height)

        return HandObservation(handedness=side, gesture=gesture, position=Position(x, y))

    def build(self, hands: Iterable[HandLandmarks]) -> HandFrame:
        """Assemble a frame; if two hands resolve to the same side the last wins."""
        slots = {Handedness.LEFT: None, Handedness.RIGHT: None}
        for hand in hands:
            observation = self.observe(hand)
            if observation is not None:
                slots[observation.handedness] = observation
        return HandFrame(left=slots[Handedness.LEFT], right=slots[Handedness.RIGHT])

    @property
    def dropped_count(self) -> int:
        return self._dropped
