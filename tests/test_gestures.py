"""
Tests for Gesture Recognition Module
=====================================
"""

import itertools
import math

import numpy as np
import pytest

from maestro.core.types import FingerExtensionVector, GestureLabel, Handedness, HandFrame
from maestro.detection.observations import (
    ObservationBuilder,
    PoseConfig,
    hands_from_landmarker_result,
)
from maestro.recognition.gesture_classifier import (
    GestureClassifier,
    GestureClassifierConfig,
    thumb_extended,
)
from maestro.recognition.landmarks import HandLandmarks, Landmark, LandmarkIndex


def create_mock_landmarks(finger_states: dict, handedness: str = "Right",
                          base_x: float = 0.5, base_y: float = 0.75) -> HandLandmarks:
    """
    Create mock hand landmarks for testing.

    Args:
        finger_states: Dict of finger -> "up" or "down"
        handedness: Image-space handedness; "Left" mirrors the x axis

    Returns:
        Mock HandLandmarks object
    """
    landmarks = []

    # Wrist
    landmarks.append(Landmark(x=base_x, y=base_y))

    # Thumb (indices 1-4): for a right hand an open thumb points to smaller x
    thumb_up = finger_states.get("thumb", "down") == "up"
    landmarks.append(Landmark(x=base_x - 0.03, y=base_y - 0.02))  # CMC
    landmarks.append(Landmark(x=base_x - 0.06, y=base_y - 0.04))  # MCP
    landmarks.append(Landmark(x=base_x - 0.10, y=base_y - 0.06))  # IP
    landmarks.append(Landmark(x=base_x - (0.15 if thumb_up else 0.07), y=base_y - 0.08))  # TIP

    # Index, middle, ring, pinky: MCP, PIP, DIP, TIP
    for finger, x_off in [("index", -0.05), ("middle", 0.0), ("ring", 0.05), ("pinky", 0.1)]:
        up = finger_states.get(finger, "down") == "up"
        for y_off in [0.08, 0.14, 0.20, 0.28 if up else 0.10]:
            landmarks.append(Landmark(x=base_x + x_off, y=base_y - y_off))

    if handedness == "Left":
        landmarks = [Landmark(x=1.0 - lm.x, y=lm.y, z=lm.z) for lm in landmarks]

    return HandLandmarks(landmarks=landmarks, handedness=handedness)


FINGERS = ("thumb", "index", "middle", "ring", "pinky")


def states_for(vector):
    return {name: "up" if up else "down" for name, up in zip(FINGERS, vector)}


class TestGestureClassifier:
    """Test suite for the finger-count classifier."""

    @pytest.fixture
    def classifier(self):
        return GestureClassifier(GestureClassifierConfig(debug=True))

    def test_closed_fist(self, classifier):
        hand = create_mock_landmarks({})
        assert classifier.classify(hand) is GestureLabel.CLOSED_FIST

    def test_open_hand(self, classifier):
        hand = create_mock_landmarks({f: "up" for f in FINGERS})
        assert classifier.classify(hand) is GestureLabel.OPEN_HAND

    def test_two_fingers(self, classifier):
        hand = create_mock_landmarks({"index": "up", "middle": "up"})
        assert classifier.classify(hand) is GestureLabel.TWO_FINGERS

    def test_thumb_alone_counts_as_one_finger(self, classifier):
        hand = create_mock_landmarks({"thumb": "up"})
        assert classifier.classify(hand) is GestureLabel.ONE_FINGER

    def test_finger_states_vector(self, classifier):
        hand = create_mock_landmarks({"thumb": "up", "index": "up", "pinky": "up"})
        vector = classifier.finger_states(hand)
        assert vector == FingerExtensionVector(True, True, False, False, True)
        assert vector.count == 3

    @pytest.mark.parametrize("handedness", ["Left", "Right"])
    def test_every_vector_classified_by_count(self, classifier, handedness):
        expected = {
            0: GestureLabel.CLOSED_FIST,
            1: GestureLabel.ONE_FINGER,
            2: GestureLabel.TWO_FINGERS,
            3: GestureLabel.THREE_FINGERS,
            4: GestureLabel.FOUR_FINGERS,
            5: GestureLabel.OPEN_HAND,
        }
        for vector in itertools.product([False, True], repeat=5):
            hand = create_mock_landmarks(states_for(vector), handedness=handedness)
            assert classifier.finger_states(hand) == FingerExtensionVector(*vector)
            assert classifier.classify(hand) is expected[sum(vector)]

    def test_label_for_vector(self):
        for vector in itertools.product([False, True], repeat=5):
            label = GestureClassifier.label_for(FingerExtensionVector(*vector))
            assert label.finger_count == sum(vector)

    def test_tip_level_with_pip_is_not_extended(self, classifier):
        hand = create_mock_landmarks({"index": "up"})
        pip = hand.get(LandmarkIndex.INDEX_PIP)
        hand.landmarks[LandmarkIndex.INDEX_TIP] = Landmark(x=pip.x, y=pip.y)
        assert classifier.finger_states(hand).index is False


class TestThumbRule:
    """Thumb extension flips with handedness."""

    @pytest.mark.parametrize("tip_x,ip_x", [
        (0.30, 0.40), (0.40, 0.30), (0.5, 0.5), (0.12, 0.13), (0.9, 0.1),
    ])
    def test_handedness_symmetry(self, tip_x, ip_x):
        right = thumb_extended(tip_x, ip_x, "Right")
        left = thumb_extended(1.0 - tip_x, 1.0 - ip_x, "Left")
        assert right == left

    def test_direction(self):
        assert thumb_extended(0.3, 0.4, "Right") is True
        assert thumb_extended(0.3, 0.4, "Left") is False


class TestGestureLabel:
    """Test suite for GestureLabel helpers."""

    def test_from_count(self):
        assert GestureLabel.from_count(0) is GestureLabel.CLOSED_FIST
        assert GestureLabel.from_count(5) is GestureLabel.OPEN_HAND
        assert GestureLabel.from_count(7) is GestureLabel.OTHER

    def test_from_string_variants(self):
        assert GestureLabel.from_string("Two Fingers") is GestureLabel.TWO_FINGERS
        assert GestureLabel.from_string("TWO_FINGERS") is GestureLabel.TWO_FINGERS
        assert GestureLabel.from_string("2 Fingers") is GestureLabel.TWO_FINGERS
        assert GestureLabel.from_string("wave") is GestureLabel.NONE
        assert GestureLabel.from_string(None) is GestureLabel.NONE

    def test_finger_count_of_non_count_labels(self):
        assert GestureLabel.OTHER.finger_count is None
        assert GestureLabel.NONE.finger_count is None


class TestHandLandmarks:
    """Test suite for HandLandmarks helper methods."""

    def test_to_numpy(self):
        arr = create_mock_landmarks({}).to_numpy()
        assert arr.shape == (21, 3)
        assert isinstance(arr, np.ndarray)

    def test_is_valid(self):
        hand = create_mock_landmarks({})
        assert hand.is_valid
        hand.landmarks[3] = Landmark(x=math.nan, y=0.5)
        assert not hand.is_valid
        assert not HandLandmarks(landmarks=hand.landmarks[:20], handedness="Right").is_valid

    def test_to_pixel_floors(self):
        assert Landmark(x=0.5, y=0.75).to_pixel(640, 480) == (320, 360)
        assert Landmark(x=0.999, y=0.0).to_pixel(640, 480) == (639, 0)


class TestObservationBuilder:
    """Test suite for the pose source adapter."""

    def test_mirror_correction_swaps_sides(self):
        builder = ObservationBuilder(PoseConfig(mirror_correction=True))
        frame = builder.build([create_mock_landmarks({"index": "up"}, handedness="Right")])
        assert frame.right is None
        assert frame.left.handedness is Handedness.LEFT
        assert frame.left.gesture is GestureLabel.ONE_FINGER

    def test_without_mirror_correction(self):
        builder = ObservationBuilder(PoseConfig(mirror_correction=False))
        frame = builder.build([create_mock_landmarks({"index": "up"}, handedness="Right")])
        assert frame.left is None
        assert frame.right.gesture is GestureLabel.ONE_FINGER

    def test_classification_independent_of_mirror_setting(self):
        hand = create_mock_landmarks({"thumb": "up", "index": "up"}, handedness="Left")
        mirrored = ObservationBuilder(PoseConfig(mirror_correction=True)).build([hand])
        plain = ObservationBuilder(PoseConfig(mirror_correction=False)).build([hand])
        assert mirrored.right.gesture is plain.left.gesture is GestureLabel.TWO_FINGERS

    def test_wrist_position_in_canvas_pixels(self):
        builder = ObservationBuilder(PoseConfig(mirror_correction=False))
        frame = builder.build([create_mock_landmarks({}, handedness="Right")])
        assert frame.right.position == (320, 360)

    def test_two_hands(self):
        builder = ObservationBuilder(PoseConfig(mirror_correction=False))
        frame = builder.build([
            create_mock_landmarks({f: "up" for f in FINGERS}, handedness="Left"),
            create_mock_landmarks({}, handedness="Right"),
        ])
        assert frame.left.gesture is GestureLabel.OPEN_HAND
        assert frame.right.gesture is GestureLabel.CLOSED_FIST

    def test_malformed_hand_dropped(self):
        builder = ObservationBuilder()
        good = create_mock_landmarks({}, handedness="Right")
        bad = create_mock_landmarks({}, handedness="Left")
        bad.landmarks[8] = Landmark(x=0.5, y=math.inf)
        frame = builder.build([good, bad])
        assert frame.left is not None
        assert frame.right is None
        assert builder.dropped_count == 1

    def test_unknown_handedness_dropped(self):
        builder = ObservationBuilder()
        hand = HandLandmarks(landmarks=create_mock_landmarks({}).landmarks, handedness="Both")
        frame = builder.build([hand])
        assert frame == HandFrame()
        assert builder.dropped_count == 1

    def test_hands_from_landmarker_result(self):
        class Category:
            def __init__(self, name):
                self.category_name = name

        class Result:
            hand_landmarks = [create_mock_landmarks({}).landmarks]
            handedness = [[Category("Left")]]

        hands = hands_from_landmarker_result(Result())
        assert len(hands) == 1
        assert hands[0].handedness == "Left"
        assert len(hands[0].landmarks) == 21
