"""Gesture recognition module."""
from .gesture_classifier import GestureClassifier, GestureClassifierConfig
from .landmarks import HandLandmarks, Landmark, LandmarkIndex

__all__ = [
    "GestureClassifier",
    "GestureClassifierConfig",
    "HandLandmarks",
    "Landmark",
    "LandmarkIndex",
]
