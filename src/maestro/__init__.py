"""
Maestro Gesture Media Control
=============================

Hand-gesture control of a media player's playback, volume and rate.

Modules:
    - core: Shared types, errors and event plumbing
    - recognition: Landmark model and finger-count gesture classifier
    - detection: Pose source adapter (landmarks -> hand observations)
    - control: Mode mappers, smoothing, fading, players and the controller
    - utils: Configuration and logging
"""

__version__ = "1.0.0"
