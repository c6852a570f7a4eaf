"""Enumerations for reminder levels and screen rotation"""

from enum import Enum, IntEnum


class ReminderLevel(IntEnum):
    """Discrete escalation tier, ordered from least to most intrusive"""
    NONE = 0      # Good posture, no reminder needed
    GENTLE = 1    # Slight deviation, gentle reminder
    MODERATE = 2  # Moderate deviation, notification
    STRONG = 3    # Poor posture, strong alert


class Rotation(Enum):
    """Screen rotation relative to the device's natural orientation"""
    ROTATION_0 = 0      # Portrait
    ROTATION_90 = 90    # Landscape (left)
    ROTATION_180 = 180  # Portrait (upside down)
    ROTATION_270 = 270  # Landscape (right)
