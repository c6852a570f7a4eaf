"""Adaptive posture monitoring from device tilt and face distance"""

__version__ = "0.1.0"
