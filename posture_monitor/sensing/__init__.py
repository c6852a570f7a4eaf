"""Sensing probes for device tilt and face distance"""

from posture_monitor.sensing.tilt import TiltEstimator, compute_tilt_angle
from posture_monitor.sensing.distance import DistanceProbe

__all__ = ['TiltEstimator', 'compute_tilt_angle', 'DistanceProbe']
