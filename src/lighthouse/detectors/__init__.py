"""Inefficiency detectors."""

from .base import DetectionContext, Detector, DetectorKind
from .error_loop import ErrorLoopDetector
from .late_filter import LateFilterDetector
from .polling_trigger import POLLING_PROVIDERS, PollingTriggerDetector, is_polling_step
from .registry import DETECTORS, get_detector, run_detectors
from .thresholds import DEFAULT_THRESHOLDS, DetectorThresholds

__all__ = [
    "DEFAULT_THRESHOLDS",
    "DETECTORS",
    "DetectionContext",
    "Detector",
    "DetectorKind",
    "DetectorThresholds",
    "ErrorLoopDetector",
    "LateFilterDetector",
    "POLLING_PROVIDERS",
    "PollingTriggerDetector",
    "get_detector",
    "is_polling_step",
    "run_detectors",
]
