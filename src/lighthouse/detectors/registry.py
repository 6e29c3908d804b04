"""Detector registry.

Every `DetectorKind` member must map to exactly one detector; the check runs
at import so a new kind without an implementation fails immediately.
"""

from __future__ import annotations

from typing import Dict, List

from lighthouse.core.results import EfficiencyFlag

from .base import DetectionContext, Detector, DetectorKind
from .error_loop import ErrorLoopDetector
from .late_filter import LateFilterDetector
from .polling_trigger import PollingTriggerDetector

DETECTORS: Dict[DetectorKind, Detector] = {
    DetectorKind.ERROR_LOOP: ErrorLoopDetector(),
    DetectorKind.LATE_FILTER: LateFilterDetector(),
    DetectorKind.POLLING_TRIGGER: PollingTriggerDetector(),
}


def _check_exhaustive() -> None:
    missing = [k.value for k in DetectorKind if k not in DETECTORS]
    if missing:
        raise RuntimeError(f"No detector registered for: {', '.join(missing)}")
    for kind, detector in DETECTORS.items():
        if detector.kind is not kind:
            raise RuntimeError(f"Detector registered under {kind.value} reports {detector.kind.value}")


_check_exhaustive()


def get_detector(kind: DetectorKind) -> Detector:
    return DETECTORS[kind]


def run_detectors(ctx: DetectionContext) -> List[EfficiencyFlag]:
    """Run every detector in `DetectorKind` order; each contributes at most one flag."""
    if not ctx.chain:
        return []
    flags: List[EfficiencyFlag] = []
    for kind in DetectorKind:
        flag = DETECTORS[kind].detect(ctx)
        if flag is not None:
            flags.append(flag)
    return flags
