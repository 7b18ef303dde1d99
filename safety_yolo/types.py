from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Tuple

from .classes import class_color, confidence_level

Box = Tuple[float, float, float, float]


@dataclass
class Candidate:
    """
    Decoded, not yet suppressed detection. `box` is xyxy in source-image pixels.
    """

    box: Box
    confidence: float
    class_id: int


@dataclass(frozen=True)
class Detection:
    """
    Final detection handed to the caller, in source-image pixels (top-left + size).
    """

    id: str
    class_id: int
    class_name: str
    confidence: float
    x: float
    y: float
    width: float
    height: float
    timestamp: datetime

    def as_xyxy(self) -> Box:
        return self.x, self.y, self.x + self.width, self.y + self.height

    @property
    def color(self) -> str:
        return class_color(self.class_name)

    @property
    def confidence_level(self) -> str:
        return confidence_level(self.confidence)


@dataclass(frozen=True)
class StageTimings:
    preprocess_ms: float
    inference_ms: float
    postprocess_ms: float

    @property
    def total_ms(self) -> float:
        return self.preprocess_ms + self.inference_ms + self.postprocess_ms

    @property
    def status(self) -> str:
        # Thresholds used by the metrics panel.
        if self.total_ms < 100.0:
            return "normal"
        if self.total_ms < 200.0:
            return "warning"
        return "critical"


@dataclass(frozen=True)
class InferenceResult:
    detections: List[Detection] = field(default_factory=list)
    timings: StageTimings = StageTimings(0.0, 0.0, 0.0)
