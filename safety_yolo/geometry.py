from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import InvalidDimensions

Point = Tuple[float, float]


def _require_positive_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidDimensions(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidDimensions(f"{name} must be > 0, got {value}")
    return int(value)


@dataclass(frozen=True)
class LetterboxGeometry:
    """
    Affine mapping between source-image pixels and the square model input.

    The source is scaled uniformly by `scale` and centered, so:

        model = source * scale + offset
        source = (model - offset) / scale

    Offsets may be fractional (e.g. 0.5 px) when the padding is odd.
    """

    source_width: int
    source_height: int
    target_size: int
    scale: float
    scaled_width: int
    scaled_height: int
    offset_x: float
    offset_y: float

    @classmethod
    def compute(cls, source_width: int, source_height: int, target_size: int) -> "LetterboxGeometry":
        w = _require_positive_int("source_width", source_width)
        h = _require_positive_int("source_height", source_height)
        s = _require_positive_int("target_size", target_size)

        scale = min(s / w, s / h)
        scaled_w = min(int(round(w * scale)), s)
        scaled_h = min(int(round(h * scale)), s)

        return cls(
            source_width=w,
            source_height=h,
            target_size=s,
            scale=scale,
            scaled_width=scaled_w,
            scaled_height=scaled_h,
            offset_x=(s - scaled_w) / 2,
            offset_y=(s - scaled_h) / 2,
        )

    @property
    def paste_origin(self) -> Tuple[int, int]:
        # Integer top-left of the resized image inside the canvas; the odd
        # padding pixel goes to the right/bottom.
        return int(round(self.offset_x - 0.1)), int(round(self.offset_y - 0.1))

    def to_model_space(self, point: Point) -> Point:
        x, y = point
        return x * self.scale + self.offset_x, y * self.scale + self.offset_y

    def to_source_space(self, point: Point) -> Point:
        x, y = point
        return (x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale

    def boxes_to_source_space(self, boxes: np.ndarray) -> np.ndarray:
        """Map (N, 4) xyxy boxes from model space to source space (returns a new array)."""
        out = np.asarray(boxes, dtype=np.float64).copy()
        out[:, [0, 2]] = (out[:, [0, 2]] - self.offset_x) / self.scale
        out[:, [1, 3]] = (out[:, [1, 3]] - self.offset_y) / self.scale
        return out
