from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from safety_yolo.errors import ExecutionError

# (cx, cy, w, h, class_id, score)
Anchor = Tuple[float, float, float, float, int, float]


def make_output(anchors: Iterable[Anchor], num_classes: int = 7, num_anchors: int = 64, batch: bool = False) -> np.ndarray:
    """Build a feature-major (4 + C, A) output; unused anchors have all-zero scores."""
    out = np.zeros((4 + num_classes, num_anchors), dtype=np.float32)
    for i, (cx, cy, w, h, class_id, score) in enumerate(anchors):
        out[0:4, i] = (cx, cy, w, h)
        out[4 + class_id, i] = score
    return out[None, ...] if batch else out


class FakeExecutor:
    def __init__(self, outputs=None, loaded: bool = True, fail_on=()):
        self.outputs = list(outputs or [])
        self.loaded = loaded
        self.fail_on = set(fail_on)
        self.calls = []

    @property
    def is_loaded(self) -> bool:
        return self.loaded

    def load(self, model_path) -> bool:
        self.loaded = True
        return True

    def unload(self) -> None:
        self.loaded = False

    async def execute(self, tensor: np.ndarray) -> np.ndarray:
        idx = len(self.calls)
        self.calls.append(tensor.shape)
        if idx in self.fail_on:
            raise ExecutionError("boom")
        if not self.outputs:
            return make_output([])
        return self.outputs[min(idx, len(self.outputs) - 1)]


class RecordingSource:
    """ImageSource that paints a flat color and records draw calls."""

    def __init__(self, width: int, height: int, rgb=(10, 20, 30)):
        self._width = width
        self._height = height
        self.rgb = rgb
        self.draws = []

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def draw_into(self, canvas, x, y, width, height) -> None:
        self.draws.append((x, y, width, height))
        canvas[y : y + height, x : x + width] = self.rgb
