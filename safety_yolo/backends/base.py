from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class ModelExecutor(Protocol):
    """
    Caller-owned handle to a loaded model.

    `execute` receives a (3, S, S) float32 tensor and returns the raw output
    for that single image. Failures are raised as `ExecutionError`.
    """

    @property
    def is_loaded(self) -> bool: ...

    def load(self, model_path: str) -> bool: ...

    def unload(self) -> None: ...

    async def execute(self, tensor: np.ndarray) -> np.ndarray: ...
