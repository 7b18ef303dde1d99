from __future__ import annotations

import inspect
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import AsyncIterable, Awaitable, Callable, Deque, Iterable, List, Optional, Union

from .backends.base import ModelExecutor
from .errors import ModelNotReady, PipelineError
from .letterbox import ImageSource
from .runtime import DetectionPipeline
from .types import Detection, InferenceResult

logger = logging.getLogger(__name__)

Frames = Union[Iterable[ImageSource], AsyncIterable[ImageSource]]


@dataclass(frozen=True)
class CycleReport:
    index: int
    result: InferenceResult
    # 0.0 on the first cycle, when there is no previous start time.
    fps: float


CycleCallback = Callable[[CycleReport], Union[None, Awaitable[None]]]


async def _aiter_frames(frames: Frames):
    if hasattr(frames, "__aiter__"):
        async for frame in frames:  # type: ignore[union-attr]
            yield frame
    else:
        for frame in frames:  # type: ignore[union-attr]
            yield frame


class DetectionLoop:
    """
    Caller-side scheduler: runs one detection cycle per frame, awaiting each
    result before starting the next.

    Per-cycle failures (`PipelineError` other than `ModelNotReady`) are logged
    and skipped unless `stop_on_error` is set. Call `stop()` to end the loop
    after the cycle in flight.
    """

    def __init__(
        self,
        pipeline: DetectionPipeline,
        model: ModelExecutor,
        *,
        history_size: int = 100,
        stop_on_error: bool = False,
    ):
        if history_size <= 0:
            raise ValueError("history_size must be > 0")
        self.pipeline = pipeline
        self.model = model
        self.stop_on_error = stop_on_error
        self.history: Deque[Detection] = deque(maxlen=history_size)
        self.errors = 0
        self._stopped = False
        self._last_start: Optional[float] = None

    def stop(self) -> None:
        self._stopped = True

    @property
    def stopped(self) -> bool:
        """True while a stop has been requested and not yet handled by `run`."""
        return self._stopped

    def recent_detections(self) -> List[Detection]:
        """Most recent detections first, bounded by `history_size`."""
        return list(self.history)

    async def run(self, frames: Frames, on_cycle: Optional[CycleCallback] = None) -> int:
        """
        Process `frames` until exhausted or stopped. Returns the number of
        successful cycles.

        A `stop()` issued before `run` starts is honored: no cycle runs. The
        stop request is cleared when `run` returns, so the loop can be reused.
        """

        self._last_start = None
        completed = 0

        try:
            async for frame in _aiter_frames(frames):
                if self._stopped:
                    break

                start = time.perf_counter()
                try:
                    result = await self.pipeline.run(self.model, frame)
                except ModelNotReady:
                    raise
                except PipelineError:
                    self.errors += 1
                    if self.stop_on_error:
                        raise
                    logger.warning("Detection cycle failed; continuing", exc_info=True)
                    continue

                fps = 0.0
                if self._last_start is not None and start > self._last_start:
                    fps = 1.0 / (start - self._last_start)
                self._last_start = start

                for det in reversed(result.detections):
                    self.history.appendleft(det)

                report = CycleReport(index=completed, result=result, fps=fps)
                completed += 1
                if on_cycle is not None:
                    ret = on_cycle(report)
                    if inspect.isawaitable(ret):
                        await ret
        finally:
            self._stopped = False

        return completed
