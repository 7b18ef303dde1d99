from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .backends.base import ModelExecutor
from .classes import class_name_for
from .config import PipelineConfig
from .errors import ModelNotReady
from .letterbox import ImageSource, preprocess
from .nms import NMSConfig, nms
from .postprocess import DecoderConfig, YoloDecoder
from .types import Candidate, Detection, InferenceResult, StageTimings

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve relative model paths.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, else the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class DetectionPipeline:
    """
    One detection cycle: letterbox -> model executor -> decode -> per-class NMS.

    The pipeline holds configuration only. The model handle is owned by the
    caller and passed to every `run` call, so one pipeline can serve several
    independent executors.
    """

    def __init__(self, config: PipelineConfig = PipelineConfig()):
        self.config = config
        self.decoder = YoloDecoder(
            DecoderConfig(
                conf_threshold=config.confidence_threshold,
                num_classes=config.num_classes,
                clip_to_source=config.clip_to_source,
            )
        )
        self.nms_cfg = NMSConfig(iou_threshold=config.iou_threshold, max_detections=config.max_detections)

    async def run(self, model: ModelExecutor, source: ImageSource) -> InferenceResult:
        if not model.is_loaded:
            raise ModelNotReady("Model not loaded. Call load() first.")

        prep = preprocess(source, target_size=self.config.target_size, pad_color=self.config.pad_color)

        inference_start = time.perf_counter()
        preds = await model.execute(prep.tensor)
        inference_ms = (time.perf_counter() - inference_start) * 1000.0

        postprocess_start = time.perf_counter()
        candidates = self.decoder.decode(preds, prep.geometry)
        kept = nms(candidates, self.nms_cfg)
        detections = self.to_detections(kept)
        postprocess_ms = (time.perf_counter() - postprocess_start) * 1000.0

        timings = StageTimings(preprocess_ms=prep.time_ms, inference_ms=inference_ms, postprocess_ms=postprocess_ms)
        logger.debug(
            "cycle: %d candidates -> %d detections (pre=%.1fms inf=%.1fms post=%.1fms)",
            len(candidates),
            len(detections),
            timings.preprocess_ms,
            timings.inference_ms,
            timings.postprocess_ms,
        )
        return InferenceResult(detections=detections, timings=timings)

    def to_detections(self, candidates: Sequence[Candidate]) -> List[Detection]:
        now = datetime.now(timezone.utc)
        out: List[Detection] = []
        for c in candidates:
            x1, y1, x2, y2 = c.box
            out.append(
                Detection(
                    id=f"det_{uuid.uuid4().hex}",
                    class_id=c.class_id,
                    class_name=class_name_for(c.class_id, self.config.class_names),
                    confidence=c.confidence,
                    x=max(0.0, x1),
                    y=max(0.0, y1),
                    width=max(0.0, x2 - x1),
                    height=max(0.0, y2 - y1),
                    timestamp=now,
                )
            )
        return out


def load_executor(
    model_path: PathLike,
    *,
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
):
    """
    Create and load an ONNX Runtime executor for a model on disk.

    Relative paths resolve against the project root by default. Raises
    `ModelNotReady` if the model cannot be loaded.
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackendConfig, OnnxRuntimeExecutor

    resolved = resolve_path(model_path, root=root)
    executor = OnnxRuntimeExecutor(
        OnnxRuntimeBackendConfig(
            providers=onnx_providers,
            input_name=onnx_input_name,
            output_name=onnx_output_name,
        )
    )
    if not executor.load(resolved):
        raise ModelNotReady(f"Could not load model: {resolved}")
    return executor
