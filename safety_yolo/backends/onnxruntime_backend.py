from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import numpy as np

from ..errors import ExecutionError, ModelNotReady

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"]);
      None lets ORT pick
    - input_name/output_name: override auto-selected I/O names if needed
    - graph_optimization: enable all ORT graph optimizations
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    graph_optimization: bool = True


class OnnxRuntimeExecutor:
    """
    ONNX Runtime model executor.

    Takes a (3, S, S) float32 tensor, adds the batch axis and returns the
    primary output as a NumPy array. The blocking `session.run` call is moved
    to a worker thread so `execute` can be awaited.
    """

    def __init__(self, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        self.cfg = cfg
        self.model_path: Optional[Path] = None
        self.session: Any = None
        self.input_name: Optional[str] = None
        self.output_name: Optional[str] = None

    @property
    def is_loaded(self) -> bool:
        return self.session is not None

    def load(self, model_path: PathLike) -> bool:
        """Create the inference session. Returns False (and logs why) on failure."""
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX executor. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        path = Path(model_path)
        logger.info("Loading ONNX model from %s", path)
        try:
            if not path.exists():
                raise FileNotFoundError(str(path))
            sess_opts = ort.SessionOptions()
            if self.cfg.graph_optimization:
                sess_opts.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
            providers = list(self.cfg.providers) if self.cfg.providers is not None else None
            session = ort.InferenceSession(str(path), sess_options=sess_opts, providers=providers)
        except Exception:
            logger.exception("Failed to load model %s", path)
            return False

        self.session = session
        self.model_path = path
        self.input_name = self.cfg.input_name or session.get_inputs()[0].name
        # If output_name not provided, pick first output.
        self.output_name = self.cfg.output_name or session.get_outputs()[0].name
        logger.info(
            "Model loaded (input=%s, output=%s, providers=%s)",
            self.input_name,
            self.output_name,
            self.providers_in_use,
        )
        return True

    def unload(self) -> None:
        if self.session is not None:
            logger.info("Unloading model %s", self.model_path)
        self.session = None
        self.model_path = None
        self.input_name = None
        self.output_name = None

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        if self.session is None:
            return ()
        return tuple(self.session.get_providers())

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        if self.session is None:
            raise ModelNotReady("Model not loaded. Call load() first.")
        blob = np.asarray(tensor, dtype=np.float32)
        if blob.ndim == 3:
            blob = blob[None, ...]
        try:
            outputs = self.session.run([self.output_name], {self.input_name: blob})
        except Exception as e:
            raise ExecutionError(f"ONNX Runtime inference failed: {e}") from e
        return outputs[0]

    async def execute(self, tensor: np.ndarray) -> np.ndarray:
        return await asyncio.to_thread(self.infer, tensor)
