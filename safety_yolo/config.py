from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .classes import CLASS_NAMES
from .letterbox import DEFAULT_TARGET_SIZE, PAD_COLOR


@dataclass(frozen=True)
class PipelineConfig:
    target_size: int = DEFAULT_TARGET_SIZE
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.45
    class_names: Tuple[str, ...] = CLASS_NAMES
    model_path: str = "best.onnx"
    pad_color: Tuple[int, int, int] = PAD_COLOR
    clip_to_source: bool = False
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if self.target_size <= 0:
            raise ValueError("target_size must be > 0")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if not self.class_names:
            raise ValueError("class_names must not be empty")
        if len(self.pad_color) != 3 or any(not 0 <= c <= 255 for c in self.pad_color):
            raise ValueError("pad_color must be three values in [0, 255]")
        if self.max_detections is not None and self.max_detections <= 0:
            raise ValueError("max_detections must be > 0 if provided")

    @property
    def num_classes(self) -> int:
        return len(self.class_names)


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_pipeline_config(path: Path) -> PipelineConfig:
    """
    Read a JSON pipeline config. Missing keys keep their defaults.

        {"target_size": 1280, "confidence_threshold": 0.3, "class_names": ["OxygenTank", ...]}
    """

    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid pipeline config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Pipeline config must be a JSON object")

    allowed = {
        "target_size",
        "confidence_threshold",
        "iou_threshold",
        "class_names",
        "model_path",
        "pad_color",
        "clip_to_source",
        "max_detections",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown pipeline config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    if "target_size" in payload:
        kwargs["target_size"] = _require_int(payload, "target_size")
    for key in ("confidence_threshold", "iou_threshold"):
        if key in payload:
            kwargs[key] = _require_number(payload, key)
    if "class_names" in payload:
        names = payload["class_names"]
        if not isinstance(names, list) or not all(isinstance(n, str) and n.strip() for n in names):
            raise ValueError("class_names must be a list of non-empty strings")
        kwargs["class_names"] = tuple(n.strip() for n in names)
    if "model_path" in payload:
        model_path = payload["model_path"]
        if not isinstance(model_path, str) or not model_path.strip():
            raise ValueError("model_path must be a non-empty string")
        kwargs["model_path"] = model_path
    if "pad_color" in payload:
        color = payload["pad_color"]
        if not isinstance(color, list) or len(color) != 3 or any(
            isinstance(c, bool) or not isinstance(c, int) for c in color
        ):
            raise ValueError("pad_color must be a list of three integers")
        kwargs["pad_color"] = tuple(color)
    if "clip_to_source" in payload:
        if not isinstance(payload["clip_to_source"], bool):
            raise ValueError("clip_to_source must be a boolean")
        kwargs["clip_to_source"] = payload["clip_to_source"]
    if payload.get("max_detections") is not None:
        kwargs["max_detections"] = _require_int(payload, "max_detections")

    return PipelineConfig(**kwargs)
