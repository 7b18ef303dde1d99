"""
Letterbox preprocessing and YOLO post-processing for safety-equipment detection.

Works on NumPy arrays: the model executor is an opaque, caller-owned handle
(ONNX Runtime by default). OpenCV is only needed for resizing.
"""

from .backends import ModelExecutor
from .classes import CLASS_COLORS, CLASS_NAMES, class_color, confidence_level, load_class_names
from .config import PipelineConfig, load_pipeline_config
from .errors import EmptySource, ExecutionError, InvalidDimensions, ModelNotReady, PipelineError, ShapeMismatch
from .geometry import LetterboxGeometry
from .letterbox import ArrayImageSource, ImageSource, PreprocessResult, letterbox, preprocess
from .loop import CycleReport, DetectionLoop
from .nms import NMSConfig, box_iou, iou, nms
from .postprocess import DecoderConfig, YoloDecoder
from .runtime import DetectionPipeline, find_project_root, load_executor, resolve_path
from .types import Candidate, Detection, InferenceResult, StageTimings

__all__ = [
    "ModelExecutor",
    "CLASS_COLORS",
    "CLASS_NAMES",
    "class_color",
    "confidence_level",
    "load_class_names",
    "PipelineConfig",
    "load_pipeline_config",
    "EmptySource",
    "ExecutionError",
    "InvalidDimensions",
    "ModelNotReady",
    "PipelineError",
    "ShapeMismatch",
    "LetterboxGeometry",
    "ArrayImageSource",
    "ImageSource",
    "PreprocessResult",
    "letterbox",
    "preprocess",
    "CycleReport",
    "DetectionLoop",
    "NMSConfig",
    "box_iou",
    "iou",
    "nms",
    "DecoderConfig",
    "YoloDecoder",
    "DetectionPipeline",
    "find_project_root",
    "load_executor",
    "resolve_path",
    "Candidate",
    "Detection",
    "InferenceResult",
    "StageTimings",
]
