from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np

from .errors import ShapeMismatch
from .geometry import LetterboxGeometry
from .types import Candidate


@dataclass(frozen=True)
class DecoderConfig:
    """
    Settings for decoding a raw (4 + C, A) detection head.
    """

    conf_threshold: float = 0.25
    num_classes: int = 7
    # False floors x1/y1 at 0 only; True also caps x2/y2 at the image size.
    clip_to_source: bool = False


class YoloDecoder:
    """
    Decoder for anchor-dense, feature-major YOLO outputs (v8 style, no objectness):

    - (4 + C, A): rows 0..3 are cx, cy, w, h in model-input pixels, rows
      4..4+C are raw per-class scores. e.g. 11 x 33600 for 7 classes at 1280.
    - (1, 4 + C, A): same, with a batch axis of 1.

    Class scores are compared as-is (no softmax/sigmoid applied here).
    """

    def __init__(self, cfg: DecoderConfig = DecoderConfig()):
        self.cfg = cfg

    def decode(self, preds: np.ndarray, geometry: LetterboxGeometry) -> List[Candidate]:
        """
        Convert a raw model output into candidates in source-image pixels.

        Args:
            preds: model output for a single image
            geometry: letterbox mapping used when preprocessing that image
        """

        p = self._as_feature_major(preds)

        class_scores = p[4:, :]
        # First max wins ties. No 0 floor: an anchor with all-negative scores keeps
        # its (negative) max and is dropped even at conf_threshold=0.
        class_ids = np.argmax(class_scores, axis=0)
        scores = class_scores[class_ids, np.arange(class_scores.shape[1])]

        keep = scores >= self.cfg.conf_threshold
        if not keep.any():
            return []

        cx, cy, w, h = p[0:4, keep].astype(np.float64)
        boxes = np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1)
        boxes = self._scale_boxes(boxes, geometry)

        return [
            Candidate(
                box=(float(x1), float(y1), float(x2), float(y2)),
                confidence=float(score),
                class_id=int(cls_id),
            )
            for (x1, y1, x2, y2), score, cls_id in zip(boxes, scores[keep], class_ids[keep])
        ]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _as_feature_major(self, preds: np.ndarray) -> np.ndarray:
        p = np.asarray(preds)
        if p.ndim == 3:
            if p.shape[0] != 1:
                raise ShapeMismatch(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
            p = p[0]
        if p.ndim != 2:
            raise ShapeMismatch(f"Expected a (features, anchors) output, got shape {p.shape}")

        expected = 4 + self.cfg.num_classes
        if p.shape[0] != expected:
            raise ShapeMismatch(
                f"Output has {p.shape[0]} features but the class table needs {expected} "
                f"(4 box + {self.cfg.num_classes} classes); got shape {p.shape}"
            )
        return p

    def _scale_boxes(self, boxes: np.ndarray, geometry: LetterboxGeometry) -> np.ndarray:
        """
        Map xyxy boxes from the letterboxed canvas back to the source image.
        """

        boxes = geometry.boxes_to_source_space(boxes)
        boxes[:, 0] = np.maximum(boxes[:, 0], 0.0)
        boxes[:, 1] = np.maximum(boxes[:, 1], 0.0)
        if self.cfg.clip_to_source:
            boxes[:, [0, 2]] = np.clip(boxes[:, [0, 2]], 0.0, geometry.source_width)
            boxes[:, [1, 3]] = np.clip(boxes[:, [1, 3]], 0.0, geometry.source_height)
        return boxes
