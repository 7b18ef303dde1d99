from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Box, Candidate

IOU_EPS = 1e-6


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.45
    # None keeps every selected candidate.
    max_detections: Optional[int] = None


def iou(a: Box, b: Box) -> float:
    """IoU of two xyxy boxes; degenerate boxes give 0 instead of dividing by zero."""
    ix1 = max(a[0], b[0])
    iy1 = max(a[1], b[1])
    ix2 = min(a[2], b[2])
    iy2 = min(a[3], b[3])

    inter = max(0.0, ix2 - ix1) * max(0.0, iy2 - iy1)
    area_a = (a[2] - a[0]) * (a[3] - a[1])
    area_b = (b[2] - b[0]) * (b[3] - b[1])
    return float(inter / (area_a + area_b - inter + IOU_EPS))


def box_iou(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    """IoU of one xyxy box (4,) against many (N, 4); same formula as `iou`."""
    xx1 = np.maximum(box[0], others[:, 0])
    yy1 = np.maximum(box[1], others[:, 1])
    xx2 = np.minimum(box[2], others[:, 2])
    yy2 = np.minimum(box[3], others[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    area = (box[2] - box[0]) * (box[3] - box[1])
    areas = (others[:, 2] - others[:, 0]) * (others[:, 3] - others[:, 1])
    return inter / (area + areas - inter + IOU_EPS)


def nms(candidates: Sequence[Candidate], cfg: NMSConfig = NMSConfig()) -> List[Candidate]:
    """
    Greedy per-class NMS.

    Candidates are visited by confidence (descending, stable for ties). Each
    one not yet suppressed is selected and suppresses every later candidate of
    the same class whose IoU with it exceeds `cfg.iou_threshold`. Candidates of
    different classes never suppress each other.

    Returns the selected candidates in selection order.
    """

    if not candidates:
        return []

    boxes = np.array([c.box for c in candidates], dtype=np.float64).reshape(-1, 4)
    scores = np.array([c.confidence for c in candidates], dtype=np.float64)
    class_ids = np.array([c.class_id for c in candidates], dtype=np.int64)

    order = np.argsort(-scores, kind="stable")
    boxes, class_ids = boxes[order], class_ids[order]
    suppressed = np.zeros(order.size, dtype=bool)

    keep: List[Candidate] = []
    for pos in range(order.size):
        if suppressed[pos]:
            continue
        keep.append(candidates[order[pos]])
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break

        rest = slice(pos + 1, None)
        same_class = class_ids[rest] == class_ids[pos]
        if not same_class.any():
            continue
        overlap = box_iou(boxes[pos], boxes[rest]) > cfg.iou_threshold
        suppressed[rest] |= same_class & overlap

    return keep
