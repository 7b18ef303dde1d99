from __future__ import annotations

import argparse
import asyncio
import statistics
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, List

import cv2
import numpy as np

from safety_yolo import (
    ArrayImageSource,
    CycleReport,
    DetectionLoop,
    DetectionPipeline,
    PipelineConfig,
    load_class_names,
    load_executor,
    load_pipeline_config,
)


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_ms: List[float]) -> TimingSummary:
    ms_sorted = sorted(values_ms)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)) if ms_sorted else 0.0,
        p50_ms=_percentile(ms_sorted, 50.0) if ms_sorted else 0.0,
        p95_ms=_percentile(ms_sorted, 95.0) if ms_sorted else 0.0,
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms p95={s.p95_ms:.3f}ms"


def _iter_frames(args: argparse.Namespace) -> Iterable[ArrayImageSource]:
    if args.image is not None:
        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")
        for _ in range(int(args.repeats)):
            yield ArrayImageSource(img)
        return

    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cap = cv2.VideoCapture(int(args.webcam))
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {args.webcam}")

    frame_idx = 0
    processed = 0
    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break
            frame_idx += 1
            if (frame_idx - 1) % int(args.every) != 0:
                continue
            yield ArrayImageSource(frame)
            processed += 1
            if args.max_frames and processed >= int(args.max_frames):
                break
    finally:
        cap.release()


def _build_config(args: argparse.Namespace) -> PipelineConfig:
    cfg = load_pipeline_config(Path(args.config)) if args.config else PipelineConfig()
    overrides = {}
    if args.model is not None:
        overrides["model_path"] = args.model
    if args.imgsz is not None:
        overrides["target_size"] = int(args.imgsz)
    if args.conf is not None:
        overrides["confidence_threshold"] = float(args.conf)
    if args.iou is not None:
        overrides["iou_threshold"] = float(args.iou)
    if args.metadata is not None:
        overrides["class_names"] = load_class_names(args.metadata)
    return replace(cfg, **overrides) if overrides else cfg


async def _run(args: argparse.Namespace) -> int:
    cfg = _build_config(args)
    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    model = load_executor(cfg.model_path, onnx_providers=onnx_providers)
    pipeline = DetectionPipeline(cfg)
    loop = DetectionLoop(pipeline, model)

    t_pre: List[float] = []
    t_inf: List[float] = []
    t_post: List[float] = []

    def on_cycle(report: CycleReport) -> None:
        timings = report.result.timings
        t_pre.append(timings.preprocess_ms)
        t_inf.append(timings.inference_ms)
        t_post.append(timings.postprocess_ms)
        if args.quiet:
            return
        print(
            f"[{report.index}] {len(report.result.detections)} detections "
            f"total={timings.total_ms:.1f}ms ({timings.status}) fps={report.fps:.1f}"
        )
        for det in report.result.detections:
            print(f"    {det.class_name} {det.confidence:.2f} [{det.confidence_level}] {det.as_xyxy()}")

    try:
        cycles = await loop.run(_iter_frames(args), on_cycle=on_cycle)
    finally:
        model.unload()

    if not t_pre:
        raise RuntimeError("No cycles completed (check input source / max-frames).")

    print(_format_summary("preprocess", _summarize_ms(t_pre)))
    print(_format_summary("inference", _summarize_ms(t_inf)))
    print(_format_summary("postprocess", _summarize_ms(t_post)))
    print(f"cycles={cycles} failed={loop.errors}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Run safety-equipment detection on an image, video or webcam.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", default=None, help="Path to an input image (repeated N times).")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")

    parser.add_argument("--config", default=None, help="Pipeline config JSON.")
    parser.add_argument("--model", default=None, help="Path to the ONNX model (default: best.onnx).")
    parser.add_argument("--metadata", default=None, help="metadata.yaml with a `names:` class table.")
    parser.add_argument("--imgsz", type=int, default=None, help="Letterbox input size (default 1280).")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold (pre-NMS).")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--every", type=int, default=1, help="Process every Nth frame for video/webcam.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N processed frames (0 = no limit).")
    parser.add_argument("--repeats", type=int, default=1, help="For --image only: number of repeats.")
    parser.add_argument("--quiet", action="store_true", help="Only print the timing summary.")
    args = parser.parse_args()

    if args.every < 1:
        raise ValueError("--every must be >= 1")
    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
