from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, Tuple, runtime_checkable

import numpy as np

from .errors import EmptySource, InvalidDimensions
from .geometry import LetterboxGeometry

# Must match the padding the model was trained with.
PAD_COLOR: Tuple[int, int, int] = (128, 128, 128)
DEFAULT_TARGET_SIZE = 1280


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterboxing. Install with `pip install opencv-python`.") from e
    return cv2


@runtime_checkable
class ImageSource(Protocol):
    """
    Anything that knows its size and can resample itself into an RGB buffer.

    `draw_into` writes the whole image, resized to (width, height), into
    `canvas[y:y + height, x:x + width]`. The canvas is HxWx3 uint8 RGB.
    """

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def draw_into(self, canvas: np.ndarray, x: int, y: int, width: int, height: int) -> None: ...


class ArrayImageSource:
    """
    ImageSource over an in-memory (H, W, 3) array.

    Frames from `cv2.imread` / `cv2.VideoCapture` are BGR, which is the
    default; pass `channel_order="rgb"` for PIL/imageio style arrays.
    """

    def __init__(self, image: np.ndarray, channel_order: str = "bgr"):
        if image is None or not hasattr(image, "shape"):
            raise TypeError("image must be a NumPy array.")
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")
        order = channel_order.lower()
        if order not in ("bgr", "rgb"):
            raise ValueError(f"channel_order must be 'bgr' or 'rgb', got {channel_order!r}")
        self.image = image
        self.channel_order = order

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    def draw_into(self, canvas: np.ndarray, x: int, y: int, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            return
        img = self.image
        if (self.width, self.height) != (width, height):
            cv2 = _cv2()
            img = cv2.resize(img, (width, height), interpolation=cv2.INTER_LINEAR)
        if self.channel_order == "bgr":
            img = img[:, :, ::-1]
        canvas[y : y + height, x : x + width] = img


@dataclass(frozen=True)
class PreprocessResult:
    tensor: np.ndarray
    geometry: LetterboxGeometry
    time_ms: float


def _source_size(source: ImageSource) -> Tuple[int, int]:
    width, height = source.width, source.height
    if width == 0 or height == 0:
        raise EmptySource(f"Image source has nothing to draw ({width}x{height}).")
    if width < 0 or height < 0:
        raise InvalidDimensions(f"Image source has negative size ({width}x{height}).")
    return width, height


def preprocess(
    source: ImageSource,
    target_size: int = DEFAULT_TARGET_SIZE,
    pad_color: Tuple[int, int, int] = PAD_COLOR,
) -> PreprocessResult:
    """
    Letterbox `source` onto a gray square canvas and pack it as a planar tensor.

    Returns a float32 (3, target_size, target_size) tensor in RGB order with
    values in [0, 1], the geometry needed to map boxes back, and the elapsed
    time in milliseconds.
    """

    start = time.perf_counter()
    width, height = _source_size(source)
    geometry = LetterboxGeometry.compute(width, height, target_size)

    s = geometry.target_size
    canvas = np.empty((s, s, 3), dtype=np.uint8)
    canvas[:] = pad_color

    # Extreme aspect ratios can round one side to 0 px; the canvas stays gray.
    if geometry.scaled_width > 0 and geometry.scaled_height > 0:
        left, top = geometry.paste_origin
        source.draw_into(canvas, left, top, geometry.scaled_width, geometry.scaled_height)

    # HWC -> CHW, contiguous so the flat buffer is channel-planar
    tensor = np.ascontiguousarray(canvas.transpose(2, 0, 1), dtype=np.float32)
    tensor /= 255.0

    return PreprocessResult(tensor=tensor, geometry=geometry, time_ms=(time.perf_counter() - start) * 1000.0)


def letterbox(
    image: np.ndarray,
    target_size: int = DEFAULT_TARGET_SIZE,
    color: Tuple[int, int, int] = PAD_COLOR,
) -> Tuple[np.ndarray, LetterboxGeometry]:
    """
    Resize and pad an (H, W, 3) image to a centered square, keeping its channel order.

    Returns:
        padded: resized + padded image, (target_size, target_size, 3)
        geometry: the mapping used, for converting boxes back
    """

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array.")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")

    h, w = image.shape[:2]
    if w == 0 or h == 0:
        raise EmptySource(f"Image has nothing to draw ({w}x{h}).")
    geometry = LetterboxGeometry.compute(w, h, target_size)

    resized_w, resized_h = geometry.scaled_width, geometry.scaled_height
    if resized_w == 0 or resized_h == 0:
        padded = np.empty((geometry.target_size, geometry.target_size, 3), dtype=image.dtype)
        padded[:] = color
        return padded, geometry

    cv2 = _cv2()
    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    left, top = geometry.paste_origin
    right = geometry.target_size - resized_w - left
    bottom = geometry.target_size - resized_h - top
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, geometry
