# landmark_task/landmark_detection/frame_buffer.py
# -------------------------------------------------------
# 📦 FrameBuffer: פריים + פורמט צבע + אוריינטציה (בסגנון EXIF)
#   - to_upright(): מסובב/הופך כך שהתמונה "עומדת" (TOP_LEFT)
#   - upright_to_frame(): ממפה נקודה מנורמלת חזרה לקואורדינטות הפריים המקורי
#   - to_rgb(): RGB/RGBA/BGR/GRAY → RGB uint8
# -------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Tuple

import numpy as np

from .status import StatusCode, TaskError, TfLiteSupportStatus, create_status_with_payload


class FrameFormat(Enum):
    RGB = "rgb"
    RGBA = "rgba"
    BGR = "bgr"
    GRAY = "gray"

    @property
    def channels(self) -> int:
        return {"rgb": 3, "rgba": 4, "bgr": 3, "gray": 1}[self.value]


class Orientation(IntEnum):
    """EXIF orientation of the stored pixels (1..8)."""
    TOP_LEFT = 1
    TOP_RIGHT = 2
    BOTTOM_RIGHT = 3
    BOTTOM_LEFT = 4
    LEFT_TOP = 5
    RIGHT_TOP = 6
    RIGHT_BOTTOM = 7
    LEFT_BOTTOM = 8

    @property
    def swaps_axes(self) -> bool:
        return self >= Orientation.LEFT_TOP


@dataclass(frozen=True)
class BoundingBox:
    origin_x: int
    origin_y: int
    width: int
    height: int


def _invalid(msg: str) -> TaskError:
    return create_status_with_payload(StatusCode.INVALID_ARGUMENT, msg, TfLiteSupportStatus.INVALID_ARGUMENT_ERROR)


@dataclass
class FrameBuffer:
    data: np.ndarray
    format: FrameFormat = FrameFormat.RGB
    orientation: Orientation = Orientation.TOP_LEFT

    # --------- factories ---------
    @classmethod
    def create_from_rgb_raw_data(cls, data: bytes, width: int, height: int,
                                 orientation: Orientation = Orientation.TOP_LEFT) -> "FrameBuffer":
        expected = int(width) * int(height) * 3
        if len(data) != expected:
            raise _invalid(f"RGB raw data has {len(data)} bytes, expected {expected} for {width}x{height}.")
        arr = np.frombuffer(data, dtype=np.uint8).reshape(int(height), int(width), 3)
        return cls(data=arr, format=FrameFormat.RGB, orientation=orientation)

    @classmethod
    def create_from_image_data(cls, image, orientation: Orientation = Orientation.TOP_LEFT) -> "FrameBuffer":
        fmt = {1: FrameFormat.GRAY, 3: FrameFormat.RGB, 4: FrameFormat.RGBA}.get(int(image.channels))
        if fmt is None:
            raise _invalid(f"Unsupported number of channels: {image.channels}")
        return cls(data=image.pixel_data, format=fmt, orientation=orientation)

    # --------- properties ---------
    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    def upright_size(self) -> Tuple[int, int]:
        """(width, height) after orientation is applied."""
        if self.orientation.swaps_axes:
            return self.height, self.width
        return self.width, self.height

    def validate(self) -> None:
        d = self.data
        if d is None or not isinstance(d, np.ndarray):
            raise _invalid("Frame buffer has no pixel data.")
        if d.size == 0:
            raise _invalid("Frame buffer is empty.")
        if d.dtype != np.uint8:
            raise _invalid(f"Frame buffer must be uint8, got {d.dtype}.")
        ch = 1 if d.ndim == 2 else (d.shape[2] if d.ndim == 3 else -1)
        if ch != self.format.channels:
            raise _invalid(f"Frame buffer shape {d.shape} does not match format {self.format.name}.")

    # --------- conversions ---------
    def to_rgb(self) -> np.ndarray:
        d = self.data
        if self.format is FrameFormat.RGB:
            return d
        if self.format is FrameFormat.RGBA:
            return d[..., :3]
        if self.format is FrameFormat.BGR:
            return d[..., ::-1]
        gray = d if d.ndim == 2 else d[..., 0]
        return np.repeat(gray[..., None], 3, axis=2)

    def to_upright(self, rgb: np.ndarray) -> np.ndarray:
        o = self.orientation
        if o is Orientation.TOP_LEFT:
            return rgb
        if o is Orientation.TOP_RIGHT:
            return rgb[:, ::-1]
        if o is Orientation.BOTTOM_RIGHT:
            return rgb[::-1, ::-1]
        if o is Orientation.BOTTOM_LEFT:
            return rgb[::-1, :]
        if o is Orientation.LEFT_TOP:
            return np.swapaxes(rgb, 0, 1)
        if o is Orientation.RIGHT_TOP:
            return np.rot90(rgb, k=-1)
        if o is Orientation.RIGHT_BOTTOM:
            return np.swapaxes(rgb[::-1, ::-1], 0, 1)
        return np.rot90(rgb, k=1)  # LEFT_BOTTOM

    def upright_to_frame(self, x: float, y: float) -> Tuple[float, float]:
        """Normalized (x, y) in the upright image → normalized (x, y) in the stored frame."""
        o = self.orientation
        if o is Orientation.TOP_LEFT:
            return x, y
        if o is Orientation.TOP_RIGHT:
            return 1.0 - x, y
        if o is Orientation.BOTTOM_RIGHT:
            return 1.0 - x, 1.0 - y
        if o is Orientation.BOTTOM_LEFT:
            return x, 1.0 - y
        if o is Orientation.LEFT_TOP:
            return y, x
        if o is Orientation.RIGHT_TOP:
            return y, 1.0 - x
        if o is Orientation.RIGHT_BOTTOM:
            return 1.0 - y, 1.0 - x
        return 1.0 - y, x  # LEFT_BOTTOM


__all__ = ["FrameBuffer", "FrameFormat", "Orientation", "BoundingBox"]
