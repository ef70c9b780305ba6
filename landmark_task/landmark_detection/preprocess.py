# -*- coding: utf-8 -*-
# ===============================================================
# preprocess.py — FrameBuffer → טנזור קלט של המודל
# 1) אוריינטציה → upright, צבע → RGB
# 2) חיתוך ROI (אופציונלי, בקואורדינטות ה-upright)
# 3) resize בילינארי לגודל הקלט (בלי שמירת יחס, כמו שהמודל אומן)
# 4) uint8 כמו שהוא; float32 מנורמל (v - mean) / std
# ===============================================================

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from .frame_buffer import BoundingBox, FrameBuffer
from .status import InvalidArgumentError, TfLiteSupportStatus


@dataclass(frozen=True)
class InputSpec:
    height: int
    width: int
    dtype: type  # np.uint8 | np.float32
    mean: float = 127.5
    std: float = 127.5


@dataclass(frozen=True)
class CropInfo:
    """Where the model input came from, in upright-image pixels."""
    upright_width: int
    upright_height: int
    roi: BoundingBox


def _check_roi(roi: BoundingBox, w: int, h: int) -> None:
    if roi.width <= 0 or roi.height <= 0:
        raise InvalidArgumentError(f"Invalid region of interest size: {roi.width}x{roi.height}.",
                                   TfLiteSupportStatus.INVALID_ARGUMENT_ERROR)
    if roi.origin_x < 0 or roi.origin_y < 0 or roi.origin_x + roi.width > w or roi.origin_y + roi.height > h:
        raise InvalidArgumentError(
            f"Region of interest {roi} exceeds image bounds {w}x{h}.",
            TfLiteSupportStatus.INVALID_ARGUMENT_ERROR,
        )


def preprocess(frame: FrameBuffer, spec: InputSpec,
               roi: Optional[BoundingBox] = None) -> Tuple[np.ndarray, CropInfo]:
    frame.validate()
    upright = frame.to_upright(frame.to_rgb())
    h, w = upright.shape[:2]

    if roi is None:
        roi = BoundingBox(0, 0, w, h)
    _check_roi(roi, w, h)
    crop = upright[roi.origin_y:roi.origin_y + roi.height, roi.origin_x:roi.origin_x + roi.width]

    try:
        resized = cv2.resize(np.ascontiguousarray(crop), (spec.width, spec.height),
                             interpolation=cv2.INTER_LINEAR)
    except cv2.error as e:
        raise InvalidArgumentError(f"Image resize failed: {e}",
                                   TfLiteSupportStatus.IMAGE_PROCESSING_BACKEND_ERROR) from e
    if spec.dtype == np.uint8:
        tensor = resized.astype(np.uint8, copy=False)
    else:
        tensor = (resized.astype(np.float32) - np.float32(spec.mean)) / np.float32(spec.std)

    return tensor[None, ...], CropInfo(upright_width=w, upright_height=h, roi=roi)


__all__ = ["InputSpec", "CropInfo", "preprocess"]
