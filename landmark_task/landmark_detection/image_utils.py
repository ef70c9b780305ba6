# landmark_task/landmark_detection/image_utils.py
# -------------------------------------------------------
# פענוח תמונה מקובץ (OpenCV) → ImageData ב-RGB, לשימוש בבדיקות ובכלי ה-CLI.
# -------------------------------------------------------
from __future__ import annotations
import os
from dataclasses import dataclass

import cv2
import numpy as np

from .status import InvalidArgumentError, NotFoundError, TfLiteSupportStatus


@dataclass
class ImageData:
    pixel_data: np.ndarray  # H x W x C, uint8, RGB / RGBA / GRAY
    width: int
    height: int
    channels: int


def decode_image_from_file(path: str) -> ImageData:
    if not os.path.exists(path):
        raise NotFoundError(f"Unable to open file at {path}", TfLiteSupportStatus.FILE_NOT_FOUND_ERROR)
    img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise InvalidArgumentError(f"Could not decode image at {path}", TfLiteSupportStatus.IMAGE_PROCESSING_ERROR)
    if img.dtype != np.uint8:
        # 16-bit PNG וכו' → 8 ביט
        top = float(np.iinfo(img.dtype).max) if np.issubdtype(img.dtype, np.integer) else 1.0
        img = cv2.convertScaleAbs(img, alpha=255.0 / top)
    if img.ndim == 2:
        channels = 1
    elif img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA); channels = 4
    else:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB); channels = 3
    h, w = img.shape[:2]
    return ImageData(pixel_data=np.ascontiguousarray(img), width=int(w), height=int(h), channels=channels)


__all__ = ["ImageData", "decode_image_from_file"]
