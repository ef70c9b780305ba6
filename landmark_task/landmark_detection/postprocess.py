# -*- coding: utf-8 -*-
# ===============================================================
# postprocess.py — טנזור פלט [1, 1, K, 3] → LandmarkResult
# סדר הערוצים בפלט של MoveNet: (y, x, score), מנורמלים ל-[0, 1] ביחס לקלט.
#
# שימוש:
#   result = decode_landmarks(raw, quantization=(scale, zp), crop=crop, frame=frame)
# ===============================================================

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .frame_buffer import FrameBuffer
from .pose_points import keypoint_name
from .preprocess import CropInfo
from .status import InvalidArgumentError, TfLiteSupportStatus


@dataclass(frozen=True)
class Landmark:
    """
    Keypoint normalized to the frame, image convention: ``x`` is the column
    (channel 1 of the model output) and ``y`` the row (channel 0).

    The raw tensor and reference tables that label channel 0 as "x" use the
    model's own order; compare those against :meth:`yx`.
    """
    x: float
    y: float
    score: float

    def yx(self) -> Tuple[float, float]:
        """(row, column), in the model's output channel order."""
        return self.y, self.x


@dataclass
class LandmarkResult:
    landmarks: List[Landmark] = field(default_factory=list)
    score: float = 0.0

    def __len__(self) -> int:
        return len(self.landmarks)

    def named(self) -> Dict[str, Landmark]:
        return {keypoint_name(i): lm for i, lm in enumerate(self.landmarks)}

    def to_pixels(self, width: int, height: int) -> List[Tuple[float, float, float]]:
        return [(lm.x * width, lm.y * height, lm.score) for lm in self.landmarks]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": round(float(self.score), 6),
            "landmarks": [
                {"name": keypoint_name(i), "x": round(lm.x, 6), "y": round(lm.y, 6), "score": round(lm.score, 6)}
                for i, lm in enumerate(self.landmarks)
            ],
        }


def _clamp01(v: float) -> float:
    return 0.0 if v < 0.0 else 1.0 if v > 1.0 else v


def dequantize(raw: np.ndarray, quantization: Optional[Tuple[float, int]]) -> np.ndarray:
    if raw.dtype == np.float32:
        return raw
    scale, zero_point = quantization or (0.0, 0)
    if not scale:
        # uint8 output without quantization params: treat as 0..255
        return raw.astype(np.float32) / 255.0
    return (raw.astype(np.float32) - np.float32(zero_point)) * np.float32(scale)


def decode_landmarks(raw: np.ndarray, *, crop: CropInfo, frame: FrameBuffer,
                     quantization: Optional[Tuple[float, int]] = None) -> LandmarkResult:
    out = dequantize(np.asarray(raw), quantization)
    if out.ndim != 4 or out.shape[0] != 1 or out.shape[1] != 1 or out.shape[3] != 3:
        raise InvalidArgumentError(f"Unexpected output tensor shape {tuple(out.shape)}, expected [1, 1, K, 3].",
                                   TfLiteSupportStatus.INVALID_OUTPUT_TENSOR_DIMENSIONS_ERROR)

    roi = crop.roi
    uw, uh = float(crop.upright_width), float(crop.upright_height)
    landmarks: List[Landmark] = []
    for ky, kx, ks in out[0, 0]:
        # ROI-relative → upright-image-relative → stored-frame-relative
        ux = (roi.origin_x + _clamp01(float(kx)) * roi.width) / uw
        uy = (roi.origin_y + _clamp01(float(ky)) * roi.height) / uh
        fx, fy = frame.upright_to_frame(ux, uy)
        landmarks.append(Landmark(x=_clamp01(fx), y=_clamp01(fy), score=_clamp01(float(ks))))

    pose_score = float(np.mean([lm.score for lm in landmarks])) if landmarks else 0.0
    return LandmarkResult(landmarks=landmarks, score=pose_score)


__all__ = ["Landmark", "LandmarkResult", "dequantize", "decode_landmarks"]
