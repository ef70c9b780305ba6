# -------------------------------------------------------
# Lightweight init for landmark_task.landmark_detection:
# - ה-API הציבורי (LandmarkDetector, options, resolvers, status) זמין ישירות
# - תתי-מודולים נטענים בעצלנות כשמבקשים אותם בשם:
#     from landmark_task.landmark_detection import pose_points
# -------------------------------------------------------

from importlib import import_module

from .status import (
    TFLITE_SUPPORT_PAYLOAD,
    StatusCode,
    TfLiteSupportStatus,
    TaskError,
    InvalidArgumentError,
    NotFoundError,
)
from .options import ExternalFile, BaseOptions, LandmarkDetectorOptions
from .op_resolver import (
    OpResolver,
    BuiltinOpResolver,
    BuiltinRefOpResolver,
    MutableOpResolver,
    MoveNetOpResolver,
    MoveNetOpResolverMissingOps,
)
from .frame_buffer import FrameBuffer, FrameFormat, Orientation, BoundingBox
from .postprocess import Landmark, LandmarkResult
from .detector import LandmarkDetector

_SUBMODS = {
    "status",
    "options",
    "config_loader",
    "op_resolver",
    "engine",
    "frame_buffer",
    "image_utils",
    "preprocess",
    "postprocess",
    "pose_points",
    "detector",
    "smoke_detect",
}

__all__ = [
    "TFLITE_SUPPORT_PAYLOAD", "StatusCode", "TfLiteSupportStatus",
    "TaskError", "InvalidArgumentError", "NotFoundError",
    "ExternalFile", "BaseOptions", "LandmarkDetectorOptions",
    "OpResolver", "BuiltinOpResolver", "BuiltinRefOpResolver", "MutableOpResolver",
    "MoveNetOpResolver", "MoveNetOpResolverMissingOps",
    "FrameBuffer", "FrameFormat", "Orientation", "BoundingBox",
    "Landmark", "LandmarkResult", "LandmarkDetector",
]

def __getattr__(name: str):
    if name in _SUBMODS:
        mod = import_module(f"{__name__}.{name}")
        globals()[name] = mod
        return mod
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(set(list(globals().keys()) + list(__all__) + list(_SUBMODS)))
