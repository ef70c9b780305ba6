# landmark_task — pose landmark detection task over the TFLite runtime
from .landmark_detection import (  # noqa: F401
    LandmarkDetector,
    LandmarkDetectorOptions,
    BaseOptions,
    ExternalFile,
    FrameBuffer,
    LandmarkResult,
)

__version__ = "0.1.0"
