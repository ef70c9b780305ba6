# landmark_task/landmark_detection/pose_points.py
# -------------------------------------------------------
# 📌 Pose points helpers (MoveNet / COCO-17):
#   - PoseIdx: keypoint indices in model output order
#   - KEYPOINT_NAMES: index -> lowercase name
#   - ALIAS + P(): friendly access with alternative keys
#   - SKELETON: edges for overlays
# -------------------------------------------------------

from __future__ import annotations
from typing import Dict, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class PoseIdx:
    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16


NUM_KEYPOINTS = 17

KEYPOINT_NAMES: List[str] = [
    name.lower() for name, _ in sorted(
        ((n, getattr(PoseIdx, n)) for n in dir(PoseIdx) if n.isupper()),
        key=lambda kv: kv[1],
    )
]

SKELETON: List[Tuple[int, int]] = [
    (PoseIdx.NOSE, PoseIdx.LEFT_EYE), (PoseIdx.NOSE, PoseIdx.RIGHT_EYE),
    (PoseIdx.LEFT_EYE, PoseIdx.LEFT_EAR), (PoseIdx.RIGHT_EYE, PoseIdx.RIGHT_EAR),
    (PoseIdx.LEFT_SHOULDER, PoseIdx.RIGHT_SHOULDER),
    (PoseIdx.LEFT_SHOULDER, PoseIdx.LEFT_ELBOW), (PoseIdx.LEFT_ELBOW, PoseIdx.LEFT_WRIST),
    (PoseIdx.RIGHT_SHOULDER, PoseIdx.RIGHT_ELBOW), (PoseIdx.RIGHT_ELBOW, PoseIdx.RIGHT_WRIST),
    (PoseIdx.LEFT_SHOULDER, PoseIdx.LEFT_HIP), (PoseIdx.RIGHT_SHOULDER, PoseIdx.RIGHT_HIP),
    (PoseIdx.LEFT_HIP, PoseIdx.RIGHT_HIP),
    (PoseIdx.LEFT_HIP, PoseIdx.LEFT_KNEE), (PoseIdx.LEFT_KNEE, PoseIdx.LEFT_ANKLE),
    (PoseIdx.RIGHT_HIP, PoseIdx.RIGHT_KNEE), (PoseIdx.RIGHT_KNEE, PoseIdx.RIGHT_ANKLE),
]


def keypoint_name(idx: int) -> str:
    """Name for index; models with more points than COCO-17 get ``point_<i>``."""
    if 0 <= idx < len(KEYPOINT_NAMES):
        return KEYPOINT_NAMES[idx]
    return f"point_{idx}"


# Aliases and safe accessor
ALIAS = {
    "hip_left": "left_hip", "hip_right": "right_hip",
    "knee_left": "left_knee", "knee_right": "right_knee",
    "ankle_left": "left_ankle", "ankle_right": "right_ankle",
    "shoulder_left": "left_shoulder", "shoulder_right": "right_shoulder",
    "elbow_left": "left_elbow", "elbow_right": "right_elbow",
    "wrist_left": "left_wrist", "wrist_right": "right_wrist",
    "eye_left": "left_eye", "eye_right": "right_eye",
    "ear_left": "left_ear", "ear_right": "right_ear",
}


def P(points: Dict[str, T], key: str) -> Optional[T]:
    """Friendly accessor: try key then alias; return None if missing."""
    if not isinstance(key, str):
        return None
    if key in points:
        return points[key]
    alt = ALIAS.get(key)
    return points.get(alt) if alt else None


__all__ = ["PoseIdx", "NUM_KEYPOINTS", "KEYPOINT_NAMES", "SKELETON", "ALIAS", "P", "keypoint_name"]
