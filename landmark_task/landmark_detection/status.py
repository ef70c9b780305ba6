# landmark_task/landmark_detection/status.py
# -------------------------------------------------------
# קודי שגיאה + payload מובנה לכל כשל ביצירה/הרצה של ה-Task.
# • StatusCode — קודים בסגנון absl (INVALID_ARGUMENT, NOT_FOUND, ...)
# • TfLiteSupportStatus — תגית מכונה שנצמדת לשגיאה תחת TFLITE_SUPPORT_PAYLOAD
# • TaskError (+ תתי-מחלקות לפי קוד) — נזרקות, לעולם לא נבלעות
# -------------------------------------------------------

from __future__ import annotations
from enum import IntEnum
from typing import Dict, Optional, Type

TFLITE_SUPPORT_PAYLOAD = "tflite::support::TfLiteSupportStatus"


class StatusCode(IntEnum):
    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


class TfLiteSupportStatus(IntEnum):
    """Machine-readable error tags. Values are grouped by area, hundreds apart."""
    OK = 0
    ERROR = 1
    INVALID_ARGUMENT_ERROR = 2
    # file I/O
    FILE_NOT_FOUND_ERROR = 100
    FILE_PERMISSION_DENIED_ERROR = 101
    FILE_READ_ERROR = 102
    FILE_MMAP_ERROR = 103
    # model flatbuffer
    INVALID_FLATBUFFER_ERROR = 200
    # metadata
    METADATA_INVALID_SCHEMA_VERSION_ERROR = 300
    METADATA_NOT_FOUND_ERROR = 301
    METADATA_INCONSISTENCY_ERROR = 302
    # op resolution
    UNSUPPORTED_CUSTOM_OP = 400
    UNSUPPORTED_BUILTIN_OP = 401
    # model I/O contract
    INVALID_NUM_INPUT_TENSORS_ERROR = 500
    INVALID_INPUT_TENSOR_DIMENSIONS_ERROR = 501
    INVALID_INPUT_TENSOR_TYPE_ERROR = 502
    INVALID_NUM_OUTPUT_TENSORS_ERROR = 503
    INVALID_OUTPUT_TENSOR_DIMENSIONS_ERROR = 504
    INVALID_OUTPUT_TENSOR_TYPE_ERROR = 505
    # image processing
    IMAGE_PROCESSING_ERROR = 600
    IMAGE_PROCESSING_BACKEND_ERROR = 601

    @property
    def tag(self) -> str:
        """CamelCase tag, e.g. ``kUnsupportedCustomOp``."""
        if self.name in _TAG_OVERRIDES:
            return _TAG_OVERRIDES[self.name]
        parts = self.name.lower().split("_")
        return "k" + "".join(p.capitalize() for p in parts)


# שמות שלא נגזרים נכון מ-UPPER_CASE
_TAG_OVERRIDES: Dict[str, str] = {
    "INVALID_FLATBUFFER_ERROR": "kInvalidFlatBufferError",
}


class TaskError(Exception):
    code: StatusCode = StatusCode.UNKNOWN

    def __init__(self, message: str, support_status: TfLiteSupportStatus = TfLiteSupportStatus.ERROR,
                 *, code: Optional[StatusCode] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.support_status = support_status
        self.payloads: Dict[str, str] = {TFLITE_SUPPORT_PAYLOAD: str(int(support_status))}

    def get_payload(self, key: str = TFLITE_SUPPORT_PAYLOAD) -> Optional[str]:
        return self.payloads.get(key)

    def __str__(self) -> str:
        return f"{self.code.name}: {self.message} [{self.support_status.tag}]"


class InvalidArgumentError(TaskError):
    code = StatusCode.INVALID_ARGUMENT

class NotFoundError(TaskError):
    code = StatusCode.NOT_FOUND

class PermissionDeniedError(TaskError):
    code = StatusCode.PERMISSION_DENIED

class FailedPreconditionError(TaskError):
    code = StatusCode.FAILED_PRECONDITION

class InternalError(TaskError):
    code = StatusCode.INTERNAL

class UnknownError(TaskError):
    code = StatusCode.UNKNOWN


_BY_CODE: Dict[StatusCode, Type[TaskError]] = {
    StatusCode.INVALID_ARGUMENT: InvalidArgumentError,
    StatusCode.NOT_FOUND: NotFoundError,
    StatusCode.PERMISSION_DENIED: PermissionDeniedError,
    StatusCode.FAILED_PRECONDITION: FailedPreconditionError,
    StatusCode.INTERNAL: InternalError,
    StatusCode.UNKNOWN: UnknownError,
}


def create_status_with_payload(code: StatusCode, message: str,
                               support_status: TfLiteSupportStatus = TfLiteSupportStatus.ERROR) -> TaskError:
    """Builds (does not raise) the error matching ``code`` with the payload attached."""
    cls = _BY_CODE.get(code)
    if cls is None:
        return TaskError(message, support_status, code=code)
    return cls(message, support_status)


__all__ = [
    "TFLITE_SUPPORT_PAYLOAD", "StatusCode", "TfLiteSupportStatus",
    "TaskError", "InvalidArgumentError", "NotFoundError", "PermissionDeniedError",
    "FailedPreconditionError", "InternalError", "UnknownError",
    "create_status_with_payload",
]
