# =============================================================================
# landmark_task — Options (Data Contracts)
# - ExternalFile / BaseOptions / LandmarkDetectorOptions
# - validate_options(): כלל "מקור מודל אחד בדיוק" + בדיקת num_threads
# =============================================================================
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..logs import lm_event, lm_fail
from .status import InvalidArgumentError, TfLiteSupportStatus

# ---------- Data Contracts ----------

@dataclass
class ExternalFile:
    file_name: Optional[str] = None
    file_content: Optional[bytes] = None

    @classmethod
    def from_value(cls, v: Any) -> Optional["ExternalFile"]:
        """YAML/dict friendly: "path.tflite" | {"file_name": ...} | bytes | ExternalFile."""
        if v is None or isinstance(v, ExternalFile):
            return v
        if isinstance(v, (bytes, bytearray)):
            return cls(file_content=bytes(v))
        if isinstance(v, str):
            return cls(file_name=v)
        if isinstance(v, dict):
            return cls(file_name=v.get("file_name") or v.get("path"),
                       file_content=v.get("file_content"))
        raise TypeError(f"cannot build ExternalFile from {type(v).__name__}")

    def describe(self) -> str:
        if self.file_content is not None:
            return f"<in-memory {len(self.file_content)} bytes>"
        return str(self.file_name)


@dataclass
class BaseOptions:
    model_file: Optional[ExternalFile] = None
    num_threads: int = -1


@dataclass
class LandmarkDetectorOptions:
    base_options: BaseOptions = field(default_factory=BaseOptions)
    model_file_with_metadata: Optional[ExternalFile] = None

    # legacy top-level threads (used only when base_options.num_threads == -1)
    num_threads: int = -1

    # float models only: (value - mean) / std
    input_mean: float = 127.5
    input_std: float = 127.5

    # runtime extras (unknown YAML keys land here)
    extra: Dict[str, Any] = field(default_factory=dict)

    # --------- derived ---------
    def model_sources(self) -> int:
        return int(self.base_options.model_file is not None) + int(self.model_file_with_metadata is not None)

    def model_file(self) -> Optional[ExternalFile]:
        if self.base_options.model_file is not None:
            return self.base_options.model_file
        return self.model_file_with_metadata

    def resolved_num_threads(self) -> int:
        if self.base_options.num_threads != -1:
            return int(self.base_options.num_threads)
        return int(self.num_threads)

    @classmethod
    def from_dict(cls, d: Dict[str, Any], *, strict: bool = False) -> "LandmarkDetectorOptions":
        from .config_loader import options_from_dict
        return options_from_dict(d, strict=strict)


# ---------- Validation ----------

def _check_threads(name: str, n: int) -> None:
    if n == 0 or n < -1:
        msg = f"`{name}` must be greater than 0 or equal to -1."
        lm_fail("LM1011", msg, value=n)
        raise InvalidArgumentError(msg, TfLiteSupportStatus.INVALID_ARGUMENT_ERROR)


def validate_options(options: LandmarkDetectorOptions) -> None:
    """Raises InvalidArgumentError unless exactly one model source is set."""
    n = options.model_sources()
    if n != 1:
        msg = ("Expected exactly one of `base_options.model_file` or "
               f"`model_file_with_metadata` to be provided, found {n}.")
        lm_fail("LM1011", msg, sources=n)
        raise InvalidArgumentError(msg, TfLiteSupportStatus.INVALID_ARGUMENT_ERROR)

    _check_threads("num_threads", int(options.num_threads))
    _check_threads("base_options.num_threads", int(options.base_options.num_threads))

    if float(options.input_std) == 0.0:
        msg = "`input_std` must be non-zero."
        lm_fail("LM1011", msg)
        raise InvalidArgumentError(msg, TfLiteSupportStatus.INVALID_ARGUMENT_ERROR)

    lm_event("DEBUG", "LM1010", "options validated",
             source=options.model_file().describe(), threads=options.resolved_num_threads())


__all__ = ["ExternalFile", "BaseOptions", "LandmarkDetectorOptions", "validate_options"]
