# landmark_task/landmark_detection/engine.py
# -------------------------------------------------------
# 🎯 TfLiteEngine: ExternalFile → bytes → בדיקת flatbuffer → בדיקת ops → Interpreter
# • לא מריץ קרנלים בעצמו — הכול ב-ai_edge_litert.
# • כל כשל נזרק כ-TaskError עם payload (לא מחזירים None בשקט).
# -------------------------------------------------------

from __future__ import annotations
import errno
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import tflite
from ai_edge_litert import interpreter as litert

from ..logs import logger, lm_event, lm_fail, lm_span
from .op_resolver import CUSTOM_CODE, BuiltinOpResolver, OpResolver, OperatorCode, builtin_op_name
from .options import ExternalFile
from .status import (
    InternalError, InvalidArgumentError, NotFoundError, PermissionDeniedError,
    StatusCode, TaskError, TfLiteSupportStatus, UnknownError, create_status_with_payload,
)

TFLITE_FILE_IDENTIFIER = b"TFL3"
METADATA_NAME = b"TFLITE_METADATA"

# ----- קריאת קובץ מודל -----

def load_external_file(ef: ExternalFile) -> bytes:
    if ef.file_content is not None:
        return bytes(ef.file_content)
    if not ef.file_name:
        raise InvalidArgumentError(
            "ExternalFile must specify at least one of 'file_content' or 'file_name'.",
            TfLiteSupportStatus.INVALID_ARGUMENT_ERROR,
        )
    path = ef.file_name
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        raise NotFoundError(f"Unable to open file at {path}", TfLiteSupportStatus.FILE_NOT_FOUND_ERROR)
    except PermissionError:
        raise PermissionDeniedError(f"Permission denied opening file at {path}",
                                    TfLiteSupportStatus.FILE_PERMISSION_DENIED_ERROR)
    except IsADirectoryError:
        raise InvalidArgumentError(f"Path is a directory, not a file: {path}",
                                   TfLiteSupportStatus.FILE_READ_ERROR)
    except OSError as e:
        if e.errno == errno.ENOENT:
            raise NotFoundError(f"Unable to open file at {path}", TfLiteSupportStatus.FILE_NOT_FOUND_ERROR)
        raise UnknownError(f"Unable to read file at {path}: {e}", TfLiteSupportStatus.FILE_READ_ERROR)

# ----- בדיקת המודל (flatbuffer) -----

@dataclass
class ModelInspection:
    version: int
    num_subgraphs: int
    operator_codes: List[OperatorCode] = field(default_factory=list)
    has_metadata: bool = False
    description: Optional[str] = None

    @property
    def custom_ops(self) -> List[str]:
        return [op.name for op in self.operator_codes if op.custom]


def _invalid_flatbuffer(detail: str) -> TaskError:
    return create_status_with_payload(
        StatusCode.INVALID_ARGUMENT,
        f"The model is not a valid Flatbuffer buffer: {detail}",
        TfLiteSupportStatus.INVALID_FLATBUFFER_ERROR,
    )

def inspect_model(buf: bytes) -> ModelInspection:
    if len(buf) < 8 or buf[4:8] != TFLITE_FILE_IDENTIFIER:
        raise _invalid_flatbuffer("missing TFL3 file identifier")
    try:
        model = tflite.Model.GetRootAsModel(buf, 0)
        ops: List[OperatorCode] = []
        for i in range(model.OperatorCodesLength()):
            oc = model.OperatorCodes(i)
            # builtin_code החדש; deprecated_builtin_code לקודים < 127 במודלים ישנים
            code = max(int(oc.BuiltinCode()), int(oc.DeprecatedBuiltinCode()))
            version = int(oc.Version() or 1)
            if code == CUSTOM_CODE:
                raw = oc.CustomCode()
                name = raw.decode("utf-8", "replace") if raw else "<unnamed>"
                ops.append(OperatorCode(name=name, custom=True, version=version))
            else:
                ops.append(OperatorCode(name=builtin_op_name(code), custom=False, version=version))
        has_meta = any(model.Metadata(i).Name() == METADATA_NAME for i in range(model.MetadataLength()))
        desc = model.Description()
        return ModelInspection(
            version=int(model.Version()),
            num_subgraphs=int(model.SubgraphsLength()),
            operator_codes=ops,
            has_metadata=has_meta,
            description=desc.decode("utf-8", "replace") if desc else None,
        )
    except Exception as e:  # struct.error / IndexError from raw flatbuffer reads
        raise _invalid_flatbuffer(f"{type(e).__name__}: {e}") from e

# ----- Engine -----

# הודעת ה-runtime → (קוד, payload); הראשון שמתאים קובע
_RUNTIME_ERRORS = (
    ("unresolved custom op", StatusCode.INVALID_ARGUMENT, TfLiteSupportStatus.UNSUPPORTED_CUSTOM_OP),
    ("Didn't find op for builtin opcode", StatusCode.INVALID_ARGUMENT, TfLiteSupportStatus.UNSUPPORTED_BUILTIN_OP),
    ("Model provided has model identifier", StatusCode.INVALID_ARGUMENT, TfLiteSupportStatus.INVALID_FLATBUFFER_ERROR),
    ("Could not open", StatusCode.INVALID_ARGUMENT, TfLiteSupportStatus.INVALID_FLATBUFFER_ERROR),
)

def _runtime_error_to_task_error(e: Exception) -> TaskError:
    msg = str(e)
    for needle, code, status in _RUNTIME_ERRORS:
        if needle in msg:
            return create_status_with_payload(code, msg, status)
    return create_status_with_payload(StatusCode.INTERNAL, f"Interpreter initialization failed: {msg}",
                                      TfLiteSupportStatus.ERROR)


class TfLiteEngine:
    """
    API:
      - build_model_from_external_file(ef)
      - init_interpreter(num_threads=-1)
      - input_details / output_details
      - set_input(tensor) / invoke() / get_output(i)
    """

    def __init__(self, op_resolver: Optional[OpResolver] = None):
        self.op_resolver: OpResolver = op_resolver or BuiltinOpResolver()
        self._model_content: Optional[bytes] = None
        self._inspection: Optional[ModelInspection] = None
        self._interpreter: Optional[Any] = None
        self._input_details: List[Dict[str, Any]] = []
        self._output_details: List[Dict[str, Any]] = []

    # --------- model ---------
    @property
    def inspection(self) -> Optional[ModelInspection]:
        return self._inspection

    @property
    def model_content(self) -> Optional[bytes]:
        return self._model_content

    def build_model_from_external_file(self, ef: ExternalFile) -> ModelInspection:
        lm_event("DEBUG", "LM1000", "engine start", source=ef.describe(), resolver=self.op_resolver.name)
        try:
            buf = load_external_file(ef)
            inspection = inspect_model(buf)
        except (InvalidArgumentError, NotFoundError, PermissionDeniedError, UnknownError) as e:
            lm_fail("LM1002", e.message, source=ef.describe(), status=e.support_status.tag)
            raise
        self._model_content = buf
        self._inspection = inspection
        lm_event("INFO", "LM1001", "model loaded", source=ef.describe(), size=len(buf),
                 ops=len(inspection.operator_codes), metadata=inspection.has_metadata)
        return inspection

    # --------- interpreter ---------
    def init_interpreter(self, num_threads: int = -1) -> None:
        if self._model_content is None or self._inspection is None:
            raise InternalError("init_interpreter() called before a model was loaded", TfLiteSupportStatus.ERROR)

        self.op_resolver.check_model(self._inspection.operator_codes)

        kwargs: Dict[str, Any] = {
            "model_content": self._model_content,
            "num_threads": None if num_threads == -1 else int(num_threads),
            "experimental_op_resolver_type": getattr(litert.OpResolverType, self.op_resolver.op_resolver_type),
        }
        registerers = self.op_resolver.custom_op_registerers
        with lm_span("LM1040", resolver=self.op_resolver.name, threads=num_threads) as span:
            try:
                if registerers:
                    itp = litert.InterpreterWithCustomOps(custom_op_registerers=registerers, **kwargs)
                else:
                    itp = litert.Interpreter(**kwargs)
                itp.allocate_tensors()
            except (ValueError, RuntimeError) as e:
                err = _runtime_error_to_task_error(e)
                lm_fail("LM1041", err.message, status=err.support_status.tag)
                raise err from e
            span.ok()

        self._interpreter = itp
        self._input_details = list(itp.get_input_details())
        self._output_details = list(itp.get_output_details())
        logger.debug("[Engine] inputs={} outputs={}",
                     [(d["shape"].tolist(), d["dtype"].__name__) for d in self._input_details],
                     [(d["shape"].tolist(), d["dtype"].__name__) for d in self._output_details])

    @property
    def interpreter(self):
        if self._interpreter is None:
            raise InternalError("interpreter not initialized", TfLiteSupportStatus.ERROR)
        return self._interpreter

    @property
    def input_details(self) -> List[Dict[str, Any]]:
        return list(self._input_details)

    @property
    def output_details(self) -> List[Dict[str, Any]]:
        return list(self._output_details)

    def set_input(self, tensor: np.ndarray, index: int = 0) -> None:
        self.interpreter.set_tensor(self._input_details[index]["index"], tensor)

    def invoke(self) -> None:
        try:
            self.interpreter.invoke()
        except (ValueError, RuntimeError) as e:
            raise InternalError(f"Inference failed: {e}", TfLiteSupportStatus.ERROR) from e

    def get_output(self, index: int = 0) -> np.ndarray:
        # copy: the interpreter reuses its buffers on the next invoke
        return np.array(self.interpreter.get_tensor(self._output_details[index]["index"]), copy=True)

    def close(self) -> None:
        self._interpreter = None
        self._input_details = []
        self._output_details = []


__all__ = ["TfLiteEngine", "ModelInspection", "inspect_model", "load_external_file"]
