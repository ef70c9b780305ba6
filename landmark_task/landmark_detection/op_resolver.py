# landmark_task/landmark_detection/op_resolver.py
# =============================================================================
# Op resolvers — רישום שמות אופרטורים של גרף המודל מול קרנלים זמינים.
# - BuiltinOpResolver: כל ה-builtins + ה-custom ops שה-runtime רושם כברירת מחדל
# - BuiltinRefOpResolver: אותו סט, קרנלים "reference"
# - MutableOpResolver: בנייה סלקטיבית (add_builtin/add_custom)
# - MoveNetOpResolver(+MissingOps): סלקטיביים למודל MoveNet single-pose
#
# הבדיקה (check_model) רצה לפני בניית ה-Interpreter: op חסר → InvalidArgumentError
# עם payload UNSUPPORTED_CUSTOM_OP / UNSUPPORTED_BUILTIN_OP.
# =============================================================================
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

import tflite

from ..logs import lm_event, lm_fail
from .status import StatusCode, TfLiteSupportStatus, create_status_with_payload

# ----- שמות builtin מתוך הסכמה של tflite -----
_NON_KERNEL_CODES = {"CUSTOM", "DELEGATE", "PLACEHOLDER_FOR_GREATER_OP_CODES"}

_CODE_TO_NAME: Dict[int, str] = {
    v: k for k, v in vars(tflite.BuiltinOperator).items()
    if k.isupper() and isinstance(v, int)
}
CUSTOM_CODE = int(tflite.BuiltinOperator.CUSTOM)

def builtin_op_name(code: int) -> str:
    return _CODE_TO_NAME.get(int(code), f"BUILTIN_{int(code)}")

def all_builtin_op_names() -> FrozenSet[str]:
    return frozenset(n for n in _CODE_TO_NAME.values() if n not in _NON_KERNEL_CODES)


@dataclass(frozen=True)
class OperatorCode:
    """One entry of the model's operator-code table."""
    name: str
    custom: bool = False
    version: int = 1

    def __str__(self) -> str:
        return f"{self.name} (version {self.version})"


# ----- resolvers -----

class OpResolver:
    name = "base"
    op_resolver_type = "AUTO"   # שם ה-OpResolverType ב-ai_edge_litert

    def find_builtin(self, op: str) -> bool:
        raise NotImplementedError

    def find_custom(self, op: str) -> bool:
        raise NotImplementedError

    @property
    def custom_op_registerers(self) -> List[str]:
        return []

    def check_model(self, ops: Iterable[OperatorCode]) -> None:
        """Raises InvalidArgumentError on the first op this resolver cannot serve."""
        ops = list(ops)
        for op in ops:
            if op.custom:
                if not self.find_custom(op.name):
                    msg = f"Encountered unresolved custom op: {op.name}."
                    lm_fail("LM1031", msg, resolver=self.name)
                    raise create_status_with_payload(StatusCode.INVALID_ARGUMENT, msg, TfLiteSupportStatus.UNSUPPORTED_CUSTOM_OP)
            elif not self.find_builtin(op.name):
                msg = f"Encountered unresolved builtin op: {op}."
                lm_fail("LM1031", msg, resolver=self.name)
                raise create_status_with_payload(StatusCode.INVALID_ARGUMENT, msg, TfLiteSupportStatus.UNSUPPORTED_BUILTIN_OP)
        lm_event("DEBUG", "LM1030", "op resolver check OK", resolver=self.name, n_ops=len(ops))


# custom kernels the runtime's builtin resolver registers by default
BUILTIN_CUSTOM_OPS = frozenset({"TFLite_Detection_PostProcess", "Mfcc", "AudioSpectrogram"})


class BuiltinOpResolver(OpResolver):
    name = "builtin"
    op_resolver_type = "AUTO"

    def __init__(self) -> None:
        self._builtins = all_builtin_op_names()

    def find_builtin(self, op: str) -> bool:
        return op in self._builtins

    def find_custom(self, op: str) -> bool:
        return op in BUILTIN_CUSTOM_OPS


class BuiltinRefOpResolver(BuiltinOpResolver):
    name = "builtin_ref"
    op_resolver_type = "BUILTIN_REF"


class MutableOpResolver(OpResolver):
    name = "mutable"
    op_resolver_type = "AUTO"

    def __init__(self) -> None:
        self._builtins: set = set()
        self._customs: Dict[str, Optional[str]] = {}

    def add_builtin(self, op: str) -> "MutableOpResolver":
        op = op.strip().upper()
        if op not in all_builtin_op_names():
            raise ValueError(f"unknown builtin op: {op}")
        self._builtins.add(op)
        return self

    def add_custom(self, op: str, registerer: Optional[str] = None) -> "MutableOpResolver":
        """``registerer``: name of a C registration function the runtime can load."""
        self._customs[op] = registerer
        return self

    def add_all(self, other: "MutableOpResolver") -> "MutableOpResolver":
        self._builtins |= set(other._builtins)
        self._customs.update(other._customs)
        return self

    def find_builtin(self, op: str) -> bool:
        return op in self._builtins

    def find_custom(self, op: str) -> bool:
        return op in self._customs

    @property
    def custom_op_registerers(self) -> List[str]:
        return sorted({r for r in self._customs.values() if r})


# ops of lite-model_movenet_singlepose_lightning_tflite_int8_4
_MOVENET_BUILTINS = (
    "QUANTIZE", "DEQUANTIZE", "CONV_2D", "DEPTHWISE_CONV_2D", "ADD", "SUB", "MUL", "DIV",
    "RESIZE_BILINEAR", "CONCATENATION", "RESHAPE", "LOGISTIC", "ARG_MAX", "GATHER_ND",
    "CAST", "FLOOR_DIV", "SQRT", "RSQRT", "SQUARED_DIFFERENCE", "SUM", "PACK", "UNPACK",
    "EXPAND_DIMS", "STRIDED_SLICE", "SQUEEZE", "FLOOR", "MAXIMUM", "MINIMUM", "SHAPE",
    "GATHER", "TRANSPOSE", "MEAN", "MAX_POOL_2D", "AVERAGE_POOL_2D", "RELU", "RELU6",
    # export variants of the same graph
    "PAD", "SOFTMAX", "TANH", "HARD_SWISH", "RESIZE_NEAREST_NEIGHBOR", "SELECT_V2", "TILE",
    "SLICE", "SPLIT", "SPLIT_V", "REDUCE_MAX", "EXP", "NEG", "SQUARE", "ABS", "LESS", "GREATER",
    "ARG_MIN", "FILL", "RANGE", "BROADCAST_TO", "LEAKY_RELU", "PRELU", "ZEROS_LIKE",
)

class MoveNetOpResolver(MutableOpResolver):
    name = "movenet"

    def __init__(self) -> None:
        super().__init__()
        for op in _MOVENET_BUILTINS:
            self.add_builtin(op)


class MoveNetOpResolverMissingOps(MutableOpResolver):
    """Only the leading conv stack; inference-graph ops are deliberately absent."""
    name = "movenet_missing_ops"

    def __init__(self) -> None:
        super().__init__()
        for op in ("CONV_2D", "DEPTHWISE_CONV_2D"):
            self.add_builtin(op)


__all__ = [
    "OperatorCode", "OpResolver", "BuiltinOpResolver", "BuiltinRefOpResolver",
    "MutableOpResolver", "MoveNetOpResolver", "MoveNetOpResolverMissingOps",
    "builtin_op_name", "all_builtin_op_names", "CUSTOM_CODE", "BUILTIN_CUSTOM_OPS",
]
