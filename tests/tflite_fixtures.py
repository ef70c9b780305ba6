# tests/tflite_fixtures.py
# -------------------------------------------------------
# מודלי TFLite סינתטיים לבדיקות (נבנים עם flatbuffers, בלי קבצים בדיסק):
#   - identity_model(): טנזור יחיד [1, 1, K, 3] שהוא גם קלט וגם פלט, בלי אופרטורים
#     → ה-"landmarks" שיוצאים הם בדיוק הפיקסלים אחרי preprocess.
#   - model_with_op_codes([...]): טבלת operator codes לבדיקת resolvers.
#   - model_with_operator(name): צומת אחד עם ה-op → הכשל מגיע מה-runtime עצמו.
# + גישה ל-fixtures אמיתיים (MoveNet) תחת tests/testdata או LANDMARK_TESTDATA_DIR.
# -------------------------------------------------------

from __future__ import annotations
import os
from typing import Iterable, Optional, Sequence, Tuple

import flatbuffers
import tflite

TESTDATA_DIR = os.getenv("LANDMARK_TESTDATA_DIR",
                         os.path.join(os.path.dirname(os.path.abspath(__file__)), "testdata"))
MOVENET_MODEL = "lite-model_movenet_singlepose_lightning_tflite_int8_4.tflite"
MOVENET_IMAGE = os.getenv("LANDMARK_TEST_IMAGE", "movenet_person.jpg")
# CI עם fixtures: חסר → כישלון במקום skip
REQUIRE_FIXTURES = os.getenv("LANDMARK_REQUIRE_FIXTURES", "").strip().lower() in ("1", "true", "yes")

# TensorType ב-schema
TENSOR_TYPES = {"float32": 0, "int32": 2, "uint8": 3}
_DEPRECATED_CODE_LIMIT = 127


def fixture_path(name: str) -> str:
    return os.path.join(TESTDATA_DIR, name)

def movenet_fixtures() -> Optional[Tuple[str, str]]:
    """(model_path, image_path) if both exist, else None."""
    model, image = fixture_path(MOVENET_MODEL), fixture_path(MOVENET_IMAGE)
    if os.path.isfile(model) and os.path.isfile(image):
        return model, image
    return None

# ---------------- flatbuffer helpers ----------------

def _int_vector(b: flatbuffers.Builder, values: Sequence[int]) -> int:
    b.StartVector(4, len(values), 4)
    for v in reversed(list(values)):
        b.PrependInt32(int(v))
    return b.EndVector()

def _offset_vector(b: flatbuffers.Builder, offsets: Sequence[int]) -> int:
    b.StartVector(4, len(offsets), 4)
    for off in reversed(list(offsets)):
        b.PrependUOffsetTRelative(off)
    return b.EndVector()

def _operator_code(b: flatbuffers.Builder, name: str, version: int = 1) -> int:
    # שם UPPERCASE שקיים ב-BuiltinOperator → builtin, אחרת custom
    custom = not (name.isupper() and hasattr(tflite.BuiltinOperator, name))
    code = int(tflite.BuiltinOperator.CUSTOM) if custom else int(getattr(tflite.BuiltinOperator, name))
    custom_off = b.CreateString(name) if custom else None
    b.StartObject(4)
    b.PrependInt8Slot(0, min(code, _DEPRECATED_CODE_LIMIT), 0)   # deprecated_builtin_code
    if custom_off is not None:
        b.PrependUOffsetTRelativeSlot(1, custom_off, 0)          # custom_code
    b.PrependInt32Slot(2, int(version), 1)                       # version
    b.PrependInt32Slot(3, code, 0)                               # builtin_code
    return b.EndObject()

def _tensor(b: flatbuffers.Builder, shape: Sequence[int], dtype: str, name: str) -> int:
    name_off = b.CreateString(name)
    shape_off = _int_vector(b, shape)
    b.StartObject(4)
    b.PrependUOffsetTRelativeSlot(0, shape_off, 0)
    b.PrependInt8Slot(1, TENSOR_TYPES[dtype], 0)
    b.PrependUint32Slot(2, 0, 0)  # buffer 0 = ריק (נבנה בזמן allocate)
    b.PrependUOffsetTRelativeSlot(3, name_off, 0)
    return b.EndObject()

def _operator(b: flatbuffers.Builder, opcode_index: int, inputs: Sequence[int], outputs: Sequence[int]) -> int:
    in_off = _int_vector(b, inputs)
    out_off = _int_vector(b, outputs)
    b.StartObject(3)
    b.PrependUint32Slot(0, int(opcode_index), 0)                # opcode_index
    b.PrependUOffsetTRelativeSlot(1, in_off, 0)
    b.PrependUOffsetTRelativeSlot(2, out_off, 0)
    return b.EndObject()

def _empty_buffer(b: flatbuffers.Builder) -> int:
    b.StartObject(1)
    return b.EndObject()

# ---------------- builders ----------------

def build_model(*, tensor_shape: Sequence[int] = (1, 1, 17, 3), dtype: str = "float32",
                op_codes: Iterable[object] = (), description: str = "landmark test model",
                version: int = 3, operator: Optional[str] = None) -> bytes:
    """
    Single-subgraph model whose only tensor is both input and output.
    ``op_codes``: names ("CONV_2D", "TFLite_Detection_PostProcess") or (name, version) pairs.
    The op codes are listed in the model but no operator uses them.

    With ``operator`` the graph gets one node of that op (added to the op codes
    if missing) mapping tensor 0 (input) to tensor 1 (output), both of
    ``tensor_shape``. The runtime has to resolve that node to build an interpreter.
    """
    b = flatbuffers.Builder(1024)

    items = [(item, 1) if isinstance(item, str) else tuple(item) for item in op_codes]
    if operator is not None and operator not in [name for name, _ in items]:
        items.append((operator, 1))
    codes = [_operator_code(b, name, ver) for name, ver in items]
    codes_vec = _offset_vector(b, codes)

    if operator is None:
        tensors = [_tensor(b, tensor_shape, dtype, "keypoints")]
        io = ([0], [0])
        ops = []
    else:
        tensors = [_tensor(b, tensor_shape, dtype, "image"), _tensor(b, tensor_shape, dtype, "keypoints")]
        io = ([0], [1])
        ops = [_operator(b, [name for name, _ in items].index(operator), [0], [1])]
    tensors_vec = _offset_vector(b, tensors)
    inputs_vec = _int_vector(b, io[0])
    outputs_vec = _int_vector(b, io[1])
    operators_vec = _offset_vector(b, ops)
    sg_name = b.CreateString("main")
    b.StartObject(5)
    b.PrependUOffsetTRelativeSlot(0, tensors_vec, 0)
    b.PrependUOffsetTRelativeSlot(1, inputs_vec, 0)
    b.PrependUOffsetTRelativeSlot(2, outputs_vec, 0)
    b.PrependUOffsetTRelativeSlot(3, operators_vec, 0)
    b.PrependUOffsetTRelativeSlot(4, sg_name, 0)
    subgraph = b.EndObject()
    subgraphs_vec = _offset_vector(b, [subgraph])

    buffers_vec = _offset_vector(b, [_empty_buffer(b)])
    desc = b.CreateString(description)

    b.StartObject(5)
    b.PrependUint32Slot(0, int(version), 0)
    b.PrependUOffsetTRelativeSlot(1, codes_vec, 0)
    b.PrependUOffsetTRelativeSlot(2, subgraphs_vec, 0)
    b.PrependUOffsetTRelativeSlot(3, desc, 0)
    b.PrependUOffsetTRelativeSlot(4, buffers_vec, 0)
    model = b.EndObject()
    b.Finish(model, file_identifier=b"TFL3")
    return bytes(b.Output())


def identity_model(dtype: str = "float32", num_landmarks: int = 17) -> bytes:
    return build_model(tensor_shape=(1, 1, num_landmarks, 3), dtype=dtype)


def model_with_op_codes(op_codes: Iterable[object]) -> bytes:
    return build_model(op_codes=op_codes)


def model_with_operator(name: str, num_landmarks: int = 17) -> bytes:
    """One-node graph using op ``name``; unresolvable ops fail only in the runtime."""
    return build_model(tensor_shape=(1, 1, num_landmarks, 3), operator=name)


__all__ = [
    "TESTDATA_DIR", "MOVENET_MODEL", "MOVENET_IMAGE", "REQUIRE_FIXTURES", "fixture_path", "movenet_fixtures",
    "build_model", "identity_model", "model_with_op_codes", "model_with_operator",
]
