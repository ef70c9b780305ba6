# =============================================================================
# landmark_task — LandmarkDetector (Task API)
# - create_from_options(options, op_resolver=None) → LandmarkDetector
# - detect(frame_buffer, roi=None) → LandmarkResult
# זרימה: validate_options → TfLiteEngine (model + resolver + interpreter)
#        → בדיקת חוזה קלט/פלט → preprocess → invoke → postprocess
# =============================================================================
from __future__ import annotations
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ..logs import logger, lm_event, lm_fail, lm_span
from .engine import TfLiteEngine
from .frame_buffer import BoundingBox, FrameBuffer
from .op_resolver import OpResolver
from .options import LandmarkDetectorOptions, validate_options
from .postprocess import LandmarkResult, decode_landmarks
from .preprocess import InputSpec, preprocess
from .status import StatusCode, TaskError, TfLiteSupportStatus, create_status_with_payload

_INPUT_TYPES = (np.uint8, np.float32)
_OUTPUT_TYPES = (np.uint8, np.float32)


def _contract_error(msg: str, status: TfLiteSupportStatus) -> TaskError:
    lm_fail("LM1041", msg, status=status.tag)
    return create_status_with_payload(StatusCode.INVALID_ARGUMENT, msg, status)


class LandmarkDetector:
    """
    Pose landmark detection over a single-pose TFLite model
    (input ``[1, H, W, 3]``, output ``[1, 1, K, 3]`` as (y, x, score)).

    Use :meth:`create_from_options`; the constructor expects an initialized engine.
    """

    def __init__(self, options: LandmarkDetectorOptions, engine: TfLiteEngine):
        self.options = options
        self._engine = engine
        self._input_spec, self._num_landmarks, self._out_quant = self._check_model_io()
        logger.info("LandmarkDetector ready: input={}x{} {} landmarks={} resolver={}",
                    self._input_spec.width, self._input_spec.height, self._input_spec.dtype.__name__,
                    self._num_landmarks, engine.op_resolver.name)

    # --------- factory ---------
    @classmethod
    def create_from_options(cls, options: LandmarkDetectorOptions,
                            op_resolver: Optional[OpResolver] = None) -> "LandmarkDetector":
        validate_options(options)
        engine = TfLiteEngine(op_resolver)
        engine.build_model_from_external_file(options.model_file())
        engine.init_interpreter(num_threads=options.resolved_num_threads())
        return cls(options, engine)

    # --------- properties ---------
    @property
    def num_landmarks(self) -> int:
        return self._num_landmarks

    @property
    def input_size(self) -> Tuple[int, int]:
        """(width, height) of the model input."""
        return self._input_spec.width, self._input_spec.height

    @property
    def engine(self) -> TfLiteEngine:
        return self._engine

    # --------- inference ---------
    def detect(self, frame_buffer: FrameBuffer, roi: Optional[BoundingBox] = None) -> LandmarkResult:
        if frame_buffer is None:
            lm_fail("LM1101", "detect called with empty frame")
            raise create_status_with_payload(StatusCode.INVALID_ARGUMENT, "Frame buffer must not be None.",
                                             TfLiteSupportStatus.INVALID_ARGUMENT_ERROR)

        with lm_span("LM1200", format=frame_buffer.format.name) as span:
            try:
                tensor, crop = preprocess(frame_buffer, self._input_spec, roi)
            except TaskError as e:
                lm_fail("LM1102", e.message, status=e.support_status.tag)
                raise
            self._engine.set_input(tensor)
            try:
                self._engine.invoke()
            except TaskError as e:
                lm_fail("LM1202", e.message)
                raise
            raw = self._engine.get_output(0)
            try:
                result = decode_landmarks(raw, crop=crop, frame=frame_buffer, quantization=self._out_quant)
            except TaskError as e:
                lm_fail("LM1302", e.message, status=e.support_status.tag)
                raise
            span.ok(landmarks=len(result), score=round(result.score, 4))
        return result

    # --------- lifecycle ---------
    def close(self) -> None:
        self._engine.close()

    def __enter__(self) -> "LandmarkDetector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------- internals ---------
    def _check_model_io(self) -> Tuple[InputSpec, int, Optional[Tuple[float, int]]]:
        inputs = self._engine.input_details
        outputs = self._engine.output_details

        if len(inputs) != 1:
            raise _contract_error(f"Landmark detection models are assumed to have a single input, found {len(inputs)}.",
                                  TfLiteSupportStatus.INVALID_NUM_INPUT_TENSORS_ERROR)
        shape = [int(v) for v in inputs[0]["shape"]]
        if len(shape) != 4 or shape[0] != 1 or shape[3] != 3:
            raise _contract_error(f"Input tensor is expected to be [1, height, width, 3], found {shape}.",
                                  TfLiteSupportStatus.INVALID_INPUT_TENSOR_DIMENSIONS_ERROR)
        in_type = inputs[0]["dtype"]
        if in_type not in _INPUT_TYPES:
            raise _contract_error(f"Input tensor type must be uint8 or float32, found {np.dtype(in_type).name}.",
                                  TfLiteSupportStatus.INVALID_INPUT_TENSOR_TYPE_ERROR)

        if len(outputs) != 1:
            raise _contract_error(f"Landmark detection models are assumed to have a single output, found {len(outputs)}.",
                                  TfLiteSupportStatus.INVALID_NUM_OUTPUT_TENSORS_ERROR)
        oshape = [int(v) for v in outputs[0]["shape"]]
        if len(oshape) != 4 or oshape[0] != 1 or oshape[1] != 1 or oshape[3] != 3:
            raise _contract_error(f"Output tensor is expected to be [1, 1, num_landmarks, 3], found {oshape}.",
                                  TfLiteSupportStatus.INVALID_OUTPUT_TENSOR_DIMENSIONS_ERROR)
        out_type = outputs[0]["dtype"]
        if out_type not in _OUTPUT_TYPES:
            raise _contract_error(f"Output tensor type must be uint8 or float32, found {np.dtype(out_type).name}.",
                                  TfLiteSupportStatus.INVALID_OUTPUT_TENSOR_TYPE_ERROR)

        quant = outputs[0].get("quantization") or (0.0, 0)
        spec = InputSpec(height=shape[1], width=shape[2], dtype=in_type,
                         mean=float(self.options.input_mean), std=float(self.options.input_std))
        lm_event("DEBUG", "LM1040", "model I/O contract OK", input=shape, output=oshape)
        return spec, oshape[2], (float(quant[0]), int(quant[1]))

    def get_runtime_params(self) -> Dict[str, Any]:
        insp = self._engine.inspection
        return {
            "input_size": list(self.input_size),
            "input_type": self._input_spec.dtype.__name__,
            "num_landmarks": self._num_landmarks,
            "resolver": self._engine.op_resolver.name,
            "num_threads": self.options.resolved_num_threads(),
            "has_metadata": bool(insp.has_metadata) if insp else False,
        }


__all__ = ["LandmarkDetector"]
