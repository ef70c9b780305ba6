# landmark_task/landmark_detection/smoke_detect.py
# -----------------------------------------------------------------------------
# בדיקת עשן מהירה מול מודל ותמונה אמיתיים:
#   python -m landmark_task.landmark_detection.smoke_detect --model m.tflite --image person.jpg
#   python -m landmark_task.landmark_detection.smoke_detect --config detector.yaml --image person.jpg --json
# קוד יציאה: 0 הצלחה, 2 שגיאת Task (עם קוד + payload מודפסים).
# -----------------------------------------------------------------------------

from __future__ import annotations
import argparse
import json
import sys
from typing import List, Optional

from ..logs import setup_logging, logger
from .config_loader import build_options_from_yaml
from .detector import LandmarkDetector
from .frame_buffer import BoundingBox, FrameBuffer
from .image_utils import decode_image_from_file
from .op_resolver import BuiltinOpResolver, BuiltinRefOpResolver, MoveNetOpResolver
from .options import BaseOptions, ExternalFile, LandmarkDetectorOptions
from .status import TaskError

_RESOLVERS = {
    "builtin": BuiltinOpResolver,
    "builtin_ref": BuiltinRefOpResolver,
    "movenet": MoveNetOpResolver,
}


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Run pose landmark detection on one image.")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--model", type=str, help="model file (base_options.model_file)")
    src.add_argument("--with-metadata", type=str, dest="with_metadata",
                     help="model file with TFLite metadata (model_file_with_metadata)")
    src.add_argument("--config", type=str, help="YAML options file")
    ap.add_argument("--image", type=str, required=True)
    ap.add_argument("--threads", type=int, default=-1)
    ap.add_argument("--resolver", type=str, default="builtin", choices=sorted(_RESOLVERS))
    ap.add_argument("--roi", type=int, nargs=4, metavar=("X", "Y", "W", "H"), default=None)
    ap.add_argument("--json", action="store_true", help="print JSON instead of a table")
    ap.add_argument("--log-file", action="store_true", dest="log_file")
    return ap.parse_args(argv)


def _build_options(args: argparse.Namespace) -> LandmarkDetectorOptions:
    if args.config:
        opts = build_options_from_yaml(args.config)
    elif args.model:
        opts = LandmarkDetectorOptions(base_options=BaseOptions(model_file=ExternalFile(file_name=args.model)))
    else:
        opts = LandmarkDetectorOptions(model_file_with_metadata=ExternalFile(file_name=args.with_metadata))
    if args.threads != -1:
        opts.base_options.num_threads = int(args.threads)
    return opts


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    setup_logging(to_file=bool(args.log_file))

    try:
        opts = _build_options(args)
        image = decode_image_from_file(args.image)
        roi = BoundingBox(*args.roi) if args.roi else None
        with LandmarkDetector.create_from_options(opts, _RESOLVERS[args.resolver]()) as detector:
            result = detector.detect(FrameBuffer.create_from_image_data(image), roi=roi)
    except TaskError as e:
        logger.error("detection failed: {}", e)
        print(json.dumps({"ok": False, "code": e.code.name, "message": e.message,
                          "payload": e.support_status.tag}), file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps({"ok": True, "image": {"width": image.width, "height": image.height},
                          **result.to_dict()}, ensure_ascii=False))
        return 0

    for name, lm in result.named().items():
        print(f"{name:<16} x={lm.x:.4f} y={lm.y:.4f} score={lm.score:.3f}")
    print(f"pose score={result.score:.4f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
