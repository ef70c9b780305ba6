# landmark_task/logs.py
# -------------------------------------------------------
# 🧠 מרכז לוגים ל-landmark_task — קונסול + קובץ יומי, קודי אירוע LM
# -------------------------------------------------------

from __future__ import annotations
import os, sys
from datetime import datetime
from typing import Any, Dict, Optional
from loguru import logger as _logger

# ============================ קונפיג בסיסי ============================

LOG_ROOT = os.getenv("LANDMARK_LOG_ROOT", "logs")
APP_NAME = "landmark_task"
RETENTION_DAYS = "14 days"
ROTATION_TIME = "00:00"

CONSOLE_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
FILE_LEVEL    = os.getenv("LOG_FILE_LEVEL", "DEBUG").upper()

def _as_bool(name: str, default: str = "1") -> bool:
    return os.getenv(name, default) not in ("0", "false", "False", "off", "OFF")

FILE_SINK_ENABLED = _as_bool("LOG_FILE_ENABLED", "1")

# =========================== אתחול לוגים ===========================

def setup_logging(app_name: str = APP_NAME, *, to_file: Optional[bool] = None) -> Optional[str]:
    """Console sink always; daily file sink unless disabled. Returns the file path."""
    _logger.remove()

    _logger.add(
        sys.stderr,
        level=CONSOLE_LEVEL,
        colorize=True,
        enqueue=False,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
    )

    file_path = None
    if FILE_SINK_ENABLED if to_file is None else to_file:
        session_start = datetime.now()
        day_dir = os.path.join(LOG_ROOT, session_start.strftime("%Y-%m-%d"))
        os.makedirs(day_dir, exist_ok=True)
        file_path = os.path.join(day_dir, f"{session_start.strftime('%H-%M-%S')}_session_{app_name}.log")
        _logger.add(
            file_path,
            level=FILE_LEVEL,
            rotation=ROTATION_TIME,
            retention=RETENTION_DAYS,
            enqueue=False,
            encoding="utf-8",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
        )

    _logger.info(f"===== {app_name} logging started =====")
    _logger.info(f"Console level={CONSOLE_LEVEL} | File level={FILE_LEVEL} | file={file_path}")
    return file_path

# =========================== לוגר משותף ===========================

logger = _logger
def get_logger(): return logger

# =========================== LM API ===========================

LM_EVENT_HELP: Dict[str, str] = {
    "LM1000": "Engine start", "LM1001": "Model load OK", "LM1002": "Model load FAIL",
    "LM1010": "Options validated", "LM1011": "Options invalid",
    "LM1020": "Config loaded", "LM1021": "Config schema mismatch",
    "LM1030": "Op resolver check OK", "LM1031": "Unresolved op",
    "LM1040": "Interpreter ready", "LM1041": "Interpreter init FAIL",
    "LM1100": "Input frame accepted", "LM1101": "Empty/None frame", "LM1102": "Invalid frame shape/dtype",
    "LM1200": "Inference start", "LM1201": "Inference done", "LM1202": "Inference FAIL",
    "LM1300": "Postprocess start", "LM1301": "Postprocess done", "LM1302": "Postprocess FAIL",
    "LM1900": "General", "LM1999": "Unhandled exception",
}

def _sanitize_ctx(ctx: Dict[str, Any]) -> Dict[str, Any]:
    safe: Dict[str, Any] = {}
    for k, v in ctx.items():
        if k in ("img", "image", "frame_data", "tensor", "model_content"):
            safe[k] = f"<{k}:{type(v).__name__} hidden>"
        elif hasattr(v, "shape"):
            safe[k] = f"<{type(v).__name__} shape={getattr(v, 'shape', '?')}>"
        elif isinstance(v, (bytes, bytearray)):
            safe[k] = f"<bytes len={len(v)}>"
        else:
            safe[k] = v
    return safe

def lm_event(level: str, code: str, msg: str, **ctx) -> None:
    fields = _sanitize_ctx(ctx)
    suffix = f" | ctx={fields}" if fields else ""
    logger.bind(subsys="LM", code=code, **fields).log(level.upper(), f"[{code}] {msg}{suffix}")

def lm_fail(code: str, msg: str, **ctx) -> None:
    hint = LM_EVENT_HELP.get(code)
    suffix = f" | hint: {hint}" if hint else ""
    lm_event("ERROR", code, f"{msg}{suffix}", **ctx)

class Span:
    def __init__(self, code: str, **ctx):
        from time import perf_counter
        self.code = code
        self.ctx = ctx
        self.elapsed_ms: Optional[float] = None
        self._t0 = 0.0
        self._ok = False
        self._pf = perf_counter
    def start(self) -> "Span":
        self._t0 = self._pf()
        lm_event("DEBUG", self.code, "start", **self.ctx)
        return self
    def ok(self, **extra):
        self._ok = True
        self.ctx.update(extra)
    def __enter__(self): return self
    def __exit__(self, exc_type, exc, tb):
        self.elapsed_ms = round((self._pf() - self._t0) * 1000.0, 2)
        base = {"elapsed_ms": self.elapsed_ms}
        if exc_type is None:
            lvl = "DEBUG" if self._ok else "WARNING"
            msg = "done OK" if self._ok else "done (no explicit ok())"
            lm_event(lvl, self.code, msg, **base, **self.ctx); return False
        # שגיאות צפויות (TaskError) כבר נרשמו במקור — כאן רק עקבות
        lm_event("DEBUG", self.code, f"aborted: {exc_type.__name__}", **base, **self.ctx)
        return False

def lm_span(code: str, **ctx) -> Span:
    return Span(code, **ctx).start()

__all__ = ["logger", "get_logger", "setup_logging", "lm_event", "lm_fail", "lm_span", "Span", "LM_EVENT_HELP"]
