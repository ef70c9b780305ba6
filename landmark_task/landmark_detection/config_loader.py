# ------------------------------------------------------- config_loader.py
# טוען YAML של ה-landmark detector ומחזיר LandmarkDetectorOptions.
# • תומך במבנה פשוט (detector: ...) וגם בפרופילים (profiles + active_profile/env_override).
# • מתעלם ממפתחות לא מוכרים (נשמרים ב-extra) אלא אם strict=True.
# • אליאסים: model→detector, model_path→model_file, threads→num_threads.
# • פונקציות עיקריות: load_yaml / options_from_dict / build_options_from_yaml
# -------------------------------------------------------

from __future__ import annotations
import os
from dataclasses import fields
from typing import Any, Dict, Iterable, Tuple

import yaml

from ..logs import logger, lm_event, lm_fail
from .options import BaseOptions, ExternalFile, LandmarkDetectorOptions

DEFAULT_PROFILE_ENV = "LANDMARK_PROFILE"

# ---------------- yaml ----------------

def load_yaml(path: str) -> Dict[str, Any]:
    full = os.path.normpath(os.path.abspath(path))
    if not os.path.exists(full):
        raise FileNotFoundError(f"YAML not found: {full}")
    with open(full, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML root must be dict")
    keys = sorted(data.keys())
    logger.debug(f"[config] loaded YAML: {full} keys={keys}")
    lm_event("INFO", "LM1020", "config YAML loaded", path=full, keys=len(keys))
    return data

# ---------------- helpers ----------------

def _partition_keys(src: Dict[str, Any], allowed: Iterable[str]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    allowed_set = set(allowed)
    known = {k: v for k, v in src.items() if k in allowed_set}
    unknown = {k: v for k, v in src.items() if k not in allowed_set}
    return known, unknown

def _as_int(name: str, v: Any) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        raise ValueError(f"config: `{name}` must be an integer, got {v!r}")

def _as_float(name: str, v: Any) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        raise ValueError(f"config: `{name}` must be a number, got {v!r}")

def _base_options_from_dict(d: Dict[str, Any], *, strict: bool) -> BaseOptions:
    src = dict(d or {})
    for alt in ("model", "model_path", "model_asset_path"):
        if alt in src and "model_file" not in src:
            src["model_file"] = src.pop(alt)
    if "threads" in src and "num_threads" not in src:
        src["num_threads"] = src.pop("threads")
    known, unknown = _partition_keys(src, (f.name for f in fields(BaseOptions)))
    if unknown:
        if strict:
            lm_fail("LM1021", "base_options unknown keys", keys=sorted(unknown))
            raise KeyError(f"BaseOptions unknown keys: {sorted(unknown)}")
        logger.debug(f"[config:base_options] ignored keys: {sorted(unknown)}")
    out = BaseOptions()
    if "model_file" in known:
        out.model_file = ExternalFile.from_value(known["model_file"])
    if "num_threads" in known:
        out.num_threads = _as_int("base_options.num_threads", known["num_threads"])
    return out

# ---------------- options_from_dict ----------------

def options_from_dict(d: Dict[str, Any], *, strict: bool = False) -> LandmarkDetectorOptions:
    src = dict(d or {})

    if "threads" in src and "num_threads" not in src:
        src["num_threads"] = src.pop("threads")
    for alt in ("model_with_metadata", "metadata_model"):
        if alt in src and "model_file_with_metadata" not in src:
            src["model_file_with_metadata"] = src.pop(alt)

    known, unknown = _partition_keys(src, (f.name for f in fields(LandmarkDetectorOptions)))
    if unknown and strict:
        lm_fail("LM1021", "LandmarkDetectorOptions unknown keys", keys=sorted(unknown))
        raise KeyError(f"LandmarkDetectorOptions unknown keys: {sorted(unknown)}")

    opts = LandmarkDetectorOptions()
    if "base_options" in known:
        bo = known["base_options"]
        opts.base_options = bo if isinstance(bo, BaseOptions) else _base_options_from_dict(bo, strict=strict)
    if "model_file_with_metadata" in known:
        opts.model_file_with_metadata = ExternalFile.from_value(known["model_file_with_metadata"])
    if "num_threads" in known:
        opts.num_threads = _as_int("num_threads", known["num_threads"])
    if "input_mean" in known:
        opts.input_mean = _as_float("input_mean", known["input_mean"])
    if "input_std" in known:
        opts.input_std = _as_float("input_std", known["input_std"])
    opts.extra = {**dict(known.get("extra") or {}), **unknown}
    if unknown:
        logger.debug(f"[config:detector] unknown keys kept in extra: {sorted(unknown)}")
    return opts

# ---------------- core builders ----------------

def _apply_aliases_top(raw: Dict[str, Any]) -> Dict[str, Any]:
    alias_map = {"model": "detector", "landmark_detector": "detector", "options": "detector"}
    adjusted: Dict[str, Any] = {}
    moved = []
    for k, v in raw.items():
        alias = alias_map.get(k, k)
        if alias != k:
            moved.append(f"{k}→{alias}")
        if isinstance(v, dict) and alias == "detector":
            adjusted.setdefault(alias, {})
            adjusted[alias].update(v)
        else:
            adjusted[alias] = v
    if moved:
        logger.debug(f"[config] moved sections: {moved}")
    return adjusted

def _select_profile(raw: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """בוחר פרופיל פעיל לפי env_override / LANDMARK_PROFILE / active_profile."""
    profiles = raw.get("profiles", {}) or {}
    env_key = (raw.get("env_override") or DEFAULT_PROFILE_ENV).strip()
    env_profile = os.getenv(env_key, "").strip() or os.getenv(DEFAULT_PROFILE_ENV, "").strip()
    active = env_profile or raw.get("active_profile") or next(iter(profiles.keys()), None)

    if not active or active not in profiles:
        lm_fail("LM1021", "active profile missing/unknown",
                requested=active or None, available=list(profiles.keys()))
        raise ValueError(f"Unknown or missing profile '{active}'. Available: {list(profiles.keys())}")

    lm_event("INFO", "LM1020", "profile selected", profile=active)
    return active, dict(profiles[active] or {})

def build_options_from_yaml(path: str, *, strict: bool = False) -> LandmarkDetectorOptions:
    """
    • בלי profiles — קורא את בלוק detector (או את השורש עצמו).
    • עם profiles — מחבר detector משותף + detector של הפרופיל הפעיל (הפרופיל גובר).
    • נתיבי מודל יחסיים נפתרים ביחס לתיקיית קובץ ה-YAML.
    """
    raw = _apply_aliases_top(load_yaml(path))

    if "profiles" in raw:
        profile_name, prof = _select_profile(raw)
        det = {**dict(raw.get("detector") or {}), **dict(prof.get("detector") or prof)}
        det.pop("detector", None)
    else:
        profile_name = "(legacy)"
        det = dict(raw.get("detector") or {k: v for k, v in raw.items() if k != "env_override"})

    opts = options_from_dict(det, strict=strict)
    _resolve_relative_paths(opts, os.path.dirname(os.path.abspath(path)))
    opts.extra.setdefault("_meta", {"profile": profile_name, "path": os.path.abspath(path)})

    lm_event("INFO", "LM1020", "options built",
             profile=profile_name, source=(opts.model_file().describe() if opts.model_file() else None))
    return opts

def _resolve_relative_paths(opts: LandmarkDetectorOptions, base_dir: str) -> None:
    for ef in (opts.base_options.model_file, opts.model_file_with_metadata):
        if ef is not None and ef.file_name and not os.path.isabs(ef.file_name):
            candidate = os.path.normpath(os.path.join(base_dir, ef.file_name))
            if os.path.exists(candidate):
                ef.file_name = candidate


__all__ = ["load_yaml", "options_from_dict", "build_options_from_yaml", "DEFAULT_PROFILE_ENV"]
