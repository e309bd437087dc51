"""
Profile settings — tuning knobs for call-tree reconstruction and ranking.

Defaults live here for tests and documentation. Callers may override them from a
dict (e.g. a request body), from TRACEPROF_* environment variables, or from a
YAML file; explicitly supplied values always win over defaults.
"""

import hashlib
import json
import math
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv


ENV_PREFIX = "TRACEPROF_"


@dataclass
class ProfileSettings:
    """
    All tuning constants used by the aggregation stage.

    Field names match the keys accepted by settings_from_dict() and the
    YAML config file.
    """

    # ── Aggregation ───────────────────────────────────────────

    warmup_skip: int = 2
    """Leading invocation durations dropped per function before mean/median."""

    top_n: Optional[int] = None
    """Keep only the N highest-ranked function records (None = all)."""

    # ── Output shape ──────────────────────────────────────────

    include_line_records: bool = True
    """Append per-line hotspot records after the function records."""

    include_root: bool = True
    """Emit a function record for the synthetic (root) frame."""


_BOOL_FIELDS = ('include_line_records', 'include_root')
_NULLABLE_FIELDS = ('top_n',)


def _is_null(val: Any) -> bool:
    return val is None or (isinstance(val, str) and val.strip().lower() in ('', 'none', 'null'))


def _as_bool(val: Any) -> Optional[bool]:
    if isinstance(val, bool):
        return val
    if isinstance(val, str):
        lowered = val.strip().lower()
        if lowered in ('1', 'true', 'yes', 'on'):
            return True
        if lowered in ('0', 'false', 'no', 'off'):
            return False
    return None


def _as_count(val: Any) -> Optional[int]:
    """Non-negative integer, or None if the value is unusable."""
    if isinstance(val, bool):
        return None
    if isinstance(val, str):
        try:
            val = float(val.strip())
        except ValueError:
            return None
    if isinstance(val, (int, float)) and math.isfinite(val) and val >= 0:
        return int(val)
    return None


def settings_from_dict(d: Optional[Dict[str, Any]]) -> ProfileSettings:
    """
    Construct ProfileSettings from a dict.

    Missing fields use defaults. Extra fields and values that cannot be
    coerced to the field's type are ignored.
    """
    if not d:
        return ProfileSettings()

    kwargs: Dict[str, Any] = {}
    for f in fields(ProfileSettings):
        if f.name not in d:
            continue
        val = d[f.name]
        if f.name in _NULLABLE_FIELDS and _is_null(val):
            kwargs[f.name] = None
            continue
        coerced = _as_bool(val) if f.name in _BOOL_FIELDS else _as_count(val)
        if coerced is not None:
            kwargs[f.name] = coerced
    return ProfileSettings(**kwargs)


def settings_from_env(
    base: Optional[ProfileSettings] = None,
    dotenv_path: Optional[Union[str, Path]] = None,
) -> ProfileSettings:
    """
    Overlay TRACEPROF_* environment variables (e.g. TRACEPROF_WARMUP_SKIP=3)
    on top of `base`. A .env file is loaded first: `dotenv_path` if given,
    otherwise the nearest one above the current working directory.
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))
    overrides: Dict[str, Any] = dict(asdict(base or ProfileSettings()))
    for f in fields(ProfileSettings):
        env_val = os.environ.get(ENV_PREFIX + f.name.upper())
        if env_val is not None:
            overrides[f.name] = env_val
    return settings_from_dict(overrides)


def load_settings_file(path: Union[str, Path]) -> ProfileSettings:
    """
    Load settings from a YAML file.

    Accepts either a flat mapping or one nested under a `traceprof:` key.
    """
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
    if isinstance(data.get('traceprof'), dict):
        data = data['traceprof']
    return settings_from_dict(data)


def compute_settings_signature(settings: ProfileSettings) -> str:
    """
    Compute a deterministic hash of the settings for report provenance.

    Hex SHA-256 truncated to 16 characters.
    """
    d = asdict(settings)
    canonical = json.dumps(d, sort_keys=True, separators=(',', ':'))
    digest = hashlib.sha256(canonical.encode('utf-8')).hexdigest()
    return digest[:16]
