"""Build configuration: defaults < prebuild-mobile.yaml < environment < explicit overrides."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from mobile_prebuild.errors import ManifestError

log = logging.getLogger(__name__)

CONFIG_FILENAME = "prebuild-mobile.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "ndk_home": None,
    "libnode_dir": None,
    "nodedir": None,
    "gyp_command": "nodejs-mobile-gyp",
    "vtool_command": ["xcrun", "vtool"],
    "timeout": None,
    "verbose": False,
}

# env var -> config key; first one set wins
ENV_KEYS: tuple[tuple[str, str], ...] = (
    ("ANDROID_NDK_HOME", "ndk_home"),
    ("ANDROID_NDK_ROOT", "ndk_home"),
    ("PREBUILD_LIBNODE_DIR", "libnode_dir"),
    ("PREBUILD_NODEDIR", "nodedir"),
    ("PREBUILD_GYP_COMMAND", "gyp_command"),
    ("PREBUILD_TIMEOUT", "timeout"),
)


def _coerce(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key == "timeout":
        try:
            t = float(value)
        except (TypeError, ValueError) as e:
            msg = f"Invalid timeout {value!r}: expected seconds"
            raise ManifestError(msg) from e
        return t if t > 0 else None
    if key == "vtool_command":
        return value.split() if isinstance(value, str) else [str(v) for v in value]
    if key == "verbose":
        return bool(value)
    return str(value)


def load_config_file(module_dir: Path) -> dict[str, Any]:
    """Load <module>/prebuild-mobile.yaml if present. Unknown keys are ignored."""
    p = module_dir / CONFIG_FILENAME
    if not p.is_file():
        return {}
    try:
        with p.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Could not parse {p}: {e}"
        raise ManifestError(msg) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{p} must contain a mapping, got {type(data).__name__}"
        raise ManifestError(msg)
    unknown = sorted(set(data) - set(DEFAULT_CONFIG))
    if unknown:
        log.debug("Ignoring unknown keys in %s: %s", p, unknown)
    return {k: v for k, v in data.items() if k in DEFAULT_CONFIG}


def resolve_config(
    module_dir: Path,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Return config dict with every DEFAULT_CONFIG key filled. Overrides of None are skipped."""
    env = os.environ if environ is None else environ
    out = dict(DEFAULT_CONFIG)
    out.update(load_config_file(module_dir))

    seen: set[str] = set()
    for var, key in ENV_KEYS:
        if key in seen:
            continue
        value = env.get(var)
        if value:
            out[key] = value
            seen.add(key)

    for k, v in (overrides or {}).items():
        if k in out and v is not None:
            out[k] = v

    return {k: _coerce(k, v) for k, v in out.items()}
