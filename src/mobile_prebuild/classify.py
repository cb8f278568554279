"""Decide which toolchain owns a module: node-gyp (binding.gyp) or cargo (neon / node-bindgen)."""

from __future__ import annotations

import logging
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from mobile_prebuild.errors import ManifestError, NoNativeModuleFound
from mobile_prebuild.helpers import install_script, load_package_json

log = logging.getLogger(__name__)

DEPENDENCY_TABLES = ("dependencies", "build-dependencies", "dev-dependencies")


class ModuleType(str, Enum):
    GYP = "gyp"
    NEON = "neon"
    NODE_BINDGEN = "node-bindgen"

    @property
    def is_cargo(self) -> bool:
        return self is not ModuleType.GYP


def _load_cargo_toml(p: Path) -> dict[str, Any]:
    try:
        with p.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Could not parse {p}: {e}"
        raise ManifestError(msg) from e


def cargo_dependency_names(cargo: dict[str, Any]) -> set[str]:
    """All dependency names, including [target.'cfg(..)'.dependencies] tables."""
    names: set[str] = set()
    tables = [cargo]
    targets = cargo.get("target")
    if isinstance(targets, dict):
        tables.extend(t for t in targets.values() if isinstance(t, dict))
    for table in tables:
        for key in DEPENDENCY_TABLES:
            deps = table.get(key)
            if isinstance(deps, dict):
                names.update(deps)
    return names


def classify_module(module_dir: Path) -> ModuleType:
    """Return the module's ModuleType. Read-only. Raises NoNativeModuleFound or ManifestError."""
    package = load_package_json(module_dir)
    if package is None:
        msg = f"No package.json in {module_dir}"
        raise NoNativeModuleFound(msg)

    hook = install_script(package)
    gyp_marker = package.get("gypfile") is True
    # A hook alone, or a stray binding.gyp alone, is not enough.
    if (hook or gyp_marker) and (module_dir / "binding.gyp").is_file():
        log.debug("%s: node-gyp module", module_dir)
        return ModuleType.GYP

    cargo_toml = module_dir / "Cargo.toml"
    if hook and cargo_toml.is_file():
        deps = cargo_dependency_names(_load_cargo_toml(cargo_toml))
        if "neon" in deps:
            log.debug("%s: neon module", module_dir)
            return ModuleType.NEON
        if "node-bindgen" in deps:
            log.debug("%s: node-bindgen module", module_dir)
            return ModuleType.NODE_BINDGEN

    msg = (
        f"No native module found in {module_dir}: expected package.json with an install "
        f"script and binding.gyp, or a Cargo.toml depending on neon or node-bindgen"
    )
    raise NoNativeModuleFound(msg)
