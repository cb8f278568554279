"""Make a node-bindgen crate link against nodejs-mobile's libnode.so for one Android build.

Three edits, all undone afterwards:

1. an empty build.rs (cargo wants a build script for any package that sets ``links``),
   created only when the crate has none;
2. ``links = "node"`` in Cargo.toml [package];
3. a ``[target.<triple>.node]`` override in .cargo/config.toml (or a legacy .cargo/config) that supplies
   rustc-link-search / rustc-link-lib instead of running the build script.
"""

from __future__ import annotations

import json
import logging
import re
import tomllib
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mobile_prebuild.errors import DuplicateLinkageDeclaration, ManifestError
from mobile_prebuild.helpers import backup_path_for, make_backup, restore_backup
from mobile_prebuild.patch.record import PatchRecord
from mobile_prebuild.targets import Target

log = logging.getLogger(__name__)

LINKS_NAME = "node"
BUILD_SCRIPT = "build.rs"
CREATED_MARKER_SUFFIX = ".prebuild-created"
CONFIG_FILE = "config.toml"
LEGACY_CONFIG = "config"

_PACKAGE_HEADER = re.compile(r"^\s*\[package\]\s*(#.*)?$")


@dataclass
class CargoPatchState:
    module_dir: Path
    build_script: PatchRecord | None = None
    manifest: PatchRecord | None = None
    config: PatchRecord | None = None
    created_config_dir: bool = False
    applied: list[str] = field(default_factory=list)

    @property
    def config_dir(self) -> Path:
        return self.module_dir / ".cargo"


def _load_toml(p: Path) -> dict[str, Any]:
    try:
        with p.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Could not parse {p}: {e}"
        raise ManifestError(msg) from e


def _toml_str(s: str) -> str:
    # a JSON string literal is a valid TOML basic string
    return json.dumps(s)


def inject_links(text: str, name: str = LINKS_NAME) -> str:
    """Insert links = "<name>" right after the [package] header line."""
    lines = text.splitlines(keepends=True)
    for i, line in enumerate(lines):
        if _PACKAGE_HEADER.match(line):
            if not line.endswith("\n"):
                lines[i] = line + "\n"
            lines.insert(i + 1, f"links = {_toml_str(name)}\n")
            return "".join(lines)
    msg = "Cargo.toml has no [package] section"
    raise ManifestError(msg)


def link_override_block(target: Target, libnode_dir: Path) -> str:
    search = libnode_dir / target.android_abi
    return (
        f"\n[target.{target.triple}.{LINKS_NAME}]\n"
        f"rustc-link-search = [{_toml_str(str(search))}]\n"
        f"rustc-link-lib = [{_toml_str(LINKS_NAME)}]\n"
    )


def _ensure_build_script(state: CargoPatchState) -> None:
    script = state.module_dir / BUILD_SCRIPT
    if script.exists():
        return
    marker = script.with_name(script.name + CREATED_MARKER_SUFFIX)
    state.build_script = PatchRecord(path=script, backup_path=None)
    script.write_text("")
    marker.write_text("")
    state.build_script.applied = True
    state.applied.append(BUILD_SCRIPT)
    log.debug("Created empty %s", script)


def _patch_manifest(state: CargoPatchState) -> None:
    cargo_toml = state.module_dir / "Cargo.toml"
    state.manifest = PatchRecord(path=cargo_toml, backup_path=backup_path_for(cargo_toml))
    make_backup(cargo_toml)
    state.manifest.applied = True
    state.applied.append("Cargo.toml")

    package = _load_toml(cargo_toml).get("package")
    if not isinstance(package, dict):
        msg = f"{cargo_toml} has no [package] section"
        raise ManifestError(msg)
    if "links" in package:
        msg = (
            f'{cargo_toml} already declares links = "{package["links"]}"; '
            f"cannot add the libnode linkage for Android"
        )
        raise DuplicateLinkageDeclaration(msg)
    cargo_toml.write_text(inject_links(cargo_toml.read_text()))
    log.debug('Added links = "%s" to %s', LINKS_NAME, cargo_toml)


def cargo_config_path(config_dir: Path) -> Path:
    """The file cargo reads: a legacy extension-less .cargo/config wins over config.toml."""
    legacy = config_dir / LEGACY_CONFIG
    return legacy if legacy.is_file() else config_dir / CONFIG_FILE


def _patch_config(state: CargoPatchState, target: Target, libnode_dir: Path) -> None:
    config_dir = state.config_dir
    config = cargo_config_path(config_dir)
    if not config_dir.exists():
        config_dir.mkdir()
        state.created_config_dir = True

    if config.exists():
        existing = _load_toml(config)
        node_override = ((existing.get("target") or {}).get(target.triple) or {}).get(LINKS_NAME)
        if node_override is not None:
            msg = f"{config} already overrides [target.{target.triple}.{LINKS_NAME}]"
            raise DuplicateLinkageDeclaration(msg)
        state.config = PatchRecord(path=config, backup_path=backup_path_for(config))
        make_backup(config)
        state.config.applied = True
        with config.open("a") as f:
            f.write(link_override_block(target, libnode_dir))
    else:
        state.config = PatchRecord(path=config, backup_path=None)
        config.write_text(link_override_block(target, libnode_dir).lstrip("\n"))
        state.config.applied = True
    state.applied.append(f".cargo/{config.name}")
    log.debug("Added [target.%s.%s] to %s", target.triple, LINKS_NAME, config)


def apply_cargo_android_patch(state: CargoPatchState, target: Target, libnode_dir: Path) -> None:
    """Apply all three edits, recording each in state as it lands."""
    _ensure_build_script(state)
    _patch_manifest(state)
    _patch_config(state, target, libnode_dir)


def restore_cargo_android_patch(state: CargoPatchState) -> None:
    """Undo whatever apply got through, in reverse order. Idempotent."""
    bs = state.build_script
    if bs is not None and bs.applied:
        bs.path.unlink(missing_ok=True)
        bs.path.with_name(bs.path.name + CREATED_MARKER_SUFFIX).unlink(missing_ok=True)
        bs.applied = False

    cfg = state.config
    if cfg is not None and cfg.applied:
        if cfg.backup_path is not None:
            restore_backup(cfg.path)
        else:
            cfg.path.unlink(missing_ok=True)
        cfg.applied = False

    man = state.manifest
    if man is not None and man.applied:
        restore_backup(man.path)
        man.applied = False

    if state.created_config_dir and state.config_dir.is_dir() and not any(state.config_dir.iterdir()):
        state.config_dir.rmdir()
        state.created_config_dir = False

    if state.applied:
        log.debug("Restored %s in %s", ", ".join(reversed(state.applied)), state.module_dir)
        state.applied.clear()


@contextmanager
def patched_cargo_for_android(module_dir: Path, target: Target, libnode_dir: Path) -> Iterator[CargoPatchState]:
    """Apply the libnode linkage edits; always restore on exit, including a failed apply."""
    state = CargoPatchState(module_dir=module_dir)
    try:
        apply_cargo_android_patch(state, target, libnode_dir)
        yield state
    finally:
        restore_cargo_android_patch(state)
