"""Move built addons into prebuilds/<target>/ and apply iOS packaging.

On iOS the runtime loads addons as bundles, so prebuilds/ios-*/foo.node is a directory
holding the binary under IOS_BUNDLE_BINARY rather than a bare file.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any

from mobile_prebuild.build import NEON_OUTPUT, NODE_BINDGEN_OUTPUT
from mobile_prebuild.classify import ModuleType
from mobile_prebuild.errors import ArtifactNotFound
from mobile_prebuild.helpers import display_path, move_replacing
from mobile_prebuild.relocate.ios_metadata import ensure_min_os_version
from mobile_prebuild.targets import Target

log = logging.getLogger(__name__)

PREBUILDS_DIR = "prebuilds"
GYP_RELEASE_DIR = Path("build") / "Release"
NODE_EXTENSION = ".node"
CARGO_ARTIFACT_NAME = "index.node"
IOS_BUNDLE_BINARY = "binary"


def prebuilds_dir(module_dir: Path, target: Target) -> Path:
    return module_dir / PREBUILDS_DIR / target.identifier


def cargo_output_path(module_dir: Path, module_type: ModuleType) -> Path:
    """Where the cargo variant leaves its addon after a successful build."""
    if module_type is ModuleType.NEON:
        return module_dir / NEON_OUTPUT
    return module_dir / NODE_BINDGEN_OUTPUT


def wrap_ios_bundle(binary: Path) -> Path:
    """Replace file <dir>/foo.node with directory <dir>/foo.node/<IOS_BUNDLE_BINARY>. Returns the inner file."""
    # the binary cannot live inside a directory of its own name; stage it next door first
    with tempfile.TemporaryDirectory(dir=binary.parent, prefix=".wrap-") as tmp:
        staged = Path(tmp) / IOS_BUNDLE_BINARY
        binary.replace(staged)
        binary.mkdir()
        inner = binary / IOS_BUNDLE_BINARY
        staged.replace(inner)
    return inner


def _place(src: Path, dest: Path, target: Target, config: dict[str, Any]) -> Path:
    """Move src to dest (replacing), wrap and patch on iOS. Returns dest."""
    move_replacing(src, dest)
    if target.is_ios:
        inner = wrap_ios_bundle(dest)
        ensure_min_os_version(inner, target, config["vtool_command"])
    log.debug("Placed %s", dest)
    return dest


def relocate_gyp(module_dir: Path, target: Target, config: dict[str, Any]) -> list[Path]:
    release = module_dir / GYP_RELEASE_DIR
    built = sorted(p for p in release.glob(f"*{NODE_EXTENSION}") if p.is_file()) if release.is_dir() else []
    if not built:
        msg = f"No *{NODE_EXTENSION} file in {display_path(release, module_dir)} after the build"
        raise ArtifactNotFound(msg)
    out_dir = prebuilds_dir(module_dir, target)
    return [_place(src, out_dir / src.name, target, config) for src in built]


def relocate_cargo(
    module_dir: Path,
    module_type: ModuleType,
    target: Target,
    config: dict[str, Any],
) -> list[Path]:
    src = cargo_output_path(module_dir, module_type)
    if not src.is_file():
        msg = f"Expected build output {display_path(src, module_dir)} was not produced"
        raise ArtifactNotFound(msg)
    dest = prebuilds_dir(module_dir, target) / CARGO_ARTIFACT_NAME
    return [_place(src, dest, target, config)]


def relocate_artifacts(
    module_dir: Path,
    module_type: ModuleType,
    target: Target,
    config: dict[str, Any],
) -> list[Path]:
    """Move the build output into prebuilds/<target>/. Returns the final artifact paths."""
    if module_type is ModuleType.GYP:
        return relocate_gyp(module_dir, target, config)
    return relocate_cargo(module_dir, module_type, target, config)
