"""Reversible manifest edits applied around a toolchain run (package.json hook, Cargo libnode linkage)."""

from .cargo_android import (
    CargoPatchState,
    apply_cargo_android_patch,
    patched_cargo_for_android,
    restore_cargo_android_patch,
)
from .package_manifest import (
    apply_package_manifest_patch,
    patched_package_manifest,
    restore_package_manifest,
    rewrite_install_hook,
)
from .record import PatchRecord

__all__ = [
    "CargoPatchState",
    "PatchRecord",
    "apply_cargo_android_patch",
    "apply_package_manifest_patch",
    "patched_cargo_for_android",
    "patched_package_manifest",
    "restore_cargo_android_patch",
    "restore_package_manifest",
    "rewrite_install_hook",
]
