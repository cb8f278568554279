"""Shared helpers (manifest load, file moves, backups, relative paths).

Used by classify, patch, build and relocate.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

from mobile_prebuild.errors import ConcurrentRunDetected, ManifestError

BACKUP_SUFFIX = ".prebuild-bak"

# --- Manifest ---


def load_package_json(module_dir: Path) -> dict[str, Any] | None:
    """Load package.json from module_dir. None if absent; ManifestError if unparseable."""
    p = module_dir / "package.json"
    if not p.is_file():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Could not parse {p}: {e}"
        raise ManifestError(msg) from e
    if not isinstance(data, dict):
        msg = f"{p} must contain a JSON object"
        raise ManifestError(msg)
    return data


def install_script(package: dict[str, Any]) -> str | None:
    """scripts.install if it is a non-empty string."""
    scripts = package.get("scripts") or {}
    hook = scripts.get("install") if isinstance(scripts, dict) else None
    return hook if isinstance(hook, str) and hook.strip() else None


# --- Backups ---


def backup_path_for(p: Path) -> Path:
    return p.with_name(p.name + BACKUP_SUFFIX)


def make_backup(p: Path) -> Path:
    """Copy p to its backup path. Refuses if a backup already exists (another run, or a crashed one)."""
    bak = backup_path_for(p)
    if bak.exists():
        msg = (
            f"Backup {bak} already exists: another mobile-prebuild run is using this module, "
            f"or a previous run was killed. Restore or delete it before building."
        )
        raise ConcurrentRunDetected(msg)
    shutil.copy2(p, bak)
    return bak


def restore_backup(p: Path) -> bool:
    """Put the backup back in place of p. No-op (False) if there is no backup."""
    bak = backup_path_for(p)
    if not bak.exists():
        return False
    p.unlink(missing_ok=True)
    bak.replace(p)
    return True


# --- Files ---


def remove_path(p: Path) -> None:
    """Remove file, symlink or directory tree at p if it exists."""
    if p.is_dir() and not p.is_symlink():
        shutil.rmtree(p)
    elif p.exists() or p.is_symlink():
        p.unlink()


def move_replacing(src: Path, dst: Path) -> Path:
    """Move src to dst, replacing whatever is at dst. Source is gone afterwards."""
    dst.parent.mkdir(parents=True, exist_ok=True)
    remove_path(dst)
    shutil.move(str(src), str(dst))
    return dst


def display_path(p: Path, root: Path) -> str:
    """p relative to root when possible, else p."""
    try:
        return p.relative_to(root).as_posix()
    except ValueError:
        return str(p)
