"""Point a package.json install hook's node-gyp at the nodejs-mobile gyp for the duration of a build."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from mobile_prebuild.helpers import (
    backup_path_for,
    install_script,
    load_package_json,
    make_backup,
    restore_backup,
)
from mobile_prebuild.patch.record import PatchRecord

log = logging.getLogger(__name__)

GUARDED_TOOL = "node-gyp"
# whole word only: node-gyp-build and node-gyp.js must not match
_GUARDED_TOOL_RE = re.compile(r"(?<![\w-])node-gyp(?![\w.-])")


def rewrite_install_hook(hook: str, replacement: str) -> str | None:
    """Return hook with node-gyp replaced, or None when node-gyp does not appear in it."""
    if not _GUARDED_TOOL_RE.search(hook):
        return None
    return _GUARDED_TOOL_RE.sub(lambda _m: replacement, hook)


def new_package_manifest_record(module_dir: Path) -> PatchRecord:
    path = module_dir / "package.json"
    return PatchRecord(path=path, backup_path=backup_path_for(path))


def apply_package_manifest_patch(
    module_dir: Path,
    gyp_command: str,
    record: PatchRecord | None = None,
) -> PatchRecord:
    """Back up and rewrite package.json if its install hook calls node-gyp. No-op otherwise.

    record.applied is set as soon as the backup exists, so a failure while writing
    still leaves the caller able to restore.
    """
    if record is None:
        record = new_package_manifest_record(module_dir)
    package = load_package_json(module_dir)
    hook = install_script(package) if package is not None else None
    new_hook = rewrite_install_hook(hook, gyp_command) if hook else None
    if new_hook is None:
        log.debug("%s: install hook does not call %s, not patching", record.path, GUARDED_TOOL)
        return record

    original = record.path.read_text(encoding="utf-8")
    make_backup(record.path)
    record.applied = True
    package["scripts"]["install"] = new_hook
    text = json.dumps(package, indent=2, ensure_ascii=False)
    record.path.write_text(text + ("\n" if original.endswith("\n") else ""), encoding="utf-8")
    log.debug("Patched install hook in %s: %r -> %r", record.path, hook, new_hook)
    return record


def restore_package_manifest(record: PatchRecord) -> None:
    """Restore package.json from backup. Safe to call when nothing was applied."""
    if restore_backup(record.path):
        log.debug("Restored %s", record.path)
    record.applied = False


@contextmanager
def patched_package_manifest(module_dir: Path, gyp_command: str) -> Iterator[PatchRecord]:
    """Apply the install-hook patch; always restore on exit."""
    record = new_package_manifest_record(module_dir)
    try:
        apply_package_manifest_patch(module_dir, gyp_command, record)
        yield record
    finally:
        if record.applied:
            restore_package_manifest(record)
