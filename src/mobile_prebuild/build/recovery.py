"""Recover from nj-cli's copy panic.

When cross-compiling, nj-cli (node-bindgen) builds the library under
target/<triple>/release/ and then panics trying to copy it from the host release
directory. The build itself succeeded; moving the library to dist/index.node is all
that is left. The panic text belongs to another project, so this is a best-effort
match: anything it does not recognise stays a plain build failure.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from mobile_prebuild.build.driver import BuildResult
from mobile_prebuild.classify import ModuleType
from mobile_prebuild.errors import ArtifactNotFound
from mobile_prebuild.helpers import display_path, move_replacing
from mobile_prebuild.targets import Target

log = logging.getLogger(__name__)

PANIC_MARKER = "panicked"
COPY_MARKER = "copy"
NODE_BINDGEN_OUTPUT = Path("dist") / "index.node"


def library_extension(target: Target) -> str:
    return ".so" if target.is_android else ".dylib"


def release_dir(module_dir: Path, target: Target) -> Path:
    return module_dir / "target" / target.triple / "release"


def is_known_copy_panic(lines: list[str]) -> bool:
    """True if any line is a Rust panic about a failed copy."""
    return any(PANIC_MARKER in low and COPY_MARKER in low for low in (line.lower() for line in lines))


def recover_known_copy_panic(
    result: BuildResult,
    module_type: ModuleType,
    target: Target,
    module_dir: Path,
) -> BuildResult:
    """Turn nj-cli's copy panic into success by moving the built library to dist/index.node.

    Returns result unchanged when it does not apply. Raises ArtifactNotFound when the
    panic matched but the release directory does not hold exactly one library.
    """
    if result.ok or module_type is not ModuleType.NODE_BINDGEN:
        return result
    if not is_known_copy_panic(result.stderr_lines):
        return result

    rel = release_dir(module_dir, target)
    ext = library_extension(target)
    candidates = sorted(p for p in rel.glob(f"*{ext}") if p.is_file()) if rel.is_dir() else []
    if len(candidates) != 1:
        found = ", ".join(p.name for p in candidates) or "none"
        msg = (
            f"nj-cli failed to copy its output and {display_path(rel, module_dir)} "
            f"does not hold exactly one *{ext} file (found: {found})"
        )
        raise ArtifactNotFound(msg)

    dest = move_replacing(candidates[0], module_dir / NODE_BINDGEN_OUTPUT)
    log.debug("Recovered from nj-cli copy panic: %s -> %s", candidates[0], dest)
    return replace(result, exit_code=0, recovered_from_known_error=True)
