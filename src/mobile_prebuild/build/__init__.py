"""Toolchain invocation (node-gyp, cargo-cp-artifact, nj-cli) and known-failure recovery."""

from .driver import (
    NEON_OUTPUT,
    BuildResult,
    build_command,
    run_build,
)
from .recovery import (
    NODE_BINDGEN_OUTPUT,
    is_known_copy_panic,
    library_extension,
    recover_known_copy_panic,
    release_dir,
)

__all__ = [
    "NEON_OUTPUT",
    "NODE_BINDGEN_OUTPUT",
    "BuildResult",
    "build_command",
    "is_known_copy_panic",
    "library_extension",
    "recover_known_copy_panic",
    "release_dir",
    "run_build",
]
