"""Artifact relocation into prebuilds/<target>/ plus iOS bundle wrapping and Mach-O metadata fixes."""

from .artifacts import (
    IOS_BUNDLE_BINARY,
    PREBUILDS_DIR,
    cargo_output_path,
    prebuilds_dir,
    relocate_artifacts,
    wrap_ios_bundle,
)
from .ios_metadata import (
    BuildVersion,
    ensure_min_os_version,
    parse_show_build,
    read_build_version,
)

__all__ = [
    "IOS_BUNDLE_BINARY",
    "PREBUILDS_DIR",
    "BuildVersion",
    "cargo_output_path",
    "ensure_min_os_version",
    "parse_show_build",
    "prebuilds_dir",
    "read_build_version",
    "relocate_artifacts",
    "wrap_ios_bundle",
]
