"""Read and fix the Mach-O LC_BUILD_VERSION of an iOS artifact with vtool."""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path

from mobile_prebuild.errors import MalformedArtifact
from mobile_prebuild.targets import Target

log = logging.getLogger(__name__)

_MINOS = re.compile(r"^\s*minos\s+(\S+)\s*$", re.MULTILINE)
_SDK = re.compile(r"^\s*sdk\s+(\S+)\s*$", re.MULTILINE)


@dataclass(frozen=True)
class BuildVersion:
    minos: str | None
    sdk: str


def vtool_platform(target: Target) -> str:
    return "iossim" if target.simulator else "ios"


def parse_show_build(output: str, binary: Path) -> BuildVersion:
    """Parse `vtool -show-build` output. MalformedArtifact when the SDK version is missing."""
    sdk = _SDK.search(output)
    if not sdk or sdk.group(1).lower() == "n/a":
        msg = f"{binary} has no SDK version in its build-version metadata"
        raise MalformedArtifact(msg)
    minos = _MINOS.search(output)
    return BuildVersion(minos=minos.group(1) if minos else None, sdk=sdk.group(1))


def read_build_version(binary: Path, vtool: list[str]) -> BuildVersion:
    r = subprocess.run(
        [*vtool, "-show-build", str(binary)],
        capture_output=True,
        text=True,
    )
    if r.returncode != 0:
        msg = f"Could not read build version of {binary}: {(r.stderr or r.stdout).strip()}"
        raise MalformedArtifact(msg)
    return parse_show_build(r.stdout, binary)


def ensure_min_os_version(binary: Path, target: Target, vtool: list[str]) -> bool:
    """Set minos to the target's deployment version, keeping the SDK version. Returns True if rewritten."""
    try:
        current = read_build_version(binary, vtool)
    except FileNotFoundError as e:
        msg = f"Could not run {vtool[0]} to inspect {binary}: {e}"
        raise MalformedArtifact(msg) from e

    wanted = target.min_os_version
    if current.minos == wanted:
        log.debug("%s: minos already %s", binary, wanted)
        return False

    r = subprocess.run(
        [
            *vtool,
            "-set-build-version",
            vtool_platform(target),
            wanted,
            current.sdk,
            "-replace",
            "-output",
            str(binary),
            str(binary),
        ],
        capture_output=True,
        text=True,
    )
    if r.returncode != 0:
        msg = f"Could not set minos {wanted} on {binary}: {(r.stderr or r.stdout).strip()}"
        raise MalformedArtifact(msg)
    log.debug("%s: minos %s -> %s (sdk %s)", binary, current.minos, wanted, current.sdk)
    return True
