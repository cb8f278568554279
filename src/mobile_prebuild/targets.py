"""Target resolution: identifier -> platform, arch, simulator flag, compiler triple, SDK level.

TARGET_TRIPLES is the only place triples are defined; environment composition and
artifact relocation both read it through Target.triple.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from mobile_prebuild.errors import InvalidTarget, MissingToolchainRoot, UnsupportedSdkLevel


class Platform(str, Enum):
    ANDROID = "android"
    IOS = "ios"


class Arch(str, Enum):
    ARM = "arm"
    ARM64 = "arm64"
    X64 = "x64"


# identifier -> (platform, arch, simulator, triple)
TARGET_TRIPLES: dict[str, tuple[Platform, Arch, bool, str]] = {
    "android-arm": (Platform.ANDROID, Arch.ARM, False, "armv7-linux-androideabi"),
    "android-arm64": (Platform.ANDROID, Arch.ARM64, False, "aarch64-linux-android"),
    "android-x64": (Platform.ANDROID, Arch.X64, False, "x86_64-linux-android"),
    "ios-arm64": (Platform.IOS, Arch.ARM64, False, "aarch64-apple-ios"),
    "ios-arm64-simulator": (Platform.IOS, Arch.ARM64, True, "aarch64-apple-ios-sim"),
    "ios-x64": (Platform.IOS, Arch.X64, True, "x86_64-apple-ios"),
}

# Android API level / iOS major version
MIN_SDK_LEVELS: dict[Platform, int] = {
    Platform.ANDROID: 24,
    Platform.IOS: 14,
}

# arch -> Android ABI directory name (jniLibs / libnode layout)
ANDROID_ABIS: dict[Arch, str] = {
    Arch.ARM: "armeabi-v7a",
    Arch.ARM64: "arm64-v8a",
    Arch.X64: "x86_64",
}


@dataclass(frozen=True)
class Target:
    identifier: str
    platform: Platform
    arch: Arch
    simulator: bool
    triple: str
    sdk_level: int

    @property
    def is_android(self) -> bool:
        return self.platform is Platform.ANDROID

    @property
    def is_ios(self) -> bool:
        return self.platform is Platform.IOS

    @property
    def min_os_version(self) -> str:
        """Deployment target string, e.g. 14.0 (iOS)."""
        return f"{self.sdk_level}.0"

    @property
    def android_abi(self) -> str:
        return ANDROID_ABIS[self.arch]


def supported_targets() -> list[str]:
    """Supported identifiers in a stable order."""
    return list(TARGET_TRIPLES)


def resolve_target(identifier: str | None, sdk_level: int | None = None) -> Target:
    """Parse identifier and validate sdk_level. Raises InvalidTarget or UnsupportedSdkLevel; no side effects."""
    if not identifier or identifier not in TARGET_TRIPLES:
        raise InvalidTarget(identifier, supported_targets())
    platform, arch, simulator, triple = TARGET_TRIPLES[identifier]
    floor = MIN_SDK_LEVELS[platform]
    level = floor if sdk_level is None else int(sdk_level)
    if level < floor:
        raise UnsupportedSdkLevel(platform.value, level, floor)
    return Target(
        identifier=identifier,
        platform=platform,
        arch=arch,
        simulator=simulator,
        triple=triple,
        sdk_level=level,
    )


def require_toolchain_root(target: Target, config: dict[str, Any]) -> Path | None:
    """Return the NDK root for Android targets (None for iOS). Raises MissingToolchainRoot."""
    if not target.is_android:
        return None
    ndk = config.get("ndk_home")
    if not ndk:
        msg = (
            "ANDROID_NDK_HOME is not set. Cross-compiling for Android requires the NDK; "
            "set ANDROID_NDK_HOME (or ndk_home in prebuild-mobile.yaml) to its install location."
        )
        raise MissingToolchainRoot(msg)
    root = Path(ndk).expanduser()
    if not root.is_dir():
        msg = f"Android NDK not found at {root} (from ANDROID_NDK_HOME / ndk_home)"
        raise MissingToolchainRoot(msg)
    return root
