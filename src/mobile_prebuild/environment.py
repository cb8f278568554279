"""Toolchain environment for node-gyp and cargo cross builds.

Precedence: defaults < platform overrides, merged over the caller's environment.
The caller's environment is the base layer: it fills keys we do not set and never
replaces a key we do set (CC, GYP_DEFINES, CARGO_TARGET_*_LINKER, ...).
"""

from __future__ import annotations

import logging
import os
import platform
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from mobile_prebuild.classify import ModuleType
from mobile_prebuild.errors import UnsupportedHostPlatform
from mobile_prebuild.targets import Arch, Target, require_toolchain_root

log = logging.getLogger(__name__)

NDK_HOST_TAGS: dict[str, str] = {
    "Linux": "linux-x86_64",
    "Darwin": "darwin-x86_64",
}

ANDROID_COMPILER_PREFIXES: dict[Arch, str] = {
    Arch.ARM: "armv7a-linux-androideabi",
    Arch.ARM64: "aarch64-linux-android",
    Arch.X64: "x86_64-linux-android",
}


class LayeredEnvironment:
    """Ordered named layers; later layers win. ``merged`` puts the inherited env underneath."""

    def __init__(self) -> None:
        self._layers: list[tuple[str, dict[str, str]]] = []

    def layer(self, name: str) -> dict[str, str]:
        values: dict[str, str] = {}
        self._layers.append((name, values))
        return values

    def owned(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for _name, values in self._layers:
            out.update(values)
        return out

    def merged(self, inherited: Mapping[str, str]) -> dict[str, str]:
        out = dict(inherited)
        out.update(self.owned())
        return out


def ndk_host_tag(system: str | None = None) -> str:
    """NDK prebuilt host directory for this machine. Only Linux and macOS hosts are supported."""
    system = system or platform.system()
    tag = NDK_HOST_TAGS.get(system)
    if tag is None:
        msg = f"Cross-compiling for Android is only supported on Linux and macOS hosts, not {system}"
        raise UnsupportedHostPlatform(msg)
    return tag


def android_compiler_prefix(target: Target) -> str:
    """E.g. aarch64-linux-android24."""
    return f"{ANDROID_COMPILER_PREFIXES[target.arch]}{target.sdk_level}"


def android_toolchain_bin(ndk_root: Path, system: str | None = None) -> Path:
    return ndk_root / "toolchains" / "llvm" / "prebuilt" / ndk_host_tag(system) / "bin"


def cargo_target_var(triple: str, suffix: str) -> str:
    """CARGO_TARGET_<TRIPLE>_<SUFFIX> as cargo spells it."""
    return f"CARGO_TARGET_{triple.upper().replace('-', '_')}_{suffix}"


def _gyp_defines(target: Target) -> str:
    arch = target.arch.value
    parts = [f"OS={target.platform.value}", f"target_arch={arch}", f"v8_target_arch={arch}"]
    if target.is_android:
        parts.append(f"android_target_arch={arch}")
    else:
        parts.append(f"iossim={'true' if target.simulator else 'false'}")
    return " ".join(parts)


def _defaults(target: Target, config: dict[str, Any]) -> dict[str, str]:
    out = {
        "GYP_DEFINES": _gyp_defines(target),
        "npm_config_platform": target.platform.value,
        "npm_config_arch": target.arch.value,
        "npm_config_node_engine": "v8",
        "npm_config_format": f"make-{target.platform.value}",
    }
    if config.get("nodedir"):
        out["npm_config_nodedir"] = str(config["nodedir"])
    return out


def _android(
    target: Target,
    module_type: ModuleType,
    ndk_root: Path,
    system: str | None,
) -> dict[str, str]:
    bin_dir = android_toolchain_bin(ndk_root, system)
    prefix = android_compiler_prefix(target)
    cc = str(bin_dir / f"{prefix}-clang")
    cxx = str(bin_dir / f"{prefix}-clang++")
    ar = str(bin_dir / "llvm-ar")
    ranlib = str(bin_dir / "llvm-ranlib")
    out = {
        "CC": cc,
        "CXX": cxx,
        "LINK": cxx,
        "AR": ar,
        "RANLIB": ranlib,
        "CC_target": cc,
        "CXX_target": cxx,
        "LINK_target": cxx,
        "AR_target": ar,
    }
    if module_type.is_cargo:
        cc_suffix = target.triple.replace("-", "_")
        out[cargo_target_var(target.triple, "LINKER")] = cc
        out[cargo_target_var(target.triple, "AR")] = ar
        out[f"CC_{cc_suffix}"] = cc
        out[f"CXX_{cc_suffix}"] = cxx
        out[f"AR_{cc_suffix}"] = ar
    return out


def _ios(target: Target, module_type: ModuleType) -> dict[str, str]:
    out = {"IPHONEOS_DEPLOYMENT_TARGET": target.min_os_version}
    if module_type is ModuleType.GYP:
        out["npm_config_ios_simulator"] = "true" if target.simulator else "false"
    return out


def compose_environment(
    target: Target,
    module_type: ModuleType,
    config: dict[str, Any],
    inherited: Mapping[str, str] | None = None,
    system: str | None = None,
) -> dict[str, str]:
    """Full environment for the build subprocess. system overrides platform.system() (tests)."""
    layers = LayeredEnvironment()
    layers.layer("defaults").update(_defaults(target, config))
    platform_layer = layers.layer("platform")
    if target.is_android:
        ndk_root = require_toolchain_root(target, config)
        platform_layer.update(_android(target, module_type, ndk_root, system))
    else:
        platform_layer.update(_ios(target, module_type))

    owned = layers.owned()
    for key in sorted(owned):
        log.debug("env %s=%s", key, owned[key])
    return layers.merged(os.environ if inherited is None else inherited)
