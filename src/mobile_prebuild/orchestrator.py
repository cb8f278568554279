"""Build a native addon for one mobile target and place it under prebuilds/<target>/.

Pipeline: resolve target -> load config -> pre-flight checks -> classify ->
compose environment -> (patch -> build -> restore) -> recover -> relocate.

Nothing is written to the module before the pre-flight checks pass. Patches are
restored on every exit path. Precondition: one run per module directory at a time;
the backup files make a second concurrent run fail with ConcurrentRunDetected.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from contextlib import ExitStack
from pathlib import Path
from typing import Any

from mobile_prebuild.build import build_command, recover_known_copy_panic, run_build
from mobile_prebuild.classify import ModuleType, classify_module
from mobile_prebuild.config import resolve_config
from mobile_prebuild.environment import compose_environment, ndk_host_tag
from mobile_prebuild.errors import MissingToolchainRoot, PrebuildError, ToolchainInvocationFailed
from mobile_prebuild.helpers import display_path
from mobile_prebuild.patch import patched_cargo_for_android, patched_package_manifest
from mobile_prebuild.relocate import relocate_artifacts
from mobile_prebuild.targets import Target, require_toolchain_root, resolve_target

log = logging.getLogger(__name__)


def _require_libnode(target: Target, module_type: ModuleType, config: dict[str, Any]) -> Path | None:
    if not (target.is_android and module_type is ModuleType.NODE_BINDGEN):
        return None
    libnode = config.get("libnode_dir")
    if not libnode:
        msg = (
            "node-bindgen modules for Android link against nodejs-mobile's libnode.so; "
            "set PREBUILD_LIBNODE_DIR (or libnode_dir in prebuild-mobile.yaml) to the "
            "directory holding <abi>/libnode.so"
        )
        raise MissingToolchainRoot(msg)
    libnode_dir = Path(libnode).expanduser().resolve()
    if not (libnode_dir / target.android_abi / "libnode.so").is_file():
        msg = f"libnode.so not found at {libnode_dir / target.android_abi}"
        raise MissingToolchainRoot(msg)
    return libnode_dir


def build_prebuild(
    target_id: str | None,
    module_dir: Path,
    *,
    sdk_level: int | None = None,
    verbose: bool | None = None,
    timeout: float | None = None,
    environ: Mapping[str, str] | None = None,
    system: str | None = None,
) -> list[Path]:
    """Run the whole pipeline. Returns the relocated artifact paths; raises PrebuildError."""
    target = resolve_target(target_id, sdk_level)
    module_dir = module_dir.resolve()
    config = resolve_config(module_dir, environ, {"verbose": verbose, "timeout": timeout})

    if target.is_android:
        require_toolchain_root(target, config)
        ndk_host_tag(system)
    module_type = classify_module(module_dir)
    libnode_dir = _require_libnode(target, module_type, config)
    log.debug("Building %s module %s for %s (%s)", module_type.value, module_dir, target.identifier, target.triple)

    env = compose_environment(target, module_type, config, inherited=environ, system=system)

    with ExitStack() as patches:
        manifest_patched = False
        if module_type is ModuleType.GYP:
            record = patches.enter_context(patched_package_manifest(module_dir, config["gyp_command"]))
            manifest_patched = record.applied
        elif libnode_dir is not None:
            patches.enter_context(patched_cargo_for_android(module_dir, target, libnode_dir))

        cmd = build_command(module_type, target, config, manifest_patched=manifest_patched)
        result = run_build(cmd, module_dir, env, verbose=config["verbose"], timeout=config["timeout"])

    result = recover_known_copy_panic(result, module_type, target, module_dir)
    if result.recovered_from_known_error:
        print("Info:  nj-cli failed to copy its output; recovered the library from the release directory")
    if not result.ok:
        raise ToolchainInvocationFailed(result.exit_code, result.stderr_lines, streamed=config["verbose"])

    return relocate_artifacts(module_dir, module_type, target, config)


def run(
    target_id: str | None,
    module_dir: Path | None = None,
    *,
    sdk_level: int | None = None,
    verbose: bool | None = None,
    timeout: float | None = None,
) -> int:
    """Build and print BUILT <path> per artifact. Returns 0, the toolchain's exit code, or 1."""
    root = (module_dir or Path.cwd()).resolve()
    try:
        artifacts = build_prebuild(
            target_id,
            root,
            sdk_level=sdk_level,
            verbose=verbose,
            timeout=timeout,
        )
    except ToolchainInvocationFailed as e:
        print(f"❌ {e}", file=sys.stderr)
        if not e.streamed:
            for line in e.stderr_lines:
                print(line, file=sys.stderr)
        return e.exit_code
    except PrebuildError as e:
        print(f"❌ {e}", file=sys.stderr)
        return e.exit_code

    for a in artifacts:
        print(f"BUILT {display_path(a, root)}")
    return 0
