"""Spawn the toolchain, collect its output, and interpret the exit status.

Verbose mode echoes stdout and stderr live. Each pipe has its own reader thread so a
full pipe on one side cannot stall the other; both readers finish (EOF) before we wait
on the process. Quiet mode discards stdout and keeps stderr for the failure report.
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import sys
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from mobile_prebuild.classify import ModuleType
from mobile_prebuild.errors import ToolchainInvocationFailed, ToolchainTimeout
from mobile_prebuild.targets import Target

log = logging.getLogger(__name__)

NEON_OUTPUT = "index.node"


@dataclass
class BuildResult:
    exit_code: int
    stderr_lines: list[str] = field(default_factory=list)
    recovered_from_known_error: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def build_command(
    module_type: ModuleType,
    target: Target,
    config: dict[str, Any],
    manifest_patched: bool = False,
) -> list[str]:
    """argv for the toolchain. A patched install hook is run through npm instead of calling gyp directly."""
    if module_type is ModuleType.GYP:
        if manifest_patched:
            return ["npm", "run", "install"]
        return [*shlex.split(config["gyp_command"]), "rebuild"]
    if module_type is ModuleType.NEON:
        return [
            "npx",
            "cargo-cp-artifact",
            "-nc",
            NEON_OUTPUT,
            "--",
            "cargo",
            "build",
            "--message-format=json-render-diagnostics",
            "--release",
            "--target",
            target.triple,
        ]
    return ["nj-cli", "build", "--release", "--target", target.triple]


def _drain(stream: IO[str], sink: IO[str], keep: list[str] | None) -> None:
    for line in iter(stream.readline, ""):
        sink.write(line)
        sink.flush()
        if keep is not None:
            keep.append(line.rstrip("\n"))
    stream.close()


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def _spawn(cmd: list[str], cwd: Path, env: Mapping[str, str], verbose: bool) -> subprocess.Popen[str]:
    try:
        # own process group, so a timeout also reaches the toolchain's children
        return subprocess.Popen(
            cmd,
            cwd=str(cwd),
            env=dict(env),
            stdout=subprocess.PIPE if verbose else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=True,
        )
    except FileNotFoundError as e:
        raise ToolchainInvocationFailed(127, [str(e)], f"Could not run {cmd[0]}: not found on PATH") from e


def _kill_tree(proc: subprocess.Popen[str]) -> None:
    """SIGKILL the child's whole process group; grandchildren hold our pipes open otherwise."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    proc.kill()
    proc.wait()


def run_build(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str],
    verbose: bool = False,
    timeout: float | None = None,
) -> BuildResult:
    """Run cmd to completion. Returns BuildResult; raises ToolchainTimeout if timeout expires."""
    log.debug("Running %s in %s", shlex.join(cmd), cwd)
    proc = _spawn(cmd, cwd, env, verbose)
    stderr_lines: list[str] = []

    if verbose:
        stdout, stderr = proc.stdout, proc.stderr
        if stdout is None or stderr is None:
            _kill_tree(proc)
            raise ToolchainInvocationFailed(1, [], f"Could not attach to the output of {cmd[0]}")
        with ThreadPoolExecutor(max_workers=2) as pool:
            readers = [
                pool.submit(_drain, stdout, sys.stdout, None),
                pool.submit(_drain, stderr, sys.stderr, stderr_lines),
            ]
            deadline = None if timeout is None else time.monotonic() + timeout
            try:
                for r in readers:
                    r.result(timeout=_remaining(deadline))
                code = proc.wait(timeout=_remaining(deadline))
            except (TimeoutError, subprocess.TimeoutExpired) as e:
                _kill_tree(proc)
                raise ToolchainTimeout(timeout or 0, stderr_lines, streamed=True) from e
    else:
        try:
            _out, err = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            _kill_tree(proc)
            _out, err = proc.communicate()
            raise ToolchainTimeout(timeout or 0, (err or "").splitlines()) from e
        stderr_lines = (err or "").splitlines()
        code = proc.returncode

    if code < 0:
        # killed by signal N: report 128+N like a shell
        code = 128 - code
    log.debug("%s exited with %s", cmd[0], code)
    return BuildResult(exit_code=code, stderr_lines=stderr_lines)
