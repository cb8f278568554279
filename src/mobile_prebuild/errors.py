"""Error taxonomy for mobile-prebuild.

Helpers raise; only ``orchestrator.run`` catches ``PrebuildError`` and turns it into an exit code.
"""

from __future__ import annotations


class PrebuildError(Exception):
    """Base class. ``exit_code`` is what the CLI exits with."""

    exit_code = 1


# --- Pre-flight (nothing touched yet) ---


class InvalidTarget(PrebuildError, ValueError):
    def __init__(self, target: str | None, supported: list[str]) -> None:
        self.target = target
        self.supported = list(supported)
        listing = "\n".join(f"  * {t}" for t in self.supported)
        if not target:
            msg = f"Must specify a target, one of these:\n{listing}"
        else:
            msg = f'Invalid target "{target}", must be one of these:\n{listing}'
        super().__init__(msg)


class UnsupportedSdkLevel(PrebuildError, ValueError):
    def __init__(self, platform: str, level: int, floor: int) -> None:
        self.platform = platform
        self.level = level
        self.floor = floor
        super().__init__(f"SDK level {level} is below the minimum {floor} supported for {platform}")


class MissingToolchainRoot(PrebuildError):
    pass


class UnsupportedHostPlatform(PrebuildError):
    pass


# --- Classification ---


class NoNativeModuleFound(PrebuildError):
    pass


class ManifestError(PrebuildError, ValueError):
    pass


# --- Patching ---


class DuplicateLinkageDeclaration(PrebuildError):
    pass


class ConcurrentRunDetected(PrebuildError):
    pass


# --- Build ---


class ToolchainInvocationFailed(PrebuildError, RuntimeError):
    """Nonzero toolchain exit. Carries the toolchain's exit code and captured stderr.

    ``streamed`` is True when stderr_lines were already echoed live (verbose run).
    """

    def __init__(
        self,
        exit_code: int,
        stderr_lines: list[str] | None = None,
        message: str = "",
        streamed: bool = False,
    ) -> None:
        self.exit_code = exit_code
        self.stderr_lines = list(stderr_lines or [])
        self.streamed = streamed
        super().__init__(message or f"Build failed with exit code {exit_code}")


class ToolchainTimeout(ToolchainInvocationFailed):
    def __init__(self, timeout: float, stderr_lines: list[str] | None = None, streamed: bool = False) -> None:
        self.timeout = timeout
        super().__init__(124, stderr_lines, f"Build timed out after {timeout:g}s", streamed=streamed)


# --- Post-build ---


class MalformedArtifact(PrebuildError):
    pass


class ArtifactNotFound(PrebuildError):
    pass
