"""Main CLI entry point for mobile-prebuild."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from mobile_prebuild.config import resolve_config
from mobile_prebuild.errors import PrebuildError
from mobile_prebuild.orchestrator import run
from mobile_prebuild.targets import supported_targets


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="mobile-prebuild",
        description="Prebuild a native Node.js addon for nodejs-mobile (Android / iOS)",
        epilog="Targets: " + ", ".join(supported_targets()),
    )
    # optional here so a missing target gets the target listing, not argparse's usage error
    ap.add_argument("target", nargs="?", default=None, help="one of: " + ", ".join(supported_targets()))
    ap.add_argument("-v", "--verbose", action="store_true", help="Stream toolchain output live")
    ap.add_argument(
        "--sdk-level",
        type=int,
        default=None,
        help="Android API level (min 24) or iOS major version (min 14); default: the minimum",
    )
    ap.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Kill the toolchain after this many seconds (default: no limit)",
    )
    ap.add_argument(
        "--module-dir",
        type=Path,
        default=Path.cwd(),
        help="Module to build (default: cwd)",
    )
    return ap


def _verbose(args: argparse.Namespace) -> bool:
    """-v, or verbose: true in the module's prebuild-mobile.yaml."""
    if args.verbose:
        return True
    try:
        return bool(resolve_config(args.module_dir.resolve())["verbose"])
    except PrebuildError:
        # run() reports the bad config
        return False


def main(argv: list[str] | None = None) -> None:
    """Parse argv, build, exit with the build's return code."""
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    if _verbose(args):
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    rc = run(
        args.target,
        args.module_dir,
        sdk_level=args.sdk_level,
        verbose=args.verbose or None,
        timeout=args.timeout,
    )
    sys.exit(rc)


if __name__ == "__main__":
    main()
