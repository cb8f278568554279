"""Pytest fixtures for mobile-prebuild tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

FAKE_VTOOL = '''\
"""Stand-in for `xcrun vtool`: build-version metadata lives in the file as key=value lines."""
import sys
from pathlib import Path

args = sys.argv[1:]
if args[0] == "-show-build":
    path = Path(args[1])
    meta = dict(line.split("=", 1) for line in path.read_text().splitlines() if "=" in line)
    print(f"{path}:")
    print("Load command 9")
    print("      cmd LC_BUILD_VERSION")
    print(" platform IOS")
    if "minos" in meta:
        print(f"    minos {meta['minos']}")
    if "sdk" in meta:
        print(f"      sdk {meta['sdk']}")
    sys.exit(0)
if args[0] == "-set-build-version":
    platform, minos, sdk = args[1:4]
    out = Path(args[args.index("-output") + 1])
    out.write_text(f"platform={platform}\\nminos={minos}\\nsdk={sdk}\\n")
    sys.exit(0)
sys.exit(2)
'''


def write_package_json(module_dir: Path, data: dict) -> Path:
    p = module_dir / "package.json"
    p.write_text(json.dumps(data, indent=2) + "\n")
    return p


@pytest.fixture
def gyp_module(tmp_path: Path) -> Path:
    """helloworld-style node-gyp module: install hook + binding.gyp."""
    module = tmp_path / "helloworld"
    module.mkdir()
    write_package_json(
        module,
        {
            "name": "helloworld",
            "version": "1.0.0",
            "scripts": {"install": "node-gyp rebuild"},
        },
    )
    (module / "binding.gyp").write_text("{'targets': [{'target_name': 'helloworld', 'sources': ['hello.cc']}]}\n")
    return module


@pytest.fixture
def bindgen_module(tmp_path: Path) -> Path:
    module = tmp_path / "curve25519-scalarmult-rsjs"
    module.mkdir()
    write_package_json(
        module,
        {"name": "curve25519-scalarmult-rsjs", "scripts": {"install": "nj-cli build --release"}},
    )
    (module / "Cargo.toml").write_text(
        '[package]\nname = "curve25519"\nversion = "0.1.0"\nedition = "2021"\n\n'
        '[lib]\ncrate-type = ["cdylib"]\n\n'
        '[dependencies]\nnode-bindgen = { version = "6.0" }\n'
    )
    return module


@pytest.fixture
def neon_module(tmp_path: Path) -> Path:
    module = tmp_path / "curve25519-scalarmult-neon"
    module.mkdir()
    write_package_json(
        module,
        {
            "name": "curve25519-scalarmult-neon",
            "scripts": {"install": "cargo-cp-artifact -nc index.node -- cargo build --message-format=json-render-diagnostics"},
        },
    )
    (module / "Cargo.toml").write_text(
        '[package]\nname = "curve25519"\nversion = "0.1.0"\n\n[dependencies.neon]\nversion = "0.10"\n'
    )
    return module


@pytest.fixture
def ndk(tmp_path: Path) -> Path:
    root = tmp_path / "ndk"
    (root / "toolchains" / "llvm" / "prebuilt" / "linux-x86_64" / "bin").mkdir(parents=True)
    return root


@pytest.fixture
def libnode(tmp_path: Path) -> Path:
    root = tmp_path / "libnode"
    for abi in ("armeabi-v7a", "arm64-v8a", "x86_64"):
        (root / abi).mkdir(parents=True)
        (root / abi / "libnode.so").write_bytes(b"\x7fELF")
    return root


@pytest.fixture
def fake_vtool(tmp_path: Path) -> list[str]:
    script = tmp_path / "fake_vtool.py"
    script.write_text(FAKE_VTOOL)
    return [sys.executable, str(script)]
