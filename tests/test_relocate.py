"""Tests for mobile_prebuild.relocate."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from mobile_prebuild.classify import ModuleType
from mobile_prebuild.config import DEFAULT_CONFIG
from mobile_prebuild.errors import ArtifactNotFound, MalformedArtifact
from mobile_prebuild.relocate import (
    IOS_BUNDLE_BINARY,
    ensure_min_os_version,
    parse_show_build,
    read_build_version,
    relocate_artifacts,
)
from mobile_prebuild.targets import resolve_target


def _built(module: Path, name: str, content: str = "binary") -> Path:
    release = module / "build" / "Release"
    release.mkdir(parents=True, exist_ok=True)
    p = release / name
    p.write_text(content)
    return p


class TestRelocateGyp:
    def test_moves_node_files(self, gyp_module: Path) -> None:
        src = _built(gyp_module, "helloworld.node")
        (gyp_module / "build" / "Release" / "helloworld.o").write_text("obj")
        out = relocate_artifacts(gyp_module, ModuleType.GYP, resolve_target("android-arm64"), DEFAULT_CONFIG)
        dest = gyp_module / "prebuilds" / "android-arm64" / "helloworld.node"
        assert out == [dest]
        assert dest.read_text() == "binary"
        assert not src.exists()
        assert not (gyp_module / "prebuilds" / "android-arm64" / "helloworld.o").exists()

    def test_replaces_existing(self, gyp_module: Path) -> None:
        dest = gyp_module / "prebuilds" / "android-arm" / "helloworld.node"
        dest.parent.mkdir(parents=True)
        dest.write_text("old")
        _built(gyp_module, "helloworld.node", "new")
        relocate_artifacts(gyp_module, ModuleType.GYP, resolve_target("android-arm"), DEFAULT_CONFIG)
        assert dest.read_text() == "new"

    def test_nothing_built(self, gyp_module: Path) -> None:
        with pytest.raises(ArtifactNotFound):
            relocate_artifacts(gyp_module, ModuleType.GYP, resolve_target("android-arm"), DEFAULT_CONFIG)


class TestRelocateCargo:
    def test_neon_index_node(self, neon_module: Path) -> None:
        (neon_module / "index.node").write_text("neon")
        out = relocate_artifacts(neon_module, ModuleType.NEON, resolve_target("android-x64"), DEFAULT_CONFIG)
        assert out == [neon_module / "prebuilds" / "android-x64" / "index.node"]
        assert out[0].read_text() == "neon"
        assert not (neon_module / "index.node").exists()

    def test_bindgen_dist_index_node(self, bindgen_module: Path) -> None:
        (bindgen_module / "dist").mkdir()
        (bindgen_module / "dist" / "index.node").write_text("bindgen")
        out = relocate_artifacts(
            bindgen_module, ModuleType.NODE_BINDGEN, resolve_target("android-arm"), DEFAULT_CONFIG
        )
        assert out[0].read_text() == "bindgen"

    def test_looks_in_the_variant_location_only(self, bindgen_module: Path) -> None:
        (bindgen_module / "index.node").write_text("wrong place for node-bindgen")
        with pytest.raises(ArtifactNotFound):
            relocate_artifacts(bindgen_module, ModuleType.NODE_BINDGEN, resolve_target("android-arm"), DEFAULT_CONFIG)


class TestIosRelocation:
    def test_gyp_output_is_wrapped_and_minos_fixed(self, gyp_module: Path, fake_vtool: list[str]) -> None:
        _built(gyp_module, "helloworld.node", "minos=12.0\nsdk=17.2\n")
        cfg = dict(DEFAULT_CONFIG, vtool_command=fake_vtool)
        out = relocate_artifacts(gyp_module, ModuleType.GYP, resolve_target("ios-arm64"), cfg)

        bundle = gyp_module / "prebuilds" / "ios-arm64" / "helloworld.node"
        assert out == [bundle]
        assert bundle.is_dir()
        assert [p.name for p in bundle.iterdir()] == [IOS_BUNDLE_BINARY]
        v = read_build_version(bundle / IOS_BUNDLE_BINARY, fake_vtool)
        assert v.minos == "14.0"
        assert v.sdk == "17.2"
        assert "platform=ios\n" in (bundle / IOS_BUNDLE_BINARY).read_text()

    def test_rerun_replaces_bundle(self, neon_module: Path, fake_vtool: list[str]) -> None:
        cfg = dict(DEFAULT_CONFIG, vtool_command=fake_vtool)
        target = resolve_target("ios-arm64-simulator")
        for sdk in ("17.0", "17.4"):
            (neon_module / "index.node").write_text(f"minos=14.0\nsdk={sdk}\n")
            (out,) = relocate_artifacts(neon_module, ModuleType.NEON, target, cfg)
        assert [p.name for p in out.iterdir()] == [IOS_BUNDLE_BINARY]
        assert read_build_version(out / IOS_BUNDLE_BINARY, fake_vtool).sdk == "17.4"

    def test_missing_sdk_is_fatal(self, neon_module: Path, fake_vtool: list[str]) -> None:
        (neon_module / "index.node").write_text("minos=12.0\n")
        cfg = dict(DEFAULT_CONFIG, vtool_command=fake_vtool)
        with pytest.raises(MalformedArtifact):
            relocate_artifacts(neon_module, ModuleType.NEON, resolve_target("ios-arm64"), cfg)


class TestEnsureMinOsVersion:
    def test_parse_show_build(self, tmp_path: Path) -> None:
        out = "x:\nLoad command 9\n      cmd LC_BUILD_VERSION\n platform IOS\n    minos 13.0\n      sdk 17.0\n"
        v = parse_show_build(out, tmp_path / "x")
        assert (v.minos, v.sdk) == ("13.0", "17.0")
        with pytest.raises(MalformedArtifact):
            parse_show_build("    minos 13.0\n      sdk n/a\n", tmp_path / "x")

    def test_already_correct_is_not_rewritten(self, tmp_path: Path) -> None:
        binary = tmp_path / "binary"
        binary.write_text("x")
        with patch("mobile_prebuild.relocate.ios_metadata.subprocess.run") as m:
            m.return_value = MagicMock(returncode=0, stdout="    minos 14.0\n      sdk 17.0\n", stderr="")
            assert ensure_min_os_version(binary, resolve_target("ios-arm64"), ["vtool"]) is False
        assert m.call_count == 1

    def test_rewrite_keeps_sdk_and_uses_simulator_platform(self, tmp_path: Path) -> None:
        binary = tmp_path / "binary"
        binary.write_text("x")
        with patch("mobile_prebuild.relocate.ios_metadata.subprocess.run") as m:
            m.side_effect = [
                MagicMock(returncode=0, stdout="    minos 11.0\n      sdk 16.4\n", stderr=""),
                MagicMock(returncode=0, stdout="", stderr=""),
            ]
            assert ensure_min_os_version(binary, resolve_target("ios-x64"), ["xcrun", "vtool"]) is True
        (cmd,) = m.call_args[0]
        assert cmd == [
            "xcrun",
            "vtool",
            "-set-build-version",
            "iossim",
            "14.0",
            "16.4",
            "-replace",
            "-output",
            str(binary),
            str(binary),
        ]

    def test_unreadable_artifact(self, tmp_path: Path) -> None:
        with patch("mobile_prebuild.relocate.ios_metadata.subprocess.run") as m:
            m.return_value = MagicMock(returncode=1, stdout="", stderr="not a Mach-O file")
            with pytest.raises(MalformedArtifact) as exc_info:
                ensure_min_os_version(tmp_path / "b", resolve_target("ios-arm64"), ["vtool"])
        assert "not a Mach-O" in str(exc_info.value)

    def test_vtool_missing(self, tmp_path: Path) -> None:
        with pytest.raises(MalformedArtifact):
            ensure_min_os_version(tmp_path / "b", resolve_target("ios-arm64"), ["no-such-vtool-binary-xyz"])

    def test_failed_rewrite(self, tmp_path: Path) -> None:
        with patch("mobile_prebuild.relocate.ios_metadata.subprocess.run") as m:
            m.side_effect = [
                MagicMock(returncode=0, stdout="    minos 11.0\n      sdk 16.4\n", stderr=""),
                MagicMock(returncode=1, stdout="", stderr="boom"),
            ]
            with pytest.raises(MalformedArtifact):
                ensure_min_os_version(tmp_path / "b", resolve_target("ios-arm64"), ["vtool"])
