"""Tests for settings and binary-location adapters."""

import os

from nativelaunch._collaborators import (
    ArchBinaryLocator,
    BinaryLocator,
    MappingSettings,
    Settings,
)


class TestMappingSettings:
    def test_get(self) -> None:
        settings = MappingSettings({"compute_backend": "cuda"})
        assert settings.get("compute_backend") == "cuda"
        assert settings.get("missing") is None

    def test_empty(self) -> None:
        assert MappingSettings().get("compute_backend") is None

    def test_copies_input(self) -> None:
        values = {"compute_backend": "cuda"}
        settings = MappingSettings(values)
        values["compute_backend"] = "cpu"
        assert settings.get("compute_backend") == "cuda"

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MappingSettings(), Settings)


class TestArchBinaryLocator:
    def test_windows_path(self) -> None:
        locator = ArchBinaryLocator("root", system="Windows", machine="AMD64")
        assert locator.target == "windows-x86_64"
        assert locator.arch_bin_path("llama-server", "directml") == os.path.join(
            "root", "directml", "windows-x86_64", "llama-server.exe",
        )

    def test_exe_suffix_not_doubled(self) -> None:
        locator = ArchBinaryLocator("root", system="Windows", machine="ARM64")
        assert locator.arch_bin_path("llama-server.exe", "cuda").endswith("llama-server.exe")
        assert not locator.arch_bin_path("llama-server.exe", "cuda").endswith(".exe.exe")

    def test_macos_arm(self) -> None:
        locator = ArchBinaryLocator("/opt/app", system="Darwin", machine="arm64")
        assert locator.arch_bin_path("llama-server", "metal") == os.path.join(
            "/opt/app", "metal", "macos-arm64", "llama-server",
        )

    def test_linux_aarch64_alias(self) -> None:
        locator = ArchBinaryLocator("/opt/app", system="Linux", machine="aarch64")
        assert locator.target == "linux-arm64"

    def test_satisfies_protocol(self) -> None:
        assert isinstance(ArchBinaryLocator("/opt/app"), BinaryLocator)
