"""Launcher configuration."""

from __future__ import annotations

from dataclasses import dataclass

from nativelaunch._types import WindowsStrategy


@dataclass(frozen=True)
class LauncherConfig:
    """Immutable detection and launch configuration."""

    settings_key: str = "compute_backend"
    probe_timeout_s: float = 5.0
    prefer_nvml: bool = True
    directml_server_name: str = "llama-server"
    windows_strategy: WindowsStrategy = WindowsStrategy.DIRECT
    backend_dir_env: str = "GGML_BACKEND_DIR"
    critical_library: str | None = None  # None: platform default
    scratch_dir: str | None = None
