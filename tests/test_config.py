"""Tests for _config module."""

from nativelaunch._config import LauncherConfig
from nativelaunch._types import WindowsStrategy


def test_config_defaults() -> None:
    cfg = LauncherConfig()
    assert cfg.settings_key == "compute_backend"
    assert cfg.probe_timeout_s == 5.0
    assert cfg.prefer_nvml is True
    assert cfg.directml_server_name == "llama-server"
    assert cfg.windows_strategy is WindowsStrategy.DIRECT
    assert cfg.backend_dir_env == "GGML_BACKEND_DIR"
    assert cfg.critical_library is None
    assert cfg.scratch_dir is None


def test_config_custom_values() -> None:
    cfg = LauncherConfig(
        settings_key="backend",
        probe_timeout_s=1.5,
        prefer_nvml=False,
        windows_strategy=WindowsStrategy.SCRIPT,
        critical_library="whisper.dll",
        scratch_dir="C:\\Temp",
    )
    assert cfg.settings_key == "backend"
    assert cfg.probe_timeout_s == 1.5
    assert cfg.prefer_nvml is False
    assert cfg.windows_strategy is WindowsStrategy.SCRIPT
    assert cfg.critical_library == "whisper.dll"
    assert cfg.scratch_dir == "C:\\Temp"


def test_config_is_frozen() -> None:
    cfg = LauncherConfig()
    try:
        cfg.settings_key = "changed"  # type: ignore[misc]
        assert False, "Should have raised"
    except AttributeError:
        pass
