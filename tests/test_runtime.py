"""Tests for _runtime module and the package-level API."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

import nativelaunch
import nativelaunch._resolver as resolver_mod
import nativelaunch._runtime as runtime_mod
from nativelaunch import BackendKind, MappingSettings
from nativelaunch._probes import CommandResult
from nativelaunch._resolver import ComputeBackendResolver


class _CountingRunner:
    def __init__(self, *, cuda: bool = True) -> None:
        self.cuda = cuda
        self.calls: list[str] = []

    def __call__(self, argv: Sequence[str], timeout: float) -> CommandResult:
        key = " ".join(argv)
        self.calls.append(key)
        if key == "nvidia-smi -L" and self.cuda:
            return CommandResult(0, "GPU 0: NVIDIA L4\n")
        raise FileNotFoundError(argv[0])


@pytest.fixture(autouse=True)
def _reset_runtime(monkeypatch: pytest.MonkeyPatch) -> _CountingRunner:
    """Fresh runtime state and a fake command runner for every test."""
    runner = _CountingRunner()
    monkeypatch.setattr(resolver_mod, "run_command", runner)
    monkeypatch.setattr(resolver_mod.platform, "system", lambda: "Linux")
    monkeypatch.setattr(resolver_mod.platform, "machine", lambda: "x86_64")
    monkeypatch.setattr(runtime_mod, "_resolver_instance", None)
    monkeypatch.setattr(runtime_mod, "_uncached", ComputeBackendResolver(cache=None))
    monkeypatch.setattr("nativelaunch._gpu_nvml._HAS_PYNVML", False)
    return runner


def test_init_creates_resolver() -> None:
    resolver = nativelaunch.init(settings=MappingSettings({"compute_backend": "cpu"}))
    assert runtime_mod._resolver_instance is resolver
    assert resolver.cache is not None
    assert nativelaunch.get_backend() is BackendKind.CPU
    nativelaunch.shutdown()


def test_shutdown_clears_resolver() -> None:
    nativelaunch.init()
    nativelaunch.shutdown()
    assert runtime_mod._resolver_instance is None


def test_reinit_replaces_previous() -> None:
    first = nativelaunch.init()
    second = nativelaunch.init()
    assert second is not first
    assert runtime_mod._resolver_instance is second
    nativelaunch.shutdown()


def test_module_api_is_cached_after_init(_reset_runtime: _CountingRunner) -> None:
    nativelaunch.init()
    assert nativelaunch.available_backends() == (BackendKind.CPU, BackendKind.CUDA)
    assert nativelaunch.available_backends() == (BackendKind.CPU, BackendKind.CUDA)
    assert _reset_runtime.calls.count("nvidia-smi -L") == 1

    nativelaunch.clear_cache()
    nativelaunch.available_backends()
    assert _reset_runtime.calls.count("nvidia-smi -L") == 2
    nativelaunch.shutdown()


def test_uninitialized_still_detects(_reset_runtime: _CountingRunner) -> None:
    """Before init() probes run uncached and still give correct answers."""
    assert nativelaunch.get_backend() is BackendKind.CUDA
    assert nativelaunch.backend_available("cuda")
    assert _reset_runtime.calls.count("nvidia-smi -L") == 2


def test_uninitialized_clear_cache_is_noop() -> None:
    nativelaunch.clear_cache()


def test_init_prewarm(_reset_runtime: _CountingRunner) -> None:
    resolver = nativelaunch.init(prewarm=True)
    assert resolver.cache is not None
    assert "available_backends" in resolver.cache
    assert "nvidia_info" in resolver.cache
    calls = len(_reset_runtime.calls)
    nativelaunch.gpu_info()
    nativelaunch.get_backend()
    assert len(_reset_runtime.calls) == calls
    nativelaunch.shutdown()


def test_gpu_info_platform() -> None:
    nativelaunch.init()
    info = nativelaunch.gpu_info()
    assert info.platform == "Linux"
    assert info.nvidia.available is False  # listing command missing
    nativelaunch.shutdown()


def test_valid_backends() -> None:
    assert nativelaunch.valid_backends() == tuple(BackendKind)


def test_invalid_name_not_available() -> None:
    assert nativelaunch.backend_available("tpu") is False
