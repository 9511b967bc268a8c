"""Tests for _types module."""

import dataclasses

import pytest

from nativelaunch._types import (
    BACKEND_PRIORITY,
    RESOLVABLE_BACKENDS,
    BackendKind,
    GpuDevice,
    GpuInfo,
    LaunchRequest,
    VendorInfo,
    WindowsStrategy,
)


def test_backend_kind_values() -> None:
    assert [b.value for b in BackendKind] == ["auto", "cpu", "cuda", "metal", "directml", "rocm"]


def test_backend_kind_compares_to_str() -> None:
    assert BackendKind.CUDA == "cuda"


@pytest.mark.parametrize("value", ["cuda", BackendKind.CUDA])
def test_parse_valid(value: object) -> None:
    assert BackendKind.parse(value) is BackendKind.CUDA


@pytest.mark.parametrize("value", ["Cuda", "opencl", "", None, 1, ["cuda"]])
def test_parse_invalid_returns_none(value: object) -> None:
    assert BackendKind.parse(value) is None


def test_auto_never_resolvable() -> None:
    assert BackendKind.AUTO not in RESOLVABLE_BACKENDS
    assert BackendKind.AUTO not in BACKEND_PRIORITY
    assert len(RESOLVABLE_BACKENDS) == 5


def test_priority_order() -> None:
    assert BACKEND_PRIORITY == (
        BackendKind.CUDA, BackendKind.METAL, BackendKind.DIRECTML, BackendKind.ROCM,
    )


def test_windows_strategy_values() -> None:
    assert {s.value for s in WindowsStrategy} == {"direct", "shell", "script"}


def test_gpu_device_default_memory() -> None:
    assert GpuDevice("Tesla T4").memory == "unknown"


def test_vendor_info_unavailable() -> None:
    info = VendorInfo.unavailable()
    assert info.available is False
    assert info.gpus == ()
    assert info.to_dict() == {"available": False, "gpus": []}


def test_gpu_info_to_dict() -> None:
    info = GpuInfo(
        nvidia=VendorInfo(True, (GpuDevice("RTX 4090", "24564 MiB"),)),
        amd=VendorInfo.unavailable(),
        apple=VendorInfo.unavailable(),
        platform="Linux",
    )
    assert info.to_dict() == {
        "nvidia": {"available": True, "gpus": [{"name": "RTX 4090", "memory": "24564 MiB"}]},
        "amd": {"available": False, "gpus": []},
        "apple": {"available": False, "gpus": []},
        "platform": "Linux",
    }


def test_apple_chip_in_dict() -> None:
    info = VendorInfo(True, (GpuDevice("Apple M2", "16 GB"),), chip="Apple M2")
    assert info.to_dict()["chip"] == "Apple M2"


def test_gpu_info_is_frozen() -> None:
    info = GpuInfo(VendorInfo.unavailable(), VendorInfo.unavailable(),
                   VendorInfo.unavailable(), "Linux")
    with pytest.raises(dataclasses.FrozenInstanceError):
        info.platform = "macOS"  # type: ignore[misc]


def test_launch_request_bin_dir_defaults_to_exe_dir() -> None:
    request = LaunchRequest(executable="/opt/llama/cuda/llama-server")
    assert request.resolved_bin_dir == "/opt/llama/cuda"


def test_launch_request_explicit_bin_dir() -> None:
    request = LaunchRequest(executable="/opt/llama-server", bin_dir="/opt/libs")
    assert request.resolved_bin_dir == "/opt/libs"


def test_launch_request_bare_name() -> None:
    assert LaunchRequest(executable="llama-server").resolved_bin_dir == "."
