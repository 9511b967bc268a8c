"""nativelaunch: compute-backend detection and native inference-server launching."""

from __future__ import annotations

from nativelaunch._cache import DetectionCache
from nativelaunch._collaborators import ArchBinaryLocator, BinaryLocator, MappingSettings, Settings
from nativelaunch._config import LauncherConfig
from nativelaunch._errors import LaunchError
from nativelaunch._launcher import launch, spawn_executable
from nativelaunch._quote import CMD, POSIX, ShellDialect, join_command, quote_if_needed
from nativelaunch._resolver import ComputeBackendResolver
from nativelaunch._runtime import _get_resolver, init, shutdown
from nativelaunch._types import (
    BackendKind,
    GpuDevice,
    GpuInfo,
    LaunchHandle,
    LaunchRequest,
    VendorInfo,
    WindowsStrategy,
)

__version__ = "0.1.0"

__all__ = [
    "CMD",
    "POSIX",
    "ArchBinaryLocator",
    "BackendKind",
    "BinaryLocator",
    "ComputeBackendResolver",
    "DetectionCache",
    "GpuDevice",
    "GpuInfo",
    "LaunchError",
    "LaunchHandle",
    "LaunchRequest",
    "LauncherConfig",
    "MappingSettings",
    "Settings",
    "ShellDialect",
    "VendorInfo",
    "WindowsStrategy",
    "__version__",
    "available_backends",
    "backend_available",
    "clear_cache",
    "get_backend",
    "gpu_info",
    "init",
    "join_command",
    "launch",
    "quote_if_needed",
    "shutdown",
    "spawn_executable",
    "valid_backends",
]


def get_backend() -> BackendKind:
    """Resolved compute backend for the configured preference.

    Usage::

        nativelaunch.init(settings=MappingSettings({"compute_backend": "auto"}))
        backend = nativelaunch.get_backend()   # e.g. BackendKind.CUDA
    """
    return _get_resolver().get_backend()


def available_backends() -> tuple[BackendKind, ...]:
    return _get_resolver().available_backends()


def gpu_info() -> GpuInfo:
    return _get_resolver().gpu_info()


def backend_available(name: object) -> bool:
    return _get_resolver().backend_available(name)


def clear_cache() -> None:
    _get_resolver().clear_cache()


def valid_backends() -> tuple[BackendKind, ...]:
    return ComputeBackendResolver.valid_backends()
