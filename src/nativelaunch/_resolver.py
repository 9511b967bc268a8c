"""Compute backend resolution: user preference + cached hardware detection."""

from __future__ import annotations

import logging
import platform
from collections.abc import Callable
from typing import Any, TypeVar

from nativelaunch import _gpu_nvml
from nativelaunch._cache import DetectionCache
from nativelaunch._collaborators import BinaryLocator, Settings
from nativelaunch._config import LauncherConfig
from nativelaunch._probes import (
    AVAILABILITY_PROBES,
    CommandRunner,
    ProbeContext,
    apple_info,
    nvidia_smi_devices,
    platform_backends,
    platform_name,
    rocm_devices,
    run_command,
)
from nativelaunch._types import (
    BACKEND_PRIORITY,
    BackendKind,
    GpuInfo,
    VendorInfo,
)

logger = logging.getLogger("nativelaunch.backend")

T = TypeVar("T")

_UNSET: Any = object()


class ComputeBackendResolver:
    """Detects usable compute backends and applies the user's preference.

    Usage::

        resolver = ComputeBackendResolver(settings=MappingSettings({"compute_backend": "cuda"}))
        resolver.get_backend()         # BackendKind.CUDA, or a fallback
        resolver.available_backends()  # (BackendKind.CPU, BackendKind.CUDA)

    Passing ``cache=None`` disables caching: every query runs its probes.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        cache: DetectionCache | None = _UNSET,
        locator: BinaryLocator | None = None,
        config: LauncherConfig | None = None,
        system: str | None = None,
        machine: str | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.config = config or LauncherConfig()
        self._settings = settings
        self._cache: DetectionCache | None = DetectionCache() if cache is _UNSET else cache
        self._ctx = ProbeContext(
            system=(system if system is not None else platform.system()).lower(),
            machine=(machine if machine is not None else platform.machine()).lower(),
            run=runner or run_command,
            timeout=self.config.probe_timeout_s,
            locator=locator,
            directml_server_name=self.config.directml_server_name,
        )

    @property
    def cache(self) -> DetectionCache | None:
        return self._cache

    @property
    def system(self) -> str:
        return self._ctx.system

    # --- public API ---

    def get_backend(self) -> BackendKind:
        """Resolved backend for the stored preference; never ``auto``."""
        pref = self._settings.get(self.config.settings_key) if self._settings is not None else None
        return self.resolve_backend(pref if pref is not None else BackendKind.AUTO.value)

    def resolve_backend(self, preference: object) -> BackendKind:
        backend = BackendKind.parse(preference)
        if backend is BackendKind.AUTO:
            return self._detect_best_backend()
        if backend is None:
            logger.warning("Invalid backend %r, using auto-detection", preference)
            return self._detect_best_backend()
        if backend in self.available_backends():
            return backend
        logger.warning("Preferred backend '%s' not available, using auto-detection", backend.value)
        return self._detect_best_backend()

    def available_backends(self) -> tuple[BackendKind, ...]:
        """Usable backends on this platform, ``cpu`` always first."""
        return self._cached("available_backends", self._detect_platform_backends)

    def backend_available(self, name: object) -> bool:
        backend = BackendKind.parse(name)
        if backend is None:
            return False
        return backend in self.available_backends()

    def gpu_info(self) -> GpuInfo:
        return GpuInfo(
            nvidia=self._nvidia_info(),
            amd=self._amd_info(),
            apple=self._apple_info(),
            platform=platform_name(self._ctx.system),
        )

    def clear_cache(self) -> None:
        """Forget all detection results, e.g. after a driver change."""
        if self._cache is not None:
            self._cache.clear()
            logger.info("Detection cache cleared")

    @staticmethod
    def valid_backends() -> tuple[BackendKind, ...]:
        return tuple(BackendKind)

    def prewarm(self) -> None:
        """Run every probe now so later queries are served from the cache."""
        self.available_backends()
        self.gpu_info()

    # --- detection ---

    def _detect_platform_backends(self) -> tuple[BackendKind, ...]:
        backends = [BackendKind.CPU]
        for backend, probe_key in platform_backends(self._ctx.system):
            if self._probe(probe_key):
                backends.append(backend)
        logger.debug("Available backends on %s: %s", self._ctx.system,
                     [b.value for b in backends])
        return tuple(backends)

    def _detect_best_backend(self) -> BackendKind:
        available = self.available_backends()
        for backend in BACKEND_PRIORITY:
            if backend in available:
                return backend
        return BackendKind.CPU

    def _probe(self, key: str) -> bool:
        probe = AVAILABILITY_PROBES[key]
        return self._fail_soft(key, lambda: bool(probe(self._ctx)), False)

    def _nvidia_info(self) -> VendorInfo:
        if not self._probe("cuda"):
            return VendorInfo.unavailable()

        def compute() -> VendorInfo:
            if self.config.prefer_nvml and _gpu_nvml.nvml_available():
                try:
                    return VendorInfo(available=True, gpus=_gpu_nvml.nvml_devices())
                except Exception:  # noqa: BLE001
                    logger.debug("NVML query failed, falling back to nvidia-smi", exc_info=True)
            gpus = nvidia_smi_devices(self._ctx)
            if gpus is None:
                return VendorInfo.unavailable()
            return VendorInfo(available=True, gpus=gpus)

        return self._fail_soft("nvidia_info", compute, VendorInfo.unavailable())

    def _amd_info(self) -> VendorInfo:
        if not self._probe("rocm"):
            return VendorInfo.unavailable()

        def compute() -> VendorInfo:
            gpus = rocm_devices(self._ctx)
            if gpus is None:
                return VendorInfo.unavailable()
            return VendorInfo(available=True, gpus=gpus)

        return self._fail_soft("amd_info", compute, VendorInfo.unavailable())

    def _apple_info(self) -> VendorInfo:
        if not self._probe("apple_silicon"):
            return VendorInfo.unavailable()
        return self._fail_soft("apple_info", lambda: apple_info(self._ctx),
                               VendorInfo.unavailable())

    # --- caching ---

    def _fail_soft(self, key: str, compute: Callable[[], T], default: T) -> T:
        """Cached probe whose errors become ``default`` (and are cached as such)."""

        def guarded() -> T:
            try:
                return compute()
            except Exception:  # noqa: BLE001
                logger.debug("Probe %s failed", key, exc_info=True)
                return default

        return self._cached(key, guarded)

    def _cached(self, key: str, compute: Callable[[], T]) -> T:
        if self._cache is None:
            return compute()
        return self._cache.get_or_compute(key, compute)
