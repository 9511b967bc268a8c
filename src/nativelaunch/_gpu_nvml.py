"""NVIDIA device listing through NVML, used ahead of nvidia-smi when installed."""

from __future__ import annotations

import logging
import warnings

from nativelaunch._types import GpuDevice

logger = logging.getLogger("nativelaunch.nvml")

# pynvml is optional; GPU info falls back to nvidia-smi when unavailable.
# Suppress deprecation warning from pynvml (recommends nvidia-ml-py).
warnings.filterwarnings("ignore", category=FutureWarning, message=".*pynvml.*deprecated.*")
try:
    import pynvml

    _HAS_PYNVML = True
except ImportError:
    pynvml = None  # type: ignore[assignment,unused-ignore]
    _HAS_PYNVML = False


def nvml_available() -> bool:
    return _HAS_PYNVML


def _as_str(value: str | bytes) -> str:
    # Older pynvml releases return bytes.
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def nvml_devices() -> tuple[GpuDevice, ...]:
    """List NVIDIA devices with total memory in nvidia-smi's ``MiB`` form.

    Raises:
        RuntimeError: pynvml is not installed.
        pynvml.NVMLError: the driver could not be queried.
    """
    if not _HAS_PYNVML:
        raise RuntimeError("pynvml is not installed")
    assert pynvml is not None
    pynvml.nvmlInit()
    try:
        gpus: list[GpuDevice] = []
        for i in range(pynvml.nvmlDeviceGetCount()):
            handle = pynvml.nvmlDeviceGetHandleByIndex(i)
            name = _as_str(pynvml.nvmlDeviceGetName(handle))
            mem_info = pynvml.nvmlDeviceGetMemoryInfo(handle)
            gpus.append(GpuDevice(name=name, memory=f"{mem_info.total // (1024**2)} MiB"))
        logger.debug("NVML reported %d device(s)", len(gpus))
        return tuple(gpus)
    finally:
        try:
            pynvml.nvmlShutdown()
        except Exception:  # noqa: BLE001
            pass
