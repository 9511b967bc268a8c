"""Core types: backend enums, GPU info records, and launch descriptors."""

from __future__ import annotations

import enum
import os
import subprocess
from dataclasses import dataclass, field
from typing import Any


class BackendKind(str, enum.Enum):
    """Compute backend a native server can be built against."""

    AUTO = "auto"
    CPU = "cpu"
    CUDA = "cuda"
    METAL = "metal"
    DIRECTML = "directml"
    ROCM = "rocm"

    @classmethod
    def parse(cls, value: object) -> BackendKind | None:
        """Return the matching member, or None for anything outside the enum."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# auto is a request-time value only.
RESOLVABLE_BACKENDS: frozenset[BackendKind] = frozenset(BackendKind) - {BackendKind.AUTO}

# Fallback priority for auto-detection.
BACKEND_PRIORITY: tuple[BackendKind, ...] = (
    BackendKind.CUDA,
    BackendKind.METAL,
    BackendKind.DIRECTML,
    BackendKind.ROCM,
)


class WindowsStrategy(enum.Enum):
    """How a child process is created on Windows so its DLLs resolve."""

    DIRECT = "direct"
    SHELL = "shell"
    SCRIPT = "script"


@dataclass(frozen=True)
class GpuDevice:
    """One device as reported by vendor tooling."""

    name: str
    memory: str = "unknown"  # display string, e.g. "24564 MiB"


@dataclass(frozen=True)
class VendorInfo:
    """Availability and devices for one GPU vendor family."""

    available: bool
    gpus: tuple[GpuDevice, ...] = ()
    chip: str | None = None

    @classmethod
    def unavailable(cls) -> VendorInfo:
        return cls(available=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "available": self.available,
            "gpus": [{"name": g.name, "memory": g.memory} for g in self.gpus],
        }
        if self.chip is not None:
            data["chip"] = self.chip
        return data


@dataclass(frozen=True)
class GpuInfo:
    """Immutable GPU snapshot for front-end display."""

    nvidia: VendorInfo
    amd: VendorInfo
    apple: VendorInfo
    platform: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "nvidia": self.nvidia.to_dict(),
            "amd": self.amd.to_dict(),
            "apple": self.apple.to_dict(),
            "platform": self.platform,
        }


@dataclass(frozen=True)
class LaunchRequest:
    """Everything needed to start a native executable."""

    executable: str
    args: tuple[str, ...] = ()
    bin_dir: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    popen_kwargs: dict[str, Any] = field(default_factory=dict)

    @property
    def resolved_bin_dir(self) -> str:
        """Runtime-library directory, defaulting to the executable's own."""
        if self.bin_dir:
            return self.bin_dir
        return os.path.dirname(self.executable) or "."


@dataclass
class LaunchHandle:
    """A started child process.

    ``os_pid`` is None when a shell is the direct child and the target
    executable runs as its grandchild; ``process.pid`` is then the shell's.
    """

    process: subprocess.Popen[Any]
    os_pid: int | None
    strategy: WindowsStrategy | None
    bin_dir: str
    script_path: str | None = None

    @property
    def output(self) -> Any:
        """Merged stdout/stderr stream of the child."""
        return self.process.stdout
