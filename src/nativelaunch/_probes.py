"""Hardware detection probes and the per-platform probe table.

Every probe is a plain function of a :class:`ProbeContext`. Probes may raise
(missing command, timeout, OS error); the resolver turns any failure into a
negative result.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from nativelaunch._collaborators import BinaryLocator
from nativelaunch._types import BackendKind, GpuDevice, VendorInfo

logger = logging.getLogger("nativelaunch.probes")


@dataclass(frozen=True)
class CommandResult:
    """Exit status and merged stdout/stderr of a finished command."""

    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


CommandRunner = Callable[[Sequence[str], float], CommandResult]


def run_command(argv: Sequence[str], timeout: float) -> CommandResult:
    """Run a vendor diagnostic command with a bounded timeout."""
    result = subprocess.run(
        list(argv),  # noqa: S603
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        timeout=timeout,
        check=False,
    )
    return CommandResult(returncode=result.returncode, output=result.stdout or "")


@dataclass(frozen=True)
class ProbeContext:
    """Inputs shared by all probes on one machine."""

    system: str   # lower-case platform.system(): "windows", "linux", "darwin"
    machine: str  # lower-case platform.machine()
    run: CommandRunner = run_command
    timeout: float = 5.0
    locator: BinaryLocator | None = None
    directml_server_name: str = "llama-server"

    def try_run(self, argv: Sequence[str]) -> CommandResult | None:
        """Like ``run`` but returns None when the command cannot be executed."""
        try:
            return self.run(argv, self.timeout)
        except (OSError, subprocess.SubprocessError):
            logger.debug("Command %s failed to run", argv[0], exc_info=True)
            return None


# --- availability probes ---


def probe_cuda(ctx: ProbeContext) -> bool:
    result = ctx.run(["nvidia-smi", "-L"], ctx.timeout)
    return result.ok and "GPU" in result.output


def probe_rocm(ctx: ProbeContext) -> bool:
    return ctx.run(["rocm-smi", "--version"], ctx.timeout).ok


def probe_directml(ctx: ProbeContext) -> bool:
    """DirectML is usable when its server build is installed."""
    if ctx.locator is None:
        return False
    bin_path = ctx.locator.arch_bin_path(ctx.directml_server_name, BackendKind.DIRECTML.value)
    return os.path.exists(bin_path)


def probe_apple_silicon(ctx: ProbeContext) -> bool:
    return ctx.system == "darwin" and ctx.machine.startswith(("arm", "aarch64"))


AVAILABILITY_PROBES: dict[str, Callable[[ProbeContext], bool]] = {
    "cuda": probe_cuda,
    "rocm": probe_rocm,
    "directml": probe_directml,
    "apple_silicon": probe_apple_silicon,
}

# platform -> ordered (backend, availability probe key); cpu is implicit and first.
PLATFORM_BACKENDS: dict[str, tuple[tuple[BackendKind, str], ...]] = {
    "windows": ((BackendKind.CUDA, "cuda"), (BackendKind.DIRECTML, "directml")),
    "linux": ((BackendKind.CUDA, "cuda"), (BackendKind.ROCM, "rocm")),
    "darwin": ((BackendKind.METAL, "apple_silicon"),),
}


def platform_backends(system: str) -> tuple[tuple[BackendKind, str], ...]:
    """Probe sequence for a platform; unknown Unix flavours probe like Linux."""
    return PLATFORM_BACKENDS.get(system, PLATFORM_BACKENDS["linux"])


def platform_name(system: str) -> str:
    names = {"darwin": "macOS", "windows": "Windows", "linux": "Linux"}
    if not system:
        return "Unknown"
    return names.get(system.lower(), system)


# --- output parsers ---


def parse_nvidia_csv(output: str) -> tuple[GpuDevice, ...]:
    """Parse ``name, memory.total`` CSV lines; malformed lines are dropped."""
    gpus: list[GpuDevice] = []
    for line in output.strip().splitlines():
        if not line.strip():
            continue
        parts = line.split(", ")
        if len(parts) == 2:
            gpus.append(GpuDevice(name=parts[0].strip(), memory=parts[1].strip()))
        elif len(parts) == 1:
            gpus.append(GpuDevice(name=parts[0].strip()))
    return tuple(gpus)


_ROCM_FIELD_RE = re.compile(r"^\s*GPU\[(\d+)\]\s*:\s*([^:]+?)\s*:\s*(.*?)\s*$")
# Preferred field for the device name, best first.
_ROCM_NAME_FIELDS = ("card series", "card model")


def parse_rocm_product_names(output: str) -> tuple[GpuDevice, ...]:
    """One device per ``GPU[n]`` index of ``rocm-smi --showproductname``.

    rocm-smi prints several ``GPU[n] : <field>: <value>`` lines per card
    (series, model, vendor, SKU). The name comes from ``Card series``, else
    ``Card model``, else the first non-empty value seen for that card.
    """
    fields: dict[int, dict[str, str]] = {}
    for line in output.splitlines():
        match = _ROCM_FIELD_RE.match(line)
        if match is None:
            continue
        index, field, value = int(match.group(1)), match.group(2).lower(), match.group(3)
        card = fields.setdefault(index, {})
        if value and field not in card:
            card[field] = value

    gpus: list[GpuDevice] = []
    for index in sorted(fields):
        card = fields[index]
        name = next((card[f] for f in _ROCM_NAME_FIELDS if card.get(f)), None)
        if name is None:
            name = next(iter(card.values()), f"GPU[{index}]")
        gpus.append(GpuDevice(name=name))
    return tuple(gpus)


def format_memsize(raw: str) -> str:
    """Render ``hw.memsize`` bytes as whole gigabytes."""
    try:
        return f"{int(raw.strip()) // (1024**3)} GB"
    except ValueError:
        return "unknown"


# --- device listings ---


def nvidia_smi_devices(ctx: ProbeContext) -> tuple[GpuDevice, ...] | None:
    """List NVIDIA devices; None when the query itself fails."""
    result = ctx.run(
        ["nvidia-smi", "--query-gpu=name,memory.total", "--format=csv,noheader"],
        ctx.timeout,
    )
    if not result.ok:
        return None
    return parse_nvidia_csv(result.output)


def rocm_devices(ctx: ProbeContext) -> tuple[GpuDevice, ...] | None:
    result = ctx.run(["rocm-smi", "--showproductname"], ctx.timeout)
    if not result.ok:
        return None
    return parse_rocm_product_names(result.output)


def apple_info(ctx: ProbeContext) -> VendorInfo:
    """Chip name and unified memory for an Apple Silicon machine."""
    brand = ctx.try_run(["sysctl", "-n", "machdep.cpu.brand_string"])
    chip = brand.output.strip() if brand is not None and brand.ok else ""
    chip = chip or "Apple Silicon"

    memsize = ctx.try_run(["sysctl", "-n", "hw.memsize"])
    memory = format_memsize(memsize.output) if memsize is not None and memsize.ok else "unknown"

    return VendorInfo(available=True, gpus=(GpuDevice(name=chip, memory=memory),), chip=chip)
