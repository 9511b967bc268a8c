"""Interfaces to the settings store and binary layout, plus simple adapters."""

from __future__ import annotations

import os
import platform
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Settings(Protocol):
    """Read-only key-value settings store."""

    def get(self, key: str) -> Any: ...


@runtime_checkable
class BinaryLocator(Protocol):
    """Maps an executable name and backend to an installed binary path."""

    def arch_bin_path(self, executable_name: str, backend_name: str) -> str: ...


class MappingSettings:
    """Settings backed by a plain mapping, e.g. a parsed config.json."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str) -> Any:
        return self._values.get(key)


_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "arm64",
    "armv8": "arm64",
}

_OS_NAMES = {
    "windows": "windows",
    "darwin": "macos",
    "linux": "linux",
}


class ArchBinaryLocator:
    """Resolves ``<root>/<backend>/<os>-<arch>/<name>[.exe]``."""

    def __init__(
        self,
        root: str,
        *,
        system: str | None = None,
        machine: str | None = None,
    ) -> None:
        self.root = root
        self._system = (system or platform.system()).lower()
        machine = (machine or platform.machine()).lower()
        self._arch = _ARCH_ALIASES.get(machine, machine)

    @property
    def target(self) -> str:
        return f"{_OS_NAMES.get(self._system, self._system)}-{self._arch}"

    def arch_bin_path(self, executable_name: str, backend_name: str) -> str:
        if self._system == "windows" and not executable_name.lower().endswith(".exe"):
            executable_name += ".exe"
        return os.path.join(self.root, backend_name, self.target, executable_name)
