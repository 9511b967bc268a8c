"""Native executable launcher with the runtime-library directory on the loader path.

Windows resolves DLLs while the process image is created, so changing the
working directory after spawn is too late. Three strategies are supported,
chosen once through ``LauncherConfig.windows_strategy``:

``DIRECT`` (default)
    Spawn the executable itself with ``cwd`` set at creation time and the
    library directory prepended to ``PATH``. The DLL search order covers the
    application directory and ``PATH``, and the child's pid is exact.
``SHELL``
    ``cmd.exe /c "cd /d <dir> && <exe> <args>"``. The target runs as the
    shell's child, so no target pid is reported.
``SCRIPT``
    Same sequence written to a uniquely named ``.bat`` file, for argument
    lists too long for one command line. The file is removed if spawning
    fails; afterwards it belongs to the caller (``LaunchHandle.script_path``).

Other platforms always spawn directly: their loaders read ``RPATH`` or a
single environment variable, neither of which races process creation.
"""

from __future__ import annotations

import contextlib
import logging
import os
import platform
import subprocess
import tempfile
from collections.abc import Mapping, Sequence
from typing import Any

from nativelaunch._config import LauncherConfig
from nativelaunch._env import build_process_env, library_path_var
from nativelaunch._errors import LaunchError
from nativelaunch._quote import CMD, POSIX, join_command, quote_if_needed
from nativelaunch._types import LaunchHandle, LaunchRequest, WindowsStrategy

logger = logging.getLogger("nativelaunch.launcher")

_CRITICAL_LIBRARIES = {
    "windows": "llama.dll",
    "darwin": "libllama.dylib",
}
_DEFAULT_CRITICAL_LIBRARY = "libllama.so"

# Reported when present; their absence is normal for non-CUDA builds.
_CUDA_LIBRARIES = {
    "windows": ("ggml-cuda.dll", "cublas64_12.dll", "cublasLt64_12.dll", "cudart64_12.dll"),
    "linux": ("libggml-cuda.so", "libcublas.so.12", "libcublasLt.so.12", "libcudart.so.12"),
}

_MAX_LISTED_FILES = 20
_PATH_PREVIEW_CHARS = 300


def critical_library(system: str, override: str | None = None) -> str:
    return override or _CRITICAL_LIBRARIES.get(system, _DEFAULT_CRITICAL_LIBRARY)


def to_windows_path(path: str) -> str:
    return path.replace("/", "\\")


def spawn_executable(
    executable: str,
    args: Sequence[str] = (),
    *,
    bin_dir: str | None = None,
    env: Mapping[str, str] | None = None,
    popen_kwargs: Mapping[str, Any] | None = None,
    config: LauncherConfig | None = None,
    system: str | None = None,
) -> LaunchHandle:
    """Start ``executable`` so its shared libraries resolve from ``bin_dir``.

    ``bin_dir`` defaults to the executable's directory. ``popen_kwargs`` are
    passed through to :class:`subprocess.Popen` and override the defaults
    (merged text-mode stdout/stderr pipe).

    Raises:
        LaunchError: the process could not be created.
    """
    request = LaunchRequest(
        executable=executable,
        args=tuple(args),
        bin_dir=bin_dir,
        env=dict(env or {}),
        popen_kwargs=dict(popen_kwargs or {}),
    )
    return launch(request, config=config, system=system)


def launch(
    request: LaunchRequest,
    *,
    config: LauncherConfig | None = None,
    system: str | None = None,
) -> LaunchHandle:
    config = config or LauncherConfig()
    system = (system or platform.system()).lower()

    exe_path = request.executable
    bin_dir = request.resolved_bin_dir
    if system == "windows":
        exe_path = to_windows_path(exe_path)
        bin_dir = to_windows_path(bin_dir)

    logger.debug("Spawning: %s", exe_path)
    logger.debug("Library dir: %s", bin_dir)

    validate_library_presence(bin_dir, system=system, override=config.critical_library)

    env = build_process_env(
        bin_dir,
        request.env,
        system=system,
        backend_dir_env=config.backend_dir_env,
    )
    _log_library_path(env, system)

    if system != "windows":
        return _spawn_direct(exe_path, request.args, bin_dir, env, request.popen_kwargs,
                             strategy=None)

    strategy = config.windows_strategy
    if strategy is WindowsStrategy.SHELL:
        return _spawn_shell(exe_path, request.args, bin_dir, env, request.popen_kwargs)
    if strategy is WindowsStrategy.SCRIPT:
        return _spawn_script(exe_path, request.args, bin_dir, env, request.popen_kwargs,
                             scratch_dir=config.scratch_dir)
    return _spawn_direct(exe_path, request.args, bin_dir, env, request.popen_kwargs,
                         strategy=WindowsStrategy.DIRECT)


# --- strategies ---


def _spawn_direct(
    exe_path: str,
    args: Sequence[str],
    bin_dir: str,
    env: dict[str, str],
    popen_kwargs: Mapping[str, Any],
    *,
    strategy: WindowsStrategy | None,
) -> LaunchHandle:
    argv = [exe_path, *args]
    dialect = POSIX if strategy is None else CMD
    logger.debug("Direct spawn: %s", join_command(argv, dialect))

    process = _popen(argv, exe_path=exe_path, cwd=bin_dir, env=env, popen_kwargs=popen_kwargs)
    logger.info("Spawned %s directly, OS PID: %s", os.path.basename(exe_path), process.pid)
    return LaunchHandle(process=process, os_pid=process.pid, strategy=strategy, bin_dir=bin_dir)


def _spawn_shell(
    exe_path: str,
    args: Sequence[str],
    bin_dir: str,
    env: dict[str, str],
    popen_kwargs: Mapping[str, Any],
) -> LaunchHandle:
    inner = f"cd /d {quote_if_needed(bin_dir, CMD)} && {join_command([exe_path, *args], CMD)}"
    # /s: cmd strips exactly the outer quote pair and keeps the rest verbatim.
    command_line = f'{_comspec(env)} /d /s /c "{inner}"'
    logger.debug("Shell spawn: %s", command_line)

    process = _popen(command_line, exe_path=exe_path, cwd=bin_dir, env=env,
                     popen_kwargs=popen_kwargs)
    logger.info("Spawned %s via cmd.exe, shell PID: %s (target PID unavailable)",
                os.path.basename(exe_path), process.pid)
    return LaunchHandle(process=process, os_pid=None, strategy=WindowsStrategy.SHELL,
                        bin_dir=bin_dir)


def _spawn_script(
    exe_path: str,
    args: Sequence[str],
    bin_dir: str,
    env: dict[str, str],
    popen_kwargs: Mapping[str, Any],
    *,
    scratch_dir: str | None,
) -> LaunchHandle:
    try:
        script_path = write_launcher_script(exe_path, args, bin_dir, scratch_dir=scratch_dir)
    except OSError as exc:
        logger.error("Failed to write launcher script for %s: %s", exe_path, exc)
        raise LaunchError(f"failed to write launcher script for {exe_path}: {exc}",
                          executable=exe_path, os_error=exc) from exc

    command_line = f"{_comspec(env)} /d /c {quote_if_needed(script_path, CMD)}"
    logger.debug("Script spawn: %s", command_line)

    try:
        process = _popen(command_line, exe_path=exe_path, cwd=bin_dir, env=env,
                         popen_kwargs=popen_kwargs)
    except LaunchError:
        with contextlib.suppress(OSError):
            os.remove(script_path)
        raise

    logger.info("Spawned %s via %s, shell PID: %s (target PID unavailable)",
                os.path.basename(exe_path), os.path.basename(script_path), process.pid)
    return LaunchHandle(process=process, os_pid=None, strategy=WindowsStrategy.SCRIPT,
                        bin_dir=bin_dir, script_path=script_path)


def write_launcher_script(
    exe_path: str,
    args: Sequence[str],
    bin_dir: str,
    *,
    scratch_dir: str | None = None,
) -> str:
    """Write a ``.bat`` that enters ``bin_dir`` and runs the executable.

    Raises:
        OSError: the file could not be created or written; nothing is left behind.
    """
    lines = [
        "@echo off",
        f"cd /d {quote_if_needed(bin_dir, CMD)}",
        join_command([exe_path, *args], CMD),
    ]
    fd, script_path = tempfile.mkstemp(prefix="nativelaunch-", suffix=".bat", dir=scratch_dir)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\r\n") as fh:
            fh.write("\n".join(lines) + "\n")
    except BaseException:
        with contextlib.suppress(OSError):
            os.remove(script_path)
        raise
    return script_path


def _comspec(env: Mapping[str, str]) -> str:
    return quote_if_needed(env.get("COMSPEC") or env.get("ComSpec") or "cmd.exe", CMD)


def _popen(
    command: Sequence[str] | str,
    *,
    exe_path: str,
    cwd: str,
    env: dict[str, str],
    popen_kwargs: Mapping[str, Any],
) -> subprocess.Popen[Any]:
    options: dict[str, Any] = {
        "stdout": subprocess.PIPE,
        "stderr": subprocess.STDOUT,
        "text": True,
        "cwd": cwd,
        "env": env,
    }
    options.update(popen_kwargs)
    try:
        return subprocess.Popen(command, **options)  # noqa: S603
    except (OSError, ValueError) as exc:
        logger.error("Failed to spawn %s: %s", exe_path, exc)
        raise LaunchError(f"failed to spawn {exe_path}: {exc}", executable=exe_path,
                          os_error=exc) from exc


# --- diagnostics ---


def validate_library_presence(bin_dir: str, *, system: str, override: str | None = None) -> bool:
    """Check for the critical runtime library; log loudly if it is missing.

    Never raises: the launched process decides whether it can start.
    """
    library = critical_library(system, override)
    library_path = os.path.join(bin_dir, library)
    present = os.path.exists(library_path)
    if present:
        logger.debug("Found critical library: %s", library)
    else:
        logger.error("CRITICAL: %s not found at %s", library, library_path)
        _log_dir_contents(bin_dir)

    cuda_present = [
        name for name in _CUDA_LIBRARIES.get(system, ())
        if os.path.exists(os.path.join(bin_dir, name))
    ]
    if cuda_present:
        logger.info("CUDA libraries present: %s", cuda_present)
    return present


def _log_dir_contents(bin_dir: str) -> None:
    try:
        files = sorted(os.listdir(bin_dir))
    except OSError as exc:
        logger.error("Cannot list %s: %s", bin_dir, exc)
        return
    logger.error("%s contents: %s", bin_dir, files[:_MAX_LISTED_FILES])


def _log_library_path(env: Mapping[str, str], system: str) -> None:
    var = library_path_var(system)
    logger.debug("%s (first %d chars): %s", var, _PATH_PREVIEW_CHARS,
                 env.get(var, "")[:_PATH_PREVIEW_CHARS])
