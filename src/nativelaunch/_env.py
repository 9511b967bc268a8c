"""Child-process environment: library search path and backend discovery."""

from __future__ import annotations

import os
from collections.abc import Mapping

# Variable the dynamic loader consults, per platform.
_LIBRARY_PATH_VARS = {
    "windows": "PATH",
    "darwin": "DYLD_LIBRARY_PATH",
}
_DEFAULT_LIBRARY_PATH_VAR = "LD_LIBRARY_PATH"


def library_path_var(system: str) -> str:
    return _LIBRARY_PATH_VARS.get(system, _DEFAULT_LIBRARY_PATH_VAR)


def build_process_env(
    bin_dir: str,
    additional_env: Mapping[str, str] | None = None,
    *,
    system: str,
    backend_dir_env: str = "GGML_BACKEND_DIR",
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Inherited environment with ``bin_dir`` first on the library search path.

    On Windows variable names are case-insensitive, so any spelling of
    ``PATH`` is replaced by a single ``PATH`` entry.
    """
    env = dict(os.environ if base_env is None else base_env)
    var = library_path_var(system)
    sep = ";" if system == "windows" else ":"

    if system == "windows":
        current = ""
        for key in [k for k in env if k.upper() == var]:
            current = current or env[key]
            del env[key]
    else:
        current = env.pop(var, "")

    env[var] = f"{bin_dir}{sep}{current}" if current else bin_dir
    env[backend_dir_env] = bin_dir
    if additional_env:
        env.update(additional_env)
    return env
