"""Choosing how the server is spawned on Windows.

DIRECT reports the server's own pid. SHELL and SCRIPT go through cmd.exe,
so only the shell's pid is known (``handle.process.pid``).
"""

import nativelaunch
from nativelaunch import LauncherConfig, WindowsStrategy

args = ["--model", r"C:\Models\My Model.gguf", "--port", "8080"]

for strategy in WindowsStrategy:
    config = LauncherConfig(windows_strategy=strategy)
    handle = nativelaunch.spawn_executable(
        r"C:\Program Files\App\bin\cuda\llama-server.exe",
        args,
        config=config,
    )
    print(strategy.value, "target pid:", handle.os_pid, "process pid:", handle.process.pid)
    handle.process.terminate()
    handle.process.wait()
