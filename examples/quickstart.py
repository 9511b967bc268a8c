"""nativelaunch Quick Start — detect the compute backend and start llama-server."""

import json
import logging
import sys

import nativelaunch
from nativelaunch import ArchBinaryLocator, MappingSettings

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# 1. Initialize with the user's preference and the install layout
locator = ArchBinaryLocator("./bin")
nativelaunch.init(
    settings=MappingSettings({"compute_backend": "auto"}),
    locator=locator,
    prewarm=True,
)

# 2. Inspect the machine
print("Available:", [b.value for b in nativelaunch.available_backends()])
print(json.dumps(nativelaunch.gpu_info().to_dict(), indent=2))

# 3. Launch the server build that matches the resolved backend
backend = nativelaunch.get_backend()
server = locator.arch_bin_path("llama-server", backend.value)
try:
    handle = nativelaunch.spawn_executable(server, ["--port", "8080"])
except nativelaunch.LaunchError as exc:
    print(f"Could not start {exc.executable}: {exc.os_error}")
    sys.exit(1)

print(f"Started {backend.value} server, pid={handle.os_pid}")
for line in handle.output:
    print(line, end="")

nativelaunch.shutdown()
