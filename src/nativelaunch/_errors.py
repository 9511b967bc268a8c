"""Public exceptions."""

from __future__ import annotations


class LaunchError(Exception):
    """The OS refused to create the child process."""

    def __init__(
        self,
        message: str,
        *,
        executable: str,
        os_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.executable = executable
        self.os_error = os_error
