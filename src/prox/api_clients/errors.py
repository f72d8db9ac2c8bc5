"""Exception hierarchy for the Proxmox API client runtime."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ProxError(Exception):
    """Base exception for prox client errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg}: {self.original_error}"
        return base_msg


class APIConnectionError(ProxError):
    """Transport level failure talking to the API (DNS, TLS, refused, timeout)."""

    pass


class APIRequestError(ProxError):
    """The API answered with a non-2xx status code."""

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, original_error)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.body:
            return f"{base_msg} (status {self.status_code}): {self.body}"
        return f"{base_msg} (status {self.status_code})"


class AuthenticationError(APIRequestError):
    """Login failed or the session was rejected."""

    pass


class UnexpectedResponseError(ProxError):
    """The API returned a payload that does not have the expected shape."""

    pass


class ResourceNotFoundError(ProxError):
    """A VM, container or node could not be found in the inventory."""

    pass


class TaskError(ProxError):
    """Base class for task monitoring errors."""

    def __init__(self, message: str, upid: str, original_error: Optional[Exception] = None):
        super().__init__(message, original_error)
        self.upid = upid


class TaskFailedError(TaskError):
    """A task stopped with an exit status other than OK."""

    def __init__(self, upid: str, exit_status: Optional[str]):
        super().__init__(f"task failed with exit code: {exit_status}", upid)
        self.exit_status = exit_status


class TaskCancelledError(TaskError):
    """Waiting for a task was cancelled by the caller."""

    def __init__(self, upid: str):
        super().__init__("waiting for task was cancelled", upid)


class TaskTimeoutError(TaskError):
    """A task did not reach a terminal state before the deadline."""

    def __init__(self, upid: str, timeout: float):
        super().__init__(f"task did not finish within {timeout:g}s", upid)
        self.timeout = timeout
