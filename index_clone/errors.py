"""Error taxonomy for an index clone run.

Every failure the tool expects is a ``CloneError`` subclass carrying the process
exit code it maps to, so the CLI never has to guess.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

EXIT_OK = 0
EXIT_CONNECTION = 1
EXIT_CREATE = 2
EXIT_UNEXPECTED = 3
EXIT_LIST = 4
EXIT_DEADLINE = 5


class CloneError(Exception):
    kind = "clone_error"
    exit_code = EXIT_UNEXPECTED

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.original_exception is not None:
            data["cause"] = str(self.original_exception)
        return data


class ConnectError(CloneError):
    """Endpoint unreachable, authentication refused or URI malformed."""

    kind = "connection_error"
    exit_code = EXIT_CONNECTION

    def __init__(self, endpoint: str, original_exception: Optional[BaseException] = None):
        self.endpoint = endpoint
        reason = f": {original_exception}" if original_exception else ""
        super().__init__(f"cannot connect to {endpoint}{reason}", original_exception)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["endpoint"] = self.endpoint
        return data


class ListError(CloneError):
    """Collection or index enumeration failed."""

    kind = "list_error"
    exit_code = EXIT_LIST

    def __init__(
        self,
        endpoint: str,
        collection: Optional[str] = None,
        original_exception: Optional[BaseException] = None,
    ):
        self.endpoint = endpoint
        self.collection = collection
        target = f"indexes of '{collection}'" if collection else "collections"
        reason = f": {original_exception}" if original_exception else ""
        super().__init__(f"cannot list {target} on {endpoint}{reason}", original_exception)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["endpoint"] = self.endpoint
        data["collection"] = self.collection
        return data


class CreateError(CloneError):
    """Index creation (or the drop preceding an overwrite) failed."""

    kind = "create_error"
    exit_code = EXIT_CREATE

    def __init__(
        self,
        collection: str,
        index_name: str,
        message: Optional[str] = None,
        original_exception: Optional[BaseException] = None,
    ):
        self.collection = collection
        self.index_name = index_name
        if message is None:
            reason = f": {original_exception}" if original_exception else ""
            message = f"failed to create index '{index_name}' on '{collection}'{reason}"
        super().__init__(message, original_exception)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["collection"] = self.collection
        data["index"] = self.index_name
        return data


class DeadlineExceeded(CloneError):
    kind = "deadline_exceeded"
    exit_code = EXIT_DEADLINE

    def __init__(self, deadline_seconds: float, step: str):
        self.deadline_seconds = deadline_seconds
        self.step = step
        super().__init__(f"run deadline of {deadline_seconds:g}s exceeded before {step}")


class UnexpectedError(CloneError):
    """Wraps anything outside the taxonomy so it still reaches the JSON report."""

    kind = "unexpected"
    exit_code = EXIT_UNEXPECTED

    def __init__(self, original_exception: BaseException):
        super().__init__(f"{type(original_exception).__name__}: {original_exception}", original_exception)
