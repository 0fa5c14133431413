"""
Tri-state operation result used across the recorder, storage and
transcription layers.

Expected failures are returned as values instead of raised, so callers
can branch on the variant::

    result = await persistence.get_log(log_id)
    if isinstance(result, Success):
        show(result.data)
    elif isinstance(result, Error):
        banner(result.message, result.code)
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from travelscribe.core.exceptions import ErrorCode, TravelScribeError

T = TypeVar("T")
R = TypeVar("R")


class _ResourceOps:
    """Helpers shared by the three variants."""

    @property
    def is_success(self) -> bool:
        return isinstance(self, Success)

    @property
    def is_error(self) -> bool:
        return isinstance(self, Error)

    @property
    def is_loading(self) -> bool:
        return isinstance(self, Loading)

    def get_or_none(self) -> Any:
        """Return the payload on success, otherwise None."""
        return self.data if isinstance(self, Success) else None

    def get_or_raise(self) -> Any:
        """Return the payload on success, otherwise raise.

        Raises:
            TravelScribeError: The wrapped exception, or a new one built from
                the error message and code when none was captured.
            RuntimeError: If the resource is still loading.
        """
        if isinstance(self, Success):
            return self.data
        if isinstance(self, Error):
            if self.exception is not None:
                raise self.exception
            raise TravelScribeError(detail=self.message, code=self.code)
        raise RuntimeError("Resource is still loading")

    def get_or_default(self, default: Any) -> Any:
        value = self.get_or_none()
        return default if value is None else value

    def error_message_or_none(self) -> str | None:
        return self.message if isinstance(self, Error) else None

    def map(self, transform: Callable[[Any], Any]) -> "Resource":
        """Transform the payload on success; errors and loading pass through."""
        if isinstance(self, Success):
            return Success(transform(self.data))
        return self  # type: ignore[return-value]

    def flat_map(self, transform: Callable[[Any], "Resource"]) -> "Resource":
        if isinstance(self, Success):
            return transform(self.data)
        return self  # type: ignore[return-value]

    def on_success(self, action: Callable[[Any], None]) -> "Resource":
        if isinstance(self, Success):
            action(self.data)
        return self  # type: ignore[return-value]

    def on_error(self, action: Callable[["Error"], None]) -> "Resource":
        if isinstance(self, Error):
            action(self)
        return self  # type: ignore[return-value]


@dataclass(frozen=True)
class Success(_ResourceOps, Generic[T]):
    """A completed operation carrying its value."""

    data: T


@dataclass(frozen=True)
class Error(_ResourceOps):
    """A failed operation with a human-readable message and error code."""

    message: str
    code: ErrorCode = ErrorCode.UNKNOWN
    exception: BaseException | None = None

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        fallback: str = "Unknown error",
        code: ErrorCode = ErrorCode.UNKNOWN,
    ) -> "Error":
        """Build an Error from an exception, keeping TravelScribeError codes."""
        if isinstance(exc, TravelScribeError):
            return cls(message=exc.detail, code=exc.code, exception=exc)
        return cls(message=str(exc) or fallback, code=code, exception=exc)


@dataclass(frozen=True)
class Loading(_ResourceOps):
    """An operation still in progress; ``progress`` is in [0, 1] when known."""

    progress: float | None = None


Resource = Success[T] | Error | Loading
