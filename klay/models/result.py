"""Explicit success/failure values returned by services and the pipeline.

Expected failures (validation, not-found, already-exists, invalid-state,
processing) travel as ``Result.fail(error)`` instead of being raised, so a
caller always gets a value back and can branch on :meth:`Result.is_ok`.

:class:`Outcome` pairs a result with the domain events the operation
emitted; callers consume the events synchronously.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from klay.models.events import DomainEvent
from klay.utils.errors import KlayError

_T = TypeVar("_T")


@dataclass(frozen=True)
class Result(Generic[_T]):
    """Either a value or a :class:`KlayError`, never both."""

    _value: _T | None = None
    _error: KlayError | None = None

    @classmethod
    def ok(cls, value: _T) -> Result[_T]:
        return cls(_value=value)

    @classmethod
    def fail(cls, error: KlayError) -> Result[_T]:
        return cls(_error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_fail(self) -> bool:
        return self._error is not None

    @property
    def value(self) -> _T:
        if self._error is not None:
            msg = f"Result is a failure: {self._error}"
            raise ValueError(msg)
        return self._value  # type: ignore[return-value]

    @property
    def error(self) -> KlayError:
        if self._error is None:
            raise ValueError("Result is a success; it has no error")
        return self._error

    def unwrap(self) -> _T:
        """Return the value or raise the carried error."""
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]


@dataclass(frozen=True)
class Outcome(Generic[_T]):
    """A :class:`Result` plus the domain events emitted while producing it."""

    result: Result[_T]
    events: list[DomainEvent] = field(default_factory=list)

    def is_ok(self) -> bool:
        return self.result.is_ok()

    def is_fail(self) -> bool:
        return self.result.is_fail()

    @property
    def value(self) -> _T:
        return self.result.value

    @property
    def error(self) -> KlayError:
        return self.result.error
