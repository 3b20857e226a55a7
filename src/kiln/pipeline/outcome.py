"""Single-use success-or-error values for deferred stage construction."""

from __future__ import annotations

from typing import Callable, Generic, TypeVar, cast

from kiln.errors import KilnError, OutcomeConsumedError


T = TypeVar("T")


class Outcome(Generic[T]):
    """The value a stage factory built, or the error it raised doing so.

    Inspecting an outcome is free; `unwrap` hands the value (or raises the
    error) exactly once. Use `success` and `failure` to build one.
    """

    __slots__ = ("_ok", "_value", "_error", "_consumed")

    def __init__(self, ok: bool, value: T | None = None, error: KilnError | None = None) -> None:
        if ok and error is not None:
            raise ValueError("A successful outcome cannot carry an error.")
        if not ok and error is None:
            raise ValueError("A failed outcome needs an error.")
        self._ok = ok
        self._value = value
        self._error = error
        self._consumed = False

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(True, value=value)

    @classmethod
    def failure(cls, error: KilnError) -> Outcome[T]:
        return cls(False, error=error)

    @classmethod
    def attempt(cls, build: Callable[[], T]) -> Outcome[T]:
        """Call `build`, capturing a raised KilnError as a failed outcome."""

        try:
            return cls.success(build())
        except KilnError as exc:
            return cls.failure(exc)

    @property
    def is_ok(self) -> bool:
        return self._ok

    @property
    def is_err(self) -> bool:
        return not self._ok

    @property
    def error(self) -> KilnError | None:
        return self._error

    @property
    def consumed(self) -> bool:
        return self._consumed

    def unwrap(self) -> T:
        """Return the value or raise the stored error, consuming the outcome."""

        if self._consumed:
            raise OutcomeConsumedError("Outcome was already consumed.")
        self._consumed = True
        if self._error is not None:
            raise self._error
        return cast(T, self._value)

    def __repr__(self) -> str:
        state = "ok" if self._ok else f"err={self._error!r}"
        return f"Outcome({state}, consumed={self._consumed})"
