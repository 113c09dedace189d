"""
Result type for operations that report failure as a value.

Read statements return ``Result[list[dict]]`` instead of raising or silently
returning an empty list. The caller decides: unwrap and propagate, or
``unwrap_or([])`` when an empty result is acceptable.

Manifesto:
    A read that fails and a read that matches nothing look identical when
    both come back as ``[]``. ``Ok`` / ``Err`` keeps them apart without
    forcing every call site into try/except.

    - **Explicit:** the return type says the call can fail
    - **Caller's choice:** unwrap(), unwrap_or(), or pattern matching
    - **Immutable:** frozen dataclasses

Usage:
    from recordspine.core.result import Ok, Err

    match db.sql("SELECT name FROM item"):
        case Ok(rows):
            render(rows)
        case Err(error):
            logger.warning("read_failed", error=str(error))

Tags:
    result-pattern, error-handling, recordspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful result containing a value.

    Examples:
        >>> Ok([{"name": "ITEM-001"}]).unwrap()
        [{'name': 'ITEM-001'}]
    """

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or default (always returns value for Ok)."""
        return self.value

    def inspect_err(self, f: Callable[[Exception], None]) -> Result[T]:
        """Call f with error for side effects (no-op for Ok)."""
        return self

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    ``unwrap()`` raises the wrapped error, so ``db.sql(...).unwrap()``
    behaves like an ordinary raising call.

    Examples:
        >>> Err(ValueError("boom")).unwrap_or([])
        []
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Get default since this is Err."""
        return default

    def inspect_err(self, f: Callable[[Exception], None]) -> Result[T]:
        """Call f with error for side effects, return self."""
        f(self.error)
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result_with(
    f: Callable[[], T],
    error_mapper: Callable[[Exception], Exception] | None = None,
    catch: tuple[type[Exception], ...] = (Exception,),
) -> Result[T]:
    """
    Execute ``f`` and wrap its outcome in a Result.

    Exceptions are passed through ``error_mapper`` when given, so driver
    errors can be converted into ``RecordSpineError`` subclasses. Only
    exceptions matching *catch* become ``Err``; anything else propagates.

    Examples:
        >>> try_result_with(lambda: 1 / 0).is_err()
        True
    """
    try:
        return Ok(f())
    except catch as e:
        if error_mapper:
            return Err(error_mapper(e))
        return Err(e)


__all__ = [
    "Ok",
    "Err",
    "Result",
    "try_result_with",
]
