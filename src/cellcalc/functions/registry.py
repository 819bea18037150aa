"""Central registry of built-in formula functions.

Function modules register themselves at import time with :func:`register`;
afterwards the registry is only read through :func:`lookup_function` and
the read-only view returned by :func:`registered_functions`.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping

from cellcalc.formulas.errors import FormulaFunctionError

FormulaFunction = Callable[[list], Any]


@dataclass(frozen=True)
class FunctionSpec:
    """A registered function and how the evaluator must call it.

    Attributes:
        name: Uppercase lookup name.
        fn: Callable taking the resolved argument list.
        flatten: When True, range arguments are spliced into one flat list.
            When False, each range arrives as a single list argument so the
            function can tell its arguments apart.
        accepts_errors: When False, an error-code argument short-circuits
            the call and becomes the result.
        volatile: Result may differ between calls with equal inputs.
    """

    name: str
    fn: FormulaFunction
    flatten: bool = True
    accepts_errors: bool = False
    volatile: bool = False


_FUNCTIONS: dict[str, FunctionSpec] = {}


def register(
    name: str,
    *,
    flatten: bool = True,
    accepts_errors: bool = False,
    volatile: bool = False,
) -> Callable[[FormulaFunction], FormulaFunction]:
    """Decorator that registers a formula function by name.

    Args:
        name: The lookup name (stored uppercased).

    Returns:
        The original function, unmodified.

    Raises:
        ValueError: If *name* is already registered.
    """

    def decorator(fn: FormulaFunction) -> FormulaFunction:
        key = name.upper()
        if key in _FUNCTIONS:
            raise ValueError(f"Function {key!r} is already registered")
        _FUNCTIONS[key] = FunctionSpec(
            name=key,
            fn=fn,
            flatten=flatten,
            accepts_errors=accepts_errors,
            volatile=volatile,
        )
        return fn

    return decorator


def lookup_function(name: str) -> FunctionSpec | None:
    """Return the spec registered under *name* (any case), or None."""
    return _FUNCTIONS.get(name.upper())


def get_function(name: str) -> FunctionSpec:
    """Look up a registered function.

    Raises:
        KeyError: If no function is registered under *name*.
    """
    spec = lookup_function(name)
    if spec is None:
        raise KeyError(f"Unknown formula function: {name!r}")
    return spec


def registered_functions() -> Mapping[str, FunctionSpec]:
    """Read-only view of every registered function, keyed by name."""
    return MappingProxyType(_FUNCTIONS)


def check_arity(name: str, args: list, minimum: int, maximum: int | None = None) -> None:
    """Raise :class:`FormulaFunctionError` unless ``minimum <= len(args) <= maximum``.

    ``maximum=None`` means unbounded.
    """
    count = len(args)
    if minimum <= count and (maximum is None or count <= maximum):
        return
    if maximum == minimum:
        noun = "argument" if minimum == 1 else "arguments"
        msg = f"{name} requires exactly {minimum} {noun}"
    elif maximum is None:
        noun = "argument" if minimum == 1 else "arguments"
        msg = f"{name} requires at least {minimum} {noun}"
    else:
        msg = f"{name} requires {minimum}-{maximum} arguments"
    raise FormulaFunctionError(name, msg)
