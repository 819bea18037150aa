"""Function registry shared by the formula tables."""

from cellcalc.functions.registry import (
    FunctionSpec,
    check_arity,
    get_function,
    lookup_function,
    register,
    registered_functions,
)

__all__ = [
    "FunctionSpec",
    "check_arity",
    "get_function",
    "lookup_function",
    "register",
    "registered_functions",
]
