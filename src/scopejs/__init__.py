"""
scopejs - A JavaScript scope and call stack simulator

Runs snippets of a small JavaScript subset and reproduces hoisting, the
temporal dead zone, scope resolution, closure capture and call-stack
behavior as an inspectable model, implemented entirely in Python with no
external dependencies.
"""

__version__ = "0.1.0"

from .context import Context, EvaluationResult, evaluate, parse
from .errors import (
    JSError,
    JSSyntaxError,
    JSTypeError,
    JSReferenceError,
    JSRangeError,
    TDZError,
    ReferenceUndeclaredError,
    StackOverflowError,
    TimeLimitError,
)
from .interpreter import ActivationState, CallEvent
from .values import UNDEFINED, NULL

__all__ = [
    "Context",
    "EvaluationResult",
    "evaluate",
    "parse",
    "JSError",
    "JSSyntaxError",
    "JSTypeError",
    "JSReferenceError",
    "JSRangeError",
    "TDZError",
    "ReferenceUndeclaredError",
    "StackOverflowError",
    "TimeLimitError",
    "ActivationState",
    "CallEvent",
    "UNDEFINED",
    "NULL",
]
