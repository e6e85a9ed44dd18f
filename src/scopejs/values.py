"""JavaScript value types."""

from typing import Any, Callable, Dict, List, Optional, Union, TYPE_CHECKING
import math
import re

from .ast_nodes import ArrowFunctionExpression

if TYPE_CHECKING:
    from .ast_nodes import FunctionNode
    from .bindings import ScopeNode
    from .scope_tree import LexicalScope


class JSUndefined:
    """JavaScript undefined value (singleton)."""

    _instance: Optional["JSUndefined"] = None

    def __new__(cls) -> "JSUndefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __str__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


class JSNull:
    """JavaScript null value (singleton)."""

    _instance: Optional["JSNull"] = None

    def __new__(cls) -> "JSNull":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "null"

    def __str__(self) -> str:
        return "null"

    def __bool__(self) -> bool:
        return False


# Singleton instances
UNDEFINED = JSUndefined()
NULL = JSNull()


# Type alias for JavaScript values
JSValue = Union[
    JSUndefined,
    JSNull,
    bool,
    int,
    float,
    str,
    "FunctionValue",
    "NativeFunction",
    "JSObject",
]


def is_nan(value: Any) -> bool:
    """Check if value is NaN."""
    return isinstance(value, float) and math.isnan(value)


def is_callable(value: Any) -> bool:
    return isinstance(value, (FunctionValue, NativeFunction))


def js_typeof(value: JSValue) -> str:
    """Return the JavaScript typeof for a value."""
    if value is UNDEFINED:
        return "undefined"
    if value is NULL:
        return "object"  # JavaScript quirk
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if is_callable(value):
        return "function"
    if isinstance(value, JSObject):
        return "object"
    return "undefined"


def to_boolean(value: JSValue) -> bool:
    """Convert a JavaScript value to boolean."""
    if value is UNDEFINED or value is NULL:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if is_nan(value) or value == 0:
            return False
        return True
    if isinstance(value, str):
        return len(value) > 0
    # Functions and objects are always truthy
    return True


# Numeric string grammar; Python's int()/float() also take "1_000", "inf" and non-ASCII digits
_HEX_STRING = re.compile(r"0[xX][0-9a-fA-F]+")
_DECIMAL_STRING = re.compile(r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")


def to_number(value: JSValue) -> Union[int, float]:
    """Convert a JavaScript value to number."""
    if value is UNDEFINED:
        return float("nan")
    if value is NULL:
        return 0
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return 0
        if _HEX_STRING.fullmatch(s):
            return int(s, 16)
        if not _DECIMAL_STRING.fullmatch(s):
            return float("nan")
        if s.lstrip("+-").isdigit():
            return int(s)
        return float(s)
    return float("nan")


def to_string(value: JSValue) -> str:
    """Convert a JavaScript value to string."""
    if value is UNDEFINED:
        return "undefined"
    if value is NULL:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if is_nan(value):
            return "NaN"
        if value == float("inf"):
            return "Infinity"
        if value == float("-inf"):
            return "-Infinity"
        # Handle -0
        if value == 0 and math.copysign(1, value) < 0:
            return "0"
        s = repr(value)
        if s.endswith(".0"):
            return s[:-2]
        return s
    if isinstance(value, str):
        return value
    if is_callable(value):
        return repr(value)
    return "[object Object]"


class JSObject:
    """Host namespace object, such as ``console``."""

    def __init__(self):
        self._properties: Dict[str, JSValue] = {}

    def get(self, key: str) -> JSValue:
        """Get a property value."""
        return self._properties.get(key, UNDEFINED)

    def set(self, key: str, value: JSValue) -> None:
        """Set a property value."""
        self._properties[key] = value

    def keys(self) -> List[str]:
        return list(self._properties.keys())

    def __repr__(self) -> str:
        return f"JSObject({self._properties})"


class FunctionValue:
    """A function defined in source code, paired with its defining scope.

    ``closure`` is the ScopeNode that was executing when the function value
    was created. It is held by reference: the function keeps reading and
    writing the live bindings of that scope after the defining call has
    returned.
    """

    def __init__(
        self,
        name: str,
        node: "FunctionNode",
        scope: "LexicalScope",
        closure: "ScopeNode",
        lexical_this: JSValue = UNDEFINED,
    ):
        self.name = name
        self.node = node
        self.scope = scope
        self.closure = closure
        # Only consulted for arrow functions
        self.lexical_this = lexical_this

    @property
    def params(self) -> List[str]:
        return [p.name for p in self.node.params]

    @property
    def is_arrow(self) -> bool:
        return isinstance(self.node, ArrowFunctionExpression)

    @property
    def display_name(self) -> str:
        return self.name or "<anonymous>"

    def __repr__(self) -> str:
        return f"[Function: {self.name}]" if self.name else "[Function (anonymous)]"


class NativeFunction:
    """A builtin implemented in Python."""

    def __init__(self, name: str, fn: Callable[..., Any]):
        self.name = name
        self._fn = fn

    def __call__(self, *args: JSValue) -> Any:
        return self._fn(*args)

    def __repr__(self) -> str:
        return f"[Function: {self.name}]"
