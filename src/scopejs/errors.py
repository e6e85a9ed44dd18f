"""JavaScript error types and exceptions."""

from typing import List, Optional


class JSError(Exception):
    """Base class for all JavaScript errors."""

    kind = "Error"

    def __init__(self, message: str = "", name: str = "Error"):
        self.message = message
        self.name = name
        # Activation names, innermost first, captured where the error surfaced
        self.call_trace: Optional[List[str]] = None
        super().__init__(f"{name}: {message}" if message else name)

    def format_trace(self) -> str:
        """Render the captured call-stack trace, one frame per line."""
        if not self.call_trace:
            return ""
        return "\n".join(f"    at {frame}" for frame in self.call_trace)


class JSSyntaxError(JSError):
    """JavaScript syntax error during parsing."""

    kind = "SyntaxError"

    def __init__(self, message: str = "", line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        # Include line/column in the message if provided
        if line > 0:
            full_message = f"line {line}, column {column}: {message}"
        else:
            full_message = message
        super().__init__(full_message, "SyntaxError")


class JSTypeError(JSError):
    """JavaScript type error."""

    kind = "TypeError"

    def __init__(self, message: str = ""):
        super().__init__(message, "TypeError")


class JSReferenceError(JSError):
    """JavaScript reference error."""

    kind = "ReferenceError"

    def __init__(self, message: str = ""):
        super().__init__(message, "ReferenceError")


class TDZError(JSReferenceError):
    """Access to a let/const binding inside its temporal dead zone."""

    kind = "TDZError"

    def __init__(self, name: str):
        self.binding_name = name
        super().__init__(f"Cannot access '{name}' before initialization")


class ReferenceUndeclaredError(JSReferenceError):
    """Identifier not found anywhere in the scope chain."""

    kind = "ReferenceUndeclaredError"

    def __init__(self, name: str):
        self.binding_name = name
        super().__init__(f"{name} is not defined")


class JSRangeError(JSError):
    """JavaScript range error."""

    kind = "RangeError"

    def __init__(self, message: str = ""):
        super().__init__(message, "RangeError")


class StackOverflowError(JSRangeError):
    """Raised when the call stack exceeds its configured depth."""

    kind = "StackOverflowError"

    def __init__(self, depth: int, trace: Optional[List[str]] = None):
        self.depth = depth
        super().__init__("Maximum call stack size exceeded")
        self.call_trace = trace


class TimeLimitError(JSError):
    """Raised when execution time limit is exceeded."""

    kind = "TimeLimitError"

    def __init__(self, message: str = "Execution timeout"):
        super().__init__(message, "InternalError")
