"""Public API: parsing, one-shot evaluation and persistent contexts."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .ast_nodes import Program
from .bindings import DeclKind
from .errors import JSError, JSSyntaxError
from .interpreter import CallEvent, Interpreter, DEFAULT_MAX_STACK_DEPTH
from .parser import Parser
from .scope_tree import build_scope_tree
from .values import (
    UNDEFINED, NULL, JSValue, JSObject, FunctionValue, NativeFunction,
    is_nan, to_number, to_string,
)

logger = logging.getLogger(__name__)


def parse(source: str) -> Program:
    """Parse and analyze source code.

    Raises:
        JSSyntaxError: On lexing or parsing errors, and on early errors such
            as redeclared lexical bindings.
    """
    program = Parser(source).parse()
    build_scope_tree(program)
    return program


@dataclass
class EvaluationResult:
    """Outcome of running one program."""

    log: List[str] = field(default_factory=list)
    value: JSValue = UNDEFINED
    error: Optional[JSError] = None
    # Initialized bindings of the global scope after the run
    globals: Dict[str, JSValue] = field(default_factory=dict)
    calls: List[CallEvent] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def result(self) -> Union[JSValue, JSError]:
        """The completion value, or the error if the run failed."""
        return self.value if self.error is None else self.error

    @property
    def stack_trace(self) -> List[str]:
        if self.error is None or self.error.call_trace is None:
            return []
        return list(self.error.call_trace)


class Context:
    """JavaScript execution context with a persistent global scope."""

    def __init__(
        self,
        max_stack_depth: int = DEFAULT_MAX_STACK_DEPTH,
        legacy_implicit_globals: bool = False,
        time_limit: Optional[float] = None,
        trace_calls: bool = False,
        echo: bool = False,
    ):
        """Create a new context.

        Args:
            max_stack_depth: Maximum number of activations, global included
            legacy_implicit_globals: Let assignment to an undeclared name
                create a global var instead of failing
            time_limit: Maximum execution time in seconds
            trace_calls: Record a CallEvent for every call, return and failure
            echo: Also print logged lines to stdout as they are produced
        """
        self.echo = echo
        self.log: List[str] = []
        self.interpreter = Interpreter(
            max_stack_depth=max_stack_depth,
            legacy_implicit_globals=legacy_implicit_globals,
            time_limit=time_limit,
            trace_calls=trace_calls,
        )
        self._setup_globals()

    def _setup_globals(self) -> None:
        """Set up built-in global objects and functions."""
        # Console object with log function
        console = JSObject()
        console.set("log", NativeFunction("log", self._console_log))
        self.interpreter.define_builtin("console", console)
        self.interpreter.define_builtin("log", NativeFunction("log", self._console_log))

        # Deferred callbacks
        self.interpreter.define_builtin("schedule", NativeFunction("schedule", self._schedule))
        self.interpreter.define_builtin("setTimeout", NativeFunction("setTimeout", self._set_timeout))

        self.interpreter.define_builtin("undefined", UNDEFINED, constant=True)
        self.interpreter.define_builtin("NaN", float("nan"), constant=True)
        self.interpreter.define_builtin("Infinity", float("inf"), constant=True)

    def _console_log(self, *args: JSValue) -> None:
        """Console.log implementation."""
        line = " ".join(to_string(arg) for arg in args)
        self.log.append(line)
        if self.echo:
            print(line)

    def _schedule(self, callback: JSValue = UNDEFINED, *args: JSValue) -> None:
        self.interpreter.schedule(callback, list(args))

    def _set_timeout(self, callback: JSValue = UNDEFINED, delay: JSValue = 0, *args: JSValue) -> None:
        delay = to_number(delay)
        if is_nan(delay):
            delay = 0
        self.interpreter.schedule(callback, list(args), delay)

    def run(self, code: Union[str, Program]) -> EvaluationResult:
        """Run a program, reporting runtime errors in the result.

        Raises:
            JSSyntaxError: If the program is rejected before it starts
        """
        program = code if isinstance(code, Program) else Parser(code).parse()
        tree = build_scope_tree(program)

        log_start = len(self.log)
        calls_start = len(self.interpreter.calls)
        logger.info("Evaluating program with %d statements", len(program.body))

        value: JSValue = UNDEFINED
        error: Optional[JSError] = None
        try:
            value = self.interpreter.run(tree)
        except JSSyntaxError:
            raise
        except JSError as exc:
            error = exc
            logger.info("Evaluation failed with %s: %s", exc.kind, exc.message)
        else:
            logger.info("Evaluation finished")

        return EvaluationResult(
            log=self.log[log_start:],
            value=value,
            error=error,
            globals=self.interpreter.global_scope.snapshot(),
            calls=self.interpreter.calls[calls_start:],
        )

    def eval(self, code: str) -> Any:
        """Evaluate code and return the completion value.

        Args:
            code: JavaScript source code to evaluate

        Returns:
            The value of the last expression statement, converted to Python

        Raises:
            JSSyntaxError: If the code has syntax errors
            JSError: If evaluation fails
        """
        result = self.run(code)
        if result.error is not None:
            raise result.error
        return self._to_python(result.value)

    def get(self, name: str) -> Any:
        """Get a global variable, or None if it is not bound.

        Raises:
            TDZError: If the binding is still in its temporal dead zone
        """
        record = self.interpreter.global_scope.resolve(name)
        if record is None:
            return None
        return self._to_python(record.read())

    def set(self, name: str, value: Any) -> None:
        """Set a global variable.

        Existing global let bindings are assigned (and obey const and the
        dead zone); any other name becomes a global var.
        """
        scope = self.interpreter.global_scope
        record = scope.lookup_own(name)
        if record is not None and record.is_lexical:
            record.assign(self._to_js(value))
        else:
            scope.declare(name, DeclKind.VAR, self._to_js(value))

    def _to_python(self, value: JSValue) -> Any:
        """Convert a JavaScript value to Python."""
        if value is UNDEFINED:
            return None
        if value is NULL:
            return None
        if isinstance(value, JSObject):
            return {k: self._to_python(value.get(k)) for k in value.keys()}
        # Primitives and functions pass through
        return value

    def _to_js(self, value: Any) -> JSValue:
        """Convert a Python value to JavaScript."""
        if value is None:
            return NULL
        if isinstance(value, (bool, int, float, str)):
            return value
        # Already JS values - pass through
        if value is UNDEFINED or isinstance(value, (JSObject, FunctionValue, NativeFunction)):
            return value
        if isinstance(value, dict):
            obj = JSObject()
            for k, v in value.items():
                obj.set(str(k), self._to_js(v))
            return obj
        if callable(value):
            return NativeFunction(getattr(value, "__name__", "native"), value)
        raise TypeError(f"Cannot convert {type(value).__name__} to a JavaScript value")


def evaluate(program: Union[str, Program], **options: Any) -> EvaluationResult:
    """Run a program in a fresh context.

    Keyword options are passed to Context.
    """
    return Context(**options).run(program)
