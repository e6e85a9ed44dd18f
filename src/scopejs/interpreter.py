"""Evaluator and call stack engine.

Statements and expressions are evaluated by generator methods. A method that
needs the result of a sub-evaluation yields the child generator and is
resumed with its value; ``_drive`` runs these generators on an explicit
stack. Source-level recursion therefore never grows the Python stack, and
the only depth limit is the CallStack bound.
"""

import heapq
import logging
import math
import operator
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generator, Iterator, List, Optional, Tuple

from .ast_nodes import (
    Node, NumericLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    Identifier, ThisExpression,
    UnaryExpression, UpdateExpression, BinaryExpression, LogicalExpression,
    ConditionalExpression, AssignmentExpression, SequenceExpression,
    MemberExpression, CallExpression,
    ExpressionStatement, BlockStatement, EmptyStatement,
    VariableDeclaration, IfStatement, WhileStatement, ForStatement,
    BreakStatement, ContinueStatement, ReturnStatement,
    FunctionDeclaration, FunctionExpression, ArrowFunctionExpression,
)
from .bindings import BindingRecord, DeclKind, ScopeNode
from .errors import (
    JSError, JSTypeError, ReferenceUndeclaredError,
    StackOverflowError, TimeLimitError,
)
from .hoisting import hoist
from .scope_tree import LexicalScope, ScopeKind, ScopeTree
from .values import (
    UNDEFINED, NULL, JSValue, JSObject, FunctionValue, NativeFunction,
    is_callable, is_nan, js_typeof, to_boolean, to_number, to_string,
)

logger = logging.getLogger(__name__)

Evaluation = Generator[Any, Any, Any]

DEFAULT_MAX_STACK_DEPTH = 1000

# Check the time limit every this many evaluation steps
TIME_CHECK_INTERVAL = 1000


class ActivationState(str, Enum):
    CREATED = "Created"
    RUNNING = "Running"
    SUSPENDED = "Suspended"
    RETURNED = "Returned"
    FAILED = "Failed"


_TRANSITIONS = {
    ActivationState.CREATED: {ActivationState.RUNNING, ActivationState.FAILED},
    ActivationState.RUNNING: {
        ActivationState.SUSPENDED, ActivationState.RETURNED, ActivationState.FAILED,
    },
    ActivationState.SUSPENDED: {ActivationState.RUNNING},
    ActivationState.RETURNED: set(),
    ActivationState.FAILED: set(),
}


@dataclass(eq=False)
class Activation:
    """Runtime record of one function invocation or of the program."""

    name: str
    function_scope: ScopeNode
    this_value: JSValue = UNDEFINED
    function: Optional[FunctionValue] = None
    state: ActivationState = ActivationState.CREATED
    # Innermost scope node; moves into block scopes and back out
    scope: Optional[ScopeNode] = None
    # Value of the last expression statement (program activation only)
    completion: JSValue = UNDEFINED

    def __post_init__(self):
        if self.scope is None:
            self.scope = self.function_scope

    @property
    def is_global(self) -> bool:
        return self.function is None

    @property
    def lexical_parent(self) -> Optional[ScopeNode]:
        """The scope captured when the function was defined, not the caller's."""
        return self.function_scope.parent

    def transition(self, state: ActivationState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal activation transition for {self.name}: "
                f"{self.state.value} -> {state.value}"
            )
        self.state = state

    def restart(self) -> None:
        """Reset the program activation before another run."""
        self.state = ActivationState.CREATED
        self.scope = self.function_scope
        self.completion = UNDEFINED


class CallStack:
    """Bounded stack of activations with the global activation at the bottom."""

    def __init__(self, global_activation: Activation, max_depth: int = DEFAULT_MAX_STACK_DEPTH):
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.max_depth = max_depth
        self._frames: List[Activation] = [global_activation]

    def push(self, activation: Activation) -> None:
        if len(self._frames) >= self.max_depth:
            raise StackOverflowError(self.max_depth, self.trace())
        self._frames.append(activation)

    def pop(self) -> Activation:
        if len(self._frames) == 1:
            raise RuntimeError("The global activation is never popped")
        return self._frames.pop()

    @property
    def current(self) -> Activation:
        return self._frames[-1]

    @property
    def global_activation(self) -> Activation:
        return self._frames[0]

    def trace(self) -> List[str]:
        """Activation names from innermost to global."""
        return [activation.name for activation in reversed(self._frames)]

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Activation]:
        return iter(self._frames)


@dataclass(frozen=True)
class CallEvent:
    """One call-stack transition, recorded when call tracing is on."""
    kind: str  # "call", "return" or "fail"
    name: str
    depth: int


@dataclass
class Completion:
    """Abrupt completion of a statement."""
    type: str  # "return", "break" or "continue"
    value: JSValue = UNDEFINED


_RELATIONAL = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


class Interpreter:
    """Executes analyzed programs against a persistent global scope."""

    def __init__(
        self,
        max_stack_depth: int = DEFAULT_MAX_STACK_DEPTH,
        legacy_implicit_globals: bool = False,
        time_limit: Optional[float] = None,
        trace_calls: bool = False,
    ):
        self.legacy_implicit_globals = legacy_implicit_globals
        self.time_limit = time_limit
        self.trace_calls = trace_calls

        # Builtins sit behind the global node so programs may shadow them
        self.host_scope = ScopeNode(ScopeKind.GLOBAL, label="host")
        self.global_scope = ScopeNode(ScopeKind.GLOBAL, self.host_scope, "global")
        self.call_stack = CallStack(Activation("global", self.global_scope), max_stack_depth)
        self.calls: List[CallEvent] = []

        self._scopes: Dict[int, LexicalScope] = {}
        # Analyzed programs stay referenced so AST node ids stay unique
        self._trees: List[ScopeTree] = []

        self._tasks: List[Tuple[float, int, JSValue, List[JSValue]]] = []
        self._task_seq = 0
        self._clock = 0.0

        self._start_time: Optional[float] = None
        self._steps = 0

    def define_builtin(self, name: str, value: JSValue, constant: bool = False) -> None:
        self.host_scope.declare(name, DeclKind.CONST if constant else DeclKind.VAR, value)

    # ---- Running programs ----

    def run(self, tree: ScopeTree) -> JSValue:
        """Hoist and execute a program, then drain scheduled callbacks."""
        self._trees.append(tree)
        self._scopes.update(tree.by_node)

        activation = self.call_stack.global_activation
        activation.restart()
        activation.transition(ActivationState.RUNNING)
        self._start_time = time.time()
        self._steps = 0

        try:
            hoist(self.global_scope, tree.root, self._make_declared_function)
            self._drive(self._execute_statements(tree.program.body))
            self._run_tasks()
        except JSError:
            activation.transition(ActivationState.FAILED)
            self._tasks.clear()
            raise
        activation.transition(ActivationState.RETURNED)
        return activation.completion

    def schedule(self, callback: JSValue, args: List[JSValue], delay: float = 0) -> None:
        """Queue a callback to run after the current program completes."""
        if not is_callable(callback):
            raise JSTypeError(f"{to_string(callback)} is not a function")
        self._task_seq += 1
        heapq.heappush(self._tasks, (self._clock + max(delay, 0), self._task_seq, callback, list(args)))

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def _run_tasks(self) -> None:
        while self._tasks:
            when, _, callback, args = heapq.heappop(self._tasks)
            self._clock = when
            logger.debug("Running scheduled callback %r at t=%s", callback, when)
            self._drive(self._call_function(callback, args, UNDEFINED, callback.name))

    def _drive(self, routine: Evaluation) -> JSValue:
        """Run an evaluation generator to completion on an explicit stack."""
        stack = [routine]
        value: JSValue = None
        error: Optional[JSError] = None

        while stack:
            if error is None:
                error = self._check_limits()
            top = stack[-1]
            try:
                if error is not None:
                    pending, error = error, None
                    request = top.throw(pending)
                else:
                    request = top.send(value)
            except StopIteration as stop:
                stack.pop()
                value = stop.value
                continue
            except JSError as exc:
                stack.pop()
                if exc.call_trace is None:
                    exc.call_trace = self.call_stack.trace()
                if not stack:
                    raise
                error = exc
                continue
            stack.append(request)
            value = None

        return value

    def _check_limits(self) -> Optional[JSError]:
        self._steps += 1
        if self.time_limit is not None and self._steps % TIME_CHECK_INTERVAL == 0:
            if time.time() - self._start_time > self.time_limit:
                return TimeLimitError("Execution timeout")
        return None

    # ---- Scope chain ----

    def _resolve(self, name: str) -> Optional[BindingRecord]:
        return self.call_stack.current.scope.resolve(name)

    def _lookup(self, name: str) -> BindingRecord:
        record = self._resolve(name)
        if record is None:
            raise ReferenceUndeclaredError(name)
        return record

    def _assign(self, name: str, value: JSValue) -> None:
        record = self._resolve(name)
        if record is None:
            if not self.legacy_implicit_globals:
                raise ReferenceUndeclaredError(name)
            self.global_scope.declare(name, DeclKind.VAR, value)
            return
        record.assign(value)

    # ---- Functions and calls ----

    def _make_declared_function(self, decl: FunctionDeclaration, scope: ScopeNode) -> FunctionValue:
        return FunctionValue(decl.id.name, decl, self._scopes[id(decl)], scope)

    def _create_function(self, node: Node, name: str = "") -> FunctionValue:
        """Create a function value closing over the current scope node."""
        activation = self.call_stack.current
        scope = self._scopes[id(node)]
        if isinstance(node, ArrowFunctionExpression):
            return FunctionValue(name, node, scope, activation.scope, activation.this_value)
        if node.id is not None:
            # A named function expression sees its own name, nobody else does
            own = ScopeNode(ScopeKind.BLOCK, activation.scope, node.id.name)
            func = FunctionValue(node.id.name, node, scope, own)
            own.declare(node.id.name, DeclKind.CONST, func)
            return func
        return FunctionValue(name, node, scope, activation.scope)

    def _call_function(
        self,
        func: JSValue,
        args: List[JSValue],
        this_value: JSValue,
        name: str = "",
    ) -> Evaluation:
        if isinstance(func, NativeFunction):
            result = func(*args)
            return UNDEFINED if result is None else result
        if not isinstance(func, FunctionValue):
            raise JSTypeError(f"{name or to_string(func)} is not a function")

        caller = self.call_stack.current
        scope = ScopeNode(ScopeKind.FUNCTION, func.closure, func.display_name)
        activation = Activation(
            name=func.display_name,
            function_scope=scope,
            this_value=func.lexical_this if func.is_arrow else this_value,
            function=func,
        )
        self.call_stack.push(activation)
        caller.transition(ActivationState.SUSPENDED)
        self._record("call", activation)

        try:
            for index, param in enumerate(func.params):
                value = args[index] if index < len(args) else UNDEFINED
                scope.declare(param, DeclKind.PARAM, value)
            hoist(scope, func.scope, self._make_declared_function)
            activation.transition(ActivationState.RUNNING)

            if func.is_arrow and func.node.expression:
                result = yield self._evaluate(func.node.body)
            else:
                completion = yield self._execute_statements(func.node.body.body)
                if completion is not None and completion.type == "return":
                    result = completion.value
                else:
                    result = UNDEFINED
        except JSError:
            activation.transition(ActivationState.FAILED)
            self._record("fail", activation)
            raise
        else:
            activation.transition(ActivationState.RETURNED)
            self._record("return", activation)
        finally:
            self.call_stack.pop()
            caller.transition(ActivationState.RUNNING)
        return result

    def _record(self, kind: str, activation: Activation) -> None:
        depth = len(self.call_stack)
        logger.debug("%s %s (depth %d)", kind, activation.name, depth)
        if self.trace_calls:
            self.calls.append(CallEvent(kind, activation.name, depth))

    # ---- Statements ----

    def _execute_statements(self, statements: List[Node]) -> Evaluation:
        for stmt in statements:
            completion = yield self._execute(stmt)
            if completion is not None:
                return completion
        return None

    def _execute(self, node: Node) -> Evaluation:
        """Execute a statement, returning a Completion or None."""
        if isinstance(node, ExpressionStatement):
            value = yield self._evaluate(node.expression)
            activation = self.call_stack.current
            if activation.is_global:
                activation.completion = value
            return None

        if isinstance(node, VariableDeclaration):
            yield self._declare_variables(node)
            return None

        if isinstance(node, (FunctionDeclaration, EmptyStatement)):
            # Function declarations were hoisted on scope entry
            return None

        if isinstance(node, BlockStatement):
            return (yield self._execute_block(node))

        if isinstance(node, IfStatement):
            test = yield self._evaluate(node.test)
            if to_boolean(test):
                return (yield self._execute(node.consequent))
            if node.alternate is not None:
                return (yield self._execute(node.alternate))
            return None

        if isinstance(node, WhileStatement):
            return (yield self._execute_while(node))

        if isinstance(node, ForStatement):
            return (yield self._execute_for(node))

        if isinstance(node, ReturnStatement):
            value = UNDEFINED
            if node.argument is not None:
                value = yield self._evaluate(node.argument)
            return Completion("return", value)

        if isinstance(node, BreakStatement):
            return Completion("break")

        if isinstance(node, ContinueStatement):
            return Completion("continue")

        raise NotImplementedError(f"Cannot execute statement: {type(node).__name__}")

    def _declare_variables(self, node: VariableDeclaration) -> Evaluation:
        activation = self.call_stack.current
        for decl in node.declarations:
            name = decl.id.name
            if decl.init is None:
                if node.kind == "var":
                    # `var x;` keeps whatever x already holds
                    continue
                value = UNDEFINED
            else:
                value = yield self._evaluate_named(decl.init, name)

            if node.kind == "var":
                self._lookup(name).assign(value)
            else:
                record = activation.scope.lookup_own(name)
                if record is None:
                    raise RuntimeError(f"Lexical binding {name!r} was not hoisted")
                record.initialize(value)

    def _enter_scope(self, activation: Activation, node: Node, label: str) -> Optional[LexicalScope]:
        """Enter a fresh hoisted scope node if node owns a lexical scope."""
        scope = self._scopes.get(id(node))
        if scope is None:
            return None
        activation.scope = ScopeNode(ScopeKind.BLOCK, activation.scope, label)
        hoist(activation.scope, scope, self._make_declared_function)
        return scope

    def _execute_block(self, node: BlockStatement) -> Evaluation:
        activation = self.call_stack.current
        outer = activation.scope
        try:
            self._enter_scope(activation, node, "block")
            return (yield self._execute_statements(node.body))
        finally:
            activation.scope = outer

    def _execute_while(self, node: WhileStatement) -> Evaluation:
        while True:
            test = yield self._evaluate(node.test)
            if not to_boolean(test):
                return None
            completion = yield self._execute(node.body)
            if completion is not None:
                if completion.type == "break":
                    return None
                if completion.type == "return":
                    return completion

    def _execute_for(self, node: ForStatement) -> Evaluation:
        activation = self.call_stack.current
        outer = activation.scope
        per_iteration: List[str] = []

        try:
            scope = self._enter_scope(activation, node, "for")
            if scope is not None and node.init.kind == "let":
                per_iteration = list(scope.lexical)

            if isinstance(node.init, VariableDeclaration):
                yield self._declare_variables(node.init)
            elif node.init is not None:
                yield self._evaluate(node.init)

            if per_iteration:
                self._copy_iteration_scope(activation, per_iteration)

            while True:
                if node.test is not None:
                    test = yield self._evaluate(node.test)
                    if not to_boolean(test):
                        break
                completion = yield self._execute(node.body)
                if completion is not None:
                    if completion.type == "break":
                        break
                    if completion.type == "return":
                        return completion
                if per_iteration:
                    self._copy_iteration_scope(activation, per_iteration)
                if node.update is not None:
                    yield self._evaluate(node.update)
        finally:
            activation.scope = outer
        return None

    def _copy_iteration_scope(self, activation: Activation, names: List[str]) -> None:
        """Give the next loop iteration fresh copies of the let bindings."""
        previous = activation.scope
        fresh = ScopeNode(ScopeKind.BLOCK, previous.parent, "for")
        for name in names:
            record = previous.lookup_own(name)
            fresh.bindings[name] = BindingRecord(name, record.kind, record.state, record.value)
        activation.scope = fresh

    # ---- Expressions ----

    def _evaluate_named(self, node: Node, name: str) -> Evaluation:
        """Evaluate an initializer, naming anonymous functions after the target."""
        if isinstance(node, ArrowFunctionExpression) or (
            isinstance(node, FunctionExpression) and node.id is None
        ):
            return self._create_function(node, name)
        return (yield self._evaluate(node))

    def _evaluate(self, node: Node) -> Evaluation:
        """Evaluate an expression to a value."""
        if isinstance(node, (NumericLiteral, StringLiteral, BooleanLiteral)):
            return node.value

        if isinstance(node, NullLiteral):
            return NULL

        if isinstance(node, Identifier):
            return self._lookup(node.name).read()

        if isinstance(node, ThisExpression):
            return self.call_stack.current.this_value

        if isinstance(node, (FunctionExpression, ArrowFunctionExpression)):
            return self._create_function(node)

        if isinstance(node, UnaryExpression):
            return (yield self._evaluate_unary(node))

        if isinstance(node, UpdateExpression):
            record = self._lookup(node.argument.name)
            old = to_number(record.read())
            new = old + 1 if node.operator == "++" else old - 1
            record.assign(new)
            return new if node.prefix else old

        if isinstance(node, BinaryExpression):
            left = yield self._evaluate(node.left)
            right = yield self._evaluate(node.right)
            return self._binary(node.operator, left, right)

        if isinstance(node, LogicalExpression):
            left = yield self._evaluate(node.left)
            if node.operator == "&&" and not to_boolean(left):
                return left
            if node.operator == "||" and to_boolean(left):
                return left
            return (yield self._evaluate(node.right))

        if isinstance(node, ConditionalExpression):
            test = yield self._evaluate(node.test)
            branch = node.consequent if to_boolean(test) else node.alternate
            return (yield self._evaluate(branch))

        if isinstance(node, AssignmentExpression):
            name = node.left.name
            if node.operator == "=":
                value = yield self._evaluate_named(node.right, name)
            else:
                current = self._lookup(name).read()
                right = yield self._evaluate(node.right)
                value = self._binary(node.operator[:-1], current, right)
            self._assign(name, value)
            return value

        if isinstance(node, SequenceExpression):
            value = UNDEFINED
            for expr in node.expressions:
                value = yield self._evaluate(expr)
            return value

        if isinstance(node, MemberExpression):
            obj = yield self._evaluate(node.object)
            return self._get_member(obj, node.property.name)

        if isinstance(node, CallExpression):
            this_value = UNDEFINED
            if isinstance(node.callee, MemberExpression):
                this_value = yield self._evaluate(node.callee.object)
                func = self._get_member(this_value, node.callee.property.name)
            else:
                func = yield self._evaluate(node.callee)
            args = []
            for arg in node.arguments:
                args.append((yield self._evaluate(arg)))
            return (yield self._call_function(func, args, this_value, _callee_name(node.callee)))

        raise NotImplementedError(f"Cannot evaluate expression: {type(node).__name__}")

    def _evaluate_unary(self, node: UnaryExpression) -> Evaluation:
        if node.operator == "typeof" and isinstance(node.argument, Identifier):
            # typeof tolerates undeclared names, but not the dead zone
            record = self._resolve(node.argument.name)
            if record is None:
                return "undefined"
            return js_typeof(record.read())

        value = yield self._evaluate(node.argument)
        if node.operator == "-":
            return -to_number(value)
        if node.operator == "+":
            return to_number(value)
        if node.operator == "!":
            return not to_boolean(value)
        if node.operator == "typeof":
            return js_typeof(value)
        if node.operator == "void":
            return UNDEFINED
        raise NotImplementedError(f"Unknown unary operator: {node.operator}")

    def _get_member(self, obj: JSValue, name: str) -> JSValue:
        if isinstance(obj, JSObject):
            return obj.get(name)
        if obj is UNDEFINED or obj is NULL:
            raise JSTypeError(f"Cannot read properties of {to_string(obj)} (reading '{name}')")
        return UNDEFINED

    # ---- Operators ----

    def _binary(self, op: str, a: JSValue, b: JSValue) -> JSValue:
        if op == "+":
            return self._add(a, b)
        if op == "-":
            return to_number(a) - to_number(b)
        if op == "*":
            return to_number(a) * to_number(b)
        if op == "/":
            return self._divide(to_number(a), to_number(b))
        if op == "%":
            return self._modulo(to_number(a), to_number(b))
        if op == "**":
            return self._power(to_number(a), to_number(b))
        if op in _RELATIONAL:
            return self._relational(op, a, b)
        if op == "===":
            return self._strict_equals(a, b)
        if op == "!==":
            return not self._strict_equals(a, b)
        if op == "==":
            return self._abstract_equals(a, b)
        if op == "!=":
            return not self._abstract_equals(a, b)
        raise NotImplementedError(f"Unknown binary operator: {op}")

    def _add(self, a: JSValue, b: JSValue) -> JSValue:
        """JavaScript + operator."""
        # String concatenation if either is string
        if isinstance(a, str) or isinstance(b, str):
            return to_string(a) + to_string(b)
        return to_number(a) + to_number(b)

    def _divide(self, a, b):
        if b == 0:
            if a == 0 or is_nan(a):
                return float("nan")
            negative = (a < 0) != (math.copysign(1, b) < 0)
            return float("-inf") if negative else float("inf")
        return a / b

    def _modulo(self, a, b):
        if b == 0 or is_nan(a) or is_nan(b) or math.isinf(a):
            return float("nan")
        if math.isinf(b):
            return a
        # The result takes the sign of the dividend
        result = math.fmod(a, b)
        if isinstance(a, int) and isinstance(b, int):
            return int(result)
        return result

    def _power(self, a, b):
        try:
            result = a ** b
        except ZeroDivisionError:
            return float("inf")
        except OverflowError:
            return float("inf")
        if isinstance(result, complex):
            return float("nan")
        return result

    def _relational(self, op: str, a: JSValue, b: JSValue) -> bool:
        if isinstance(a, str) and isinstance(b, str):
            return _RELATIONAL[op](a, b)
        a_num = to_number(a)
        b_num = to_number(b)
        if is_nan(a_num) or is_nan(b_num):
            return False  # NaN comparisons are always false
        return _RELATIONAL[op](a_num, b_num)

    def _strict_equals(self, a: JSValue, b: JSValue) -> bool:
        """JavaScript === operator."""
        if isinstance(a, bool) or isinstance(b, bool):
            return type(a) is type(b) and a == b
        if isinstance(a, (int, float)) and isinstance(b, (int, float)):
            # NaN is not equal to itself
            return a == b
        if type(a) is not type(b):
            return False
        if isinstance(a, str):
            return a == b
        # Functions, objects and the undefined/null singletons
        return a is b

    def _abstract_equals(self, a: JSValue, b: JSValue) -> bool:
        """JavaScript == operator."""
        if type(a) is type(b):
            return self._strict_equals(a, b)

        # null == undefined
        if (a is NULL or a is UNDEFINED) and (b is NULL or b is UNDEFINED):
            return True
        if a is NULL or a is UNDEFINED or b is NULL or b is UNDEFINED:
            return False

        # Boolean to number
        if isinstance(a, bool):
            return self._abstract_equals(1 if a else 0, b)
        if isinstance(b, bool):
            return self._abstract_equals(a, 1 if b else 0)

        # Number comparisons
        if isinstance(a, (int, float)) and isinstance(b, (int, float)):
            return a == b

        # String to number
        if isinstance(a, str) and isinstance(b, (int, float)):
            return to_number(a) == b
        if isinstance(a, (int, float)) and isinstance(b, str):
            return a == to_number(b)

        return False


def _callee_name(node: Node) -> str:
    """Describe a callee expression for error messages."""
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, MemberExpression):
        return f"{_callee_name(node.object)}.{node.property.name}"
    return "expression"
