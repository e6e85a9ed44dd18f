"""Static lexical scope analysis.

The builder walks a parsed Program and produces a tree of lexical scopes:
one for the program, one per function (declaration, expression or arrow),
one per block that declares something lexically (``let``, ``const`` or a
block-level function) and one per ``for`` statement whose init is a
``let``/``const`` declaration.

``var`` declarations are registered into the nearest enclosing function or
global scope, so blocks holding only ``var`` declarations do not get a scope
of their own. Each scope records the declarations the hoisting pass needs
and its ordered list of direct child statements.

Redeclaration conflicts are early errors and are reported here, before any
code runs.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set

from .ast_nodes import (
    Node, Program, ExpressionStatement, BlockStatement,
    VariableDeclaration, IfStatement, WhileStatement, ForStatement,
    ReturnStatement, FunctionDeclaration, FunctionExpression,
    ArrowFunctionExpression, FunctionNode,
)
from .errors import JSSyntaxError

logger = logging.getLogger(__name__)


class ScopeKind(str, Enum):
    GLOBAL = "global"
    FUNCTION = "function"
    BLOCK = "block"


@dataclass(eq=False)
class LexicalScope:
    """A static lexical scope and the declarations made directly in it."""

    kind: ScopeKind
    node: Node
    parent: Optional["LexicalScope"] = None
    name: str = ""
    children: List["LexicalScope"] = field(default_factory=list)
    statements: List[Node] = field(default_factory=list)
    params: List[str] = field(default_factory=list)
    # Hoisted var names, in first-declaration order (function/global only)
    var_names: List[str] = field(default_factory=list)
    functions: List[FunctionDeclaration] = field(default_factory=list)
    # let/const names declared directly here -> "let" or "const"
    lexical: Dict[str, str] = field(default_factory=dict)
    # var names hoisted through this block on their way to the function scope
    vars_through: Set[str] = field(default_factory=set)

    @property
    def is_var_scope(self) -> bool:
        """True for scopes that receive hoisted var declarations."""
        return self.kind != ScopeKind.BLOCK

    def function_names(self) -> List[str]:
        return [decl.id.name for decl in self.functions]

    def walk(self) -> Iterator["LexicalScope"]:
        """Yield this scope and its descendants in depth-first order."""
        stack = [self]
        while stack:
            scope = stack.pop()
            yield scope
            stack.extend(reversed(scope.children))

    def __repr__(self) -> str:
        label = f" {self.name}" if self.name else ""
        return f"<LexicalScope {self.kind.value}{label}>"


class ScopeTree:
    """The root scope plus a lookup from owning AST node to scope."""

    def __init__(self, program: Program, root: LexicalScope):
        self.program = program
        self.root = root
        self.by_node: Dict[int, LexicalScope] = {}

    def register(self, scope: LexicalScope) -> None:
        self.by_node[id(scope.node)] = scope

    def scope_for(self, node: Node) -> Optional[LexicalScope]:
        """Return the scope owned by node, or None if it owns none."""
        return self.by_node.get(id(node))

    def __iter__(self) -> Iterator[LexicalScope]:
        return self.root.walk()

    def __len__(self) -> int:
        return len(self.by_node)


def _redeclared(name: str) -> JSSyntaxError:
    return JSSyntaxError(f"Identifier '{name}' has already been declared")


def _declares_lexically(statements: List[Node]) -> bool:
    """Check whether a statement list needs its own block scope."""
    for stmt in statements:
        if isinstance(stmt, FunctionDeclaration):
            return True
        if isinstance(stmt, VariableDeclaration) and stmt.kind != "var":
            return True
    return False


class ScopeTreeBuilder:
    """Builds a ScopeTree from a Program."""

    def __init__(self):
        self._tree: Optional[ScopeTree] = None

    def build(self, program: Program) -> ScopeTree:
        root = LexicalScope(ScopeKind.GLOBAL, program, name="global")
        root.statements = list(program.body)
        self._tree = ScopeTree(program, root)
        self._tree.register(root)
        self._visit_statements(program.body, root, root)
        logger.debug("Built scope tree with %d scopes", len(self._tree))
        return self._tree

    def _new_scope(self, kind: ScopeKind, node: Node, parent: LexicalScope, name: str) -> LexicalScope:
        scope = LexicalScope(kind, node, parent=parent, name=name)
        parent.children.append(scope)
        self._tree.register(scope)
        return scope

    # ---- Declarations ----

    def _declare_var(self, name: str, scope: LexicalScope, var_scope: LexicalScope) -> None:
        current = scope
        while True:
            if name in current.lexical:
                raise _redeclared(name)
            if current is var_scope:
                break
            if name in current.function_names():
                raise _redeclared(name)
            current.vars_through.add(name)
            current = current.parent
        if name not in var_scope.var_names:
            var_scope.var_names.append(name)

    def _declare_lexical(self, name: str, kind: str, scope: LexicalScope) -> None:
        if name in scope.lexical or name in scope.function_names():
            raise _redeclared(name)
        if name in scope.vars_through:
            raise _redeclared(name)
        if scope.is_var_scope and (name in scope.var_names or name in scope.params):
            raise _redeclared(name)
        scope.lexical[name] = kind

    def _declare_function(self, node: FunctionDeclaration, scope: LexicalScope) -> None:
        name = node.id.name
        if name in scope.lexical:
            raise _redeclared(name)
        if not scope.is_var_scope and (name in scope.vars_through or name in scope.function_names()):
            raise _redeclared(name)
        scope.functions.append(node)

    # ---- Statements ----

    def _visit_statements(self, statements: List[Node], scope: LexicalScope, var_scope: LexicalScope) -> None:
        for stmt in statements:
            self._visit_statement(stmt, scope, var_scope)

    def _visit_statement(self, node: Node, scope: LexicalScope, var_scope: LexicalScope) -> None:
        if isinstance(node, VariableDeclaration):
            for decl in node.declarations:
                if node.kind == "var":
                    self._declare_var(decl.id.name, scope, var_scope)
                else:
                    self._declare_lexical(decl.id.name, node.kind, scope)
                if decl.init is not None:
                    self._visit_expression(decl.init, scope)

        elif isinstance(node, FunctionDeclaration):
            self._declare_function(node, scope)
            self._build_function(node, scope)

        elif isinstance(node, BlockStatement):
            if _declares_lexically(node.body):
                block = self._new_scope(ScopeKind.BLOCK, node, scope, "block")
                block.statements = list(node.body)
                self._visit_statements(node.body, block, var_scope)
            else:
                self._visit_statements(node.body, scope, var_scope)

        elif isinstance(node, IfStatement):
            self._visit_expression(node.test, scope)
            self._visit_statement(node.consequent, scope, var_scope)
            if node.alternate is not None:
                self._visit_statement(node.alternate, scope, var_scope)

        elif isinstance(node, WhileStatement):
            self._visit_expression(node.test, scope)
            self._visit_statement(node.body, scope, var_scope)

        elif isinstance(node, ForStatement):
            self._visit_for(node, scope, var_scope)

        elif isinstance(node, ReturnStatement):
            if node.argument is not None:
                self._visit_expression(node.argument, scope)

        elif isinstance(node, ExpressionStatement):
            self._visit_expression(node.expression, scope)

    def _visit_for(self, node: ForStatement, scope: LexicalScope, var_scope: LexicalScope) -> None:
        init = node.init
        if isinstance(init, VariableDeclaration):
            if init.kind != "var":
                scope = self._new_scope(ScopeKind.BLOCK, node, scope, "for")
                scope.statements = [init]
            self._visit_statement(init, scope, var_scope)
        elif init is not None:
            self._visit_expression(init, scope)
        for expr in (node.test, node.update):
            if expr is not None:
                self._visit_expression(expr, scope)
        self._visit_statement(node.body, scope, var_scope)

    # ---- Functions and expressions ----

    def _build_function(self, node: FunctionNode, parent: LexicalScope) -> LexicalScope:
        name = ""
        if not isinstance(node, ArrowFunctionExpression) and node.id is not None:
            name = node.id.name
        scope = self._new_scope(ScopeKind.FUNCTION, node, parent, name)
        scope.params = [p.name for p in node.params]
        if isinstance(node, ArrowFunctionExpression) and node.expression:
            self._visit_expression(node.body, scope)
        else:
            scope.statements = list(node.body.body)
            self._visit_statements(node.body.body, scope, scope)
        return scope

    def _visit_expression(self, node: Node, scope: LexicalScope) -> None:
        """Find function expressions nested anywhere in an expression."""
        # Operator chains can be thousands of nodes deep, so walk with a stack
        pending = [node]
        while pending:
            node = pending.pop()
            if isinstance(node, (FunctionExpression, ArrowFunctionExpression)):
                self._build_function(node, scope)
                continue
            children: List[Node] = []
            for value in node.__dict__.values():
                if isinstance(value, Node):
                    children.append(value)
                elif isinstance(value, list):
                    children.extend(item for item in value if isinstance(item, Node))
            # Reversed so functions are registered in source order
            pending.extend(reversed(children))


def build_scope_tree(program: Program) -> ScopeTree:
    """Analyze a program, raising JSSyntaxError on early errors."""
    return ScopeTreeBuilder().build(program)
