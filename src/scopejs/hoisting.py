"""Hoisting pass: pre-populate a scope node before its statements run.

For every scope entry the declarations collected by the scope tree builder
are registered in three steps:

1. ``var`` names become initialized to ``undefined``. A name that is
   already bound (a parameter, or a ``var`` from an earlier program run in
   the same global scope) is left untouched.
2. Function declarations become initialized to a function value that
   captures the scope node being populated. They replace a same-named
   ``var`` or parameter.
3. ``let``/``const`` names are registered uninitialized. They stay in the
   temporal dead zone until their declaration statement executes.
"""

import logging
from typing import Callable

from .ast_nodes import FunctionDeclaration
from .bindings import DeclKind, ScopeNode
from .errors import JSSyntaxError
from .scope_tree import LexicalScope
from .values import FunctionValue

logger = logging.getLogger(__name__)

FunctionFactory = Callable[[FunctionDeclaration, ScopeNode], FunctionValue]


def _check_conflicts(node: ScopeNode, scope: LexicalScope) -> None:
    """Reject declarations that clash with bindings already in node.

    Fresh function and block nodes only hold parameters at this point, and
    the builder already rejected parameter clashes, so this only fires for
    a global node reused across program runs.
    """
    for name in scope.var_names + scope.function_names():
        existing = node.lookup_own(name)
        if existing is not None and existing.is_lexical:
            raise JSSyntaxError(f"Identifier '{name}' has already been declared")
    for name in scope.lexical:
        if node.lookup_own(name) is not None:
            raise JSSyntaxError(f"Identifier '{name}' has already been declared")


def hoist(node: ScopeNode, scope: LexicalScope, make_function: FunctionFactory) -> None:
    """Register the declarations of scope into the live node."""
    _check_conflicts(node, scope)

    for name in scope.var_names:
        if node.lookup_own(name) is None:
            node.declare(name, DeclKind.VAR)

    for decl in scope.functions:
        node.declare(decl.id.name, DeclKind.FUNCTION, make_function(decl, node))

    for name, kind in scope.lexical.items():
        node.declare_uninitialized(name, DeclKind(kind))

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Hoisted into %s: var=%s function=%s lexical=%s",
            node.label,
            scope.var_names,
            scope.function_names(),
            list(scope.lexical),
        )
