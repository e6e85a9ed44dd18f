"""Tests for the hoisting pass and TDZ behavior."""

import pytest
from scopejs import Context, evaluate, UNDEFINED
from scopejs.bindings import BindingState, DeclKind, ScopeNode
from scopejs.errors import JSSyntaxError, TDZError
from scopejs.hoisting import hoist
from scopejs.parser import Parser
from scopejs.scope_tree import ScopeKind, build_scope_tree
from scopejs.values import FunctionValue


def make_function(decl, node):
    return FunctionValue(decl.id.name, decl, None, node)


def hoisted_global(source):
    """Hoist a program's global declarations into a fresh node."""
    tree = build_scope_tree(Parser(source).parse())
    node = ScopeNode(ScopeKind.GLOBAL, label="global")
    hoist(node, tree.root, make_function)
    return node


class TestHoistPass:
    """Direct tests of hoist()."""

    def test_var_initialized_to_undefined(self):
        """var names are registered as undefined."""
        node = hoisted_global("log(a); var a = 1;")
        record = node.lookup_own("a")
        assert record.kind == DeclKind.VAR
        assert record.state == BindingState.INITIALIZED
        assert record.value is UNDEFINED

    def test_nested_block_var_is_hoisted(self):
        """var inside nested blocks hoists to the global node."""
        node = hoisted_global("if (x) { while (y) { var deep = 1; } }")
        assert node.lookup_own("deep") is not None

    def test_let_and_const_uninitialized(self):
        """let/const start in the dead zone."""
        node = hoisted_global("let a = 1; const b = 2;")
        assert node.lookup_own("a").state == BindingState.UNINITIALIZED
        assert node.lookup_own("b").kind == DeclKind.CONST
        with pytest.raises(TDZError):
            node.lookup_own("a").read()

    def test_function_wins_over_var(self):
        """A function declaration overwrites a same-named var."""
        node = hoisted_global("var f = 1; function f() {}")
        record = node.lookup_own("f")
        assert record.kind == DeclKind.FUNCTION
        assert isinstance(record.value, FunctionValue)
        assert record.value.closure is node

    def test_existing_var_untouched(self):
        """Re-hoisting a var keeps its current value."""
        tree = build_scope_tree(Parser("var a;").parse())
        node = ScopeNode(ScopeKind.GLOBAL)
        node.declare("a", DeclKind.VAR, 42)
        hoist(node, tree.root, make_function)
        assert node.lookup_own("a").value == 42

    def test_parameter_wins_over_var(self):
        """A var with a parameter's name is a no-op."""
        program = Parser("function f(x) { var x; }").parse()
        tree = build_scope_tree(program)
        node = ScopeNode(ScopeKind.FUNCTION)
        node.declare("x", DeclKind.PARAM, 7)
        hoist(node, tree.root.children[0], make_function)
        assert node.lookup_own("x").value == 7
        assert node.lookup_own("x").kind == DeclKind.PARAM

    def test_lexical_conflict_with_existing_binding(self):
        """A reused node rejects redeclared lexical names before mutating."""
        tree = build_scope_tree(Parser("var z; let a;").parse())
        node = ScopeNode(ScopeKind.GLOBAL)
        node.declare_uninitialized("a", DeclKind.LET)
        with pytest.raises(JSSyntaxError, match="'a' has already been declared"):
            hoist(node, tree.root, make_function)
        assert node.lookup_own("z") is None


class TestHoistingSemantics:
    """Observable hoisting behavior in programs."""

    def test_var_logged_before_assignment(self):
        """var read before assignment logs undefined."""
        result = evaluate("log(x); var x = 5; log(x);")
        assert result.ok
        assert result.log == ["undefined", "5"]

    def test_let_read_before_declaration(self):
        """let read before its declaration is a TDZ error."""
        result = evaluate("log(y); let y = 5;")
        assert isinstance(result.error, TDZError)
        assert result.error.message == "Cannot access 'y' before initialization"
        assert result.log == []

    def test_const_read_before_declaration(self):
        """const also has a dead zone."""
        result = evaluate("const z = z + 1;")
        assert isinstance(result.error, TDZError)

    def test_write_in_dead_zone(self):
        """Assigning before the declaration is also a TDZ error."""
        result = evaluate("x = 1; let x;")
        assert isinstance(result.error, TDZError)

    def test_function_callable_before_declaration(self):
        """Function declarations are usable before their text."""
        result = evaluate("log(square(4)); function square(n) { return n * n; }")
        assert result.log == ["16"]

    def test_function_expression_not_hoisted(self):
        """Only the var of a function expression is hoisted."""
        result = evaluate("log(typeof f); var f = function () {}; log(typeof f);")
        assert result.log == ["undefined", "function"]

    def test_tdz_from_inner_function(self):
        """A function called before the let runs hits the dead zone."""
        result = evaluate("""
            function read() { return value; }
            read();
            let value = 1;
        """)
        assert isinstance(result.error, TDZError)
        assert result.stack_trace == ["read", "global"]

    def test_tdz_over_outer_binding(self):
        """An inner let shadows the outer one from the start of its block."""
        result = evaluate("""
            let x = "outer";
            {
                log(x);
                let x = "inner";
            }
        """)
        assert isinstance(result.error, TDZError)

    def test_typeof_in_dead_zone(self):
        """typeof does not protect against the dead zone."""
        result = evaluate("typeof t; let t = 1;")
        assert isinstance(result.error, TDZError)

    def test_let_without_initializer(self):
        """let x; leaves the dead zone with undefined."""
        result = evaluate("let x; log(x);")
        assert result.log == ["undefined"]

    def test_block_function_is_block_scoped(self):
        """Function declarations in blocks stay in the block."""
        result = evaluate("""
            {
                log(inner());
                function inner() { return "in"; }
            }
            log(typeof inner);
        """)
        assert result.log == ["in", "undefined"]


class TestGlobalRedeclaration:
    """The global node persists across runs in one context."""

    def test_let_redeclared_in_later_run(self):
        """A second let of the same name fails before running."""
        ctx = Context()
        ctx.eval("let a = 1;")
        with pytest.raises(JSSyntaxError):
            ctx.eval("log('never'); let a = 2;")
        assert ctx.log == []
        assert ctx.get("a") == 1

    def test_var_over_let_in_later_run(self):
        """var cannot redeclare an existing global let."""
        ctx = Context()
        ctx.eval("let a = 1;")
        with pytest.raises(JSSyntaxError):
            ctx.eval("var a;")

    def test_var_redeclared_in_later_run(self):
        """var can be redeclared and keeps its value."""
        ctx = Context()
        ctx.eval("var a = 1;")
        assert ctx.eval("var a; a") == 1
