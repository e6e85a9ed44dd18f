"""Tests for closure capture and scope resolution."""

import pytest
from scopejs import evaluate, Context, UNDEFINED
from scopejs.errors import ReferenceUndeclaredError
from scopejs.values import JSObject


COUNTER = """
function createCounter() {
    let count = 0;
    return function () {
        count++;
        return count;
    };
}
const counterA = createCounter();
log(counterA());
log(counterA());
log(counterA());
const counterB = createCounter();
log(counterB());
"""


class TestClosures:
    """Functions keep their defining scope alive."""

    def test_independent_counters(self):
        """Each outer call creates a separate captured scope."""
        result = evaluate(COUNTER)
        assert result.ok
        assert result.log == ["1", "2", "3", "1"]

    def test_getter_and_setter_share_binding(self):
        """Two closures from the same call share one binding."""
        result = evaluate("""
            let get, set;
            function make() {
                let value = 1;
                get = () => value;
                set = (v) => { value = v; };
            }
            make();
            set(42);
            log(get());
        """)
        assert result.log == ["42"]

    def test_closure_sees_later_writes(self):
        """Capture is by reference, not by value."""
        result = evaluate("""
            let x = 1;
            const read = () => x;
            x = 2;
            log(read());
        """)
        assert result.log == ["2"]

    def test_lexical_not_dynamic_scope(self):
        """Free variables resolve where the function was defined."""
        result = evaluate("""
            var who = "global";
            function show() { return who; }
            function caller() {
                var who = "caller";
                return show();
            }
            log(caller());
        """)
        assert result.log == ["global"]

    def test_closure_outlives_block(self):
        """Closures over a block scope keep it alive."""
        result = evaluate("""
            let fn;
            {
                let hidden = "kept";
                fn = () => hidden;
            }
            log(fn());
        """)
        assert result.log == ["kept"]

    def test_curried_arrows(self):
        """Nested arrows capture each level."""
        result = evaluate("const add = a => b => c => a + b + c; log(add(1)(2)(3));")
        assert result.log == ["6"]


class TestLoopCapture:
    """var and let loops differ in what callbacks capture."""

    def test_var_loop_shares_binding(self):
        """Callbacks from a var loop all see the final value."""
        result = evaluate("""
            for (var i = 1; i <= 3; i++) {
                schedule(function () { log(i); });
            }
        """)
        assert result.log == ["4", "4", "4"]

    def test_let_loop_gets_fresh_binding(self):
        """Callbacks from a let loop see their own iteration."""
        result = evaluate("""
            for (let i = 1; i <= 3; i++) {
                schedule(function () { log(i); });
            }
        """)
        assert result.log == ["1", "2", "3"]

    def test_let_loop_with_set_timeout(self):
        """The classic setTimeout loop."""
        result = evaluate("""
            for (let i = 1; i <= 3; i++) {
                setTimeout(() => log(i), 100 - i);
            }
        """)
        assert result.log == ["3", "2", "1"]

    def test_body_update_carries_to_next_iteration(self):
        """Writes in the body are copied into the next iteration."""
        result = evaluate("""
            for (let i = 0; i < 6; i++) {
                i++;
                log(i);
            }
        """)
        assert result.log == ["1", "3", "5"]

    def test_const_loop_variable(self):
        """A const loop variable cannot be updated."""
        result = evaluate("for (const i = 0; i < 1; i++) {}")
        assert result.error is not None
        assert result.error.kind == "TypeError"


class TestScopeResolution:
    """Shadowing and block visibility."""

    def test_let_in_if_block_unreachable(self):
        """A let declared in an if block is gone after the block."""
        result = evaluate("""
            if (true) {
                let hidden = 1;
            }
            log(hidden);
        """)
        assert isinstance(result.error, ReferenceUndeclaredError)
        assert result.error.binding_name == "hidden"

    def test_var_in_if_block_visible(self):
        """A var declared in an if block is function-scoped."""
        result = evaluate("if (true) { var seen = 1; } log(seen);")
        assert result.log == ["1"]

    def test_parameter_shadows_outer(self):
        """Parameters shadow outer bindings."""
        result = evaluate("""
            let x = "outer";
            function f(x) { return x; }
            log(f("param"), x);
        """)
        assert result.log == ["param outer"]

    def test_var_redeclares_parameter(self):
        """var with a parameter's name keeps the argument."""
        result = evaluate("function f(x) { var x; return x; } log(f(5));")
        assert result.log == ["5"]

    def test_function_over_parameter(self):
        """A function declaration replaces a same-named parameter."""
        result = evaluate("function f(x) { function x() {} return typeof x; } log(f(5));")
        assert result.log == ["function"]

    def test_missing_arguments_are_undefined(self):
        """Missing arguments are undefined and extras are ignored."""
        result = evaluate("function f(a, b) { return b; } log(f(1), f(1, 2, 3));")
        assert result.log == ["undefined 2"]

    def test_inner_block_shadows(self):
        """Inner let shadows outer let only inside the block."""
        result = evaluate("""
            let x = 1;
            { let x = 2; log(x); }
            log(x);
        """)
        assert result.log == ["2", "1"]

    def test_named_function_expression_scope(self):
        """A function expression's name is visible only inside it."""
        result = evaluate("""
            const fact = function inner(n) { return n <= 1 ? 1 : n * inner(n - 1); };
            log(fact(5), typeof inner);
        """)
        assert result.log == ["120 undefined"]

    def test_named_function_expression_name_is_immutable(self):
        """The self-binding of a named function expression is constant."""
        result = evaluate("(function self() { self = 1; })();")
        assert result.error.kind == "TypeError"


class TestThis:
    """this binding for plain, member and arrow calls."""

    def test_plain_call_this_undefined(self):
        """Plain calls get undefined this."""
        result = evaluate("function f() { return this; } log(f());")
        assert result.log == ["undefined"]

    def test_global_this_undefined(self):
        """Global code has undefined this."""
        assert evaluate("this").value is UNDEFINED

    def test_member_call_and_arrow_this(self):
        """A member call passes the object; arrows inherit it."""
        ctx = Context()
        ctx.eval("function method() { const arrow = () => this; return arrow(); }")
        obj = JSObject()
        obj.set("method", ctx.get("method"))
        ctx.set("obj", obj)
        assert ctx.eval("obj.method() === obj") is True
        assert ctx.eval("typeof method()") == "undefined"


class TestFunctionNames:
    """Anonymous functions are named after their binding."""

    def test_declarator_name(self):
        """const f = () => ... is named f."""
        result = evaluate("const f = () => 1; log(f);")
        assert result.log == ["[Function: f]"]

    def test_assignment_name(self):
        """Assignment also names anonymous functions."""
        result = evaluate("var g; g = function () {}; log(g);")
        assert result.log == ["[Function: g]"]
