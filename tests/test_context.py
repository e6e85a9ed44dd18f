"""Tests for the public API: parse, evaluate and Context."""

import pytest
from scopejs import Context, EvaluationResult, evaluate, parse, UNDEFINED, __version__
from scopejs.ast_nodes import Program
from scopejs.errors import JSTypeError, TDZError


class TestParse:
    """parse() returns an analyzed program."""

    def test_returns_program(self):
        """parse returns the AST root."""
        program = parse("let a = 1;")
        assert isinstance(program, Program)
        assert len(program.body) == 1

    def test_evaluate_parsed_program(self):
        """A parsed program can be evaluated."""
        program = parse("log('hi'); 7")
        result = evaluate(program)
        assert result.log == ["hi"]
        assert result.value == 7


class TestEvaluate:
    """One-shot evaluation."""

    def test_result_fields(self):
        """A successful run fills in the result."""
        result = evaluate("var a = 1; let b = 2; log(a + b); a + b")
        assert isinstance(result, EvaluationResult)
        assert result.ok
        assert result.value == 3
        assert result.result == 3
        assert result.log == ["3"]
        assert result.error is None
        assert result.stack_trace == []

    def test_globals_snapshot(self):
        """globals holds initialized user bindings only."""
        result = evaluate("var a = 1; function f() {} missing; let late = 2;")
        assert result.globals["a"] == 1
        assert "f" in result.globals
        assert "late" not in result.globals
        assert "console" not in result.globals

    def test_fresh_environment_each_time(self):
        """evaluate() never shares state."""
        evaluate("var shared = 1;")
        assert isinstance(evaluate("shared").error, Exception)

    def test_echo(self, capsys):
        """echo prints logged lines as they happen."""
        evaluate("log('printed')", echo=True)
        assert capsys.readouterr().out == "printed\n"


class TestContext:
    """Persistent contexts."""

    def test_globals_persist(self):
        """Globals survive between evaluations."""
        ctx = Context()
        ctx.eval("let counter = 0; function bump() { counter++; return counter; }")
        ctx.eval("bump()")
        assert ctx.eval("bump()") == 2
        assert ctx.get("counter") == 2

    def test_log_accumulates(self):
        """ctx.log keeps every line; run() returns only new ones."""
        ctx = Context()
        ctx.run("log(1)")
        result = ctx.run("log(2)")
        assert result.log == ["2"]
        assert ctx.log == ["1", "2"]

    def test_get_missing(self):
        """get of an unknown name is None."""
        assert Context().get("nothing") is None

    def test_get_builtin(self):
        """get sees builtins too."""
        assert Context().get("undefined") is None

    def test_get_in_dead_zone(self):
        """get of a binding in its dead zone raises."""
        ctx = Context()
        ctx.run("boom; let pending = 1;")
        with pytest.raises(TDZError):
            ctx.get("pending")

    def test_set_values(self):
        """set converts Python values."""
        ctx = Context()
        ctx.set("n", 5)
        ctx.set("s", "text")
        ctx.set("nothing", None)
        assert ctx.eval("n * 2") == 10
        assert ctx.eval("s + '!'") == "text!"
        assert ctx.eval("nothing === null") is True

    def test_set_python_callable(self):
        """Python callables become native functions."""
        ctx = Context()
        ctx.set("double", lambda x: x * 2)
        assert ctx.eval("double(21)") == 42

    def test_set_dict(self):
        """Dicts become namespace objects."""
        ctx = Context()
        ctx.set("config", {"depth": 3})
        assert ctx.eval("config.depth") == 3
        assert ctx.get("config") == {"depth": 3}

    def test_set_const(self):
        """set respects const bindings."""
        ctx = Context()
        ctx.eval("const fixed = 1;")
        with pytest.raises(JSTypeError):
            ctx.set("fixed", 2)

    def test_set_let(self):
        """set assigns an existing let."""
        ctx = Context()
        ctx.eval("let value = 1;")
        ctx.set("value", 2)
        assert ctx.eval("value") == 2

    def test_version(self):
        """The package has a version."""
        assert __version__ == "0.1.0"

    def test_completion_undefined(self):
        """run reports undefined completion values as UNDEFINED."""
        assert Context().run("var x;").value is UNDEFINED
