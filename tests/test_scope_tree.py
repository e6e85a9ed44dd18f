"""Tests for static lexical scope analysis."""

import pytest
from scopejs import parse
from scopejs.errors import JSSyntaxError
from scopejs.parser import Parser
from scopejs.scope_tree import ScopeKind, build_scope_tree


def analyze(source):
    return build_scope_tree(Parser(source).parse())


class TestScopeShapes:
    """Which nodes own scopes."""

    def test_global_only(self):
        """A flat program has just the global scope."""
        tree = analyze("var a = 1; a + 1;")
        assert len(tree) == 1
        assert tree.root.kind == ScopeKind.GLOBAL
        assert tree.root.var_names == ["a"]

    def test_function_scope(self):
        """Functions get a scope that records params."""
        tree = analyze("function f(a, b) { var c; }")
        func = tree.root.children[0]
        assert func.kind == ScopeKind.FUNCTION
        assert func.name == "f"
        assert func.params == ["a", "b"]
        assert func.var_names == ["c"]

    def test_functions_in_order(self):
        """Function expressions are found in source order."""
        tree = analyze("g(function a() {}, () => 1, function c() {});")
        assert [scope.name for scope in tree.root.children] == ["a", "", "c"]

    def test_function_at_end_of_long_chain(self):
        """A function buried under a long operator chain still gets a scope."""
        tree = analyze("1 + " * 5000 + "(function tail() {})();")
        assert [scope.name for scope in tree.root.children] == ["tail"]

    def test_block_with_let_gets_scope(self):
        """A block declaring let gets its own scope."""
        tree = analyze("if (true) { let x = 1; }")
        block = tree.root.children[0]
        assert block.kind == ScopeKind.BLOCK
        assert block.lexical == {"x": "let"}

    def test_block_with_only_var_has_no_scope(self):
        """var in a block hoists to the enclosing function scope."""
        tree = analyze("function f() { if (true) { var x = 1; } }")
        func = tree.root.children[0]
        assert func.children == []
        assert func.var_names == ["x"]

    def test_for_let_gets_scope(self):
        """for (let ...) owns a block scope for its variables."""
        program = Parser("for (let i = 0; i < 3; i++) {}").parse()
        tree = build_scope_tree(program)
        loop = tree.scope_for(program.body[0])
        assert loop is not None
        assert loop.name == "for"
        assert loop.lexical == {"i": "let"}

    def test_for_var_has_no_scope(self):
        """for (var ...) declares into the enclosing scope."""
        tree = analyze("for (var i = 0; i < 3; i++) {}")
        assert len(tree) == 1
        assert tree.root.var_names == ["i"]

    def test_nested_function_expressions(self):
        """Function expressions inside expressions are found."""
        tree = analyze("var f = function () { return () => 1; };")
        outer = tree.root.children[0]
        assert outer.kind == ScopeKind.FUNCTION
        assert outer.children[0].kind == ScopeKind.FUNCTION

    def test_vars_do_not_cross_functions(self):
        """var inside a nested function stays there."""
        tree = analyze("function f() { function g() { var inner; } }")
        f = tree.root.children[0]
        g = f.children[0]
        assert "inner" not in f.var_names
        assert g.var_names == ["inner"]

    def test_statements_are_recorded(self):
        """Each scope keeps its direct child statements in order."""
        program = Parser("let a = 1; function f() {} a;").parse()
        tree = build_scope_tree(program)
        assert tree.root.statements == program.body
        assert tree.root.function_names() == ["f"]

    def test_walk_order(self):
        """walk() is depth-first and starts at the root."""
        tree = analyze("function a() { function b() {} } function c() {}")
        names = [scope.name for scope in tree]
        assert names == ["global", "a", "b", "c"]


class TestEarlyErrors:
    """Redeclaration conflicts found before execution."""

    @pytest.mark.parametrize("source", [
        "let a; let a;",
        "let a; var a;",
        "var a; let a;",
        "const a = 1; function a() {}",
        "function a() {} let a;",
        "function f(x) { let x; }",
        "{ let a; { var a; } }",
        "{ function g() {} var g; }",
    ])
    def test_redeclaration(self, source):
        """Conflicting declarations are syntax errors."""
        with pytest.raises(JSSyntaxError, match="has already been declared"):
            analyze(source)

    @pytest.mark.parametrize("source", [
        "var a; var a;",
        "function a() {} var a;",
        "function f(x) { var x; }",
        "let a; { let a; }",
        "function a() {} function a() {}",
    ])
    def test_allowed_redeclaration(self, source):
        """Redeclarations that JavaScript permits are accepted."""
        analyze(source)

    def test_parse_runs_analysis(self):
        """parse() reports early errors too."""
        with pytest.raises(JSSyntaxError):
            parse("let x = 1; let x = 2;")
