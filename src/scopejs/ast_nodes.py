"""AST node types for the parser."""

from dataclasses import dataclass
from typing import List, Optional, Union


@dataclass
class Node:
    """Base class for all AST nodes."""


# Literals
@dataclass
class NumericLiteral(Node):
    """Numeric literal: 42, 3.14, etc."""
    value: Union[int, float]


@dataclass
class StringLiteral(Node):
    """String literal: "hello", 'world'"""
    value: str


@dataclass
class BooleanLiteral(Node):
    """Boolean literal: true, false"""
    value: bool


@dataclass
class NullLiteral(Node):
    """Null literal: null"""
    pass


@dataclass
class Identifier(Node):
    """Identifier: variable names, property names"""
    name: str


@dataclass
class ThisExpression(Node):
    """The 'this' keyword."""
    pass


# Expressions
@dataclass
class UnaryExpression(Node):
    """Unary expression: -x, !x, typeof x, etc."""
    operator: str
    argument: Node
    prefix: bool = True


@dataclass
class UpdateExpression(Node):
    """Update expression: ++x, x++, --x, x--"""
    operator: str  # "++" or "--"
    argument: Node
    prefix: bool


@dataclass
class BinaryExpression(Node):
    """Binary expression: a + b, a * b, etc."""
    operator: str
    left: Node
    right: Node


@dataclass
class LogicalExpression(Node):
    """Logical expression: a && b, a || b"""
    operator: str  # "&&" or "||"
    left: Node
    right: Node


@dataclass
class ConditionalExpression(Node):
    """Conditional (ternary) expression: a ? b : c"""
    test: Node
    consequent: Node
    alternate: Node


@dataclass
class AssignmentExpression(Node):
    """Assignment expression: a = b, a += b, etc."""
    operator: str
    left: Identifier
    right: Node


@dataclass
class SequenceExpression(Node):
    """Sequence expression: a, b, c"""
    expressions: List[Node]


@dataclass
class MemberExpression(Node):
    """Member expression: a.b"""
    object: Node
    property: Identifier


@dataclass
class CallExpression(Node):
    """Call expression: f(a, b)"""
    callee: Node
    arguments: List[Node]


# Statements
@dataclass
class Program(Node):
    """Program node - root of AST."""
    body: List[Node]


@dataclass
class ExpressionStatement(Node):
    """Expression statement: expression;"""
    expression: Node


@dataclass
class BlockStatement(Node):
    """Block statement: { ... }"""
    body: List[Node]


@dataclass
class EmptyStatement(Node):
    """Empty statement: ;"""
    pass


@dataclass
class VariableDeclaration(Node):
    """Variable declaration: var a = 1, b = 2;"""
    declarations: List["VariableDeclarator"]
    kind: str = "var"  # "var", "let" or "const"


@dataclass
class VariableDeclarator(Node):
    """Variable declarator: a = 1"""
    id: Identifier
    init: Optional[Node]


@dataclass
class IfStatement(Node):
    """If statement: if (test) consequent else alternate"""
    test: Node
    consequent: Node
    alternate: Optional[Node]


@dataclass
class WhileStatement(Node):
    """While statement: while (test) body"""
    test: Node
    body: Node


@dataclass
class ForStatement(Node):
    """For statement: for (init; test; update) body"""
    init: Optional[Node]  # VariableDeclaration or Expression
    test: Optional[Node]
    update: Optional[Node]
    body: Node


@dataclass
class BreakStatement(Node):
    """Break statement: break;"""
    pass


@dataclass
class ContinueStatement(Node):
    """Continue statement: continue;"""
    pass


@dataclass
class ReturnStatement(Node):
    """Return statement: return; or return expr;"""
    argument: Optional[Node]


@dataclass
class FunctionDeclaration(Node):
    """Function declaration: function name(params) { body }"""
    id: Identifier
    params: List[Identifier]
    body: BlockStatement


@dataclass
class FunctionExpression(Node):
    """Function expression: function name(params) { body }"""
    id: Optional[Identifier]
    params: List[Identifier]
    body: BlockStatement


@dataclass
class ArrowFunctionExpression(Node):
    """Arrow function: (params) => body or param => body"""
    params: List[Identifier]
    body: Node  # BlockStatement or expression
    expression: bool  # True if body is an expression


FunctionNode = Union[FunctionDeclaration, FunctionExpression, ArrowFunctionExpression]
