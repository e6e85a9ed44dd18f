"""Parser - produces an AST from tokens."""

from contextlib import contextmanager
from typing import Iterator, List, Optional
from .lexer import Lexer
from .tokens import Token, TokenType
from .errors import JSSyntaxError
from .ast_nodes import (
    Node, Program, NumericLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    Identifier, ThisExpression,
    UnaryExpression, UpdateExpression, BinaryExpression, LogicalExpression,
    ConditionalExpression, AssignmentExpression, SequenceExpression,
    MemberExpression, CallExpression,
    ExpressionStatement, BlockStatement, EmptyStatement,
    VariableDeclaration, VariableDeclarator,
    IfStatement, WhileStatement, ForStatement,
    BreakStatement, ContinueStatement, ReturnStatement,
    FunctionDeclaration, FunctionExpression, ArrowFunctionExpression,
)


# Deepest syntactic nesting accepted before reporting a syntax error
MAX_NESTING_DEPTH = 100

# Operator precedence (higher = binds tighter)
PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 6, "!=": 6, "===": 6, "!==": 6,
    "<": 7, ">": 7, "<=": 7, ">=": 7,
    "+": 9, "-": 9,
    "*": 10, "/": 10, "%": 10,
    "**": 11,
}

BINARY_OPERATORS = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.STARSTAR: "**",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.EQEQ: "===",
    TokenType.NENE: "!==",
    TokenType.AND: "&&",
    TokenType.OR: "||",
}

ASSIGNMENT_OPERATORS = (
    TokenType.ASSIGN, TokenType.PLUS_ASSIGN, TokenType.MINUS_ASSIGN,
    TokenType.STAR_ASSIGN, TokenType.SLASH_ASSIGN, TokenType.PERCENT_ASSIGN,
)


class Parser:
    """Recursive descent parser for the supported JavaScript subset."""

    def __init__(self, source: str):
        self.lexer = Lexer(source)
        self.current: Token = self.lexer.next_token()
        self.previous: Optional[Token] = None
        # Nesting counters for context-sensitive statements
        self._function_depth = 0
        self._loop_depth = 0
        self._nesting = 0

    def _error(self, message: str, token: Optional[Token] = None) -> JSSyntaxError:
        """Create a syntax error at current position."""
        token = token or self.current
        return JSSyntaxError(message, token.line, token.column)

    def _advance(self) -> Token:
        """Advance to next token and return previous."""
        self.previous = self.current
        self.current = self.lexer.next_token()
        return self.previous

    def _check(self, *types: TokenType) -> bool:
        """Check if current token is one of the given types."""
        return self.current.type in types

    def _match(self, *types: TokenType) -> bool:
        """If current token matches, advance and return True."""
        if self._check(*types):
            self._advance()
            return True
        return False

    def _expect(self, token_type: TokenType, message: str) -> Token:
        """Expect a specific token type or raise error."""
        if self.current.type != token_type:
            raise self._error(message)
        return self._advance()

    @contextmanager
    def _nested(self) -> Iterator[None]:
        """Count one level of recursive descent, failing past MAX_NESTING_DEPTH."""
        if self._nesting >= MAX_NESTING_DEPTH:
            raise self._error("Maximum nesting depth exceeded")
        self._nesting += 1
        try:
            yield
        finally:
            self._nesting -= 1

    def _is_at_end(self) -> bool:
        """Check if we've reached the end of input."""
        return self.current.type == TokenType.EOF

    def _peek_next(self) -> Token:
        """Peek at the next token without consuming it."""
        state = self.lexer.save_state()
        next_token = self.lexer.next_token()
        self.lexer.restore_state(state)
        return next_token

    def _is_arrow_head(self) -> bool:
        """Check whether the current '(' opens an arrow parameter list."""
        state = self.lexer.save_state()
        try:
            token = self.lexer.next_token()
            if token.type != TokenType.RPAREN:
                while True:
                    if token.type != TokenType.IDENTIFIER:
                        return False
                    token = self.lexer.next_token()
                    if token.type == TokenType.RPAREN:
                        break
                    if token.type != TokenType.COMMA:
                        return False
                    token = self.lexer.next_token()
            return self.lexer.next_token().type == TokenType.ARROW
        except JSSyntaxError:
            return False
        finally:
            self.lexer.restore_state(state)

    def parse(self) -> Program:
        """Parse the entire program."""
        body: List[Node] = []
        while not self._is_at_end():
            stmt = self._parse_statement()
            if stmt is not None:
                body.append(stmt)
        return Program(body)

    # ---- Statements ----

    def _parse_statement(self) -> Optional[Node]:
        """Parse a statement."""
        with self._nested():
            return self._parse_statement_kind()

    def _parse_statement_kind(self) -> Optional[Node]:
        """Dispatch on the token that starts a statement."""
        if self._match(TokenType.SEMICOLON):
            return EmptyStatement()

        if self._check(TokenType.LBRACE):
            return self._parse_block_statement()

        if self._check(TokenType.VAR, TokenType.LET, TokenType.CONST):
            kind = self._advance().value
            declaration = self._parse_variable_declaration(kind)
            self._consume_semicolon()
            return declaration

        if self._match(TokenType.IF):
            return self._parse_if_statement()

        if self._match(TokenType.WHILE):
            return self._parse_while_statement()

        if self._match(TokenType.FOR):
            return self._parse_for_statement()

        if self._check(TokenType.BREAK):
            token = self._advance()
            if self._loop_depth == 0:
                raise self._error("Illegal break statement", token)
            self._consume_semicolon()
            return BreakStatement()

        if self._check(TokenType.CONTINUE):
            token = self._advance()
            if self._loop_depth == 0:
                raise self._error("Illegal continue statement", token)
            self._consume_semicolon()
            return ContinueStatement()

        if self._check(TokenType.RETURN):
            return self._parse_return_statement()

        if self._match(TokenType.FUNCTION):
            return self._parse_function_declaration()

        # Expression statement
        return self._parse_expression_statement()

    def _parse_substatement(self) -> Optional[Node]:
        """Parse the single-statement body of if/while/for."""
        if self._check(TokenType.LET, TokenType.CONST):
            raise self._error("Lexical declaration cannot appear in a single-statement context")
        if self._check(TokenType.FUNCTION):
            raise self._error("Function declarations are not allowed in a single-statement context")
        return self._parse_statement()

    def _parse_block_statement(self) -> BlockStatement:
        """Parse a block statement: { ... }"""
        self._expect(TokenType.LBRACE, "Expected '{'")
        body: List[Node] = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            stmt = self._parse_statement()
            if stmt is not None:
                body.append(stmt)
        self._expect(TokenType.RBRACE, "Expected '}'")
        return BlockStatement(body)

    def _parse_variable_declaration(self, kind: str) -> VariableDeclaration:
        """Parse variable declaration: var a = 1, b = 2"""
        declarations: List[VariableDeclarator] = []

        while True:
            name = self._expect(TokenType.IDENTIFIER, "Expected variable name")
            init = None
            if self._match(TokenType.ASSIGN):
                init = self._parse_assignment_expression()
            elif kind == "const":
                raise self._error("Missing initializer in const declaration", name)
            declarations.append(VariableDeclarator(Identifier(name.value), init))

            if not self._match(TokenType.COMMA):
                break

        return VariableDeclaration(declarations, kind)

    def _parse_if_statement(self) -> IfStatement:
        """Parse if statement: if (test) consequent else alternate"""
        self._expect(TokenType.LPAREN, "Expected '(' after 'if'")
        test = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after condition")
        consequent = self._parse_substatement()
        alternate = None
        if self._match(TokenType.ELSE):
            alternate = self._parse_substatement()
        return IfStatement(test, consequent, alternate)

    def _parse_loop_body(self) -> Optional[Node]:
        """Parse a loop body, where break and continue are legal."""
        self._loop_depth += 1
        try:
            return self._parse_substatement()
        finally:
            self._loop_depth -= 1

    def _parse_while_statement(self) -> WhileStatement:
        """Parse while statement: while (test) body"""
        self._expect(TokenType.LPAREN, "Expected '(' after 'while'")
        test = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after condition")
        body = self._parse_loop_body()
        return WhileStatement(test, body)

    def _parse_for_statement(self) -> ForStatement:
        """Parse for statement: for (init; test; update) body"""
        self._expect(TokenType.LPAREN, "Expected '(' after 'for'")

        init = None
        if self._match(TokenType.SEMICOLON):
            pass  # No init
        else:
            if self._check(TokenType.VAR, TokenType.LET, TokenType.CONST):
                kind = self._advance().value
                init = self._parse_variable_declaration(kind)
            else:
                init = self._parse_expression()
            self._expect(TokenType.SEMICOLON, "Expected ';' after for init")

        test = None
        if not self._check(TokenType.SEMICOLON):
            test = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "Expected ';' after for condition")

        update = None
        if not self._check(TokenType.RPAREN):
            update = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after for update")

        body = self._parse_loop_body()
        return ForStatement(init, test, update, body)

    def _parse_return_statement(self) -> ReturnStatement:
        """Parse return statement."""
        token = self._advance()
        if self._function_depth == 0:
            raise self._error("Illegal return statement", token)
        argument = None
        if not self._check(TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF):
            argument = self._parse_expression()
        self._consume_semicolon()
        return ReturnStatement(argument)

    def _parse_function_declaration(self) -> FunctionDeclaration:
        """Parse function declaration."""
        name = self._expect(TokenType.IDENTIFIER, "Expected function name")
        params = self._parse_function_params()
        body = self._parse_function_body()
        return FunctionDeclaration(Identifier(name.value), params, body)

    def _parse_function_params(self) -> List[Identifier]:
        """Parse function parameters."""
        self._expect(TokenType.LPAREN, "Expected '(' before parameters")
        params: List[Identifier] = []
        seen = set()
        if not self._check(TokenType.RPAREN):
            while True:
                param = self._expect(TokenType.IDENTIFIER, "Expected parameter name")
                if param.value in seen:
                    raise self._error("Duplicate parameter name not allowed in this context", param)
                seen.add(param.value)
                params.append(Identifier(param.value))
                if not self._match(TokenType.COMMA):
                    break
        self._expect(TokenType.RPAREN, "Expected ')' after parameters")
        return params

    def _parse_function_body(self) -> BlockStatement:
        """Parse a function body block with fresh statement context."""
        saved_loop_depth = self._loop_depth
        self._function_depth += 1
        self._loop_depth = 0
        try:
            return self._parse_block_statement()
        finally:
            self._function_depth -= 1
            self._loop_depth = saved_loop_depth

    def _parse_expression_statement(self) -> ExpressionStatement:
        """Parse expression statement."""
        expr = self._parse_expression()
        self._consume_semicolon()
        return ExpressionStatement(expr)

    def _consume_semicolon(self) -> None:
        """Consume a semicolon if present (ASI simulation)."""
        self._match(TokenType.SEMICOLON)

    # ---- Expressions ----

    def _parse_expression(self) -> Node:
        """Parse an expression (includes comma operator)."""
        expr = self._parse_assignment_expression()

        if self._check(TokenType.COMMA):
            expressions = [expr]
            while self._match(TokenType.COMMA):
                expressions.append(self._parse_assignment_expression())
            return SequenceExpression(expressions)

        return expr

    def _parse_assignment_expression(self) -> Node:
        """Parse assignment expression (or an arrow function)."""
        with self._nested():
            if self._check(TokenType.IDENTIFIER) and self._peek_next().type == TokenType.ARROW:
                param = Identifier(self._advance().value)
                self._advance()  # =>
                return self._parse_arrow_body([param])

            if self._check(TokenType.LPAREN) and self._is_arrow_head():
                params = self._parse_function_params()
                self._expect(TokenType.ARROW, "Expected '=>'")
                return self._parse_arrow_body(params)

            start = self.current
            expr = self._parse_conditional_expression()

            if self._check(*ASSIGNMENT_OPERATORS):
                if not isinstance(expr, Identifier):
                    raise self._error("Invalid left-hand side in assignment", start)
                op = self._advance().value
                right = self._parse_assignment_expression()
                return AssignmentExpression(op, expr, right)

            return expr

    def _parse_arrow_body(self, params: List[Identifier]) -> ArrowFunctionExpression:
        """Parse the body after '=>'."""
        if self._check(TokenType.LBRACE):
            body = self._parse_function_body()
            return ArrowFunctionExpression(params, body, expression=False)
        saved_loop_depth = self._loop_depth
        self._loop_depth = 0
        try:
            body = self._parse_assignment_expression()
        finally:
            self._loop_depth = saved_loop_depth
        return ArrowFunctionExpression(params, body, expression=True)

    def _parse_conditional_expression(self) -> Node:
        """Parse conditional (ternary) expression."""
        expr = self._parse_binary_expression(0)

        if self._match(TokenType.QUESTION):
            consequent = self._parse_assignment_expression()
            self._expect(TokenType.COLON, "Expected ':' in conditional expression")
            alternate = self._parse_assignment_expression()
            return ConditionalExpression(expr, consequent, alternate)

        return expr

    def _parse_binary_expression(self, min_precedence: int = 0) -> Node:
        """Parse binary expression with operator precedence."""
        left = self._parse_unary_expression()

        while True:
            op = BINARY_OPERATORS.get(self.current.type)
            if op is None:
                break

            precedence = PRECEDENCE[op]
            if precedence < min_precedence:
                break

            self._advance()

            # Handle right-associative operators
            if op == "**":
                with self._nested():
                    right = self._parse_binary_expression(precedence)
            else:
                right = self._parse_binary_expression(precedence + 1)

            # Use LogicalExpression for && and ||
            if op in ("&&", "||"):
                left = LogicalExpression(op, left, right)
            else:
                left = BinaryExpression(op, left, right)

        return left

    def _parse_unary_expression(self) -> Node:
        """Parse unary expression."""
        # Prefix operators
        if self._check(
            TokenType.MINUS, TokenType.PLUS, TokenType.NOT,
            TokenType.TYPEOF, TokenType.VOID,
        ):
            op_token = self._advance()
            with self._nested():
                argument = self._parse_unary_expression()
            return UnaryExpression(op_token.value, argument)

        # Prefix increment/decrement
        if self._check(TokenType.PLUSPLUS, TokenType.MINUSMINUS):
            op_token = self._advance()
            with self._nested():
                argument = self._parse_unary_expression()
            if not isinstance(argument, Identifier):
                raise self._error("Invalid left-hand side expression in prefix operation", op_token)
            return UpdateExpression(op_token.value, argument, prefix=True)

        return self._parse_postfix_expression()

    def _parse_postfix_expression(self) -> Node:
        """Parse postfix expression (member access, calls, postfix ++/--)."""
        expr = self._parse_primary_expression()

        while True:
            if self._match(TokenType.DOT):
                prop = self._expect(TokenType.IDENTIFIER, "Expected property name")
                expr = MemberExpression(expr, Identifier(prop.value))
            elif self._match(TokenType.LPAREN):
                args = self._parse_arguments()
                self._expect(TokenType.RPAREN, "Expected ')' after arguments")
                expr = CallExpression(expr, args)
            elif self._check(TokenType.PLUSPLUS, TokenType.MINUSMINUS):
                op_token = self._advance()
                if not isinstance(expr, Identifier):
                    raise self._error("Invalid left-hand side expression in postfix operation", op_token)
                expr = UpdateExpression(op_token.value, expr, prefix=False)
            else:
                break

        return expr

    def _parse_arguments(self) -> List[Node]:
        """Parse function call arguments."""
        args: List[Node] = []
        if not self._check(TokenType.RPAREN):
            while True:
                args.append(self._parse_assignment_expression())
                if not self._match(TokenType.COMMA):
                    break
        return args

    def _parse_primary_expression(self) -> Node:
        """Parse primary expression (literals, identifiers, grouped)."""
        if self._match(TokenType.NUMBER):
            return NumericLiteral(self.previous.value)

        if self._match(TokenType.STRING):
            return StringLiteral(self.previous.value)

        if self._match(TokenType.TRUE):
            return BooleanLiteral(True)

        if self._match(TokenType.FALSE):
            return BooleanLiteral(False)

        if self._match(TokenType.NULL):
            return NullLiteral()

        if self._match(TokenType.THIS):
            return ThisExpression()

        if self._match(TokenType.IDENTIFIER):
            return Identifier(self.previous.value)

        # Parenthesized expression
        if self._match(TokenType.LPAREN):
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')' after expression")
            return expr

        # Function expression
        if self._match(TokenType.FUNCTION):
            return self._parse_function_expression()

        if self._is_at_end():
            raise self._error("Unexpected end of input")
        raise self._error(f"Unexpected token: {self.current.type.name}")

    def _parse_function_expression(self) -> FunctionExpression:
        """Parse function expression."""
        name = None
        if self._check(TokenType.IDENTIFIER):
            name = Identifier(self._advance().value)
        params = self._parse_function_params()
        body = self._parse_function_body()
        return FunctionExpression(name, params, body)
