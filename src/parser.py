from errors import error
from lexer import Lexer, Token, TokenStream
from program import (
    Program, RefKind, Literal, Name, Deref, BinaryOp, reads_of,
    DeclareBinding, DeclareReference, RebindReference,
    AssignBinding, AssignThroughReference,
    ReadBinding, ReadThroughReference,
    EnterScope, ExitScope,
)


class Parser(TokenStream):
    BINARY_OPERATOR = ('+', '-', '*', '/', '%')
    PRECEDENCE = {
        # Multiplication, division, remainder
        "*": 15,
        "/": 15,
        "%": 15,

        # Addition and subtraction
        "+": 14,
        "-": 14,
    }
    # Builtins that only read their argument.
    READERS = ('print', 'read')

    @staticmethod
    def precedence_of(token: Token) -> int:
        return Parser.PRECEDENCE.get(token.kind, -1)

    def __init__(self, source: str, tokens: list[Token], path: str = '<source>'):
        super().__init__(tokens)
        self.source = source
        self.path = path
        self.statements = []

    def unexpected(self, token: Token, message: str):
        return error(self.path, self.source, token.begin, token.end, message)

    def push(self, statement):
        self.statements.append(statement)
        return statement

    @staticmethod
    def parse_program(source: str, tokens: list[Token], path: str = '<source>') -> Program:
        self = Parser(source, tokens, path)
        while self.has_more():
            self.parse_stmt()
        return Program(self.statements, path, source, end=self.peek().begin)

    def parse_stmt(self):
        t0, t1 = self.peek_many(2)

        if t0.kind == 'let':
            return self.parse_decl()
        elif t0.kind == 'ident':
            if t1.kind == '=':
                return self.parse_assign()
            elif t1.kind == '(':
                return self.parse_reader_call()
            else:
                raise self.unexpected(t1, f'Expected \'=\' or \'(\' after {t0.str()}, got {t1.str()}')
        elif t0.kind == '*':
            return self.parse_assign_through()
        elif t0.kind == '{':
            return self.parse_block()
        else:
            raise self.unexpected(t0, f'Unknown token {t0.str()}')

    def parse_decl(self):
        """
        <decl>  ::=  'let' ['mut'] <name> [':' <type>] '=' <expr> ';'
        <decl>  ::=  'let' ['mut'] <name> [':' <type>] ';'
        <decl>  ::=  'let' ['mut'] <name> '=' '&' ['mut'] <name> ';'
        """
        let = self.next(expect='let')
        mutable = self.next_if('mut') is not None
        name = self.next(expect='ident').text()

        type_tag = 'int'
        if self.next_if(':'):
            type_tag = self.next(expect='ident').text()

        if not self.next_if('='):
            self.next(expect=';')
            return self.push(DeclareBinding(name, mutable, None, type_tag, location=let.begin))

        if self.peek_if('&'):
            kind, target = self.parse_borrow()
            self.next(expect=';')
            return self.push(DeclareReference(name, target, kind, mutable, location=let.begin))

        value = self.parse_expr()
        self.next(expect=';')
        return self.push(DeclareBinding(name, mutable, value, type_tag, location=let.begin))

    def parse_borrow(self) -> tuple[RefKind, str]:
        self.next(expect='&')
        kind = RefKind.EXCLUSIVE if self.next_if('mut') else RefKind.SHARED
        target = self.next(expect='ident').text()
        return kind, target

    def parse_assign(self):
        """
        <assign>  ::=  <name> '=' '&' ['mut'] <name> ';'
        <assign>  ::=  <name> '=' <expr> ';'
        """
        target = self.next(expect='ident')
        self.next(expect='=')
        if self.peek_if('&'):
            kind, new_target = self.parse_borrow()
            self.next(expect=';')
            return self.push(RebindReference(target.text(), new_target, kind, location=target.begin))

        value = self.parse_expr()
        self.next(expect=';')
        return self.push(AssignBinding(target.text(), value, location=target.begin))

    def parse_assign_through(self):
        star = self.next(expect='*')
        reference = self.next(expect='ident').text()
        self.next(expect='=')
        value = self.parse_expr()
        self.next(expect=';')
        return self.push(AssignThroughReference(reference, value, location=star.begin))

    def parse_reader_call(self):
        """
        <call>  ::=  ('print' | 'read') '(' <arg> ')' ';'
        <arg>   ::=  <name> | '*' <name> | '&' <name> | <expr>
        """
        name = self.next(expect='ident')
        if name.text() not in Parser.READERS:
            raise self.unexpected(name, f"Unknown function '{name.text()}', only {', '.join(Parser.READERS)} are available")
        self.next(expect='(')

        if self.next_if('&'):
            # A fresh shared path to the binding, alive only for this call.
            target = self.next(expect='ident').text()
            statements = [ReadThroughReference(target, location=name.begin)]
        else:
            value = self.parse_expr()
            statements = []
            for access in reads_of(value):
                if isinstance(access, Deref):
                    statements.append(ReadThroughReference(access.reference, location=name.begin))
                else:
                    statements.append(ReadBinding(access.name, location=name.begin))

        self.next(expect=')')
        self.next(expect=';')
        for statement in statements:
            self.push(statement)
        return statements

    def parse_block(self):
        begin = self.next(expect='{')
        self.push(EnterScope(location=begin.begin))
        while not self.peek_if_any('}', 'eof'):
            self.parse_stmt()
        end = self.next(expect='}')
        return self.push(ExitScope(location=end.begin))

    def parse_expr(self, precedence=0):
        left = self.parse_prefix()

        while self.precedence_of(self.peek()) >= precedence:
            left = self.parse_infix(left)

        return left

    def parse_prefix(self):
        if self.next_if('*'):
            return Deref(self.next(expect='ident').text())
        elif self.next_if('-'):
            # Unary negation binds tighter than every binary operator.
            operand = self.parse_expr(max(Parser.PRECEDENCE.values()) + 1)
            return BinaryOp('-', Literal(0), operand)
        elif token := self.next_if('number'):
            return Literal(token.data)
        elif token := self.next_if('ident'):
            return Name(token.text())
        elif self.next_if('('):
            node = self.parse_expr()
            self.next(expect=')')
            return node
        elif self.peek_if('&'):
            raise self.unexpected(self.peek(), 'Borrows are only allowed as the whole right-hand side of a declaration or assignment')
        else:
            raise self.unexpected(self.peek(), f'Unknown token {self.peek().str()}')

    def parse_infix(self, left):
        op = self.next_if_any(*Parser.BINARY_OPERATOR)
        if op is None:
            raise self.unexpected(self.peek(), f'Unknown token {self.peek().str()}')
        prec = self.precedence_of(op) + 1
        right = self.parse_expr(prec)
        return BinaryOp(op.kind, left, right)


def parse(source: str, path: str = '<source>') -> Program:
    tokens = Lexer.lex(source, path)
    return Parser.parse_program(source, tokens, path)
