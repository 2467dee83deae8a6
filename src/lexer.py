from typing import Any, Optional

from errors import error
from location import Location

TOKENS1 = {
    # Arithmetic operators
    '+', '-', '*', '/', '%',

    # Borrow operator
    '&',

    # Assignment operator
    '=',

    # Punctuation
    ',', ';', ':',

    # Brackets
    '(', ')', '{', '}',
}

KEYWORDS = {
    'let',
    'mut',
}


class Token:
    KIND_WITH_DATA = {'ident', 'number'}

    KIND = {*TOKENS1, *KEYWORDS, *KIND_WITH_DATA}

    def __init__(self, kind: str, begin: Location, end: Location, data: Any = None):
        self.kind = kind
        self.begin = begin
        self.end = end
        self.data = data

    def str(self):
        if self.kind in Token.KIND_WITH_DATA:
            name = self.kind.title()
        else:
            name = f"'{self.kind}'"

        if self.data is not None:
            return f'{name}({self.text()}) @ {self.begin.row}:{self.begin.col}'
        else:
            return f'{name} @ {self.begin.row}:{self.begin.col}'

    def text(self) -> str:
        if self.kind == 'ident':
            return self.data.decode('utf-8')
        return str(self.data)

    def __repr__(self):
        if self.kind in Token.KIND_WITH_DATA:
            return f'Tok({self.text()})'
        return f'Tok({self.kind})'


def is_ident_start(char: str) -> bool:
    return char.isalpha() or char == '_'


def is_ident_cont(char: str) -> bool:
    return char.isalpha() or char == '_' or char.isnumeric()


class Lexer:
    MATCHING_DELIMITER = {
        '(': ')',
        '{': '}',
        ')': '(',
        '}': '{',
    }

    def __init__(self, source: str, path: str = '<source>'):
        self.source = source
        self.path = path
        self.tokens = []

        self.location = Location(0, 1, 1)

        self.expected_delimiter = []
        self.opened_at = []

    def repr_of(self, begin: Location, end: Location) -> str:
        return self.source[begin.index:end.index]

    def error(self, begin: Location, message: str):
        return error(self.path, self.source, begin, begin.next_col(), message)

    def peek(self) -> tuple[str, Location]:
        if self.location.index >= len(self.source):
            return '', self.location

        char = self.source[self.location.index]
        return char, self.location

    def next(self) -> tuple[str, Location]:
        char, previous = self.peek()
        if char:
            self.location = self.location.next(char)
        return char, previous

    def skip_whitespace(self, char: str, begin: Location) -> tuple[str, Location]:
        while char in ('\t', ' ', '\n', '\r'):
            char, begin = self.next()
        return char, begin

    def skip_comment(self, char: str, begin: Location) -> tuple[str, Location]:
        while char not in ('\n', ''):
            char, begin = self.next()
        return char, begin

    def lex_identifier(self, char: str, begin: Location) -> tuple[str, Location]:
        assert is_ident_start(char)

        end = begin
        while is_ident_cont(char):
            char, end = self.next()

        text = self.repr_of(begin, end)
        if text in KEYWORDS:
            self.tokens.append(Token(text, begin, end))
        else:
            self.tokens.append(Token('ident', begin, end, bytes(text, 'utf-8')))
        return char, end

    def lex_number(self, char: str, begin: Location) -> tuple[str, Location]:
        assert char.isnumeric()

        end = begin
        while char.isnumeric():
            char, end = self.next()

        self.tokens.append(Token('number', begin, end, int(self.repr_of(begin, end))))
        return char, end

    def lex_and_record_opening_delimiter(self, char: str, begin: Location) -> tuple[str, Location]:
        assert char in ('(', '{')
        self.expected_delimiter.append(Lexer.MATCHING_DELIMITER[char])
        self.opened_at.append(begin)
        self.tokens.append(Token(char, begin, self.location))
        return self.next()

    def lex_and_record_closing_delimiter(self, char: str, begin: Location) -> tuple[str, Location]:
        assert char in (')', '}')

        if not self.expected_delimiter:
            raise self.error(begin, f"Delimiter '{char}' does not have a matching '{Lexer.MATCHING_DELIMITER[char]}'")

        expected_delimiter = self.expected_delimiter.pop()
        self.opened_at.pop()
        if char != expected_delimiter:
            raise self.error(begin, f"Delimiter '{char}' does not match delimiter '{expected_delimiter}'")

        self.tokens.append(Token(char, begin, self.location))
        return self.next()

    @staticmethod
    def lex(source, path='<source>') -> list[Token]:
        self = Lexer(source, path)

        char, begin = self.next()
        while char:
            if char in ('\t', ' ', '\n', '\r'):
                char, begin = self.skip_whitespace(char, begin)

            elif is_ident_start(char):
                char, begin = self.lex_identifier(char, begin)

            elif char.isnumeric():
                char, begin = self.lex_number(char, begin)

            elif char in ('(', '{'):
                char, begin = self.lex_and_record_opening_delimiter(char, begin)

            elif char in (')', '}'):
                char, begin = self.lex_and_record_closing_delimiter(char, begin)

            elif char == '#' or (char == '/' and self.peek()[0] == '/'):
                char, begin = self.skip_comment(char, begin)

            elif char in TOKENS1:
                self.tokens.append(Token(char, begin, self.location))
                char, begin = self.next()

            else:
                raise self.error(begin, f'Invalid token {char!r}')

        if len(self.expected_delimiter) != 0:
            raise self.error(self.opened_at[-1], "Missing delimiters '" + "', '".join(reversed(self.expected_delimiter)) + "'")

        end = self.location
        self.tokens.append(Token('eof', end, end))

        return self.tokens


class TokenStream:
    def __init__(self, tokens):
        self.__current = 0
        self.__tokens = tokens

    def peek_many(self, count=1) -> list[Token]:
        tokens = self.__tokens[self.__current:self.__current + count]
        return tokens

    def peek(self) -> Token:
        token = self.__tokens[self.__current]
        return token

    def peek_if(self, expected) -> bool:
        return self.peek().kind == expected

    def peek_if_any(self, *expected) -> bool:
        token = self.peek()
        return any(token.kind == e for e in expected)

    def next(self, expect=None) -> Token:
        token = self.peek()
        if expect and expect != token.kind:
            raise self.unexpected(token, f"Expected '{expect}', got unexpected token {token.str()}")
        if token.kind != 'eof':
            self.__current += 1
        return token

    def next_if(self, expect) -> Optional[Token]:
        token = self.peek()
        if expect != token.kind:
            return None
        if token.kind != 'eof':
            self.__current += 1
        return token

    def next_if_any(self, *expects) -> Optional[Token]:
        token = self.peek()
        if token.kind in expects:
            self.__current += 1
            return token
        return None

    def unexpected(self, token: Token, message: str):
        return RuntimeError(message)

    def has_more(self) -> bool:
        return self.__current + 1 < len(self.__tokens)
