from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional, Union

from location import Location


class RefKind(Enum):
    SHARED = auto()
    EXCLUSIVE = auto()

    def __str__(self):
        return '&' if self is RefKind.SHARED else '&mut '

    def __repr__(self):
        return self.name.lower()


@dataclass(frozen=True)
class Literal:
    value: int

    def to_text(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Name:
    """Read of a variable by name; for a reference this reads its referent."""
    name: str

    def to_text(self) -> str:
        return self.name


@dataclass(frozen=True)
class Deref:
    reference: str

    def to_text(self) -> str:
        return f'*{self.reference}'


@dataclass(frozen=True)
class BinaryOp:
    op: str
    lhs: 'Expr'
    rhs: 'Expr'

    def to_text(self) -> str:
        return f'{self.lhs.to_text()} {self.op} {self.rhs.to_text()}'


Expr = Union[Literal, Name, Deref, BinaryOp]


def reads_of(expr: Optional[Expr]) -> Iterator[Union[Name, Deref]]:
    """
    The variable accesses of an expression in evaluation order.
    Example:
        a + *r * 2
        ----
        Name('a'), Deref('r')
    """
    if expr is None or isinstance(expr, Literal):
        return
    if isinstance(expr, (Name, Deref)):
        yield expr
    elif isinstance(expr, BinaryOp):
        yield from reads_of(expr.lhs)
        yield from reads_of(expr.rhs)
    else:
        raise TypeError(f'Unknown expression {expr!r}')


def value_text(value: Optional[Expr]) -> str:
    return '?' if value is None else value.to_text()


@dataclass
class DeclareBinding:
    name:     str
    mutable:  bool = False
    value:    Optional[Expr] = None
    type_tag: str = 'int'
    location: Optional[Location] = None

    def to_text(self) -> str:
        return f'let {"mut " if self.mutable else ""}{self.name}: {self.type_tag} = {value_text(self.value)}'


@dataclass
class DeclareReference:
    name:     str
    target:   str
    kind:     RefKind = RefKind.SHARED
    mutable:  bool = False
    location: Optional[Location] = None

    def to_text(self) -> str:
        return f'let {"mut " if self.mutable else ""}{self.name} = {self.kind}{self.target}'


@dataclass
class RebindReference:
    """Point an existing reference at a new target. `kind=None` keeps the declared kind."""
    name:     str
    target:   str
    kind:     Optional[RefKind] = None
    location: Optional[Location] = None

    def to_text(self) -> str:
        kind = self.kind if self.kind is not None else '&?'
        return f'{self.name} = {kind}{self.target}'


@dataclass
class AssignBinding:
    name:     str
    value:    Optional[Expr] = None
    location: Optional[Location] = None

    def to_text(self) -> str:
        return f'{self.name} = {value_text(self.value)}'


@dataclass
class AssignThroughReference:
    reference: str
    value:     Optional[Expr] = None
    location:  Optional[Location] = None

    def to_text(self) -> str:
        return f'*{self.reference} = {value_text(self.value)}'


@dataclass
class ReadBinding:
    name:     str
    location: Optional[Location] = None

    def to_text(self) -> str:
        return f'print({self.name})'


@dataclass
class ReadThroughReference:
    """
    Read through a reference (`print(*r)`), or, when `name` is a binding,
    through a fresh shared path to it (`read(&b)`).
    """
    name:     str
    location: Optional[Location] = None

    def to_text(self) -> str:
        return f'print(*{self.name})'


@dataclass
class EnterScope:
    location: Optional[Location] = None

    def to_text(self) -> str:
        return '{'


@dataclass
class ExitScope:
    location: Optional[Location] = None

    def to_text(self) -> str:
        return '}'


Statement = Union[
    DeclareBinding, DeclareReference, RebindReference,
    AssignBinding, AssignThroughReference,
    ReadBinding, ReadThroughReference,
    EnterScope, ExitScope,
]
