from typing import Optional, Union

from location import Location
from program import (
    Program, Expr, Literal, Name, Deref, BinaryOp,
    DeclareBinding, DeclareReference, RebindReference,
    AssignBinding, AssignThroughReference,
    ReadBinding, ReadThroughReference,
    EnterScope, ExitScope,
)


class Cell:
    def __init__(self, name: str, value: Optional[int] = None):
        self.name = name
        self.value = value

    def __repr__(self):
        return f'Cell({self.name}={self.value})'


class Pointer:
    def __init__(self, name: str, cell: Cell):
        self.name = name
        self.cell = cell

    def __repr__(self):
        return f'Pointer({self.name} -> {self.cell.name})'


def divide(a: int, b: int) -> int:
    """Integer division truncating towards zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


class Interpreter:
    """
    Executes a program with plain value semantics. Borrow rules are not
    enforced here; run the borrow checker first.
    """

    def __init__(self, program: Program):
        self.program = program
        self.frames: list[dict[str, Union[Cell, Pointer]]] = [{}]
        # Every value read by `print`/`read`, in order.
        self.output: list[int] = []

    @staticmethod
    def run(program: Program) -> list[int]:
        self = Interpreter(program)
        self.run_()
        return self.output

    def error(self, location: Optional[Location], message: str):
        where = f'{self.program.path}:{location}: ' if location else f'{self.program.path}: '
        return RuntimeError(where + message)

    def lookup(self, name: str, location: Optional[Location]) -> Union[Cell, Pointer]:
        for frame in reversed(self.frames):
            if name in frame:
                return frame[name]
        raise self.error(location, f"Unknown identifier '{name}'")

    def cell_of(self, name: str, location: Optional[Location]) -> Cell:
        """The storage `name` denotes, following a pointer if it is one."""
        entity = self.lookup(name, location)
        return entity.cell if isinstance(entity, Pointer) else entity

    def load(self, cell: Cell, location: Optional[Location]) -> int:
        if cell.value is None:
            raise self.error(location, f"Use of uninitialised value '{cell.name}'")
        return cell.value

    def evaluate(self, expr: Expr, location: Optional[Location]) -> int:
        match expr:
            case Literal(value):
                return value
            case Name(name) | Deref(name):
                return self.load(self.cell_of(name, location), location)
            case BinaryOp(op, lhs, rhs):
                a = self.evaluate(lhs, location)
                b = self.evaluate(rhs, location)
                match op:
                    case '+':
                        return a + b
                    case '-':
                        return a - b
                    case '*':
                        return a * b
                    case '/' | '%':
                        if b == 0:
                            raise self.error(location, 'Division by zero')
                        quotient = divide(a, b)
                        return quotient if op == '/' else a - b * quotient
                    case _:
                        raise self.error(location, f'Unknown operator {op}')
            case _:
                raise self.error(location, f'Unknown expression {expr!r}')

    def run_(self):
        for statement in self.program:
            location = statement.location
            match statement:
                case DeclareBinding(name=name, value=value):
                    initial = None if value is None else self.evaluate(value, location)
                    self.frames[-1][name] = Cell(name, initial)
                case DeclareReference(name=name, target=target):
                    self.frames[-1][name] = Pointer(name, self.cell_of(target, location))
                case RebindReference(name=name, target=target):
                    self.lookup(name, location).cell = self.cell_of(target, location)
                case AssignBinding(name=name, value=value):
                    self.cell_of(name, location).value = self.evaluate(value, location)
                case AssignThroughReference(reference=reference, value=value):
                    self.cell_of(reference, location).value = self.evaluate(value, location)
                case ReadBinding(name=name) | ReadThroughReference(name=name):
                    self.output.append(self.load(self.cell_of(name, location), location))
                case EnterScope():
                    self.frames.append({})
                case ExitScope():
                    self.frames.pop()
                case _:
                    raise self.error(location, f'Unknown statement {statement!r}')
