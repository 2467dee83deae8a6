from typing import Optional

from errors import ModelError
from location import Location
from program.program import Program
from program.statements import (
    Expr, Deref, reads_of, RefKind,
    DeclareBinding, DeclareReference, RebindReference,
    AssignBinding, AssignThroughReference,
    ReadBinding, ReadThroughReference,
    EnterScope, ExitScope,
)
from scope_tracker import ScopeTracker, Binding, Reference


class Validator:
    def __init__(self):
        self.scopes = ScopeTracker()

    def resolve(self, name: str, location: Optional[Location]):
        entity = self.scopes.lookup(name)
        if entity is None:
            raise ModelError(f"Use of undeclared identifier '{name}'", location)
        return entity

    def resolve_binding(self, name: str, location: Optional[Location], what: str) -> Binding:
        entity = self.resolve(name, location)
        if not isinstance(entity, Binding):
            raise ModelError(f"Cannot {what} '{name}'; it is a reference, not a binding", location)
        return entity

    def resolve_reference(self, name: str, location: Optional[Location], what: str) -> Reference:
        entity = self.resolve(name, location)
        if not isinstance(entity, Reference):
            raise ModelError(f"Cannot {what} '{name}'; it is a binding, not a reference", location)
        return entity

    def resolve_reads(self, value: Optional[Expr], location: Optional[Location]):
        for access in reads_of(value):
            if isinstance(access, Deref):
                self.resolve_reference(access.reference, location, 'dereference')
            else:
                self.resolve(access.name, location)

    def validate(self, program: Program):
        for statement in program:
            location = statement.location
            match statement:
                case DeclareBinding():
                    self.resolve_reads(statement.value, location)
                    self.scopes.declare_binding(statement.name, statement.mutable, statement.type_tag, location)
                case DeclareReference():
                    self.resolve_binding(statement.target, location, 'borrow')
                    if not isinstance(statement.kind, RefKind):
                        raise ModelError(f"Unknown reference kind {statement.kind!r} for '{statement.name}'", location)
                    self.scopes.declare_reference(statement.name, statement.kind, statement.mutable, location)
                case RebindReference():
                    reference = self.resolve_reference(statement.name, location, 'rebind')
                    self.resolve_binding(statement.target, location, 'borrow')
                    if statement.kind is not None and statement.kind != reference.kind:
                        raise ModelError(f"Cannot rebind '{statement.name}' declared as '{reference.kind}' to '{statement.kind}{statement.target}'", location)
                case AssignBinding():
                    self.resolve_binding(statement.name, location, 'assign a value to')
                    self.resolve_reads(statement.value, location)
                case AssignThroughReference():
                    reference = self.resolve_reference(statement.reference, location, 'write through')
                    if not reference.is_exclusive:
                        raise ModelError(f"Cannot write through '{statement.reference}'; it is a shared reference", location)
                    self.resolve_reads(statement.value, location)
                case ReadBinding():
                    self.resolve(statement.name, location)
                case ReadThroughReference():
                    self.resolve(statement.name, location)
                case EnterScope():
                    self.scopes.enter(location)
                case ExitScope():
                    if self.scopes.depth == 0:
                        raise ModelError('Scope exit without a matching scope entry', location)
                    self.scopes.exit()
                case _:
                    raise ModelError(f'Unknown statement {statement!r}', location)


def validate_program(program: Program):
    """Raise `ModelError` on the first statement the borrow checker cannot give a meaning to."""
    Validator().validate(program)
