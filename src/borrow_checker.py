from typing import Callable, Optional

from borrow_state import BorrowStateTable, BorrowConflict, State
from diagnostics import DiagnosticReporter, Diagnostic, ViolationKind
from errors import UnsupportedMode
from location import Location
from program.program import Program
from program.statements import (
    Expr, Deref, reads_of,
    DeclareBinding, DeclareReference, RebindReference,
    AssignBinding, AssignThroughReference,
    ReadBinding, ReadThroughReference,
    EnterScope, ExitScope,
)
from program.validate import validate_program
from scope_tracker import ScopeTracker, Binding, Reference


MODES = ('lexical', 'non-lexical')


class BorrowChecker:
    def __init__(self, program: Program, mode: str = 'lexical', logger: Optional[Callable[[str], None]] = None):
        if mode not in MODES:
            raise ValueError(f"Unknown checker mode '{mode}', expected one of {', '.join(MODES)}")
        if mode != 'lexical':
            raise UnsupportedMode(mode)

        self.program = program
        self.mode = mode
        self.logger = logger
        # Never shared between two analyses.
        self.scopes = ScopeTracker()
        self.borrows = BorrowStateTable()
        self.reporter = DiagnosticReporter()
        self.index: Optional[int] = None

    @staticmethod
    def check(program: Program, mode: str = 'lexical', logger=None) -> list[Diagnostic]:
        if not isinstance(program, Program):
            program = Program(program)
        self = BorrowChecker(program, mode, logger)
        validate_program(program)
        return self.check_()

    def log(self, message: str):
        if self.logger:
            self.logger(message)

    def report(self, kind: ViolationKind, location: Optional[Location], identifiers, message: str):
        diagnostic = self.reporter.report(kind, location, identifiers, message, self.index)
        self.log(f'[{kind}] {message}')
        return diagnostic

    def check_(self) -> list[Diagnostic]:
        """Borrow checking with lexical lifetimes"""
        for index, statement in enumerate(self.program):
            self.index = index
            self.check_statement(statement)

        # The program body is the outermost scope; close whatever is still open.
        self.index = None
        for entity in self.scopes.close_all():
            self.destroy(entity, self.program.end)

        return self.reporter.finalize()

    def check_statement(self, statement):
        location = statement.location
        match statement:
            case DeclareBinding():
                self.check_reads(statement.value, location)
                binding, shadowed = self.scopes.declare_binding(statement.name, statement.mutable, statement.type_tag, location)
                self.end_shadowed(shadowed)
                self.log(f"declare '{binding.name}' (depth {binding.depth}, order {binding.order}): Free")
            case DeclareReference():
                target = self.scopes.lookup(statement.target)
                reference, shadowed = self.scopes.declare_reference(statement.name, statement.kind, statement.mutable, location)
                self.end_shadowed(shadowed)
                self.acquire(reference, target, location)
            case RebindReference():
                self.rebind(statement)
            case AssignBinding():
                self.assign(statement)
            case AssignThroughReference():
                self.assign_through(statement)
            case ReadBinding():
                self.read(statement.name, location)
            case ReadThroughReference():
                self.read_through(statement.name, location)
            case EnterScope():
                frame = self.scopes.enter(location)
                self.log(f'enter scope (depth {frame.depth})')
            case ExitScope():
                for entity in self.scopes.exit():
                    self.destroy(entity, location)
                self.log(f'exit scope (depth {self.scopes.depth + 1})')
            case _:
                raise TypeError(f'Unknown statement {statement!r}')

    # -- Borrows --

    def acquire(self, reference: Reference, binding: Binding, location: Optional[Location]):
        try:
            state = self.borrows.acquire(binding, reference)
        except BorrowConflict as conflict:
            reference.target = None
            self.report(ViolationKind.EXCLUSIVITY_VIOLATION, location,
                        (binding.name, reference.name, *(r.name for r in conflict.blockers)),
                        str(conflict))
            return
        reference.target = binding
        self.log(f"'{reference.name}' borrows '{binding.name}': {state}")

    def release(self, reference: Reference, why: str):
        binding = reference.target
        if binding is None:
            return
        state = self.borrows.release(binding, reference)
        reference.target = None
        self.log(f"'{reference.name}' releases '{binding.name}' ({why}): {state}")

    def end_shadowed(self, shadowed):
        """A reference shadowed in its own frame is dead from here on; a shadowed binding lives until its scope ends."""
        if isinstance(shadowed, Reference):
            self.release(shadowed, 'shadowed')
            shadowed.destroyed = True

    def rebind(self, statement: RebindReference):
        reference = self.scopes.lookup(statement.name)
        if not reference.mutable:
            self.report(ViolationKind.IMMUTABLE_OWNER_ASSIGNMENT, statement.location, (reference.name, ),
                        f"Cannot assign twice to immutable reference '{reference.name}'")
            return

        self.release(reference, 'rebound')
        self.acquire(reference, self.scopes.lookup(statement.target), statement.location)

    # -- Accesses --

    def check_reads(self, value: Optional[Expr], location: Optional[Location], skip: Optional[str] = None):
        for access in reads_of(value):
            if isinstance(access, Deref):
                self.read_through(access.reference, location)
            elif access.name != skip:
                self.read(access.name, location)

    def read(self, name: str, location: Optional[Location]):
        entity = self.scopes.lookup(name)
        if isinstance(entity, Reference):
            return self.read_through(name, location)

        state = self.borrows.current_state(entity)
        if state.state == State.EXCLUSIVE_BY:
            self.report(ViolationKind.OWNER_ACCESS_WHILE_BORROWED, location, (entity.name, state.holder.name),
                        f"Cannot read '{entity.name}'; '{entity.name}' is exclusively borrowed by '{state.holder.name}'")

    def read_through(self, name: str, location: Optional[Location]):
        entity = self.scopes.lookup(name)
        if isinstance(entity, Reference):
            # A reference with a target is one of its shared holders or its exclusive holder,
            # so reading through it never conflicts. Without a target the failure was reported already.
            return

        # A read through a fresh path is a shared borrow that ends with the statement.
        state = self.borrows.current_state(entity)
        if state.state == State.EXCLUSIVE_BY:
            self.report(ViolationKind.EXCLUSIVITY_VIOLATION, location, (entity.name, state.holder.name),
                        f"Cannot share borrow '{entity.name}' for reading; '{entity.name}' is exclusively borrowed by '{state.holder.name}'")

    def assign(self, statement: AssignBinding):
        location = statement.location
        # Reading the assigned binding itself is covered by the write check below.
        self.check_reads(statement.value, location, skip=statement.name)

        binding = self.scopes.lookup(statement.name)
        if not binding.mutable:
            self.report(ViolationKind.IMMUTABLE_OWNER_ASSIGNMENT, location, (binding.name, ),
                        f"Cannot assign twice to immutable binding '{binding.name}'")

        state = self.borrows.current_state(binding)
        if state.state != State.FREE:
            how = 'exclusively' if state.state == State.EXCLUSIVE_BY else 'shared'
            names = ', '.join(f"'{n}'" for n in state.names())
            self.report(ViolationKind.OWNER_ACCESS_WHILE_BORROWED, location, (binding.name, *state.names()),
                        f"Cannot assign to '{binding.name}'; '{binding.name}' is {how} borrowed by {names}")

    def assign_through(self, statement: AssignThroughReference):
        location = statement.location
        # The validator only lets exclusive references write, and a live one holds its target alone.
        self.check_reads(statement.value, location)

    # -- Drops --

    def destroy(self, entity, location: Optional[Location]):
        if isinstance(entity, Reference):
            self.release(entity, 'dropped')
            return

        live = self.borrows.live_references(entity)
        if live:
            names = ', '.join(f"'{r.name}'" for r in live)
            self.report(ViolationKind.DANGLING_REFERENT_VIOLATION, location, (entity.name, *(r.name for r in live)),
                        f"'{entity.name}' does not live long enough; it is dropped while still borrowed by {names}")
            for reference in live:
                self.release(reference, 'referent dropped')
        self.log(f"drop '{entity.name}'")
