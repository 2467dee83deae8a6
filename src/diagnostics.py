from dataclasses import dataclass
from enum import Enum
from typing import Optional

from errors import excerpt
from location import Location


class ViolationKind(Enum):
    EXCLUSIVITY_VIOLATION = 'ExclusivityViolation'
    OWNER_ACCESS_WHILE_BORROWED = 'OwnerAccessWhileBorrowed'
    IMMUTABLE_OWNER_ASSIGNMENT = 'ImmutableOwnerAssignment'
    DANGLING_REFERENT_VIOLATION = 'DanglingReferentViolation'
    UNSUPPORTED_MODE = 'UnsupportedMode'

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Diagnostic:
    kind:        ViolationKind
    location:    Optional[Location]
    identifiers: tuple[str, ...]
    message:     str
    # Index of the statement that triggered it, None for end-of-program drops.
    statement:   Optional[int] = None

    def format(self, path: str = '<program>', source: Optional[str] = None) -> str:
        if self.location is None:
            where = f'{path}:statement {self.statement}' if self.statement is not None else path
            return f'{where}: [ERROR]: {self.kind}: {self.message}'

        header = f'{path}:{self.location.row}:{self.location.col}: [ERROR]: {self.kind}: {self.message}'
        if source is None:
            return header
        return header + '\n' + excerpt(source, self.location)

    def __str__(self):
        return self.format()


class DiagnosticReporter:
    def __init__(self):
        self.diagnostics: list[Diagnostic] = []

    def report(self, kind: ViolationKind, location: Optional[Location], identifiers, message: str, statement: Optional[int] = None) -> Diagnostic:
        diagnostic = Diagnostic(kind, location, tuple(identifiers), message, statement)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def __len__(self):
        return len(self.diagnostics)

    def finalize(self) -> list[Diagnostic]:
        """Violations in the order they were found. Empty means the program is well-formed."""
        return list(self.diagnostics)
