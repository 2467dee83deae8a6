from .statements import (
    RefKind, Literal, Name, Deref, BinaryOp, Expr, reads_of,
    DeclareBinding, DeclareReference, RebindReference,
    AssignBinding, AssignThroughReference,
    ReadBinding, ReadThroughReference,
    EnterScope, ExitScope,
    Statement,
)
from .program import Program
