from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from scope_tracker import Binding, Reference


class State(Enum):
    FREE = auto()
    SHARED_BY = auto()
    EXCLUSIVE_BY = auto()


@dataclass(frozen=True)
class BorrowState:
    state: State
    references: tuple = ()

    @property
    def holder(self) -> Optional[Reference]:
        """The exclusive reference, if any."""
        return self.references[0] if self.state == State.EXCLUSIVE_BY else None

    def names(self) -> tuple[str, ...]:
        return tuple(r.name for r in self.references)

    def __str__(self):
        match self.state:
            case State.FREE:
                return 'Free'
            case State.SHARED_BY:
                return f'SharedBy({", ".join(self.names())})'
            case State.EXCLUSIVE_BY:
                return f'ExclusiveBy({self.holder.name})'


FREE = BorrowState(State.FREE)


class BorrowConflict(RuntimeError):
    """An acquisition that the current borrow state of `binding` does not allow."""

    def __init__(self, binding: Binding, reference: Reference, current: BorrowState):
        self.binding = binding
        self.reference = reference
        self.current = current
        if current.state == State.EXCLUSIVE_BY:
            how = f'exclusively borrowed by \'{current.holder.name}\''
        else:
            how = f'shared borrowed by {", ".join(repr(n) for n in current.names())}'
        wanted = 'mutably borrow' if reference.is_exclusive else 'share borrow'
        super().__init__(f"'{reference.name}' cannot {wanted} '{binding.name}'; '{binding.name}' is already {how}")

    @property
    def blockers(self) -> tuple[Reference, ...]:
        return self.current.references


class BorrowStateTable:
    """
    Live references per binding. A failed acquisition raises `BorrowConflict`
    and leaves the table unchanged.
    """

    def __init__(self):
        self.live: dict[Binding, list[Reference]] = {}

    def current_state(self, binding: Binding) -> BorrowState:
        references = self.live.get(binding)
        if not references:
            return FREE
        if references[0].is_exclusive:
            return BorrowState(State.EXCLUSIVE_BY, (references[0], ))
        return BorrowState(State.SHARED_BY, tuple(references))

    def live_references(self, binding: Binding) -> tuple[Reference, ...]:
        return tuple(self.live.get(binding, ()))

    def acquire_shared(self, binding: Binding, reference: Reference) -> BorrowState:
        current = self.current_state(binding)
        if current.state == State.EXCLUSIVE_BY:
            raise BorrowConflict(binding, reference, current)
        self.live.setdefault(binding, []).append(reference)
        return self.current_state(binding)

    def acquire_exclusive(self, binding: Binding, reference: Reference) -> BorrowState:
        current = self.current_state(binding)
        if current.state != State.FREE:
            raise BorrowConflict(binding, reference, current)
        self.live[binding] = [reference]
        return self.current_state(binding)

    def acquire(self, binding: Binding, reference: Reference) -> BorrowState:
        if reference.is_exclusive:
            return self.acquire_exclusive(binding, reference)
        return self.acquire_shared(binding, reference)

    def release(self, binding: Binding, reference: Reference) -> BorrowState:
        references = self.live.get(binding, [])
        if reference in references:
            references.remove(reference)
        if not references:
            self.live.pop(binding, None)
        return self.current_state(binding)
