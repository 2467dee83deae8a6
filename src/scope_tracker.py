from typing import Optional, Union

from location import Location
from program.statements import RefKind


class Binding:
    """A named, owned storage location."""

    def __init__(self, name: str, mutable: bool, type_tag: str, depth: int, order: int, location: Optional[Location] = None):
        self.name = name
        self.mutable = mutable
        self.type_tag = type_tag
        self.depth = depth
        self.order = order
        self.location = location
        self.destroyed = False

    def __repr__(self):
        return f'Binding({self.name}, mutable={self.mutable}, depth={self.depth}, order={self.order})'


class Reference:
    """A non-owning alias. `target` is None while it holds no borrow."""

    def __init__(self, name: str, kind: RefKind, mutable: bool, depth: int, order: int, location: Optional[Location] = None):
        self.name = name
        self.kind = kind
        self.mutable = mutable
        self.depth = depth
        self.order = order
        self.location = location
        self.target: Optional[Binding] = None
        self.destroyed = False

    @property
    def is_exclusive(self) -> bool:
        return self.kind is RefKind.EXCLUSIVE

    def __repr__(self):
        target = self.target.name if self.target else None
        return f'Reference({self.name}, {self.kind!r}, target={target}, depth={self.depth}, order={self.order})'


Entity = Union[Binding, Reference]


class Frame:
    def __init__(self, depth: int, location: Optional[Location] = None):
        self.depth = depth
        self.location = location
        # Every entity declared directly in this frame, in creation order,
        # including ones that have since been shadowed.
        self.entities: list[Entity] = []
        # The entity each name currently refers to in this frame.
        self.names: dict[str, Entity] = {}

    def __repr__(self):
        return f'Frame(depth={self.depth}, entities={[e.name for e in self.entities]})'


class ScopeTracker:
    """
    The stack of lexical scopes of one analysis.

    The bottom frame is the program itself and is never popped by `exit`;
    `close_all` drains every frame, root included, at the end of the program.
    """

    def __init__(self):
        self.frames: list[Frame] = [Frame(0)]
        self.counter = 0

    @property
    def depth(self) -> int:
        return len(self.frames) - 1

    @property
    def current(self) -> Frame:
        return self.frames[-1]

    def enter(self, location: Optional[Location] = None) -> Frame:
        frame = Frame(len(self.frames), location)
        self.frames.append(frame)
        return frame

    def exit(self) -> list[Entity]:
        """
        Pop the innermost frame and return its live entities in drop order,
        i.e. the most recently created first.
        """
        if len(self.frames) == 1:
            raise RuntimeError('Cannot exit the root scope')
        return self.drop(self.frames.pop())

    def close_all(self) -> list[Entity]:
        dropped = []
        while self.frames:
            dropped.extend(self.drop(self.frames.pop()))
        return dropped

    @staticmethod
    def drop(frame: Frame) -> list[Entity]:
        dropped = [entity for entity in reversed(frame.entities) if not entity.destroyed]
        for entity in dropped:
            entity.destroyed = True
        return dropped

    def next_order(self) -> int:
        order = self.counter
        self.counter += 1
        return order

    def declare(self, entity: Entity) -> Optional[Entity]:
        """Register `entity` in the current frame and return the same-frame entity it shadows, if any."""
        frame = self.current
        shadowed = frame.names.get(entity.name)
        frame.entities.append(entity)
        frame.names[entity.name] = entity
        return shadowed

    def declare_binding(self, name: str, mutable: bool = False, type_tag: str = 'int', location: Optional[Location] = None) -> tuple[Binding, Optional[Entity]]:
        binding = Binding(name, mutable, type_tag, self.depth, self.next_order(), location)
        return binding, self.declare(binding)

    def declare_reference(self, name: str, kind: RefKind, mutable: bool = False, location: Optional[Location] = None) -> tuple[Reference, Optional[Entity]]:
        reference = Reference(name, kind, mutable, self.depth, self.next_order(), location)
        return reference, self.declare(reference)

    def lookup(self, name: str) -> Optional[Entity]:
        for frame in reversed(self.frames):
            if name in frame.names:
                return frame.names[name]
        return None

    def __repr__(self):
        return f'ScopeTracker({self.frames})'
