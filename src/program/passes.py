from graphviz import Digraph

from program.program import Program
from program.statements import (
    RefKind, DeclareBinding, DeclareReference, RebindReference, EnterScope, ExitScope,
)
from scope_tracker import ScopeTracker, Binding


class ScopeNode:
    def __init__(self, id, label: str):
        self.id = id
        self.label = label
        self.declarations = []   # (node name, label)
        self.children = []


def escape(s):
    return s.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def generate_graph_viz(program: Program):
    """
    One cluster per lexical scope holding its declarations, and one edge per
    (reference, referent) pair the program ever establishes: solid for
    exclusive borrows, dashed for shared ones.
    """
    dot = Digraph(comment='Borrow Graph')

    scopes = ScopeTracker()
    root = ScopeNode('root', program.path)
    stack = [root]
    edges = {}

    def node_of(entity):
        return f'n{entity.order}'

    def add_edge(reference, name, index):
        target = scopes.lookup(name)
        if isinstance(target, Binding):
            edges.setdefault((node_of(reference), node_of(target)), (reference.kind, []))[1].append(index)

    for index, statement in enumerate(program):
        match statement:
            case DeclareBinding():
                binding, _ = scopes.declare_binding(statement.name, statement.mutable, statement.type_tag)
                stack[-1].declarations.append((node_of(binding), statement.to_text()))
            case DeclareReference():
                reference, _ = scopes.declare_reference(statement.name, statement.kind, statement.mutable)
                stack[-1].declarations.append((node_of(reference), statement.to_text()))
                add_edge(reference, statement.target, index)
            case RebindReference():
                reference = scopes.lookup(statement.name)
                if reference is not None and not isinstance(reference, Binding):
                    add_edge(reference, statement.target, index)
            case EnterScope():
                frame = scopes.enter()
                child = ScopeNode(index, f'scope {index} (depth {frame.depth})')
                stack[-1].children.append(child)
                stack.append(child)
            case ExitScope():
                if len(stack) > 1:
                    scopes.exit()
                    stack.pop()

    def emit(graph, scope: ScopeNode):
        with graph.subgraph(name=f'cluster_{scope.id}') as subgraph:
            subgraph.attr(label=escape(scope.label))
            for name, label in scope.declarations:
                subgraph.node(name, label=escape(label), shape='box')
            for child in scope.children:
                emit(subgraph, child)

    emit(dot, root)

    for (source, target), (kind, indices) in edges.items():
        style = 'solid' if kind is RefKind.EXCLUSIVE else 'dashed'
        dot.edge(source, target, style=style, label=', '.join(f'#{i}' for i in indices))

    return dot.source
