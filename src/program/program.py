from typing import Iterable, Optional

from location import Location
from program.statements import Statement, EnterScope, ExitScope


class Program:
    def __init__(self, statements: Iterable[Statement], path: str = '<program>', source: Optional[str] = None, end: Optional[Location] = None):
        self.statements = list(statements)
        self.path = path
        # Source text the statements were parsed from, if any. Used to render diagnostics.
        self.source = source
        # Where the program body closes; drops of the outermost scope are reported here.
        self.end = end

    def __iter__(self):
        return iter(self.statements)

    def __len__(self):
        return len(self.statements)

    def __getitem__(self, index):
        return self.statements[index]

    def __repr__(self):
        result = f"Program: {self.path}\n"
        depth = 1
        for i, statement in enumerate(self.statements):
            if isinstance(statement, ExitScope):
                depth -= 1
            result += f"  {i:02}| {'    ' * depth}{statement.to_text()}\n"
            if isinstance(statement, EnterScope):
                depth += 1
        return result
