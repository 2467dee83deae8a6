class Location:
    Self = 'Location'

    def __init__(self, index: int, row: int, col: int):
        self.index = index
        self.row = row
        self.col = col

    def next(self, char: str) -> Self:
        if char == '\n':
            return self.next_row()
        else:
            return self.next_col()

    def next_row(self) -> Self:
        return Location(self.index + 1, self.row + 1, 1)

    def next_col(self, count=1) -> Self:
        return Location(self.index + count, self.row, self.col + count)

    def __eq__(self, other):
        if not isinstance(other, Location):
            return NotImplemented
        return (self.index, self.row, self.col) == (other.index, other.row, other.col)

    def __hash__(self):
        return hash((self.index, self.row, self.col))

    def __str__(self):
        return f'{self.row}:{self.col}'

    def __repr__(self):
        return f'Location(index={self.index}, row={self.row}, col={self.col})'
