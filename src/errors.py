import math
from typing import Optional

from location import Location


class ModelError(RuntimeError):
    """A program that cannot be analysed at all (unknown names, unbalanced scopes, ...)."""

    def __init__(self, message: str, location: Optional[Location] = None):
        super().__init__(message if location is None else f'{location}: {message}')
        self.location = location


class UnsupportedMode(RuntimeError):
    def __init__(self, mode: str):
        super().__init__(f"Checker mode '{mode}' is not supported, only 'lexical' lifetimes are implemented")
        self.mode = mode


def surrounding_lines_of(source, begin: Location) -> tuple[str, str, str]:
    idx = begin.index

    def find_line_bounds(index: int) -> tuple[int, int]:
        start = index
        while start > 0 and source[start - 1] != '\n':
            start -= 1
        end = index
        while end < len(source) and source[end] != '\n':
            end += 1
        return start, end

    curr_start, curr_end = find_line_bounds(idx)
    current_line = source[curr_start:curr_end]

    prev_line = ""
    if curr_start > 0:
        prev_end = curr_start - 1  # skip the newline
        prev_start = prev_end
        while prev_start > 0 and source[prev_start - 1] != '\n':
            prev_start -= 1
        prev_line = source[prev_start:prev_end]

    next_line = ""
    if curr_end < len(source):
        next_start = curr_end + 1 if source[curr_end] == '\n' else curr_end
        next_end = next_start
        while next_end < len(source) and source[next_end] != '\n':
            next_end += 1
        next_line = source[next_start:next_end]

    return prev_line, current_line, next_line


def excerpt(source: str, begin: Location, end: Optional[Location] = None) -> str:
    """Three lines of source around `begin` with a caret line under the offending span."""
    end = end or begin
    width = max(2, int(math.log10(max(begin.row, 1))) + 1)
    before, current, after = surrounding_lines_of(source, begin)
    text  = f'  {begin.row-1:0{width}} | ' + before + '\n'
    text += f'  {begin.row+0:0{width}} | ' + current + '\n'
    text += f'  {" " * width} | ' + ' ' * (begin.col - 1) + '^' * max(1, end.col - begin.col) + '\n'
    text += f'  {begin.row+1:0{width}} | ' + after + '\n'
    return text


def error(path, source, begin: Location, end: Location, message: str):
    header = f'{path}:{begin.row}:{begin.col}: [ERROR]: '
    return RuntimeError(header + message + '\n' + excerpt(source, begin, end))
