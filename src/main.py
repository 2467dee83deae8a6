#!/usr/bin/env python3
from borrow_checker import BorrowChecker, MODES
from diagnostics import ViolationKind
from errors import ModelError, UnsupportedMode
from interpreter import Interpreter
from parser import parse
from program.passes import generate_graph_viz

from pathlib import Path
import argparse
import sys


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Lexical borrow checker for a toy language of bindings and references')
    parser.add_argument('file', help='Source code file')
    parser.add_argument('--run', help='Evaluate the program if it passes the borrow checker', action='store_true')
    parser.add_argument('--dot', help='Write the borrow graph in graphviz format to this path', metavar='PATH')
    parser.add_argument('--mode', help='Lifetime model', choices=MODES, default='lexical')
    parser.add_argument('--verbose', help='Trace borrow state transitions', action='store_true')

    args = parser.parse_args(argv)

    path = Path(args.file)
    try:
        source = path.read_text()
    except OSError as e:
        print(f'[ERROR]: Unable to read {path}: {e}', file=sys.stderr)
        return 1

    try:
        program = parse(source, str(path))
        diagnostics = BorrowChecker.check(program, args.mode, logger=print if args.verbose else None)
    except UnsupportedMode as e:
        print(f'[ERROR]: {ViolationKind.UNSUPPORTED_MODE}: {e}', file=sys.stderr)
        return 1
    except ModelError as e:
        print(f'{path}:{e}' if e.location else f'{path}: {e}', file=sys.stderr)
        return 1
    except RuntimeError as e:
        print(e, file=sys.stderr)
        return 1

    if args.dot:
        with open(args.dot, 'w') as file:
            file.write(generate_graph_viz(program))

    for diagnostic in diagnostics:
        print(diagnostic.format(str(path), source), file=sys.stderr)

    if diagnostics:
        print(f'{len(diagnostics)} borrow error(s) in {path}', file=sys.stderr)
        return 1

    if args.run:
        try:
            for value in Interpreter.run(program):
                print(value)
        except RuntimeError as e:
            print(f'[ERROR]: {e}', file=sys.stderr)
            return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
