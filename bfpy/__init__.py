# Python implementation of the eight instruction tape language.
#
# Source is compiled once by `parse` into an immutable Program (a flat tuple
# of Steps with every bracket already paired). A Program is then run against
# binary input/output streams, bounded by the step and memory limits in
# RunOptions. Both stages report located, renderable errors (see error.py).

import logging

from .error import Location, ErrorKind, snippet
from .error import BfError, CompileError, RunError
from .error import UnmatchedBracketError, MoveOverflowError, CompileIoError
from .error import StepLimitError, MemoryLimitError, RunIoError
from .instr import Instr, Step
from .env import RunOptions, STR_OPTIONS, UNBOUNDED
from .program import Program
from .parser import parse
from .machine import execute, runStr

logging.getLogger(__name__).addHandler(logging.NullHandler())


def run(source, inp: str = "", debug=False, options: RunOptions = STR_OPTIONS) -> str:
    """Compile and run source on a string, returning the output string."""
    return runStr(parse(source, debug=debug), inp, options)
