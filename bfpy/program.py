from types import MappingProxyType
from typing import Mapping

from .imports import *
from .instr import Instr, Step
from .error import Location
from .env import RunOptions, STR_OPTIONS
from .machine import execute, runStr

@dataclass(frozen=True, eq=False)
class Program:
    """A compiled program.

    Immutable once built by the parser, so a single Program can be run any
    number of times, including from several threads at once. The source is
    kept only to render diagnostics and is shared with every error raised
    from this program.
    """
    steps: Tuple[Step, ...]
    jumps: Mapping[int, int]
    locations: Tuple[Location, ...]
    source: str
    debug: bool = False

    @classmethod
    def new(cls, steps, jumps, locations, source, debug=False):
        assert len(steps) == len(locations)
        return cls(
            steps=tuple(steps),
            jumps=MappingProxyType(dict(jumps)),
            locations=tuple(locations),
            source=source,
            debug=debug)

    def __len__(self):
        return len(self.steps)

    def locate(self, index: int) -> Location:
        return self.locations[index]

    def toSource(self) -> str:
        return ''.join(s.toSource() for s in self.steps)

    def run(self, inp, out, options: RunOptions = None):
        """Run against binary streams. Output is only written to out."""
        execute(self, options or RunOptions(), inp, out)

    def runStr(self, inp: str = "", options: RunOptions = STR_OPTIONS) -> str:
        return runStr(self, inp, options)

    def __repr__(self):
        return f"Program(steps={len(self.steps)}, loops={len(self.jumps) // 2})"


def testProgramFrozen():
    p = Program.new(
        [Step(Instr.LOOP_BEGIN, 1), Step(Instr.LOOP_END, 0)],
        {0: 1, 1: 0},
        [Location(0, 0), Location(0, 1)],
        "[]")
    assert 2 == len(p)
    assert "[]" == p.toSource()
    assert Location(0, 1) == p.locate(1)
    try:
        p.jumps[0] = 5
        assert False
    except TypeError: pass
    assert "Program(steps=2, loops=1)" == repr(p)
