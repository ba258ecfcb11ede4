from .imports import *
from .error import MemoryLimitError

class Tape(object):
    """The byte tape a program runs against.

    To the program the pointer may go negative. Internally the live cells are
    self.cells[base:], with free room kept in front of them so growing left
    does not copy the tape every time. ptr indexes the live cells and the
    cells grown on the left are counted in self.offset:

        logical = ptr - offset

    offset only grows and ptr always stays inside the live cells. Only live
    cells count against maxBytes.
    """

    def __init__(self, maxBytes=sys.maxsize):
        self.cells = bytearray(1)
        self.base = 0  # index in cells of the leftmost live cell
        self.pos = 0   # index in cells of the current cell
        self.offset = 0
        self.maxBytes = maxBytes

    def __len__(self):
        return len(self.cells) - self.base

    @property
    def ptr(self) -> int:
        return self.pos - self.base

    @property
    def logical(self) -> int:
        return self.pos - self.base - self.offset

    def get(self) -> int:
        return self.cells[self.pos]

    def set(self, value: int):
        self.cells[self.pos] = value

    def add(self, delta: int):
        self.cells[self.pos] = (self.cells[self.pos] + delta) & 0xFF

    def checkGrow(self, size: int):
        if len(self) + size > self.maxBytes:
            raise MemoryLimitError(limit=self.maxBytes)

    def reserveLeft(self, need: int):
        """Make room for at least need cells in front of the live ones.

        The room doubles with the tape (never past what maxBytes could still
        use), so walking left costs amortized O(1) per cell.
        """
        extra = max(need - self.base,
                    min(len(self.cells), self.maxBytes - len(self)))
        self.cells[0:0] = bytes(extra)
        self.base += extra
        self.pos += extra

    def move(self, delta: int):
        pos = self.pos + delta
        if delta >= 0:
            if pos >= len(self.cells):
                grow = pos + 1 - len(self.cells)
                self.checkGrow(grow)
                self.cells.extend(bytes(grow))
            self.pos = pos
        elif pos >= self.base:
            self.pos = pos
        else:
            grow = self.base - pos
            self.checkGrow(grow)
            if grow > self.base:
                self.reserveLeft(grow)
            self.base -= grow
            self.offset += grow
            self.pos = self.base

    def debugStr(self) -> str:
        return f"[{self.logical},{self.get()}]"

    def __repr__(self):
        return f"Tape(logical={self.logical}, len={len(self)})"


def testTape():
    tape = Tape()
    assert 1 == len(tape)
    assert 0 == tape.logical

    tape.add(-1)
    assert 255 == tape.get()
    for _ in range(256): tape.add(1)
    assert 255 == tape.get()

    tape.move(3)
    assert 4 == len(tape)
    assert 3 == tape.logical
    assert 0 == tape.get()
    tape.move(-3)
    assert 255 == tape.get()
    assert 4 == len(tape)

def testTapeLeft():
    tape = Tape()
    tape.set(7)
    tape.move(-2)
    assert -2 == tape.logical
    assert (0, 2) == (tape.ptr, tape.offset)
    assert 3 == len(tape)
    assert "[-2,0]" == tape.debugStr()

    tape.move(2)
    assert "[0,7]" == tape.debugStr()
    tape.move(-1)
    assert (1, 2) == (tape.ptr, tape.offset)

def testTapeLogicalIsSumOfMoves():
    tape = Tape()
    total = 0
    for delta in [5, -9, 2, -30, 100, -1, 0, -200, 7]:
        tape.move(delta)
        total += delta
        assert total == tape.logical
        assert 0 <= tape.ptr < len(tape)

def testTapeMemoryLimit():
    tape = Tape(maxBytes=4)
    tape.move(3)
    try:
        tape.move(1)
        assert False
    except MemoryLimitError as err:
        assert 4 == err.limit
    # nothing changed
    assert (3, 4) == (tape.ptr, len(tape))

    tape.move(-3)
    try:
        tape.move(-1)
        assert False
    except MemoryLimitError: pass
    assert (0, 0, 4) == (tape.ptr, tape.offset, len(tape))

def testTapeLeftMargin():
    tape = Tape()
    tape.move(-1)
    assert (2, 0) == (len(tape.cells), tape.base)
    tape.move(-1)  # room doubles: [margin, margin, live, live]
    assert (4, 1, 3) == (len(tape.cells), tape.base, len(tape))
    tape.set(9)
    tape.move(-1)  # fits in the margin, nothing is copied
    assert (4, 0, 4) == (len(tape.cells), tape.base, len(tape))
    tape.move(1)
    assert (-2, 9) == (tape.logical, tape.get())

def testTapeLeftMarginRespectsLimit():
    tape = Tape(maxBytes=5)
    tape.move(-2)
    tape.move(-1)
    # live cells never pass the limit and the spare room stays inside it
    assert 4 == len(tape)
    assert len(tape.cells) <= 5
    tape.move(-1)
    assert 5 == len(tape)
    try:
        tape.move(-1)
        assert False
    except MemoryLimitError: pass
    assert (-4, 5) == (tape.logical, len(tape))

def testTapeLeftGrowthReallocatesRarely():
    tape = Tape()
    sizes = set()
    for _ in range(1 << 16):
        tape.move(-1)
        sizes.add(len(tape.cells))
    assert (1 << 16) + 1 == len(tape)
    assert -(1 << 16) == tape.logical
    assert len(sizes) <= 18
