from .imports import *

class Instr(enum.Enum):
    ADD        = '+'
    MOVE       = '>'
    LOOP_BEGIN = '['
    LOOP_END   = ']'
    OUTPUT     = '.'
    INPUT      = ','
    DEBUG      = '?'

    @classmethod
    def fromChar(cls, c: str, debug=False):
        """Return (instr, delta) for a source character, or None if inert."""
        if c == '?' and not debug:
            return None
        return _CHARS.get(c)

    def isFolded(self):
        return self is Instr.ADD or self is Instr.MOVE

    def isLoop(self):
        return self is Instr.LOOP_BEGIN or self is Instr.LOOP_END


_CHARS = {
    '+': (Instr.ADD, 1),   '-': (Instr.ADD, -1),
    '>': (Instr.MOVE, 1),  '<': (Instr.MOVE, -1),
    '[': (Instr.LOOP_BEGIN, 0), ']': (Instr.LOOP_END, 0),
    '.': (Instr.OUTPUT, 0), ',': (Instr.INPUT, 0),
    '?': (Instr.DEBUG, 0),
}

SIGNIFICANT = '+-<>.,[]'
DEBUG_SIGNIFICANT = SIGNIFICANT + '?'


def wrapAdd(delta: int) -> int:
    """Wrap an accumulated ADD delta into the signed 8 bit range."""
    return I8(delta).value

def checkedMove(delta: int) -> Optional[int]:
    """Return the MOVE delta, or None if it leaves the ssize_t range."""
    if ISIZE_MIN <= delta <= ISIZE_MAX:
        return delta
    return None


@dataclass(frozen=True)
class Step:
    """A single compiled instruction.

    arg is the folded delta for ADD and MOVE, the index of the matching
    bracket for LOOP_BEGIN and LOOP_END, and unused otherwise.
    """
    instr: Instr
    arg: int = 0

    def toSource(self) -> str:
        if self.instr is Instr.ADD:
            return ('+' if self.arg >= 0 else '-') * abs(self.arg)
        if self.instr is Instr.MOVE:
            return ('>' if self.arg >= 0 else '<') * abs(self.arg)
        return self.instr.value

    def __repr__(self):
        if self.instr.isFolded() or self.instr.isLoop():
            return f"{self.instr.name}({self.arg})"
        return self.instr.name


def testInstrAPI():
    assert (Instr.ADD, 1) == Instr.fromChar('+')
    assert (Instr.MOVE, -1) == Instr.fromChar('<')
    assert Instr.fromChar('a') is None
    assert Instr.fromChar('?') is None
    assert (Instr.DEBUG, 0) == Instr.fromChar('?', debug=True)
    assert Instr.ADD.isFolded() and not Instr.OUTPUT.isFolded()
    assert Instr.LOOP_END.isLoop()

def testWrapAdd():
    assert 0 == wrapAdd(256)
    assert -1 == wrapAdd(255)
    assert 127 == wrapAdd(127)
    assert -128 == wrapAdd(128)
    assert 1 == wrapAdd(-255)

def testCheckedMove():
    assert ISIZE_MAX == checkedMove(ISIZE_MAX)
    assert ISIZE_MIN == checkedMove(ISIZE_MIN)
    assert checkedMove(ISIZE_MAX + 1) is None
    assert checkedMove(ISIZE_MIN - 1) is None

def testStepSource():
    assert '---' == Step(Instr.ADD, -3).toSource()
    assert '>>' == Step(Instr.MOVE, 2).toSource()
    assert '' == Step(Instr.MOVE, 0).toSource()
    assert '[' == Step(Instr.LOOP_BEGIN, 5).toSource()
    assert '.' == Step(Instr.OUTPUT).toSource()
    assert 'ADD(-3)' == repr(Step(Instr.ADD, -3))
