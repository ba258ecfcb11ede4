from .imports import *

# Characters of context shown on each side of the failing column.
SNIPPET_CONTEXT = 10
ELLIPSIS = '...'

@dataclass(frozen=True)
class Location:
    """A zero based (line, column) into the source, counted in characters."""
    line: int
    col: int

    def __str__(self):
        return f"line {self.line}, column {self.col}"


class ErrorKind(enum.Enum):
    UNMATCHED_BRACKET = enum.auto()
    MOVE_OVERFLOW = enum.auto()
    STEP_LIMIT = enum.auto()
    MEMORY_LIMIT = enum.auto()
    IO = enum.auto()


def snippet(source: str, location: Location) -> str:
    """Render the failing source line around location with a caret under it.

    At most SNIPPET_CONTEXT characters are shown on each side of the column.
    Truncated sides are marked with an ellipsis.
    """
    lines = source.split('\n')
    line = lines[location.line] if location.line < len(lines) else ''
    line = line.rstrip('\r')
    col = location.col
    start = max(0, col - SNIPPET_CONTEXT)
    end = min(len(line), col + SNIPPET_CONTEXT + 1)
    pre = ELLIPSIS if start > 0 else ''
    post = ELLIPSIS if end < len(line) else ''
    caret = ' ' * (len(pre) + col - start) + '^'
    return f"{pre}{line[start:end]}{post}\n{caret}"


class BfError(Exception):
    """Root of every error raised while compiling or running a program.

    Carries enough to render a diagnostic: the kind, the location of the
    instruction (when there is one), the program source and, for errors
    from a run whose output the engine collected (runStr), the output
    written before the failure.
    """
    kind: ErrorKind = None
    stage = 'bf'

    def __init__(self, location: Location = None, source: str = None,
                 output: bytes = None, limit: int = None):
        super().__init__()
        self.location = location
        self.source = source
        self.output = output
        self.limit = limit

    def message(self) -> str:
        return f"{self.stage} error"

    def __str__(self):
        msg = self.message()
        if self.location is not None:
            msg += f" at {self.location}"
        return msg

    def located(self, location, source, output=None):
        self.location = location
        self.source = source
        if output is not None:
            self.output = output
        return self

    def outputStr(self) -> Optional[str]:
        if self.output is None:
            return None
        return self.output.decode('utf-8', errors='replace')

    def snippet(self) -> Optional[str]:
        if self.location is None or self.source is None:
            return None
        return snippet(self.source, self.location)

    def pretty(self) -> str:
        out = str(self)
        snip = self.snippet()
        if snip is not None:
            out += '\n' + snip
        return out


class _IoMixin:
    """Wraps an exception raised by a caller supplied stream."""
    kind = ErrorKind.IO

    def __init__(self, err: Exception, **kwargs):
        super().__init__(**kwargs)
        self.err = err

    def message(self):
        return f"{self.stage} error: {self.err}"


class CompileError(BfError):
    stage = 'parse'

class UnmatchedBracketError(CompileError):
    kind = ErrorKind.UNMATCHED_BRACKET

    def message(self):
        return "parse error: missing matching bracket"

class MoveOverflowError(CompileError):
    kind = ErrorKind.MOVE_OVERFLOW

    def message(self):
        return "parse error: pointer move does not fit in a platform integer"

class CompileIoError(_IoMixin, CompileError): pass


class RunError(BfError):
    stage = 'run'

class StepLimitError(RunError):
    kind = ErrorKind.STEP_LIMIT

    def message(self):
        return f"run error: step limit reached ({self.limit})"

class MemoryLimitError(RunError):
    kind = ErrorKind.MEMORY_LIMIT

    def message(self):
        return f"run error: memory limit reached ({self.limit} bytes)"

class RunIoError(_IoMixin, RunError): pass


def testSnippet():
    src = "+++++[>+++++++>++<<-]>.>.["
    assert (
        "...++<<-]>.>.[\n"
        "             ^") == snippet(src, Location(0, 25))
    assert (
        "+++++[>++++...\n"
        "^") == snippet(src, Location(0, 0))

def testSnippetMultiline():
    src = "+\n  ab]cd\r\n"
    assert "  ab]cd\n    ^" == snippet(src, Location(1, 4))

def testErrorStr():
    err = StepLimitError(limit=10)
    assert "run error: step limit reached (10)" == str(err)
    assert ErrorKind.STEP_LIMIT == err.kind
    assert err.snippet() is None

    err.located(Location(0, 2), "+[]", b'hi')
    assert "run error: step limit reached (10) at line 0, column 2" == str(err)
    assert "hi" == err.outputStr()
    assert err.pretty().endswith("+[]\n  ^")

def testIoErrorStr():
    err = RunIoError(OSError("broken pipe"))
    assert ErrorKind.IO == err.kind
    assert isinstance(err, RunError)
    assert "run error: broken pipe" == str(err)
    assert "parse error: nope" == str(CompileIoError(ValueError("nope")))
