import dataclasses
from dataclasses import field

from .imports import *
from .mem import Tape

KiB = 2**10
MiB = 2**20
UNBOUNDED = sys.maxsize

@dataclass(frozen=True)
class RunOptions:
    """Resource limits for a single execution.

    maxMemBytes bounds the total length of the tape (not how far the pointer
    may travel). maxSteps bounds the number of compiled instructions run.
    """
    maxMemBytes: int = UNBOUNDED
    maxSteps: int = UNBOUNDED

    def __post_init__(self):
        if self.maxMemBytes < 0:
            raise ValueError(f"maxMemBytes={self.maxMemBytes} is negative")
        if self.maxSteps < 0:
            raise ValueError(f"maxSteps={self.maxSteps} is negative")

    def withMaxMemBytes(self, maxMemBytes: int) -> "RunOptions":
        return dataclasses.replace(self, maxMemBytes=maxMemBytes)

    def withMaxSteps(self, maxSteps: int) -> "RunOptions":
        return dataclasses.replace(self, maxSteps=maxSteps)


# Used when the caller only hands us strings: keep an accidental infinite
# loop from hanging them.
STR_OPTIONS = RunOptions(maxMemBytes=1 * MiB, maxSteps=2**24)


@dataclass
class RunEnv:
    """Everything one execution of a program owns."""
    program: "Program"
    tape: Tape
    inp: Any   # binary (or text) stream with read(1)
    out: Any   # binary stream with write(bytes)
    options: RunOptions

    ip: int = 0  # index of the step being run
    stepCount: int = 0
    # bytes of a text character read from inp and not yet stored
    pending: bytearray = field(default_factory=bytearray)

    def location(self):
        if self.ip < len(self.program.steps):
            return self.program.locate(self.ip)
        return None


def createEnv(program, options=None, inp=None, out=None) -> RunEnv:
    """Create a fresh RunEnv. inp defaults to an empty stream."""
    options = options or RunOptions()
    return RunEnv(
        program=program,
        tape=Tape(options.maxMemBytes),
        inp=io.BytesIO() if inp is None else inp,
        out=io.BytesIO() if out is None else out,
        options=options,
    )


def testRunOptions():
    opts = RunOptions()
    assert UNBOUNDED == opts.maxSteps == opts.maxMemBytes
    opts2 = opts.withMaxSteps(10).withMaxMemBytes(20)
    assert (20, 10) == (opts2.maxMemBytes, opts2.maxSteps)
    assert UNBOUNDED == opts.maxSteps, "opts is not modified"
    try:
        RunOptions(maxSteps=-1)
        assert False
    except ValueError: pass

def testCreateEnv():
    env = createEnv(program=None, options=RunOptions(maxMemBytes=KiB))
    assert KiB == env.tape.maxBytes
    assert (0, 0) == (env.ip, env.stepCount)
    assert b'' == env.inp.read(1)
    assert bytearray() == env.pending
