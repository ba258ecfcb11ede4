from .imports import *
from .env import RunEnv, createEnv
from .instr import Instr, Step
from .error import RunIoError

# Every action runs the step at env.ip. A jump sets env.ip to the matching
# bracket; the machine then advances past it, so the closing check runs on
# every iteration and a skipped loop resumes after its end.

def _ADD(env: RunEnv, step: Step):
    env.tape.add(step.arg)

def _MOVE(env: RunEnv, step: Step):
    env.tape.move(step.arg)

def _LOOP_BEGIN(env: RunEnv, step: Step):
    if env.tape.get() == 0: env.ip = step.arg

def _LOOP_END(env: RunEnv, step: Step):
    if env.tape.get() != 0: env.ip = step.arg

def write(env: RunEnv, data: bytes):
    try:
        env.out.write(data)
    except (OSError, ValueError) as err:
        raise RunIoError(err) from err

def _OUTPUT(env: RunEnv, step: Step):
    write(env, bytes((env.tape.get(),)))

def readByte(env: RunEnv) -> int:
    """Read one byte of input, 0 at end of stream.

    A text stream yields characters: each is UTF-8 encoded and its bytes are
    handed out one per read.
    """
    if env.pending:
        return env.pending.pop(0)
    try:
        c = env.inp.read(1)
    except (OSError, ValueError) as err:
        raise RunIoError(err) from err
    if not c:
        return 0
    if isinstance(c, str):
        data = c.encode('utf-8')
        env.pending.extend(data[1:])
        return data[0]
    return c[0]

def _INPUT(env: RunEnv, step: Step):
    env.tape.set(readByte(env))

def _DEBUG(env: RunEnv, step: Step):
    write(env, env.tape.debugStr().encode('ascii'))

INSTR_ACTIONS: Dict[Instr, Callable[[RunEnv, Step], None]] = {
    Instr.ADD: _ADD,
    Instr.MOVE: _MOVE,
    Instr.LOOP_BEGIN: _LOOP_BEGIN,
    Instr.LOOP_END: _LOOP_END,
    Instr.OUTPUT: _OUTPUT,
    Instr.INPUT: _INPUT,
    Instr.DEBUG: _DEBUG,
}


def testActionsCoverInstrs():
    assert set(Instr) == set(INSTR_ACTIONS)

def testInputOutput():
    env = createEnv(None, inp=io.BytesIO(b'A'))
    _INPUT(env, Step(Instr.INPUT))
    assert 65 == env.tape.get()
    _OUTPUT(env, Step(Instr.OUTPUT))
    _INPUT(env, Step(Instr.INPUT))
    assert 0 == env.tape.get()
    _DEBUG(env, Step(Instr.DEBUG))
    assert b'A[0,0]' == env.out.getvalue()

def testInputText():
    env = createEnv(None, inp=io.StringIO('z'))
    _INPUT(env, Step(Instr.INPUT))
    assert ord('z') == env.tape.get()

def testInputTextIsUtf8Bytes():
    # same bytes as reading the encoded stream
    inp = io.TextIOWrapper(io.BytesIO('éz'.encode('utf-8')), encoding='utf-8')
    env = createEnv(None, inp=inp)
    got = []
    for _ in range(4):
        _INPUT(env, Step(Instr.INPUT))
        got.append(env.tape.get())
    assert [0xC3, 0xA9, ord('z'), 0] == got
    assert bytearray() == env.pending

def testLoopJumps():
    env = createEnv(None)
    env.ip = 3
    _LOOP_BEGIN(env, Step(Instr.LOOP_BEGIN, 9))
    assert 9 == env.ip  # cell is zero: skip
    _LOOP_END(env, Step(Instr.LOOP_END, 3))
    assert 9 == env.ip  # cell is zero: fall through
    env.tape.add(1)
    _LOOP_END(env, Step(Instr.LOOP_END, 3))
    assert 3 == env.ip

def testWriteFailure():
    out = io.BytesIO()
    out.close()
    env = createEnv(None, out=out)
    try:
        _OUTPUT(env, Step(Instr.OUTPUT))
        assert False
    except RunIoError as err:
        assert isinstance(err.__cause__, ValueError)
