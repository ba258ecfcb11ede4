# The execution engine.
#
# A Program is a flat tuple of Steps with every loop already paired up by the
# parser. Running it is a single loop over an instruction pointer: count the
# step, check the limit, dispatch through INSTR_ACTIONS, advance.
#
# All per-run state lives in a RunEnv that is created fresh for every call,
# so any number of executions of one Program can run side by side.

from .imports import *
from .env import RunEnv, RunOptions, STR_OPTIONS, createEnv
from .actions import INSTR_ACTIONS
from .error import RunError, StepLimitError

log = logging.getLogger(__name__)

def runLoop(env: RunEnv):
    steps = env.program.steps
    end = len(steps)
    maxSteps = env.options.maxSteps
    actions = INSTR_ACTIONS

    while env.ip < end:
        env.stepCount += 1
        if env.stepCount > maxSteps:
            raise StepLimitError(limit=maxSteps)
        step = steps[env.ip]
        actions[step.instr](env, step)
        env.ip += 1


def execute(program, options: RunOptions, inp, out):
    """Run program reading single bytes from inp and writing to out.

    Returns None on success. Every failure raises a RunError located at the
    step that failed (or would have run next). Output already written stays
    in out only: the engine keeps no copy of it.
    """
    env = createEnv(program, options, inp, out)
    log.debug("running %r with %s", program, env.options)
    try:
        runLoop(env)
    except RunError as err:
        log.debug("run aborted after %d steps: %s", env.stepCount, err)
        err.located(env.location(), program.source)
        raise
    log.debug("run finished after %d steps, tape length %d",
              env.stepCount, len(env.tape))


def runStr(program, inp: str = "", options: RunOptions = STR_OPTIONS) -> str:
    """Run program on a string and return its output as a string.

    Defaults to STR_OPTIONS rather than unbounded limits. On failure the
    error carries the output produced before it.
    """
    out = io.BytesIO()
    try:
        execute(program, options, io.BytesIO(inp.encode('utf-8')), out)
    except RunError as err:
        err.output = out.getvalue()
        raise
    return out.getvalue().decode('utf-8', errors='replace')
