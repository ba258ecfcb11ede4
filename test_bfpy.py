import io
import sys
import time
import unittest

from concurrent.futures import ThreadPoolExecutor

import bfpy
from bfpy import parse, run, execute, RunOptions, Location, ErrorKind
from bfpy import Instr, Step, STR_OPTIONS
from bfpy import UnmatchedBracketError, StepLimitError, MemoryLimitError
from bfpy import MoveOverflowError
from bfpy import RunIoError, CompileError, RunError
from bfpy.__main__ import main

# many programs are from http://brainfuck.org/tests.b by Daniel B Cristofani
HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]>>.>---.+++++++..+++."
    ">>.<-.<.+++.------.--------.>>+.>++.")
HELLO_LOWER = (
    "++++++++[>+++++++++++++>++++<<-]>.---.+++++++..+++.>.<++++++++."
    "--------.+++.------.--------.")
UPPER_ECHO = ",[>++++[<-------->-]<.,]"
IO_TEST = ">,>+++++++++,>+++++++++++[<++++++<++++++<+>>>-]<<.>.<<-.>.>.<<."
OBSCURE = (
    '[]++++++++++[>>+>+>++++++[<<+<+++>>>-]<<<<-]"A*$";@![#>>+<<]>[>>]<<<<'
    '[>++<[-]]>.>.')
# goes to the 30,000th cell exactly
MEM_SIZE = (
    "++++[>++++++<-]>[>+++++>+++++++<<-]>>++++<[[>[[>>+<<-]<]>>>-]>-[>+>+<<-]>]"
    "+++++[>+++++++<<++>-]>.<<.")

UNLIMITED = RunOptions()


def runBytes(code, inp=b'', options=UNLIMITED, debug=False) -> bytes:
    out = io.BytesIO()
    execute(parse(code, debug=debug), options, io.BytesIO(inp), out)
    return out.getvalue()


class TestPrograms(unittest.TestCase):
    def testHelloWorld(self):
        assert "Hello World!\n" == run(HELLO_WORLD)
        assert "hello world" == run(HELLO_LOWER)

    def testUpperEcho(self):
        assert "FOOBAR" == run(UPPER_ECHO, "foobar")
        assert "" == run(UPPER_ECHO)

    def testIo(self):
        assert b"LB\nLB\n" == runBytes(IO_TEST, b"\n")

    def testObscureProblems(self):
        assert "H\n" == run(OBSCURE)

    def testInputEofIsZero(self):
        assert b'\x00' == runBytes("+,.")

    def testTextInputStreamIsNotTruncated(self):
        out = io.BytesIO()
        parse(",[.,]").run(io.StringIO("hé€"), out)
        assert "hé€".encode('utf-8') == out.getvalue()

    def testWrapping(self):
        assert b'\xff' == runBytes("-.")
        assert b'\x05' == runBytes("+++++" + "+" * 256 + ".")
        assert b'\x05' == runBytes("+++++" + "+>+<" * 256 + ".")

    def testDeterministic(self):
        program = parse(UPPER_ECHO)
        results = {program.runStr("deterministic") for _ in range(5)}
        assert {"DETERMINISTIC"} == results

    def testBytesAndStreamSources(self):
        assert "hello world" == run(HELLO_LOWER.encode())
        assert "hello world" == run(io.StringIO(HELLO_LOWER))
        assert "hello world" == run(io.BytesIO(HELLO_LOWER.encode()))


class TestDebug(unittest.TestCase):
    def testDebugChar(self):
        assert "[0,0][0,1][1,0][1,1]" == run("?+?>?+?", debug=True)
        assert "" == run("?+?>?+?")

    def testDebugNegativeAddress(self):
        assert "[-2,0][-2,3][0,0]" == run("<<?+++?>>?", debug=True)

    def testDebugIsNotFolded(self):
        assert 4 == len(parse("+??+", debug=True))
        assert 1 == len(parse("+??+"))


class TestTape(unittest.TestCase):
    def testLeftGrowthIsNotAnError(self):
        assert b'\x01\x02' == runBytes("<<<<<<+.>>>>>>++.")

    def testMemSize(self):
        assert b"#\n" == runBytes(MEM_SIZE, options=RunOptions(maxMemBytes=30000))
        with self.assertRaises(MemoryLimitError) as cm:
            runBytes(MEM_SIZE, options=RunOptions(maxMemBytes=29999))
        assert 29999 == cm.exception.limit
        assert ErrorKind.MEMORY_LIMIT == cm.exception.kind

    def testMemoryLimitLocated(self):
        with self.assertRaises(MemoryLimitError) as cm:
            run("+.\n >>>>", options=RunOptions(maxMemBytes=4))
        err = cm.exception
        assert Location(1, 1) == err.location
        assert b'\x01' == err.output
        assert "run error: memory limit reached (4 bytes) at line 1, column 1" == str(err)

    def testMemoryLimitLeft(self):
        assert b'' == runBytes("<", options=RunOptions(maxMemBytes=2))
        with self.assertRaises(MemoryLimitError):
            runBytes("<<", options=RunOptions(maxMemBytes=2))

    def testGrowingLeftIsAsFastAsRight(self):
        timings = {}
        for code in ["+[<+]", "+[>+]"]:
            start = time.perf_counter()
            with self.assertRaises(MemoryLimitError) as cm:
                run(code)
            timings[code] = time.perf_counter() - start
            assert STR_OPTIONS.maxMemBytes == cm.exception.limit
        # copying the whole tape per cell grown left would be quadratic
        assert timings["+[<+]"] < 3 * timings["+[>+]"] + 1.0


class TestStepLimit(unittest.TestCase):
    def testInfiniteLoop(self):
        with self.assertRaises(StepLimitError) as cm:
            run("+[]", options=RunOptions(maxSteps=1000))
        err = cm.exception
        assert 1000 == err.limit
        assert ErrorKind.STEP_LIMIT == err.kind
        assert Location(0, 2) == err.location
        assert b'' == err.output

    def testExactlyNSteps(self):
        program = parse("+>+")  # three steps
        assert 3 == len(program)
        program.run(io.BytesIO(), io.BytesIO(), RunOptions(maxSteps=3))
        with self.assertRaises(StepLimitError) as cm:
            program.run(io.BytesIO(), io.BytesIO(), RunOptions(maxSteps=2))
        assert Location(0, 2) == cm.exception.location

    def testPartialOutput(self):
        # + [ . ] . ] . ] . ] then the 11th step fails
        with self.assertRaises(StepLimitError) as cm:
            parse("+[.]").runStr(options=RunOptions(maxSteps=10))
        assert b'\x01' * 4 == cm.exception.output
        assert Location(0, 2) == cm.exception.location
        assert "\x01" * 4 == cm.exception.outputStr()

    def testStreamOutputIsNotRetained(self):
        # the caller owns the sink: what was handed to it stays there only
        out = io.BytesIO()
        with self.assertRaises(StepLimitError) as cm:
            parse("+[.]").run(io.BytesIO(), out, RunOptions(maxSteps=10))
        assert b'\x01' * 4 == out.getvalue()
        assert cm.exception.output is None
        assert Location(0, 2) == cm.exception.location

    def testLongStreamRunKeepsNoOutputCopy(self):
        class CountingSink(io.RawIOBase):
            written = 0
            def writable(self): return True
            def write(self, b):
                self.written += len(b)
                return len(b)

        sink = CountingSink()
        with self.assertRaises(StepLimitError) as cm:
            parse("+[.]").run(io.BytesIO(), sink, RunOptions(maxSteps=200000))
        assert 99999 == sink.written
        assert cm.exception.output is None

    def testZeroSteps(self):
        assert "" == run("", options=RunOptions(maxSteps=0))
        with self.assertRaises(StepLimitError):
            run("+", options=RunOptions(maxSteps=0))

    def testStrOptionsAreBounded(self):
        assert STR_OPTIONS.maxSteps < bfpy.UNBOUNDED
        assert STR_OPTIONS.maxMemBytes < bfpy.UNBOUNDED


class FailingSink(io.RawIOBase):
    def __init__(self, okWrites):
        self.okWrites = okWrites

    def writable(self): return True

    def write(self, b):
        if self.okWrites == 0:
            raise OSError("sink is full")
        self.okWrites -= 1
        return len(b)


class FailingSource(io.RawIOBase):
    def readable(self): return True

    def read(self, size=-1):
        raise OSError("source went away")


class TestIoErrors(unittest.TestCase):
    def testSinkFailure(self):
        program = parse("+.+.")
        with self.assertRaises(RunIoError) as cm:
            program.run(io.BytesIO(), FailingSink(1))
        err = cm.exception
        assert ErrorKind.IO == err.kind
        assert err.output is None
        assert Location(0, 3) == err.location
        assert isinstance(err.__cause__, OSError)
        assert "run error: sink is full at line 0, column 3" == str(err)

    def testSourceFailure(self):
        with self.assertRaises(RunIoError) as cm:
            parse(" ,").run(FailingSource(), io.BytesIO())
        assert Location(0, 1) == cm.exception.location

    def testClosedSink(self):
        out = io.BytesIO()
        out.close()
        with self.assertRaises(RunError):
            parse(".").run(io.BytesIO(), out)


class TestCompileErrors(unittest.TestCase):
    def testMissingLeftBracket(self):
        with self.assertRaises(UnmatchedBracketError) as cm:
            parse("+++++[>+++++++>++<<-]>.>.[")
        err = cm.exception
        assert isinstance(err, CompileError)
        assert ErrorKind.UNMATCHED_BRACKET == err.kind
        assert Location(0, 25) == err.location
        assert err.output is None
        assert (
            "parse error: missing matching bracket at line 0, column 25\n"
            "...++<<-]>.>.[\n"
            "             ^") == err.pretty()

    def testMissingRightBracket(self):
        with self.assertRaises(UnmatchedBracketError) as cm:
            parse("+++++[>+++++++>++<<-]>.>.][")
        assert Location(0, 25) == cm.exception.location

    def testErrorsShareSource(self):
        src = "x" * 100 + "]"
        with self.assertRaises(UnmatchedBracketError) as cm:
            parse(src)
        assert src is cm.exception.source

        program = parse("+[]")
        errors = []
        for _ in range(3):
            try:
                program.runStr(options=RunOptions(maxSteps=5))
            except StepLimitError as err:
                errors.append(err)
        assert all(e.source is program.source for e in errors)


class TestProgram(unittest.TestCase):
    def testBracketSymmetry(self):
        for code in [HELLO_WORLD, IO_TEST, OBSCURE, MEM_SIZE, UPPER_ECHO]:
            program = parse(code)
            for i, step in enumerate(program.steps):
                if step.instr is Instr.LOOP_BEGIN:
                    j = step.arg
                    assert i < j
                    assert Step(Instr.LOOP_END, i) == program.steps[j]
                    assert (j, i) == (program.jumps[i], program.jumps[j])
                elif step.instr is Instr.LOOP_END:
                    assert Step(Instr.LOOP_BEGIN, i) == program.steps[step.arg]

    def testToSource(self):
        assert "+[->++<]." == parse("++-[-comment>+ +<]a.").toSource()

    def testConcurrentRuns(self):
        program = parse(UPPER_ECHO)
        words = ["alpha", "beta", "gamma", "delta"] * 8
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(program.runStr, words))
        assert [w.upper() for w in words] == results


def testParseReportsMoveOverflow(monkeypatch):
    # shrink the pointer range so a short run of moves overflows it
    monkeypatch.setattr(bfpy.parser, 'checkedMove',
                        lambda delta: delta if abs(delta) <= 2 else None)
    try:
        parse("+\n>>>")
        assert False
    except MoveOverflowError as err:
        assert isinstance(err, CompileError)
        assert Location(1, 2) == err.location
        assert "+\n>>>" == err.source

def testMainRunsFile(tmp_path, monkeypatch):
    src = tmp_path / 'echo.bf'
    src.write_text(UPPER_ECHO)
    stdout = io.TextIOWrapper(io.BytesIO())
    monkeypatch.setattr(sys, 'stdin', io.TextIOWrapper(io.BytesIO(b'abc')))
    monkeypatch.setattr(sys, 'stdout', stdout)
    assert 0 == main([str(src)])
    assert b'ABC' == stdout.buffer.getvalue()

def testMainReportsErrors(tmp_path, monkeypatch, capsys):
    src = tmp_path / 'loop.bf'
    src.write_text("+\n[]")
    stdout = io.TextIOWrapper(io.BytesIO())
    monkeypatch.setattr(sys, 'stdin', io.TextIOWrapper(io.BytesIO()))
    monkeypatch.setattr(sys, 'stdout', stdout)
    assert 1 == main([str(src), '--max-steps', '50'])
    err = capsys.readouterr().err
    assert "step limit reached (50) at line 1, column 1" in err
    assert "[]\n ^" in err
