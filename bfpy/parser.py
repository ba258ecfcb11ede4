# ########################################
# Parser
#
# Compiles source text into a Program in a single pass.
#
# The lexer is a tiny PEG grammar: a program is a sequence of tokens, each
# either one significant character or a run of anything else. Walking the
# parse tree left to right gives us every significant character together with
# its (line, column).
#
# The compiler then folds runs of +- and <> into a single step as they are
# seen, and pairs brackets with an explicit stack (no recursion, so nesting
# depth is only bounded by memory).

import re

from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from .imports import *
from .instr import Instr, Step, SIGNIFICANT, DEBUG_SIGNIFICANT
from .instr import wrapAdd, checkedMove
from .error import Location
from .error import UnmatchedBracketError, MoveOverflowError, CompileIoError
from .program import Program

log = logging.getLogger(__name__)

GRAMMAR_TXT = r'''
program = token*
token   = op / inert
op      = ~r"[{chars}]"
inert   = ~r"[^{chars}]+"
'''

def getGrammar(debug=False) -> Grammar:
    chars = DEBUG_SIGNIFICANT if debug else SIGNIFICANT
    return Grammar(GRAMMAR_TXT.format(chars=re.escape(chars)))

GRAMMARS = {False: getGrammar(False), True: getGrammar(True)}


################################
# Lexer

@dataclass(frozen=True)
class Token:
    char: str
    loc: Location


class Lexer(NodeVisitor):
    """Turns the parse tree into Tokens, tracking line and column.

    Columns count characters, not bytes. Inert runs produce no token but
    still move the location forward.
    """
    def __init__(self):
        self.line = 0
        self.col = 0

    def visit_program(self, node, visited):
        return [tok for tok in visited if tok is not None]

    def visit_token(self, node, visited):
        return visited[0]

    def visit_op(self, node, visited):
        tok = Token(node.text, Location(self.line, self.col))
        self.col += 1
        return tok

    def visit_inert(self, node, visited):
        text = node.text
        newlines = text.count('\n')
        if newlines:
            self.line += newlines
            self.col = len(text) - text.rfind('\n') - 1
        else:
            self.col += len(text)
        return None

    def generic_visit(self, node, visited):
        return visited or node


def tokenize(text: str, debug=False) -> List[Token]:
    return Lexer().visit(GRAMMARS[debug].parse(text))


def readSource(source) -> str:
    """Accept str, bytes or a readable (binary or text) stream."""
    if hasattr(source, 'read'):
        try:
            source = source.read()
        except (OSError, ValueError) as err:
            raise CompileIoError(err) from err
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = bytes(source).decode('utf-8', errors='replace')
    return source


################################
# Compiler

def foldStep(prev: Step, delta: int, loc: Location, source: str) -> Step:
    """Merge delta into the previous ADD or MOVE step."""
    if prev.instr is Instr.ADD:
        return Step(Instr.ADD, wrapAdd(prev.arg + delta))
    arg = checkedMove(prev.arg + delta)
    if arg is None:
        raise MoveOverflowError(loc, source)
    return Step(Instr.MOVE, arg)


def parse(source, debug=False) -> Program:
    """Compile source into a Program.

    With debug, '?' is the debug instruction; otherwise it is inert like any
    other character. Raises a CompileError:

    - UnmatchedBracketError for a [ or ] without a partner
    - MoveOverflowError when a run of < or > sums past the platform
      pointer range
    - CompileIoError when the source stream cannot be read
    """
    text = readSource(source)
    steps: List[Step] = []
    locations: List[Location] = []
    jumps: Dict[int, int] = {}
    opens: List[Tuple[int, Location]] = []  # unmatched '[': (index, loc)

    for tok in tokenize(text, debug):
        instr, delta = Instr.fromChar(tok.char, debug)
        if instr.isFolded() and steps and steps[-1].instr is instr:
            # the run keeps the location of its first character
            steps[-1] = foldStep(steps[-1], delta, tok.loc, text)
            continue

        index = len(steps)
        if instr is Instr.LOOP_BEGIN:
            opens.append((index, tok.loc))
        elif instr is Instr.LOOP_END:
            if not opens:
                raise UnmatchedBracketError(tok.loc, text)
            begin, _ = opens.pop()
            steps[begin] = Step(Instr.LOOP_BEGIN, index)
            jumps[begin] = index
            jumps[index] = begin
            delta = begin
        steps.append(Step(instr, delta))
        locations.append(tok.loc)

    if opens:
        # report the earliest one
        raise UnmatchedBracketError(opens[0][1], text)

    log.debug("compiled %d steps (%d loops) from %d characters",
              len(steps), len(jumps) // 2, len(text))
    return Program.new(steps, jumps, locations, text, debug=debug)


def testTokenize():
    toks = tokenize("a+\n bc[?]\n\n.")
    assert ['+', '[', ']', '.'] == [t.char for t in toks]
    assert [(0, 1), (1, 3), (1, 5), (3, 0)] == [
        (t.loc.line, t.loc.col) for t in toks]

    toks = tokenize("?x?", debug=True)
    assert [(0, 0), (0, 2)] == [(t.loc.line, t.loc.col) for t in toks]
    assert [] == tokenize("")

def testTokenizeUnicode():
    # columns are characters, not bytes
    toks = tokenize("\u00e9\u20ac+")
    assert Location(0, 2) == toks[0].loc

def testFold():
    p = parse("+++--- >><<< + - a ,.")
    assert [Step(Instr.ADD, 0), Step(Instr.MOVE, -1), Step(Instr.ADD, 0),
            Step(Instr.INPUT), Step(Instr.OUTPUT)] == list(p.steps)
    assert [Location(0, 0), Location(0, 7), Location(0, 13),
            Location(0, 19), Location(0, 20)] == list(p.locations)

def testFoldWraps():
    p = parse("+" * 300)
    assert 1 == len(p)
    assert wrapAdd(300) == p.steps[0].arg == 44
    p = parse("-" * 129)
    assert 127 == p.steps[0].arg

def testFoldStopsAtLoops():
    p = parse("++[++]++")
    assert "++[++]++" == p.toSource()
    assert 5 == len(p)

def testBracketPosition():
    p = parse("[>>>[><+_]][]")
    assert {0: 6, 6: 0, 2: 5, 5: 2, 7: 8, 8: 7} == dict(p.jumps)
    assert Step(Instr.MOVE, 0) == p.steps[3]
    for i, step in enumerate(p.steps):
        if step.instr is Instr.LOOP_BEGIN:
            assert i < step.arg
            assert Step(Instr.LOOP_END, i) == p.steps[step.arg]

def testUnmatchedOpen():
    try:
        parse("+++++[>+++++++>++<<-]>.>.[")
        assert False
    except UnmatchedBracketError as err:
        assert Location(0, 25) == err.location

    # the earliest open bracket is reported
    try:
        parse("+\n [[ [ ]")
        assert False
    except UnmatchedBracketError as err:
        assert Location(1, 1) == err.location

def testUnmatchedClose():
    try:
        parse("+++++[>+++++++>++<<-]>.>.][")
        assert False
    except UnmatchedBracketError as err:
        assert Location(0, 25) == err.location
        assert "+++++[>+++++++>++<<-]>.>.][" == err.source

def testMoveOverflow():
    prev = Step(Instr.MOVE, ISIZE_MAX)
    try:
        foldStep(prev, 1, Location(0, 3), ">>>>")
        assert False
    except MoveOverflowError as err:
        assert Location(0, 3) == err.location
    assert Step(Instr.MOVE, ISIZE_MAX - 1) == foldStep(
        prev, -1, Location(0, 3), ">>><")

def testReadSource():
    assert "+." == readSource(b"+.")
    assert "+." == readSource(io.BytesIO(b"+."))
    assert "+." == readSource(io.StringIO("+."))
    assert "\ufffd+" == readSource(b"\xff+")

    class Broken(io.RawIOBase):
        def read(self, size=-1): raise OSError("disk on fire")
    try:
        parse(Broken())
        assert False
    except CompileIoError as err:
        assert "disk on fire" in str(err)
        assert isinstance(err.__cause__, OSError)
