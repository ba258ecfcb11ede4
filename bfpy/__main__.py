import argparse
import logging
import sys

from . import parse, BfError, RunOptions, UNBOUNDED

def main(argv=None):
    ap = argparse.ArgumentParser(
        prog='bfpy', description="Compile and run a program on stdin/stdout.")
    ap.add_argument('source', type=argparse.FileType('rb'),
                    help="source file, or - to read it from stdin (the "
                         "program then sees an empty input)")
    ap.add_argument('--debug', action='store_true',
                    help="enable the ? debug instruction")
    ap.add_argument('--max-steps', type=int, default=UNBOUNDED)
    ap.add_argument('--max-mem', type=int, default=UNBOUNDED,
                    help="maximum tape length in bytes")
    ap.add_argument('-v', '--verbose', action='store_true')
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(name)s: %(message)s')

    try:
        program = parse(args.source, debug=args.debug)
        if args.source is not sys.stdin.buffer:
            args.source.close()
        program.run(sys.stdin.buffer, sys.stdout.buffer, RunOptions(
            maxMemBytes=args.max_mem, maxSteps=args.max_steps))
    except BfError as err:
        sys.stdout.flush()
        print(err.pretty(), file=sys.stderr)
        return 1
    sys.stdout.flush()
    return 0

if __name__ == '__main__':
    sys.exit(main())
