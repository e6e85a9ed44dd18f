"""CLI entry point: run `scopejs file.js` or `python -m scopejs file.js`."""

import sys
from pathlib import Path


def main(argv=None) -> int:
    import argparse
    import logging
    from .context import Context
    from .errors import JSSyntaxError

    parser = argparse.ArgumentParser(prog="scopejs", description="Run a JavaScript snippet and print its log.")
    parser.add_argument("file", help="Path to source file, or - for standard input")
    parser.add_argument("--max-stack-depth", type=int, default=1000,
                        help="Maximum call stack depth, global included (default: 1000)")
    parser.add_argument("--legacy-globals", action="store_true",
                        help="Assignment to an undeclared name creates a global")
    parser.add_argument("--time-limit", type=float, default=None, help="Execution time limit in seconds")
    parser.add_argument("--trace", action="store_true", help="Print call and return events to stderr")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    if args.max_stack_depth < 1:
        sys.stderr.write("scopejs: error: --max-stack-depth must be at least 1\n")
        return 2

    if args.file == "-":
        source = sys.stdin.read()
    else:
        path = Path(args.file).resolve()
        if not path.is_file():
            sys.stderr.write(f"scopejs: error: file not found: {path}\n")
            return 1
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"scopejs: error: could not read file: {e}\n")
            return 1

    ctx = Context(
        max_stack_depth=args.max_stack_depth,
        legacy_implicit_globals=args.legacy_globals,
        time_limit=args.time_limit,
        trace_calls=args.trace,
        echo=True,
    )
    try:
        result = ctx.run(source)
    except JSSyntaxError as e:
        sys.stderr.write(f"{e.kind}: {e.message}\n")
        return 1

    if args.trace:
        for event in result.calls:
            sys.stderr.write(f"{'  ' * (event.depth - 1)}{event.kind} {event.name}\n")

    if result.error is not None:
        sys.stderr.write(f"{result.error.kind}: {result.error.message}\n")
        trace = result.error.format_trace()
        if trace:
            sys.stderr.write(trace + "\n")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
