"""CLI entry point: run `runtyper input.json` or `python -m runtyper input.json`."""

import logging
import sys
from pathlib import Path


def main(argv=None) -> int:
    import argparse
    from .compiler.driver import CompilerDriver
    from .utils.config import TransformOptions
    from .utils.io_utils import write_output_file

    parser = argparse.ArgumentParser(
        prog="runtyper",
        description="Rewrite Flow type annotations in a Babel JSON AST into runtime checks.",
    )
    parser.add_argument("file", type=Path, help="Babel AST (JSON) produced with the flow plugin")
    parser.add_argument("-o", "--output", type=Path, help="Write JavaScript here instead of stdout")
    parser.add_argument("--source", type=Path, help="Original source file, for error snippets")
    parser.add_argument("--library-name", help="Runtime library module (default: flow-runtime)")
    parser.add_argument("--library-id", help="Local name of the runtime library import (default: t)")
    parser.add_argument("--dump-tree", action="store_true", help="Log the tree after each pass")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or args.dump_tree else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = args.file.resolve()
    if not path.exists():
        sys.stderr.write(f"runtyper: error: file not found: {path}\n")
        return 1
    if not path.is_file():
        sys.stderr.write(f"runtyper: error: not a file: {path}\n")
        return 1

    options = TransformOptions(
        library_name=args.library_name,
        library_id=args.library_id,
        dump_tree=args.dump_tree,
    )
    result = CompilerDriver(options).transform_file(path, source_path=args.source)

    if not result.success:
        if result.reporter.has_errors():
            sys.stderr.write(result.reporter.format_all_errors() + "\n")
        else:
            sys.stderr.write("runtyper: transformation failed\n")
        return 1

    if args.output is not None:
        try:
            write_output_file(args.output, result.code)
        except OSError as e:
            sys.stderr.write(f"runtyper: error: could not write output: {e}\n")
            return 1
    else:
        sys.stdout.write(result.code)
    return 0


if __name__ == "__main__":
    sys.exit(main())
