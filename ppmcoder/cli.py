# ppmcoder/cli.py
# Command-line front end: ppmcoder {compress,decompress} INPUT OUTPUT

import argparse
import logging
import os
import sys

from ppmcoder.errors import PPMError
from ppmcoder.ppm import MODEL_ORDER, PPMCompressor

log = logging.getLogger("ppmcoder")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ppmcoder",
        description="PPM-C compression with arithmetic coding")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log coder statistics")
    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (("compress", "compress INPUT into OUTPUT"),
                            ("decompress", "decompress INPUT into OUTPUT")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("input", help="input file")
        cmd.add_argument("output", help="output file")
        cmd.add_argument("--order", type=int, default=MODEL_ORDER,
                         help="context model order, at least -1; must match "
                              "between compress and decompress (default: %(default)s)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")
    if args.order < -1:
        log.error("model order must be at least -1, got %d", args.order)
        return 2

    codec = PPMCompressor(order=args.order)
    output_opened = False
    try:
        with open(args.input, "rb") as inp:
            with open(args.output, "wb") as out:
                output_opened = True
                if args.command == "compress":
                    codec.compress_stream(inp, out)
                else:
                    codec.decompress_stream(inp, out)
    except (PPMError, OSError) as e:
        log.error("%s failed: %s", args.command, e)
        # a partial output is never usable
        if output_opened and os.path.exists(args.output):
            os.remove(args.output)
        return 1

    stats = codec.last_stats
    log.info("%s: %s -> %s (%d symbols, %d bits)", args.command, args.input,
             args.output, stats["symbols"], stats["bits"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
