'''
Command line entry point: `badlopo about | hash | image | serve`.
Every failure is printed as a single line and exits with status 1.
'''
import argparse
import sys
from pathlib import Path

from badlopo.api.config import (
    DEFAULT_ENTRY,
    DEFAULT_MODE,
    DEFAULT_PORT,
    DEFAULT_ROOT,
    ResolutionMode,
    ServeError,
    build_config,
)
from badlopo.api.server import serve
from badlopo.src.conversion.image import ImageError, convert, load_image, parse_format, parse_size
from badlopo.src.hashing.digest import hash_source, parse_algorithm

ABOUT = r"""===== ===== ===== ===== ===== ===== ===== =====
 _                 _  _
| |__    __ _   __| || |  ___   _ __    ___
| '_ \  / _` | / _` || | / _ \ | '_ \  / _ \
| |_) || (_| || (_| || || (_) || |_) || (_) |
|_.__/  \__,_| \__,_||_| \___/ | .__/  \___/
                               |_|

Hashing, image conversion and a static file server.
===== ===== ===== ===== ===== ===== ===== ====="""


def _typed(parse):
    """Adapt a ValueError-raising parser for argparse error reporting."""
    def convert_arg(value):
        try:
            return parse(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(str(e)) from None
    convert_arg.__name__ = parse.__name__
    return convert_arg


def port_number(value: str) -> int:
    port = int(value)
    if not 0 <= port <= 65535:
        raise ValueError(f"invalid port {value} (expected 0-65535)")
    return port


def cmd_about(args) -> int:
    print(ABOUT)
    return 0


def cmd_hash(args) -> int:
    try:
        hex_digest, b64_digest = hash_source(args.source, args.algorithm, raw=args.raw)
    except OSError as e:
        print(f"Error: {e}")
        return 1
    print(f"HEX: {hex_digest}")
    print(f"BASE64: {b64_digest}")
    return 0


def cmd_image(args) -> int:
    source = Path(args.source)
    if not source.is_file():
        print("Invalid source. (not a file)")
        return 1

    try:
        image = load_image(source)
        print(image.describe())
        if args.format is None and (args.size is None or args.size.is_empty):
            return 0
        print("===== =====")
        output = convert(source, image, fmt=args.format, size=args.size)
    except (ImageError, OSError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Image saved to {output}")
    return 0


def cmd_serve(args) -> int:
    try:
        config = build_config(root=args.root, entry=args.entry, port=args.port, mode=args.mode)
        serve(config, log_level=args.log_level)
    except ServeError as e:
        print(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        print("\nStopping server.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="badlopo")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("about", help="Show detailed information about the project.")
    p.set_defaults(func=cmd_about)

    p = sub.add_parser("hash", help="Calculate the hash value of the specified source.")
    p.add_argument("source", help="Source text or source file path to be evaluated.")
    p.add_argument("-a", "--algorithm", required=True, type=_typed(parse_algorithm),
                   help="The hash algorithm to use (md5, sha1, sha224, sha256, sha384, sha512).")
    p.add_argument("-r", "--raw", action="store_true",
                   help="Treat source as a raw string rather than a file path.")
    p.set_defaults(func=cmd_hash)

    p = sub.add_parser("image", help="Image-related processing. (metadata, resizing, format conversion)")
    p.add_argument("source", help="Path to the source image.")
    p.add_argument("-f", "--format", type=_typed(parse_format),
                   help="Target image format. No conversion if omitted.")
    p.add_argument("-s", "--size", type=parse_size,
                   help="Target size as '<width>x<height>'; '<width>x' or 'x<height>' keeps the aspect ratio.")
    p.set_defaults(func=cmd_image)

    p = sub.add_parser("serve", help="Establish a local server to serve static resources.")
    p.add_argument("-r", "--root", default=DEFAULT_ROOT, help="Root directory of the server.")
    p.add_argument("-e", "--entry", default=DEFAULT_ENTRY,
                   help="Entry file, absolute or relative to the root directory.")
    p.add_argument("-p", "--port", default=DEFAULT_PORT, type=_typed(port_number), help="Server port.")
    p.add_argument("-m", "--mode", default=ResolutionMode.parse(DEFAULT_MODE), type=_typed(ResolutionMode.parse),
                   help="Server mode: single, mixed or direct.")
    p.add_argument("--log-level", default="info",
                   choices=["critical", "error", "warning", "info", "debug", "trace"])
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
