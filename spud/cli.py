# spud/cli.py
"""
Convert between JSON and SPUD files.

Usage:
    python -m spud encode records.json records.spud
    python -m spud decode records.spud -o records.json --pretty
    python -m spud decode records.spud --array
    python -m spud inspect records.spud
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .codec import encode_spud
from .decoder import SpudDecoder, scan_roots
from .errors import SpudError
from .header import SPUD_VERSION

logger = logging.getLogger(__name__)


def cmd_encode(args):
    with open(args.input, encoding="utf-8") as fh:
        data = json.load(fh)
    encoded = encode_spud(data)
    Path(args.output).write_bytes(encoded)
    logger.info("wrote %d bytes to %s", len(encoded), args.output)
    print(f"{args.input} -> {args.output} ({len(encoded)} bytes)")


def cmd_decode(args):
    decoder = SpudDecoder.from_path(args.input)
    text = decoder.decode(pretty=args.pretty, want_array=args.array)
    if args.output:
        decoder.build_file(args.output)
        logger.info("wrote %d characters to %s", len(text), args.output)
    else:
        print(text)


def cmd_inspect(args):
    decoder = SpudDecoder.from_path(args.input)
    print(f"Version: {SPUD_VERSION}")
    print(f"Field names: {len(decoder.field_names)}")
    for field_id, name in sorted(decoder.field_names.items()):
        print(f"  0x{field_id:02X}  {name}")
    print(f"Body bytes: {len(decoder.body)}")
    print(f"Root objects: {len(scan_roots(decoder.body))}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="spud",
        description="Convert JSON files to/from the SPUD binary format",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("encode", help="Encode a JSON object (or list of objects) to SPUD")
    p.add_argument('input', help='Input JSON file')
    p.add_argument('output', help='Output .spud file')
    p.set_defaults(func=cmd_encode)

    p = sub.add_parser("decode", help="Decode a SPUD file to JSON")
    p.add_argument('input', help='Input .spud file')
    p.add_argument('-o', '--output', help='Output JSON file (default: stdout)')
    p.add_argument('--pretty', action='store_true', help='Pretty-print JSON output with indentation')
    p.add_argument('--array', action='store_true', help='Always wrap root objects in a JSON array')
    p.set_defaults(func=cmd_decode)

    p = sub.add_parser("inspect", help="Show the header and root count of a SPUD file")
    p.add_argument('input', help='Input .spud file')
    p.set_defaults(func=cmd_inspect)

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        args.func(args)
    except (SpudError, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0
