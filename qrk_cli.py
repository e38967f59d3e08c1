"""
QRKit CLI — Generate & Scan from the Command Line
==================================================

  qrkit encode TEXT [-o out.png] [--ec M] [--fg #1f2937] [--bg #ffffff]
                    [--size 300] [--margin 2] [--min-version 1]
  qrkit decode IMAGE
  qrkit history [--clear]

Without -o, encode prints a text preview of the symbol. --history FILE
records generated and scanned payloads (last 10) in a JSON file.
Codec errors are logged and exit with status 1.
"""

import argparse
import logging
import sys
from typing import List, Optional

from qrk_decoder import QRKitDecoder
from qrk_encoder import QRKitEncoder, StyleConfig
from qrk_history import HistoryStore
from qrk_types import MIN_VERSION, MAX_VERSION, QRKitError

logger = logging.getLogger('qrkit')


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='qrkit',
        description="QR code generator and scanner",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument('-v', '--verbose', action='store_true', help="debug logging")
    parser.add_argument('--history', metavar='FILE', default=None,
                        help="JSON file keeping the most recent results")
    sub = parser.add_subparsers(dest='command', required=True)

    defaults = StyleConfig()
    enc = sub.add_parser('encode', help="generate a QR code",
                         formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    enc.add_argument('text')
    enc.add_argument('-o', '--output', default=None, help="PNG path; omit for a text preview")
    enc.add_argument('--ec', default='M', choices=['L', 'M', 'Q', 'H'])
    enc.add_argument('--fg', default=defaults.fg)
    enc.add_argument('--bg', default=defaults.bg)
    enc.add_argument('--size', type=int, default=defaults.size, help="image width in pixels")
    enc.add_argument('--margin', type=int, default=defaults.margin, help="quiet zone in modules")
    enc.add_argument('--min-version', type=int, default=MIN_VERSION, metavar='N',
                     choices=range(MIN_VERSION, MAX_VERSION + 1),
                     help=f"smallest version to use ({MIN_VERSION}-{MAX_VERSION})")

    dec = sub.add_parser('decode', help="scan a QR code image")
    dec.add_argument('image')
    dec.add_argument('--encoding', default='utf-8')

    hist = sub.add_parser('history', help="list recent results")
    hist.add_argument('--clear', action='store_true')
    return parser


def _cmd_encode(options: argparse.Namespace, history: Optional[HistoryStore]) -> int:
    style = StyleConfig(fg=options.fg, bg=options.bg, size=options.size,
                        margin=options.margin, ec_level=options.ec).validated()
    matrix = QRKitEncoder(ec_level=style.ec_level).encode(options.text,
                                                         min_version=options.min_version)
    if options.output:
        style.render(matrix).save(options.output)
        print(f"Wrote {options.output} (version {matrix.version}-{matrix.ec_level.name}, "
              f"mask {matrix.mask}, {style.size}x{style.size} px)")
    else:
        print(matrix.to_text(border=style.margin))
        print(f"version {matrix.version}-{matrix.ec_level.name}, mask {matrix.mask}")
    if history is not None:
        history.add(options.text, image_ref=options.output)
    return 0


def _cmd_decode(options: argparse.Namespace, history: Optional[HistoryStore]) -> int:
    result = QRKitDecoder(encoding=options.encoding).decode_file(options.image)
    print(result.text)
    logger.info("version %d-%s, mask %d, %d codeword(s) corrected",
                result.version, result.ec_level.name, result.mask, result.errors_corrected)
    if history is not None:
        history.add(result.text, image_ref=options.image)
    return 0


def _cmd_history(options: argparse.Namespace, history: Optional[HistoryStore]) -> int:
    if history is None:
        logger.error("history requires --history FILE")
        return 2
    if options.clear:
        history.clear()
        print("History cleared")
        return 0
    for entry in history:
        ref = f"  [{entry.image_ref}]" if entry.image_ref else ""
        print(f"{entry.timestamp:%Y-%m-%d %H:%M:%S}  {entry.input_text}{ref}")
    return 0


COMMANDS = {
    'encode': _cmd_encode,
    'decode': _cmd_decode,
    'history': _cmd_history,
}


def main(argv: Optional[List[str]] = None) -> int:
    options = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )
    logger.setLevel(logging.DEBUG if options.verbose else logging.INFO)

    history = None
    try:
        if options.history:
            history = HistoryStore.load(options.history)
        status = COMMANDS[options.command](options, history)
    except QRKitError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    except OSError as e:
        logger.error("%s", e)
        return 1

    if history is not None and status == 0:
        history.save(options.history)
    return status


if __name__ == '__main__':
    sys.exit(main())
