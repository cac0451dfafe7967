"""grub-pbkdf2 command line."""
import re
import sys
import logging
import argparse
from typing import Optional

from pydantic import ValidationError

from .version import __prog__, __title__, __version__
from .credential import CredentialError, CredentialPipeline, DerivationConfig

logger = logging.getLogger("grub_pbkdf2")

_OCTAL = re.compile(r"^0[0-7]+$")


def parse_number(value: str) -> int:
    """Parse an unsigned number with C prefixes: 0x.. hex, 0.. octal, decimal."""
    text = value.strip()
    try:
        if _OCTAL.match(text):
            return int(text, 8)
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None


def create_argument_parser() -> argparse.ArgumentParser:
    """Create argument parser"""
    parser = argparse.ArgumentParser(
        prog=__prog__,
        description="Generate a grub.pbkdf2.sha512 password token.",
    )
    parser.add_argument(
        '-c', '--iteration-count', '--iteration_count',
        dest='iterations', metavar='NUMBER', type=parse_number, default=None,
        help='Number of PBKDF2 iterations (default: 10000)',
    )
    parser.add_argument(
        '-l', '--buflen',
        dest='buflen', metavar='NUMBER', type=parse_number, default=None,
        help='Length of generated hash (default: 64)',
    )
    parser.add_argument(
        '-s', '--saltlen', '--salt',
        dest='saltlen', metavar='NUMBER', type=parse_number, default=None,
        help='Length of salt (default: 64)',
    )
    parser.add_argument(
        '-r', '--random-device',
        dest='random_device', metavar='PATH', default=None,
        help='Read the salt from this device instead of the OS random generator',
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='Log debug information to standard error',
    )
    parser.add_argument(
        '-V', '--version', action='version',
        version=f'{__prog__} ({__title__}) {__version__}',
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main"""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(name)s: %(levelname)s: %(message)s',
        stream=sys.stderr,
    )

    try:
        config = DerivationConfig.from_env(
            iterations=args.iterations,
            buflen=args.buflen,
            saltlen=args.saltlen,
            random_device=args.random_device,
        )
    except ValidationError as err:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in err.errors()
        )
        parser.error(problems)

    pipeline = CredentialPipeline(config)
    try:
        pipeline.run(sys.stdout.buffer)
    except CredentialError as err:
        print(f"{parser.prog}: error: {err}", file=sys.stderr)
        return 1
    return 0
