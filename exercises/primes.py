"""
Prime generation utilities and the `primes` command.

Responsibility: prime generation only. No factorization, no I/O beyond
the command-line entry point.

Usage:
    primes 100
    python -m exercises.primes 0x64 --sep ' '
"""

import argparse
import sys
from typing import Iterable, List, Optional

import numpy as np

from .config import decode_int, load_config


def composite_flags_upto(N: int) -> np.ndarray:
    """
    Return boolean array where flags[i] is True iff i is not prime.

    Uses Sieve of Eratosthenes. Indices 0 and 1 are flagged, so the index
    always equals the value it represents.

    Parameters
    ----------
    N : int
        Upper bound (inclusive).

    Returns
    -------
    np.ndarray
        Boolean array of length N+1 (empty if N < 0).
    """
    if N < 0:
        return np.zeros(0, dtype=bool)

    composite = np.zeros(N + 1, dtype=bool)
    composite[:2] = True
    for p in range(2, int(N**0.5) + 1):
        if not composite[p]:
            # multiples below p*p were marked by smaller primes
            composite[p*p::p] = True
    return composite


def prime_flags_upto(N: int) -> np.ndarray:
    """
    Return boolean array where flags[i] is True iff i is prime.

    Parameters
    ----------
    N : int
        Upper bound (inclusive).

    Returns
    -------
    np.ndarray
        Boolean array of length N+1 (empty if N < 0).
    """
    return ~composite_flags_upto(N)


def primes_upto(N: int) -> np.ndarray:
    """
    Return array of all primes <= N, in increasing order.

    Parameters
    ----------
    N : int
        Upper bound (inclusive).

    Returns
    -------
    np.ndarray
        Array of primes (int64). Empty if N < 2.
    """
    if N < 2:
        return np.array([], dtype=np.int64)
    return np.nonzero(prime_flags_upto(N))[0].astype(np.int64)


def format_primes(primes: Iterable[int], separator: str = '\n') -> str:
    """Join primes into printable text."""
    return separator.join(str(p) for p in primes)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='primes',
        description='Print all prime numbers less than or equal to MAX',
        epilog="Negative hex values are read as options; put '--' first, "
               "e.g. primes -- -0x10")
    parser.add_argument('max', type=decode_int,
                        help='Upper bound, decimal, 0x/# hex or 0-prefixed octal')
    parser.add_argument('--sep', type=str, default=None,
                        help='Separator between primes (default: newline)')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to YAML config file')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"primes: {e}", file=sys.stderr)
        return 1

    separator = args.sep if args.sep is not None else config['primes']['separator']

    primes = primes_upto(args.max)
    if len(primes) > 0:
        print(format_primes(primes, separator))
    return 0


if __name__ == '__main__':
    sys.exit(main())
