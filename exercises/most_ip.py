"""
Rank the IPv4 addresses in a log file by number of accesses.

Responsibility: extraction, counting and ranking of the address that
begins each log line. Knows nothing about what the rest of a line means.

Usage:
    most-ip access.log 3
    python -m exercises.most_ip access.log 3 --save ranking.csv
"""

import argparse
import io
import re
import sys
from collections import Counter
from typing import Iterable, Iterator, List, NamedTuple, Optional

import pandas as pd

from .config import decode_int, load_config

# Address must be first on the line with all 4 fields present, followed by
# horizontal whitespace. No IPv6, no octet range check (999.1.1.1 matches).
DOTTED_QUAD = re.compile(
    r'^(?:[0-9]{1,3}\.){3}[0-9]{1,3}'
    r'(?=[ \t\u00a0\u1680\u180e\u2000-\u200a\u202f\u205f\u3000])'
)

COLUMNS = ['address', 'count']


class RankedEntry(NamedTuple):
    """One address and the number of lines it began."""
    address: str
    count: int


def extract_address(line: str) -> Optional[str]:
    """Return the dotted-quad token starting the line, or None."""
    match = DOTTED_QUAD.match(line)
    if match is None:
        return None
    return match.group(0)


def read_lines(path: str, encoding: str = 'utf-8') -> Iterator[str]:
    """
    Yield the lines of a file without their line terminator.

    Parameters
    ----------
    path : str
        File to read, or '-' for standard input.
    encoding : str
        Text encoding of the file. Undecodable bytes are replaced.

    Yields
    ------
    str
        One line at a time.

    Raises
    ------
    OSError
        On the first iteration, if the file cannot be opened.
    """
    if path == '-':
        stream = io.TextIOWrapper(sys.stdin.buffer, encoding=encoding,
                                  errors='replace')
        try:
            for line in stream:
                yield line.rstrip('\n')
        finally:
            # leave sys.stdin's buffer open
            stream.detach()
        return

    with open(path, 'r', encoding=encoding, errors='replace') as f:
        for line in f:
            yield line.rstrip('\n')


def count_addresses(lines: Iterable[str], verbose: bool = False) -> Counter:
    """
    Count occurrences of the leading address of each line.

    Lines without a leading dotted-quad are skipped.

    Parameters
    ----------
    lines : iterable of str
        Log lines.
    verbose : bool
        Print a scan summary to stderr.

    Returns
    -------
    Counter
        Mapping address -> number of lines it began.
    """
    counts = Counter()
    total = 0

    for line in lines:
        total += 1
        address = extract_address(line)
        if address is None:
            continue
        counts[address] += 1

    if verbose:
        matched = sum(counts.values())
        print(f"  Scanned {total:,} lines, {matched:,} with a leading address, "
              f"{len(counts):,} distinct", file=sys.stderr)

    return counts


def rank_counts(counts: Counter) -> pd.DataFrame:
    """
    Order addresses by descending count, then ascending address string.

    The tie-break is lexicographic, not numeric: '10.0.0.10' sorts before
    '10.0.0.9'.

    Parameters
    ----------
    counts : Counter
        Mapping address -> count.

    Returns
    -------
    pd.DataFrame
        Columns 'address' and 'count', one row per distinct address.
    """
    df = pd.DataFrame(list(counts.items()), columns=COLUMNS)
    df = df.astype({'address': str, 'count': 'int64'})
    df = df.sort_values(['count', 'address'], ascending=[False, True],
                        kind='mergesort')
    return df.reset_index(drop=True)


def top_tiers(ranking: pd.DataFrame, tiers: int) -> List[RankedEntry]:
    """
    Select every address within the first `tiers` distinct counts.

    Ties are never split: with tiers=1 and two addresses sharing the
    highest count, both are returned.

    Parameters
    ----------
    ranking : pd.DataFrame
        Output of rank_counts.
    tiers : int
        Number of count tiers to keep. Zero or negative keeps nothing.

    Returns
    -------
    list of RankedEntry
        In ranking order.
    """
    if tiers <= 0 or ranking.empty:
        return []

    tier = ranking['count'].rank(method='dense', ascending=False)
    selected = ranking[tier <= tiers]
    return [RankedEntry(address, int(count))
            for address, count in zip(selected['address'], selected['count'])]


def rank_file(path: str, encoding: str = 'utf-8',
              verbose: bool = False) -> pd.DataFrame:
    """
    Read and count a log file, returning the full ranking.

    Raises
    ------
    OSError
        If the file cannot be read.
    LookupError
        If the encoding is unknown.
    """
    if verbose:
        print(f"Counting addresses in {path}", file=sys.stderr)
    counts = count_addresses(read_lines(path, encoding), verbose=verbose)
    return rank_counts(counts)


def most_ip(path: str, tiers: int, encoding: str = 'utf-8',
            verbose: bool = False) -> List[RankedEntry]:
    """Read, count, rank and cut a log file in one call."""
    return top_tiers(rank_file(path, encoding, verbose), tiers)


def format_entry(entry: RankedEntry) -> str:
    return f"{entry.count} {entry.address}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='most-ip',
        description='Display the top IPv4 addresses in a log file by number of accesses',
        epilog="Negative hex values are read as options; put '--' before "
               "the positional arguments, e.g. most-ip -- access.log -0x1")
    parser.add_argument('file', type=str,
                        help="Log file, or '-' for standard input")
    parser.add_argument('count', type=decode_int, nargs='?', default=None,
                        help='Number of count tiers to print (ties are all printed)')
    parser.add_argument('--encoding', type=str, default=None,
                        help='Text encoding of the log file')
    parser.add_argument('--save', type=str, default=None,
                        help='Also write the full ranking to this CSV file')
    parser.add_argument('--verbose', action='store_true',
                        help='Print a scan summary to stderr')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to YAML config file')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"most-ip: {e}", file=sys.stderr)
        return 1

    tiers = args.count if args.count is not None else config['most_ip']['tiers']
    encoding = args.encoding or config['most_ip']['encoding']

    try:
        ranking = rank_file(args.file, encoding, verbose=args.verbose)
    except (OSError, LookupError) as e:
        print(f"most-ip: {e}", file=sys.stderr)
        return 1

    if args.save:
        try:
            ranking.to_csv(args.save, index=False)
        except OSError as e:
            print(f"most-ip: {e}", file=sys.stderr)
            return 1
        if args.verbose:
            print(f"  Ranking saved to {args.save}", file=sys.stderr)

    for entry in top_tiers(ranking, tiers):
        print(format_entry(entry))
    return 0


if __name__ == '__main__':
    sys.exit(main())
