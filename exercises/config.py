"""
Configuration and argument helpers shared by the command-line tools.

Defaults mirror config/default.yaml; a YAML file passed with --config
overrides them key by key.
"""

import argparse
import copy
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

DEFAULTS: Dict[str, Any] = {
    'primes': {
        'separator': '\n',
    },
    'most_ip': {
        'tiers': 10,
        'encoding': 'utf-8',
    },
}

# 32-bit signed range accepted for integer arguments
INT_MIN = -2**31
INT_MAX = 2**31 - 1

# sign, then 0x/0X/# hex, 0-prefixed octal, or decimal
_INT_LITERAL = re.compile(
    r'^(?P<sign>[+-]?)'
    r'(?:(?:0[xX]|#)(?P<hex>[0-9a-fA-F]+)|0(?P<oct>[0-7]+)|(?P<dec>0|[1-9][0-9]*))$'
)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration, falling back to DEFAULTS.

    Parameters
    ----------
    path : str or Path, optional
        YAML file to merge over the defaults.

    Returns
    -------
    dict
        Nested configuration dict. Always a fresh copy.

    Raises
    ------
    OSError
        If the file cannot be read.
    ValueError
        If the file is not valid YAML or its top level is not a mapping.
    """
    if path is None:
        return copy.deepcopy(DEFAULTS)

    with open(path) as f:
        try:
            loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"invalid config file {path}: {e}") from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ValueError(f"config file {path} must contain a mapping")

    return _merge(DEFAULTS, loaded)


def decode_int(text: str) -> int:
    """
    Parse an integer argument: decimal, 0x/0X/# hexadecimal or 0-prefixed octal.

    Values outside the 32-bit signed range are rejected.

    Used as an argparse ``type=``.
    """
    match = _INT_LITERAL.match(text)
    if match is None:
        raise argparse.ArgumentTypeError(f"invalid integer value: {text!r}")

    if match.group('hex') is not None:
        value = int(match.group('hex'), 16)
    elif match.group('oct') is not None:
        value = int(match.group('oct'), 8)
    else:
        value = int(match.group('dec'))

    value = -value if match.group('sign') == '-' else value
    if not INT_MIN <= value <= INT_MAX:
        raise argparse.ArgumentTypeError(f"integer value out of range: {text!r}")
    return value
