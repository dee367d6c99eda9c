"""
Duration presets -> absolute lock height.

Explicit heights pass through unchanged; named presets add a fixed number
of blocks (144 per day) to the current chain height.
"""
from __future__ import annotations

import logging
from typing import Dict, Union

from .errors import InvalidParameter

logger = logging.getLogger(__name__)

BLOCKS_PER_DAY = 144
LOCKTIME_THRESHOLD = 500_000_000  # nLockTime values >= this are unix timestamps

PRESETS: Dict[str, int] = {
    '1d': BLOCKS_PER_DAY,
    '1w': 7 * BLOCKS_PER_DAY,
    '2w': 14 * BLOCKS_PER_DAY,
    '1m': 30 * BLOCKS_PER_DAY,
    '3m': 90 * BLOCKS_PER_DAY,
    '6m': 180 * BLOCKS_PER_DAY,
    '1y': 365 * BLOCKS_PER_DAY,
}

ALIASES: Dict[str, str] = {
    'day': '1d',
    'week': '1w',
    'month': '1m',
    'year': '1y',
}


def blocks_for_duration(name: str) -> int:
    key = name.strip().lower()
    key = ALIASES.get(key, key)
    try:
        return PRESETS[key]
    except KeyError:
        raise InvalidParameter(f"unknown duration preset {name!r} (expected one of: {', '.join(PRESETS)})") from None


def resolve_lock_height(spec: Union[int, str], current_height: int) -> int:
    """Resolve an explicit height or a named preset to an absolute lock height.

    Args:
        spec: positive int (or decimal string) height, or a preset name.
        current_height: chain tip height; only used for presets.
    """
    if isinstance(spec, bool):
        raise InvalidParameter("lock height must be an integer or a preset name")
    if isinstance(spec, str) and spec.strip().isdecimal():
        spec = int(spec.strip())
    if isinstance(spec, int):
        height = spec
        if height <= 0:
            raise InvalidParameter(f"lock height must be positive (got {height})")
    elif isinstance(spec, str):
        offset = blocks_for_duration(spec)
        if isinstance(current_height, bool) or not isinstance(current_height, int) or current_height < 0:
            raise InvalidParameter("current_height must be a non-negative integer")
        height = current_height + offset
        logger.debug("duration %s -> +%d blocks from %d", spec, offset, current_height)
    else:
        raise InvalidParameter("lock height must be an integer or a preset name")
    if height >= LOCKTIME_THRESHOLD:
        raise InvalidParameter(f"lock height must be < {LOCKTIME_THRESHOLD} (got {height})")
    return height
