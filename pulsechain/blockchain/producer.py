"""
Block Producer

Turns submitter input into a candidate block extending a given tip.
Input is parsed before anything is built; a block is never constructed
from unparsed text.
"""

import re
from typing import Any, Callable, Optional

from .errors import PayloadParseError
from .ledger import Block, create_block, now_timestamp


Clock = Callable[[], str]

_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")
# Default int() digit limit on current interpreters; older ones have none
MAX_PAYLOAD_DIGITS = 4300


def parse_payload(raw: Any) -> int:
    """
    Parse a submitted reading.

    Args:
        raw: An int, or decimal text such as a line read from a socket

    Returns:
        The reading as an int

    Raises:
        PayloadParseError: If raw is not an integer or integer text
    """
    if isinstance(raw, bool):
        raise PayloadParseError(raw, "is not an integer")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise PayloadParseError(raw, "is not valid text") from e
    if isinstance(raw, str):
        text = raw.strip()
        # int() also accepts "1_000" and non-ASCII digits; readings are plain decimal only
        if _INTEGER_TEXT.fullmatch(text):
            if len(text.lstrip("+-")) > MAX_PAYLOAD_DIGITS:
                raise PayloadParseError(raw, "is too large")
            try:
                return int(text)
            except ValueError as e:
                # sys.set_int_max_str_digits may be set lower still
                raise PayloadParseError(raw, "is too large") from e
        raise PayloadParseError(raw)
    raise PayloadParseError(raw, "is not an integer")


def propose(tip: Block, payload: Any, clock: Optional[Clock] = None) -> Block:
    """
    Build a new block extending tip.

    Args:
        tip: Current last block
        payload: Already-parsed payload
        clock: Timestamp source, defaults to the current local time

    Returns:
        New block with index tip.index + 1 linked to tip.hash
    """
    timestamp = (clock or now_timestamp)()
    return create_block(tip.index + 1, timestamp, payload, tip.hash)
