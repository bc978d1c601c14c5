"""
Identifier generation for records stored without a caller-supplied id.
"""

import random
from typing import Optional

# Process-wide default source. Not cryptographic: uniqueness is probabilistic.
_default_rng = random.Random()


def uuid4_str(rng: Optional[random.Random] = None) -> str:
    """Return a random UUID v4 string (8-4-4-4-12 lowercase hex)."""
    source = rng if rng is not None else _default_rng
    buf = bytearray(source.getrandbits(8) for _ in range(16))

    buf[6] = (buf[6] & 0x0F) | 0x40  # version 4
    buf[8] = (buf[8] & 0x3F) | 0x80  # RFC 4122 variant

    hex_str = buf.hex()
    return f"{hex_str[:8]}-{hex_str[8:12]}-{hex_str[12:16]}-{hex_str[16:20]}-{hex_str[20:]}"
