"""
Immediate field checks and the LUI/LLI split.

RISC-V I-type instructions carry a 12-bit signed immediate and U-type
instructions a 20-bit one placed at bits 12-31. A 32-bit constant is built
from one of each.
"""

from .errors import ConstantTooLarge

IMM12 = 12
IMM20 = 20
IMM32 = 32

_LOWER12_MASK = 0xFFF
_UPPER20_MASK = 0xFFFFF
_BIT11 = 0x800


def is_int(width: int, value: int) -> bool:
    """Check that value is representable as a width-bit two's complement integer."""
    assert 0 < width <= 64
    return -(1 << (width - 1)) <= value < (1 << (width - 1))


def is_uint(width: int, value: int) -> bool:
    """Check that value is representable as a width-bit unsigned integer."""
    assert 0 < width <= 64
    return 0 <= value < (1 << width)


def split_hi_lo(value: int) -> tuple[int, int]:
    """Split a 32-bit signed value into (upper20, lower12) fields.

    The lower field is the raw low 12 bits. The upper field is rounded on
    bit 11: when bit 11 is clear the upper 20 bits are bumped by one,
    otherwise they are taken as-is.

    >>> split_hi_lo(5000)
    (2, 904)
    """
    if not is_int(IMM32, value):
        raise ConstantTooLarge(
            f"constant {value} does not fit a 32-bit signed immediate pair"
        )
    if value & _BIT11:
        upper20 = (value >> 12) & _UPPER20_MASK
    else:
        upper20 = ((value >> 12) + 1) & _UPPER20_MASK
    lower12 = value & _LOWER12_MASK
    return upper20, lower12
