"""
Condition Code Model

Branch predicates are bitmasks over four bits: equal, less, greater and an
UNSIGNED modifier. Every branch carries one of ten predicate codes, or ANY
for an unconditional transfer.

Only six codes map onto a real RISC-V branch (BEQ, BNE, BLT, BLTU, BGE,
BGEU). GT and LE forms come from the synthesized BGT/BLE pseudos: they can
be classified and inverted, but not inserted.
"""

from enum import IntFlag

from .errors import InvalidCondition


class CondCode(IntFlag):
    """Branch condition bitmask."""
    UNSIGNED = 1
    GT = 2
    LT = 4
    EQ = 8

    LE = EQ | LT
    GE = EQ | GT
    NE = LT | GT
    ANY = EQ | LT | GT | UNSIGNED


EQ = CondCode.EQ
NE = CondCode.NE
LT = CondCode.LT
GE = CondCode.GE
GT = CondCode.GT
LE = CondCode.LE
LTU = CondCode.LT | CondCode.UNSIGNED
GEU = CondCode.GE | CondCode.UNSIGNED
GTU = CondCode.GT | CondCode.UNSIGNED
LEU = CondCode.LE | CondCode.UNSIGNED
ANY = CondCode.ANY

_INVERSE: dict[int, CondCode] = {
    EQ: NE,
    NE: EQ,
    LT: GE,
    GE: LT,
    LTU: GEU,
    GEU: LTU,
    # synthesized
    GT: LE,
    LE: GT,
    GTU: LEU,
    LEU: GTU,
}

PREDICATE_CODES = frozenset(_INVERSE)
NATIVE_CODES = frozenset({EQ, NE, LT, LTU, GE, GEU})

_NAMES: dict[int, str] = {
    EQ: "eq", NE: "ne",
    LT: "lt", LTU: "ltu",
    GE: "ge", GEU: "geu",
    GT: "gt", GTU: "gtu",
    LE: "le", LEU: "leu",
    ANY: "any",
}


def is_valid(code: int) -> bool:
    """True for any member of the closed set, ANY included."""
    return code in PREDICATE_CODES or code == ANY


def is_native(code: int) -> bool:
    """True if a single hardware branch encodes this predicate."""
    return code in NATIVE_CODES


def invert(code: int) -> CondCode:
    """Return the complementary predicate (a < b becomes a >= b)."""
    try:
        return _INVERSE[code]
    except KeyError:
        raise InvalidCondition(
            f"cannot invert condition {cond_name(code)}: not a branch predicate"
        ) from None


def cond_name(code: int) -> str:
    return _NAMES.get(code, f"cc{int(code)}")
