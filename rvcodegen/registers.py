"""
RISC-V registers and register classes.

Register ids follow the usual backend numbering: 0 is "no register",
physical registers X0..X31 are 1..32 and virtual registers start at
VIRTUAL_REGISTER_BASE.
"""

from dataclasses import dataclass

NO_REGISTER = 0
NUM_PHYS_REGS = 32
VIRTUAL_REGISTER_BASE = 1 << 16


def phys_reg(n: int) -> int:
    """Register id of physical register xN."""
    assert 0 <= n < NUM_PHYS_REGS, f"x{n} is not a RISC-V register"
    return n + 1


X0 = ZERO = phys_reg(0)
RA = phys_reg(1)
SP = phys_reg(2)
GP = phys_reg(3)
TP = phys_reg(4)
FP = phys_reg(8)

_ABI_NAMES = {ZERO: "zero", RA: "ra", SP: "sp", GP: "gp", TP: "tp", FP: "fp"}


def is_physical(reg: int) -> bool:
    return 0 < reg <= NUM_PHYS_REGS


def is_virtual(reg: int) -> bool:
    return reg >= VIRTUAL_REGISTER_BASE


def reg_name(reg: int) -> str:
    """Assembly-style name: zero/sp/... for ABI registers, xN, %vN or $noreg."""
    if reg == NO_REGISTER:
        return "$noreg"
    if is_virtual(reg):
        return f"%v{reg - VIRTUAL_REGISTER_BASE}"
    if reg in _ABI_NAMES:
        return _ABI_NAMES[reg]
    return f"x{reg - 1}"


@dataclass(frozen=True)
class RegisterClass:
    """A named set of physical registers with a common width."""
    name: str
    width: int
    regs: frozenset[int]

    def contains(self, *regs: int) -> bool:
        """True if every given register belongs to this class."""
        return all(r in self.regs for r in regs)

    def __repr__(self):
        return f"RegisterClass({self.name})"


_ALL = frozenset(phys_reg(n) for n in range(NUM_PHYS_REGS))

GR32 = RegisterClass("GR32", 32, _ALL)
# Address registers exclude x0: using zero as a base means "no base".
ADDR32 = RegisterClass("ADDR32", 32, _ALL - {ZERO})
GR64 = RegisterClass("GR64", 64, _ALL)
