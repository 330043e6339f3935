"""
MIR (Machine IR) - RISC-V Machine Instructions

The Machine IR is the representation the instruction-info layer reads and
rewrites. A MachineFunction owns its blocks in layout order, each
MachineBasicBlock owns a doubly linked list of MachineInst nodes, and each
instruction is an opcode plus an ordered list of operands.

Capabilities of an opcode (branch, terminator, simple spill load/store, ...)
come from the static OPCODE_DESCS table rather than from the instruction
object, so every instruction is the same plain record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Union

from .registers import (
    GR32,
    GR64,
    NO_REGISTER,
    VIRTUAL_REGISTER_BASE,
    RegisterClass,
    reg_name,
)


class Opcode(Enum):
    """RISC-V opcodes known to the backend."""
    # ALU
    ADD = "add"
    ADDI = "addi"
    LUI = "lui"
    LLI = "lli"

    # Load / store
    LW = "lw"
    SW = "sw"

    # Jumps and calls
    J = "j"
    JAL = "jal"
    JALR = "jalr"
    RET = "ret"

    # Conditional branches
    BEQ = "beq"
    BNE = "bne"
    BLT = "blt"
    BLTU = "bltu"
    BGE = "bge"
    BGEU = "bgeu"

    # Synthesized conditional branches
    BGT = "bgt"
    BGTU = "bgtu"
    BLE = "ble"
    BLEU = "bleu"

    # Pseudo-op
    DBG_VALUE = "dbg_value"


@dataclass(frozen=True)
class OpcodeDesc:
    """Static properties of an opcode."""
    is_branch: bool = False
    is_terminator: bool = False
    is_call: bool = False
    simple_load: bool = False
    simple_store: bool = False
    is_debug: bool = False


_ALU = OpcodeDesc()
_COND_BRANCH = OpcodeDesc(is_branch=True, is_terminator=True)

OPCODE_DESCS: dict[Opcode, OpcodeDesc] = {
    Opcode.ADD: _ALU,
    Opcode.ADDI: _ALU,
    Opcode.LUI: _ALU,
    Opcode.LLI: _ALU,
    Opcode.LW: OpcodeDesc(simple_load=True),
    Opcode.SW: OpcodeDesc(simple_store=True),
    Opcode.J: OpcodeDesc(is_branch=True, is_terminator=True),
    Opcode.JAL: OpcodeDesc(is_call=True),
    Opcode.JALR: OpcodeDesc(is_branch=True, is_terminator=True),
    Opcode.RET: OpcodeDesc(is_terminator=True),
    Opcode.BEQ: _COND_BRANCH,
    Opcode.BNE: _COND_BRANCH,
    Opcode.BLT: _COND_BRANCH,
    Opcode.BLTU: _COND_BRANCH,
    Opcode.BGE: _COND_BRANCH,
    Opcode.BGEU: _COND_BRANCH,
    Opcode.BGT: _COND_BRANCH,
    Opcode.BGTU: _COND_BRANCH,
    Opcode.BLE: _COND_BRANCH,
    Opcode.BLEU: _COND_BRANCH,
    Opcode.DBG_VALUE: OpcodeDesc(is_debug=True),
}


# ---------------------------------------------------------------------------
# Operands
# ---------------------------------------------------------------------------

@dataclass
class RegOperand:
    reg: int
    is_def: bool = False
    is_kill: bool = False

    def __repr__(self):
        flags = ""
        if self.is_def:
            flags += "<def>"
        if self.is_kill:
            flags += "<kill>"
        return f"{reg_name(self.reg)}{flags}"


@dataclass
class ImmOperand:
    """Immediate operand. The payload may be rewritten in place."""
    imm: int

    def __repr__(self):
        return str(self.imm)


@dataclass(frozen=True)
class FrameIndexOperand:
    index: int

    def __repr__(self):
        return f"<fi#{self.index}>"


@dataclass(frozen=True)
class MBBOperand:
    block: "MachineBasicBlock"

    def __repr__(self):
        return f"<bb:{self.block.name}>"


Operand = Union[RegOperand, ImmOperand, FrameIndexOperand, MBBOperand]


@dataclass(frozen=True)
class DebugLoc:
    """Source location attached to an instruction."""
    line: int = 0
    col: int = 0


# ---------------------------------------------------------------------------
# Instructions and blocks
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class MachineInst:
    """A single machine instruction.

    Instructions are linked nodes: `parent`, `prev` and `next` are maintained
    by the owning block, and erasing a node leaves its neighbours valid.
    """
    opcode: Opcode
    operands: list[Operand] = field(default_factory=list)
    dl: DebugLoc = field(default_factory=DebugLoc)
    parent: Optional["MachineBasicBlock"] = field(default=None, repr=False)
    prev: Optional["MachineInst"] = field(default=None, repr=False)
    next: Optional["MachineInst"] = field(default=None, repr=False)

    @property
    def desc(self) -> OpcodeDesc:
        return OPCODE_DESCS[self.opcode]

    def is_terminator(self) -> bool:
        return self.desc.is_terminator

    def is_branch(self) -> bool:
        return self.desc.is_branch

    def is_debug_value(self) -> bool:
        return self.desc.is_debug

    @property
    def num_operands(self) -> int:
        return len(self.operands)

    def operand(self, idx: int) -> Operand:
        return self.operands[idx]

    def erase_from_parent(self) -> None:
        """Unlink this instruction from its block."""
        assert self.parent is not None, "instruction is not in a block"
        self.parent.erase(self)

    def __repr__(self):
        ops_str = ", ".join(repr(o) for o in self.operands)
        return f"{self.opcode.value} {ops_str}".rstrip()


class MachineBasicBlock:
    """A basic block: an ordered, doubly linked list of instructions."""

    def __init__(self, name: str, parent: Optional["MachineFunction"] = None):
        self.name = name
        self.parent = parent
        self.first: Optional[MachineInst] = None
        self.last: Optional[MachineInst] = None
        self._size = 0

    def __iter__(self) -> Iterator[MachineInst]:
        inst = self.first
        while inst is not None:
            nxt = inst.next
            yield inst
            inst = nxt

    def __reversed__(self) -> Iterator[MachineInst]:
        inst = self.last
        while inst is not None:
            prv = inst.prev
            yield inst
            inst = prv

    def __len__(self) -> int:
        return self._size

    def instructions(self) -> list[MachineInst]:
        return list(self)

    def empty(self) -> bool:
        return self._size == 0

    def insert(self, before: Optional[MachineInst], inst: MachineInst) -> MachineInst:
        """Link inst in front of `before`, or at the end when before is None."""
        assert inst.parent is None, "instruction already belongs to a block"
        inst.parent = self
        if before is None:
            inst.prev = self.last
            inst.next = None
            if self.last is not None:
                self.last.next = inst
            else:
                self.first = inst
            self.last = inst
        else:
            assert before.parent is self, "insertion point is in another block"
            inst.prev = before.prev
            inst.next = before
            if before.prev is not None:
                before.prev.next = inst
            else:
                self.first = inst
            before.prev = inst
        self._size += 1
        return inst

    def append(self, inst: MachineInst) -> MachineInst:
        return self.insert(None, inst)

    def erase(self, inst: MachineInst) -> None:
        assert inst.parent is self, "instruction is not in this block"
        if inst.prev is not None:
            inst.prev.next = inst.next
        else:
            self.first = inst.next
        if inst.next is not None:
            inst.next.prev = inst.prev
        else:
            self.last = inst.prev
        inst.parent = inst.prev = inst.next = None
        self._size -= 1

    def layout_successor(self) -> Optional["MachineBasicBlock"]:
        """The block placed immediately after this one, if any."""
        if self.parent is None:
            return None
        return self.parent.next_block(self)

    def is_layout_successor(self, other: "MachineBasicBlock") -> bool:
        return self.layout_successor() is other

    def __repr__(self):
        return f"MBB({self.name}, {self._size} insts)"


# ---------------------------------------------------------------------------
# Function-level state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Subtarget:
    """Target features that change code generation."""
    is_rv64: bool = False

    @property
    def native_width(self) -> int:
        return 64 if self.is_rv64 else 32

    @property
    def gpr_class(self) -> RegisterClass:
        return GR64 if self.is_rv64 else GR32

    @classmethod
    def from_triple(cls, triple: str) -> "Subtarget":
        """Build a subtarget from a target triple such as riscv64-unknown-elf."""
        arch = triple.split("-", 1)[0]
        if arch not in ("riscv", "riscv32", "riscv64"):
            raise ValueError(f"Not a RISC-V triple: {triple}")
        return cls(is_rv64=(arch == "riscv64"))


@dataclass
class MachineRegisterInfo:
    """Virtual register allocator."""
    vreg_classes: list[RegisterClass] = field(default_factory=list)

    def create_virtual_register(self, rc: RegisterClass) -> int:
        reg = VIRTUAL_REGISTER_BASE + len(self.vreg_classes)
        self.vreg_classes.append(rc)
        return reg

    def get_reg_class(self, reg: int) -> RegisterClass:
        return self.vreg_classes[reg - VIRTUAL_REGISTER_BASE]

    @property
    def num_virtual_regs(self) -> int:
        return len(self.vreg_classes)


@dataclass
class StackObject:
    size: int
    align: int


@dataclass
class MachineFrameInfo:
    """Abstract stack slots. Offsets are assigned later by frame lowering."""
    objects: list[StackObject] = field(default_factory=list)

    def create_stack_object(self, size: int, align: int = 4) -> int:
        self.objects.append(StackObject(size, align))
        return len(self.objects) - 1


class MachineFunction:
    """A machine function: blocks in layout order plus register/frame state."""

    def __init__(self, name: str, subtarget: Optional[Subtarget] = None):
        self.name = name
        self.subtarget = subtarget or Subtarget()
        self.blocks: list[MachineBasicBlock] = []
        self.reg_info = MachineRegisterInfo()
        self.frame_info = MachineFrameInfo()
        # block -> position in self.blocks, rebuilt when the layout changes
        self._layout_index: dict[MachineBasicBlock, int] = {}

    def create_block(self, name: str) -> MachineBasicBlock:
        """Append a new empty block at the end of the layout."""
        block = MachineBasicBlock(name, parent=self)
        self._layout_index[block] = len(self.blocks)
        self.blocks.append(block)
        return block

    def get_block(self, name: str) -> MachineBasicBlock:
        for block in self.blocks:
            if block.name == name:
                return block
        raise KeyError(name)

    def layout_index(self, block: MachineBasicBlock) -> Optional[int]:
        """Position of block in the layout, or None if it is not placed."""
        idx = self._layout_index.get(block)
        if idx is None or idx >= len(self.blocks) or self.blocks[idx] is not block:
            self._layout_index = {b: i for i, b in enumerate(self.blocks)}
            idx = self._layout_index.get(block)
        return idx

    def next_block(self, block: MachineBasicBlock) -> Optional[MachineBasicBlock]:
        idx = self.layout_index(block)
        if idx is None or idx + 1 >= len(self.blocks):
            return None
        return self.blocks[idx + 1]

    def total_instructions(self) -> int:
        return sum(len(block) for block in self.blocks)

    def __repr__(self):
        return f"MFunc({self.name}, {len(self.blocks)} blocks, {self.total_instructions()} insts)"


# ---------------------------------------------------------------------------
# Instruction construction
# ---------------------------------------------------------------------------

class MachineInstrBuilder:
    """Appends operands, in order, to a freshly built instruction."""

    def __init__(self, inst: MachineInst):
        self.inst = inst

    def add_reg(self, reg: int, is_def: bool = False, is_kill: bool = False) -> "MachineInstrBuilder":
        self.inst.operands.append(RegOperand(reg, is_def=is_def, is_kill=is_kill))
        return self

    def add_imm(self, imm: int) -> "MachineInstrBuilder":
        self.inst.operands.append(ImmOperand(imm))
        return self

    def add_frame_index(self, index: int) -> "MachineInstrBuilder":
        self.inst.operands.append(FrameIndexOperand(index))
        return self

    def add_mbb(self, block: MachineBasicBlock) -> "MachineInstrBuilder":
        self.inst.operands.append(MBBOperand(block))
        return self

    def add_frame_reference(self, index: int) -> "MachineInstrBuilder":
        """Address a stack slot: frame index, zero displacement, no index register."""
        return self.add_frame_index(index).add_imm(0).add_reg(NO_REGISTER)


def build_mi(
    block: MachineBasicBlock,
    before: Optional[MachineInst],
    dl: Optional[DebugLoc],
    opcode: Opcode,
    dest: Optional[int] = None,
) -> MachineInstrBuilder:
    """Create an instruction in front of `before` (or at the block end).

    If `dest` is given it becomes the first operand, marked as a def.
    """
    inst = MachineInst(opcode=opcode, dl=dl or DebugLoc())
    block.insert(before, inst)
    builder = MachineInstrBuilder(inst)
    if dest is not None:
        builder.add_reg(dest, is_def=True)
    return builder


def debug_loc_at(before: Optional[MachineInst]) -> DebugLoc:
    """Debug location of the insertion point, or an empty one at the block end."""
    if before is not None:
        return before.dl
    return DebugLoc()
