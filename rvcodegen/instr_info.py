"""
RISC-V Instruction Info

Target hooks used by the block-layout, prologue/epilogue and register
allocation passes:

- branch classification and the analyze/remove/insert/reverse branch hooks
- stack-slot load/store recognition
- register copies, spills and reloads
- constant materialization and stack pointer adjustment
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from . import condcodes as cc
from .condcodes import CondCode
from .errors import (
    ConstantTooLarge,
    InvalidBranchShape,
    InvalidCondition,
    InvalidConditionForInsert,
    UnknownBranchOpcode,
    UnsupportedCopy,
    UnsupportedSpillClass,
)
from .immediates import IMM12, IMM20, IMM32, is_int, is_uint, split_hi_lo
from .mir import (
    DebugLoc,
    FrameIndexOperand,
    ImmOperand,
    MachineBasicBlock,
    MachineInst,
    MBBOperand,
    Opcode,
    Operand,
    RegOperand,
    Subtarget,
    build_mi,
    debug_loc_at,
)
from .registers import ADDR32, GR32, NO_REGISTER, ZERO, RegisterClass, reg_name

LOGGER = logging.getLogger("rvcodegen.instr_info")

MAX_COND_COMPONENTS = 4

# opcode -> (condition, index of the target operand)
_BRANCH_TABLE: dict[Opcode, tuple[CondCode, int]] = {
    Opcode.J: (cc.ANY, 0),
    Opcode.JAL: (cc.ANY, 0),
    Opcode.JALR: (cc.ANY, 0),
    Opcode.BEQ: (cc.EQ, 2),
    Opcode.BNE: (cc.NE, 2),
    Opcode.BLT: (cc.LT, 2),
    Opcode.BLTU: (cc.LTU, 2),
    Opcode.BGE: (cc.GE, 2),
    Opcode.BGEU: (cc.GEU, 2),
    # synthesized
    Opcode.BGT: (cc.GT, 2),
    Opcode.BGTU: (cc.GTU, 2),
    Opcode.BLE: (cc.LE, 2),
    Opcode.BLEU: (cc.LEU, 2),
}

_NATIVE_BRANCHES: dict[CondCode, Opcode] = {
    cc.EQ: Opcode.BEQ,
    cc.NE: Opcode.BNE,
    cc.LT: Opcode.BLT,
    cc.LTU: Opcode.BLTU,
    cc.GE: Opcode.BGE,
    cc.GEU: Opcode.BGEU,
}


@dataclass
class BranchCondition:
    """A branch predicate plus the operands it compares (at most 3)."""
    code: CondCode
    operands: list[Operand] = field(default_factory=list)

    def __len__(self) -> int:
        return 1 + len(self.operands)

    def __repr__(self):
        ops = ", ".join(repr(o) for o in self.operands)
        return f"{{{cc.cond_name(self.code)}{', ' + ops if ops else ''}}}"


@dataclass
class BranchAnalysis:
    """Terminator shape of a block.

    true_target is None:   the block falls through.
    cond is None:          true_target is an unconditional destination.
    false_target is None:  the false edge falls through.
    """
    true_target: Optional[MachineBasicBlock] = None
    false_target: Optional[MachineBasicBlock] = None
    cond: Optional[BranchCondition] = None


class RISCVInstrInfo:
    """Instruction hooks for one RISC-V subtarget."""

    def __init__(self, subtarget: Optional[Subtarget] = None):
        self.subtarget = subtarget or Subtarget()

    # ------------------------------------------------------------------
    # Stack slot moves
    # ------------------------------------------------------------------

    @staticmethod
    def _is_simple_move(inst: MachineInst, want_load: bool) -> Optional[tuple[int, int]]:
        desc = inst.desc
        flag = desc.simple_load if want_load else desc.simple_store
        if not flag or inst.num_operands < 4:
            return None
        reg, addr, disp, index = inst.operands[:4]
        if (
            isinstance(reg, RegOperand)
            and isinstance(addr, FrameIndexOperand)
            and isinstance(disp, ImmOperand) and disp.imm == 0
            and isinstance(index, RegOperand) and index.reg == NO_REGISTER
        ):
            return reg.reg, addr.index
        return None

    def is_load_from_stack_slot(self, inst: MachineInst) -> Optional[tuple[int, int]]:
        """(register, frame index) if inst is a plain reload from a stack slot."""
        return self._is_simple_move(inst, want_load=True)

    def is_store_to_stack_slot(self, inst: MachineInst) -> Optional[tuple[int, int]]:
        """(register, frame index) if inst is a plain spill to a stack slot."""
        return self._is_simple_move(inst, want_load=False)

    # ------------------------------------------------------------------
    # Branch analysis
    # ------------------------------------------------------------------

    def classify_branch(self, inst: MachineInst) -> Optional[tuple[CondCode, Operand]]:
        """Return (condition, target operand) for a branch, None otherwise."""
        entry = _BRANCH_TABLE.get(inst.opcode)
        if entry is None:
            if inst.desc.is_branch:
                raise UnknownBranchOpcode(
                    f"unknown branch opcode {inst.opcode.value}: "
                    f"the branch table is out of sync with the opcode table"
                )
            return None
        code, target_idx = entry
        return code, inst.operands[target_idx]

    def analyze_branch(
        self, block: MachineBasicBlock, allow_modify: bool = False
    ) -> Optional[BranchAnalysis]:
        """Work out the terminator shape of block.

        Returns None when the terminators can't be understood (indirect
        branches, returns, conditionals to different destinations). With
        allow_modify, dead code after an unconditional jump is erased and a
        jump to the layout successor is removed.
        """
        result = BranchAnalysis()
        inst = block.last
        while inst is not None:
            prev = inst.prev
            if inst.is_debug_value():
                inst = prev
                continue

            # Working from the bottom, a non-terminator ends the scan.
            if not inst.is_terminator():
                break

            classified = self.classify_branch(inst)
            if classified is None:
                LOGGER.debug("%s: terminator %r is not a branch", block.name, inst)
                return None
            code, target = classified
            if not isinstance(target, MBBOperand):
                LOGGER.debug("%s: indirect branch %r", block.name, inst)
                return None

            if code == cc.ANY:
                if not allow_modify:
                    result.true_target = target.block
                    inst = prev
                    continue

                while inst.next is not None:
                    LOGGER.debug("%s: erasing dead %r", block.name, inst.next)
                    inst.next.erase_from_parent()

                result.cond = None
                result.false_target = None

                if block.is_layout_successor(target.block):
                    LOGGER.debug("%s: erasing fallthrough jump to %s",
                                 block.name, target.block.name)
                    result.true_target = None
                    inst.erase_from_parent()
                    inst = prev
                    continue

                result.true_target = target.block
                inst = prev
                continue

            # First conditional branch from the bottom.
            if result.cond is None:
                result.false_target = result.true_target
                result.true_target = target.block
                result.cond = BranchCondition(
                    code, [replace(op) for op in inst.operands if op is not target]
                )
                inst = prev
                continue

            assert len(result.cond) <= MAX_COND_COMPONENTS
            assert result.true_target is not None

            # Only conditionals that all branch to one destination are handled.
            if result.true_target is not target.block:
                LOGGER.debug("%s: conditional branches to %s and %s",
                             block.name, result.true_target.name, target.block.name)
                return None

            if result.cond.code != code:
                LOGGER.debug("%s: leaving %s and %s uncombined", block.name,
                             cc.cond_name(result.cond.code), cc.cond_name(code))
            inst = prev

        return result

    def remove_branch(self, block: MachineBasicBlock) -> int:
        """Erase the trailing branches of block and return how many went."""
        count = 0
        inst = block.last
        while inst is not None:
            prev = inst.prev
            if inst.is_debug_value():
                inst = prev
                continue
            classified = self.classify_branch(inst)
            if classified is None or not isinstance(classified[1], MBBOperand):
                break
            inst.erase_from_parent()
            count += 1
            inst = prev
        return count

    def insert_branch(
        self,
        block: MachineBasicBlock,
        true_target: Optional[MachineBasicBlock],
        false_target: Optional[MachineBasicBlock] = None,
        cond: Optional[BranchCondition] = None,
        dl: Optional[DebugLoc] = None,
    ) -> int:
        """Append a terminator sequence to block and return the count emitted."""
        if true_target is None:
            raise InvalidBranchShape("insert_branch must not be told to insert a fallthrough")
        if cond is not None and len(cond) > MAX_COND_COMPONENTS:
            raise InvalidBranchShape(
                f"branch conditions have at most {MAX_COND_COMPONENTS} components, got {len(cond)}"
            )

        if cond is None:
            if false_target is not None:
                raise InvalidBranchShape("unconditional branch with multiple successors")
            build_mi(block, None, dl, Opcode.J).add_mbb(true_target)
            return 1

        opcode = _NATIVE_BRANCHES.get(cond.code)
        if opcode is None:
            raise InvalidConditionForInsert(
                f"no native branch for condition {cc.cond_name(cond.code)}"
            )
        if false_target is not None:
            raise InvalidBranchShape("cannot insert a two-way conditional branch")
        regs = [op for op in cond.operands if isinstance(op, RegOperand)]
        if len(regs) < 2:
            raise InvalidBranchShape(
                f"conditional branch needs two register operands, got {cond!r}"
            )

        (build_mi(block, None, dl, opcode)
            .add_reg(regs[0].reg)
            .add_reg(regs[1].reg)
            .add_mbb(true_target))
        return 1

    def reverse_branch_condition(self, cond: BranchCondition) -> BranchCondition:
        """Flip the predicate; compared operands stay in place."""
        if len(cond) > MAX_COND_COMPONENTS:
            raise InvalidCondition(f"invalid branch condition {cond!r}")
        return replace(
            cond, code=cc.invert(cond.code), operands=[replace(op) for op in cond.operands]
        )

    # ------------------------------------------------------------------
    # Copies and spills
    # ------------------------------------------------------------------

    def copy_phys_reg(
        self,
        block: MachineBasicBlock,
        before: Optional[MachineInst],
        dl: Optional[DebugLoc],
        dest: int,
        src: int,
        kill_src: bool = False,
    ) -> MachineInst:
        rc = self.subtarget.gpr_class
        if not rc.contains(dest, src):
            raise UnsupportedCopy(
                f"impossible reg-to-reg copy {reg_name(dest)} <- {reg_name(src)}"
            )
        return (build_mi(block, before, dl, Opcode.ADDI, dest)
                .add_reg(src, is_kill=kill_src)
                .add_imm(0)).inst

    def get_load_store_opcodes(self, rc: RegisterClass) -> tuple[Opcode, Opcode]:
        if rc is GR32 or rc is ADDR32:
            return Opcode.LW, Opcode.SW
        raise UnsupportedSpillClass(f"unsupported regclass to load or store: {rc.name}")

    def store_reg_to_stack_slot(
        self,
        block: MachineBasicBlock,
        before: Optional[MachineInst],
        src: int,
        is_kill: bool,
        frame_index: int,
        rc: RegisterClass,
    ) -> MachineInst:
        _, store = self.get_load_store_opcodes(rc)
        return (build_mi(block, before, debug_loc_at(before), store)
                .add_reg(src, is_kill=is_kill)
                .add_frame_reference(frame_index)).inst

    def load_reg_from_stack_slot(
        self,
        block: MachineBasicBlock,
        before: Optional[MachineInst],
        dest: int,
        frame_index: int,
        rc: RegisterClass,
    ) -> MachineInst:
        load, _ = self.get_load_store_opcodes(rc)
        return (build_mi(block, before, debug_loc_at(before), load, dest)
                .add_frame_reference(frame_index)).inst

    def get_opcode_for_offset(self, opcode: Opcode, offset: int) -> Optional[Opcode]:
        """Return opcode if it can address offset directly, None otherwise."""
        if is_uint(IMM12, offset) or is_int(IMM20, offset):
            return opcode
        return None

    # ------------------------------------------------------------------
    # Constants and the stack pointer
    # ------------------------------------------------------------------

    def load_immediate(
        self,
        block: MachineBasicBlock,
        before: Optional[MachineInst],
        value: int,
    ) -> int:
        """Materialize value into a new virtual register and return it."""
        if not is_int(IMM32, value):
            raise ConstantTooLarge(f"huge values not handled: {value}")
        mfunc = block.parent
        assert mfunc is not None, "block is not part of a function"
        dl = debug_loc_at(before)
        reg = mfunc.reg_info.create_virtual_register(self.subtarget.gpr_class)

        if is_int(IMM12, value):
            build_mi(block, before, dl, Opcode.ADDI, reg).add_reg(ZERO).add_imm(value)
            return reg

        upper20, lower12 = split_hi_lo(value)
        build_mi(block, before, dl, Opcode.LUI, reg).add_imm(upper20)
        build_mi(block, before, dl, Opcode.LLI, reg).add_reg(ZERO).add_imm(lower12)
        return reg

    def adjust_stack_ptr(
        self,
        sp: int,
        amount: int,
        block: MachineBasicBlock,
        before: Optional[MachineInst],
    ) -> None:
        """Add amount bytes to the stack pointer register sp."""
        dl = debug_loc_at(before)
        if is_int(IMM12, amount):
            build_mi(block, before, dl, Opcode.ADDI, sp).add_reg(sp).add_imm(amount)
            return

        # Expand an immediate that doesn't fit in 12 bits.
        reg = self.load_immediate(block, before, amount)
        build_mi(block, before, dl, Opcode.ADD, sp).add_reg(sp).add_reg(reg, is_kill=True)
