"""Shared fixtures and helpers for rvcodegen tests."""

import os
import sys

# Add the repository root to the path for imports
_this_dir = os.path.dirname(os.path.abspath(__file__))
_repo_root = os.path.dirname(os.path.dirname(_this_dir))
sys.path.insert(0, _repo_root)

import pytest

from rvcodegen.instr_info import RISCVInstrInfo
from rvcodegen.mir import (
    MachineBasicBlock,
    MachineFunction,
    MachineInst,
    Opcode,
    Subtarget,
    build_mi,
)
from rvcodegen.registers import phys_reg

# A few scratch registers used throughout the tests.
R5 = phys_reg(5)
R6 = phys_reg(6)
R7 = phys_reg(7)


def make_function(*names: str, rv64: bool = False) -> tuple[MachineFunction, list[MachineBasicBlock]]:
    """Create a function whose blocks are laid out in the given order."""
    mfunc = MachineFunction("f", Subtarget(is_rv64=rv64))
    blocks = [mfunc.create_block(name) for name in names]
    return mfunc, blocks


def add_alu(block: MachineBasicBlock, dest: int = R5, src: int = R6, imm: int = 1) -> MachineInst:
    return build_mi(block, None, None, Opcode.ADDI, dest).add_reg(src).add_imm(imm).inst


def add_jump(block: MachineBasicBlock, target: MachineBasicBlock) -> MachineInst:
    return build_mi(block, None, None, Opcode.J).add_mbb(target).inst


def add_cond_branch(
    block: MachineBasicBlock,
    opcode: Opcode,
    target: MachineBasicBlock,
    lhs: int = R5,
    rhs: int = R6,
) -> MachineInst:
    return build_mi(block, None, None, opcode).add_reg(lhs).add_reg(rhs).add_mbb(target).inst


def add_debug_value(block: MachineBasicBlock) -> MachineInst:
    return build_mi(block, None, None, Opcode.DBG_VALUE).add_reg(R5).add_imm(0).inst


def opcodes(block: MachineBasicBlock) -> list[Opcode]:
    return [inst.opcode for inst in block]


@pytest.fixture
def info() -> RISCVInstrInfo:
    return RISCVInstrInfo(Subtarget())


@pytest.fixture
def info64() -> RISCVInstrInfo:
    return RISCVInstrInfo(Subtarget(is_rv64=True))
