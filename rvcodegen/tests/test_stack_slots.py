"""Tests for stack-slot recognition, register copies, spills and reloads."""

import pytest

from rvcodegen.errors import UnsupportedCopy, UnsupportedSpillClass
from rvcodegen.mir import (
    DebugLoc,
    FrameIndexOperand,
    ImmOperand,
    Opcode,
    RegOperand,
    build_mi,
)
from rvcodegen.registers import ADDR32, GR32, GR64, NO_REGISTER, SP, ZERO, VIRTUAL_REGISTER_BASE
from rvcodegen.tests.conftest import R5, R6, add_alu, make_function, opcodes


def _frame_move(block, opcode, reg=R5, base=None, disp=0, index=NO_REGISTER):
    builder = build_mi(block, None, None, opcode).add_reg(reg, is_def=(opcode == Opcode.LW))
    if base is None:
        builder.add_frame_index(3)
    else:
        builder.add_reg(base)
    return builder.add_imm(disp).add_reg(index).inst


class TestSimpleMoves:
    """Tests for is_load_from_stack_slot / is_store_to_stack_slot."""

    def test_load_from_slot(self, info):
        _, (b,) = make_function("b")
        inst = _frame_move(b, Opcode.LW)
        assert info.is_load_from_stack_slot(inst) == (R5, 3)
        assert info.is_store_to_stack_slot(inst) is None

    def test_store_to_slot(self, info):
        _, (b,) = make_function("b")
        inst = _frame_move(b, Opcode.SW, reg=R6)
        assert info.is_store_to_stack_slot(inst) == (R6, 3)
        assert info.is_load_from_stack_slot(inst) is None

    def test_nonzero_displacement_is_not_simple(self, info):
        _, (b,) = make_function("b")
        inst = _frame_move(b, Opcode.LW, disp=8)
        assert info.is_load_from_stack_slot(inst) is None

    def test_register_base_is_not_simple(self, info):
        _, (b,) = make_function("b")
        inst = _frame_move(b, Opcode.SW, base=SP)
        assert info.is_store_to_stack_slot(inst) is None

    def test_index_register_is_not_simple(self, info):
        _, (b,) = make_function("b")
        inst = _frame_move(b, Opcode.LW, index=R6)
        assert info.is_load_from_stack_slot(inst) is None

    def test_alu_is_not_a_move(self, info):
        _, (b,) = make_function("b")
        assert info.is_load_from_stack_slot(add_alu(b)) is None
        assert info.is_store_to_stack_slot(add_alu(b)) is None


class TestCopyPhysReg:
    """Tests for copy_phys_reg."""

    def test_emits_addi_zero(self, info):
        _, (b,) = make_function("b")
        inst = info.copy_phys_reg(b, None, DebugLoc(4, 2), R5, R6, kill_src=True)
        assert opcodes(b) == [Opcode.ADDI]
        assert inst.operands == [
            RegOperand(R5, is_def=True),
            RegOperand(R6, is_kill=True),
            ImmOperand(0),
        ]
        assert inst.dl == DebugLoc(4, 2)

    def test_inserted_before_position(self, info):
        _, (b,) = make_function("b")
        tail = add_alu(b)
        info.copy_phys_reg(b, tail, None, R5, ZERO)
        assert b.first.opcode == Opcode.ADDI
        assert b.first.next is tail

    def test_rv64_copy(self, info64):
        _, (b,) = make_function("b", rv64=True)
        info64.copy_phys_reg(b, None, None, R5, R6)
        assert opcodes(b) == [Opcode.ADDI]

    def test_virtual_register_is_unsupported(self, info):
        _, (b,) = make_function("b")
        with pytest.raises(UnsupportedCopy):
            info.copy_phys_reg(b, None, None, VIRTUAL_REGISTER_BASE, R6)
        assert b.empty()


class TestSpillReload:
    """Tests for store_reg_to_stack_slot / load_reg_from_stack_slot."""

    @pytest.mark.parametrize("rc", [GR32, ADDR32])
    def test_store_round_trips_through_classifier(self, info, rc):
        mfunc, (b,) = make_function("b")
        fi = mfunc.frame_info.create_stack_object(4)
        inst = info.store_reg_to_stack_slot(b, None, R5, True, fi, rc)
        assert inst.opcode == Opcode.SW
        assert inst.operands[0] == RegOperand(R5, is_kill=True)
        assert info.is_store_to_stack_slot(inst) == (R5, fi)

    @pytest.mark.parametrize("rc", [GR32, ADDR32])
    def test_load_round_trips_through_classifier(self, info, rc):
        mfunc, (b,) = make_function("b")
        fi = mfunc.frame_info.create_stack_object(4)
        inst = info.load_reg_from_stack_slot(b, None, R6, fi, rc)
        assert inst.opcode == Opcode.LW
        assert inst.operands == [
            RegOperand(R6, is_def=True),
            FrameIndexOperand(fi),
            ImmOperand(0),
            RegOperand(NO_REGISTER),
        ]
        assert info.is_load_from_stack_slot(inst) == (R6, fi)

    def test_reload_takes_debug_loc_of_insertion_point(self, info):
        _, (b,) = make_function("b")
        tail = add_alu(b)
        tail.dl = DebugLoc(12, 1)
        inst = info.load_reg_from_stack_slot(b, tail, R6, 0, GR32)
        assert inst.dl == DebugLoc(12, 1)
        assert inst.next is tail

    def test_unsupported_class(self, info):
        _, (b,) = make_function("b")
        with pytest.raises(UnsupportedSpillClass):
            info.store_reg_to_stack_slot(b, None, R5, False, 0, GR64)
        with pytest.raises(UnsupportedSpillClass):
            info.load_reg_from_stack_slot(b, None, R5, 0, GR64)
        assert b.empty()

    def test_load_store_opcodes(self, info):
        assert info.get_load_store_opcodes(GR32) == (Opcode.LW, Opcode.SW)
        assert info.get_load_store_opcodes(ADDR32) == (Opcode.LW, Opcode.SW)


class TestOpcodeForOffset:
    """Tests for get_opcode_for_offset."""

    @pytest.mark.parametrize("offset", [0, 4095, -1, (1 << 19) - 1, -(1 << 19)])
    def test_encodable(self, info, offset):
        assert info.get_opcode_for_offset(Opcode.LW, offset) == Opcode.LW

    @pytest.mark.parametrize("offset", [1 << 19, -(1 << 19) - 1, 1 << 31])
    def test_not_encodable(self, info, offset):
        assert info.get_opcode_for_offset(Opcode.SW, offset) is None
