"""
RISC-V control-flow and instruction-materialization layer

Target hooks of a RISC-V code generator backend:
- Branch classification, analysis, removal, insertion and inversion
- Stack-slot load/store recognition
- Register copies, spills and reloads
- Constant materialization and stack pointer adjustment

The hooks work on MIR: MachineFunction -> MachineBasicBlock -> MachineInst.
"""

# Errors
from .errors import (
    BackendError,
    InvalidCondition,
    UnknownBranchOpcode,
    InvalidBranchShape,
    InvalidConditionForInsert,
    UnsupportedCopy,
    UnsupportedSpillClass,
    ConstantTooLarge,
)

# Immediates and condition codes
from .immediates import IMM12, IMM20, IMM32, is_int, is_uint, split_hi_lo
from .condcodes import CondCode, invert, is_native, is_valid, cond_name

# Registers
from .registers import (
    NO_REGISTER,
    ZERO,
    SP,
    RA,
    GR32,
    ADDR32,
    GR64,
    RegisterClass,
    phys_reg,
    reg_name,
)

# MIR types
from .mir import (
    Opcode,
    OpcodeDesc,
    OPCODE_DESCS,
    RegOperand,
    ImmOperand,
    FrameIndexOperand,
    MBBOperand,
    DebugLoc,
    MachineInst,
    MachineBasicBlock,
    MachineFunction,
    MachineInstrBuilder,
    Subtarget,
    build_mi,
)

# Target hooks
from .instr_info import RISCVInstrInfo, BranchCondition, BranchAnalysis

# Pass infrastructure
from .pass_manager import PassConfig, PassMetrics, CompilerPass, MachinePass, PassManager

# Printing utilities
from .printing import format_inst, format_block, print_mir

# Passes
from .passes import BranchCleanupPass


__all__ = [
    # Errors
    'BackendError', 'InvalidCondition', 'UnknownBranchOpcode', 'InvalidBranchShape',
    'InvalidConditionForInsert', 'UnsupportedCopy', 'UnsupportedSpillClass',
    'ConstantTooLarge',
    # Immediates and condition codes
    'IMM12', 'IMM20', 'IMM32', 'is_int', 'is_uint', 'split_hi_lo',
    'CondCode', 'invert', 'is_native', 'is_valid', 'cond_name',
    # Registers
    'NO_REGISTER', 'ZERO', 'SP', 'RA', 'GR32', 'ADDR32', 'GR64', 'RegisterClass',
    'phys_reg', 'reg_name',
    # MIR
    'Opcode', 'OpcodeDesc', 'OPCODE_DESCS', 'RegOperand', 'ImmOperand',
    'FrameIndexOperand', 'MBBOperand', 'DebugLoc', 'MachineInst',
    'MachineBasicBlock', 'MachineFunction', 'MachineInstrBuilder', 'Subtarget',
    'build_mi',
    # Target hooks
    'RISCVInstrInfo', 'BranchCondition', 'BranchAnalysis',
    # Pass infrastructure
    'PassConfig', 'PassMetrics', 'CompilerPass', 'MachinePass', 'PassManager',
    # Printing
    'format_inst', 'format_block', 'print_mir',
    # Passes
    'BranchCleanupPass',
]
