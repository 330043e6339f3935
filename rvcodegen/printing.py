"""
MIR Printing Utilities

Assembly-like rendering of machine functions.
"""

from .mir import MachineBasicBlock, MachineFunction, MachineInst


def format_inst(inst: MachineInst) -> str:
    """Render one instruction, e.g. `blt x5, x6, <bb:loop>`."""
    return repr(inst)


def format_block(block: MachineBasicBlock) -> str:
    """Render a block label followed by its indented instructions."""
    succ = block.layout_successor()
    header = f"{block.name}:"
    if succ is not None:
        header += f"  ; layout successor: {succ.name}"
    lines = [header]
    for inst in block:
        lines.append(f"  {format_inst(inst)}")
    return "\n".join(lines)


def print_mir(mfunc: MachineFunction):
    """Pretty-print MachineFunction in layout order."""
    print(f"=== MIR: {mfunc.name} ({len(mfunc.blocks)} blocks, "
          f"{mfunc.total_instructions()} insts) ===")
    for block in mfunc.blocks:
        print()
        print(format_block(block))
    print()
