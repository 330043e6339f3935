"""
Branch Cleanup Pass

MIR → MIR pass that tidies block terminators against the current layout
using the target branch hooks:
1. Unconditional jumps to the layout successor are deleted
2. `bcc X; j next` drops the redundant jump
3. `bcc next; j Y` becomes `b!cc Y` when the inverted predicate is native
4. `bcc next` with nothing after it is deleted
"""

import logging
from typing import Optional

from .. import condcodes as cc
from ..instr_info import BranchAnalysis, RISCVInstrInfo
from ..mir import MachineBasicBlock, MachineFunction, MachineInst, MBBOperand
from ..pass_manager import MachinePass, PassConfig

LOGGER = logging.getLogger("rvcodegen.passes.branch_cleanup")


def _trailing_branches(info: RISCVInstrInfo, block: MachineBasicBlock) -> list[MachineInst]:
    """Branches at the end of block with block targets, bottom first."""
    branches = []
    for inst in reversed(block):
        if inst.is_debug_value():
            continue
        classified = info.classify_branch(inst)
        if classified is None or not isinstance(classified[1], MBBOperand):
            break
        branches.append(inst)
    return branches


def _num_conditionals(info: RISCVInstrInfo, block: MachineBasicBlock) -> int:
    return sum(
        1 for inst in _trailing_branches(info, block)
        if info.classify_branch(inst)[0] != cc.ANY
    )


class BranchCleanupPass(MachinePass):
    """
    MIR → MIR pass that simplifies block terminators.

    Options:
        drop_fallthrough_jumps: analyze with modification allowed, which
            erases jumps to the layout successor and dead code after jumps
            (default True)
        reverse_branches: invert a conditional whose taken edge falls
            through (default True)
    """

    @property
    def name(self) -> str:
        return "branch-cleanup"

    def run(self, mfunc: MachineFunction, config: PassConfig) -> MachineFunction:
        """Clean up the terminators of every block in layout order."""
        self._init_metrics()
        drop_jumps = config.options.get("drop_fallthrough_jumps", True)
        reverse = config.options.get("reverse_branches", True)

        info = self.instr_info(mfunc)
        size_before = mfunc.total_instructions()
        stats = {
            "blocks_visited": 0,
            "unanalyzable": 0,
            "branches_removed": 0,
            "branches_inserted": 0,
            "conditions_reversed": 0,
        }

        for block in mfunc.blocks:
            stats["blocks_visited"] += 1
            analysis = info.analyze_branch(block, allow_modify=drop_jumps)
            if analysis is None:
                stats["unanalyzable"] += 1
                continue
            if analysis.cond is None:
                continue
            # Rewriting would drop all but one of several conditionals.
            if _num_conditionals(info, block) != 1:
                continue
            self._simplify_conditional(info, block, analysis, reverse, stats)

        if self._metrics:
            self._metrics.ir_size_before = size_before
            self._metrics.ir_size_after = mfunc.total_instructions()
            self._metrics.custom = stats

        return mfunc

    def _simplify_conditional(
        self,
        info: RISCVInstrInfo,
        block: MachineBasicBlock,
        analysis: BranchAnalysis,
        reverse: bool,
        stats: dict,
    ) -> None:
        succ: Optional[MachineBasicBlock] = block.layout_successor()
        tbb, fbb, cond = analysis.true_target, analysis.false_target, analysis.cond

        if fbb is not None and fbb is succ:
            if not cc.is_native(cond.code):
                self._add_metric_message(
                    f"{block.name}: kept jump after {cc.cond_name(cond.code)} branch, "
                    f"no native encoding to re-insert"
                )
                return
            stats["branches_removed"] += info.remove_branch(block)
            stats["branches_inserted"] += info.insert_branch(block, tbb, None, cond)
            return

        if tbb is not succ:
            return

        if fbb is None:
            # Both edges reach the layout successor.
            LOGGER.debug("%s: removing branch to layout successor", block.name)
            stats["branches_removed"] += info.remove_branch(block)
            return

        if not reverse:
            return
        inverted = info.reverse_branch_condition(cond)
        if not cc.is_native(inverted.code):
            self._add_metric_message(
                f"{block.name}: kept {cc.cond_name(cond.code)} branch, "
                f"{cc.cond_name(inverted.code)} has no native encoding"
            )
            return
        stats["branches_removed"] += info.remove_branch(block)
        stats["branches_inserted"] += info.insert_branch(block, fbb, None, inverted)
        stats["conditions_reversed"] += 1
