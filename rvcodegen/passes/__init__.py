"""
Machine Passes

MIR → MIR passes built on the target instruction hooks:
- Branch cleanup (fallthrough jump removal, branch inversion)
"""

from .branch_cleanup import BranchCleanupPass

__all__ = [
    'BranchCleanupPass',
]
