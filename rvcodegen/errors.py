"""
Backend errors.

Recoverable conditions (not a branch, not a simple frame move, block not
analyzable) are reported with ``None`` results. Everything here is a
backend-definition bug and aborts compilation.
"""


class BackendError(RuntimeError):
    """Compiler-internal error naming the violated invariant."""


class InvalidCondition(BackendError):
    """Condition code is ANY or outside the closed condition code set."""


class UnknownBranchOpcode(BackendError):
    """Opcode table marks an instruction as a branch the classifier doesn't know."""


class InvalidBranchShape(BackendError):
    """Requested terminator sequence can't be expressed on this target."""


class InvalidConditionForInsert(BackendError):
    """Condition code has no native branch instruction."""


class UnsupportedCopy(BackendError):
    """No register-to-register move exists for the operand classes."""


class UnsupportedSpillClass(BackendError):
    """No load/store pair exists for the register class."""


class ConstantTooLarge(BackendError):
    """Constant does not fit a 32-bit signed immediate pair."""
