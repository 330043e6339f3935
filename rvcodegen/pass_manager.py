"""
Pass Manager Infrastructure

Provides the framework for running MIR passes that rewrite a
MachineFunction in place, with per-pass JSON configuration and optional
metrics/IR printing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Any
import json

from .instr_info import RISCVInstrInfo
from .mir import MachineFunction


@dataclass
class PassConfig:
    """Configuration for a single pass."""
    name: str
    enabled: bool = True
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class PassMetrics:
    """Metrics collected by a pass during execution."""
    ir_size_before: int = 0
    ir_size_after: int = 0
    custom: dict[str, Any] = field(default_factory=dict)
    messages: list[str] = field(default_factory=list)


class CompilerPass(ABC):
    """Base class for all compiler passes."""

    def __init__(self):
        self._metrics: Optional[PassMetrics] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the pass name for config matching."""
        pass

    @property
    @abstractmethod
    def input_type(self) -> str:
        """Return the input IR type."""
        pass

    @property
    @abstractmethod
    def output_type(self) -> str:
        """Return the output IR type."""
        pass

    def get_metrics(self) -> Optional[PassMetrics]:
        """Return metrics from the last run, if collected."""
        return self._metrics

    def _init_metrics(self):
        """Initialize metrics for a new run."""
        self._metrics = PassMetrics()

    def _add_metric_message(self, msg: str):
        """Add a diagnostic message to metrics."""
        if self._metrics:
            self._metrics.messages.append(msg)


class MachinePass(CompilerPass):
    """Base class for MIR -> MIR passes."""

    @property
    def input_type(self) -> str:
        return "mir"

    @property
    def output_type(self) -> str:
        return "mir"

    @abstractmethod
    def run(self, mfunc: MachineFunction, config: PassConfig) -> MachineFunction:
        """Transform MIR and return the MachineFunction."""
        pass

    @staticmethod
    def instr_info(mfunc: MachineFunction) -> RISCVInstrInfo:
        """Target hooks matching the function's subtarget."""
        return RISCVInstrInfo(mfunc.subtarget)


@dataclass
class PassManager:
    """Manages and runs MIR passes."""
    passes: list[CompilerPass] = field(default_factory=list)
    config: dict[str, PassConfig] = field(default_factory=dict)
    print_after_all: bool = False
    print_metrics: bool = False

    def add_pass(self, p: CompilerPass) -> None:
        """Register a pass."""
        self.passes.append(p)

    def load_config(self, config_path: str) -> None:
        """Load pass configs from JSON file."""
        with open(config_path) as f:
            data = json.load(f)
        for pass_name, opts in data.get("passes", {}).items():
            self.config[pass_name] = PassConfig(
                name=pass_name,
                enabled=opts.get("enabled", True),
                options=opts.get("options", {})
            )

    def _print_pass_metrics(self, p: CompilerPass, cfg: PassConfig,
                            before_size: int, mfunc: MachineFunction):
        """Print metrics for a pass execution."""
        after_size = mfunc.total_instructions()

        print(f"\n=== Pass: {p.name} ===")
        print(f"Config: {', '.join(f'{k}={v}' for k, v in cfg.options.items()) or '(default)'}")

        if before_size > 0:
            pct = ((after_size - before_size) / before_size) * 100
            print(f"Instructions: {before_size} -> {after_size} ({pct:+.0f}%)")
        else:
            print(f"Instructions: {before_size} -> {after_size}")

        metrics = p.get_metrics()
        if metrics:
            if metrics.custom:
                print(f"Custom metrics: {metrics.custom}")
            if metrics.messages:
                print("Diagnostics:")
                for msg in metrics.messages:
                    print(f"  - {msg}")

    def run(self, mfunc: MachineFunction) -> MachineFunction:
        """Run all enabled passes in order."""
        from .printing import print_mir

        if self.print_after_all:
            print("=== MIR (before passes) ===")
            print_mir(mfunc)

        for p in self.passes:
            cfg = self.config.get(p.name, PassConfig(name=p.name))
            if not cfg.enabled:
                if self.print_metrics:
                    print(f"\n=== Pass: {p.name} === (SKIPPED - disabled)")
                continue

            if p.input_type != "mir":
                raise TypeError(
                    f"Pass '{p.name}' expects input type '{p.input_type}' "
                    f"but current state is 'mir'"
                )

            before_size = mfunc.total_instructions() if self.print_metrics else 0

            mfunc = p.run(mfunc, cfg)

            if self.print_metrics:
                self._print_pass_metrics(p, cfg, before_size, mfunc)

            if self.print_after_all:
                print(f"=== MIR (after {p.name}) ===")
                print_mir(mfunc)

        if not isinstance(mfunc, MachineFunction):
            raise RuntimeError(
                f"Pipeline did not produce MIR output, got '{type(mfunc).__name__}' instead"
            )
        return mfunc
