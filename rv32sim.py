# rv32sim.py
# Step-driven RV32I base integer simulator: processor state, fetch/execute
# driver and command line harness.

import sys

from cpu_core import CPUCore
from memory import DEFAULT_MEMORY_SIZE, Memory
from registers import ABI_NAMES, RegisterFile
from traps import SimulatorFaulted, TrapException


class StepResult:
    """Outcome of one fetch/execute cycle: ``continue`` or ``fault``."""

    CONTINUE = "continue"
    FAULT = "fault"

    __slots__ = ("kind", "decoded", "trap")

    def __init__(self, kind, decoded=None, trap=None):
        self.kind = kind
        self.decoded = decoded
        self.trap = trap

    @classmethod
    def ok(cls, decoded):
        return cls(cls.CONTINUE, decoded=decoded)

    @classmethod
    def fault(cls, trap):
        return cls(cls.FAULT, trap=trap)

    @property
    def is_fault(self):
        return self.kind == self.FAULT

    def __bool__(self):
        return not self.is_fault

    def __repr__(self):
        if self.is_fault:
            return f"StepResult(fault, {self.trap})"
        return f"StepResult(continue, {self.decoded!r})"


class RV32Sim:
    def __init__(self, memory_size=DEFAULT_MEMORY_SIZE, illegal_opcode="trap", debug_print=False, out=None):
        self.memory_size = memory_size
        self.regs = RegisterFile()
        self.memory = Memory(memory_size)
        self.pc = 0
        self.instr_count = 0
        self.debug_print = debug_print
        self.out = out
        self.fault = None
        self.core = CPUCore(self, illegal_opcode=illegal_opcode, out=out)

    @property
    def illegal_opcode(self):
        return self.core.illegal_opcode

    def _print(self, *args, **kwargs):
        print(*args, file=self.out or sys.stdout, **kwargs)

    def reset(self):
        self.regs.reset()
        self.memory.reset()
        self.pc = 0
        self.instr_count = 0
        self.fault = None

    def store_program_word(self, word, index):
        self.memory.load_word_at_index(index, word)

    def load_program(self, words, start_index=0):
        count = 0
        for i, word in enumerate(words):
            self.store_program_word(word, start_index + i)
            count += 1
        return count

    def fetch(self):
        return self.memory.fetch_word(self.pc)

    def execute(self):
        if self.fault is not None:
            raise SimulatorFaulted(self.fault)
        instr = self.fetch()
        return self.core.execute(instr)

    def step(self):
        try:
            decoded = self.execute()
        except TrapException as e:
            self.fault = e
            self._print(f"[SIM] Execution stopped at PC=0x{self.pc:08x}: {e}")
            return StepResult.fault(e)
        if self.debug_print:
            self._print(self.format_step_dump(decoded))
        return StepResult.ok(decoded)

    def format_step_dump(self, decoded):
        lines = [f" {decoded.opcode:X} {(decoded.instr >> 7) & 0x1f}", f" 0x{decoded.instr:08X} "]
        row = ""
        for idx, value in enumerate(self.regs):
            row += f"x{idx}: {value:08X} "
            if (idx + 1) % 4 == 0:
                lines.append(row)
                row = ""
        lines.append(f"pc: {self.pc:08X}")
        return "\n".join(lines)

    def dump_regs(self):
        for i, value in enumerate(self.regs):
            self._print(f"x{i:2} ({ABI_NAMES[i]:>6}) = 0x{value:08x}")
        self._print(f"pc             = 0x{self.pc:08x}")


def run(sim, wait_for_step=input, max_steps=None):
    """Fetch/execute loop gated by ``wait_for_step``.

    Returns the fault StepResult when a trap stops the run, or None when the
    trigger is closed (EOF / Ctrl-C) or ``max_steps`` steps have run.
    """
    steps = 0
    while max_steps is None or steps < max_steps:
        try:
            wait_for_step()
        except (EOFError, KeyboardInterrupt):
            return None
        result = sim.step()
        steps += 1
        if result.is_fault:
            return result
    return None


USAGE = """Usage: python rv32sim.py [WORD ...] [OPTIONS]
Words are 32-bit instruction words (hex with 0x prefix or decimal) seeded at word index 0.
Options:
  --config=FILE     Load simulator settings and program from a JSON config
  --mem-size=N      Memory capacity in bytes (default: 65536)
  --skip-illegal    Skip unknown instructions instead of stopping
  --quiet           Do not print the register dump after each step
  --max-steps=N     Stop after N steps"""


def main(argv=None):
    from sim_config import SimConfig, _parse_int

    args = list(sys.argv[1:] if argv is None else argv)
    config_file = None
    overrides = {}
    words = []
    max_steps_arg = None

    while args:
        arg = args.pop(0)
        if arg.startswith("--config="):
            config_file = arg.split("=", 1)[1]
        elif arg.startswith("--mem-size="):
            overrides["memory_size"] = arg.split("=", 1)[1]
        elif arg == "--skip-illegal":
            overrides["illegal_opcode"] = "skip"
        elif arg == "--quiet":
            overrides["debug_print"] = False
        elif arg.startswith("--max-steps="):
            max_steps_arg = arg.split("=", 1)[1]
        elif arg in ("-h", "--help"):
            print(USAGE)
            return 0
        elif arg.startswith("-"):
            print(f"Unknown option: {arg}")
            return 1
        else:
            words.append(arg)

    try:
        config = SimConfig.from_file(config_file) if config_file else SimConfig()
        if words:
            overrides["program"] = words
        config.update(overrides)
        max_steps = None
        if max_steps_arg is not None:
            max_steps = _parse_int(max_steps_arg)
            if max_steps < 0:
                raise ValueError(f"Invalid max steps: {max_steps}")
        sim = config.build_sim()
    except (OSError, ValueError) as e:
        print(f"[ERROR] {e}")
        return 1

    print(f"[SIM] Loaded {len(config.program)} words at index {config.load_index}; press Enter to step")
    result = run(sim, max_steps=max_steps)
    if result is not None:
        sim.dump_regs()
        return 1
    print("\n[SIM] Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
