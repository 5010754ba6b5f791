CAUSE_FETCH_ACCESS = 1
CAUSE_ILLEGAL_INSTRUCTION = 2
CAUSE_LOAD_ACCESS = 5
CAUSE_STORE_ACCESS = 7


class TrapException(Exception):
    def __init__(self, cause, tval=0, message=None):
        super().__init__(message or f"trap {cause}")
        self.cause = cause
        self.tval = tval & 0xffffffff


class IllegalInstruction(TrapException):
    def __init__(self, instr, reason=None):
        message = f"illegal instruction 0x{instr & 0xffffffff:08x}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(CAUSE_ILLEGAL_INSTRUCTION, instr, message)
        self.instr = instr & 0xffffffff


class MemoryAccessError(TrapException):
    _CAUSES = {
        "fetch": CAUSE_FETCH_ACCESS,
        "read": CAUSE_LOAD_ACCESS,
        "write": CAUSE_STORE_ACCESS,
    }

    def __init__(self, addr, size, op="read", limit=None):
        message = f"Memory {op} out of range at 0x{addr & 0xffffffff:08x} (size {size})"
        if limit is not None:
            message = f"{message}, capacity 0x{limit:x}"
        super().__init__(self._CAUSES.get(op, CAUSE_LOAD_ACCESS), addr, message)
        self.addr = addr & 0xffffffff
        self.size = size
        self.op = op


class SimulatorFaulted(Exception):
    """Raised when stepping a simulator that already stopped on a trap."""

    def __init__(self, trap):
        super().__init__(f"simulator faulted ({trap}); reset() before stepping again")
        self.trap = trap
