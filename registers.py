ABI_NAMES = [
    "zero", "ra", "sp", "gp", "tp", "t0", "t1", "t2", "fp", "s1",
    "a0", "a1", "a2", "a3", "a4", "a5", "a6", "a7",
    "s2", "s3", "s4", "s5", "s6", "s7", "s8", "s9", "s10", "s11",
    "t3", "t4", "t5", "t6",
]


class RegisterFile:
    """32 general purpose registers holding 32-bit unsigned values.

    x0 is hardwired to zero: writes to it are accepted and dropped.
    """

    NUM_REGS = 32

    def __init__(self):
        self._values = [0] * self.NUM_REGS

    def __getitem__(self, index):
        return self._values[self._check_index(index)]

    def __setitem__(self, index, value):
        index = self._check_index(index)
        if index == 0:
            return
        self._values[index] = value & 0xffffffff

    def __len__(self):
        return self.NUM_REGS

    def __iter__(self):
        return iter(self._values)

    def _check_index(self, index):
        if not isinstance(index, int) or not 0 <= index < self.NUM_REGS:
            raise IndexError(f"Invalid register index: {index!r}")
        return index

    def clear_zero(self):
        self._values[0] = 0

    def reset(self):
        self._values = [0] * self.NUM_REGS

    def snapshot(self):
        return list(self._values)
