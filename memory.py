from traps import MemoryAccessError

DEFAULT_MEMORY_SIZE = 64 * 1024


class Memory:
    """Flat, bounds-checked, byte-addressed store.

    Every runtime address is a byte offset. Multi-byte values are big-endian:
    the most significant byte sits at the lowest address.
    """

    def __init__(self, size=DEFAULT_MEMORY_SIZE):
        if size <= 0:
            raise ValueError(f"Invalid memory size: {size}")
        self.size = size
        self.data = bytearray(size)

    def reset(self):
        self.data = bytearray(self.size)

    def _check_span(self, addr, size, op):
        if addr < 0 or addr + size > self.size:
            raise MemoryAccessError(addr, size, op, limit=self.size)

    def read_bytes(self, addr, size, op="read"):
        self._check_span(addr, size, op)
        return bytes(self.data[addr:addr + size])

    def write_bytes(self, addr, data):
        self._check_span(addr, len(data), "write")
        self.data[addr:addr + len(data)] = data

    def read(self, addr, size, op="read"):
        return int.from_bytes(self.read_bytes(addr, size, op), "big")

    def write(self, addr, size, value):
        value &= (1 << (size * 8)) - 1
        self.write_bytes(addr, value.to_bytes(size, "big"))

    def read_byte(self, addr):
        return self.read(addr, 1)

    def read_half(self, addr):
        return self.read(addr, 2)

    def read_word(self, addr):
        return self.read(addr, 4)

    def write_byte(self, addr, value):
        self.write(addr, 1, value)

    def write_half(self, addr, value):
        self.write(addr, 2, value)

    def write_word(self, addr, value):
        self.write(addr, 4, value)

    def fetch_word(self, addr):
        return self.read(addr, 4, op="fetch")

    def load_word_at_index(self, index, word):
        # Program seeding is the only place a word index is accepted.
        self.write_word(index * 4, word)
