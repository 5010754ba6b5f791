import json

from cpu_core import ILLEGAL_POLICIES
from memory import DEFAULT_MEMORY_SIZE

# lui x1,0x12345 / auipc x22,0x10011 / jal x5,8 / beq x4,x5,8
DEFAULT_PROGRAM = (0x123450B7, 0x10011B17, 0x008002EF, 0x00520463)


def _parse_int(value, default=0):
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def _parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
    return bool(value)


class SimConfig:
    def __init__(self, memory_size=DEFAULT_MEMORY_SIZE, illegal_opcode="trap", debug_print=True,
                 program=DEFAULT_PROGRAM, load_index=0):
        self.memory_size = memory_size
        self.illegal_opcode = illegal_opcode
        self.debug_print = debug_print
        self.program = list(program)
        self.load_index = load_index
        self.validate()

    def validate(self):
        if self.memory_size <= 0:
            raise ValueError(f"Invalid memory size: {self.memory_size}")
        if self.illegal_opcode not in ILLEGAL_POLICIES:
            raise ValueError(
                f"Invalid illegal_opcode {self.illegal_opcode!r}, expected one of {', '.join(ILLEGAL_POLICIES)}"
            )
        if self.load_index < 0:
            raise ValueError(f"Invalid load index: {self.load_index}")
        end = (self.load_index + len(self.program)) * 4
        if end > self.memory_size:
            raise ValueError(
                f"Program of {len(self.program)} words at index {self.load_index} "
                f"does not fit in 0x{self.memory_size:x} bytes"
            )
        for word in self.program:
            if not 0 <= word <= 0xffffffff:
                raise ValueError(f"Invalid instruction word: {word:#x}")

    def update(self, data):
        if "memory_size" in data:
            self.memory_size = _parse_int(data["memory_size"], self.memory_size)
        if "illegal_opcode" in data:
            self.illegal_opcode = str(data["illegal_opcode"]).strip().lower()
        if "debug_print" in data:
            self.debug_print = _parse_bool(data["debug_print"], self.debug_print)
        if "program" in data:
            program = data["program"]
            if not isinstance(program, (list, tuple)):
                raise ValueError(f"Program must be a list of words, got {type(program).__name__}")
            self.program = [_parse_int(word) for word in program]
        if "load_index" in data:
            self.load_index = _parse_int(data["load_index"], self.load_index)
        self.validate()
        return self

    @classmethod
    def from_dict(cls, data):
        return cls().update(data)

    @classmethod
    def from_file(cls, filename):
        with open(filename, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config {filename} must hold a JSON object")
        config = cls.from_dict(data)
        print(f"[CFG] Loaded config from {filename}")
        return config

    def build_sim(self, out=None):
        from rv32sim import RV32Sim

        sim = RV32Sim(
            memory_size=self.memory_size,
            illegal_opcode=self.illegal_opcode,
            debug_print=self.debug_print,
            out=out,
        )
        sim.load_program(self.program, start_index=self.load_index)
        return sim
