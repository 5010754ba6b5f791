import sys

from bitfields import (
    funct3,
    funct7,
    imm_b,
    imm_i,
    imm_j,
    imm_s,
    imm_u,
    rd,
    rs1,
    rs2,
    sign_extend,
    sra32,
    to_s32,
    u32,
)
from traps import IllegalInstruction

OPCODE_LUI = 0b0110111
OPCODE_AUIPC = 0b0010111
OPCODE_JAL = 0b1101111
OPCODE_BRANCH = 0b1100011
OPCODE_STORE = 0b0100011
OPCODE_OP = 0b0110011
OPCODE_LOAD = 0b0000011
OPCODE_OP_IMM = 0b0010011

ILLEGAL_POLICIES = ("trap", "skip")


class DecodedInstruction:
    """Base for the per-format decode results.

    Each subclass lists the fields its format carries in ``fields``; every
    variant also keeps the raw word and its opcode.
    """

    __slots__ = ("instr", "opcode")
    fields = ()

    def __init__(self, instr, **values):
        self.instr = instr & 0xffffffff
        self.opcode = self.instr & 0x7f
        for name in self.fields:
            setattr(self, name, values[name])

    def __repr__(self):
        parts = ", ".join(f"{name}={getattr(self, name)}" for name in self.fields)
        return f"{type(self).__name__}(0x{self.instr:08x}{', ' if parts else ''}{parts})"


class RType(DecodedInstruction):
    __slots__ = ("rd", "rs1", "rs2", "funct3", "funct7")
    fields = __slots__


class IType(DecodedInstruction):
    __slots__ = ("rd", "rs1", "funct3", "funct7", "imm")
    fields = __slots__


class LoadType(DecodedInstruction):
    __slots__ = ("rd", "rs1", "funct3", "imm")
    fields = __slots__


class SType(DecodedInstruction):
    __slots__ = ("rs1", "rs2", "funct3", "imm")
    fields = __slots__


class BType(DecodedInstruction):
    __slots__ = ("rs1", "rs2", "funct3", "imm")
    fields = __slots__


class UType(DecodedInstruction):
    __slots__ = ("rd", "imm", "add_pc")
    fields = __slots__


class JType(DecodedInstruction):
    __slots__ = ("rd", "imm")
    fields = __slots__


class Unknown(DecodedInstruction):
    __slots__ = ("rd",)
    fields = __slots__


def _decode_r(instr):
    return RType(instr, rd=rd(instr), rs1=rs1(instr), rs2=rs2(instr),
                 funct3=funct3(instr), funct7=funct7(instr))


def _decode_op_imm(instr):
    return IType(instr, rd=rd(instr), rs1=rs1(instr), funct3=funct3(instr),
                 funct7=funct7(instr), imm=imm_i(instr))


def _decode_load(instr):
    return LoadType(instr, rd=rd(instr), rs1=rs1(instr), funct3=funct3(instr), imm=imm_i(instr))


def _decode_store(instr):
    return SType(instr, rs1=rs1(instr), rs2=rs2(instr), funct3=funct3(instr), imm=imm_s(instr))


def _decode_branch(instr):
    return BType(instr, rs1=rs1(instr), rs2=rs2(instr), funct3=funct3(instr), imm=imm_b(instr))


def _decode_lui(instr):
    return UType(instr, rd=rd(instr), imm=imm_u(instr), add_pc=False)


def _decode_auipc(instr):
    return UType(instr, rd=rd(instr), imm=imm_u(instr), add_pc=True)


def _decode_jal(instr):
    return JType(instr, rd=rd(instr), imm=imm_j(instr))


_DECODERS = {
    OPCODE_OP: _decode_r,
    OPCODE_OP_IMM: _decode_op_imm,
    OPCODE_LOAD: _decode_load,
    OPCODE_STORE: _decode_store,
    OPCODE_BRANCH: _decode_branch,
    OPCODE_JAL: _decode_jal,
    OPCODE_LUI: _decode_lui,
    OPCODE_AUIPC: _decode_auipc,
}


def decode(instr):
    """Decode a 32-bit word into its format variant. Never fails."""
    instr &= 0xffffffff
    decoder = _DECODERS.get(instr & 0x7f)
    if decoder is None:
        return Unknown(instr, rd=rd(instr))
    return decoder(instr)


class CPUCore:
    _HANDLERS = {
        RType: "_handle_r_type",
        IType: "_handle_i_type",
        LoadType: "_handle_load",
        SType: "_handle_store",
        BType: "_handle_branch",
        JType: "_handle_jal",
        UType: "_handle_upper",
    }

    def __init__(self, sim, illegal_opcode="trap", out=None):
        if illegal_opcode not in ILLEGAL_POLICIES:
            raise ValueError(f"Invalid illegal opcode policy: {illegal_opcode!r}")
        self.sim = sim
        self.illegal_opcode = illegal_opcode
        self.out = out

    @property
    def regs(self):
        return self.sim.regs

    @property
    def memory(self):
        return self.sim.memory

    def _illegal_instruction(self, decoded, reason=None):
        raise IllegalInstruction(decoded.instr, reason)

    def _exec_r_type(self, d):
        rs1_u = self.regs[d.rs1]
        rs2_u = self.regs[d.rs2]
        shamt = rs2_u & 0x1f
        if d.funct7 not in (0x00, 0x20):
            self._illegal_instruction(d, f"funct7 0x{d.funct7:02x}")
        if d.funct7 == 0x20 and d.funct3 not in (0x0, 0x5):
            self._illegal_instruction(d, f"funct7 0x20 with funct3 {d.funct3}")
        if d.funct3 == 0x0:
            if d.funct7 == 0x00:  # ADD
                return rs1_u + rs2_u
            return rs1_u - rs2_u  # SUB
        elif d.funct3 == 0x1:  # SLL
            return rs1_u << shamt
        elif d.funct3 == 0x2:  # SLT
            return 1 if to_s32(rs1_u) < to_s32(rs2_u) else 0
        elif d.funct3 == 0x3:  # SLTU
            return 1 if rs1_u < rs2_u else 0
        elif d.funct3 == 0x4:  # XOR
            return rs1_u ^ rs2_u
        elif d.funct3 == 0x5:
            if d.funct7 == 0x20:  # SRA
                return sra32(rs1_u, shamt)
            return rs1_u >> shamt  # SRL
        elif d.funct3 == 0x6:  # OR
            return rs1_u | rs2_u
        else:  # AND
            return rs1_u & rs2_u

    def _exec_i_type(self, d):
        rs1_u = self.regs[d.rs1]
        imm = d.imm
        shamt = imm & 0x1f
        if d.funct3 == 0x0:  # ADDI
            return rs1_u + imm
        elif d.funct3 == 0x2:  # SLTI
            return 1 if to_s32(rs1_u) < to_s32(imm) else 0
        elif d.funct3 == 0x3:  # SLTIU
            return 1 if rs1_u < imm else 0
        elif d.funct3 == 0x4:  # XORI
            return rs1_u ^ imm
        elif d.funct3 == 0x6:  # ORI
            return rs1_u | imm
        elif d.funct3 == 0x7:  # ANDI
            return rs1_u & imm
        elif d.funct3 == 0x1:  # SLLI
            if d.funct7 != 0x00:
                self._illegal_instruction(d, f"slli funct7 0x{d.funct7:02x}")
            return rs1_u << shamt
        else:
            # imm[10] (funct7 0x20) picks the arithmetic shift
            if d.funct7 == 0x20:  # SRAI
                return sra32(rs1_u, shamt)
            if d.funct7 != 0x00:
                self._illegal_instruction(d, f"srli/srai funct7 0x{d.funct7:02x}")
            return rs1_u >> shamt  # SRLI

    def _exec_load(self, d):
        addr = u32(self.regs[d.rs1] + d.imm)
        if d.funct3 == 0x0:  # LB
            return u32(sign_extend(self.memory.read_byte(addr), 8))
        elif d.funct3 == 0x1:  # LH
            return u32(sign_extend(self.memory.read_half(addr), 16))
        elif d.funct3 == 0x2:  # LW
            return self.memory.read_word(addr)
        elif d.funct3 == 0x4:  # LBU
            return self.memory.read_byte(addr)
        elif d.funct3 == 0x5:  # LHU
            return self.memory.read_half(addr)
        self._illegal_instruction(d, f"load funct3 {d.funct3}")

    def _exec_store(self, d):
        addr = u32(self.regs[d.rs1] + d.imm)
        value = self.regs[d.rs2]
        if d.funct3 == 0x0:  # SB
            self.memory.write_byte(addr, value)
        elif d.funct3 == 0x1:  # SH
            self.memory.write_half(addr, value)
        elif d.funct3 == 0x2:  # SW
            self.memory.write_word(addr, value)
        else:
            self._illegal_instruction(d, f"store funct3 {d.funct3}")

    def _exec_branch(self, d):
        rs1_u = self.regs[d.rs1]
        rs2_u = self.regs[d.rs2]
        if d.funct3 == 0x0:  # BEQ
            return rs1_u == rs2_u
        elif d.funct3 == 0x1:  # BNE
            return rs1_u != rs2_u
        elif d.funct3 == 0x4:  # BLT
            return to_s32(rs1_u) < to_s32(rs2_u)
        elif d.funct3 == 0x5:  # BGE
            return to_s32(rs1_u) >= to_s32(rs2_u)
        elif d.funct3 == 0x6:  # BLTU
            return rs1_u < rs2_u
        elif d.funct3 == 0x7:  # BGEU
            return rs1_u >= rs2_u
        self._illegal_instruction(d, f"branch funct3 {d.funct3}")

    def _dispatch(self, decoded, next_pc):
        handler_name = self._HANDLERS.get(type(decoded))
        if handler_name is None:
            self._illegal_instruction(decoded, f"unknown opcode 0x{decoded.opcode:02x}")
        handler = getattr(self, handler_name)
        return handler(decoded, next_pc)

    def _handle_r_type(self, decoded, next_pc):
        self.regs[decoded.rd] = self._exec_r_type(decoded)
        return next_pc

    def _handle_i_type(self, decoded, next_pc):
        self.regs[decoded.rd] = self._exec_i_type(decoded)
        return next_pc

    def _handle_load(self, decoded, next_pc):
        self.regs[decoded.rd] = self._exec_load(decoded)
        return next_pc

    def _handle_store(self, decoded, next_pc):
        self._exec_store(decoded)
        return next_pc

    def _handle_branch(self, decoded, next_pc):
        if self._exec_branch(decoded):
            return self.sim.pc + decoded.imm
        return next_pc

    def _handle_jal(self, decoded, next_pc):
        self.regs[decoded.rd] = next_pc
        return self.sim.pc + decoded.imm

    def _handle_upper(self, decoded, next_pc):
        if decoded.add_pc:  # AUIPC
            self.regs[decoded.rd] = self.sim.pc + decoded.imm
        else:  # LUI
            self.regs[decoded.rd] = decoded.imm
        return next_pc

    def _commit_step(self, next_pc):
        self.regs.clear_zero()
        self.sim.pc = next_pc & 0xffffffff
        self.sim.instr_count += 1

    def execute(self, instr):
        """Run one instruction word against the owning simulator's state.

        Raises IllegalInstruction (under the "trap" policy) or
        MemoryAccessError; in both cases registers, memory and pc are left
        as they were before the call.
        """
        self.regs.clear_zero()
        decoded = decode(instr)
        next_pc = u32(self.sim.pc + 4)
        try:
            next_pc = self._dispatch(decoded, next_pc)
        except IllegalInstruction as e:
            if self.illegal_opcode != "skip":
                raise
            print(f"[CPU] Skipping {e} at PC=0x{self.sim.pc:08x}", file=self.out or sys.stdout)
        self._commit_step(next_pc)
        return decoded
