# Field extraction and immediate decoding for 32-bit RV32I instruction words.
# Immediates come back as 32-bit unsigned patterns (two's complement), which is
# how the register file stores them.


def u32(val):
    return val & 0xffffffff


def to_s32(val):
    val &= 0xffffffff
    return val - 0x100000000 if val & 0x80000000 else val


def sign_extend(val, bits):
    return (val & ((1 << bits) - 1)) - (1 << bits) if (val & (1 << (bits - 1))) else val


def opcode(instr):
    return instr & 0x7f


def rd(instr):
    return (instr >> 7) & 0x1f


def funct3(instr):
    return (instr >> 12) & 0x7


def rs1(instr):
    return (instr >> 15) & 0x1f


def rs2(instr):
    return (instr >> 20) & 0x1f


def funct7(instr):
    return (instr >> 25) & 0x7f


def imm_i(instr):
    """Bits [31:20], sign-extended from bit 31."""
    return u32(sign_extend((instr >> 20) & 0xfff, 12))


def imm_s(instr):
    """Bits [31:25] and [11:7] joined into 12 bits, sign-extended from bit 31."""
    imm = (((instr >> 25) & 0x7f) << 5) | ((instr >> 7) & 0x1f)
    return u32(sign_extend(imm, 12))


def imm_b(instr):
    """13-bit branch offset, bit 0 always clear."""
    imm = (
        (((instr >> 31) & 0x1) << 12)
        | (((instr >> 7) & 0x1) << 11)
        | (((instr >> 25) & 0x3f) << 5)
        | (((instr >> 8) & 0xf) << 1)
    )
    return u32(sign_extend(imm, 13))


def imm_u(instr):
    return instr & 0xfffff000


def imm_j(instr):
    """21-bit jump offset, bit 0 always clear."""
    imm = (
        (((instr >> 31) & 0x1) << 20)
        | (((instr >> 12) & 0xff) << 12)
        | (((instr >> 20) & 0x1) << 11)
        | (((instr >> 21) & 0x3ff) << 1)
    )
    return u32(sign_extend(imm, 21))


def sra32(val, shamt):
    # Logical shift, then fill the vacated high bits when the sign bit is set.
    val &= 0xffffffff
    shamt &= 0x1f
    shifted = val >> shamt
    if val & 0x80000000 and shamt:
        shifted |= (0xffffffff << (32 - shamt)) & 0xffffffff
    return shifted
