from array import array
from enum import Enum
import logging
import random

from c8decode import Kind, decode, disassemble, format_listing
from c8screen import C8Screen

logger = logging.getLogger(__name__)

MEMORY_SIZE = 0x1000
# Where the hex digit sprites live.  0x000-0x1FF is reserved for the interpreter.
FONT_START = 0x50
PROGRAM_START = 0x200
NUM_REGISTERS = 16

FONT = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
        0x20, 0x60, 0x20, 0x20, 0x70,  # 1
        0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
        0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
        0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
        0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
        0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
        0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
        0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
        0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
        0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
        0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
        0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
        0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
        0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
        0xF0, 0x80, 0xF0, 0x80, 0x80]  # F

# Physical keys (as named by the keyboard layer, e.g. pygame.key.name()) to
# the sixteen keypad codes:
#   1 2 3 4      0 1 2 3
#   Q W E R  ->  4 5 6 7
#   A S D F      8 9 A B
#   Z X C V      C D E F
KEY_CODES = {
    '1': 0x0, '2': 0x1, '3': 0x2, '4': 0x3,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0x7,
    'a': 0x8, 's': 0x9, 'd': 0xA, 'f': 0xB,
    'z': 0xC, 'x': 0xD, 'c': 0xE, 'v': 0xF
}


class HaltReason(str, Enum):
    INVALID_PROGRAM_COUNTER = 'InvalidProgramCounter'
    STACK_UNDERFLOW = 'StackUnderflow'
    INVALID_MEMORY_ACCESS = 'InvalidMemoryAccess'
    USER_HALT = 'UserHalt'


class ProgramTooLarge(Exception):
    pass


def translate_key(name):
    # None for keys that are not on the keypad
    if name is None:
        return None
    return KEY_CODES.get(name.lower())


class C8Computer:

    def __init__(self, screen=None, rng=None, trace=False):
        self.screen = screen if screen is not None else C8Screen()
        self.rng = rng if rng is not None else random.Random()
        # When set, every cycle also returns a listing of the whole program
        self.trace = trace

        # One handler per instruction kind; execute() is the only dispatch point.
        self.operations = {
            Kind.CLS: self._00E0, Kind.RET: self._00EE,
            Kind.JP: self._1nnn, Kind.CALL: self._2nnn,
            Kind.SE_BYTE: self._3xkk, Kind.SNE_BYTE: self._4xkk, Kind.SE_REG: self._5xy0,
            Kind.LD_BYTE: self._6xkk, Kind.ADD_BYTE: self._7xkk,
            Kind.LD_REG: self._8xy0, Kind.OR: self._8xy1, Kind.AND: self._8xy2,
            Kind.XOR: self._8xy3, Kind.ADD_REG: self._8xy4, Kind.SUB: self._8xy5,
            Kind.SHR: self._8xy6, Kind.SUBN: self._8xy7, Kind.SHL: self._8xyE,
            Kind.SNE_REG: self._9xy0, Kind.LD_I: self._Annn, Kind.JP_V0: self._Bnnn,
            Kind.RND: self._Cxkk, Kind.DRW: self._Dxyn,
            Kind.SKP: self._Ex9E, Kind.SKNP: self._ExA1,
            Kind.LD_VX_DT: self._Fx07, Kind.LD_VX_K: self._Fx0A,
            Kind.LD_DT_VX: self._Fx15, Kind.LD_ST_VX: self._Fx18,
            Kind.ADD_I: self._Fx1E, Kind.LD_F: self._Fx29, Kind.LD_B: self._Fx33,
            Kind.LD_MEM_VX: self._Fx55, Kind.LD_VX_MEM: self._Fx65,
            Kind.UNKNOWN: self.invalid_op
        }
        self.reset()

    def reset(self):
        # 4096 Bytes of RAM
        self.RAM = array('B', [0 for i in range(MEMORY_SIZE)])
        # The 16 registers are named V0..VF
        self.V = array('B', [0 for i in range(NUM_REGISTERS)])
        # Special-purpose 16-bit register; low 12 are used for an address
        self.I = 0
        self.delay_register = 0
        self.sound_register = 0
        # Program Counter
        self.PC = PROGRAM_START
        # One could use RAM for the stack and use a stack pointer but a python List is simpler.
        self.stack = []
        self.load_font_sprites()
        self.screen.reset()
        self.halted = False
        self.halt_reason = None
        self.halted_msg = ''
        self.current_key = None
        self.blocking_on_key = False
        self.key_register = None

    def load_font_sprites(self):
        '''
        Video in the CHIP-8 is sprite-driven.  Each sprite is 8 pixels wide, and from 1-15 pixels high.
        A font representing 0..9 + A..F is required for proper operation.  Example for the character 2:

                   ****....
                   ...*....
                   ****....
                   *.......
                   ****....

        The font has to live in RAM in range 0x000-0x1FF, which is reserved for the interpreter.
        '''
        for i in range(len(FONT)):
            self.RAM[FONT_START + i] = FONT[i]

    def load_program(self, data):
        if len(data) > MEMORY_SIZE - PROGRAM_START:
            raise ProgramTooLarge('program is {} bytes; at most {} fit at 0x{:03X}'.format(
                len(data), MEMORY_SIZE - PROGRAM_START, PROGRAM_START))
        self.reset()
        for i, byte in enumerate(data):
            self.RAM[PROGRAM_START + i] = byte

    def load_rom(self, rom_file):
        with open(rom_file, "rb") as infile:
            data = infile.read()
        logger.info("Loaded %d bytes from %s", len(data), rom_file)
        self.load_program(data)

    def halt(self, reason, message=None):
        # Terminal until reset(); the first reason sticks
        if self.halted:
            return
        self.halted = True
        self.halt_reason = reason
        if message is None:
            message = getattr(reason, 'value', reason)
        self.halted_msg = message
        logger.info("Halted at PC 0x%03X: %s", self.PC, self.halted_msg)

    def set_current_key(self, code):
        assert code is None or 0 <= code <= 0xF
        self.current_key = code

    def press_key(self, code):
        # A pending Fx0A gets the key directly; the wait instruction is not run again.
        assert 0 <= code <= 0xF
        if self.blocking_on_key:
            self.V[self.key_register] = code
            self.blocking_on_key = False
            self.key_register = None
        else:
            self.current_key = code

    def release_key(self):
        self.current_key = None

    def tick_timers(self):
        # Called by the frame driver at 60 Hz.  Time stands still during Fx0A.
        if self.blocking_on_key:
            return
        if self.delay_register > 0:
            self.delay_register -= 1
        if self.sound_register > 0:
            self.sound_register -= 1

    def debug_dump(self, outfile):
        outfile.write("PC: 0x{}\n".format(hex(self.PC).upper()[2:]))
        if self.PC < MEMORY_SIZE - 1:
            outfile.write("Next instr.: 0x{}\n".format(hex(self.fetch()).upper()[2:]))
        outfile.write("I: 0x{}\n".format(hex(self.I).upper()[2:]))
        for i in range(16):
            outfile.write("V{}: 0x{}".format(hex(i).upper()[2], hex(self.V[i])[2:].zfill(2).upper()))
            if i % 4 == 3:
                outfile.write('\n')
            else:
                outfile.write('\t')
        outfile.write("delay register: 0x{}\n".format(hex(self.delay_register).upper()[2:]))
        outfile.write("sound register: 0x{}\n".format(hex(self.sound_register).upper()[2:]))
        outfile.write("stack: [{}]\n".format(", ".join("0x{}".format(hex(a).upper()[2:]) for a in self.stack)))
        if self.halted:
            outfile.write("halted: {}\n".format(self.halted_msg))
        if self.blocking_on_key:
            outfile.write("waiting for key into V{}\n".format(hex(self.key_register).upper()[2]))
        if self.trace:
            outfile.write("\nProgram:\n")
            outfile.write(format_listing(disassemble(self.RAM, PROGRAM_START)))
            outfile.write("\n")
        outfile.write("\n\nRAM:\n")
        for i in range(MEMORY_SIZE):
            if i % 32 == 0:
                outfile.write("0x{} - 0x{}:  ".format(hex(i)[2:].zfill(3).upper(), hex(i+31)[2:].zfill(3).upper()))
            outfile.write(hex(self.RAM[i])[2:].zfill(2).upper())
            if i % 32 == 31:
                outfile.write("\n")

    def fetch(self):
        # Instructions are stored big-endian
        return self.RAM[self.PC] << 8 | self.RAM[self.PC + 1]

    def cycle(self):
        '''
        Runs one instruction.  Returns the program listing when tracing, else None.

        Does nothing once halted, or while an Fx0A is waiting for a key; the frame
        driver is expected to stop calling in those states anyway.
        '''
        if self.halted or self.blocking_on_key:
            return None
        if self.PC >= MEMORY_SIZE - 2:
            self.halt(HaltReason.INVALID_PROGRAM_COUNTER,
                      "Invalid Program Counter: 0x{:03X}".format(self.PC))
            return None
        listing = None
        if self.trace:
            listing = disassemble(self.RAM, PROGRAM_START)
        instruction = decode(self.fetch())
        # Handlers see PC already pointing at the next instruction
        self.PC += 2
        self.execute(instruction)
        return listing

    def execute(self, instruction):
        self.operations[instruction.kind](instruction)

    def invalid_op(self, ins):
        logger.warning("Unknown instruction 0x%04X at 0x%03X, ignored", ins.word, self.PC - 2)

    def _memory_fault(self, address):
        self.halt(HaltReason.INVALID_MEMORY_ACCESS, "Invalid memory access: 0x{:X}".format(address))

    def _00E0(self, ins):
        # 00E0 - CLS
        # clear the screen
        self.screen.clear()

    def _00EE(self, ins):
        # 00EE - RET
        # Return from a subroutine
        if len(self.stack) == 0:
            self.halt(HaltReason.STACK_UNDERFLOW, "Return with an empty stack")
            return
        self.PC = self.stack.pop()

    def _1nnn(self, ins):
        # 1nnn - JP addr
        # Jump to location nnn
        self.PC = ins.nnn

    def _2nnn(self, ins):
        # 2nnn - CALL addr
        # Call subroutine at nnn
        self.stack.append(self.PC)
        # Technically - should check for stack overflow but not going to worry about it
        self.PC = ins.nnn

    def _3xkk(self, ins):
        # 3xkk - SE Vx, byte
        # Skip next instruction if Vx == kk
        if self.V[ins.x] == ins.kk:
            self.PC += 2

    def _4xkk(self, ins):
        # 4xkk - SNE Vx, byte
        # Skip next instruction if Vx != kk
        if self.V[ins.x] != ins.kk:
            self.PC += 2

    def _5xy0(self, ins):
        # 5xy0 - SE Vx, Vy
        # Skip next instruction if Vx == Vy
        if self.V[ins.x] == self.V[ins.y]:
            self.PC += 2

    def _6xkk(self, ins):
        # 6xkk - LD Vx, byte
        # Set Vx = kk
        self.V[ins.x] = ins.kk

    def _7xkk(self, ins):
        # 7xkk - ADD Vx, byte
        # Add value in kk to vx, stores result in vx, does NOT set overflow flag
        self.V[ins.x] = (self.V[ins.x] + ins.kk) & 0xFF

    def _8xy0(self, ins):
        # 8xy0 - LD Vx, Vy
        # Set Vx = Vy
        self.V[ins.x] = self.V[ins.y]

    def _8xy1(self, ins):
        # 8xy1 - OR Vx, Vy
        # Set Vx = Vx OR Vy.
        self.V[ins.x] = self.V[ins.x] | self.V[ins.y]

    def _8xy2(self, ins):
        # 8xy2 - AND Vx, Vy
        # Set Vx = Vx AND Vy
        self.V[ins.x] = self.V[ins.x] & self.V[ins.y]

    def _8xy3(self, ins):
        # 8xy3 - XOR Vx, Vy
        # Set Vx = Vx XOR Vy
        self.V[ins.x] = self.V[ins.x] ^ self.V[ins.y]

    # For the flag-setting 8xy_ instructions VF is written before Vx, so when
    # x is F the result wins over the flag.

    def _8xy4(self, ins):
        # 8xy4 - ADD Vx, Vy
        # Set Vx = Vx + Vy, set VF = carry.
        total = self.V[ins.x] + self.V[ins.y]
        if total > 255:
            self.V[0xF] = 1
        else:
            self.V[0xF] = 0
        self.V[ins.x] = total & 0xFF

    def _8xy5(self, ins):
        # 8xy5 - SUB Vx, Vy
        # Set Vx = Vx - Vy.  Set VF = NOT borrow (VF = 1 if Vx > Vy)
        vx, vy = self.V[ins.x], self.V[ins.y]
        if vx > vy:
            self.V[0xF] = 1
        else:
            self.V[0xF] = 0
        self.V[ins.x] = (vx - vy) & 0xFF

    def _8xy6(self, ins):
        # 8xy6 - SHR Vx
        # Shift Vx right by 1 in place; VF is the least significant bit before the shift
        vx = self.V[ins.x]
        self.V[0xF] = vx & 0x1
        self.V[ins.x] = vx >> 1

    def _8xy7(self, ins):
        # 8xy7 - SUBN Vx, Vy
        # Set Vx = Vy - Vx.  Set VF = NOT borrow (VF = 1 if Vy > Vx)
        vx, vy = self.V[ins.x], self.V[ins.y]
        if vy > vx:
            self.V[0xF] = 1
        else:
            self.V[0xF] = 0
        self.V[ins.x] = (vy - vx) & 0xFF

    def _8xyE(self, ins):
        # 8xyE - SHL Vx
        # Shift Vx left by 1 in place; VF is the most significant bit before the shift
        vx = self.V[ins.x]
        if vx & 0x80:
            self.V[0xF] = 0x1
        else:
            self.V[0xF] = 0x0
        self.V[ins.x] = (vx << 1) & 0xFF

    def _9xy0(self, ins):
        # 9xy0 - SNE Vx, Vy
        # Skip next instruction if Vx != Vy
        if self.V[ins.x] != self.V[ins.y]:
            self.PC += 2

    def _Annn(self, ins):
        # Annn - LD I, addr
        # The value of register I is set to nnn
        self.I = ins.nnn

    def _Bnnn(self, ins):
        # Bnnn - JP V0, addr
        # The program counter is set to nnn plus the value of V0
        self.PC = ins.nnn + self.V[0]

    def _Cxkk(self, ins):
        # Cxkk - RND Vx, byte
        # Set Vx = random byte AND kk
        self.V[ins.x] = self.rng.randrange(256) & ins.kk

    def _Dxyn(self, ins):
        # Dxyn - DRW Vx, Vy, nibble
        # The start coordinate wraps; the sprite itself is clipped at the right and
        # bottom edges.  See https://laurencescotford.com/chip-8-on-the-cosmac-vip-drawing-sprites/
        x = self.V[ins.x] % self.screen.xsize
        y = self.V[ins.y] % self.screen.ysize
        rows = min(ins.n, self.screen.ysize - y)
        if self.I + rows > MEMORY_SIZE:
            self._memory_fault(self.I + rows - 1)
            return
        collision = 0
        for i in range(rows):
            if self.screen.xor8px(x, y + i, self.RAM[self.I + i]):
                collision = 1
        self.V[0xF] = collision

    def _Ex9E(self, ins):
        # Ex9E - SKP Vx
        # Skip next instruction if the key with value of Vx is pressed
        if self.current_key == self.V[ins.x]:
            self.PC += 2

    def _ExA1(self, ins):
        # ExA1 - SKNP Vx
        # Skip next instruction if the key with value of Vx is NOT pressed
        if self.current_key != self.V[ins.x]:
            self.PC += 2

    def _Fx07(self, ins):
        # Fx07 - LD Vx, DT
        # The value of the Delay Timer is placed into Vx.
        self.V[ins.x] = self.delay_register

    def _Fx0A(self, ins):
        # Fx0A - LD Vx, K
        # Wait for a key press, store the value of the key in Vx.  A key already
        # down is consumed; otherwise the machine blocks until press_key().
        # PC has already moved past this instruction, so it is not re-run.
        if self.current_key is not None:
            self.V[ins.x] = self.current_key
            self.current_key = None
        else:
            self.blocking_on_key = True
            self.key_register = ins.x

    def _Fx15(self, ins):
        # Fx15 - LD DT, Vx
        # Set Delay Timer = Vx
        self.delay_register = self.V[ins.x]

    def _Fx18(self, ins):
        # Fx18 - LD ST, Vx
        # Set Sound Timer = Vx
        self.sound_register = self.V[ins.x]

    def _Fx1E(self, ins):
        # Fx1E - ADD I, Vx
        # VF flags a result past the end of memory and is left alone otherwise
        self.I = (self.I + self.V[ins.x]) & 0xFFFF
        if self.I > MEMORY_SIZE:
            self.V[0xF] = 1

    def _Fx29(self, ins):
        # Fx29 - LD F, Vx
        # Set I = location of sprite for digit Vx ("F" = Font); each character is 5 bytes
        self.I = FONT_START + 5 * self.V[ins.x]

    def _Fx33(self, ins):
        # Fx33 - LD B, Vx
        # Store binary coded decimal value of Vx in memory locations I, I+1, I+2
        if self.I + 2 >= MEMORY_SIZE:
            self._memory_fault(self.I + 2)
            return
        val = self.V[ins.x]
        self.RAM[self.I] = val // 100
        self.RAM[self.I + 1] = (val // 10) % 10
        self.RAM[self.I + 2] = val % 10

    def _Fx55(self, ins):
        # Fx55 - LD [I], Vx
        # Store registers V0 through Vx in memory starting at location I.  I is not
        # incremented, as in modern interpreters.
        if self.I + ins.x >= MEMORY_SIZE:
            self._memory_fault(self.I + ins.x)
            return
        for i in range(ins.x + 1):
            self.RAM[self.I + i] = self.V[i]

    def _Fx65(self, ins):
        # Fx65 - LD Vx, [I]
        # Read values from memory starting at location I into registers V0 through Vx
        if self.I + ins.x >= MEMORY_SIZE:
            self._memory_fault(self.I + ins.x)
            return
        for i in range(ins.x + 1):
            self.V[i] = self.RAM[self.I + i]
