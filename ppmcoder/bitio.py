# ppmcoder/bitio.py
# Bit-granular reader/writer over binary file objects. Bits are big-endian
# within each byte; the writer pads the last byte with 0 bits.

END_OF_STREAM = -1


class BitInputStream:
    def __init__(self, inp):
        self.input = inp
        self.current_byte = 0    # -1 once the underlying stream is exhausted
        self.bits_remaining = 0
        self.bits_read = 0

    def read(self) -> int:
        """Return the next bit, or END_OF_STREAM. End of stream always falls on a byte boundary."""
        if self.current_byte == END_OF_STREAM:
            return END_OF_STREAM
        if self.bits_remaining == 0:
            chunk = self.input.read(1)
            if len(chunk) == 0:
                self.current_byte = END_OF_STREAM
                return END_OF_STREAM
            self.current_byte = chunk[0]
            self.bits_remaining = 8
        self.bits_remaining -= 1
        self.bits_read += 1
        return (self.current_byte >> self.bits_remaining) & 1

    def close(self):
        self.input.close()
        self.current_byte = END_OF_STREAM
        self.bits_remaining = 0


class BitOutputStream:
    def __init__(self, out):
        self.output = out
        self.current_byte = 0
        self.bits_filled = 0
        self.bits_written = 0

    def write(self, bit: int):
        if bit not in (0, 1):
            raise ValueError("Argument must be 0 or 1")
        self.current_byte = (self.current_byte << 1) | bit
        self.bits_filled += 1
        self.bits_written += 1
        if self.bits_filled == 8:
            self.output.write(bytes((self.current_byte,)))
            self.current_byte = 0
            self.bits_filled = 0

    def flush(self):
        # pad to a byte boundary; the underlying stream stays open
        while self.bits_filled != 0:
            self.current_byte <<= 1
            self.bits_filled += 1
            if self.bits_filled == 8:
                self.output.write(bytes((self.current_byte,)))
                self.current_byte = 0
                self.bits_filled = 0
        self.output.flush()

    def close(self):
        self.flush()
        self.output.close()
