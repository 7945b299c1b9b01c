# ppmcoder/arithmetic.py
# Binary arithmetic coder (carry-less E1/E2/E3 renormalization) and the
# frequency tables it codes against. All state is kept to STATE_BITS bits.

import bisect
import logging
from typing import List

from ppmcoder.bitio import END_OF_STREAM
from ppmcoder.errors import CorruptStreamError, ModelError, RescaleInvariantError

log = logging.getLogger(__name__)

STATE_BITS = 32
FULL = 1 << STATE_BITS
MASK = FULL - 1
HALF = FULL >> 1         # top bit, 1000...0
QUARTER = HALF >> 1      # second bit, 0100...0
MIN_RANGE = QUARTER + 2
# Largest table total the coder accepts: every symbol with a nonzero count
# still gets a nonempty sub-range when the interval is at its narrowest.
MAX_TOTAL = MIN_RANGE


# -------------------------------
# Frequency tables
# -------------------------------

class FrequencyTable:
    """Adaptive counts for one context, one slot per symbol.

    The cumulative array is rebuilt lazily, after the first lookup that
    follows a change, so a table updated several times between two coding
    steps pays for a single rebuild.
    """

    def __init__(self, counts):
        self.frequencies = [int(c) for c in counts]
        if any(c < 0 for c in self.frequencies):
            raise ValueError("Negative frequency")
        self.total = sum(self.frequencies)
        self._cumulative = None

    def get_symbol_limit(self) -> int:
        return len(self.frequencies)

    def get(self, symbol: int) -> int:
        return self.frequencies[symbol]

    def get_total(self) -> int:
        return self.total

    def _cumulative_counts(self) -> List[int]:
        if self._cumulative is None:
            cum = [0]
            running = 0
            for c in self.frequencies:
                running += c
                cum.append(running)
            self._cumulative = cum
        return self._cumulative

    def get_low(self, symbol: int) -> int:
        return self._cumulative_counts()[symbol]

    def get_high(self, symbol: int) -> int:
        return self._cumulative_counts()[symbol + 1]

    def symbol_for(self, value: int) -> int:
        """Symbol whose [low, high) cumulative range contains value, or -1."""
        if not 0 <= value < self.total:
            return -1
        cum = self._cumulative_counts()
        # highest index with cum[i] <= value; zero-count slots share their
        # low with the next slot, so bisect_right skips them
        return bisect.bisect_right(cum, value) - 1

    def set(self, symbol: int, count: int):
        if count < 0:
            raise ValueError("Negative frequency")
        self.total += count - self.frequencies[symbol]
        self.frequencies[symbol] = count
        self._cumulative = None

    def increment(self, symbol: int):
        self.frequencies[symbol] += 1
        self.total += 1
        self._cumulative = None

    def observe(self, symbol: int, escape_symbol: int):
        # PPM-C: a symbol seen for the first time here also raises the escape
        # count, so escape mass tracks the number of distinct symbols.
        if self.frequencies[symbol] == 0:
            self.frequencies[symbol] = 1
            self.frequencies[escape_symbol] += 1
            self.total += 2
        else:
            self.frequencies[symbol] += 1
            self.total += 1
        self._cumulative = None
        if self.total > MAX_TOTAL:
            self.rescale()

    def rescale(self):
        before = self.total
        while self.total > MAX_TOTAL:
            self.frequencies = [max(1, c >> 1) if c > 0 else 0 for c in self.frequencies]
            self.total = sum(self.frequencies)
            if self.total == 0:
                raise RescaleInvariantError("Rescaled table has zero total")
        self._cumulative = None
        log.debug("rescaled frequency table: total %d -> %d", before, self.total)

    def __eq__(self, other):
        if not isinstance(other, FrequencyTable):
            return NotImplemented
        return self.frequencies == other.frequencies

    def __repr__(self):
        nonzero = {s: c for s, c in enumerate(self.frequencies) if c}
        return f"FrequencyTable(total={self.total}, counts={nonzero})"


class FlatFrequencyTable(FrequencyTable):
    """Uniform table, every symbol count 1. Never changes."""

    def __init__(self, num_symbols: int):
        if num_symbols < 1:
            raise ValueError("Number of symbols must be positive")
        super().__init__([1] * num_symbols)

    def get_low(self, symbol: int) -> int:
        return symbol

    def get_high(self, symbol: int) -> int:
        return symbol + 1

    def symbol_for(self, value: int) -> int:
        if not 0 <= value < self.total:
            return -1
        return value

    def set(self, symbol, count):
        raise TypeError("FlatFrequencyTable is immutable")

    def increment(self, symbol):
        raise TypeError("FlatFrequencyTable is immutable")

    def observe(self, symbol, escape_symbol):
        raise TypeError("FlatFrequencyTable is immutable")

    def rescale(self):
        raise TypeError("FlatFrequencyTable is immutable")


# -------------------------------
# Arithmetic Encoder / Decoder (bit-oriented)
# -------------------------------

class _ArithmeticCoder:
    def __init__(self):
        self.low = 0
        self.high = MASK
        self.symbols_coded = 0

    def _narrow(self, table: FrequencyTable, symbol: int):
        total = table.get_total()
        if total > MAX_TOTAL:
            raise ModelError(f"Table total {total} exceeds {MAX_TOTAL}")
        if not 0 <= symbol < table.get_symbol_limit():
            raise ModelError(f"Symbol {symbol} outside table of {table.get_symbol_limit()}")
        low_count = table.get_low(symbol)
        high_count = table.get_high(symbol)
        if low_count == high_count:
            raise ModelError(f"Symbol {symbol} has zero frequency")

        rng = self.high - self.low + 1
        self.high = self.low + (rng * high_count // total) - 1
        self.low = self.low + (rng * low_count // total)
        self.symbols_coded += 1


class ArithmeticEncoder(_ArithmeticCoder):
    def __init__(self, bitout):
        super().__init__()
        self.output = bitout
        self.pending = 0

    def _emit_bit(self, bit: int):
        self.output.write(bit)
        while self.pending > 0:
            self.output.write(1 - bit)
            self.pending -= 1

    def encode_symbol(self, table: FrequencyTable, symbol: int):
        self._narrow(table, symbol)

        while True:
            if self.high < HALF:
                self._emit_bit(0)
                self.low = (self.low << 1) & MASK
                self.high = ((self.high << 1) & MASK) | 1
            elif self.low >= HALF:
                self._emit_bit(1)
                self.low = ((self.low - HALF) << 1) & MASK
                self.high = (((self.high - HALF) << 1) & MASK) | 1
            elif self.low >= QUARTER and self.high < HALF + QUARTER:
                self.pending += 1
                self.low = ((self.low - QUARTER) << 1) & MASK
                self.high = (((self.high - QUARTER) << 1) & MASK) | 1
            else:
                break

    def finish(self):
        # low < HALF <= high, so HALF (a 1 followed by zeros) lies in the
        # interval. Writing the whole register means the decoder never reads
        # past the end of the stream.
        self._emit_bit(1)
        for _ in range(STATE_BITS - 1):
            self.output.write(0)
        log.debug("encoder finished after %d coded symbols", self.symbols_coded)


class ArithmeticDecoder(_ArithmeticCoder):
    """Decoder side of ArithmeticEncoder.

    ``padding_bits`` is how many missing bits past the end of the input may be
    read as 0 before the stream counts as truncated. Streams written by
    ArithmeticEncoder.finish need none.
    """

    def __init__(self, bitin, padding_bits: int = 0):
        super().__init__()
        self.input = bitin
        self.padding_bits = padding_bits
        self.missing_bits = 0
        self.code = 0
        for _ in range(STATE_BITS):
            self.code = (self.code << 1) | self._read_bit()

    def _read_bit(self) -> int:
        bit = self.input.read()
        if bit == END_OF_STREAM:
            self.missing_bits += 1
            if self.missing_bits > self.padding_bits:
                raise CorruptStreamError("Compressed stream ended unexpectedly")
            return 0
        return bit

    def decode_symbol(self, table: FrequencyTable) -> int:
        total = table.get_total()
        if not 0 < total <= MAX_TOTAL:
            raise ModelError(f"Cannot decode with table total {total}")
        rng = self.high - self.low + 1
        offset = self.code - self.low
        value = min(total - 1, ((offset + 1) * total - 1) // rng)
        symbol = table.symbol_for(value)
        if symbol < 0:
            raise CorruptStreamError(f"No symbol owns cumulative value {value}")

        self._narrow(table, symbol)
        while True:
            if self.high < HALF:
                pass
            elif self.low >= HALF:
                self.low -= HALF
                self.high -= HALF
                self.code -= HALF
            elif self.low >= QUARTER and self.high < HALF + QUARTER:
                self.low -= QUARTER
                self.high -= QUARTER
                self.code -= QUARTER
            else:
                break
            self.low = (self.low << 1) & MASK
            self.high = ((self.high << 1) & MASK) | 1
            self.code = ((self.code << 1) & MASK) | self._read_bit()
        return symbol
