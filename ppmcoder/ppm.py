# ppmcoder/ppm.py
# Deterministic PPM-C (Prediction by Partial Matching, escape=C) driving the
# arithmetic coder in ppmcoder.arithmetic. Works on bytes input (binary-safe).
# The compressed stream carries no header: both sides must use the same order.

import io
import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ppmcoder.arithmetic import (ArithmeticDecoder, ArithmeticEncoder,
                                 FlatFrequencyTable, FrequencyTable)
from ppmcoder.bitio import BitInputStream, BitOutputStream

log = logging.getLogger(__name__)

EOF_SYMBOL = 256        # escape inside a context, end of stream at order -1
ALPHABET_BYTES = 256    # 0..255
SYMBOL_LIMIT = ALPHABET_BYTES + 1  # includes EOF
# Must be at least -1. Memory grows as O(257^order).
MODEL_ORDER = 3


# -------------------------------
# PPM model
# -------------------------------

class Context:
    __slots__ = ("frequencies", "subcontexts")

    def __init__(self, symbol_limit: int, escape_symbol: int, has_subcontexts: bool):
        self.frequencies = FrequencyTable([0] * symbol_limit)
        # every context can escape from the moment it exists
        self.frequencies.increment(escape_symbol)
        self.subcontexts: Optional[Dict[int, "Context"]] = {} if has_subcontexts else None


class PPMModel:
    """Tree of contexts keyed by trailing history, most recent symbol first.

    The root is the order-0 context; the child of a node for symbol ``s``
    extends that node's history by one older symbol ``s``. Children are
    created only when their history is first observed.
    """

    def __init__(self, order: int = MODEL_ORDER, symbol_limit: int = SYMBOL_LIMIT,
                 escape_symbol: int = EOF_SYMBOL):
        if order < -1 or symbol_limit <= 0 or not 0 <= escape_symbol < symbol_limit:
            raise ValueError("Invalid model parameters")
        self.order = order
        self.symbol_limit = symbol_limit
        self.escape_symbol = escape_symbol
        if order >= 0:
            self.root: Optional[Context] = Context(symbol_limit, escape_symbol, order >= 1)
        else:
            self.root = None
        self.order_minus1_freqs = FlatFrequencyTable(symbol_limit)

    def contexts_for_history(self, history: Sequence[int]) -> List[Context]:
        """Existing contexts for the history, longest first, ending at order 0."""
        if self.root is None:
            return []
        path = [self.root]
        ctx = self.root
        for sym in history[:self.order]:
            ctx = ctx.subcontexts.get(sym)
            if ctx is None:
                break
            path.append(ctx)
        path.reverse()
        return path

    def increment_contexts(self, history: Sequence[int], symbol: int):
        if self.root is None:
            return
        if len(history) > self.order or not 0 <= symbol < self.symbol_limit \
                or symbol == self.escape_symbol:
            raise ValueError("History too long or symbol out of range")

        ctx = self.root
        ctx.frequencies.observe(symbol, self.escape_symbol)
        for i, sym in enumerate(history):
            child = ctx.subcontexts.get(sym)
            if child is None:
                child = Context(self.symbol_limit, self.escape_symbol, i + 1 < self.order)
                ctx.subcontexts[sym] = child
            ctx = child
            ctx.frequencies.observe(symbol, self.escape_symbol)

    def context_for(self, history: Sequence[int]) -> Optional[Context]:
        """The context for exactly this history, or None if never observed."""
        if self.root is None or len(history) > self.order:
            return None
        ctx = self.root
        for sym in history:
            ctx = ctx.subcontexts.get(sym)
            if ctx is None:
                return None
        return ctx

    def iter_contexts(self) -> Iterator[Tuple[Tuple[int, ...], Context]]:
        if self.root is None:
            return
        stack = [((), self.root)]
        while stack:
            history, ctx = stack.pop()
            yield history, ctx
            if ctx.subcontexts:
                for sym in sorted(ctx.subcontexts, reverse=True):
                    stack.append((history + (sym,), ctx.subcontexts[sym]))

    def snapshot(self) -> Dict[Tuple[int, ...], Tuple[int, ...]]:
        return {h: tuple(ctx.frequencies.frequencies) for h, ctx in self.iter_contexts()}

    def context_counts(self) -> List[int]:
        counts = [0] * (self.order + 1)
        for history, _ in self.iter_contexts():
            counts[len(history)] += 1
        return counts


# -------------------------------
# symbol codec loop
# -------------------------------

def encode_symbol(enc: ArithmeticEncoder, model: PPMModel, history: Sequence[int], symbol: int) -> int:
    """Code symbol at the longest context that knows it, escaping from the others.

    Returns the number of escapes written. It equals the number of existing
    contexts when the symbol had to go to the order -1 table.
    """
    escapes = 0
    for ctx in model.contexts_for_history(history):
        if symbol != model.escape_symbol and ctx.frequencies.get(symbol) > 0:
            enc.encode_symbol(ctx.frequencies, symbol)
            return escapes
        enc.encode_symbol(ctx.frequencies, model.escape_symbol)
        escapes += 1
    # order -1: every symbol, EOF included, has count 1
    enc.encode_symbol(model.order_minus1_freqs, symbol)
    return escapes


def decode_symbol(dec: ArithmeticDecoder, model: PPMModel, history: Sequence[int]) -> int:
    for ctx in model.contexts_for_history(history):
        symbol = dec.decode_symbol(ctx.frequencies)
        if symbol != model.escape_symbol:
            return symbol
    return dec.decode_symbol(model.order_minus1_freqs)


def update_history(history: List[int], symbol: int, order: int):
    """Prepend symbol, dropping the oldest entry beyond order."""
    if order < 1:
        return
    if len(history) >= order:
        history.pop()
    history.insert(0, symbol)


# -------------------------------
# PPM-C compressor (public)
# -------------------------------

class PPMCompressor:
    def __init__(self, order: int = MODEL_ORDER):
        if int(order) < -1:
            raise ValueError("Model order must be at least -1")
        self.order = int(order)
        self.last_stats: Dict[str, int] = {}
        self.last_model: Optional[PPMModel] = None

    def compress_stream(self, inp, out):
        bitout = BitOutputStream(out)
        enc = ArithmeticEncoder(bitout)
        model = PPMModel(order=self.order)
        history: List[int] = []
        stats = {"symbols": 0, "escapes": 0, "fallbacks": 0}

        while True:
            chunk = inp.read(1 << 16)
            if not chunk:
                break
            for b in chunk:
                self._count(stats, model, history, encode_symbol(enc, model, history, b))
                model.increment_contexts(history, b)
                update_history(history, b, self.order)

        self._count(stats, model, history, encode_symbol(enc, model, history, EOF_SYMBOL))
        enc.finish()
        bitout.flush()
        stats["bits"] = bitout.bits_written
        self.last_stats = stats
        self.last_model = model
        log.debug("compressed %d bytes into %d bits (order %d)",
                  stats["symbols"] - 1, stats["bits"], self.order)

    def decompress_stream(self, inp, out):
        dec = ArithmeticDecoder(BitInputStream(inp))
        model = PPMModel(order=self.order)
        history: List[int] = []
        buf = bytearray()
        written = 0

        while True:
            symbol = decode_symbol(dec, model, history)
            if symbol == EOF_SYMBOL:
                break
            buf.append(symbol)
            if len(buf) >= 1 << 16:
                out.write(bytes(buf))
                written += len(buf)
                buf.clear()
            model.increment_contexts(history, symbol)
            update_history(history, symbol, self.order)
        out.write(bytes(buf))
        written += len(buf)

        self.last_stats = {"symbols": written + 1, "bits": dec.input.bits_read}
        self.last_model = model
        log.debug("decompressed %d bytes (order %d)", written, self.order)

    def compress_bytes(self, data: bytes) -> bytes:
        out = io.BytesIO()
        self.compress_stream(io.BytesIO(data), out)
        return out.getvalue()

    def decompress_bytes(self, blob: bytes) -> bytes:
        out = io.BytesIO()
        self.decompress_stream(io.BytesIO(blob), out)
        return out.getvalue()

    @staticmethod
    def _count(stats, model, history, escapes):
        stats["symbols"] += 1
        stats["escapes"] += escapes
        if escapes == len(model.contexts_for_history(history)):
            stats["fallbacks"] += 1
