import io
import pathlib
import random
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from ppmcoder import arithmetic
from ppmcoder.arithmetic import ArithmeticDecoder, ArithmeticEncoder
from ppmcoder.bitio import BitInputStream, BitOutputStream
from ppmcoder.errors import CorruptStreamError
from ppmcoder.ppm import (EOF_SYMBOL, PPMCompressor, PPMModel, decode_symbol,
                          encode_symbol, update_history)

ORDERS = [-1, 0, 1, 2, 3, 4]

SAMPLES = {
    "empty": b"",
    "single": b"x",
    "all_bytes": bytes(range(256)),
    "text": b"It was the best of times, it was the worst of times, "
            b"it was the age of wisdom, it was the age of foolishness.",
    "runs": b"\x00" * 300 + b"\xff" * 300,
    "random": bytes(random.Random(1234).getrandbits(8) for _ in range(1500)),
}


@pytest.mark.parametrize("order", ORDERS)
@pytest.mark.parametrize("name", sorted(SAMPLES))
def test_roundtrip(order, name):
    data = SAMPLES[name]
    codec = PPMCompressor(order=order)
    assert codec.decompress_bytes(codec.compress_bytes(data)) == data


@pytest.mark.parametrize("order", ORDERS)
def test_input_of_order_plus_one_bytes(order):
    data = bytes(range(65, 65 + max(1, order + 1)))
    codec = PPMCompressor(order=order)
    assert codec.decompress_bytes(codec.compress_bytes(data)) == data


def test_ababa_order3():
    codec = PPMCompressor(order=3)
    assert codec.decompress_bytes(codec.compress_bytes(b"ABABA")) == b"ABABA"


@pytest.mark.parametrize("order", [0, 3])
def test_compression_is_deterministic(order):
    data = SAMPLES["text"] * 3
    assert PPMCompressor(order).compress_bytes(data) == PPMCompressor(order).compress_bytes(data)


def test_empty_input_still_produces_a_stream():
    blob = PPMCompressor(order=3).compress_bytes(b"")
    assert len(blob) >= 4
    assert PPMCompressor(order=3).decompress_bytes(blob) == b""


def test_repetitive_input_compresses():
    data = b"ab" * 1000
    blob = PPMCompressor(order=2).compress_bytes(data)
    assert len(blob) < 60


def test_higher_order_helps_on_text():
    data = SAMPLES["text"] * 10
    order0 = len(PPMCompressor(order=0).compress_bytes(data))
    order3 = len(PPMCompressor(order=3).compress_bytes(data))
    assert order3 < order0 < len(data)


@pytest.mark.parametrize("order", ORDERS)
@pytest.mark.parametrize("name", ["empty", "text", "random"])
def test_truncated_stream_is_detected(order, name):
    codec = PPMCompressor(order=order)
    blob = codec.compress_bytes(SAMPLES[name])
    with pytest.raises(CorruptStreamError):
        codec.decompress_bytes(blob[:-1])


def test_stats_count_order_minus1_symbols():
    data = b"abracadabra"
    codec = PPMCompressor(order=2)
    codec.compress_bytes(data)
    assert codec.last_stats["symbols"] == len(data) + 1
    # new symbols and EOF are the only ones that reach order -1
    assert codec.last_stats["fallbacks"] == len(set(data)) + 1

    flat = PPMCompressor(order=-1)
    flat.compress_bytes(data)
    assert flat.last_stats["fallbacks"] == len(data) + 1
    assert flat.last_stats["escapes"] == 0


def test_update_history():
    history = []
    for s in (1, 2, 3, 4):
        update_history(history, s, 3)
    assert history == [4, 3, 2]
    update_history(history, 5, 0)
    assert history == [4, 3, 2]


@pytest.mark.parametrize("order", [0, 2, 4])
def test_encoder_and_decoder_models_stay_identical(order):
    data = SAMPLES["text"]

    out = io.BytesIO()
    bitout = BitOutputStream(out)
    enc = ArithmeticEncoder(bitout)
    model = PPMModel(order)
    history = []
    encoder_trees = []
    for b in data:
        encode_symbol(enc, model, history, b)
        model.increment_contexts(history, b)
        update_history(history, b, order)
        encoder_trees.append(model.snapshot())
    encode_symbol(enc, model, history, EOF_SYMBOL)
    enc.finish()
    bitout.flush()

    dec = ArithmeticDecoder(BitInputStream(io.BytesIO(out.getvalue())))
    model = PPMModel(order)
    history = []
    for expected_tree in encoder_trees:
        symbol = decode_symbol(dec, model, history)
        model.increment_contexts(history, symbol)
        update_history(history, symbol, order)
        assert model.snapshot() == expected_tree
    assert decode_symbol(dec, model, history) == EOF_SYMBOL


def test_roundtrip_through_rescaling(monkeypatch):
    # small limit so order-0/1 tables overflow; must stay above the 257 of order -1
    monkeypatch.setattr(arithmetic, "MAX_TOTAL", 300)
    data = b"a" * 700 + b"ab" * 200 + bytes(range(40))
    codec = PPMCompressor(order=1)
    blob = codec.compress_bytes(data)
    for _, ctx in codec.last_model.iter_contexts():
        assert 0 < ctx.frequencies.get_total() <= 300
    assert codec.decompress_bytes(blob) == data


def test_stream_api_roundtrip():
    src = io.BytesIO(SAMPLES["text"])
    packed = io.BytesIO()
    codec = PPMCompressor(order=3)
    codec.compress_stream(src, packed)
    assert len(packed.getvalue()) == (codec.last_stats["bits"] + 7) // 8
    restored = io.BytesIO()
    codec.decompress_stream(io.BytesIO(packed.getvalue()), restored)
    assert restored.getvalue() == SAMPLES["text"]
