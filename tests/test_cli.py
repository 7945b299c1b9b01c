import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from ppmcoder.cli import main


def test_compress_then_decompress(tmp_path):
    src = tmp_path / "in.txt"
    packed = tmp_path / "in.ppm"
    restored = tmp_path / "out.txt"
    src.write_bytes(b"she sells sea shells by the sea shore\n" * 20)

    assert main(["compress", str(src), str(packed), "--order", "2"]) == 0
    assert packed.stat().st_size < src.stat().st_size
    assert main(["decompress", str(packed), str(restored), "--order", "2"]) == 0
    assert restored.read_bytes() == src.read_bytes()


def test_truncated_input_fails_and_removes_output(tmp_path):
    src = tmp_path / "in.txt"
    packed = tmp_path / "in.ppm"
    restored = tmp_path / "out.txt"
    src.write_bytes(b"truncate me please " * 10)
    assert main(["compress", str(src), str(packed)]) == 0
    packed.write_bytes(packed.read_bytes()[:-1])

    assert main(["decompress", str(packed), str(restored)]) == 1
    assert not restored.exists()


def test_missing_input_fails(tmp_path):
    out = tmp_path / "never.ppm"
    assert main(["compress", str(tmp_path / "missing.txt"), str(out)]) == 1
    assert not out.exists()


def test_bad_order_is_rejected(tmp_path):
    src = tmp_path / "in.txt"
    src.write_bytes(b"x")
    assert main(["compress", str(src), str(tmp_path / "o"), "--order", "-2"]) == 2
