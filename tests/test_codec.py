import io
import random
import threading

import pytest

from codec import HuffmanReader, HuffmanWriter
from distribution import Distribution
from errors import InvalidCodeError, TruncatedStreamError, UnknownSymbolError
from huffman import HuffmanNode, build_tree


def _encode(dist, data):
    sink = io.BytesIO()
    writer = HuffmanWriter.from_distribution(sink, dist)
    writer.write(data)
    return sink.getvalue(), writer.tree


def test_aaab_packs_into_single_byte():
    encoded, tree = _encode(Distribution.build(b"aaab"), b"aaab")
    # a=1, b=0 -> bits 1,1,1,0 laid out from the lowest bit
    assert encoded == b"\x07"

    reader = HuffmanReader(io.BytesIO(encoded), tree)
    assert reader.read(4) == b"aaab"


def test_roundtrip_text(text_sample):
    dist = Distribution.build(text_sample)
    message = b"the lazy dog jumped over the quick brown fox"
    encoded, tree = _encode(dist, message)
    assert len(encoded) < len(message)

    reader = HuffmanReader(io.BytesIO(encoded), tree)
    assert reader.read(len(message)) == message


@pytest.mark.parametrize("chunk_size", [1, 3, 4096])
def test_roundtrip_random_with_small_chunks(chunk_size):
    rng = random.Random(1234)
    sample = bytes(range(256)) + bytes(rng.getrandbits(8) % 16 for _ in range(2000))
    dist = Distribution.build(sample)
    message = bytes(rng.choice(sample) for _ in range(5000))
    encoded, tree = _encode(dist, message)

    reader = HuffmanReader(io.BytesIO(encoded), tree, chunk_size=chunk_size)
    out = bytearray()
    while len(out) < len(message):
        out += reader.read(min(97, len(message) - len(out)))
    assert bytes(out) == message


def test_unknown_symbol_writes_nothing():
    sink = io.BytesIO()
    writer = HuffmanWriter.from_distribution(sink, Distribution.build(b"aaab"))
    with pytest.raises(UnknownSymbolError) as exc:
        writer.write(b"aac")
    assert exc.value.symbol == ord("c")
    assert isinstance(exc.value, KeyError)
    assert "'c'(99)" in str(exc.value)
    assert sink.getvalue() == b""
    assert writer.bytes_written == 0


def test_each_write_call_is_byte_aligned():
    sink = io.BytesIO()
    writer = HuffmanWriter.from_distribution(sink, Distribution.build(b"aaab"))
    assert writer.write(b"a") == 1
    assert writer.write(b"b") == 1
    assert writer.write(b"") == 0
    assert sink.getvalue() == b"\x01\x00"
    assert writer.bytes_written == 2


def test_readinto_and_clean_end_of_stream():
    encoded, tree = _encode(Distribution.build(b"aabc"), b"a" * 8)
    assert encoded == b"\x00"

    reader = HuffmanReader(io.BytesIO(encoded), tree)
    buf = bytearray(10)
    assert reader.readinto(buf) == 8
    assert bytes(buf[:8]) == b"a" * 8
    assert reader.read(5) == b""


def test_read_all_includes_padding_symbols():
    # a=0, b=10, c=11; "ab" fills 3 bits and the 5 zero padding bits
    # are indistinguishable from five more "a" symbols.
    encoded, tree = _encode(Distribution.build(b"aabc"), b"ab")
    assert encoded == b"\x02"
    assert HuffmanReader(io.BytesIO(encoded), tree).read(2) == b"ab"
    assert HuffmanReader(io.BytesIO(encoded), tree).read() == b"ab" + b"a" * 5


def test_truncated_stream_raises_and_resumes(chunk_source):
    dist = Distribution.build(b"aabc")
    encoded, tree = _encode(dist, b"a" * 7 + b"b")
    assert encoded == b"\x80\x00"

    source = chunk_source([encoded[:1]])
    reader = HuffmanReader(source, tree)
    buf = bytearray(8)
    with pytest.raises(TruncatedStreamError) as exc:
        reader.readinto(buf)
    assert exc.value.decoded == 7
    assert isinstance(exc.value, EOFError)
    assert bytes(buf[:7]) == b"a" * 7

    source.chunks.append(encoded[1:])
    assert reader.read(1) == b"b"


def test_single_symbol_roundtrip_and_invalid_bit():
    dist = Distribution.build(b"zzzz")
    encoded, tree = _encode(dist, b"zzz")
    assert encoded == b"\x00"
    assert HuffmanReader(io.BytesIO(encoded), tree).read(3) == b"zzz"

    with pytest.raises(InvalidCodeError):
        HuffmanReader(io.BytesIO(b"\x01"), tree).read(1)


def test_reader_rejects_bad_chunk_size():
    tree = build_tree(Distribution.build(b"ab"))
    with pytest.raises(ValueError):
        HuffmanReader(io.BytesIO(b""), tree, chunk_size=0)


def test_leaf_root_is_rejected():
    leaf = HuffmanNode.leaf(ord("x"), 1)
    with pytest.raises(ValueError):
        HuffmanReader(io.BytesIO(b""), leaf)
    with pytest.raises(ValueError):
        HuffmanWriter(io.BytesIO(), leaf)


def test_readers_share_one_tree_across_threads(text_sample):
    dist = Distribution.build(text_sample)
    encoded, tree = _encode(dist, text_sample)
    results = [None] * 8

    def work(i):
        results[i] = HuffmanReader(io.BytesIO(encoded), tree).read(len(text_sample))

    threads = [threading.Thread(target=work, args=(i,)) for i in range(len(results))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results == [text_sample] * len(results)


class _OneByteSink:
    """Sink that accepts at most one byte per ``write`` call."""

    def __init__(self, stall=False):
        self.data = bytearray()
        self.calls = 0
        self.stall = stall

    def write(self, b):
        self.calls += 1
        if self.stall:
            return 0
        self.data += bytes(b[:1])
        return 1


def test_short_writes_are_retried_until_complete(text_sample):
    dist = Distribution.build(text_sample)
    expected, _ = _encode(dist, text_sample)

    sink = _OneByteSink()
    writer = HuffmanWriter.from_distribution(sink, dist)
    assert writer.write(text_sample) == len(text_sample)
    assert bytes(sink.data) == expected
    assert writer.bytes_written == len(expected)
    assert sink.calls == len(expected)


def test_sink_without_progress_raises():
    sink = _OneByteSink(stall=True)
    writer = HuffmanWriter.from_distribution(sink, Distribution.build(b"aaab"))
    with pytest.raises(OSError):
        writer.write(b"aaab")
    assert writer.bytes_written == 0


@pytest.mark.parametrize("size", [8, -1])
def test_truncated_read_keeps_decoded_symbols(chunk_source, size):
    encoded, tree = _encode(Distribution.build(b"aabc"), b"a" * 7 + b"b")
    reader = HuffmanReader(chunk_source([encoded[:1]]), tree)
    with pytest.raises(TruncatedStreamError) as exc:
        reader.read(size)
    assert exc.value.decoded == 7
    assert exc.value.data == b"a" * 7


def test_skewed_tree_codes_longer_than_machine_words():
    fib = [1, 1]
    while len(fib) < 80:
        fib.append(fib[-1] + fib[-2])
    dist = Distribution(dict(enumerate(fib)))
    message = bytes(range(80)) + bytes(reversed(range(80)))
    encoded, tree = _encode(dist, message)

    writer = HuffmanWriter(io.BytesIO(), tree)
    assert max(code.length for code in writer.code_table.values()) > 64

    reader = HuffmanReader(io.BytesIO(encoded), tree, chunk_size=1)
    assert reader.read(len(message)) == message
