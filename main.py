import argparse
import io
import os
import sys
import tempfile

from typing import List, Optional
from codec import DEFAULT_CHUNK_SIZE, HuffmanReader, HuffmanWriter
from distribution import Distribution
from errors import HuffmanError, TruncatedStreamError
from huffman import average_code_length, build_code_table, build_tree

DEMO_SAMPLE = b"the quick brown fox jumped over the lazy dog"  #: Demo input


def _non_negative_int(value: str) -> int:
    """Argparse type accepting integers ``>= 0``.

    :raises argparse.ArgumentTypeError: If ``value`` is negative or not
        an integer.
    """
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {n}")
    return n


def _positive_int(value: str) -> int:
    n = _non_negative_int(value)
    if n == 0:
        raise argparse.ArgumentTypeError("must be positive: 0")
    return n


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Huffman codec over a byte distribution sampled from a file"
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    demo = subparsers.add_parser(
        "demo", help="Encode a fixed sentence to a temp file and decode it back"
    )
    demo.add_argument(
        "--text",
        default=None,
        help="Sentence to use instead of the built-in one",
    )

    stats = subparsers.add_parser(
        "stats", aliases=["s"], help="Show a sample's distribution and codes"
    )
    stats.add_argument("sample", help="File whose bytes form the sample")

    encode = subparsers.add_parser(
        "encode", aliases=["e"], help="Compress a file"
    )
    encode.add_argument("input", help="File to compress")
    encode.add_argument(
        "--sample",
        required=True,
        help="File the distribution is built from (needed again to decode)",
    )
    encode.add_argument(
        "-o", "--output", required=True, help="Output file path"
    )

    decode = subparsers.add_parser(
        "decode", aliases=["d"], help="Decompress a file"
    )
    decode.add_argument("input", help="File to decompress")
    decode.add_argument(
        "--sample",
        required=True,
        help="The same sample file used for encoding",
    )
    decode.add_argument(
        "-n",
        "--count",
        type=_non_negative_int,
        required=True,
        help="Number of symbols to decode (the stream does not store it)",
    )
    decode.add_argument(
        "-o", "--output", required=True, help="Output file path"
    )
    decode.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Bytes read per refill (default: {DEFAULT_CHUNK_SIZE})",
    )

    return parser


def _fmt_pct(done: int, total: int) -> str:
    """Format a percentage string like ``12.34%``.

    :param done: Units completed.
    :type done: int
    :param total: Total units.
    :type total: int
    :returns: Percentage.
    :rtype: str
    """
    if total <= 0:
        return "0%"
    pct = 100.0 * (done / float(total))
    return f"{pct:6.2f}%"


def _fmt_bytes(n: int) -> str:
    """Format a byte count into a human-readable string.

    :param n: Number of bytes.
    :type n: int
    :returns: Human-readable string.
    :rtype: str
    """
    for unit in ['', 'Ki', 'Mi', 'Gi', 'Ti']:
        if abs(n) < 1024:
            return f"{n:.2f} {unit}B"
        n /= 1024
    return f"{n:.2f} PiB"


def _fmt_symbol(symbol: int) -> str:
    char = chr(symbol) if 32 <= symbol < 127 else "."
    return f"{symbol:3d}({char})"


def _read_sample(path: str) -> Distribution:
    """Build a distribution from the bytes of the file at ``path``.

    :raises FileNotFoundError: If ``path`` does not exist.
    :raises EmptyDistributionError: If the file is empty.
    """
    with open(path, "rb") as f:
        return Distribution.build(f.read())


def run_demo(text: Optional[bytes] = None) -> bytes:
    """Encode ``text`` into a temp file, reopen it and decode it back.

    The reader is handed the writer's tree directly, since the file holds
    only the packed codes.

    :param text: Bytes to round-trip; :data:`DEMO_SAMPLE` by default.
    :type text: bytes | None
    :returns: The decoded bytes.
    :rtype: bytes
    """
    data = DEMO_SAMPLE if text is None else text
    dist = Distribution.build(data)

    fd, tmp_name = tempfile.mkstemp(suffix=".huff")
    try:
        with os.fdopen(fd, "wb") as f:
            writer = HuffmanWriter.from_distribution(f, dist)
            writer.write(data)
        wrote = writer.bytes_written
        print("Wrote:", wrote, "Originally:", len(data))
        print(f"Compression rate: {_fmt_pct(len(data) - wrote, len(data)).strip()}")

        with open(tmp_name, "rb") as f:
            reader = HuffmanReader(f, writer.tree)
            decoded = reader.read(len(data))
        print("Decompressed into:", decoded.decode("latin-1"))
    finally:
        os.remove(tmp_name)
    return decoded


def show_stats(sample_path: str) -> None:
    """Print the distribution of a sample file and the codes it yields.

    :param sample_path: File whose bytes form the sample.
    :type sample_path: str
    :returns: None
    :rtype: None
    """
    dist = _read_sample(sample_path)
    table = build_code_table(build_tree(dist))
    print(dist)
    for symbol, code in table.items():
        print(f"{_fmt_symbol(symbol)}  {dist.count_of(symbol):>8}  {code}")
    print(f"Entropy: {dist.entropy():.4f} bits/symbol")
    print(f"Average code length: {average_code_length(table, dist):.4f} bits/symbol")


def encode_file(input_path: str, sample_path: str, output_path: str) -> int:
    """Compress ``input_path`` with the tree built from ``sample_path``.

    :param input_path: File to compress.
    :type input_path: str
    :param sample_path: File the distribution is built from.
    :type sample_path: str
    :param output_path: Destination path.
    :type output_path: str
    :returns: Number of symbols encoded (pass it to ``decode --count``).
    :rtype: int
    :raises UnknownSymbolError: If the input has a byte the sample lacks.
    """
    dist = _read_sample(sample_path)
    with open(input_path, "rb") as f:
        data = f.read()
    buf = io.BytesIO()
    writer = HuffmanWriter(buf, build_tree(dist))
    # Encode before opening the output so a failure leaves no file behind.
    writer.write(data)
    encoded = buf.getvalue()
    with open(output_path, "wb") as out:
        out.write(encoded)
    print("Symbols:", len(data))
    print("Size before compression: ", _fmt_bytes(len(data)))
    print("Size after compression: ", _fmt_bytes(len(encoded)))
    if encoded:
        print(f"Compression ratio: {len(data) / len(encoded):.2f}")
    return len(data)


def decode_file(input_path: str, sample_path: str, count: int,
                output_path: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Decompress ``count`` symbols from ``input_path``.

    :param input_path: File to decompress.
    :type input_path: str
    :param sample_path: The sample file used when encoding.
    :type sample_path: str
    :param count: Number of symbols to decode.
    :type count: int
    :param output_path: Destination path.
    :type output_path: str
    :param chunk_size: Bytes read from the input per refill.
    :type chunk_size: int
    :returns: Number of symbols decoded.
    :rtype: int
    :raises ValueError: If ``count`` is negative.
    :raises TruncatedStreamError: If the input ends inside a symbol; the
        symbols decoded before that point are still written out.
    """
    if count < 0:
        raise ValueError(f"Symbol count must not be negative, got {count}")
    dist = _read_sample(sample_path)
    with open(input_path, "rb") as f:
        reader = HuffmanReader(f, build_tree(dist), chunk_size=chunk_size)
        try:
            data = reader.read(count)
        except TruncatedStreamError as e:
            # Keep what was decoded before the cut.
            with open(output_path, "wb") as out:
                out.write(e.data)
            raise
    with open(output_path, "wb") as out:
        out.write(data)
    if len(data) < count:
        print(f"[!] Input ended after {len(data)} of {count} symbols")
    return len(data)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments to parse instead of ``sys.argv[1:]``.
    :type argv: List[str] | None
    :returns: Process exit status.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)

    try:
        if args.cmd == "demo":
            text = args.text.encode("utf-8") if args.text is not None else None
            run_demo(text)
        elif args.cmd in ["stats", "s"]:
            show_stats(args.sample)
        elif args.cmd in ["encode", "e"]:
            encode_file(args.input, args.sample, args.output)
        elif args.cmd in ["decode", "d"]:
            decode_file(
                args.input, args.sample, args.count, args.output,
                chunk_size=args.chunk_size,
            )
    except FileNotFoundError as e:
        print(f"[!] File not found: {e.filename}")
        return 1
    except HuffmanError as e:
        print(f"[!] {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
