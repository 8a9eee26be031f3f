from typing import BinaryIO, Mapping, Optional

from bitops import BitWriter, iter_bits
from distribution import Distribution
from errors import InvalidCodeError, TruncatedStreamError, UnknownSymbolError
from huffman import Code, HuffmanNode, build_code_table, build_tree

DEFAULT_CHUNK_SIZE = 4096  #: Bytes pulled from the source per refill


def _check_root(root: HuffmanNode):
    # A leaf root would give its symbol a zero-length code.
    if root.is_leaf:
        raise ValueError("Tree root must be an internal node")


class HuffmanWriter:
    """Compress bytes into a sink with a fixed Huffman tree.

    The stream carries no header and no serialized tree; whoever decodes it
    needs the same tree (see :attr:`tree`).

    Instances are not safe to share between threads.

    :ivar sink: Object exposing ``write(bytes)``.
    :type sink: BinaryIO
    :ivar bytes_written: Total bytes handed to ``sink`` so far.
    :type bytes_written: int
    """

    def __init__(self, sink: BinaryIO, root: HuffmanNode):
        """Create a writer encoding with the tree rooted at ``root``.

        :param sink: Destination for the packed bytes.
        :type sink: BinaryIO
        :param root: Huffman tree to encode with.
        :type root: HuffmanNode
        :returns: None
        :rtype: None
        :raises ValueError: If ``root`` is a bare leaf.
        """
        _check_root(root)
        self.sink = sink
        self._root = root
        self._table = build_code_table(root)
        self.bytes_written = 0

    @classmethod
    def from_distribution(cls, sink: BinaryIO,
                          distribution: Distribution) -> "HuffmanWriter":
        """Create a writer whose tree is built from ``distribution``.

        The distribution must cover every byte that will be written.

        :param sink: Destination for the packed bytes.
        :type sink: BinaryIO
        :param distribution: Frequencies to build the tree from.
        :type distribution: Distribution
        :rtype: HuffmanWriter
        """
        return cls(sink, build_tree(distribution))

    @property
    def tree(self) -> HuffmanNode:
        return self._root

    @property
    def code_table(self) -> Mapping[int, Code]:
        return self._table

    def encode(self, data: bytes) -> bytes:
        """Pack ``data`` into bytes without touching the sink.

        Codes are packed least-significant bit first; the final partial
        byte, if any, is zero-padded in its high bits.

        :param data: Symbols to encode.
        :type data: bytes
        :returns: Packed bytes.
        :rtype: bytes
        :raises UnknownSymbolError: If a byte of ``data`` has no code.
        """
        writer = BitWriter()
        table = self._table
        for symbol in data:
            code = table.get(symbol)
            if code is None:
                raise UnknownSymbolError(symbol)
            writer.write_bits(code.bits, code.length)
        return writer.flush()

    def write(self, data: bytes) -> int:
        """Encode ``data`` and write the packed bytes to the sink.

        The call is all-or-nothing: if any symbol is unknown, nothing is
        written.

        :param data: Symbols to encode.
        :type data: bytes
        :returns: Number of input symbols consumed.
        :rtype: int
        :raises UnknownSymbolError: If a byte of ``data`` has no code.
        :raises OSError: If the sink stops accepting bytes.
        """
        encoded = self.encode(data)
        pos = 0
        while pos < len(encoded):
            n = self.sink.write(encoded[pos:])
            # Sinks that do not report a count are taken to write everything.
            if n is None:
                n = len(encoded) - pos
            if n <= 0:
                raise OSError(
                    f"sink accepted no bytes ({pos} of {len(encoded)} written)"
                )
            pos += n
            self.bytes_written += n
        return len(data)


class HuffmanReader:
    """Decompress bytes from a source with a fixed Huffman tree.

    Bits are taken least-significant bit first from each source byte. The
    tree walk keeps its position between calls, so a symbol cut short by
    a short source can be resumed once more bytes are available.

    The stream has no length field. Zero padding in the final byte may
    decode as extra symbols if more symbols are requested than were
    written, so callers must ask for the exact count.

    :ivar source: Object exposing ``read(n) -> bytes``.
    :type source: BinaryIO
    :ivar chunk_size: Bytes requested from ``source`` per refill.
    :type chunk_size: int
    """

    def __init__(self, source: BinaryIO, root: HuffmanNode,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        _check_root(root)
        self.source = source
        self.chunk_size = chunk_size
        self._root = root
        self._node = root
        self._bits = iter_bits(b"")

    @property
    def tree(self) -> HuffmanNode:
        return self._root

    def _next_bit(self) -> Optional[int]:
        bit = next(self._bits, None)
        if bit is None:
            chunk = self.source.read(self.chunk_size)
            if not chunk:
                return None
            self._bits = iter_bits(chunk)
            bit = next(self._bits)
        return bit

    def _decode_symbol(self, decoded: int) -> Optional[int]:
        """Walk from the current cursor to a leaf.

        :param decoded: Symbols already produced by the current call, for
            error reporting.
        :type decoded: int
        :returns: The decoded symbol, or ``None`` at a clean end of input.
        :rtype: int | None
        :raises TruncatedStreamError: If input ends inside a symbol.
        :raises InvalidCodeError: If a bit leads to a missing branch.
        """
        node = self._node
        while not node.is_leaf:
            bit = self._next_bit()
            if bit is None:
                self._node = node
                if node is self._root:
                    return None
                raise TruncatedStreamError(decoded)
            child = node.child(bit)
            if child is None:
                self._node = self._root
                raise InvalidCodeError(f"Invalid Huffman code: no branch for bit {bit}")
            node = child
        self._node = self._root
        return node.symbol

    def readinto(self, buffer) -> int:
        """Decode up to ``len(buffer)`` symbols into ``buffer``.

        :param buffer: Writable bytes-like object.
        :returns: Number of symbols decoded; fewer than requested only at
            a clean end of input.
        :rtype: int
        :raises TruncatedStreamError: If input ends inside a symbol; its
            ``data`` holds the symbols completed by this call.
        :raises InvalidCodeError: If a bit leads to a missing branch.
        """
        n = 0
        with memoryview(buffer) as mv, mv.cast("B") as view:
            try:
                while n < len(view):
                    symbol = self._decode_symbol(n)
                    if symbol is None:
                        break
                    view[n] = symbol
                    n += 1
            except TruncatedStreamError as exc:
                exc.data = bytes(view[:n])
                raise
        return n

    def read(self, size: int = -1) -> bytes:
        """Decode ``size`` symbols, or everything up to end of input if negative.

        :param size: Number of symbols wanted.
        :type size: int
        :returns: Decoded bytes; shorter than ``size`` only at end of input.
        :rtype: bytes
        :raises TruncatedStreamError: If input ends inside a symbol; its
            ``data`` holds the symbols completed by this call.
        :raises InvalidCodeError: If a bit leads to a missing branch.
        """
        if size >= 0:
            buf = bytearray(size)
            n = self.readinto(buf)
            return bytes(buf[:n])

        out = bytearray()
        try:
            while True:
                symbol = self._decode_symbol(len(out))
                if symbol is None:
                    return bytes(out)
                out.append(symbol)
        except TruncatedStreamError as exc:
            exc.data = bytes(out)
            raise
