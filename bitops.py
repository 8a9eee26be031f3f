from typing import Iterator


def iter_bits(data: bytes) -> Iterator[int]:
    """Lazily yield the bits of ``data``, least-significant bit first.

    Exhaustion is signalled by the generator finishing.

    :param data: Source bytes.
    :type data: bytes
    :returns: Iterator over single bits (``0`` or ``1``).
    :rtype: Iterator[int]
    """
    for byte in bytes(data):
        for shift in range(8):
            yield (byte >> shift) & 1


class BitWriter:
    """LSB-first bit-packing writer.

    The first bit written lands in the lowest unused bit of the current
    output byte; a byte is sealed once all 8 bits are placed.

    :ivar buffer: Internal byte buffer holding fully written bytes.
    :type buffer: bytearray
    :ivar bit_buffer: Scratch register for pending bits (lowest bit first).
    :type bit_buffer: int
    :ivar bit_count: Number of valid bits currently stored in ``bit_buffer`` (0-7).
    :type bit_count: int
    """

    def __init__(self):
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0

    def write_bits(self, value: int, nbits: int):
        """Write the lowest ``nbits`` of ``value``, bit 0 first.

        :param value: Integer whose bits will be written.
        :type value: int
        :param nbits: Number of bits from ``value`` to write.
        :type nbits: int
        :returns: None
        :rtype: None
        """
        if nbits <= 0:
            return
        self.bit_buffer |= (value & ((1 << nbits) - 1)) << self.bit_count
        self.bit_count += nbits
        while self.bit_count >= 8:
            self.buffer.append(self.bit_buffer & 0xFF)
            self.bit_buffer >>= 8
            self.bit_count -= 8

    def flush(self) -> bytes:
        """Flush remaining bits (if any) and return the full byte buffer.

        A partial byte keeps its unused high bits as zero.

        :returns: The accumulated bytes written so far.
        :rtype: bytes
        """
        if self.bit_count > 0:
            self.buffer.append(self.bit_buffer & 0xFF)
            self.bit_buffer = 0
            self.bit_count = 0
        return bytes(self.buffer)
