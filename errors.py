class HuffmanError(Exception):
    """Base class for all codec errors."""


class EmptyDistributionError(HuffmanError, ValueError):
    """Raised when a distribution or tree would have no symbols."""


class UnknownSymbolError(HuffmanError, KeyError):
    """Raised when encoding a symbol that has no code in the table.

    :ivar symbol: The offending byte value.
    :type symbol: int
    """

    def __init__(self, symbol: int):
        super().__init__(symbol)
        self.symbol = symbol

    def __str__(self):
        printable = chr(self.symbol) if 32 <= self.symbol < 127 else "?"
        return (
            f"probability of '{printable}'({self.symbol}) "
            "was not in distribution"
        )


class TruncatedStreamError(HuffmanError, EOFError):
    """Raised when the bit source ends in the middle of a symbol.

    :ivar decoded: Number of symbols completed by the failing call.
    :type decoded: int
    :ivar data: The symbols completed by the failing call.
    :type data: bytes
    """

    def __init__(self, decoded: int = 0, data: bytes = b""):
        super().__init__(
            f"stream ended mid-symbol after {decoded} decoded symbol(s)"
        )
        self.decoded = decoded
        self.data = data


class InvalidCodeError(HuffmanError, ValueError):
    """Raised when a bit sequence leads to a branch the tree does not have."""
