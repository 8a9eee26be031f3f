import math
from collections import Counter
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Tuple

from errors import EmptyDistributionError


class Distribution:
    """Empirical probability distribution over byte values.

    Built once from a sample (or explicit counts) and never mutated
    afterwards. Only symbols with a positive count belong to the alphabet.

    :ivar counts: Read-only mapping from symbol to occurrence count.
    :type counts: Mapping[int, int]
    :ivar total: Number of observed symbols (sum of all counts).
    :type total: int
    """

    def __init__(self, counts: Mapping[int, int]):
        """Create a distribution from explicit symbol counts.

        :param counts: Mapping from byte value to occurrence count.
        :type counts: Mapping[int, int]
        :raises ValueError: If a symbol is not a byte value or a count
            is negative or not an integer.
        :raises EmptyDistributionError: If no symbol has a positive count.
        """
        cleaned: Dict[int, int] = {}
        for symbol in sorted(counts):
            cnt = counts[symbol]
            if not 0 <= symbol <= 255:
                raise ValueError(f"Symbol out of byte range: {symbol}")
            if not isinstance(cnt, int):
                raise ValueError(f"Count for symbol {symbol} is not an "
                                 f"integer: {cnt!r}")
            if cnt < 0:
                raise ValueError(f"Negative count for symbol {symbol}: {cnt}")
            if cnt > 0:
                cleaned[symbol] = cnt

        total = sum(cleaned.values())
        if total == 0:
            raise EmptyDistributionError("Distribution has no samples")

        self.counts: Mapping[int, int] = MappingProxyType(cleaned)
        self.total = total

    @classmethod
    def build(cls, sample: bytes) -> "Distribution":
        """Approximate a byte stream's distribution from a sample of it.

        :param sample: Bytes to count.
        :type sample: bytes
        :returns: The frequency distribution of ``sample``.
        :rtype: Distribution
        :raises EmptyDistributionError: If ``sample`` is empty.
        """
        if not sample:
            raise EmptyDistributionError("Cannot build a distribution "
                                         "from an empty sample")
        return cls(Counter(bytes(sample)))

    @property
    def alphabet(self) -> Tuple[int, ...]:
        """Symbols with a positive count, ascending."""
        return tuple(self.counts)

    def count_of(self, symbol: int) -> int:
        return self.counts.get(symbol, 0)

    def probability_of(self, symbol: int) -> float:
        """Return the probability of ``symbol``; ``0.0`` if it was never seen.

        :param symbol: Byte value.
        :type symbol: int
        :rtype: float
        """
        return self.counts.get(symbol, 0) / self.total

    def entropy(self) -> float:
        """Shannon entropy of the distribution in bits per symbol.

        :rtype: float
        """
        result = 0.0
        for cnt in self.counts.values():
            p = cnt / self.total
            result -= p * math.log2(p)
        return result

    def __len__(self):
        return len(self.counts)

    def __contains__(self, symbol):
        return symbol in self.counts

    def __iter__(self) -> Iterator[int]:
        return iter(self.counts)

    def __eq__(self, other):
        if not isinstance(other, Distribution):
            return NotImplemented
        return dict(self.counts) == dict(other.counts)

    def __hash__(self):
        return hash(tuple(self.counts.items()))

    def __str__(self):
        parts = []
        for symbol, cnt in self.counts.items():
            char = chr(symbol) if 32 <= symbol < 127 else "."
            parts.append(f"{symbol}({char}):{cnt / self.total:.3f}")
        return "dist[" + ", ".join(parts) + "]"

    def __repr__(self):
        return f"Distribution(total={self.total}, alphabet={len(self)})"
