import heapq
import itertools
from types import MappingProxyType
from typing import Iterator, List, Mapping, NamedTuple, Optional, Tuple

from distribution import Distribution
from errors import EmptyDistributionError


class HuffmanNode:
    """Immutable node of a binary Huffman tree.

    A leaf carries a ``symbol``; an internal node carries ``None`` there and
    owns its children. Nodes expose read-only properties only and are never
    changed once built, so one tree may be shared by several readers.

    :ivar symbol: Byte value stored at a leaf; ``None`` for internal nodes.
    :type symbol: int | None
    :ivar weight: Weight of the subtree rooted at this node.
    :type weight: int
    :ivar left: Left (bit ``0``) child.
    :type left: HuffmanNode | None
    :ivar right: Right (bit ``1``) child.
    :type right: HuffmanNode | None
    """

    __slots__ = ("_symbol", "_weight", "_left", "_right")

    def __init__(self, symbol=None, weight=0, left=None, right=None):
        """Create a Huffman node.

        :param symbol: Symbol value for leaf nodes; ``None`` for internal nodes.
        :type symbol: int | None
        :param int weight: Weight associated with this node.
        :param left: Left child node, if any.
        :type left: HuffmanNode|None
        :param right: Right child node, if any.
        :type right: HuffmanNode|None
        :raises ValueError: If a leaf is given children, an internal node
            has none, or an internal node's weight is not the sum of its
            children's weights.
        """
        if symbol is not None and (left is not None or right is not None):
            raise ValueError("A leaf node cannot have children")
        if symbol is None:
            children = [c for c in (left, right) if c is not None]
            if not children:
                raise ValueError("An internal node needs at least one child")
            expected = sum(c.weight for c in children)
            if weight != expected:
                raise ValueError(
                    f"Internal node weight {weight} does not match "
                    f"its children's total {expected}"
                )
        self._symbol = symbol
        self._weight = weight
        self._left = left
        self._right = right

    @classmethod
    def leaf(cls, symbol: int, weight: int) -> "HuffmanNode":
        return cls(symbol=symbol, weight=weight)

    @classmethod
    def internal(cls, left: "HuffmanNode",
                 right: Optional["HuffmanNode"] = None) -> "HuffmanNode":
        """Join ``left`` and ``right`` under a node weighing their sum."""
        weight = left.weight + (right.weight if right is not None else 0)
        return cls(weight=weight, left=left, right=right)

    @property
    def symbol(self) -> Optional[int]:
        return self._symbol

    @property
    def weight(self) -> int:
        return self._weight

    @property
    def left(self) -> Optional["HuffmanNode"]:
        return self._left

    @property
    def right(self) -> Optional["HuffmanNode"]:
        return self._right

    @property
    def is_leaf(self) -> bool:
        return self._symbol is not None

    def child(self, bit: int) -> Optional["HuffmanNode"]:
        """Return the child reached by following ``bit``."""
        return self._right if bit else self._left

    def leaves(self) -> Iterator["HuffmanNode"]:
        """Yield leaves left to right."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                yield node
                continue
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)

    def __repr__(self):
        if self.is_leaf:
            return f"HuffmanNode(symbol={self._symbol}, weight={self._weight})"
        return f"HuffmanNode(weight={self._weight})"


class Code(NamedTuple):
    """Bit pattern of one symbol.

    Bit ``i`` of ``bits`` (counting from the least significant bit) is the
    edge taken at depth ``i``, so bit 0 is the first bit written or read.
    """

    bits: int
    length: int

    def bit_at(self, depth: int) -> int:
        return (self.bits >> depth) & 1

    def is_prefix_of(self, other: "Code") -> bool:
        if self.length > other.length:
            return False
        mask = (1 << self.length) - 1
        return (other.bits & mask) == self.bits

    def __str__(self):
        return "".join(str(self.bit_at(i)) for i in range(self.length))


def build_tree(distribution: Distribution) -> HuffmanNode:
    """Build a Huffman tree minimizing the weighted sum of leaf depths.

    Leaves are seeded in ascending symbol order and every heap entry
    carries an insertion counter, so equal weights leave the heap in
    construction order. The first node popped becomes the left child.
    The same distribution therefore always yields the same tree.

    A single-symbol alphabet is wrapped in an internal node so that its
    symbol gets the one-bit code ``0``.

    :param distribution: Symbol frequencies to build from.
    :type distribution: Distribution
    :returns: Root of the tree.
    :rtype: HuffmanNode
    :raises EmptyDistributionError: If the distribution has no symbols.
    """
    if len(distribution) == 0:
        raise EmptyDistributionError("Cannot build a tree from an empty alphabet")

    order = itertools.count()
    heap: List[Tuple[int, int, HuffmanNode]] = [
        (cnt, next(order), HuffmanNode.leaf(sym, cnt))
        for sym, cnt in sorted(distribution.counts.items())
    ]
    heapq.heapify(heap)

    if len(heap) == 1:
        return HuffmanNode.internal(heap[0][2])

    while len(heap) > 1:
        _, _, left = heapq.heappop(heap)
        _, _, right = heapq.heappop(heap)
        merged = HuffmanNode.internal(left, right)
        heapq.heappush(heap, (merged.weight, next(order), merged))

    return heap[0][2]


def build_code_table(root: HuffmanNode) -> Mapping[int, Code]:
    """Derive the code of every leaf symbol reachable from ``root``.

    :param root: Root of a Huffman tree.
    :type root: HuffmanNode
    :returns: Read-only mapping from symbol to :class:`Code`.
    :rtype: Mapping[int, Code]
    """
    table = {}
    stack = [(root, 0, 0)]
    while stack:
        node, bits, depth = stack.pop()
        if node.is_leaf:
            table[node.symbol] = Code(bits, depth)
            continue
        # right is pushed first so the left subtree is visited first
        if node.right is not None:
            stack.append((node.right, bits | (1 << depth), depth + 1))
        if node.left is not None:
            stack.append((node.left, bits, depth + 1))
    return MappingProxyType(dict(sorted(table.items())))


def average_code_length(table: Mapping[int, Code],
                        distribution: Distribution) -> float:
    """Expected code length in bits per symbol under ``distribution``."""
    return sum(
        distribution.probability_of(symbol) * code.length
        for symbol, code in table.items()
    )
