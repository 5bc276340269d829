import heapq
from collections.abc import Mapping

import numpy as np


### ERRORS ###
class HuffmanError(Exception):
    """Base class for every error raised while compressing or decompressing."""


class EmptyFrequencyTable(HuffmanError):
    """A Huffman tree cannot be built from a table with no entries."""

    def __init__(self, message="Frequency table is empty."):
        super().__init__(message)


class UnknownSymbol(HuffmanError):
    """The encoder was given a byte that has no code in its table."""

    def __init__(self, symbol):
        self.symbol = symbol
        super().__init__(f"Byte 0x{symbol:02x} has no Huffman code.")


### FREQUENCY TABLE ###
class FrequencyTable(Mapping):
    """
    Immutable byte -> count mapping.
    Iterates in ascending byte order, which is both the order the table is
    written to the header and the order leaves enter the tree.
    """

    def __init__(self, counts=None):
        table = {}
        for symbol, count in dict(counts or {}).items():
            symbol, count = int(symbol), int(count)
            if not 0 <= symbol <= 255:
                raise ValueError(f"Symbol {symbol} is not a byte value.")
            if count < 0:
                raise ValueError(f"Negative count {count} for symbol {symbol}.")
            # Dense histograms carry zeros for absent bytes
            if count:
                table[symbol] = count
        self._counts = dict(sorted(table.items()))

    @classmethod
    def from_histogram(cls, histogram):
        """Builds a table from a 256-slot histogram (zeros are dropped)."""
        return cls(enumerate(int(c) for c in histogram))

    @classmethod
    def scan(cls, chunks):
        """Counts every byte over an iterable of byte chunks."""
        histogram = np.zeros(256, dtype=np.int64)
        for chunk in chunks:
            if chunk:
                histogram += np.bincount(np.frombuffer(chunk, dtype=np.uint8), minlength=256)
        return cls.from_histogram(histogram)

    @classmethod
    def from_bytes(cls, data):
        return cls.scan([bytes(data)])

    @property
    def total(self):
        return sum(self._counts.values())

    def __getitem__(self, symbol):
        return self._counts[symbol]

    def __iter__(self):
        return iter(self._counts)

    def __len__(self):
        return len(self._counts)

    def __repr__(self):
        return f"FrequencyTable({self._counts!r})"


### HUFFMAN TREE ###
class HuffmanNode:
    """A node in the Huffman tree arena. Children are arena indices."""

    __slots__ = ("symbol", "freq", "left", "right")

    def __init__(self, symbol=None, freq=0, left=None, right=None):
        # symbol: byte value (0-255) for leaves, None for internal nodes
        self.symbol = symbol
        self.freq = freq
        self.left = left
        self.right = right

    @property
    def is_leaf(self):
        return self.symbol is not None

    def __eq__(self, other):
        if not isinstance(other, HuffmanNode):
            return NotImplemented
        return (self.symbol, self.freq, self.left, self.right) == (
            other.symbol, other.freq, other.left, other.right)

    def __repr__(self):
        if self.is_leaf:
            return f"HuffmanNode(symbol={self.symbol}, freq={self.freq})"
        return f"HuffmanNode(freq={self.freq}, left={self.left}, right={self.right})"


class HuffmanTree:
    """
    Arena holding every node of one tree.
    Leaves sit at indices 0..n-1 in ascending symbol order, internal nodes
    follow in the order they were merged. The root is the last node added.
    """

    def __init__(self, nodes):
        self.nodes = list(nodes)
        self.root = len(self.nodes) - 1

    def __getitem__(self, index):
        return self.nodes[index]

    def __len__(self):
        return len(self.nodes)

    @property
    def leaf_count(self):
        return sum(1 for node in self.nodes if node.is_leaf)

    @property
    def internal_count(self):
        return len(self.nodes) - self.leaf_count

    def __eq__(self, other):
        if not isinstance(other, HuffmanTree):
            return NotImplemented
        return self.nodes == other.nodes


def build_tree(frequency):
    """
    Builds the Huffman tree for a frequency table.

    The two lowest-frequency nodes are merged until one remains. Ties go to
    the node that joined the working set first (leaves by ascending symbol,
    then merged nodes in creation order), and the first node taken becomes
    the left child. Encoder and decoder therefore rebuild the same tree from
    the same table.
    """
    if not frequency:
        raise EmptyFrequencyTable()

    nodes = [HuffmanNode(symbol=symbol, freq=count) for symbol, count in sorted(frequency.items())]

    # Arena index doubles as the tie-break: it is the insertion order
    priority_queue = [(node.freq, index) for index, node in enumerate(nodes)]
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        left_freq, left = heapq.heappop(priority_queue)
        right_freq, right = heapq.heappop(priority_queue)

        merged_freq = left_freq + right_freq
        nodes.append(HuffmanNode(freq=merged_freq, left=left, right=right))
        heapq.heappush(priority_queue, (merged_freq, len(nodes) - 1))

    return HuffmanTree(nodes)


### CODE TABLE ###
# Code given to the only symbol of a one-leaf tree
SINGLE_SYMBOL_CODE = "0"


def build_code_table(tree):
    """Maps every leaf symbol to its '0'/'1' path from the root."""
    root = tree[tree.root]
    if root.is_leaf:
        # A lone leaf has an empty path, which cannot be framed in a bit stream
        return {root.symbol: SINGLE_SYMBOL_CODE}

    huffman_codes = {}

    def _generate_codes(index, current_code):
        node = tree[index]
        if node.is_leaf:
            huffman_codes[node.symbol] = current_code
            return
        _generate_codes(node.left, current_code + "0")
        _generate_codes(node.right, current_code + "1")

    _generate_codes(tree.root, "")
    return huffman_codes


def is_prefix_free(code_table):
    """True when no code in the table is a prefix of another."""
    codes = sorted(code_table.values())
    # After sorting, a prefix always sits directly before one of its extensions
    return all(not longer.startswith(shorter) for shorter, longer in zip(codes, codes[1:]))


### STREAM ENCODER ###
class StreamEncoder:
    """
    Packs Huffman codes into bytes, MSB first.
    feed() may be called with any chunking; the output is the same as for a
    single call over the whole input. Call flush() once at the end.
    """

    def __init__(self, code_table):
        self.code_table = dict(code_table)
        self._packed = {symbol: (int(code, 2), len(code)) for symbol, code in self.code_table.items()}
        self._buffer = 0
        self._bit_count = 0
        self._compressed_size = 0

    @property
    def compressed_size(self):
        """Bytes emitted so far, including the flushed partial byte."""
        return self._compressed_size

    @property
    def pending_bits(self):
        return self._bit_count

    def feed(self, chunk):
        packed = self._packed
        buffer = self._buffer
        bit_count = self._bit_count
        encoded_data = bytearray()

        for byte in chunk:
            try:
                code, length = packed[byte]
            except KeyError:
                raise UnknownSymbol(byte) from None

            buffer = (buffer << length) | code
            bit_count += length
            while bit_count >= 8:
                bit_count -= 8
                encoded_data.append((buffer >> bit_count) & 0xFF)
            buffer &= (1 << bit_count) - 1

        self._buffer = buffer
        self._bit_count = bit_count
        self._compressed_size += len(encoded_data)
        return bytes(encoded_data)

    def flush(self):
        """Returns the pending bits left-justified in one byte, or b'' if none."""
        if not self._bit_count:
            return b""
        padding_bits = 8 - self._bit_count
        last_byte = (self._buffer << padding_bits) & 0xFF
        self._buffer = 0
        self._bit_count = 0
        self._compressed_size += 1
        return bytes([last_byte])


### STREAM DECODER ###
class StreamDecoder:
    """
    Walks the Huffman tree bit by bit, MSB first, across chunk boundaries.
    Stops emitting once `length` symbols have been produced, so the zero
    padding of the last byte never turns into output.
    """

    def __init__(self, tree, length):
        if length < 0:
            raise ValueError("Expected length cannot be negative.")
        self.tree = tree
        self.length = length
        self._current = tree.root
        self._emitted = 0

    @property
    def emitted(self):
        return self._emitted

    def done(self):
        return self._emitted >= self.length

    def decode(self, chunk):
        if self.done():
            return b""

        nodes = self.tree.nodes
        root = self.tree.root
        # One-leaf tree: every bit is a whole codeword
        single = nodes[root].is_leaf
        current = self._current
        emitted = self._emitted
        length = self.length
        decoded_data = bytearray()

        for byte_value in chunk:
            for shift in range(7, -1, -1):
                if not single:
                    node = nodes[current]
                    current = node.right if (byte_value >> shift) & 1 else node.left

                leaf = nodes[current]
                if leaf.is_leaf:
                    decoded_data.append(leaf.symbol)
                    emitted += 1
                    current = root
                    if emitted >= length:
                        break
            if emitted >= length:
                break

        self._current = current
        self._emitted = emitted
        return bytes(decoded_data)


### ONE-SHOT HELPERS ###
def encode(data, code_table):
    """Packs a whole buffer. Returns the packed bytes including the padded last byte."""
    encoder = StreamEncoder(code_table)
    return encoder.feed(data) + encoder.flush()


def decode(packed, tree, length):
    decoder = StreamDecoder(tree, length)
    return decoder.decode(packed)
