"""
ANHC container header.

Header format (all integers big-endian):
offset  bytes   description
0       4       signature "ANHC"
4       2       version (major, minor)
6       32      digest of the original data
38      4       original size
42      4       compressed size (patched after encoding)
46      1       name length (n)
47      n       name
47+n    1       frequency table entries (f), 0 stands for 256 on non-empty input
48+n    5*f     frequency table: 1 byte symbol + 4 byte count

The packed bit stream follows directly after the header.
"""
import io
import os
from dataclasses import dataclass, field, replace

from digest import DIGEST_SIZE
from huffman import EmptyFrequencyTable, FrequencyTable, HuffmanError

SIGNATURE = b"ANHC"
FORMAT_VERSION = (1, 1)
COMPRESSED_LENGTH_OFFSET = 42
MAX_NAME_LENGTH = 255
MAX_LENGTH = 0xFFFFFFFF
ENTRY_SIZE = 5


### ERRORS ###
class SignatureMismatch(HuffmanError):
    def __init__(self, found):
        self.found = found
        super().__init__(f"Invalid file: expected signature {SIGNATURE!r}, found {found!r}.")


class VersionMismatch(HuffmanError):
    def __init__(self, found):
        self.found = found
        super().__init__(
            "Invalid file version: {}.{} (supported {}.{}).".format(*found, *FORMAT_VERSION))


class TruncatedHeader(HuffmanError):
    """The stream ended before the header was complete."""


class CorruptHeader(HuffmanError):
    """The header parsed but its fields contradict each other."""


### HEADER ###
@dataclass
class Header:
    digest: bytes
    original_length: int
    name: str = ""
    frequencies: FrequencyTable = field(default_factory=FrequencyTable)
    compressed_length: int = 0
    version: tuple = FORMAT_VERSION

    def __post_init__(self):
        if not isinstance(self.frequencies, FrequencyTable):
            self.frequencies = FrequencyTable(self.frequencies)
        self.version = tuple(self.version)

    @property
    def encoded_name(self):
        return os.fsencode(self.name)

    @property
    def size(self):
        """Length of the encoded header in bytes; the packed data starts here."""
        return COMPRESSED_LENGTH_OFFSET + 4 + 1 + len(self.encoded_name) + 1 + ENTRY_SIZE * len(self.frequencies)


def _check_header(header):
    if len(header.digest) != DIGEST_SIZE:
        raise ValueError(f"Digest must be {DIGEST_SIZE} bytes, got {len(header.digest)}.")
    if len(header.encoded_name) > MAX_NAME_LENGTH:
        raise ValueError(f"Name is longer than {MAX_NAME_LENGTH} bytes.")
    for label, value in (("Original", header.original_length), ("Compressed", header.compressed_length)):
        if not 0 <= value <= MAX_LENGTH:
            raise ValueError(f"{label} length {value} does not fit in 4 bytes.")
    if header.frequencies.total != header.original_length:
        raise ValueError(
            f"Frequency table covers {header.frequencies.total} bytes, "
            f"original length is {header.original_length}.")


def pack_header(header):
    """Serializes a header, compressed length included."""
    _check_header(header)
    name = header.encoded_name
    major, minor = header.version

    out = bytearray(SIGNATURE)
    out += bytes([major, minor])
    out += header.digest
    out += header.original_length.to_bytes(4, byteorder="big")
    out += header.compressed_length.to_bytes(4, byteorder="big")
    out += len(name).to_bytes(1, byteorder="big")
    out += name
    # 256 entries wrap to 0; read_header tells it apart from an empty table by the original length
    out += (len(header.frequencies) % 256).to_bytes(1, byteorder="big")
    for symbol, count in header.frequencies.items():
        out += symbol.to_bytes(1, byteorder="big")
        out += count.to_bytes(4, byteorder="big")
    return bytes(out)


def write_header(output_file, header):
    """
    Writes the header with a zero compressed length.
    Returns the stream offset of the compressed length field for
    patch_compressed_length().
    """
    start = output_file.tell()
    output_file.write(pack_header(replace(header, compressed_length=0)))
    return start + COMPRESSED_LENGTH_OFFSET


def patch_compressed_length(output_file, offset, compressed_length):
    if not 0 <= compressed_length <= MAX_LENGTH:
        raise ValueError(f"Compressed length {compressed_length} does not fit in 4 bytes.")
    position = output_file.tell()
    output_file.seek(offset)
    output_file.write(compressed_length.to_bytes(4, byteorder="big"))
    output_file.seek(position)


def _read_exact(input_file, size, what):
    data = input_file.read(size)
    if len(data) < size:
        raise TruncatedHeader(f"Header truncated ({what}).")
    return data


def _read_int(input_file, size, what):
    return int.from_bytes(_read_exact(input_file, size, what), byteorder="big")


def check_signature(input_file):
    signature = input_file.read(len(SIGNATURE))
    if signature != SIGNATURE:
        raise SignatureMismatch(signature)


def read_header(input_file):
    """Parses a header, leaving the stream positioned at the packed data."""
    check_signature(input_file)

    version = tuple(_read_exact(input_file, 2, "version"))
    if version != FORMAT_VERSION:
        raise VersionMismatch(version)

    digest = _read_exact(input_file, DIGEST_SIZE, "digest")
    original_length = _read_int(input_file, 4, "original size")
    compressed_length = _read_int(input_file, 4, "compressed size")

    name_length = _read_int(input_file, 1, "name length")
    name = os.fsdecode(_read_exact(input_file, name_length, "name"))

    table_size = _read_int(input_file, 1, "frequency table size")
    if table_size == 0 and original_length > 0:
        table_size = 256
    if table_size == 0:
        raise EmptyFrequencyTable()

    frequency = {}
    for _ in range(table_size):
        symbol = _read_int(input_file, 1, "frequency table symbol")
        count = _read_int(input_file, 4, "frequency table count")
        if symbol in frequency:
            raise CorruptHeader(f"Symbol 0x{symbol:02x} appears twice in the frequency table.")
        if count == 0:
            raise CorruptHeader(f"Symbol 0x{symbol:02x} has a zero count.")
        frequency[symbol] = count
    frequencies = FrequencyTable(frequency)

    if frequencies.total != original_length:
        raise CorruptHeader(
            f"Frequency table covers {frequencies.total} bytes, header says {original_length}.")

    return Header(
        digest=digest,
        original_length=original_length,
        name=name,
        frequencies=frequencies,
        compressed_length=compressed_length,
        version=version,
    )


def unpack_header(data):
    return read_header(io.BytesIO(data))


def describe(header):
    """Summary used by the listing commands."""
    ratio = 0.0
    if header.original_length:
        ratio = round(100 * (1 - header.compressed_length / header.original_length), 2)
    return {
        "version": "{}.{}".format(*header.version),
        "name": header.name,
        "original_size": header.original_length,
        "compressed_size": header.compressed_length,
        "saved_percent": ratio,
        "digest": header.digest.decode("ascii", errors="replace"),
        "symbols": len(header.frequencies),
    }
