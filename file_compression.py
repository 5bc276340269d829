import io
import os
from dataclasses import replace

import config
from container import Header, describe, patch_compressed_length, read_header, write_header
from digest import Md5Digest
from huffman import (
    FrequencyTable,
    HuffmanError,
    StreamDecoder,
    StreamEncoder,
    build_code_table,
    build_tree,
)


### ERRORS ###
class TruncatedPayload(HuffmanError):
    """The packed data ended before the declared number of bytes was decoded."""

    def __init__(self, decoded, expected):
        self.decoded = decoded
        self.expected = expected
        super().__init__(f"Compressed data truncated: decoded {decoded} of {expected} bytes.")


class IntegrityMismatch(HuffmanError):
    """
    Decoding finished but the digest of the output differs from the header.
    The output has been fully written; what to do with it is up to the caller.
    """

    def __init__(self, header, actual):
        self.header = header
        self.expected = header.digest
        self.actual = actual
        super().__init__(
            "Corruption ERROR: new hash {} does not match saved hash {}.".format(
                actual.decode("ascii", errors="replace"),
                self.expected.decode("ascii", errors="replace")))


### FILE NAMES ###
def remove_path(filename):
    """Strips any directory part from a file name."""
    return filename.replace("\\", "/").rsplit("/", 1)[-1]


def replace_extension(filename):
    """Swaps a short extension (dot in the last four characters) for .huf, otherwise appends .huf."""
    ext_pos = filename.rfind(".")
    if ext_pos != -1 and ext_pos >= len(filename) - 4:
        return filename[:ext_pos] + config.COMPRESSED_EXTENSION
    return filename + config.COMPRESSED_EXTENSION


def _output_name(stored_name, input_path):
    # The stored name comes from the file, never let it climb out of the output directory
    name = remove_path(stored_name)
    if name in ("", ".", ".."):
        name = remove_path(input_path)
        if name.endswith(config.COMPRESSED_EXTENSION):
            name = name[:-len(config.COMPRESSED_EXTENSION)]
        else:
            name += ".out"
    return name


### STREAMS ###
def _read_chunks(input_file, chunk_size, limit=None):
    remaining = limit
    while remaining is None or remaining > 0:
        size = chunk_size if remaining is None else min(chunk_size, remaining)
        chunk = input_file.read(size)
        if not chunk:
            return
        if remaining is not None:
            remaining -= len(chunk)
        yield chunk


def _stream_length(input_file):
    start = input_file.tell()
    end = input_file.seek(0, io.SEEK_END)
    input_file.seek(start)
    return end - start


def compress_stream(input_file, output_file, length=None, name="", chunk_size=None,
                    digest_factory=Md5Digest, progress=None):
    """
    Compresses a seekable input stream into output_file in two passes.

    The first pass counts bytes and hashes them, the second encodes. The
    compressed size is patched into the header at the end, so output_file
    must be seekable too. Returns the final header.
    """
    chunk_size = chunk_size or config.MAX_BUFFER
    if length is None:
        length = _stream_length(input_file)
    start = input_file.tell()

    # --- PASS 1: Frequency table and digest ---
    digest = digest_factory()

    def hashed_chunks():
        for chunk in _read_chunks(input_file, chunk_size, length):
            digest.add(chunk)
            yield chunk

    frequency = FrequencyTable.scan(hashed_chunks())
    header = Header(
        digest=digest.finalize(),
        original_length=length,
        name=name,
        frequencies=frequency,
    )
    size_offset = write_header(output_file, header)

    if not frequency:
        # Empty input: header only, nothing to encode
        return header

    # --- PASS 2: Encode ---
    encoder = StreamEncoder(build_code_table(build_tree(frequency)))
    input_file.seek(start)
    processed = 0
    for chunk in _read_chunks(input_file, chunk_size, length):
        output_file.write(encoder.feed(chunk))
        processed += len(chunk)
        if progress:
            progress(processed, length)
    output_file.write(encoder.flush())

    patch_compressed_length(output_file, size_offset, encoder.compressed_size)
    return replace(header, compressed_length=encoder.compressed_size)


def decode_payload(header, input_file, output_file, chunk_size=None,
                   digest_factory=Md5Digest, progress=None):
    """Decodes the packed data that follows an already parsed header."""
    chunk_size = chunk_size or config.MAX_BUFFER
    decoder = StreamDecoder(build_tree(header.frequencies), header.original_length)
    digest = digest_factory()

    while not decoder.done():
        chunk = input_file.read(chunk_size)
        if not chunk:
            raise TruncatedPayload(decoder.emitted, header.original_length)
        decoded = decoder.decode(chunk)
        digest.add(decoded)
        output_file.write(decoded)
        if progress:
            progress(decoder.emitted, header.original_length)

    actual = digest.finalize()
    if actual != header.digest:
        raise IntegrityMismatch(header, actual)
    return header


def decompress_stream(input_file, output_file, chunk_size=None, digest_factory=Md5Digest, progress=None):
    """Reads a container from input_file and writes the original bytes to output_file."""
    header = read_header(input_file)
    return decode_payload(header, input_file, output_file, chunk_size, digest_factory, progress)


### IN MEMORY ###
def compress_bytes(data, name="", **kwargs):
    output_file = io.BytesIO()
    compress_stream(io.BytesIO(data), output_file, len(data), name, **kwargs)
    return output_file.getvalue()


def decompress_bytes(blob, **kwargs):
    """Returns (header, original bytes)."""
    output_file = io.BytesIO()
    header = decompress_stream(io.BytesIO(blob), output_file, **kwargs)
    return header, output_file.getvalue()


### FILES ###
def _check_distinct(input_path, output_path):
    if os.path.abspath(input_path) == os.path.abspath(output_path):
        raise ValueError(f"Output {output_path} would overwrite its own input.")


def _discard(path):
    try:
        os.remove(path)
        return True
    except OSError:
        return False


def compress_file(input_path, output_dir="", overwrite=True, chunk_size=None, progress=None):
    """
    Compresses input_path into output_dir (default: current directory).
    Returns the path of the .huf file.
    """
    filename = remove_path(input_path)
    output_path = os.path.join(output_dir, replace_extension(filename))
    _check_distinct(input_path, output_path)
    if not overwrite and os.path.exists(output_path):
        raise FileExistsError(output_path)

    with open(input_path, "rb") as input_file:
        try:
            with open(output_path, "wb") as output_file:
                compress_stream(input_file, output_file, name=filename,
                                chunk_size=chunk_size, progress=progress)
        except Exception:
            _discard(output_path)
            raise
    return output_path


def decompress_file(input_path, output_dir="", overwrite=False, keep=False, chunk_size=None, progress=None,
                    output_name=None):
    """
    Restores the file stored in input_path under its original name in output_dir,
    or under output_name when one is given.

    Refuses to replace an existing file unless overwrite is set. A file
    whose digest does not match is deleted unless keep is set; the
    IntegrityMismatch is raised either way.
    """
    with open(input_path, "rb") as input_file:
        header = read_header(input_file)

        output_path = os.path.join(output_dir, _output_name(output_name or header.name, input_path))
        _check_distinct(input_path, output_path)
        if not overwrite and os.path.exists(output_path):
            raise FileExistsError(output_path)

        try:
            with open(output_path, "wb") as output_file:
                decode_payload(header, input_file, output_file, chunk_size=chunk_size, progress=progress)
        except IntegrityMismatch:
            if not keep:
                _discard(output_path)
            raise
        except Exception:
            _discard(output_path)
            raise
    return output_path


def list_contents(input_path):
    with open(input_path, "rb") as input_file:
        return describe(read_header(input_file))
