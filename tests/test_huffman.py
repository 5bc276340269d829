import random

import pytest

from huffman import (
    SINGLE_SYMBOL_CODE,
    EmptyFrequencyTable,
    FrequencyTable,
    StreamDecoder,
    StreamEncoder,
    UnknownSymbol,
    build_code_table,
    build_tree,
    decode,
    encode,
    is_prefix_free,
)


def roundtrip(data):
    frequency = FrequencyTable.from_bytes(data)
    tree = build_tree(frequency)
    packed = encode(data, build_code_table(tree))
    return decode(packed, build_tree(frequency), len(data))


def split(data, sizes):
    chunks, pos, i = [], 0, 0
    while pos < len(data):
        size = sizes[i % len(sizes)]
        chunks.append(data[pos:pos + size])
        pos += size
        i += 1
    return chunks


def test_frequency_table_counts_and_orders_ascending():
    frequency = FrequencyTable.from_bytes(b"BAAAB\x00")
    assert dict(frequency) == {0: 1, 65: 3, 66: 2}
    assert list(frequency) == [0, 65, 66]
    assert frequency.total == 6


def test_frequency_table_scan_over_chunks_matches_whole():
    data = bytes(random.Random(3).randrange(256) for _ in range(5000))
    assert FrequencyTable.scan(split(data, [1, 17, 999])) == FrequencyTable.from_bytes(data)


def test_frequency_table_drops_zeros_and_rejects_bad_symbols():
    assert dict(FrequencyTable({1: 0, 2: 5})) == {2: 5}
    with pytest.raises(ValueError):
        FrequencyTable({256: 1})
    with pytest.raises(ValueError):
        FrequencyTable({3: -1})


def test_empty_table_cannot_build_tree():
    with pytest.raises(EmptyFrequencyTable):
        build_tree(FrequencyTable())


def test_aaab_scenario_packs_into_one_byte():
    frequency = FrequencyTable.from_bytes(b"AAAB")
    assert dict(frequency) == {65: 3, 66: 1}

    tree = build_tree(frequency)
    assert tree.leaf_count == 2
    assert tree.internal_count == 1

    codes = build_code_table(tree)
    # B is the smaller node, so it is taken first and goes left
    assert codes == {66: "0", 65: "1"}

    packed = encode(b"AAAB", codes)
    assert packed == bytes([0b11100000])
    assert decode(packed, build_tree(frequency), 4) == b"AAAB"


def test_all_256_symbols_give_full_tree():
    data = bytes(range(256))
    tree = build_tree(FrequencyTable.from_bytes(data))
    assert tree.leaf_count == 256
    assert tree.internal_count == 255
    codes = build_code_table(tree)
    assert len(codes) == 256
    assert {len(code) for code in codes.values()} == {8}
    assert roundtrip(data) == data


def test_single_symbol_gets_one_bit_code():
    frequency = FrequencyTable({ord("A"): 11})
    tree = build_tree(frequency)
    assert tree.internal_count == 0
    codes = build_code_table(tree)
    assert codes == {ord("A"): SINGLE_SYMBOL_CODE}
    packed = encode(b"A" * 11, codes)
    assert len(packed) == 2
    assert decode(packed, tree, 11) == b"A" * 11


@pytest.mark.parametrize("data", [
    b"a",
    b"ab",
    b"\x00" * 1000,
    b"ABABABAB",  # exactly one byte, no padding
    b"the quick brown fox jumps over the lazy dog" * 20,
    bytes([0] * 900 + [1] * 90 + [2] * 9 + [3]),
])
def test_roundtrip(data):
    assert roundtrip(data) == data


def test_roundtrip_random_skewed():
    rng = random.Random(7)
    data = bytes(min(255, int(rng.expovariate(0.05))) for _ in range(20000))
    assert roundtrip(data) == data


def test_tree_building_is_deterministic():
    frequency = FrequencyTable({i: (i % 5) + 1 for i in range(0, 256, 3)})
    first, second = build_tree(frequency), build_tree(frequency)
    assert first == second
    assert build_code_table(first) == build_code_table(second)


def test_ties_break_by_symbol_order():
    tree = build_tree(FrequencyTable({10: 1, 20: 1, 30: 1, 40: 1}))
    codes = build_code_table(tree)
    assert codes == {10: "00", 20: "01", 30: "10", 40: "11"}


@pytest.mark.parametrize("seed", range(5))
def test_codes_are_prefix_free(seed):
    rng = random.Random(seed)
    symbols = rng.sample(range(256), rng.randrange(2, 257))
    frequency = FrequencyTable({s: rng.randrange(1, 10000) for s in symbols})
    codes = build_code_table(build_tree(frequency))
    assert set(codes) == set(symbols)
    assert is_prefix_free(codes)


def test_is_prefix_free_detects_prefix():
    assert not is_prefix_free({1: "0", 2: "01"})
    assert is_prefix_free({1: "0", 2: "10", 3: "11"})


def test_encoder_chunking_is_invisible():
    data = bytes(random.Random(11).choice(b"abcdefgh\n ") for _ in range(4000))
    codes = build_code_table(build_tree(FrequencyTable.from_bytes(data)))
    whole = encode(data, codes)

    for sizes in ([1], [3, 5], [7, 1, 1024]):
        encoder = StreamEncoder(codes)
        out = b"".join(encoder.feed(chunk) for chunk in split(data, sizes))
        out += encoder.flush()
        assert out == whole
        assert encoder.compressed_size == len(whole)


def test_decoder_chunking_is_invisible():
    data = bytes(random.Random(12).choice(b"xyzzy0123") for _ in range(3000))
    frequency = FrequencyTable.from_bytes(data)
    packed = encode(data, build_code_table(build_tree(frequency)))

    for sizes in ([1], [2, 9], [4096]):
        decoder = StreamDecoder(build_tree(frequency), len(data))
        out = b"".join(decoder.decode(chunk) for chunk in split(packed, sizes))
        assert out == data
        assert decoder.done()


def test_encoder_keeps_partial_byte_between_feeds():
    encoder = StreamEncoder({65: "1", 66: "0"})
    assert encoder.feed(b"AAA") == b""
    assert encoder.pending_bits == 3
    assert encoder.feed(b"BAAAA") == bytes([0b11101111])
    assert encoder.pending_bits == 0
    assert encoder.flush() == b""
    assert encoder.compressed_size == 1


def test_flush_pads_low_bits_with_zero():
    encoder = StreamEncoder({65: "101"})
    assert encoder.feed(b"A") == b""
    assert encoder.flush() == bytes([0b10100000])
    assert encoder.compressed_size == 1


def test_encoder_rejects_unknown_symbol():
    encoder = StreamEncoder({65: "0"})
    with pytest.raises(UnknownSymbol) as excinfo:
        encoder.feed(b"AB")
    assert excinfo.value.symbol == 66


def test_decoder_ignores_padding_and_extra_input():
    frequency = FrequencyTable({65: 1, 66: 3})
    tree = build_tree(frequency)
    # A is "0", B is "1": 1011 + zero padding would otherwise decode as four more A's
    decoder = StreamDecoder(tree, 4)
    assert decoder.decode(bytes([0b10110000])) == b"BABB"
    assert decoder.done()
    assert decoder.decode(b"\xff\xff") == b""
    assert decoder.emitted == 4


def test_decoder_with_zero_length_is_done():
    decoder = StreamDecoder(build_tree(FrequencyTable({1: 1})), 0)
    assert decoder.done()
    assert decoder.decode(b"\x00") == b""
