import pytest

from liqwatch.core.errors import DecodeError, MalformedLog
from liqwatch.core.units import format_units
from liqwatch.decoding.abi import decode_data, hex_to_bytes, parse_word, to_address, to_int, topic_word

from logs_factory import ALICE, addr_word, word


@pytest.mark.parametrize("pad", ["00" * 12, "ff" * 12, "deadbeef" * 3, "0123456789abcdef01234567"])
def test_address_extraction_ignores_padding(pad: str) -> None:
    w = bytes.fromhex(addr_word(ALICE, pad))
    assert to_address(w) == ALICE


def test_address_is_checksummed() -> None:
    w = bytes.fromhex("00" * 12 + "d8da6bf26964af9d7eed9e03e53415d37aa96045")
    assert to_address(w) == "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


class TestInt24SignExtension:
    @pytest.mark.parametrize(
        ("low", "expected"),
        [
            ("ffffff", -1),
            ("7fffff", 8388607),
            ("800000", -8388608),
            ("000000", 0),
            ("ffff9c", -100),
            ("0000c8", 200),
        ],
    )
    def test_low_24_bits(self, low: str, expected: int) -> None:
        assert to_int(bytes.fromhex("00" * 29 + low), 24) == expected

    def test_high_bytes_do_not_matter(self) -> None:
        assert to_int(bytes.fromhex("ab" * 29 + "7fffff"), 24) == 8388607
        assert to_int(bytes.fromhex("00" * 29 + "ffffff"), 24) == to_int(bytes.fromhex("ff" * 32), 24)

    def test_topic_word_parse(self) -> None:
        assert parse_word(topic_word("0x" + word(-100)), "int24") == -100


def test_int256_negative() -> None:
    assert parse_word(bytes.fromhex(word(-5 * 10**17)), "int256") == -500000000000000000


def test_uint_masks_to_width() -> None:
    assert parse_word(bytes.fromhex("ff" * 32), "uint128") == 2**128 - 1
    assert parse_word(bytes.fromhex("ff" * 32), "uint256") == 2**256 - 1


class TestDecodeData:
    def test_exact_width(self) -> None:
        data = bytes.fromhex(addr_word(ALICE) + word(1) + word(2))
        assert decode_data(["address", "uint128", "uint256"], data) == [ALICE, 1, 2]

    def test_one_byte_short(self) -> None:
        data = bytes.fromhex(word(1) + word(2))[:-1]
        with pytest.raises(DecodeError):
            decode_data(["uint256", "uint256"], data)

    def test_trailing_bytes(self) -> None:
        data = bytes.fromhex(word(1) + "00")
        with pytest.raises(DecodeError):
            decode_data(["uint256"], data)

    def test_empty_layout_accepts_empty_payload(self) -> None:
        assert decode_data([], b"") == []


def test_hex_to_bytes_rejects_garbage() -> None:
    with pytest.raises(DecodeError):
        hex_to_bytes("0xzz")
    assert hex_to_bytes("0x") == b""
    assert hex_to_bytes("0A0b") == b"\x0a\x0b"


@pytest.mark.parametrize("bad", ["0x1234", "0x" + "00" * 33, "0x" + "zz" * 32])
def test_topic_word_rejects_non_words(bad: str) -> None:
    with pytest.raises(MalformedLog):
        topic_word(bad)


class TestFormatUnits:
    @pytest.mark.parametrize(
        ("value", "decimals", "expected"),
        [
            (10**18, 18, "1.0"),
            (-5 * 10**17, 18, "-0.5"),
            (25 * 10**16, 18, "0.25"),
            (0, 18, "0.0"),
            (1, 18, "0.000000000000000001"),
            (-1, 18, "-0.000000000000000001"),
            (1_500_000, 6, "1.5"),
            (7, 0, "7.0"),
            (2**256 - 1, 18, "115792089237316195423570985008687907853269984665640564039457.584007913129639935"),
        ],
    )
    def test_render(self, value: int, decimals: int, expected: str) -> None:
        assert format_units(value, decimals) == expected

    def test_negative_decimals(self) -> None:
        with pytest.raises(ValueError):
            format_units(1, -1)
