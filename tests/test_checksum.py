import pytest

from tinynet.checksum import InternetChecksum


def _value(data, initial=0):
    check = InternetChecksum(initial)
    check.add(data)
    return check.value()


def test_empty_checksum():
    assert InternetChecksum().value() == 0xFFFF


def test_rfc1071_example():
    data = bytes([0x00, 0x01, 0xF2, 0x03, 0xF4, 0xF5, 0xF6, 0xF7])
    assert _value(data) == 0x220D


def test_appending_checksum_gives_zero():
    data = b"the quick brown fox!"
    c = _value(data)
    assert _value(data + c.to_bytes(2, "big")) == 0


@pytest.mark.parametrize("split", [1, 2, 3, 7, 10])
def test_pieces_equal_whole(split):
    data = bytes(range(1, 40))
    check = InternetChecksum()
    check.add(data[:split])
    check.add(data[split:])
    assert check.value() == _value(data)


def test_list_of_buffers_equals_whole():
    data = b"abcdefghijk"
    assert _value([b"abc", b"", b"defgh", b"ijk"]) == _value(data)


def test_odd_length_is_padded_with_zero():
    assert _value(b"\x01\x02\x03") == _value(b"\x01\x02\x03\x00")


def test_initial_value_acts_like_leading_word():
    assert _value(b"\xab\xcd", initial=0x1234) == _value(b"\x12\x34\xab\xcd")