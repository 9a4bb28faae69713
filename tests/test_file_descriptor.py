import os

import pytest

from tinynet.errors import UnixError
from tinynet.file_descriptor import FileDescriptor


@pytest.fixture
def pipe():
    r, w = os.pipe()
    reader = FileDescriptor(r)
    writer = FileDescriptor(w)
    yield reader, writer
    for fd in (reader, writer):
        if not fd.closed():
            fd.close()


def test_write_then_read_round_trip(pipe):
    reader, writer = pipe
    assert writer.write(b"hello") == 5
    assert reader.read() == b"hello"
    assert writer.write_count() == 1
    assert reader.read_count() == 1
    assert not reader.eof()


def test_read_limited_by_size(pipe):
    reader, writer = pipe
    writer.write(b"abcdef")
    assert reader.read(4) == b"abcd"
    assert reader.read(4) == b"ef"


def test_write_several_buffers(pipe):
    reader, writer = pipe
    assert writer.write([b"ab", bytearray(b"cd"), b"e"]) == 5
    assert reader.read() == b"abcde"


def test_empty_write_returns_zero(pipe):
    _, writer = pipe
    assert writer.write(b"") == 0
    assert writer.write_count() == 1


def test_eof_after_writer_closed(pipe):
    reader, writer = pipe
    writer.close()
    assert writer.closed()
    assert reader.read() == b""
    assert reader.eof()
    assert reader.read_count() == 1


def test_close_sets_eof_and_closed(pipe):
    reader, _ = pipe
    reader.close()
    assert reader.closed()
    assert reader.eof()


def test_close_twice_raises(pipe):
    reader, _ = pipe
    reader.close()
    with pytest.raises(UnixError) as info:
        reader.close()
    assert info.value.attempt == "close"


def test_negative_fd_rejected():
    with pytest.raises(ValueError):
        FileDescriptor(-1)


def test_invalid_fd_raises_unix_error():
    r, w = os.pipe()
    os.close(r)
    os.close(w)
    with pytest.raises(UnixError) as info:
        FileDescriptor(r)
    assert info.value.attempt == "fcntl"


def test_non_blocking_read_with_no_data(pipe):
    reader, _ = pipe
    reader.set_blocking(False)
    assert os.get_blocking(reader.fd_num()) is False
    assert reader.read() == b""
    assert not reader.eof()
    assert reader.read_count() == 0


def test_set_blocking_back(pipe):
    reader, _ = pipe
    reader.set_blocking(False)
    reader.set_blocking(True)
    assert os.get_blocking(reader.fd_num()) is True


def test_read_vectored_fills_buffers_in_order(pipe):
    reader, writer = pipe
    writer.write(b"abcdefgh")
    assert reader.read_vectored([3, 2]) == [b"abc", b"defgh"]
    assert reader.read_count() == 1


def test_read_vectored_short_read(pipe):
    reader, writer = pipe
    writer.write(b"ab")
    assert reader.read_vectored([3, 100]) == [b"ab", b""]


def test_read_vectored_empty_request(pipe):
    reader, _ = pipe
    assert reader.read_vectored([]) == []
    assert reader.read_count() == 0


def test_read_on_closed_descriptor_raises(pipe):
    reader, _ = pipe
    reader.close()
    with pytest.raises(UnixError) as info:
        reader.read()
    assert info.value.attempt == "read"


def test_context_manager_closes(pipe):
    reader, _ = pipe
    with reader as fd:
        assert fd is reader
    assert reader.closed()