import errno
import os
import struct
from unittest import mock

import pytest

from tinynet import tun
from tinynet.errors import UnixError
from tinynet.tun import TapFD, TunFD, TunTapFD


@pytest.fixture
def fake_device():
    r, w = os.pipe()
    calls = []

    def fake_ioctl(fd, request, arg):
        calls.append((fd, request, arg))
        return arg

    with mock.patch("os.open", return_value=r) as opener, mock.patch("fcntl.ioctl", fake_ioctl):
        yield opener, calls, r
    os.close(w)


def _decode(arg):
    name, flags = struct.unpack_from(f"{tun.IFNAMSIZ}sH", arg)
    return name, flags


def test_tun_device_request(fake_device):
    opener, calls, r = fake_device
    device = TunFD("tun144")
    try:
        assert opener.call_args.args[0] == tun.CLONE_DEVICE
        assert len(calls) == 1
        fd, request, arg = calls[0]
        assert fd == r == device.fd_num()
        assert request == tun.TUNSETIFF
        name, flags = _decode(arg)
        assert name.rstrip(b"\0") == b"tun144"
        assert flags == tun.IFF_TUN | tun.IFF_NO_PI
    finally:
        device.close()


def test_tap_device_flags(fake_device):
    _, calls, r = fake_device
    device = TapFD("tap10")
    try:
        assert device.fd_num() == r
        assert device.closed() is False
        assert len(calls) == 1
        assert calls[0][0] == device.fd_num()
        name, flags = _decode(calls[0][2])
        assert name.rstrip(b"\0") == b"tap10"
        assert flags == tun.IFF_TAP | tun.IFF_NO_PI
    finally:
        device.close()


def test_long_name_truncated_and_terminated(fake_device):
    _, calls, _ = fake_device
    devname = "d" * 40
    device = TunTapFD(devname, True)
    try:
        name, _ = _decode(calls[0][2])
        assert name[: tun.IFNAMSIZ - 1] == devname[: tun.IFNAMSIZ - 1].encode()
        assert name[tun.IFNAMSIZ - 1] == 0
    finally:
        device.close()


def test_open_failure_raises_unix_error():
    with mock.patch("os.open", side_effect=FileNotFoundError(errno.ENOENT, "missing")):
        with pytest.raises(UnixError) as info:
            TunFD("tun144")
    assert info.value.attempt == "open"
    assert info.value.error_code == errno.ENOENT


def test_ioctl_failure_closes_descriptor():
    r, w = os.pipe()
    try:
        with mock.patch("os.open", return_value=r), mock.patch(
            "fcntl.ioctl", side_effect=PermissionError(errno.EPERM, "denied")
        ):
            with pytest.raises(UnixError) as info:
                TapFD("tap10")
        assert info.value.attempt == "ioctl"
        assert info.value.error_code == errno.EPERM
        with pytest.raises(OSError):
            os.fstat(r)
    finally:
        os.close(w)