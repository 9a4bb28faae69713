"""Handles on Linux TUN and TAP devices."""

from __future__ import annotations

import fcntl
import os
import struct

from tinynet.errors import UnixError
from tinynet.file_descriptor import FileDescriptor

CLONE_DEVICE = "/dev/net/tun"
TUNSETIFF = 0x400454CA
IFF_TUN = 0x0001
IFF_TAP = 0x0002
IFF_NO_PI = 0x1000
IFNAMSIZ = 16
_IFREQ_SIZE = 40


def _ifreq(devname: str, flags: int) -> bytes:
    name = devname.encode()[: IFNAMSIZ - 1]
    request = struct.pack(f"{IFNAMSIZ}sH", name, flags)
    return request.ljust(_IFREQ_SIZE, b"\0")


class TunTapFD(FileDescriptor):
    """A descriptor on an existing persistent TUN (IP) or TAP (Ethernet) device."""

    def __init__(self, devname: str, is_tun: bool) -> None:
        try:
            fd = os.open(CLONE_DEVICE, os.O_RDWR | os.O_CLOEXEC)
        except OSError as exc:
            raise UnixError("open", exc.errno or 0) from exc
        super().__init__(fd)

        flags = (IFF_TUN if is_tun else IFF_TAP) | IFF_NO_PI  # no packet info
        try:
            fcntl.ioctl(self.fd_num(), TUNSETIFF, _ifreq(devname, flags))
        except OSError as exc:
            self.close()
            raise UnixError("ioctl", exc.errno or 0) from exc


class TunFD(TunTapFD):
    """A descriptor on a TUN device, which carries IP datagrams."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, True)


class TapFD(TunTapFD):
    """A descriptor on a TAP device, which carries Ethernet frames."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, False)