"""User-space networking toolkit: packet formats, checksums, descriptors, sockets, TUN/TAP and an event loop."""

__version__ = "0.1.0"