# tinynet

tinynet is a small user-space networking toolkit for Linux. It gives you the
building blocks for writing and testing a network stack of your own:

- **Wire formats** (`tinynet.parser`): `Parser` reads big-endian integers
  (`integer(width)`) and raw bytes (`string(length)`) from a list of byte
  buffers. A read past the end does not raise; it marks the parser as failed
  (`has_error()`). `Serializer` writes integers and buffers into a list of
  byte buffers. The helpers `parse(obj, buffers)` and `serialize(obj)` work with
  any object that has `parse(parser)` and `serialize(serializer)` methods.
- **Packets**: `EthernetHeader` and `EthernetFrame` (`tinynet.ethernet`),
  `IPv4Header` and `IPv4Datagram` (`tinynet.ipv4`), and `ARPMessage`
  (`tinynet.arp`). `IPv4Header.parse` checks the version, the header length and
  the checksum, and skips any IP options. `ARPMessage` accepts only
  Ethernet/IPv4 requests and replies.
- **Checksums** (`tinynet.checksum`): `InternetChecksum` computes the
  ones'-complement Internet checksum step by step. You can feed it data in
  pieces of any length.
- **System resources**: `FileDescriptor` (`tinynet.file_descriptor`) is a
  descriptor handle that counts reads and writes. Duplicates share one
  descriptor, which is closed when the last handle goes away. You can also use
  it as a context manager. The module also provides `Address`
  (`tinynet.address`) and the socket classes `UDPSocket`, `TCPSocket`,
  `PacketSocket` and `LocalStreamSocket` (`tinynet.sockets`), plus the TUN/TAP
  devices `TunFD` and `TapFD` (`tinynet.tun`). Failed calls raise `UnixError`
  or `TaggedError` (`tinynet.errors`), and each error carries the name of the
  call that failed.
- **Event loop** (`tinynet.eventloop`): `EventLoop` runs callbacks for plain
  rules (`add_rule`) and for rules tied to a file descriptor (`add_fd_rule`).
  Each call to `wait_next_event(timeout_ms)` serves at most one rule and
  returns a `Result`: `SUCCESS`, `TIMEOUT` or `EXIT`. It raises
  `BusyWaitError` when a rule stays interested without making progress.
- **Randomness** (`tinynet.rng`): `get_random_engine()` returns a
  `random.Random` seeded from operating-system randomness.

## Installation

```
pip install .
```

To run the tests, install the `test` extra and run pytest:

```
pip install ".[test]"
pytest
```

## Examples

Build an IPv4 header, then parse it back:

```python
from tinynet.ipv4 import IPv4Header
from tinynet.parser import parse, serialize

header = IPv4Header(length=20, src=0x0A000001, dst=0x0A000002)
header.compute_checksum()
buffers = serialize(header)

decoded = IPv4Header()
assert parse(decoded, buffers)
print(decoded)  # IPv4, len=20, protocol=6, src=10.0.0.1, dst=10.0.0.2
```

Compute an Internet checksum:

```python
from tinynet.checksum import InternetChecksum

check = InternetChecksum()
check.add(b"\x45\x00\x00\x14")
print(hex(check.value()))
```

Run an event loop over a pipe:

```python
import os
from tinynet.eventloop import Direction, EventLoop, Result
from tinynet.file_descriptor import FileDescriptor

read_end, write_end = os.pipe()
reader = FileDescriptor(read_end)
writer = FileDescriptor(write_end)
writer.write(b"hello")
writer.close()

loop = EventLoop()
category = loop.add_category("read pipe")
received = []
loop.add_fd_rule(category, reader, Direction.IN, lambda: received.append(reader.read(1024)))

while loop.wait_next_event(-1) is not Result.EXIT:
    pass
print(b"".join(received))  # b'hello'
```

To open TUN/TAP devices or packet sockets, you need root, or a device that has
already been created for your user.

## What tinynet does not do

tinynet is a toolkit, not a complete network stack. It has no TCP sender,
receiver or connection state machine, and no TCP segment format. It has no
network interface that resolves addresses with ARP, and no router. It ships no
command-line programs. You supply the protocol logic and drive it with these
pieces.