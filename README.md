# minnow

A small networking toolkit for POSIX systems. At its centre is a
flow-controlled, in-memory byte stream; around it sit thin wrappers over file
descriptors, socket addresses and sockets, a poll-based event loop, and two
command-line tools.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## The byte stream

`minnow.byte_stream.ByteStream` is a buffer with a fixed capacity. It is
written through its `writer()` view and read through its `reader()` view:

```python
from minnow.byte_stream import ByteStream, read

stream = ByteStream(15)
writer = stream.writer()
reader = stream.reader()

writer.push(b"hello")
writer.close()

reader.peek()            # b"hello"
reader.pop(4)
read(reader, 10)         # b"o"
reader.is_finished()     # True
```

- `Writer.push(data)` appends as much of `data` as the available capacity
  allows and silently drops the rest.
- `Writer.close()` marks the end of the stream; `Writer.is_closed()` reports
  it.
- `Reader.peek()` returns the buffered bytes without removing them;
  `Reader.pop(length)` removes up to `length` of them.
- `Reader.is_finished()` is true once the stream is closed and empty.
- The counters `bytes_pushed()`, `available_capacity()`, `bytes_buffered()`
  and `bytes_popped()` report how much has flowed through.
- `set_error()` and `has_error()` mark and report an error on the stream.
- `read(reader, max_len)` peeks and pops up to `max_len` bytes at once.

## Other modules

- `minnow.helpers`: `pretty_print(data, max_length=32)` shows bytes or text
  with unprintable bytes and double quotes escaped as `\xNN`, stopping once
  about `max_length` characters have been produced; `concat(buffers)` joins a
  sequence of `bytes` or of `str`.
- `minnow.debug`: `debug(fmt, *args, **kwargs)` formats with `str.format` and
  passes the message to `debug_str` (nothing is sent when Python runs with
  `-O`). Messages go to standard error prefixed with `DEBUG: ` until
  `set_debug_handler(handler)` routes them elsewhere;
  `reset_debug_handler()` restores the default.
- `minnow.errors`: `TaggedError` (an `OSError` naming the operation that
  failed), `UnixError` (built from an errno value), `check_system_call` and
  `notnull`.
- `minnow.file_descriptor`: `FileDescriptor`, a handle on an OS file
  descriptor. Handles made with `duplicate()` share its state; it counts reads
  and writes, tracks end of file, offers `read`, `readv`, `write`, `writev`
  and `set_blocking`, and works as a context manager that closes it.
- `minnow.address`: `Address`, which resolves a host and a service name or
  port (IPv4 only), wraps an existing sockaddr with `from_sockaddr`, and
  converts to and from 32-bit numeric IPv4 addresses.
- `minnow.sockets`: `TCPSocket`, `UDPSocket`, `PacketSocket`,
  `LocalStreamSocket` and `LocalDatagramSocket`, all `FileDescriptor`s with
  `bind`, `connect`, `shutdown`, `local_address`, `peer_address`,
  `set_reuseaddr` and `throw_if_error`; TCP sockets add `listen` and
  `accept`, datagram sockets `recv`, `send` and `sendto`.
- `minnow.eventloop`: `EventLoop`. `add_rule` runs a callback when a file
  descriptor becomes readable (`Direction.IN`) or writable (`Direction.OUT`)
  and the rule's interest function holds; `add_basic_rule` runs a callback
  whenever its interest holds. `wait_next_event(timeout_ms)` serves one rule
  and returns a `Result`: `SUCCESS`, `TIMEOUT` or `EXIT`. A `RuleHandle`
  cancels its rule. Rules that are interested but make no progress raise a
  busy-wait error.
- `minnow.stream_copy`: `bidirectional_stream_copy(sock, peer_name)` copies
  standard input to the socket and the socket to standard output until both
  directions have finished; other descriptors may be passed as `input_fd` and
  `output_fd`.

## Commands

Fetch a page over HTTP/1.1 and write the raw response, headers included, to
standard output:

```
webget example.com /index.html
```

Connect to a TCP server and copy standard input and output to and from it:

```
tcp-native example.com 80
```

Or listen on a local address, accept exactly one connection and copy across
it:

```
tcp-native -l 127.0.0.1 9090
```

Diagnostic messages go to standard error. Both commands exit with status 1 on
a usage error or a failure.

## What it does not do

- `webget` speaks plain HTTP on port 80 only: no HTTPS, no redirects, and no
  parsing of the response.
- Name resolution in `Address` is IPv4 only.
- The package relies on `select.poll`, `os.readv` and `os.writev`, so it runs
  on POSIX systems only; `PacketSocket` and `bind_to_device` need Linux.
- It has no TCP implementation of its own; the sockets are the operating
  system's.