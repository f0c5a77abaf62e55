"""
Synacor VM — Console (character I/O)

The machine's `in` and `out` instructions move one character at a time;
the operator types whole lines. The console sits between the two.

Output:
  write_char(v) sends the low byte of v to the sink immediately and
  records it in tx_buffer for programmatic inspection.

Input:
  read_char() pops the next queued byte. When the queue is empty it
  blocks on one readline() from the binary source, lower-cases ASCII
  letters and queues every byte of the line, trailing newline included. A line of N
  characters therefore satisfies N+1 `in` instructions before the next
  blocking read. End of stream raises EndOfInput.

Debug commands:
  Only when a command handler is attached, a line starting with the
  command prefix is handed to the handler and never queued.
"""

import logging
from collections import deque
from typing import BinaryIO, Callable, Optional, Union

from ..config import DEBUG_COMMAND_PREFIX, DEFAULT_PROMPT
from ..errors import EndOfInput

log = logging.getLogger(__name__)


class Console:
    """Line-buffered input queue plus unbuffered character output."""

    def __init__(self, source: Optional[BinaryIO] = None,
                 sink: Optional[BinaryIO] = None,
                 prompt: Optional[str] = DEFAULT_PROMPT):
        self.source = source
        self.sink = sink
        self.prompt = prompt

        # TX record: every byte the program has printed
        self.tx_buffer: bytearray = bytearray()

        # RX queue: bytes of the current input line not yet consumed
        self._rx_queue: deque = deque()

        self.command_prefix = DEBUG_COMMAND_PREFIX
        self.command_handler: Optional[Callable[[str], None]] = None

    # --- Output ---

    def write_char(self, value: int):
        byte = value & 0xFF
        self.tx_buffer.append(byte)
        if self.sink is not None:
            self.sink.write(bytes([byte]))
            self.sink.flush()

    @property
    def output(self) -> bytes:
        """All bytes printed since the last reset."""
        return bytes(self.tx_buffer)

    # --- Input ---

    def read_char(self) -> int:
        """Next input character code, blocking on the source if needed."""
        while not self._rx_queue:
            self._read_line()
        return self._rx_queue.popleft()

    @property
    def pending(self) -> int:
        """Characters queued and readable without blocking."""
        return len(self._rx_queue)

    def feed(self, text: Union[str, bytes]):
        """Queue input as if each line had been typed at the prompt.

        Lines pass through the same lower-casing and debug-command
        filtering as lines read from the source. str is encoded as UTF-8.
        """
        if isinstance(text, str):
            text = text.encode("utf-8")
        for line in text.splitlines(keepends=True):
            self._accept_line(line)

    def _read_line(self):
        if self.source is None:
            raise EndOfInput("no input source attached")
        if self.prompt and self.sink is not None:
            self.sink.write(self.prompt.encode('utf-8'))
            self.sink.flush()
        line = self.source.readline()
        if not line:
            raise EndOfInput("input stream closed")
        self._accept_line(line)

    def _accept_line(self, line: bytes):
        # bytes.lower() folds A-Z only, everything else passes through
        line = line.lower()
        prefix = self.command_prefix.encode("ascii")
        if self.command_handler is not None and line.startswith(prefix):
            command = line[len(prefix):].strip()
            self.command_handler(command.decode("ascii", errors="replace"))
            return
        self._rx_queue.extend(line)
        log.debug("Queued %d input characters", len(line))

    def reset(self):
        self.tx_buffer.clear()
        self._rx_queue.clear()
