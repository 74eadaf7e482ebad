from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from iems.model.peer import Peer

#: Largest chunk returned by a single receive().
DEFAULT_CHUNK_SIZE = 1024


class Transport(ABC):
    """
    Abstract duplex byte-stream transport to one paired peer (RFCOMM, serial SPP, ...).

    Contract:
      - connect(peer)/close() manage the underlying connection. close() is idempotent
        and must unblock a receive() pending in another thread.
      - receive() blocks until data arrives and returns 1..chunk_size bytes. It may
        return b"" when a read timeout elapsed with no data; that is not an error.
      - send(data) returns the number of bytes written.
      - send() and receive() may run concurrently from two threads.
    """

    @abstractmethod
    def connect(self, peer: Peer) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def receive(self) -> bytes: ...

    @abstractmethod
    def send(self, data: bytes) -> int: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
