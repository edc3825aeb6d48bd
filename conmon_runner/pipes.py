"""Local socket pairs used for handshake traffic with the monitor."""

from __future__ import annotations

import socket
from dataclasses import dataclass

from .exceptions import PipeCreationError


@dataclass
class Pipe:
    """
    Connected pair of local socket endpoints.

    The parent end stays in this process; the child end is inherited by the
    monitor. Which side reads and which writes is up to the caller.
    """

    parent: socket.socket
    child: socket.socket

    def close_parent(self) -> None:
        """Close the parent-held end. Safe to call more than once."""
        self.parent.close()

    def close_child(self) -> None:
        """Close the child-held end. Safe to call more than once."""
        self.child.close()

    def close(self) -> None:
        """Close both ends."""
        self.close_parent()
        self.close_child()


def new_pipe() -> Pipe:
    """
    Create a sequenced-packet socket pair for one handshake direction.

    Both descriptors are close-on-exec; the supervisor makes the child end
    inheritable only inside the forked child.

    Raises:
        PipeCreationError: If the OS cannot allocate the pair
    """
    try:
        parent, child = socket.socketpair(socket.AF_UNIX, socket.SOCK_SEQPACKET)
    except OSError as e:
        raise PipeCreationError(f"failed to create socket pair: {e}") from e
    return Pipe(parent=parent, child=child)
