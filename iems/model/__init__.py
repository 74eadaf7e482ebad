from .peer import Peer
from .transport import TransportType

__all__ = ["Peer",
           "TransportType"]
