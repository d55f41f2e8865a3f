"""TCP header structure and control flags."""

from __future__ import annotations

import enum
from dataclasses import dataclass

__all__ = ["Flag", "TCPHeader", "describe_flags"]


class Flag(enum.IntFlag):
    """TCP control flags, with their bit positions in the flags octet."""

    FIN = 1 << 0
    SYN = 1 << 1
    RST = 1 << 2
    PSH = 1 << 3
    ACK = 1 << 4
    URG = 1 << 5


# Order used when rendering a header with str().
_HEADER_FLAG_ORDER = (Flag.FIN, Flag.SYN, Flag.RST, Flag.PSH, Flag.ACK, Flag.URG)

# Order used by describe_flags().
_DESCRIBE_FLAG_ORDER = (Flag.SYN, Flag.ACK, Flag.FIN, Flag.RST, Flag.PSH, Flag.URG)


@dataclass
class TCPHeader:
    """A TCP header as laid out in RFC 793."""

    source_port: int
    destination_port: int
    sequence_number: int = 0
    ack_number: int = 0
    data_offset: int = 5  # header length in 32-bit words; 5 is the minimum
    reserved: int = 0
    flags: int = 0
    window_size: int = 65535
    checksum: int = 0
    urgent_pointer: int = 0

    def set_flag(self, flag: int) -> None:
        """Set one or more control flags."""
        self.flags = (self.flags | int(flag)) & 0xFF

    def has_flag(self, flag: int) -> bool:
        """Return True if any of the given flags is set."""
        return self.flags & int(flag) != 0

    def header_length(self) -> int:
        """Return the header length in bytes."""
        return self.data_offset * 4

    def __str__(self) -> str:
        flags = "".join(f"{flag.name} " for flag in _HEADER_FLAG_ORDER if self.has_flag(flag))
        return (
            f"TCP[{self.source_port}->{self.destination_port} "
            f"seq={self.sequence_number} ack={self.ack_number} "
            f"flags={flags}win={self.window_size}]"
        )


def describe_flags(header: TCPHeader) -> str:
    """Return the header's flags joined by '|', or 'NONE' when none is set."""
    names = [flag.name for flag in _DESCRIBE_FLAG_ORDER if header.has_flag(flag)]
    return "|".join(names) if names else "NONE"