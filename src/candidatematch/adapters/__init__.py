"""Source-specific candidate adapters."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .portal import PortalAdapter


@runtime_checkable
class CandidateAdapter(Protocol):
    """Source-specific candidate adapter contract.

    Implementations transform source-native candidate payloads into
    dictionaries that validate as :class:`CandidateRecord`.
    """

    provider: str

    def can_handle(self, blob: bytes | str | dict, metadata: dict) -> bool:
        """Return True when the adapter can parse the given payload."""

    def parse_candidate(self, blob: bytes | str | dict) -> dict:
        """Parse a candidate payload and return a CandidateRecord dictionary."""


__all__ = ["CandidateAdapter", "PortalAdapter"]
