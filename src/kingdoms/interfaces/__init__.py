"""Protocol-based interfaces for collaborators the engine does not own."""

from kingdoms.interfaces.alliance import IAllianceDirectory

__all__ = [
    "IAllianceDirectory",
]
