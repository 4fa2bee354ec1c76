"""Abstract base classes for swappable collaborators.

The guidance engine depends only on these interfaces and the schemas,
never on concrete store implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from anchor_guidance.schemas import (
        AnchorRecord,
        ARObjectRecord,
        WirelessFingerprint,
    )


class RecordStore(ABC):
    """Keyed storage of anchors, objects and wireless fingerprints.

    Relationships:
    - An object belongs to exactly one anchor (many:1)
    - A fingerprint belongs to exactly one object (1:1)

    Deleting an anchor cascades to its objects and their fingerprints;
    deleting an object cascades to its fingerprint.
    """

    # -------------------------------------------------------------------------
    # Anchors
    # -------------------------------------------------------------------------

    @abstractmethod
    def put_anchor(self, anchor: AnchorRecord) -> None:
        """Insert or replace an anchor."""
        ...

    @abstractmethod
    def get_anchor(self, anchor_id: str) -> AnchorRecord | None:
        """Retrieve an anchor by ID, or None."""
        ...

    @abstractmethod
    def list_anchors(self) -> list[AnchorRecord]:
        """All anchors, newest first."""
        ...

    @abstractmethod
    def delete_anchor(self, anchor_id: str) -> bool:
        """Delete an anchor and everything under it.

        Returns:
            True if the anchor existed.
        """
        ...

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------

    @abstractmethod
    def put_object(self, obj: ARObjectRecord) -> None:
        """Insert or replace an object.

        Raises:
            RecordNotFoundError: If the parent anchor does not exist.
        """
        ...

    @abstractmethod
    def get_object(self, object_id: str) -> ARObjectRecord | None:
        """Retrieve an object by ID, or None."""
        ...

    @abstractmethod
    def list_objects(self, anchor_id: str | None = None) -> list[ARObjectRecord]:
        """Objects of one anchor, or of every anchor when anchor_id is None."""
        ...

    @abstractmethod
    def delete_object(self, object_id: str) -> bool:
        """Delete an object and its fingerprint.

        Returns:
            True if the object existed.
        """
        ...

    # -------------------------------------------------------------------------
    # Fingerprints
    # -------------------------------------------------------------------------

    @abstractmethod
    def put_fingerprint(self, fingerprint: WirelessFingerprint) -> None:
        """Replace the object's fingerprint wholesale.

        Raises:
            RecordNotFoundError: If the owning object does not exist.
        """
        ...

    @abstractmethod
    def get_fingerprint(self, object_id: str) -> WirelessFingerprint | None:
        """The object's fingerprint.

        Returns None when there is none, or when the stored row is
        malformed and cannot be decoded.
        """
        ...

    @abstractmethod
    def delete_fingerprint(self, object_id: str) -> bool:
        """Delete the object's fingerprint. Returns True if one existed."""
        ...
