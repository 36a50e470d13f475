"""Exception hierarchy raised by the kingdom engine.

Every failure is scoped to the single intent that raised it. All errors carry
a stable ``code`` for programmatic handling and a ``details`` mapping with the
structured context (kingdom ids, amounts, types). Only
:class:`ConflictRetryable` is marked ``retryable``; the transaction
coordinator re-runs an intent for that error alone.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class EngineError(Exception):
    """Base class for every engine failure."""

    code: str = "engine_error"
    retryable: bool = False

    def __init__(self, message: str, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


class NotFound(EngineError):
    code = "not_found"


class KingdomNotFound(NotFound):
    code = "kingdom_not_found"


class OfferNotFound(NotFound):
    code = "offer_not_found"


class UnitNotFound(NotFound):
    code = "unit_not_found"


class BuildingNotFound(NotFound):
    code = "building_not_found"


class NotAuthorized(EngineError):
    code = "not_authorized"


class NotAMember(NotAuthorized):
    code = "not_a_member"


class InsufficientResources(EngineError):
    code = "insufficient_resources"


class InsufficientUnits(EngineError):
    code = "insufficient_units"


class InsufficientOfferQuantity(EngineError):
    code = "insufficient_offer_quantity"


class InvalidInput(EngineError):
    code = "invalid_input"


class InvalidUnitType(InvalidInput):
    code = "invalid_unit_type"


class InvalidBuildingType(InvalidInput):
    code = "invalid_building_type"


class InvalidResourceType(InvalidInput):
    code = "invalid_resource_type"


class InvalidUnits(InvalidInput):
    """Declared attack units are not a subset of the attacker's inventory."""

    code = "invalid_units"


class KingdomAlreadyExists(InvalidInput):
    code = "kingdom_already_exists"


class MissingPrerequisite(InvalidInput):
    code = "missing_prerequisite"


class ConflictRetryable(EngineError):
    """A concurrent write invalidated a value read earlier in the same intent."""

    code = "conflict_retryable"
    retryable = True


class ImmutableRecordError(EngineError):
    code = "immutable_record"
