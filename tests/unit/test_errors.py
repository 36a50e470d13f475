"""Tests for the engine error hierarchy."""

import pytest

from kingdoms.domain import errors


@pytest.mark.parametrize(
    ("cls", "parent"),
    [
        (errors.KingdomNotFound, errors.NotFound),
        (errors.OfferNotFound, errors.NotFound),
        (errors.UnitNotFound, errors.NotFound),
        (errors.BuildingNotFound, errors.NotFound),
        (errors.NotAMember, errors.NotAuthorized),
        (errors.InvalidUnitType, errors.InvalidInput),
        (errors.InvalidUnits, errors.InvalidInput),
        (errors.KingdomAlreadyExists, errors.InvalidInput),
        (errors.ConflictRetryable, errors.EngineError),
    ],
)
def test_hierarchy(cls, parent):
    assert issubclass(cls, parent)
    assert issubclass(cls, errors.EngineError)


def test_only_conflicts_are_retryable():
    assert errors.ConflictRetryable.retryable is True
    assert errors.InsufficientResources.retryable is False
    assert errors.InvalidInput.retryable is False


def test_to_dict_carries_code_and_details():
    exc = errors.InsufficientResources("short", {"kingdom_id": 4, "required": 10})
    assert str(exc) == "short"
    assert exc.to_dict() == {
        "code": "insufficient_resources",
        "message": "short",
        "details": {"kingdom_id": 4, "required": 10},
    }


def test_details_default_to_empty_dict():
    assert errors.OfferNotFound("gone").details == {}
