"""HTTP routes for the kingdom API.

The acting player arrives in the ``X-Player-Id`` header, set by the upstream
authentication layer. Engine errors become HTTP errors carrying the error's
``code`` and ``details``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from kingdoms.api.runtime import ApiState
from kingdoms.domain.combat import DeclaredUnit
from kingdoms.domain.errors import ConflictRetryable, EngineError, NotAuthorized, NotFound
from kingdoms.schemas import (
    AttackCreate,
    BattleRead,
    BuildingCreate,
    BuildingRead,
    CancellationRead,
    KingdomCreate,
    KingdomRead,
    NpcOfferRead,
    OfferBuy,
    OfferCreate,
    OfferRead,
    ResourceSend,
    SettlementRead,
    TransferRead,
    UnitRead,
    UnitSend,
    UnitTrain,
)

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]
PlayerId = Annotated[int, Header(alias="X-Player-Id", description="Authenticated player")]


def error_status(exc: EngineError) -> int:
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, NotAuthorized):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, ConflictRetryable):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


@contextmanager
def engine_errors() -> Iterator[None]:
    try:
        yield
    except EngineError as exc:
        raise HTTPException(status_code=error_status(exc), detail=exc.to_dict()) from exc


@router.get("/health")
def health(state: ApiStateDep) -> dict[str, object]:
    return {
        "status": "ok" if state.database_ok() else "degraded",
        "rules_version": state.settings.rules_version,
        "conflict_retry_attempts": state.settings.conflict_retry_attempts,
    }


@router.get("/rules")
def rules(state: ApiStateDep) -> dict[str, object]:
    """Rule tables clients need to price intents before sending them."""
    rules = state.rules
    return {
        "resource_types": list(rules.economy.resource_types),
        "starting_balances": dict(rules.economy.starting_balances),
        "units": {
            unit_type: {
                "attack": profile.attack,
                "defense": profile.defense,
                "speed": profile.speed,
                "cost": dict(profile.cost),
                "training_seconds": profile.training_seconds,
                "upgrade_cost": dict(profile.upgrade_cost),
            }
            for unit_type, profile in rules.military.units.items()
        },
        "buildings": {
            building_type: {"cost": dict(profile.cost)}
            for building_type, profile in rules.construction.buildings.items()
        },
        "steal_percent": rules.battle.steal_percent,
    }


# ----------------------------------------------------------------------
# Kingdoms
# ----------------------------------------------------------------------


@router.post("/kingdoms", response_model=KingdomRead, status_code=status.HTTP_201_CREATED)
def create_kingdom(request: KingdomCreate, player_id: PlayerId, state: ApiStateDep) -> KingdomRead:
    with engine_errors():
        kingdom = state.coordinator.create_kingdom(player_id, request.name)
    return KingdomRead.model_validate(kingdom)


@router.get("/kingdoms/me", response_model=KingdomRead)
def my_kingdom(player_id: PlayerId, state: ApiStateDep) -> KingdomRead:
    with engine_errors():
        kingdom = state.coordinator.kingdom_for_player(player_id)
    return KingdomRead.model_validate(kingdom)


@router.get("/kingdoms/{kingdom_id}", response_model=KingdomRead)
def get_kingdom(kingdom_id: int, state: ApiStateDep) -> KingdomRead:
    with engine_errors():
        kingdom = state.coordinator.kingdom_overview(kingdom_id)
    return KingdomRead.model_validate(kingdom)


# ----------------------------------------------------------------------
# Units
# ----------------------------------------------------------------------


@router.get("/kingdoms/{kingdom_id}/units", response_model=list[UnitRead])
def list_units(kingdom_id: int, state: ApiStateDep) -> list[UnitRead]:
    with engine_errors():
        units = state.coordinator.list_units(kingdom_id)
    return [UnitRead.model_validate(u) for u in units]


@router.post("/kingdoms/{kingdom_id}/units/train", response_model=UnitRead)
def train_units(
    kingdom_id: int, request: UnitTrain, player_id: PlayerId, state: ApiStateDep
) -> UnitRead:
    with engine_errors():
        stock = state.coordinator.train_units(
            player_id, kingdom_id, request.unit_type, request.quantity
        )
    return UnitRead.model_validate(stock)


@router.post("/kingdoms/{kingdom_id}/units/complete-training", response_model=list[UnitRead])
def complete_training(kingdom_id: int, player_id: PlayerId, state: ApiStateDep) -> list[UnitRead]:
    with engine_errors():
        completed = state.coordinator.complete_training(player_id, kingdom_id)
    return [UnitRead.model_validate(u) for u in completed]


@router.post("/kingdoms/{kingdom_id}/units/{unit_type}/upgrade", response_model=UnitRead)
def upgrade_unit(
    kingdom_id: int, unit_type: str, player_id: PlayerId, state: ApiStateDep
) -> UnitRead:
    with engine_errors():
        stock = state.coordinator.upgrade_unit(player_id, kingdom_id, unit_type)
    return UnitRead.model_validate(stock)


# ----------------------------------------------------------------------
# Buildings
# ----------------------------------------------------------------------


@router.get("/kingdoms/{kingdom_id}/buildings", response_model=list[BuildingRead])
def list_buildings(kingdom_id: int, state: ApiStateDep) -> list[BuildingRead]:
    with engine_errors():
        buildings = state.coordinator.list_buildings(kingdom_id)
    return [BuildingRead.model_validate(b) for b in buildings]


@router.post(
    "/kingdoms/{kingdom_id}/buildings",
    response_model=BuildingRead,
    status_code=status.HTTP_201_CREATED,
)
def construct_building(
    kingdom_id: int, request: BuildingCreate, player_id: PlayerId, state: ApiStateDep
) -> BuildingRead:
    with engine_errors():
        building = state.coordinator.construct_building(
            player_id, kingdom_id, request.building_type, request.position_x, request.position_y
        )
    return BuildingRead.model_validate(building)


@router.post("/kingdoms/{kingdom_id}/buildings/{building_id}/upgrade", response_model=BuildingRead)
def upgrade_building(
    kingdom_id: int, building_id: int, player_id: PlayerId, state: ApiStateDep
) -> BuildingRead:
    with engine_errors():
        building = state.coordinator.upgrade_building(player_id, kingdom_id, building_id)
    return BuildingRead.model_validate(building)


# ----------------------------------------------------------------------
# Battles
# ----------------------------------------------------------------------


@router.post("/kingdoms/{kingdom_id}/attack", response_model=BattleRead)
def attack(
    kingdom_id: int, request: AttackCreate, player_id: PlayerId, state: ApiStateDep
) -> BattleRead:
    units = [DeclaredUnit(unit.unit_type, unit.quantity) for unit in request.units]
    with engine_errors():
        report = state.coordinator.attack(player_id, kingdom_id, request.target_kingdom_id, units)
    return BattleRead.model_validate(report)


@router.get("/kingdoms/{kingdom_id}/battles", response_model=list[BattleRead])
def battle_history(
    kingdom_id: int,
    state: ApiStateDep,
    limit: Annotated[int, Query(ge=1, le=50)] = 50,
) -> list[BattleRead]:
    with engine_errors():
        reports = state.coordinator.battle_history(kingdom_id, limit=limit)
    return [BattleRead.model_validate(r) for r in reports]


# ----------------------------------------------------------------------
# Market
# ----------------------------------------------------------------------


@router.get("/market/offers", response_model=list[OfferRead])
def list_offers(
    state: ApiStateDep, limit: Annotated[int | None, Query(ge=1)] = None
) -> list[OfferRead]:
    return [OfferRead.model_validate(o) for o in state.coordinator.list_offers(limit)]


@router.post(
    "/kingdoms/{kingdom_id}/market/offers",
    response_model=OfferRead,
    status_code=status.HTTP_201_CREATED,
)
def create_offer(
    kingdom_id: int, request: OfferCreate, player_id: PlayerId, state: ApiStateDep
) -> OfferRead:
    with engine_errors():
        offer = state.coordinator.create_offer(
            player_id,
            kingdom_id,
            request.resource_type,
            request.quantity,
            request.price_type,
            request.price_amount,
        )
    return OfferRead.model_validate(offer)


@router.post("/market/offers/{offer_id}/buy", response_model=SettlementRead)
def buy_offer(
    offer_id: int, request: OfferBuy, player_id: PlayerId, state: ApiStateDep
) -> SettlementRead:
    with engine_errors():
        settlement = state.coordinator.buy_offer(
            player_id, request.kingdom_id, offer_id, request.quantity
        )
    return SettlementRead.model_validate(settlement)


@router.delete("/market/offers/{offer_id}", response_model=CancellationRead)
def cancel_offer(
    offer_id: int,
    kingdom_id: Annotated[int, Query(description="Selling kingdom")],
    player_id: PlayerId,
    state: ApiStateDep,
) -> CancellationRead:
    with engine_errors():
        receipt = state.coordinator.cancel_offer(player_id, kingdom_id, offer_id)
    return CancellationRead.model_validate(receipt)


@router.get("/kingdoms/{kingdom_id}/market/npc-offers", response_model=list[NpcOfferRead])
def npc_offers(
    kingdom_id: int,
    state: ApiStateDep,
    seed: Annotated[str | None, Query(description="Replay a deterministic set")] = None,
) -> list[NpcOfferRead]:
    with engine_errors():
        offers = state.coordinator.npc_offers(kingdom_id, seed=seed)
    return [NpcOfferRead.model_validate(o) for o in offers]


# ----------------------------------------------------------------------
# Alliance transfers
# ----------------------------------------------------------------------


@router.post("/alliances/{alliance_id}/send-resources", response_model=TransferRead)
def send_resources(
    alliance_id: int, request: ResourceSend, player_id: PlayerId, state: ApiStateDep
) -> TransferRead:
    with engine_errors():
        receipt = state.coordinator.send_resources(
            player_id,
            alliance_id,
            request.sender_kingdom_id,
            request.target_kingdom_id,
            request.resource_type,
            request.amount,
        )
    return TransferRead.model_validate(receipt)


@router.post("/alliances/{alliance_id}/send-units", response_model=TransferRead)
def send_units(
    alliance_id: int, request: UnitSend, player_id: PlayerId, state: ApiStateDep
) -> TransferRead:
    with engine_errors():
        receipt = state.coordinator.send_units(
            player_id,
            alliance_id,
            request.sender_kingdom_id,
            request.target_kingdom_id,
            request.unit_type,
            request.quantity,
        )
    return TransferRead.model_validate(receipt)
