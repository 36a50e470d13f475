"""Runtime primitives backing the kingdom HTTP API."""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from kingdoms.config import Settings, get_settings
from kingdoms.database import (
    build_session_factory,
    check_database_health,
    create_db_engine,
    init_db,
)
from kingdoms.domain.rules_config import DEFAULT_RULES, RulesConfig
from kingdoms.factory import create_coordinator

logger = logging.getLogger(__name__)


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        rules: RulesConfig = DEFAULT_RULES,
        engine: Engine | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.rules = rules
        self.engine = engine or create_db_engine(self.settings)
        if self.settings.auto_create_schema:
            init_db(self.engine)
        self.session_factory = build_session_factory(self.engine)
        self.coordinator = create_coordinator(self.session_factory, rules, self.settings)
        logger.info(
            "kingdom engine ready (rules %s, %d conflict attempts)",
            self.settings.rules_version,
            self.settings.conflict_retry_attempts,
        )

    def database_ok(self) -> bool:
        return check_database_health(self.engine)

    async def shutdown(self) -> None:
        self.engine.dispose()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
