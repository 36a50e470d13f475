"""Pure game rules for the kingdom engine.

This package holds everything that can run without a database:

* Rule tables (see :mod:`rules_config`).
* The exception hierarchy shared by every layer (see :mod:`errors`).
* The combat resolver (see :mod:`combat`).
* NPC market offer generation (see :mod:`market`).
* Frozen snapshots handed back to callers (see :mod:`models`).
"""

from . import combat, errors, market, models, rules_config

__all__ = [
    "combat",
    "errors",
    "market",
    "models",
    "rules_config",
]
