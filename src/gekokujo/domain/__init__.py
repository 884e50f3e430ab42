"""Domain model and rules for gekokujo.

This package holds everything that can run purely in memory:

* Dataclasses describing every game entity (see :mod:`models`).
* Enumerations and strongly-typed identifiers used across the rules layer.
* Rule configuration objects (see :mod:`rules_config`).
* Pure rule functions: the economic calculator, investment resolution, the
  legion and treasury ledgers and the year-end settlement.

Persistence and locking live in :mod:`gekokujo.repository` and
:mod:`gekokujo.services`.
"""

from . import (
    economy,
    enums,
    investment,
    legion,
    models,
    results,
    rules_config,
    treasury,
    year_end,
)

__all__ = [
    "economy",
    "enums",
    "investment",
    "legion",
    "models",
    "results",
    "rules_config",
    "treasury",
    "year_end",
]
