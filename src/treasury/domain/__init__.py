"""Domain layer for the treasury engine.

Services live in their own modules and are imported from there; this package
only re-exports the entities and errors shared by every layer.
"""

from treasury.domain import errors
from treasury.domain.entities import (
    Account,
    AutomationRule,
    ForecastEvent,
    ImportBatch,
    Movement,
    Recommendation,
)

__all__ = [
    "errors",
    "Account",
    "AutomationRule",
    "ForecastEvent",
    "ImportBatch",
    "Movement",
    "Recommendation",
]
