# Utilities package
from .status_catalog import (
    StatusCatalog,
    TransitionAction,
    TransitionRule,
    DEFAULT_RULES,
    parse_action,
    status_catalog,
)

__all__ = [
    "StatusCatalog",
    "TransitionAction",
    "TransitionRule",
    "DEFAULT_RULES",
    "parse_action",
    "status_catalog",
]
