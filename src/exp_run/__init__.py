"""exp-run: configure and run per-user randomized experiment orders."""

from .schema import (
    EndpointKind,
    ExperimentOrder,
    RangeSpecification,
    RunResult,
    UserDetails,
)
from .errors import (
    ConfigurationMissing,
    DuplicateValues,
    ExpRunError,
    NoRangeConfigured,
    NonNumeric,
    TransientIOError,
    ValidationError,
)
from .assignment import ORDER_ALGORITHM, compute_order
from .validation import authorize_redirect, validate_range
from .store import AppDataStore
from .state import ExperimentSession
from .redirect import RedirectClient
from .results import read_saved_users, write_user_details, write_users_summary
from .runner import ExperimentRunner
from .report import render_details

__version__ = "1.0.0"

__all__ = [
    "EndpointKind",
    "ExperimentOrder",
    "RangeSpecification",
    "RunResult",
    "UserDetails",
    "ConfigurationMissing",
    "DuplicateValues",
    "ExpRunError",
    "NoRangeConfigured",
    "NonNumeric",
    "TransientIOError",
    "ValidationError",
    "ORDER_ALGORITHM",
    "compute_order",
    "authorize_redirect",
    "validate_range",
    "AppDataStore",
    "ExperimentSession",
    "RedirectClient",
    "read_saved_users",
    "write_user_details",
    "write_users_summary",
    "ExperimentRunner",
    "render_details",
]
