"""
Data models for exp-run.

Dataclass schemas for the experiment range, the per-user experiment order,
saved user details and the result of an experiment run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class EndpointKind(str, Enum):
    """Remote endpoint that can be told to redirect traffic."""
    SERVER = "server"
    BEACON = "beacon"


@dataclass(frozen=True)
class RangeSpecification:
    """Ordered set of distinct condition numbers available for assignment."""
    values: Tuple[int, ...] = ()
    pin_first: bool = False  # values[0] always stays at position 0

    @property
    def is_empty(self) -> bool:
        return not self.values

    def __contains__(self, item: object) -> bool:
        return item in self.values

    def to_dict(self) -> Dict[str, Any]:
        return {"values": list(self.values), "pin_first": self.pin_first}

    @classmethod
    def from_dict(cls, data: Optional[Any]) -> "RangeSpecification":
        """
        Rebuild from the stored form.

        Accepts the current ``{"values": [...], "pin_first": bool}`` shape and
        a bare list of numbers, which is how older installs stored the range.
        """
        if not data:
            return cls()
        if isinstance(data, dict):
            return cls(
                values=tuple(int(v) for v in data.get("values", [])),
                pin_first=bool(data.get("pin_first", False)),
            )
        return cls(values=tuple(int(v) for v in data))


@dataclass(frozen=True)
class ExperimentOrder:
    """Permutation of the range assigned to one user."""
    email: str
    sequence: Tuple[int, ...]
    algorithm: str = ""

    def __len__(self) -> int:
        return len(self.sequence)

    def as_list(self) -> List[int]:
        return list(self.sequence)


@dataclass
class UserDetails:
    """What gets written to ``<save-dir>/<email>.json``."""
    email: str
    exp_order: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "exp_order": list(self.exp_order)}


@dataclass
class RunResult:
    """Outcome of stepping through a user's experiment order."""
    total: int
    position: int = 0  # next index to run
    completed: bool = False
    cancelled: bool = False
    visited: List[int] = field(default_factory=list)
    error: Optional[str] = None
