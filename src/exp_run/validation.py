"""Argument checks for range, redirect slot, email, URL and save directory."""

import math
import numbers
import os
import re
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

from .errors import DuplicateValues, NonNumeric, ValidationError
from .schema import RangeSpecification

# local@domain, domain with at least one dot, no whitespace or path separators
_EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$")
_HOST_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$")
_URL_SCHEMES = ("http", "https")


def _as_int(value) -> int:
    if isinstance(value, bool):
        raise NonNumeric(f"Range value {value!r} is not a number")
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
        try:
            value = float(value)
        except ValueError:
            raise NonNumeric(f"Range value {value!r} is not a number") from None
    if not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise NonNumeric(f"Range value {value!r} is not a finite number")
    if int(value) != value:
        raise NonNumeric(f"Range value {value!r} is not a whole number")
    return int(value)


def validate_range(candidate: Optional[Iterable]) -> List[int]:
    """
    Check a candidate list of numbers for use as the experiment range.

    An empty (or None) candidate is valid and means "unset the range".

    Returns:
        The candidate normalized to a list of ints, in the given order

    Raises:
        NonNumeric: an element is not a finite whole number
        DuplicateValues: an element repeats
    """
    values = [_as_int(v) for v in (candidate or [])]
    if len(set(values)) != len(values):
        raise DuplicateValues("Cannot set the experiment range as values must be unique numbers")
    return values


def authorize_redirect(slot: Optional[int], range_spec: Optional[RangeSpecification]) -> bool:
    """True if slot is None (unset) or one of the configured range values."""
    if slot is None:
        return True
    if range_spec is None:
        return False
    return slot in range_spec.values


def is_valid_email(email: str) -> bool:
    return bool(email) and len(email) <= 254 and _EMAIL_RE.match(email) is not None


def is_valid_url(url: str) -> bool:
    """Scheme + host URL check. A TLD is not required (``http://beacon:8080`` is fine)."""
    if not url or any(c.isspace() for c in url):
        return False
    try:
        parts = urlsplit(url)
        port = parts.port  # raises on a malformed port
    except ValueError:
        return False
    if parts.scheme.lower() not in _URL_SCHEMES or not parts.hostname:
        return False
    if port is not None and not 0 < port < 65536:
        return False
    host = parts.hostname
    if host.startswith("[") or ":" in host:
        return True  # bracketed IPv6 literal
    return _HOST_RE.match(host) is not None


def resolve_directory(directory: str, base: Optional[Path] = None) -> Path:
    """
    Expand ``~`` and resolve against base (cwd by default).

    Raises:
        ValidationError: the resolved path is not an existing directory
    """
    path = Path(os.path.expanduser(directory))
    if not path.is_absolute():
        path = (base or Path.cwd()) / path
    path = path.resolve()
    if not path.is_dir():
        raise ValidationError("Cannot set the save directory to non-existent folder")
    return path
