"""
Deterministic experiment order for a user.

Hashes the user's email to seed a frozen-stream PRNG and uses it to permute
the configured range, so the same email and range always give the same
order, across processes, machines and days.

Algorithm ``sha256-mt19937-v1``:
    1. digest = SHA-256 of the UTF-8 encoded email
    2. split the digest into eight big-endian uint32 words
    3. seed numpy's legacy ``RandomState`` (MT19937, init_by_array) with them
    4. permute the whole range, or ``values[1:]`` when the first is pinned
"""

import hashlib
import logging
from typing import Optional

import numpy as np

from .errors import NoRangeConfigured, ValidationError
from .schema import ExperimentOrder, RangeSpecification

logger = logging.getLogger(__name__)

ORDER_ALGORITHM = "sha256-mt19937-v1"


def _seed_words(identifier: str) -> np.ndarray:
    """
    Seed material for a user identifier.

    RandomState's stream is frozen by numpy, so these words pin the draws.
    """
    digest = hashlib.sha256(identifier.encode("utf-8")).digest()
    return np.frombuffer(digest, dtype=">u4").astype(np.uint32)


def _generator(identifier: str) -> np.random.RandomState:
    return np.random.RandomState(_seed_words(identifier))


def compute_order(
    email: str,
    range_spec: Optional[RangeSpecification],
) -> ExperimentOrder:
    """
    Compute the experiment order for a user.

    Args:
        email: User identifier used as seed material
        range_spec: Configured range (values + pin_first flag)

    Returns:
        ExperimentOrder whose sequence is a permutation of range_spec.values

    Raises:
        NoRangeConfigured: range is absent or empty
        ValidationError: email is empty
    """
    if range_spec is None or range_spec.is_empty:
        raise NoRangeConfigured(
            "Could not generate user experiment order because experiment range has not been set"
        )
    if not email:
        raise ValidationError("Cannot generate an experiment order without a user email address")

    values = list(range_spec.values)
    rng = _generator(email)

    if range_spec.pin_first:
        head, rest = values[:1], values[1:]
    else:
        head, rest = [], values

    # shuffle positions; values stay Python ints of any size
    shuffled = [rest[i] for i in rng.permutation(len(rest))] if rest else []
    sequence = tuple(int(v) for v in head + shuffled)

    logger.debug(f"Order for {email} over {values} (pin_first={range_spec.pin_first}): {sequence}")
    return ExperimentOrder(email=email, sequence=sequence, algorithm=ORDER_ALGORITHM)
