"""
Configuration state for an exp-run session.

Each configuration domain (range, user, server, beacon, save directory) is an
object built at startup from the AppDataStore and mutated only through its
validated setters. Dependencies between domains are passed in explicitly:
the user config reads the range through a RangeProvider.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol

from .assignment import compute_order
from .errors import ConfigurationMissing, NoRangeConfigured, ValidationError
from .schema import EndpointKind, ExperimentOrder, RangeSpecification
from .store import (
    AppDataStore,
    KEY_BEACON_REDIRECT,
    KEY_CURRENT_BEACON,
    KEY_CURRENT_SERVER,
    KEY_CURRENT_USER,
    KEY_EXP_INDEX,
    KEY_RANGE,
    KEY_SAVE_DIR,
    KEY_SERVER_REDIRECT,
)
from .validation import (
    authorize_redirect,
    is_valid_email,
    is_valid_url,
    resolve_directory,
    validate_range,
)

logger = logging.getLogger(__name__)

_ENDPOINT_KEYS = {
    EndpointKind.SERVER: (KEY_CURRENT_SERVER, KEY_SERVER_REDIRECT),
    EndpointKind.BEACON: (KEY_CURRENT_BEACON, KEY_BEACON_REDIRECT),
}


class RangeProvider(Protocol):
    def current(self) -> RangeSpecification:
        ...


class RangeConfig:
    """The configured experiment range. Replaced wholesale, never edited in place."""

    def __init__(self, store: AppDataStore):
        self._store = store
        try:
            self._range = RangeSpecification.from_dict(store.get(KEY_RANGE))
            validate_range(self._range.values)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed stored range: {e}")
            self._range = RangeSpecification()

    def current(self) -> RangeSpecification:
        return self._range

    def set(self, values: Optional[Iterable] = None, pin_first: bool = False) -> RangeSpecification:
        """Validate and replace the range. No values unsets it."""
        checked = validate_range(values)
        self._range = RangeSpecification(values=tuple(checked), pin_first=bool(pin_first and checked))
        self.flush()
        logger.info(f"Range set to {checked} (pin_first={self._range.pin_first})")
        return self._range

    def flush(self) -> None:
        spec = self._range
        self._store.set(KEY_RANGE, None if spec.is_empty else spec.to_dict())

    def describe(self) -> str:
        return ",".join(str(v) for v in self._range.values)


class UserConfig:
    """Current user email and the experiment order derived from it."""

    def __init__(self, store: AppDataStore, range_provider: RangeProvider):
        self._store = store
        self._range_provider = range_provider
        self.email: Optional[str] = store.get(KEY_CURRENT_USER) or None
        self.order: Optional[ExperimentOrder] = None
        if self.email:
            self.refresh()

    def set(self, email: Optional[str]) -> Optional[ExperimentOrder]:
        """Set (or with no value, unset) the user and recompute the order."""
        if email and not is_valid_email(email):
            raise ValidationError("Cannot set user email address to invalid user email address")
        self.email = email or None
        self.refresh()
        self.flush()
        return self.order

    def flush(self) -> None:
        self._store.set(KEY_CURRENT_USER, self.email)

    def refresh(self) -> Optional[ExperimentOrder]:
        """Recompute the order from the current email and range."""
        self.order = None
        if not self.email:
            return None
        try:
            self.order = compute_order(self.email, self._range_provider.current())
        except NoRangeConfigured as e:
            logger.warning(str(e))
        return self.order

    @property
    def sequence(self) -> list:
        return self.order.as_list() if self.order else []


class EndpointConfig:
    """URL and redirect slot of a server or beacon."""

    def __init__(self, kind: EndpointKind, store: AppDataStore, range_provider: RangeProvider):
        self.kind = kind
        self._store = store
        self._range_provider = range_provider
        self._url_key, self._redirect_key = _ENDPOINT_KEYS[kind]
        self.url: Optional[str] = store.get(self._url_key) or None
        stored_slot = store.get(self._redirect_key)
        self.redirect_slot: Optional[int] = stored_slot if isinstance(stored_slot, int) else None

    @property
    def label(self) -> str:
        return self.kind.value.capitalize()

    def set_url(self, url: Optional[str]) -> None:
        if url and not is_valid_url(url):
            raise ValidationError(f"Cannot set {self.kind.value} URL to invalid URL")
        url = url or None
        if url != self.url and self.redirect_slot is not None:
            # the slot was set on the old endpoint
            self.record_redirect(None)
        self.url = url
        self._store.set(self._url_key, url)

    def authorize(self, slot: Optional[int]) -> None:
        """Raise unless slot may be sent to this endpoint."""
        if not self.url:
            raise ConfigurationMissing(
                f"Cannot set {self.kind.value} redirect when {self.kind.value} URL not set"
            )
        range_spec = self._range_provider.current()
        if not authorize_redirect(slot, range_spec):
            allowed = ",".join(str(v) for v in range_spec.values) or "range not set"
            raise ValidationError(
                f"Cannot set {self.kind.value} redirect to a number out of range ({allowed})"
            )

    def record_redirect(self, slot: Optional[int]) -> None:
        self.redirect_slot = slot
        self._store.set(self._redirect_key, slot)

    def set_redirect(self, slot: Optional[int]) -> None:
        self.authorize(slot)
        self.record_redirect(slot)

    def flush(self) -> None:
        self._store.set(self._url_key, self.url)
        self._store.set(self._redirect_key, self.redirect_slot)


class DirectoryConfig:
    """Where saved user details are written."""

    def __init__(self, store: AppDataStore):
        self._store = store
        stored = store.get(KEY_SAVE_DIR)
        self.path: Optional[Path] = Path(stored) if stored else None

    def set(self, directory: Optional[str], base: Optional[Path] = None) -> Optional[Path]:
        self.path = resolve_directory(directory, base) if directory else None
        self.flush()
        return self.path

    def flush(self) -> None:
        self._store.set(KEY_SAVE_DIR, str(self.path) if self.path else None)


class ExperimentSession:
    """All configuration for one running exp-run process."""

    def __init__(self, store: AppDataStore):
        self.store = store
        self.range = RangeConfig(store)
        self.user = UserConfig(store, self.range)
        self.server = EndpointConfig(EndpointKind.SERVER, store, self.range)
        self.beacon = EndpointConfig(EndpointKind.BEACON, store, self.range)
        self.save_dir = DirectoryConfig(store)
        stored_index = store.get(KEY_EXP_INDEX, 0)
        self._exp_index = stored_index if isinstance(stored_index, int) and stored_index >= 0 else 0

    def endpoint(self, kind: EndpointKind) -> EndpointConfig:
        return self.server if kind is EndpointKind.SERVER else self.beacon

    @property
    def endpoints(self):
        return [self.server, self.beacon]

    @property
    def exp_index(self) -> int:
        return self._exp_index

    @exp_index.setter
    def exp_index(self, value: int) -> None:
        self._exp_index = value
        self.store.set(KEY_EXP_INDEX, value)

    def set_range(self, values: Optional[Iterable] = None, pin_first: bool = False) -> RangeSpecification:
        """Replace the range and recompute the current user's order."""
        previous = self.user.sequence
        try:
            spec = self.range.set(values, pin_first)
        finally:
            # keep the order in step with whatever range is now in memory
            self.user.refresh()
            changed = self.user.sequence != previous
            if changed:
                self._exp_index = 0
        if changed:
            self.exp_index = 0
        return spec

    def send_redirect(self, kind: EndpointKind, slot: Optional[int], client) -> str:
        """
        Authorize slot, tell the remote endpoint, then record it.

        Nothing is recorded if authorization or the request fails.
        """
        endpoint = self.endpoint(kind)
        endpoint.authorize(slot)
        text = client.apply(endpoint.url, slot)
        endpoint.record_redirect(slot)
        return text

    def set_user(self, email: Optional[str]) -> Optional[ExperimentOrder]:
        previous = self.user.email
        try:
            order = self.user.set(email)
        finally:
            changed = self.user.email != previous
            if changed:
                self._exp_index = 0
        if changed:
            self.exp_index = 0
        return order

    def close(self) -> None:
        """Flush every setting to the store before exit."""
        for config in (self.range, self.user, self.server, self.beacon, self.save_dir):
            config.flush()
        self.store.set(KEY_EXP_INDEX, self._exp_index)
        logger.info("Session state flushed")
