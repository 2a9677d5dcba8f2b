"""Pathao courier integration for the storefront back-office."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import aiohttp

from .api import PathaoApiClient
from .auth import PathaoAuth
from .config import CourierConfig
from .dispatch import ShipmentDispatcher
from .store import MemoryStore, RestStore
from .tracking import TrackingOrchestrator

_LOGGER = logging.getLogger(__name__)


@dataclass
class PathaoIntegration:
    """Wired components sharing one store and one HTTP session."""

    store: RestStore | MemoryStore
    api: PathaoApiClient
    auth: PathaoAuth
    tracker: TrackingOrchestrator
    dispatcher: ShipmentDispatcher
    clock: Callable[[], float] = time.time


def setup_integration(
    session: aiohttp.ClientSession,
    config: CourierConfig,
    store: RestStore | MemoryStore | None = None,
    clock: Callable[[], float] = time.time,
) -> PathaoIntegration:
    """Set up the integration components.

    Args:
        session: Shared aiohttp session for provider and store calls.
        config: Runtime configuration.
        store: Store to use instead of the configured REST store.
        clock: Source of the current time in epoch seconds.
    """
    if store is None:
        store = RestStore(
            session,
            config.supabase_url,
            config.service_key,
            timeout=config.timeout,
        )

    api = PathaoApiClient(session, base_url=config.base_url, timeout=config.timeout)
    auth = PathaoAuth(store, api, clock=clock)

    tracker = TrackingOrchestrator(
        store, auth, api, enforce_transitions=config.enforce_transitions
    )
    dispatcher = ShipmentDispatcher(
        store, store, auth, api, sender_name=config.sender_name, clock=clock
    )

    _LOGGER.debug(
        "Pathao integration set up against %s (store=%s)",
        config.base_url,
        type(store).__name__,
    )
    return PathaoIntegration(
        store=store,
        api=api,
        auth=auth,
        tracker=tracker,
        dispatcher=dispatcher,
        clock=clock,
    )
