# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Process wide session store, selected by SESSION_STORE.
Injected with `Depends(get_session_store)` and overridable in tests.
"""

import contextlib
import logging
from functools import cache
from typing import Annotated

from fastapi import Depends

import age_verifier.config as conf
from age_verifier.cache.session_store import InMemorySessionStore, SessionStore, SweepTimer
from age_verifier.cache.redis_store import RedisSessionStore, create_client

_logger = logging.getLogger(__name__)


@cache
def get_session_store() -> SessionStore:
    config = conf.VerifierConfig()
    if config.session_store == "redis":
        _logger.info("Using redis session store.")
        return RedisSessionStore(create_client(config.redis_url, config.store_timeout))
    if config.session_store != "memory":
        raise ValueError(f"Unknown session store {config.session_store}")
    _logger.info("Using in-memory session store.")
    return InMemorySessionStore()


@contextlib.contextmanager
def sweep_lifespan() -> contextlib.AbstractContextManager:
    """
    Lifespan managing the periodic removal of expired sessions of the in-memory store.
    Backends with their own eviction need no sweeping.
    """
    store = get_session_store()
    timer = None
    if isinstance(store, InMemorySessionStore):
        timer = SweepTimer(store, conf.VerifierConfig().store_sweep_interval)
        timer.set_timer()
    yield
    if timer:
        timer.cancel_timer()


inject = Annotated[SessionStore, Depends(get_session_store)]
