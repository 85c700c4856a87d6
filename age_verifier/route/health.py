# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""This file defines the custom health checks for the application."""

import logging

from fastapi import Response
from common.health import base

from age_verifier import config as conf
from age_verifier.cache import session_cache
from age_verifier.cache.session_store import SessionStore
from age_verifier.exception import StoreUnavailableError

_logger = logging.getLogger(__name__)


class HealthResponse(base.HealthResponse):
    """Response body model for health request operation."""

    configuration_verifier_has_minimum_config: base.HealthStatus = base.HealthStatus.unhealthy
    session_store_connectivity: base.HealthStatus = base.HealthStatus.unhealthy


def _is_store_reachable(store: SessionStore) -> bool:
    try:
        return store.ping()
    except StoreUnavailableError:
        _logger.warning("Session store is not reachable.")
        return False


class VerifierHealthAPIRouter(base.HealthAPIRouter):
    def __init__(self) -> None:
        super().__init__(debug_response_model=HealthResponse, readiness_response_model=HealthResponse)

    def _build_verifier_probe(
        self,
        result: HealthResponse,
        config: conf.VerifierConfig,
        store: SessionStore,
    ) -> HealthResponse:
        result.configuration_verifier_has_minimum_config = bool(config.has_minimum_config())
        result.session_store_connectivity = _is_store_reachable(store)
        return result

    def get_debug_probe(
        self,
        response: Response,
        config: conf.inject,
        store: session_cache.inject,
    ):
        return self._build_debug_probe(
            result=self._build_verifier_probe(HealthResponse(), config, store),
            response=response,
            config=config,
        )

    def get_readiness_probe(
        self,
        response: Response,
        config: conf.inject,
        store: session_cache.inject,
    ):
        return self._build_readiness_probe(
            result=self._build_verifier_probe(HealthResponse(), config, store),
            response=response,
            config=config,
        )


router = VerifierHealthAPIRouter()
