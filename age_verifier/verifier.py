# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Age Verifier
Using Specifications

OpenID4VP
https://openid.net/specs/openid-4-verifiable-presentations-1_0.html

JWT-Secured Authorization Request (JAR)
https://www.rfc-editor.org/rfc/rfc9101.html

W3C Verifiable Credential
https://www.w3.org/TR/vc-data-model-2.0/
"""

# FastAPI
from asgi_correlation_id import CorrelationIdMiddleware

from common.fastapi_extensions import ExtendedFastAPI

from age_verifier.cache.session_cache import sweep_lifespan
from age_verifier.exception.handler import configure_exception_handlers

import age_verifier.route.health as health
import age_verifier.route.openid as openid
import age_verifier.route.session as session

from age_verifier import config as conf


app = ExtendedFastAPI(conf.VerifierConfig, lifespan_functions=[sweep_lifespan()])
app.include_router(health.router)
app.include_router(session.router)
app.include_router(openid.router)
configure_exception_handlers(app)

app.add_middleware(CorrelationIdMiddleware)
