# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Subset of DIF Presentation Exchange 2.0 used in age verification requests.

Only the parts of the evaluation language this verifier emits are modelled:
field paths, filters with `type`, `const` and `minimum`, and `intent_to_retain`.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class Filter(BaseModel):
    """
    JSON Schema filter applied to the value found at a field path
    https://identity.foundation/presentation-exchange/spec/v2.0.0/#input-descriptor-object
    """

    type: str
    const: Any | None = None
    minimum: int | float | None = None


class Constraint(BaseModel):
    path: list[str]
    filter: Filter | None = None
    intent_to_retain: bool | None = None
    """
    Whether the verifier intends to keep the value after the verification.
    Age requests never retain (false).
    """


class Fields(BaseModel):
    fields: list[Constraint]
    limit_disclosure: str | None = None


class InputDescriptor(BaseModel):
    """
    https://identity.foundation/presentation-exchange/spec/v2.0.0/#input-descriptor-object
    """

    id: str
    name: str | None = None
    purpose: str | None = None
    format: dict | None = None
    constraints: Fields


class PresentationDefinition(BaseModel):
    """
    https://identity.foundation/presentation-exchange/spec/v2.0.0/#presentation-definition
    """

    id: str
    purpose: str | None = None
    input_descriptors: list[InputDescriptor]


class ClientMetadata(BaseModel):
    """
    Client Metadata
    https://www.rfc-editor.org/rfc/rfc7591.html#section-2
    Added to the request object in https://openid.net/specs/openid-4-verifiable-presentations-1_0.html#section-5.7
    """

    model_config = ConfigDict(extra='allow')

    client_name: str | None = None
    """
    Human-readable string name of the client.
    """

    client_uri: str | None = None
    """
    URL of the home page of the client.
    """

    redirect_uris: list[str] | None = None

    vp_formats: dict[str, dict] | None = None
    """
    Credential formats and algorithms the verifier accepts, keyed by format identifier
    """
