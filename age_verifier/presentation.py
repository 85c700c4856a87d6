# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Claims requests sent to the wallet, either as DCQL query or as Presentation Definition.
"""

import common.model.dcql as dcql
import common.model.dif_presentation_exchange as dif

PID_DOCTYPE = "eu.europa.ec.eudi.pid.1"

_PID_CLAIMS: list[tuple[str, list[str]]] = [
    ("given_name", ["given_name"]),
    ("family_name", ["family_name"]),
    ("birthdate", ["birthdate"]),
    ("address-street_address", ["address", "street_address"]),
    ("address-locality", ["address", "locality"]),
    ("address-postal_code", ["address", "postal_code"]),
    ("address-country", ["address", "country"]),
]

_ES256_SD_JWT = {
    'sd-jwt_alg_values': ['ES256'],
    'kb-jwt_alg_values': ['ES256'],
}

VP_FORMATS: dict[str, dict] = {
    'vc+sd-jwt': _ES256_SD_JWT,
    'dc+sd-jwt': _ES256_SD_JWT,
    'mso_mdoc': {'alg': ['ES256']},
    'jwt_vp_json': {'alg': ['ES256']},
}


def create_dcql_query(vct_values: list[str]) -> dcql.DcqlQuery:
    """SD-JWT PID request, the age is derived from the birthdate."""
    return dcql.DcqlQuery(
        credentials=[
            dcql.CredentialQuery(
                id="sd-jwt-pid",
                format="dc+sd-jwt",
                meta=dcql.CredentialQueryMeta(vct_values=vct_values),
                claims=[dcql.ClaimsQuery(id=claim_id, path=path) for claim_id, path in _PID_CLAIMS],
            )
        ]
    )


def create_age_over_presentation_definition(min_age: int) -> dif.PresentationDefinition:
    """
    mso_mdoc PID request for the boolean age_over_<min_age> claim.
    The claim is required to be true and is not retained.
    """
    return dif.PresentationDefinition(
        id=f"age-verification-{min_age}",
        purpose=f"Verify user is at least {min_age} years old",
        input_descriptors=[
            dif.InputDescriptor(
                id=PID_DOCTYPE,
                format={"mso_mdoc": {"alg": ["ES256"]}},
                constraints=dif.Fields(
                    limit_disclosure="required",
                    fields=[
                        dif.Constraint(
                            path=[f"$['{PID_DOCTYPE}']['age_over_{min_age}']"],
                            filter=dif.Filter(type="boolean", const=True),
                            intent_to_retain=False,
                        )
                    ],
                ),
            )
        ],
    )


def create_minimum_presentation_definition(min_age: int) -> dif.PresentationDefinition:
    """Request for a numeric age claim of at least min_age."""
    return dif.PresentationDefinition(
        id=f"age-verification-{min_age}",
        purpose=f"Verify user is at least {min_age} years old",
        input_descriptors=[
            dif.InputDescriptor(
                id="age_credential",
                constraints=dif.Fields(
                    fields=[
                        dif.Constraint(
                            path=["$.credentialSubject.age", "$.vc.credentialSubject.age"],
                            filter=dif.Filter(type="number", minimum=min_age),
                        )
                    ]
                ),
            )
        ],
    )


def create_presentation_definition(min_age: int, style: str = "age_over") -> dif.PresentationDefinition:
    if style == "age_over":
        return create_age_over_presentation_definition(min_age)
    if style == "minimum":
        return create_minimum_presentation_definition(min_age)
    raise ValueError(f"Unknown presentation definition style {style}")


def create_client_metadata(client_name: str, client_uri: str, redirect_uri: str, jwks_uri: str | None = None) -> dif.ClientMetadata:
    extra = {"jwks_uri": jwks_uri} if jwks_uri else {}
    return dif.ClientMetadata(
        client_name=client_name,
        client_uri=client_uri,
        redirect_uris=[redirect_uri],
        vp_formats=VP_FORMATS,
        **extra,
    )
