# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

from enum import Enum

from common.logging import operations


class VerifierOperationsLogEntry(operations.OperationsLogEntry):
    """Container for age verifier operations specific logging."""

    class Operation(Enum):
        session = "SESSION"
        authorization_request = "AUTHORIZATION_REQUEST"
        verification = "VERIFICATION"

    class Step(Enum):
        create = "CREATE"
        fetch = "FETCH"
        callback = "CALLBACK"
        evaluation = "EVALUATION"
        poll = "POLL"
        cleanup = "CLEANUP"

    operation: Operation
    step: Step

    error_code: str | None = None
