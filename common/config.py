# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Provides general Environment Variables for FastAPI dependcy injection
"""

import os
from typing import Annotated

from fastapi import Depends

from common.parsing import interpret_as_bool


def get_version() -> str:
    commit_hash = os.getenv("COMMIT_HASH", "no hash")
    commit_time = os.getenv("COMMIT_TIMESTAMP", "no timestamp")
    version = os.getenv("VERSION", "no version")
    return f"{version} ({commit_hash} {commit_time})"


class Config:
    def __init__(self):
        self.enable_debug_mode: bool = interpret_as_bool(os.environ.get("ENABLE_DEBUG_MODE", "False"))
        '''General debug mode configuration enabler.'''

        self.external_url = os.getenv("EXTERNAL_URL")
        self.app_name = os.getenv("APP_NAME", "anonymous")
        '''
        Human readable application name used for loggin
        '''
        self.log_level = os.getenv('LOG_LEVEL', 'INFO')
        self.enable_documentation_endpoints: bool = interpret_as_bool(os.environ.get("ENABLE_DOCUMENTATION_ENDPOINTS", self.enable_debug_mode))
        '''
        Enable /doc and /redoc endpoint.
        Default is False, but True in DEBUG_MODE.
        '''
        self.enable_cors: bool = interpret_as_bool(os.environ.get("ENABLE_CORS", "True"))
        '''
        Enable CORs for incomming requests.
        Wallets call from arbitrary origins, therefore this is on unless switched off explicitly.
        '''
        self.additional_allowed_origins = os.environ.get('ADDITIONAL_ALLOWED_ORIGINS', '')
        '''
        If CORs is restricted to the external url, additional allowed origins can be defined as comma separated list of url (e.g. URL,URL,URL)
        '''
        self.restrict_cors_to_external_url: bool = interpret_as_bool(os.environ.get("RESTRICT_CORS_TO_EXTERNAL_URL", "False"))
        self.enable_splunk_log: bool = interpret_as_bool(os.environ.get("ENABLE_SPLUNK_LOG", not self.enable_debug_mode))
        '''
        Enable Splunk compatible log format.
        Default is True, but False in DEBUG_MODE.
        '''


inject = Annotated[Config, Depends(Config)]
