'''
Unit tests for the authorization gate.
'''

from __future__ import annotations

from typing import Optional

import pytest
from starlette.requests import Request

from finn_registry.auth.middleware import (
    RequestContext,
    RequireIdentity,
    optional_identity,
    require_scope,
)
from finn_registry.core import AuthenticationError, ForbiddenError
from finn_registry.models import Identity


def _request(identity: Optional[Identity], credential: Optional[str] = None) -> Request:
    context = RequestContext(
        request_id='req-1',
        client_ip='203.0.113.1',
        credential=credential,
        identity=identity,
    )
    return Request({
        'type': 'http',
        'method': 'POST',
        'path': '/api/me/api-key',
        'headers': [],
        'query_string': b'',
        'state': {'context': context},
    })


SESSION_IDENTITY = Identity(id='u1', login='alice', method='session')
READ_ONLY_KEY = Identity(id='u1', login='alice', scopes=['read'], method='api_key', api_key_id='k1')
EMPTY_SCOPE_KEY = Identity(id='u1', login='alice', scopes=[], method='api_key', api_key_id='k2')


class TestRequireScope:
    '''
    Test scope checks.
    '''

    def test_unrestricted_identity_has_every_scope(self) -> None:
        assert require_scope(SESSION_IDENTITY, 'publish')
        assert require_scope(SESSION_IDENTITY, 'anything-at-all')

    def test_scoped_identity_membership(self) -> None:
        assert require_scope(READ_ONLY_KEY, 'read')
        assert not require_scope(READ_ONLY_KEY, 'publish')

    def test_empty_scope_list_grants_nothing(self) -> None:
        assert not require_scope(EMPTY_SCOPE_KEY, 'read')


class TestRequireIdentity:
    '''
    Test the identity dependency.
    '''

    async def test_missing_identity_is_unauthorized(self) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            await RequireIdentity()(_request(None, credential='garbage'))

        assert exc_info.value.status_code == 401

    async def test_identity_returned(self) -> None:
        assert await RequireIdentity()(_request(SESSION_IDENTITY)) == SESSION_IDENTITY

    async def test_scopes_enforced(self) -> None:
        with pytest.raises(ForbiddenError) as exc_info:
            await RequireIdentity(scopes=['publish'])(_request(READ_ONLY_KEY))

        assert exc_info.value.status_code == 403
        assert exc_info.value.details['missing'] == ['publish']

    async def test_scopes_satisfied(self) -> None:
        assert await RequireIdentity(scopes=['read'])(_request(READ_ONLY_KEY)) == READ_ONLY_KEY
        assert await RequireIdentity(scopes=['publish', 'delete'])(_request(SESSION_IDENTITY)) == SESSION_IDENTITY

    async def test_optional_identity(self) -> None:
        assert await optional_identity(_request(None)) is None
        assert await optional_identity(_request(SESSION_IDENTITY)) == SESSION_IDENTITY

    async def test_unrestricted_rejects_api_key(self) -> None:
        with pytest.raises(ForbiddenError) as exc_info:
            await RequireIdentity(unrestricted=True)(_request(READ_ONLY_KEY))

        assert exc_info.value.status_code == 403
        assert exc_info.value.error_code == 'unrestricted_identity_required'

    async def test_unrestricted_accepts_session(self) -> None:
        assert await RequireIdentity(unrestricted=True)(_request(SESSION_IDENTITY)) == SESSION_IDENTITY
