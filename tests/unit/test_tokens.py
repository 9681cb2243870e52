'''
Unit tests for the signed token codec.
'''

from __future__ import annotations

import time

import jwt as pyjwt
import pytest

from finn_registry.auth.tokens import TokenCodec, build_token_codec
from finn_registry.core import ConfigurationError
from finn_registry.core.config import AuthConfig, DEVELOPMENT_JWT_SECRET, Settings
from finn_registry.models import User


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret='unit-test-secret', default_ttl=3600)


class TestTokenCodec:
    '''
    Test issuing and verifying signed tokens.
    '''

    def test_round_trip_returns_claims(self, codec: TokenCodec) -> None:
        token = codec.issue({'id': 'u1', 'login': 'alice'}, ttl=60)

        assert codec.verify(token) == {'id': 'u1', 'login': 'alice'}

    def test_reserved_claims_are_set_by_codec(self, codec: TokenCodec) -> None:
        token = codec.issue({'id': 'u1', 'exp': 1, 'iat': 1}, ttl=120)
        payload = pyjwt.decode(token, 'unit-test-secret', algorithms=['HS256'])

        assert payload['exp'] - payload['iat'] == 120
        assert payload['iat'] >= int(time.time()) - 5

    def test_expired_token_is_rejected(self, codec: TokenCodec) -> None:
        token = codec.issue({'id': 'u1'}, ttl=-10)

        assert codec.verify(token) is None

    def test_tampered_token_is_rejected(self, codec: TokenCodec) -> None:
        token = codec.issue({'id': 'u1'})
        header, payload, signature = token.split('.')
        flipped = ('A' if signature[0] != 'A' else 'B') + signature[1:]

        assert codec.verify(f'{header}.{payload}.{flipped}') is None
        assert codec.verify(token[:-4]) is None

    def test_garbage_is_rejected(self, codec: TokenCodec) -> None:
        assert codec.verify('garbage') is None
        assert codec.verify('') is None

    def test_other_secret_is_rejected(self, codec: TokenCodec) -> None:
        other = TokenCodec(secret='another-secret')

        assert codec.verify(other.issue({'id': 'u1'})) is None

    def test_token_without_expiry_is_rejected(self, codec: TokenCodec) -> None:
        token = pyjwt.encode({'id': 'u1', 'iat': int(time.time())}, 'unit-test-secret', algorithm='HS256')

        assert codec.verify(token) is None

    def test_issue_for_user(self, codec: TokenCodec) -> None:
        user = User(github_id=7, login='alice')

        claims = codec.verify(codec.issue_for_user(user))

        assert claims == {'id': user.id, 'login': 'alice', 'github_id': 7}

    def test_empty_secret_is_a_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            TokenCodec(secret='')


class TestBuildTokenCodec:
    '''
    Test building the codec from settings.
    '''

    def test_uses_configured_secret(self) -> None:
        settings = Settings(environment='testing', auth=AuthConfig(jwt_secret='configured', token_ttl=600))
        codec = build_token_codec(settings)

        token = codec.issue({'id': 'u1'})

        assert TokenCodec(secret='configured').verify(token) == {'id': 'u1'}
        assert codec.default_ttl == 600

    def test_development_fallback(self) -> None:
        codec = build_token_codec(Settings(environment='development', auth=AuthConfig(jwt_secret='')))

        assert TokenCodec(secret=DEVELOPMENT_JWT_SECRET).verify(codec.issue({'id': 'u1'})) == {'id': 'u1'}

    def test_production_requires_secret(self) -> None:
        with pytest.raises(ConfigurationError):
            build_token_codec(Settings(environment='production', auth=AuthConfig(jwt_secret='')))
