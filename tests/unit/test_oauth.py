'''
Unit tests for the GitHub OAuth exchange flow.
'''

from __future__ import annotations

import asyncio
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from finn_registry.auth.oauth import select_email, summarize_repositories
from finn_registry.core import (
    OAuthFailure,
    MISSING_CODE,
    STATE_MISMATCH,
    TOKEN_EXCHANGE_FAILED,
    PROFILE_FETCH_FAILED,
    CONFIGURATION_MISSING,
)
from finn_registry.api import build_services
from finn_registry.core.config import AuthConfig, Settings
from finn_registry.models import GitHubEmail

REDIRECT_URI = 'https://registry.example.com/api/auth/github/callback'


async def _complete(services, state: str = 'state-123', **overrides):
    kwargs = {
        'code': 'auth-code',
        'state': state,
        'cookie_state': state,
        'redirect_uri': REDIRECT_URI,
        'ip_address': '203.0.113.5',
        'user_agent': 'pytest',
    }
    kwargs.update(overrides)
    return await services.oauth.complete(**kwargs)


async def _drain(services) -> None:
    # Let the detached enrichment task finish
    for _ in range(50):
        if not services.oauth._background_tasks:
            return
        await asyncio.sleep(0.01)


class TestInitiate:
    '''
    Test starting a login.
    '''

    def test_authorize_url(self, services) -> None:
        url, state = services.oauth.initiate(REDIRECT_URI)
        parsed = urlparse(url)
        query = parse_qs(parsed.query)

        assert f'{parsed.scheme}://{parsed.netloc}{parsed.path}' == 'https://github.com/login/oauth/authorize'
        assert query['client_id'] == ['test-client-id']
        assert query['redirect_uri'] == [REDIRECT_URI]
        assert query['scope'] == ['user:email']
        assert query['state'] == [state]
        assert len(state) == 32

    def test_states_are_fresh(self, services) -> None:
        _, first = services.oauth.initiate(REDIRECT_URI)
        _, second = services.oauth.initiate(REDIRECT_URI)

        assert first != second

    def test_missing_client_id(self, store, transport) -> None:
        settings = Settings(environment='testing', auth=AuthConfig(github_client_id='', jwt_secret='s'))
        services = build_services(settings, store=store, transport=transport)

        with pytest.raises(OAuthFailure) as exc_info:
            services.oauth.initiate(REDIRECT_URI)

        assert exc_info.value.reason == CONFIGURATION_MISSING
        assert exc_info.value.status_code == 500


class TestComplete:
    '''
    Test the callback half of the handshake.
    '''

    async def test_success_creates_user_and_session(self, services, store, github) -> None:
        result = await _complete(services)

        assert result.user.github_id == 4242
        assert result.user.login == 'octocat'
        assert result.user.email == 'octocat@example.com'
        assert result.user.name == 'The Octocat'
        assert services.sessions.lookup(result.session.token).user_id == result.user.id
        assert len(store.list_logins(result.user.id)) == 1

        token_request = next(r for r in github.requests if r.url.path == '/login/oauth/access_token')
        body = json.loads(token_request.content)
        assert body['code'] == 'auth-code'
        assert body['client_secret'] == 'test-client-secret'
        assert body['redirect_uri'] == REDIRECT_URI

        profile_request = next(r for r in github.requests if r.url.path == '/user')
        assert profile_request.headers['authorization'] == 'Bearer gho_test_access_token'
        assert profile_request.headers['user-agent'] == 'Finn-Registry'

        await _drain(services)

    async def test_missing_code(self, services, github) -> None:
        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services, code=None)

        assert exc_info.value.reason == MISSING_CODE
        assert github.requests == []

    @pytest.mark.parametrize(
        'state, cookie_state',
        [
            ('state-123', 'other-state'),
            ('state-123', None),
            (None, 'state-123'),
            ('', ''),
        ],
    )
    async def test_state_mismatch(self, services, store, github, state, cookie_state) -> None:
        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services, state=state, cookie_state=cookie_state)

        assert exc_info.value.reason == STATE_MISMATCH
        assert github.requests == []
        assert store.list_sessions() == []

    async def test_code_checked_before_state(self, services) -> None:
        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services, code='', cookie_state='different')

        assert exc_info.value.reason == MISSING_CODE

    async def test_exchange_error_payload(self, services, store, github) -> None:
        github.token_payload = {
            'error': 'bad_verification_code',
            'error_description': 'The code passed is incorrect or expired.',
        }

        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services)

        assert exc_info.value.reason == TOKEN_EXCHANGE_FAILED
        assert exc_info.value.provider_detail == 'The code passed is incorrect or expired.'
        assert exc_info.value.status_code == 502
        assert '/user' not in github.paths()
        assert store.list_sessions() == []

    async def test_exchange_http_error(self, services, github) -> None:
        github.token_status = 500
        github.token_payload = {}

        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services)

        assert exc_info.value.reason == TOKEN_EXCHANGE_FAILED

    async def test_exchange_without_access_token(self, services, github) -> None:
        github.token_payload = {'token_type': 'bearer'}

        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services)

        assert exc_info.value.reason == TOKEN_EXCHANGE_FAILED

    async def test_exchange_timeout(self, services, github) -> None:
        github.token_exception = httpx.ReadTimeout('timed out')

        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services)

        assert exc_info.value.reason == TOKEN_EXCHANGE_FAILED

    async def test_profile_failure_mints_no_session(self, services, store, github) -> None:
        github.profile_status = 401

        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services)

        assert exc_info.value.reason == PROFILE_FETCH_FAILED
        assert store.get_user_by_github_id(4242) is None
        assert store.list_sessions() == []

    async def test_profile_timeout(self, services, store, github) -> None:
        github.profile_exception = httpx.ConnectTimeout('timed out')

        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services)

        assert exc_info.value.reason == PROFILE_FETCH_FAILED
        assert store.list_sessions() == []

    async def test_malformed_profile(self, services, github) -> None:
        github.profile = {'login': 'no-id'}

        with pytest.raises(OAuthFailure) as exc_info:
            await _complete(services)

        assert exc_info.value.reason == PROFILE_FETCH_FAILED

    async def test_email_failure_is_tolerated(self, services, github) -> None:
        github.emails_status = 403
        github.profile['email'] = 'public@example.com'

        result = await _complete(services)

        assert result.user.email == 'public@example.com'
        await _drain(services)

    async def test_second_login_updates_same_user(self, services, store, github) -> None:
        first = await _complete(services)
        store.save_user(first.user.model_copy(update={'bio': 'Edited locally', 'location': 'Home'}))

        github.profile.update({'login': 'octocat-renamed', 'bio': None, 'location': 'Lisbon'})
        second = await _complete(services)

        assert second.user.id == first.user.id
        assert second.user.login == 'octocat-renamed'
        assert second.user.bio == 'Edited locally'
        assert second.user.location == 'Lisbon'
        assert first.session.token != second.session.token
        await _drain(services)


class TestEnrichment:
    '''
    Test the detached profile analytics update.
    '''

    async def test_analytics_applied_after_login(self, services, store, github) -> None:
        result = await _complete(services)
        await _drain(services)

        user = store.get_user(result.user.id)
        assert user.github_stars == 16
        assert user.github_forks == 3
        assert [(lang.name, lang.percentage) for lang in user.github_languages] == [
            ('Python', 67),
            ('Rust', 33),
        ]
        assert '/users/octocat/repos' in github.paths()

    async def test_analytics_failure_does_not_fail_login(self, services, store, github) -> None:
        github.repos_status = 500

        result = await _complete(services)
        await _drain(services)

        assert services.sessions.lookup(result.session.token) is not None
        assert store.get_user(result.user.id).github_stars == 0

    async def test_shutdown_cancels_pending_enrichment(self, services, monkeypatch) -> None:
        started = asyncio.Event()

        async def slow_analytics(access_token: str, login: str):
            started.set()
            await asyncio.sleep(60)

        monkeypatch.setattr(services.oauth.client, 'fetch_analytics', slow_analytics)

        await _complete(services)
        await started.wait()
        await services.oauth.aclose()

        assert not services.oauth._background_tasks


class TestHelpers:
    '''
    Test email selection and repository summaries.
    '''

    def test_select_email_prefers_primary_verified(self) -> None:
        emails = [
            GitHubEmail(email='first@example.com', primary=False, verified=True),
            GitHubEmail(email='primary-unverified@example.com', primary=True, verified=False),
            GitHubEmail(email='main@example.com', primary=True, verified=True),
        ]

        assert select_email(emails, 'profile@example.com') == 'main@example.com'

    def test_select_email_falls_back(self) -> None:
        emails = [GitHubEmail(email='first@example.com')]

        assert select_email(emails, 'profile@example.com') == 'first@example.com'
        assert select_email([], 'profile@example.com') == 'profile@example.com'
        assert select_email([], None) == ''

    def test_summarize_top_languages(self) -> None:
        repos = [{'language': lang} for lang in ['Go'] * 3 + ['C'] * 2 + ['Zig', 'Lua', 'Nim', 'Odin']]
        repos.append({'language': None, 'stargazers_count': 4, 'forks_count': 1})

        summary = summarize_repositories(repos, top_n=5)

        assert summary.total_stars == 4
        assert summary.total_forks == 1
        assert [lang.name for lang in summary.top_languages] == ['Go', 'C', 'Zig', 'Lua', 'Nim']
        assert [lang.percentage for lang in summary.top_languages] == [38, 25, 13, 13, 13]

    def test_summarize_empty(self) -> None:
        summary = summarize_repositories([])

        assert summary.total_stars == 0
        assert summary.top_languages == []
