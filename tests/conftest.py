'''
Shared fixtures for Finn Registry tests.

GitHub is replaced by an ``httpx.MockTransport`` whose responses each test
can adjust through the ``github`` fixture.
'''

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from finn_registry.api import build_services
from finn_registry.core.config import AuthConfig, LoggingConfig, Settings
from finn_registry.main import create_app
from finn_registry.models import User
from finn_registry.storage import JsonRegistryStore


class FakeGitHub:
    '''
    Scriptable stand-in for the GitHub OAuth and REST endpoints.
    '''

    def __init__(self) -> None:
        self.token_status = 200
        self.token_payload: Dict[str, Any] = {
            'access_token': 'gho_test_access_token',
            'token_type': 'bearer',
            'scope': 'user:email',
        }
        self.token_exception: Optional[Exception] = None

        self.profile_status = 200
        self.profile: Dict[str, Any] = {
            'id': 4242,
            'login': 'octocat',
            'name': 'The Octocat',
            'email': None,
            'avatar_url': 'https://avatars.example.com/u/4242',
            'bio': 'Builds things',
            'location': 'San Francisco',
            'blog': '',
        }
        self.profile_exception: Optional[Exception] = None

        self.emails_status = 200
        self.emails: List[Dict[str, Any]] = [
            {'email': 'secondary@example.com', 'primary': False, 'verified': True},
            {'email': 'octocat@example.com', 'primary': True, 'verified': True},
        ]

        self.repos_status = 200
        self.repos: List[Dict[str, Any]] = [
            {'name': 'a', 'stargazers_count': 10, 'forks_count': 1, 'language': 'Python'},
            {'name': 'b', 'stargazers_count': 5, 'forks_count': 2, 'language': 'Python'},
            {'name': 'c', 'stargazers_count': 1, 'forks_count': 0, 'language': 'Rust'},
            {'name': 'd', 'stargazers_count': 0, 'forks_count': 0, 'language': None},
        ]

        self.requests: List[httpx.Request] = []

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == 'github.com' and path == '/login/oauth/access_token':
            if self.token_exception is not None:
                raise self.token_exception
            return httpx.Response(self.token_status, json=self.token_payload)

        if path == '/user':
            if self.profile_exception is not None:
                raise self.profile_exception
            return httpx.Response(self.profile_status, json=self.profile)

        if path == '/user/emails':
            return httpx.Response(self.emails_status, json=self.emails)

        if path.startswith('/users/') and path.endswith('/repos'):
            return httpx.Response(self.repos_status, json=self.repos)

        return httpx.Response(404, json={'message': 'Not Found'})


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def transport(github: FakeGitHub) -> httpx.MockTransport:
    return httpx.MockTransport(github.handler)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment='testing',
        app_url='https://registry.example.com',
        auth=AuthConfig(
            github_client_id='test-client-id',
            github_client_secret='test-client-secret',
            jwt_secret='test-signing-secret',
        ),
        logging=LoggingConfig(level='WARNING'),
    )


@pytest.fixture
def store() -> JsonRegistryStore:
    return JsonRegistryStore()


@pytest.fixture
def services(settings: Settings, store: JsonRegistryStore, transport: httpx.MockTransport):
    return build_services(settings, store=store, transport=transport)


@pytest.fixture
def user(store: JsonRegistryStore) -> User:
    return store.insert_user(
        User(
            github_id=1001,
            login='alice',
            email='alice@example.com',
            name='Alice',
        )
    )


@pytest.fixture
def app(settings: Settings, store: JsonRegistryStore, transport: httpx.MockTransport):
    return create_app(settings=settings, store=store, transport=transport)


@pytest.fixture
def client(app):
    with TestClient(app, base_url='https://testserver', follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def app_services(app):
    return app.state.services
