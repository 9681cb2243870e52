'''
Unit tests for user upsert and profile settings.
'''

from __future__ import annotations

import pytest

from finn_registry.core import NotFoundError
from finn_registry.models import (
    GitHubAnalytics,
    GitHubProfile,
    LanguageShare,
    ProfileSettingsRequest,
)
from finn_registry.services import UserService
from finn_registry.storage import JsonRegistryStore


@pytest.fixture
def users(store: JsonRegistryStore) -> UserService:
    return UserService(store)


def _profile(**overrides) -> GitHubProfile:
    data = {
        'id': 99,
        'login': 'bob',
        'name': 'Bob',
        'avatar_url': 'https://avatars.example.com/99',
        'bio': 'Original bio',
        'location': 'Berlin',
        'blog': None,
    }
    data.update(overrides)
    return GitHubProfile(**data)


class TestUpsert:
    '''
    Test upserting users from GitHub profiles.
    '''

    def test_insert(self, users: UserService) -> None:
        user = users.upsert_from_github(_profile(), 'bob@example.com')

        assert user.github_id == 99
        assert user.login == 'bob'
        assert user.email == 'bob@example.com'
        assert user.bio == 'Original bio'
        assert users.get(user.id) == user

    def test_name_defaults_to_login(self, users: UserService) -> None:
        assert users.upsert_from_github(_profile(name=None)).name == 'bob'

    def test_idempotent_on_github_id(self, users: UserService) -> None:
        first = users.upsert_from_github(_profile())
        second = users.upsert_from_github(_profile())

        assert second.id == first.id

    def test_refresh_updates_login_and_avatar(self, users: UserService) -> None:
        first = users.upsert_from_github(_profile())

        second = users.upsert_from_github(_profile(login='bobby', avatar_url='https://avatars.example.com/new'))

        assert second.id == first.id
        assert second.login == 'bobby'
        assert second.avatar_url == 'https://avatars.example.com/new'

    def test_refresh_preserves_edited_fields_unless_supplied(self, users: UserService) -> None:
        user = users.upsert_from_github(_profile())
        users.update_settings(user.id, ProfileSettingsRequest(bio='Edited bio', location='Home', blog='https://bob.dev'))

        refreshed = users.upsert_from_github(_profile(bio=None, location='Paris', blog=''))

        assert refreshed.bio == 'Edited bio'
        assert refreshed.location == 'Paris'
        assert refreshed.blog == 'https://bob.dev'

    def test_email_only_backfilled(self, users: UserService) -> None:
        user = users.upsert_from_github(_profile(), '')
        assert user.email == ''

        user = users.upsert_from_github(_profile(), 'first@example.com')
        assert user.email == 'first@example.com'

        user = users.upsert_from_github(_profile(), 'second@example.com')
        assert user.email == 'first@example.com'


class TestSettings:
    '''
    Test profile edits.
    '''

    def test_only_supplied_fields_change(self, users: UserService) -> None:
        user = users.upsert_from_github(_profile(), 'bob@example.com')

        updated = users.update_settings(user.id, ProfileSettingsRequest(name='Robert'))

        assert updated.name == 'Robert'
        assert updated.bio == 'Original bio'
        assert updated.email == 'bob@example.com'

    def test_clearing_email(self, users: UserService) -> None:
        user = users.upsert_from_github(_profile(), 'bob@example.com')

        assert users.update_settings(user.id, ProfileSettingsRequest(email=None)).email == ''

    def test_unknown_user(self, users: UserService) -> None:
        with pytest.raises(NotFoundError):
            users.update_settings('missing', ProfileSettingsRequest(name='x'))


class TestAnalytics:
    '''
    Test storing the analytics snapshot.
    '''

    def test_apply_analytics(self, users: UserService) -> None:
        user = users.upsert_from_github(_profile())
        analytics = GitHubAnalytics(
            total_stars=12,
            total_forks=4,
            top_languages=[LanguageShare(name='Python', percentage=100)],
        )

        updated = users.apply_analytics(user.id, analytics)

        assert updated.github_stars == 12
        assert updated.github_forks == 4
        assert updated.github_languages[0].name == 'Python'

    def test_apply_analytics_to_missing_user(self, users: UserService) -> None:
        assert users.apply_analytics('missing', GitHubAnalytics()) is None
