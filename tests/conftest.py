import pytest

from herokeeper.repositories import characters, hero_point_settings


@pytest.fixture(autouse=True)
def clear_repository_caches():
    characters._roster_cache.clear()
    hero_point_settings._settings_cache.clear()
    yield
