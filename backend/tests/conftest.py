"""Pytest fixtures: settings rooted in tmp_path, filesystem storage, signer."""
import logging

import pytest

from app.core.config import Settings, get_settings
from app.services.storage import get_storage
from app.services.storage.local import FsStorage
from app.services.storage.signing import SignedUrlConfig, SignedUrlIssuer

TEST_SECRET = "verysecretstring"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        bucket_name="cache",
        storage_folder_name="files",
        storage_folder_path=str(tmp_path / "storage"),
        storage_secret_string=TEST_SECRET,
        storage_url_expires=3600,
        session_absolute_expire_ms=24 * 60 * 60 * 1000,
    )


@pytest.fixture
def storage(settings) -> FsStorage:
    return FsStorage.from_settings(settings)


@pytest.fixture
def signer(settings) -> SignedUrlIssuer:
    return SignedUrlIssuer(SignedUrlConfig.from_settings(settings))


@pytest.fixture
def clear_settings_cache():
    """Clear lru_caches so get_settings/get_storage pick up monkeypatched env."""
    get_settings.cache_clear()
    get_storage.cache_clear()
    yield
    get_settings.cache_clear()
    get_storage.cache_clear()


@pytest.fixture(autouse=True)
def reset_app_logger():
    """configure_logging attaches handlers to the "app" logger; drop them between tests."""
    yield
    logger = logging.getLogger("app")
    for h in logger.handlers[:]:
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
