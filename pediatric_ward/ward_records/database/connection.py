"""Record store factory."""

from pathlib import Path

from pediatric_ward import config

from .store import FallbackStore, LocalStore, RemoteStore


def get_store(
    storage_dir: Path | str | None = None,
    api_url: str | None = None,
    api_key: str | None = None,
) -> FallbackStore:
    """Build the app's record store, remote-backed when an endpoint and key are configured."""
    api_url = api_url if api_url is not None else config.DATA_API_URL
    api_key = api_key if api_key is not None else config.DATA_API_KEY

    remote = None
    if api_url and api_key:
        remote = RemoteStore(
            api_url,
            api_key,
            data_source=config.DATA_API_SOURCE,
            database=config.DATA_API_DATABASE,
            timeout=config.DATA_API_TIMEOUT,
        )

    return FallbackStore(LocalStore(storage_dir or config.STORAGE_DIR), remote)
