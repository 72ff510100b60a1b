"""Artifact fetching - Local cache first, then a bounded HTTP download.

The cache is read-only here: cached files are copied into the working
directory and downloads are never written back to the cache.
"""

import logging
import shutil
from pathlib import Path

import httpx

from .config import DEFAULT_DOWNLOAD_ATTEMPTS
from .config import DEFAULT_DOWNLOAD_TIMEOUT
from .descriptor import SourceDescriptor
from .exceptions import FetchError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def cached_artifact(descriptor: SourceDescriptor, cache_dir: Path | None) -> Path | None:
    """Return the cached copy of the artifact, or None if the cache has none."""
    if cache_dir is None:
        return None
    candidate = cache_dir / descriptor.filename
    return candidate if candidate.is_file() else None


def _download_once(client: httpx.Client, url: str, target: Path) -> None:
    with client.stream("GET", url) as response:
        response.raise_for_status()
        with open(target, "wb") as f:
            for chunk in response.iter_bytes(_CHUNK_SIZE):
                f.write(chunk)


def download(
    url: str,
    target: Path,
    client: httpx.Client | None = None,
    attempts: int = DEFAULT_DOWNLOAD_ATTEMPTS,
    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
) -> None:
    """
    Download url to target, trying a fixed number of times without backoff.

    Each attempt rewrites target from scratch. When no client is injected a fresh
    client (and connection) is opened per attempt.

    Raises:
        FetchError: After all attempts failed, carrying the last transport error
    """
    last_error = ""
    for attempt in range(1, attempts + 1):
        try:
            if client is not None:
                _download_once(client, url, target)
            else:
                with httpx.Client(
                    follow_redirects=True,
                    timeout=httpx.Timeout(timeout, connect=timeout),
                ) as fresh:
                    _download_once(fresh, url, target)
            logger.debug(f"Downloaded {url} on attempt {attempt}/{attempts}")
            return
        except (httpx.HTTPError, OSError) as e:
            last_error = str(e) or type(e).__name__
            logger.warning(f"Download attempt {attempt}/{attempts} for {url} failed: {last_error}")

    raise FetchError(
        f"Failed to download {url} after {attempts} attempts: {last_error}",
        context={"url": url, "attempts": attempts, "error": last_error},
    )


def fetch_artifact(
    descriptor: SourceDescriptor,
    cache_dir: Path | None,
    work_dir: Path,
    client: httpx.Client | None = None,
    attempts: int = DEFAULT_DOWNLOAD_ATTEMPTS,
    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
) -> Path:
    """
    Resolve the artifact into work_dir/<filename>.

    Process:
    1. cache_dir/<filename> exists → copy it, no network access
    2. Otherwise download descriptor.url

    Args:
        descriptor: Source descriptor
        cache_dir: Read-only artifact cache (None disables the cache)
        work_dir: Private working directory
        client: Optional httpx client (tests inject a mock transport)
        attempts: Download attempts before giving up
        timeout: Connect and read timeout in seconds

    Returns:
        Path to the local archive in work_dir

    Raises:
        FetchError: If no cached copy exists and the download fails or no URL is set
    """
    work_dir.mkdir(parents=True, exist_ok=True)
    target = work_dir / descriptor.filename

    cached = cached_artifact(descriptor, cache_dir)
    if cached is not None:
        logger.info(f"Using cached artifact {cached}")
        shutil.copy2(cached, target)
        return target

    if not descriptor.url:
        raise FetchError(
            f"No cached artifact for '{descriptor.source_id}' and no SOURCE_URL to download it from",
            context={"source_id": descriptor.source_id, "cache_dir": str(cache_dir)},
        )

    logger.info(f"Downloading {descriptor.url}")
    download(descriptor.url, target, client=client, attempts=attempts, timeout=timeout)
    return target
