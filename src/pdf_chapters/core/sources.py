"""Resolve document references to raw bytes."""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import requests

from pdf_chapters.config import ExtractionSettings
from pdf_chapters.errors import ExtractionError, FetchFailed, FetchTimeout

log = logging.getLogger(__name__)

CHUNK_SIZE = 65536

# Public/signed object URLs served by the storage service
STORAGE_URL = re.compile(
    r"/storage/v1/object/(?:public|sign|authenticated)/(?P<bucket>[^/]+)/(?P<key>[^?#]+)"
)


@dataclass(frozen=True)
class StorageObject:
    """An object held by the storage service."""

    bucket: str
    key: str

    @classmethod
    def parse(cls, ref: str) -> "StorageObject":
        """Parse a ``bucket:key`` reference."""
        bucket, sep, key = ref.partition(":")
        if not sep or not bucket or not key:
            raise ValueError(f"Expected bucket:key, got {ref!r}")
        return cls(bucket=bucket, key=key)


DocumentReference = str | Path | StorageObject


class StorageClient(Protocol):
    """Storage collaborator supplying raw object bytes."""

    def download(self, bucket: str, key: str) -> bytes: ...


class Fetcher(Protocol):
    def get(self, url: str, timeout: float) -> bytes: ...


def parse_storage_url(url: str) -> StorageObject | None:
    """Extract bucket and key from a storage service object URL."""
    match = STORAGE_URL.search(url)
    if not match:
        return None
    return StorageObject(bucket=match.group("bucket"), key=match.group("key"))


def is_url(ref: str) -> bool:
    return ref.startswith(("http://", "https://"))


# =============================================================================
# Collaborators
# =============================================================================


class LocalStorage:
    """Storage backed by a directory holding one subdirectory per bucket."""

    def __init__(self, root: Path):
        self.root = root

    def download(self, bucket: str, key: str) -> bytes:
        path = (self.root / bucket / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise FetchFailed(f"Object key escapes storage root: {bucket}/{key}")
        if not path.is_file():
            raise FetchFailed(f"Object not found: {bucket}/{key}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise FetchFailed(f"Failed to read {bucket}/{key}: {e}") from e


@dataclass
class HttpFetcher:
    """HTTP GET with a hard deadline on the whole transfer."""

    session: requests.Session = field(default_factory=requests.Session)

    def get(self, url: str, timeout: float) -> bytes:
        deadline = time.monotonic() + timeout
        chunks: list[bytes] = []
        try:
            with self.session.get(url, timeout=timeout, stream=True) as r:
                if not r.ok:
                    raise FetchFailed(f"Failed to fetch PDF: {r.reason} ({r.status_code})")
                for chunk in r.iter_content(CHUNK_SIZE):
                    if time.monotonic() > deadline:
                        raise FetchTimeout(f"Fetch exceeded {timeout}s: {url}")
                    chunks.append(chunk)
        except requests.Timeout as e:
            raise FetchTimeout(f"Fetch exceeded {timeout}s: {url}") from e
        except requests.RequestException as e:
            raise FetchFailed(f"Failed to fetch PDF: {e}") from e
        return b"".join(chunks)


# =============================================================================
# Fetch Strategies
# =============================================================================


def fetch_document(
    reference: DocumentReference,
    *,
    timeout: float,
    fetcher: Fetcher | None = None,
    storage: StorageClient | None = None,
    use_storage: bool = True,
) -> bytes:
    """
    Load the bytes behind a reference.

    Storage objects (and storage-service URLs, when ``use_storage`` is set and
    a storage client is available) go through the storage client; other URLs
    through HTTP; anything else is read as a local path.

    Raises:
        FetchTimeout: The transfer exceeded ``timeout``.
        FetchFailed: Any other failure to obtain the bytes.
    """
    try:
        if isinstance(reference, StorageObject):
            if storage is None:
                raise FetchFailed("No storage client configured")
            return storage.download(reference.bucket, reference.key)

        if isinstance(reference, str) and is_url(reference):
            obj = parse_storage_url(reference) if use_storage and storage else None
            if obj is not None:
                log.debug(f"Downloading {obj.bucket}/{obj.key} from storage")
                return storage.download(obj.bucket, obj.key)
            return (fetcher or HttpFetcher()).get(reference, timeout)

        return Path(reference).read_bytes()
    except ExtractionError:
        raise
    except OSError as e:
        raise FetchFailed(f"Failed to read {reference}: {e}") from e
    except Exception as e:
        raise FetchFailed(f"Failed to download {reference}: {e}") from e


@dataclass(frozen=True)
class FetchStrategy:
    """A named, timeout-bounded way of obtaining document bytes."""

    name: str
    timeout: float
    use_storage: bool = True

    def fetch(
        self,
        reference: DocumentReference,
        fetcher: Fetcher | None = None,
        storage: StorageClient | None = None,
    ) -> bytes:
        log.info(f"{self.name} fetch of {reference} (timeout {self.timeout:.0f}s)")
        return fetch_document(
            reference,
            timeout=self.timeout,
            fetcher=fetcher,
            storage=storage,
            use_storage=self.use_storage,
        )


def primary_fetch(settings: ExtractionSettings) -> FetchStrategy:
    return FetchStrategy("primary", settings.fetch_timeout)


def fallback_fetch(settings: ExtractionSettings) -> FetchStrategy:
    """Direct fetch with a shorter budget, used only to recover a page count."""
    return FetchStrategy("fallback", settings.fallback_timeout, use_storage=False)
