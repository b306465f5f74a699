"""
Log store adapters - fetch the backing file with its version token and write it
back conditioned on that token.

GitHubLogStore talks to the GitHub contents API; the version token is the blob
sha and a stale sha is rejected by GitHub. LocalLogStore and InMemoryLogStore
use a content digest as the token so they reject stale writes the same way.
"""

import base64
import binascii
import hashlib
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests

from util.logging import logger
from .codec import DEFAULT_HEADER
from .errors import StoreConflict, StoreError, StoreUnavailable

GITHUB_API_VERSION = "2022-11-28"


@dataclass
class LogSnapshot:
    """Full text of the backing file and the token it was read at."""

    content: str
    """File content (default header when the file does not exist yet)"""

    version: Optional[str]
    """Version token; None means the file has never been written"""


class ILogStore(ABC):
    """Abstract interface for the backing file."""

    name = "abstract"

    @abstractmethod
    def read(self) -> LogSnapshot:
        """Fetch current content and version token."""
        pass

    @abstractmethod
    def write(self, content: str, version: Optional[str], message: str, author: Optional[str] = None) -> Optional[str]:
        """Write content if the stored version still equals `version`.

        Returns the store-assigned change identifier, or None when the store
        does not assign one.
        """
        pass


class GitHubLogStore(ILogStore):
    """Backing file kept in a GitHub repository."""

    name = "github"

    def __init__(self, token: str, owner: str, repo: str, path: str = "COMMITS.md",
                 branch: Optional[str] = None, api_url: str = "https://api.github.com",
                 timeout: float = 10.0, committer_name: str = "Last Commit Bot",
                 committer_email: str = "bot@azulmalta.com", author_email: str = "guest@azulmalta.com",
                 session: Optional[requests.Session] = None):
        self.owner = owner
        self.repo = repo
        self.path = path
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.committer = {"name": committer_name, "email": committer_email}
        self.author_email = author_email

        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        })

    @classmethod
    def from_settings(cls, settings) -> "GitHubLogStore":
        return cls(
            token=settings.github_token,
            owner=settings.github_owner,
            repo=settings.github_repo,
            path=settings.log_file_path,
            branch=settings.github_branch,
            api_url=settings.github_api_url,
            timeout=settings.store_timeout_sec,
            committer_name=settings.committer_name,
            committer_email=settings.committer_email,
            author_email=settings.author_email,
        )

    @property
    def contents_url(self) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{self.path}"

    def read(self) -> LogSnapshot:
        params = {"ref": self.branch} if self.branch else None
        try:
            response = self.session.get(self.contents_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.log_store_failure("read", self.name, str(e))
            raise StoreUnavailable() from e

        if response.status_code == 404:
            # First write: the file will be created with the default header
            logger.log_store_operation("read", self.name, "missing", {"path": self.path})
            return LogSnapshot(content=DEFAULT_HEADER, version=None)

        if not response.ok:
            logger.log_store_failure("read", self.name, f"HTTP {response.status_code}")
            raise StoreUnavailable()

        try:
            data = response.json()
        except ValueError as e:
            logger.log_store_failure("read", self.name, f"invalid JSON body: {e}")
            raise StoreUnavailable() from e

        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            logger.log_store_failure("read", self.name, f"{self.path} is not a file")
            raise StoreUnavailable()

        # Files over 1 MB come back with encoding "none" and empty content
        if data.get("encoding") != "base64":
            logger.log_store_failure("read", self.name, f"unsupported encoding {data.get('encoding')!r}")
            raise StoreUnavailable()

        try:
            content = base64.b64decode(data["content"]).decode("utf-8")
        except (ValueError, binascii.Error) as e:
            logger.log_store_failure("read", self.name, f"undecodable content: {e}")
            raise StoreUnavailable() from e

        logger.log_store_operation("read", self.name, "success", {"path": self.path, "bytes": len(content)})
        return LogSnapshot(content=content, version=data.get("sha"))

    def write(self, content: str, version: Optional[str], message: str, author: Optional[str] = None) -> Optional[str]:
        body = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "committer": self.committer,
        }
        if version:
            body["sha"] = version
        if self.branch:
            body["branch"] = self.branch
        if author:
            body["author"] = {"name": author, "email": self.author_email}

        try:
            response = self.session.put(self.contents_url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.log_store_failure("write", self.name, str(e))
            raise StoreUnavailable() from e

        # 409: sha does not match; 422: sha missing for a file that now exists
        if response.status_code in (409, 422):
            logger.log_store_failure("write", self.name, f"version conflict (HTTP {response.status_code})")
            raise StoreConflict()

        if not response.ok:
            logger.log_store_failure("write", self.name, f"HTTP {response.status_code}")
            raise StoreUnavailable()

        try:
            data = response.json()
        except ValueError as e:
            # The write went through; only the change id is lost
            logger.log_store_failure("write", self.name, f"invalid JSON body: {e}")
            return None

        commit_sha = ((data if isinstance(data, dict) else {}).get("commit") or {}).get("sha")
        logger.log_store_operation("write", self.name, "success", {"path": self.path, "commit": commit_sha})
        return commit_sha


def _digest(content: str) -> str:
    return hashlib.sha1(content.encode("utf-8")).hexdigest()


class InMemoryLogStore(ILogStore):
    """Process-local store for development and tests."""

    name = "memory"

    def __init__(self, content: Optional[str] = None):
        self._content = content
        self._lock = threading.Lock()

    @property
    def content(self) -> Optional[str]:
        return self._content

    def read(self) -> LogSnapshot:
        with self._lock:
            if self._content is None:
                return LogSnapshot(content=DEFAULT_HEADER, version=None)
            return LogSnapshot(content=self._content, version=_digest(self._content))

    def write(self, content: str, version: Optional[str], message: str, author: Optional[str] = None) -> Optional[str]:
        with self._lock:
            current = None if self._content is None else _digest(self._content)
            if version != current:
                logger.log_store_failure("write", self.name, "version conflict")
                raise StoreConflict()
            self._content = content
        logger.log_store_operation("write", self.name, "success", {"message": message})
        return None


class LocalLogStore(ILogStore):
    """Backing file on the local filesystem.

    Used read-only as the fallback copy for listings; writable when selected
    as the primary store for local development.
    """

    name = "local"

    def __init__(self, path: str, read_only: bool = False):
        self.path = Path(path)
        self.read_only = read_only
        self._lock = threading.Lock()

    def _load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def read(self) -> LogSnapshot:
        try:
            content = self._load()
        except OSError as e:
            logger.log_store_failure("read", self.name, str(e))
            raise StoreUnavailable() from e

        if content is None:
            return LogSnapshot(content=DEFAULT_HEADER, version=None)
        return LogSnapshot(content=content, version=_digest(content))

    def write(self, content: str, version: Optional[str], message: str, author: Optional[str] = None) -> Optional[str]:
        if self.read_only:
            raise StoreError("Local fallback copy is read-only")

        with self._lock:
            try:
                current = self._load()
                if version != (None if current is None else _digest(current)):
                    logger.log_store_failure("write", self.name, "version conflict")
                    raise StoreConflict()

                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        f.write(content)
                    os.replace(tmp_path, self.path)
                except OSError:
                    Path(tmp_path).unlink(missing_ok=True)
                    raise
            except OSError as e:
                logger.log_store_failure("write", self.name, str(e))
                raise StoreUnavailable() from e

        logger.log_store_operation("write", self.name, "success", {"path": str(self.path), "message": message})
        return None


def read_modify_write(store: ILogStore, mutate: Callable[[str], str], message: str,
                      author: Optional[str] = None, retries: int = 0) -> Optional[str]:
    """Read the file, apply `mutate` to its content and write it back.

    A version conflict is retried with a fresh read up to `retries` extra
    times; after that the StoreConflict propagates. Errors raised by `mutate`
    propagate untouched and nothing is written.
    """
    attempt = 0
    while True:
        snapshot = store.read()
        new_content = mutate(snapshot.content)
        try:
            return store.write(new_content, snapshot.version, message, author=author)
        except StoreConflict:
            if attempt >= retries:
                raise
            attempt += 1
            logger.log_store_operation("write", store.name, "retry", {"attempt": attempt, "max_retries": retries})
