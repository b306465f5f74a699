"""
Configuration for the commit log service.
Values are read from the environment (and an optional .env file) once at startup
and carried around in an explicit Settings object.
"""

import os
from dataclasses import dataclass, field, replace
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# Version string
VERSION = "1.0.0"

VALID_PROVIDERS = ["github", "local", "memory"]


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once by load_settings()."""

    github_token: Optional[str] = None
    github_owner: Optional[str] = None
    github_repo: Optional[str] = None
    github_branch: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    log_file_path: str = "COMMITS.md"
    log_store_provider: str = "github"
    local_log_path: str = "./COMMITS.md"
    admin_secret: Optional[str] = None
    store_timeout_sec: float = 10.0
    write_retries: int = 0
    strict_delimiters: bool = False
    committer_name: str = "Last Commit Bot"
    committer_email: str = "bot@azulmalta.com"
    author_email: str = "guest@azulmalta.com"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    debug: bool = False
    version: str = VERSION

    @property
    def github_configured(self) -> bool:
        """True when token, owner and repo are all present."""
        return bool(self.github_token and self.github_owner and self.github_repo)

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with some fields replaced (used by tests and scripts)."""
        return replace(self, **changes)

    def __repr__(self) -> str:
        # Keep credentials out of logs and tracebacks
        token = "[REDACTED]" if self.github_token else None
        secret = "[REDACTED]" if self.admin_secret else None
        return (
            f"Settings(provider={self.log_store_provider!r}, owner={self.github_owner!r}, "
            f"repo={self.github_repo!r}, path={self.log_file_path!r}, token={token}, "
            f"admin_secret={secret}, write_retries={self.write_retries})"
        )


def _split_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        github_token=os.getenv("GITHUB_TOKEN"),
        github_owner=os.getenv("GITHUB_OWNER"),
        github_repo=os.getenv("GITHUB_REPO"),
        github_branch=os.getenv("GITHUB_BRANCH") or None,
        github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/"),
        log_file_path=os.getenv("LOG_FILE_PATH", "COMMITS.md"),
        log_store_provider=os.getenv("LOG_STORE_PROVIDER", "github").lower(),
        local_log_path=os.getenv("LOCAL_LOG_PATH", "./COMMITS.md"),
        admin_secret=os.getenv("ADMIN_SECRET"),
        store_timeout_sec=float(os.getenv("STORE_TIMEOUT_SEC", "10")),
        write_retries=int(os.getenv("WRITE_RETRIES", "0")),
        strict_delimiters=os.getenv("STRICT_DELIMITERS", "false").lower() == "true",
        committer_name=os.getenv("COMMITTER_NAME", "Last Commit Bot"),
        committer_email=os.getenv("COMMITTER_EMAIL", "bot@azulmalta.com"),
        author_email=os.getenv("AUTHOR_EMAIL", "guest@azulmalta.com"),
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "http://localhost:3000")),
        debug=os.getenv("DEBUG", "false").lower() == "true",
    )


def get_log_store(settings: Settings):
    """Get configured log store implementation. Returns None if no store is usable."""
    provider = settings.log_store_provider

    if provider == "local":
        from .store import LocalLogStore
        return LocalLogStore(settings.local_log_path)
    elif provider == "memory":
        from .store import InMemoryLogStore
        return InMemoryLogStore()
    elif provider == "github":
        if not settings.github_configured:
            return None
        from .store import GitHubLogStore
        return GitHubLogStore.from_settings(settings)
    else:
        # Unknown providers leave persistence disabled
        return None


def get_fallback_store(settings: Settings):
    """Get the local read-only copy used when the remote store cannot be read."""
    from .store import LocalLogStore
    return LocalLogStore(settings.local_log_path, read_only=True)


def validate_settings(settings: Settings) -> List[str]:
    """Validate configuration and return any issues."""
    issues = []

    if settings.log_store_provider not in VALID_PROVIDERS:
        issues.append(f"Invalid LOG_STORE_PROVIDER: {settings.log_store_provider}")

    if settings.log_store_provider == "github" and not settings.github_configured:
        issues.append("LOG_STORE_PROVIDER=github requires GITHUB_TOKEN, GITHUB_OWNER and GITHUB_REPO")

    if not settings.admin_secret:
        issues.append("ADMIN_SECRET is not set; approvals will be refused")

    if settings.write_retries < 0:
        issues.append("WRITE_RETRIES must be >= 0")

    if settings.store_timeout_sec <= 0:
        issues.append("STORE_TIMEOUT_SEC must be > 0")

    return issues
