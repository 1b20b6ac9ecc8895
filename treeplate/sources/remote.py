"""Git hosting API clients returning repository snapshot archives."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol
from urllib.parse import quote, urlsplit

import httpx

from ..core.errors import RemoteFetchError, SourceReferenceError
from ..core.models import RemoteRepository
from ..settings import Settings

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("gitlab", "github")
MAX_REDIRECTS = 10
_ERROR_BODY_LIMIT = 500


def parse_remote_uri(uri: str) -> RemoteRepository:
    """Parse ``gitlab://host/group/project[@ref]`` or ``github://host/owner/repo[@ref]``."""
    parts = urlsplit(uri)
    provider = parts.scheme.lower()
    if provider not in REMOTE_SCHEMES:
        raise SourceReferenceError(f"Unknown url scheme '{parts.scheme}' in '{uri}'")

    host = parts.hostname
    if not host:
        raise SourceReferenceError(f"URL must contain a host: '{uri}'")
    if parts.port:
        host = f"{host}:{parts.port}"

    path = parts.path.strip("/")
    ref: str | None = None
    if "@" in path:
        path, ref = path.rsplit("@", 1)
        path = path.strip("/")
        if not ref:
            raise SourceReferenceError(f"Empty ref in '{uri}'")
    if not path:
        raise SourceReferenceError(f"Project path cannot be empty: '{uri}'")

    segments = path.split("/")
    if any(not segment for segment in segments):
        raise SourceReferenceError(f"Invalid project path '{path}' in '{uri}'")
    if provider == "github" and len(segments) != 2:
        raise SourceReferenceError(f"GitHub path must be owner/repo, got: {path}")
    if provider == "gitlab" and len(segments) < 2:
        raise SourceReferenceError(f"GitLab path must be group/project, got: {path}")

    return RemoteRepository(provider=provider, host=host, project=path, ref=ref)


class RemoteFetcher(Protocol):
    def archive_url(self, repository: RemoteRepository) -> str: ...

    def fetch(self, repository: RemoteRepository) -> bytes: ...


class _HttpArchiveFetcher:
    """Downloads a tarball snapshot over HTTPS."""

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        self.settings = settings
        self._client = client

    def archive_url(self, repository: RemoteRepository) -> str:
        raise NotImplementedError

    def auth_headers(self) -> dict[str, str]:
        return {}

    @contextmanager
    def _client_scope(self) -> Iterator[httpx.Client]:
        if self._client is not None:
            yield self._client
            return
        with httpx.Client(
            timeout=httpx.Timeout(self.settings.http_timeout, connect=10.0),
            max_redirects=MAX_REDIRECTS,
        ) as client:
            yield client

    def fetch(self, repository: RemoteRepository) -> bytes:
        """Download the repository snapshot as .tar.gz bytes.

        Raises:
            RemoteFetchError: On transport failures and non-success responses
        """
        url = self.archive_url(repository)
        headers = {"User-Agent": self.settings.user_agent, **self.auth_headers()}
        logger.info(f"Fetching {repository.display_name} from {url}")

        try:
            with self._client_scope() as client:
                response = client.get(url, headers=headers, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise RemoteFetchError(url, None, str(exc)) from exc

        if not response.is_success:
            raise RemoteFetchError(
                url, response.status_code, response.text[:_ERROR_BODY_LIMIT].strip()
            )

        logger.debug(f"Received {len(response.content)} byte(s) from {url}")
        return response.content


class GitLabFetcher(_HttpArchiveFetcher):
    def archive_url(self, repository: RemoteRepository) -> str:
        project = quote(repository.project, safe="")
        url = (
            f"https://{repository.host}/api/v4/projects/{project}"
            "/repository/archive.tar.gz"
        )
        if repository.ref:
            url = f"{url}?sha={quote(repository.ref, safe='')}"
        return url

    def auth_headers(self) -> dict[str, str]:
        token = self.settings.gitlab_token
        if token is None:
            return {}
        return {"PRIVATE-TOKEN": token.get_secret_value()}


class GitHubFetcher(_HttpArchiveFetcher):
    def archive_url(self, repository: RemoteRepository) -> str:
        url = f"https://api.{repository.host}/repos/{repository.project}/tarball"
        if repository.ref:
            url = f"{url}/{quote(repository.ref, safe='/')}"
        return url

    def auth_headers(self) -> dict[str, str]:
        token = self.settings.github_token
        if token is None:
            return {}
        return {"Authorization": f"Bearer {token.get_secret_value()}"}


def fetcher_for(
    repository: RemoteRepository,
    settings: Settings,
    client: httpx.Client | None = None,
) -> RemoteFetcher:
    """Select the API client for the repository's provider."""
    if repository.provider == "gitlab":
        return GitLabFetcher(settings, client)
    if repository.provider == "github":
        return GitHubFetcher(settings, client)
    raise SourceReferenceError(f"Unsupported provider '{repository.provider}'")
