"""Pinned GitHub repositories for the home page, cached in memory."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from .dependencies import get_services
from .models import RepoCard

logger = logging.getLogger(__name__)

GRAPHQL_URL = "https://api.github.com/graphql"
CACHE_TTL_SECONDS = 10 * 60

PINNED_REPOS_QUERY = """
query($login: String!) {
  user(login: $login) {
    pinnedItems(first: 6, types: REPOSITORY) {
      nodes {
        ... on Repository {
          id
          name
          url
          description
          owner { login }
          languages(first: 5, orderBy: { field: SIZE, direction: DESC }) {
            nodes { name }
          }
        }
      }
    }
  }
}
"""

router = APIRouter(prefix="/api", tags=["github"])


class GitHubError(Exception):
    pass


def token_hint(message: str) -> str:
    lower = message.lower()
    if any(
        marker in lower
        for marker in ("fine-grained", "personal access tokens", "lifetime", "forbids access")
    ):
        return (
            "Deine Organisation blockt Fine-grained PATs mit Laufzeit > 366 Tage. "
            "Erstelle einen neuen Fine-grained Token mit <= 365 Tagen ODER nutze einen Classic PAT."
        )
    return "Prüfe, ob GITHUB_TOKEN gesetzt ist und Zugriff auf öffentliche Daten hat."


def parse_pinned_repos(payload: Dict[str, Any], username: str) -> List[RepoCard]:
    nodes = (((payload.get("data") or {}).get("user") or {}).get("pinnedItems") or {}).get("nodes") or []
    cards: List[RepoCard] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        if not all(isinstance(node.get(field), str) for field in ("id", "name", "url")):
            continue
        owner = (node.get("owner") or {}).get("login") or username
        language_nodes = (node.get("languages") or {}).get("nodes") or []
        languages = [lang["name"] for lang in language_nodes if isinstance(lang, dict) and lang.get("name")]
        cards.append(
            RepoCard(
                id=node["id"],
                name=node["name"],
                full_name=f"{owner}/{node['name']}",
                url=node["url"],
                description=node.get("description"),
                languages=languages,
            )
        )
    return cards


class PinnedRepoClient:
    def __init__(
        self,
        token: Optional[str],
        username: str,
        http: Optional[httpx.AsyncClient] = None,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.token = token
        self.username = username
        self._http = http or httpx.AsyncClient(timeout=15.0)
        self._ttl = ttl_seconds
        self._clock = clock
        self._cache: Optional[Tuple[float, List[RepoCard]]] = None

    async def get_pinned(self) -> List[RepoCard]:
        now = self._clock()
        if self._cache and self._cache[0] > now:
            return self._cache[1]
        cards = await self._fetch()
        self._cache = (now + self._ttl, cards)
        return cards

    async def _fetch(self) -> List[RepoCard]:
        if not self.token:
            raise GitHubError("GitHub token missing (set GITHUB_TOKEN in env)")

        response = await self._http.post(
            GRAPHQL_URL,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/json",
            },
            json={"query": PINNED_REPOS_QUERY, "variables": {"login": self.username}},
        )
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400:
            detail = f" | {payload['message']}" if isinstance(payload, dict) and payload.get("message") else ""
            raise GitHubError(f"GitHub GraphQL error: {response.status_code}{detail}")

        payload = payload if isinstance(payload, dict) else {}
        errors = payload.get("errors") or []
        if errors:
            messages = " | ".join((error or {}).get("message") or "unknown error" for error in errors)
            raise GitHubError(f"GitHub GraphQL errors: {messages}")

        return parse_pinned_repos(payload, self.username)

    async def aclose(self) -> None:
        await self._http.aclose()


@router.get("/pinned-repos", response_model=List[RepoCard])
async def pinned_repos(services=Depends(get_services)):
    try:
        return await services.github.get_pinned()
    except (GitHubError, httpx.HTTPError) as exc:
        message = str(exc) or type(exc).__name__
        logger.warning("Pinned repositories unavailable: %s", message)
        return JSONResponse(status_code=500, content={"error": message, "hint": token_hint(message)})
