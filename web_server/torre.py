import json
import logging
import os
from abc import ABC, abstractmethod

import httpx

from models.genome import Genome

logger = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 50


# ── Errors ───────────────────────────────────────────────────────────────

class TorreAPIError(Exception):
    """Torre could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GenomeNotFoundError(TorreAPIError):
    def __init__(self, username: str):
        super().__init__(f'User "{username}" not found', status_code=404)
        self.username = username


# ── Collaborator interface ──────────────────────────────────────────────

class ProfileSource(ABC):
    """Where candidate stubs and full genomes come from."""

    @abstractmethod
    async def search(self, query: str, limit: int = 20) -> list[Genome]:
        pass

    @abstractmethod
    async def fetch_genome(self, username: str) -> Genome:
        pass


# ── Torre client ─────────────────────────────────────────────────────────

def _parse_stream(text: str) -> list[dict]:
    """Torre's _searchStream answers with one JSON object per line."""
    records = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("Skipping unparseable search line: %.80s", line)
            continue
        if isinstance(record, list):
            records.extend(r for r in record if isinstance(r, dict))
        elif isinstance(record, dict):
            records.append(record)
    return records


def _is_person(record: dict) -> bool:
    return bool(record.get("username")) and not record.get("organizationId")


class TorreClient(ProfileSource):
    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def search(self, query: str, limit: int = 20) -> list[Genome]:
        """People search. Organizations are filtered out of the stream."""
        if not query or not isinstance(query, str) or not query.strip():
            raise ValueError("Search query is required")

        body: dict = {"query": query.strip()}
        if limit and limit > 0:
            body["limit"] = min(limit, MAX_SEARCH_LIMIT)

        try:
            resp = await self.http.post("/entities/_searchStream", json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TorreAPIError(
                f"API Error {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise TorreAPIError(f"Network error: unable to reach Torre API ({e})") from e

        people = [r for r in _parse_stream(resp.text) if _is_person(r)]
        return [Genome.from_raw(p) for p in people]

    async def fetch_genome(self, username: str) -> Genome:
        if not username or not isinstance(username, str):
            raise ValueError("Username is required and must be a string")

        try:
            resp = await self.http.get(f"/genome/bios/{username}")
        except httpx.RequestError as e:
            raise TorreAPIError(f"Network error: unable to reach Torre API ({e})") from e

        if resp.status_code == 404:
            raise GenomeNotFoundError(username)
        if resp.status_code != 200:
            raise TorreAPIError(f"API Error {resp.status_code}: {resp.text[:200]}", status_code=resp.status_code)

        genome = Genome.from_raw(resp.json())
        if not genome.username:
            genome.username = username
        return genome


# ── Lifecycle ────────────────────────────────────────────────────────────

http_client: httpx.AsyncClient | None = None
client: TorreClient | None = None


async def connect_client() -> TorreClient:
    global http_client, client
    http_client = httpx.AsyncClient(
        base_url=os.getenv("TORRE_API_URL", "https://torre.ai/api"),
        timeout=float(os.getenv("TORRE_TIMEOUT", "15")),
        headers={"Content-Type": "application/json"},
    )
    client = TorreClient(http_client)
    return client


async def close_client() -> None:
    global http_client
    if http_client:
        await http_client.aclose()


def get_client() -> TorreClient:
    assert client is not None, "Torre client not connected. Call connect_client() first."
    return client
