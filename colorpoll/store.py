# vote store collaborators + internal endpoints
import logging
from typing import Iterable, List, Optional, Protocol

import httpx
from fastapi import APIRouter, Request
from pydantic import ValidationError

from .config import STORE_TIMEOUT, STORE_URL
from .models import StoreResult, VoteRecord

logger = logging.getLogger(__name__)

router = APIRouter()

VOTES_PATH = "/internal/votes"


class VoteStore(Protocol):
    async def list(self) -> StoreResult: ...

    async def create(self, record: VoteRecord) -> StoreResult: ...


class InMemoryVoteStore:
    """
    Append-only record list living in this process.
    Nothing awaits between read and append, so the event loop serialises it.
    """

    def __init__(self, records: Optional[Iterable[VoteRecord]] = None):
        self._records: List[VoteRecord] = list(records or [])

    async def list(self) -> StoreResult:
        return StoreResult(success=True, data=list(self._records))

    async def create(self, record: VoteRecord) -> StoreResult:
        self._records.append(record)
        return StoreResult(success=True, data=record)

    def __len__(self) -> int:
        return len(self._records)


def parse_records(items) -> List[VoteRecord]:
    """
    Validate raw record dicts one by one; unparseable ones are dropped.
    """
    records: List[VoteRecord] = []
    if not isinstance(items, list):
        return records
    for item in items:
        try:
            records.append(VoteRecord.model_validate(item))
        except ValidationError:
            logger.debug("dropping malformed vote record: %r", item)
    return records


class HttpVoteStore:
    """
    Store reached over HTTP (another colorpoll instance's /internal/votes).
    Transport errors, non-2xx answers and bad bodies become success=False.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = STORE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def list(self) -> StoreResult:
        try:
            async with self._client() as client:
                resp = await client.get(VOTES_PATH)
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("store list() failed at %s: %s", self.base_url, exc)
            return StoreResult(success=False, data=[])

        if not isinstance(payload, dict) or not payload.get("success"):
            logger.warning("store list() at %s reported failure", self.base_url)
            return StoreResult(success=False, data=[])

        data = payload.get("data")
        if not isinstance(data, list):
            logger.warning("store list() at %s returned %s, not a record list",
                           self.base_url, type(data).__name__)
            return StoreResult(success=False, data=[])

        return StoreResult(success=True, data=parse_records(data))

    async def create(self, record: VoteRecord) -> StoreResult:
        body = record.model_dump(mode="json", by_alias=True)
        try:
            async with self._client() as client:
                resp = await client.post(VOTES_PATH, json=body)
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("store create() failed at %s: %s", self.base_url, exc)
            return StoreResult(success=False)

        if not isinstance(payload, dict) or not payload.get("success"):
            logger.warning("store create() at %s reported failure", self.base_url)
            return StoreResult(success=False)

        return StoreResult(success=True, data=payload.get("data"))


def build_store(local: InMemoryVoteStore, store_url: str = STORE_URL) -> VoteStore:
    if store_url:
        return HttpVoteStore(store_url)
    return local


# ----------- internal endpoints (this instance acting as the store) -----------

@router.get(VOTES_PATH)
async def internal_list_votes(request: Request):
    result = await request.app.state.local_store.list()
    return {
        "success": result.success,
        "data": [r.model_dump(mode="json", by_alias=True) for r in result.data],
    }


@router.post(VOTES_PATH)
async def internal_create_vote(record: VoteRecord, request: Request):
    result = await request.app.state.local_store.create(record)
    return {
        "success": result.success,
        "data": record.model_dump(mode="json", by_alias=True),
    }
