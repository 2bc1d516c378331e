# store probe + status endpoint
import time

from fastapi import APIRouter, Request

from .config import SERVICE_ID
from .store import HttpVoteStore

router = APIRouter()


async def probe_store(store) -> dict:
    """
    Issue one list() against the store and time it.
    Never raises: an exception counts as unreachable.
    """
    started = time.monotonic()
    try:
        result = await store.list()
        reachable = bool(result.success)
    except Exception:
        reachable = False
    latency = time.monotonic() - started
    return {"reachable": reachable, "latency_ms": round(latency * 1000, 2)}


@router.get("/status")
async def status(request: Request):
    """
    Reports which store this instance uses and whether it answered just now.
    """
    store = request.app.state.store
    if isinstance(store, HttpVoteStore):
        backend = {"kind": "http", "url": store.base_url}
    elif store is request.app.state.local_store:
        backend = {"kind": "memory", "records": len(store)}
    else:
        backend = {"kind": type(store).__name__}

    return {
        "node": SERVICE_ID,
        "store": {**backend, **await probe_store(store)},
        "sessions": len(request.app.state.sessions),
    }
