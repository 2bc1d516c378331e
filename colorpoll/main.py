import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .config import (
    LOG_LEVEL,
    PORT,
    SERVICE_ID,
    SESSION_COOKIE,
    SESSION_IDLE_TTL,
    SESSION_MAX,
)
from .errors import AlreadyVoted, ColorPollError, StoreUnavailable, UnknownOption
from .health import router as health_router
from .logging_cfg import setup_logging
from .models import LeaderOut, Option, OptionResult, ResultsOut, VoteIn
from .palette import OPTIONS
from .session import SessionRegistry, VoteSession
from .store import InMemoryVoteStore, VoteStore, build_store, router as store_router

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    AlreadyVoted: 409,
    StoreUnavailable: 503,
    UnknownOption: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not logging.getLogger().hasHandlers():
        setup_logging(LOG_LEVEL)
    logger.info("%s up, store=%s", SERVICE_ID, type(app.state.store).__name__)
    yield


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")


def get_session(request: Request, response: Response) -> VoteSession:
    sid = request.cookies.get(SESSION_COOKIE)
    session = request.app.state.sessions.get_or_create(sid)
    if session.session_id != sid:
        set_session_cookie(response, session.session_id)
        # error handlers build their own response and re-issue it from here
        request.state.new_session_id = session.session_id
    return session


def results_body(session: VoteSession) -> ResultsOut:
    snap = session.snapshot
    leader = None
    if snap.leader is not None:
        leader = LeaderOut(name=snap.leader, count=snap.leader_count)
    return ResultsOut(
        session_id=session.session_id,
        has_voted=session.has_voted,
        total_votes=snap.total_votes,
        leader=leader,
        options=[
            OptionResult(
                name=opt.name,
                color_value=opt.color_value,
                count=snap.counts_by_option[opt.name],
                percentage=snap.percentages[opt.name],
            )
            for opt in session.options
        ],
    )


def create_app(
    store: Optional[VoteStore] = None,
    local_store: Optional[InMemoryVoteStore] = None,
    options: Sequence[Option] = OPTIONS,
    max_sessions: int = SESSION_MAX,
    session_idle_ttl: float = SESSION_IDLE_TTL,
) -> FastAPI:
    app = FastAPI(title=f"Color Poll ({SERVICE_ID})", lifespan=lifespan)

    app.state.local_store = local_store if local_store is not None else InMemoryVoteStore()
    app.state.store = store if store is not None else build_store(app.state.local_store)
    app.state.sessions = SessionRegistry(
        app.state.store, options, max_sessions=max_sessions, idle_ttl=session_idle_ttl
    )

    app.include_router(store_router)
    app.include_router(health_router)

    @app.exception_handler(ColorPollError)
    async def colorpoll_error(request: Request, exc: ColorPollError):
        code = 500
        for cls, status_code in ERROR_STATUS.items():
            if isinstance(exc, cls):
                code = status_code
                break
        resp = JSONResponse(
            status_code=code,
            content={"error": exc.kind, "detail": str(exc), "retryable": exc.is_retryable},
        )
        new_sid = getattr(request.state, "new_session_id", None)
        if new_sid:
            set_session_cookie(resp, new_sid)
        return resp

    @app.get("/")
    def root():
        return {"service": SERVICE_ID, "options": len(options)}

    @app.get("/options")
    def list_options():
        return [opt.model_dump() for opt in options]

    @app.get("/results", response_model=ResultsOut)
    async def get_results(session: VoteSession = Depends(get_session)):
        await session.refresh()
        return results_body(session)

    @app.post("/vote", response_model=ResultsOut)
    async def vote(v: VoteIn, session: VoteSession = Depends(get_session)):
        await session.request_vote(v.option)
        return results_body(session)

    @app.post("/session/restart", response_model=ResultsOut)
    async def restart_session(request: Request, response: Response):
        session = request.app.state.sessions.restart(request.cookies.get(SESSION_COOKIE))
        set_session_cookie(response, session.session_id)
        return results_body(session)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("colorpoll.main:app", host="0.0.0.0", port=PORT, log_level="info")
