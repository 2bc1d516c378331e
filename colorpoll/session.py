# per-session voting context + submission workflow
import logging
import time
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Sequence

from .config import SESSION_IDLE_TTL, SESSION_MAX
from .errors import AlreadyVoted, StoreUnavailable, SubmissionInProgress, UnknownOption
from .models import Option, StoreResult, TallySnapshot, VoteRecord
from .palette import OPTIONS
from .store import VoteStore
from .tally import can_vote, compute

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SETTLED = "settled"


class VoteSession:
    """
    One participant's voting context.

    Holds the "already voted" flag, the submission state machine
    (IDLE -> SUBMITTING -> SETTLED) and the latest tally snapshot.
    The flag is only cleared by replacing the session (SessionRegistry.restart).
    """

    def __init__(
        self,
        store: VoteStore,
        options: Sequence[Option] = OPTIONS,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.store = store
        self.options = tuple(options)
        self._names = frozenset(opt.name for opt in self.options)
        self.has_voted = False
        self.state = WorkflowState.IDLE
        self.snapshot: TallySnapshot = compute([], self.options)
        self.last_seen = 0.0

    async def _call_store(self, op: str, call) -> StoreResult:
        try:
            result = await call
        except Exception as exc:
            raise StoreUnavailable(
                f"vote store {op}() raised", {"session": self.session_id, "error": exc}
            ) from exc
        if not result.success:
            raise StoreUnavailable(
                f"vote store {op}() reported failure", {"session": self.session_id}
            )
        return result

    async def refresh(self) -> TallySnapshot:
        """
        Re-read every record and recompute. On failure the previous snapshot
        stays in place and StoreUnavailable is raised.
        """
        result = await self._call_store("list", self.store.list())
        self.snapshot = compute(result.data or [], self.options)
        return self.snapshot

    async def request_vote(self, option_name: str) -> TallySnapshot:
        if option_name not in self._names:
            raise UnknownOption(
                f"{option_name!r} is not a votable option", {"session": self.session_id}
            )
        if self.state is WorkflowState.SUBMITTING:
            raise SubmissionInProgress(
                "a vote from this session is already being submitted",
                {"session": self.session_id},
            )
        if not can_vote(self.has_voted):
            logger.info("session %s rejected: already voted", self.session_id)
            raise AlreadyVoted("this session has already voted", {"session": self.session_id})

        # no await between the checks above and this line
        self.state = WorkflowState.SUBMITTING
        record = VoteRecord(option_name=option_name, submitted_at=datetime.now(timezone.utc))
        settled = False
        try:
            await self._call_store("create", self.store.create(record))
            settled = True
        except StoreUnavailable as exc:
            logger.warning("session %s vote for %s failed: %s", self.session_id, option_name, exc)
            raise
        finally:
            if not settled:
                self.state = WorkflowState.IDLE

        self.has_voted = True
        self.state = WorkflowState.SETTLED
        logger.info("session %s voted for %s", self.session_id, option_name)

        try:
            await self.refresh()
        except StoreUnavailable as exc:
            # the vote itself is in; keep the old snapshot until the next refresh
            logger.warning("session %s post-vote refresh failed: %s", self.session_id, exc)
        return self.snapshot


class SessionRegistry:
    """
    session_id -> VoteSession, for callers (the HTTP layer) that only see ids.

    Bounded two ways: sessions idle longer than idle_ttl seconds are dropped,
    and past max_sessions the least recently used one goes. A dropped id is
    treated like any unknown id, i.e. the client gets a fresh session.
    """

    def __init__(
        self,
        store: VoteStore,
        options: Sequence[Option] = OPTIONS,
        max_sessions: int = SESSION_MAX,
        idle_ttl: float = SESSION_IDLE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.options = tuple(options)
        self.max_sessions = max(1, max_sessions)
        self.idle_ttl = idle_ttl
        self._clock = clock
        # least recently used first
        self._sessions: "OrderedDict[str, VoteSession]" = OrderedDict()

    def _expired(self, session: VoteSession, now: float) -> bool:
        return now - session.last_seen > self.idle_ttl

    def _evict(self, now: float) -> None:
        while self._sessions:
            sid, oldest = next(iter(self._sessions.items()))
            if not self._expired(oldest, now) and len(self._sessions) < self.max_sessions:
                break
            del self._sessions[sid]
            logger.debug("evicted session %s", sid)

    def _new(self) -> VoteSession:
        now = self._clock()
        self._evict(now)
        session = VoteSession(self.store, self.options)
        session.last_seen = now
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: Optional[str]) -> Optional[VoteSession]:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        now = self._clock()
        if self._expired(session, now):
            del self._sessions[session_id]
            return None
        session.last_seen = now
        self._sessions.move_to_end(session_id)
        return session

    def get_or_create(self, session_id: Optional[str]) -> VoteSession:
        """
        Unknown or evicted ids get a brand new session with a fresh id;
        callers must hand the new id back to the client.
        """
        session = self.get(session_id)
        if session is None:
            session = self._new()
            logger.debug("started session %s", session.session_id)
        return session

    def restart(self, session_id: Optional[str]) -> VoteSession:
        """
        Drop the old session (if any) and start a fresh one that may vote again.
        """
        old = self._sessions.pop(session_id, None) if session_id else None
        session = self._new()
        if old is not None:
            # own copy: snapshot dicts are mutable even on a frozen model
            session.snapshot = old.snapshot.model_copy(deep=True)
        logger.info("restarted session %s -> %s", session_id, session.session_id)
        return session

    def __len__(self) -> int:
        return len(self._sessions)
