"""Restore Guard - Keeps mapping passes from overwriting an in-flight restore"""
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..config.settings import settings
from ..domain.enums import TransitionOrigin
from ..utils.idgen import generate_restore_token_id
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RestoreToken:
    token_id: str
    started_at: float
    expires_at: float


class RestoreGuard:
    """
    Holds at most one restore token per session

    While a token is active, mapping writes from transitions the restore
    itself triggered are dropped. A user-initiated transition supersedes
    the token, and a token whose completion never arrives expires after
    restore_guard_seconds.
    """

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._timeout = settings.restore_guard_seconds if timeout_seconds is None else timeout_seconds
        self._clock = clock
        self._token: Optional[RestoreToken] = None

    @property
    def active_token(self) -> Optional[RestoreToken]:
        if self._token is not None and self._clock() >= self._token.expires_at:
            logger.warning(f"Restore token {self._token.token_id} expired without completion")
            self._token = None
        return self._token

    def is_active(self) -> bool:
        return self.active_token is not None

    def begin(self) -> RestoreToken:
        """Start a restore, replacing any earlier token"""
        now = self._clock()
        self._token = RestoreToken(
            token_id=generate_restore_token_id(),
            started_at=now,
            expires_at=now + self._timeout,
        )
        return self._token

    def complete(self, token: RestoreToken) -> bool:
        """Finish a restore; a stale or superseded token is ignored"""
        if self._token is None or self._token.token_id != token.token_id:
            return False
        self._token = None
        return True

    def allows_mapping(self, origin: TransitionOrigin) -> bool:
        """
        Decide whether a transition may write mapped values

        A USER transition always may and cancels the active token; a
        RESTORE transition may only when no restore is in flight.
        """
        token = self.active_token
        if token is None:
            return True
        if origin == TransitionOrigin.USER:
            logger.info(f"Restore token {token.token_id} superseded by user transition")
            self._token = None
            return True
        return False
