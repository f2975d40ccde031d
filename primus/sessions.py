"""Login sessions for the web interface, keyed by the guest's address."""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

log = logging.getLogger(__name__)

Clock = Callable[[], float]


def md5_hex(text: str) -> str:
    """Return the lower-case hexadecimal MD5 digest of a UTF-8 string."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


@dataclass
class WebSession:
    """A logged-in guest, remembered by address and time of last activity."""

    guest_address: str
    clock: Clock = field(default=time.time, repr=False)
    last_touch: int = field(init=False)

    def __post_init__(self) -> None:
        self.last_touch = int(self.clock())

    def touch(self) -> None:
        """Mark the session as used right now."""
        self.last_touch = int(self.clock())

    def life_time(self) -> int:
        """Seconds elapsed since the session was last touched."""
        return int(self.clock()) - self.last_touch


class SessionManager:
    """Grants sessions to guests who know the password and expires idle ones."""

    def __init__(self, password_md5: str, keep_alive: int, clock: Clock = time.time) -> None:
        self.password_md5 = password_md5.lower()
        self.keep_alive = keep_alive
        self.clock = clock
        self.sessions: list[WebSession] = []

    def login(self, guest_address: str, password: str) -> bool:
        """Open a session for the guest if the password matches."""
        if md5_hex(password) != self.password_md5:
            log.warning("[WWW] Forbid access for %s", guest_address)
            return False
        log.info("[WWW] Permitted login for %s", guest_address)
        self.sessions.append(WebSession(guest_address, self.clock))
        return True

    def permitted(self, guest_address: str) -> bool:
        """Tell whether the guest holds a live session, refreshing it if so.

        The first session found for the address decides; an expired one is
        dropped and access is refused.
        """
        for session in self.sessions:
            if session.guest_address != guest_address:
                continue
            if session.life_time() > self.keep_alive:
                log.info("[WWW] Session for %s has expired", guest_address)
                self.sessions.remove(session)
                return False
            log.debug("[WWW] Found session for %s", guest_address)
            session.touch()
            return True
        return False