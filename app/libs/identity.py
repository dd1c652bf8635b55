"""
Per-request client identity.

Every attempt gets a fresh desktop user agent and a synthetic anonymous cookie
pair so upstream fingerprinting cannot fold proxied traffic into one client.
Nothing is cached between calls.
"""

import random
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from fake_useragent import UserAgent

USER_ID_SPACE = 10**12

UserAgentProvider = Callable[[], str]


@dataclass(frozen=True)
class Identity:
    user_agent: str
    cookies: dict[str, str] = field(default_factory=dict)

    def cookie_header(self) -> str:
        return "; ".join(f"{k}={v}" for k, v in self.cookies.items())


def desktop_user_agent_provider() -> UserAgentProvider:
    ua = UserAgent(platforms="desktop")
    return lambda: ua.random


class IdentityGenerator:
    """
    Stateless generator of randomized client identities.

    Args:
        user_agent_provider: Callable returning a user agent string per call
        rng: Random source, swap for a seeded ``random.Random`` in tests
        clock: Returns unix time in seconds
    """

    def __init__(
        self,
        user_agent_provider: UserAgentProvider | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._user_agent = user_agent_provider or desktop_user_agent_provider()
        self._rng = rng or random.SystemRandom()
        self._clock = clock

    def user_agent(self) -> str:
        return self._user_agent()

    def pseudo_user_id(self) -> str:
        # x**4 skews toward small ids, like real account numbers
        return str(int(self._rng.random() ** 4 * USER_ID_SPACE))

    def checksum_token(self) -> str:
        return f"{self._rng.getrandbits(64):016x}"

    def anonymous(self) -> Identity:
        """Identity for the main API pipeline."""
        return Identity(
            user_agent=self.user_agent(),
            cookies={
                "DedeUserID": self.pseudo_user_id(),
                "DedeUserID__ckMd5": self.checksum_token(),
            },
        )

    def visitor(self) -> Identity:
        """Identity for the cover image host: a browser id and its first-seen time."""
        buvid = str(uuid.UUID(int=self._rng.getrandbits(128))).upper()
        return Identity(
            user_agent=self.user_agent(),
            cookies={
                "buvid3": f"{buvid}infoc",
                "b_nut": str(int(self._clock())),
            },
        )
