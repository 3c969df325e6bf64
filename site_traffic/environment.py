"""
Where a visit's context comes from: the clock, the page, the browser.

The recorder only ever talks to an Environment, so it runs the same behind
a Flask request as in a test with a fixed clock.
"""

import time
from dataclasses import dataclass
from typing import Callable, Protocol


def system_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class Environment(Protocol):
    url: str
    referrer: str
    user_agent: str
    language: str
    screen_size: str

    def now_ms(self) -> int:
        ...


@dataclass(frozen=True)
class FixedEnvironment:
    """An environment with every value given up front."""

    now: int
    url: str = "/"
    referrer: str = ""
    user_agent: str = ""
    language: str = ""
    screen_size: str = ""

    def now_ms(self) -> int:
        return self.now


class RequestEnvironment:
    """
    Visit context sent along with a beacon request.

    The page adds its own details as query params:
      p     page path (falls back to "/")
      q     page query string
      r     document.referrer
      ss    viewport, "WxH"
      lang  navigator.language (falls back to Accept-Language)
    """

    def __init__(self, req, clock: Callable[[], int] = system_clock_ms):
        self.req = req
        self.clock = clock

    def now_ms(self) -> int:
        return self.clock()

    @property
    def path(self) -> str:
        return self.req.args.get("p", "/")[:500] or "/"

    @property
    def url(self) -> str:
        query = self.req.args.get("q", "")[:500]
        if query and not query.startswith("?"):
            query = "?" + query
        return self.path + query

    @property
    def referrer(self) -> str:
        return self.req.args.get("r", "")[:500]

    @property
    def user_agent(self) -> str:
        return self.req.headers.get("User-Agent", "")[:500]

    @property
    def language(self) -> str:
        lang = self.req.args.get("lang")
        if lang:
            return lang[:35]
        accept = self.req.headers.get("Accept-Language", "")
        return accept.split(",")[0].split(";")[0].strip()[:35]

    @property
    def screen_size(self) -> str:
        return self.req.args.get("ss", "")[:20]
