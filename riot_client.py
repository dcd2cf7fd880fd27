"""
Thin Riot API client used by the playtime pipeline.

Every request goes through the shared DualWindowLimiter before it is sent.
The client does not retry and does not look at status codes: Riot error
responses come back as a JSON envelope that simply fails the typed decode.
"""

import json
from dataclasses import dataclass
from urllib.parse import quote

import requests

from errors import Cancelled, DecodeError, TransportError
from rate_limit import DualWindowLimiter


DEFAULT_SERVER = "euw1"
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class Account:
    account_id: str
    name: str = ""


@dataclass(frozen=True)
class MatchRef:
    game_id: int


def _upstream_message(payload):
    if isinstance(payload, dict):
        status = payload.get("status")
        if isinstance(status, dict) and "message" in status:
            code = status.get("status_code")
            return f" (upstream said: {status['message']}, status {code})"
    return ""


def decode_account(payload, name="") -> Account:
    account_id = payload.get("accountId") if isinstance(payload, dict) else None
    if not isinstance(account_id, str) or not account_id:
        raise DecodeError(f"summoner payload has no accountId{_upstream_message(payload)}")
    return Account(account_id=account_id, name=name)


def decode_match_page(payload) -> list[MatchRef]:
    entries = payload.get("matches") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        raise DecodeError(f"matchlist payload has no matches list{_upstream_message(payload)}")
    page = []
    for entry in entries:
        game_id = entry.get("gameId") if isinstance(entry, dict) else None
        if not isinstance(game_id, int) or isinstance(game_id, bool):
            raise DecodeError(f"match entry without integer gameId: {entry!r}")
        page.append(MatchRef(game_id=game_id))
    return page


def decode_duration(payload) -> int:
    duration = payload.get("gameDuration") if isinstance(payload, dict) else None
    if not isinstance(duration, int) or isinstance(duration, bool) or duration < 0:
        raise DecodeError(f"match payload has no gameDuration{_upstream_message(payload)}")
    return duration


class RiotAPIClient:
    """Riot API wrapper that gates every request on a shared limiter."""

    def __init__(
        self,
        api_key: str,
        server: str,
        limiter: DualWindowLimiter,
        request_timeout=DEFAULT_REQUEST_TIMEOUT,
        session=None,
    ):
        self.server = server
        self._api_key = api_key
        self._limiter = limiter
        self._timeout = request_timeout
        self._session = session if session is not None else requests.Session()

    @property
    def platform_base(self) -> str:
        return f"https://{self.server}.api.riotgames.com"

    @property
    def label(self) -> str:
        return self.server

    def fetch(self, url, params=None, cancel=None) -> bytes:
        if cancel is not None and cancel.is_set():
            raise Cancelled(f"cancelled before requesting {url}")
        self._limiter.acquire(cancel)
        query = dict(params or {})
        query["api_key"] = self._api_key
        try:
            response = self._session.get(url, params=query, timeout=self._timeout)
        except requests.exceptions.RequestException as exc:
            raise TransportError(f"request to {url} failed: {exc}") from exc
        return response.content

    def get_json(self, url, params=None, cancel=None):
        raw = self.fetch(url, params=params, cancel=cancel)
        try:
            return json.loads(raw)
        except (ValueError, RecursionError) as exc:
            raise DecodeError(f"invalid JSON from {url}: {exc}") from exc

    def summoner_by_name(self, name, cancel=None):
        url = f"{self.platform_base}/lol/summoner/v4/summoners/by-name/{quote(name)}"
        return self.get_json(url, cancel=cancel)

    def matchlist_by_account(self, account_id, begin_index=0, cancel=None):
        url = f"{self.platform_base}/lol/match/v4/matchlists/by-account/{account_id}"
        return self.get_json(url, params={"beginIndex": begin_index}, cancel=cancel)

    def match(self, game_id, cancel=None):
        url = f"{self.platform_base}/lol/match/v4/matches/{game_id}"
        return self.get_json(url, cancel=cancel)
