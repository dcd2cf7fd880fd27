"""Tests for the gated Riot API client and its typed decoders."""

import threading
from unittest.mock import MagicMock

import pytest
import requests

from errors import Cancelled, DecodeError, PlaytimeError, TransportError
from riot_client import (
    Account,
    MatchRef,
    RiotAPIClient,
    decode_account,
    decode_duration,
    decode_match_page,
)
from tests.fakes import FakeResponse


class TestDecoders:
    def test_decode_account(self):
        assert decode_account({"accountId": "abc123"}, name="Faker") == Account("abc123", "Faker")

    def test_decode_account_missing_id(self):
        with pytest.raises(DecodeError):
            decode_account({"id": "x"})

    def test_decode_account_reports_upstream_status(self):
        payload = {"status": {"message": "Data not found - summoner not found", "status_code": 404}}
        with pytest.raises(DecodeError, match="summoner not found"):
            decode_account(payload)

    def test_decode_match_page(self):
        page = decode_match_page({"matches": [{"gameId": 1}, {"gameId": 2, "champion": 7}]})
        assert page == [MatchRef(1), MatchRef(2)]

    def test_decode_match_page_empty(self):
        assert decode_match_page({"matches": []}) == []

    def test_decode_match_page_bad_entry(self):
        with pytest.raises(DecodeError):
            decode_match_page({"matches": [{"gameId": "1"}]})

    def test_decode_match_page_not_a_list(self):
        with pytest.raises(DecodeError):
            decode_match_page({"matches": None})

    def test_decode_duration(self):
        assert decode_duration({"gameDuration": 1800, "gameMode": "CLASSIC"}) == 1800

    @pytest.mark.parametrize("payload", [{}, {"gameDuration": -5}, {"gameDuration": 12.5}, [], None])
    def test_decode_duration_rejects(self, payload):
        with pytest.raises(DecodeError):
            decode_duration(payload)


class TestRiotAPIClient:
    def test_fetch_gates_on_limiter_and_sends_key(self):
        limiter = MagicMock()
        session = MagicMock()
        session.get.return_value = FakeResponse(content=b"{}")
        client = RiotAPIClient("RGAPI-key", "euw1", limiter, request_timeout=5.0, session=session)

        raw = client.fetch("https://euw1.api.riotgames.com/x", params={"beginIndex": 0})

        assert raw == b"{}"
        limiter.acquire.assert_called_once_with(None)
        session.get.assert_called_once_with(
            "https://euw1.api.riotgames.com/x",
            params={"beginIndex": 0, "api_key": "RGAPI-key"},
            timeout=5.0,
        )

    def test_fetch_does_not_inspect_status(self):
        limiter = MagicMock()
        session = MagicMock()
        session.get.return_value = FakeResponse(content=b'{"status": {}}', status_code=503)
        client = RiotAPIClient("k", "euw1", limiter, session=session)
        assert client.fetch("https://euw1.api.riotgames.com/x") == b'{"status": {}}'

    def test_connection_failure_is_transport_error(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        client = RiotAPIClient("k", "euw1", MagicMock(), session=session)
        with pytest.raises(TransportError) as info:
            client.fetch("https://euw1.api.riotgames.com/x")
        assert isinstance(info.value.__cause__, requests.exceptions.ConnectionError)

    def test_timeout_is_transport_error(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.Timeout("slow")
        client = RiotAPIClient("k", "euw1", MagicMock(), session=session)
        with pytest.raises(TransportError):
            client.fetch("https://euw1.api.riotgames.com/x")

    def test_invalid_json_is_decode_error(self):
        session = MagicMock()
        session.get.return_value = FakeResponse(content=b"<html>bad gateway</html>")
        client = RiotAPIClient("k", "euw1", MagicMock(), session=session)
        with pytest.raises(DecodeError):
            client.get_json("https://euw1.api.riotgames.com/x")

    def test_deeply_nested_json_is_decode_error(self):
        session = MagicMock()
        session.get.return_value = FakeResponse(content=b"[" * 100000 + b"]" * 100000)
        client = RiotAPIClient("k", "euw1", MagicMock(), session=session)
        with pytest.raises(DecodeError):
            client.get_json("https://euw1.api.riotgames.com/x")

    def test_cancelled_before_request(self):
        limiter = MagicMock()
        session = MagicMock()
        client = RiotAPIClient("k", "euw1", limiter, session=session)
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(PlaytimeError) as info:
            client.fetch("https://euw1.api.riotgames.com/x", cancel=cancel)
        assert isinstance(info.value, Cancelled)
        limiter.acquire.assert_not_called()
        session.get.assert_not_called()

    def test_endpoint_urls(self, make_client):
        client, session = make_client(lambda path, params: {"ok": True}, server="kr")
        client.summoner_by_name("Hide on bush")
        client.matchlist_by_account("abc123", 200)
        client.match(42)

        urls = [url for url, _ in session.calls]
        assert urls == [
            "https://kr.api.riotgames.com/lol/summoner/v4/summoners/by-name/Hide%20on%20bush",
            "https://kr.api.riotgames.com/lol/match/v4/matchlists/by-account/abc123",
            "https://kr.api.riotgames.com/lol/match/v4/matches/42",
        ]
        assert session.calls[1][1] == {"beginIndex": 200, "api_key": "RGAPI-test"}

    def test_every_call_takes_one_permit(self, make_client, limiter):
        client, _ = make_client(lambda path, params: {})
        before = limiter.short.remaining
        for game_id in range(5):
            client.match(game_id)
        assert limiter.short.remaining == before - 5
