#!/usr/bin/env python3
"""
How many hours has a summoner spent in League of Legends matches?

Resolves a summoner name to an account id, pages through the complete match
history of that account, fetches every match's duration and sums them up.
All calls share one dual-window rate limiter sized for a Riot dev key.
"""

import argparse
import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from dotenv import load_dotenv
from tqdm import tqdm

from errors import (
    AggregationError,
    Cancelled,
    DecodeError,
    PaginationError,
    PlaytimeError,
    ResolutionError,
    TransportError,
)
from rate_limit import DEFAULT_RATE_LIMITS, DualWindowLimiter
from riot_client import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SERVER,
    Account,
    MatchRef,
    RiotAPIClient,
    decode_account,
    decode_duration,
    decode_match_page,
)


PAGE_SIZE = 100
PROGRESS_EVERY = 19
SECONDS_PER_HOUR = 60 * 60

_STAGE_FAILURES = (TransportError, DecodeError, Cancelled)


@dataclass(frozen=True)
class AggregateResult:
    match_count: int
    total_seconds: int

    @property
    def total_hours(self) -> int:
        return self.total_seconds // SECONDS_PER_HOUR


class PlaytimeSettings:
    def __init__(
        self,
        summoner_name="",
        server=DEFAULT_SERVER,
        api_key="",
        verbose=False,
        request_timeout=DEFAULT_REQUEST_TIMEOUT,
        workers=1,
        rate_limits=DEFAULT_RATE_LIMITS,
    ):
        self.summoner_name = summoner_name
        self.server = server
        self.api_key = api_key
        self.verbose = verbose
        self.request_timeout = request_timeout
        self.workers = workers
        self.rate_limits = rate_limits


class _AnySet:
    """Cancel signal that fires when any of its events is set."""

    def __init__(self, *events):
        self._events = events

    def is_set(self) -> bool:
        return any(event.is_set() for event in self._events)


def resolve_account(client: RiotAPIClient, name: str, cancel=None) -> Account:
    try:
        payload = client.summoner_by_name(name, cancel=cancel)
        return decode_account(payload, name=name)
    except _STAGE_FAILURES as exc:
        raise ResolutionError(exc) from exc


def list_all_matches(client: RiotAPIClient, account: Account, cancel=None) -> list[MatchRef]:
    """Collect every match of *account*, one page of PAGE_SIZE at a time.

    A page shorter than PAGE_SIZE marks the end of the history. The matchlist
    carries no "has more" flag, so a history whose size is an exact multiple
    of PAGE_SIZE costs one extra, empty trailing request.
    """
    matches = []
    begin_index = 0
    try:
        while True:
            payload = client.matchlist_by_account(account.account_id, begin_index, cancel=cancel)
            page = decode_match_page(payload)
            matches.extend(page)
            if len(page) < PAGE_SIZE:
                break
            begin_index += PAGE_SIZE
    except _STAGE_FAILURES as exc:
        raise PaginationError(exc) from exc
    return matches


def fetch_duration(client: RiotAPIClient, match: MatchRef, cancel=None) -> int:
    return decode_duration(client.match(match.game_id, cancel=cancel))


def _report_progress(label, processed, total, total_seconds):
    tqdm.write(
        f"[{label}] So far {processed} matches have been retrieved, accounting for "
        f"{total_seconds // SECONDS_PER_HOUR} hours of playtime. "
        f"{total - processed} matches left to query"
    )


def aggregate_durations(
    client: RiotAPIClient,
    history: list[MatchRef],
    *,
    verbose=False,
    workers=1,
    cancel=None,
) -> AggregateResult:
    """Sum the durations of all matches in *history*.

    Hours are derived from the final total only, so integer rounding loses
    less than one hour overall. The first failing match aborts the whole sum.
    """
    total = len(history)
    total_seconds = 0
    bar = tqdm(total=total, desc=f"[{client.label}] durations", unit="match", disable=not verbose)

    def observe(processed):
        bar.update(1)
        if verbose and (processed % PROGRESS_EVERY == 0 or processed == total):
            _report_progress(client.label, processed, total, total_seconds)

    try:
        if workers <= 1:
            for idx, match in enumerate(history, start=1):
                total_seconds += fetch_duration(client, match, cancel)
                observe(idx)
        else:
            stop = threading.Event()
            signal = _AnySet(stop, cancel) if cancel is not None else stop
            executor = ThreadPoolExecutor(max_workers=workers)
            try:
                futures = [executor.submit(fetch_duration, client, match, signal) for match in history]
                for idx, future in enumerate(as_completed(futures), start=1):
                    total_seconds += future.result()
                    observe(idx)
            except BaseException:
                # Release workers still blocked on the limiter before waiting on them.
                stop.set()
                executor.shutdown(wait=True, cancel_futures=True)
                raise
            executor.shutdown(wait=True)
    except _STAGE_FAILURES as exc:
        raise AggregationError(exc) from exc
    finally:
        bar.close()

    return AggregateResult(match_count=total, total_seconds=total_seconds)


def run_pipeline(client: RiotAPIClient, name: str, *, verbose=False, workers=1, cancel=None) -> AggregateResult:
    account = resolve_account(client, name, cancel=cancel)
    if verbose:
        print(f"[{client.label}] Successfully received Account ID: {account.account_id}")

    history = list_all_matches(client, account, cancel=cancel)
    if verbose:
        print(f"[{client.label}] Retrieved {len(history)} matches")

    return aggregate_durations(client, history, verbose=verbose, workers=workers, cancel=cancel)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sum up the hours a summoner has spent in matches.")
    parser.add_argument(
        "--server",
        type=str,
        default=DEFAULT_SERVER,
        help="Server region to query (default: %(default)s).",
    )
    parser.add_argument(
        "--summoner-name",
        type=str,
        default="",
        help="Summoner whose match history should be summed up.",
    )
    parser.add_argument(
        "--api-key",
        type=str,
        default=os.getenv("RIOT_API_KEY", ""),
        help="Riot API key (default: RIOT_API_KEY from the environment or .env).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Print progress while querying (default: False).",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="HTTP request timeout in seconds (default: %(default)s).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Fetch match durations with this many threads (default: %(default)s).",
    )
    args = parser.parse_args(argv)
    if not args.api_key:
        parser.error("Please supply an API key with --api-key or RIOT_API_KEY.")
    if not args.summoner_name:
        parser.error("Please specify a summoner name with --summoner-name.")
    if args.workers < 1:
        parser.error("--workers must be at least 1.")
    if args.request_timeout <= 0:
        parser.error("--request-timeout must be positive.")
    return args


def settings_from_args(args: argparse.Namespace) -> PlaytimeSettings:
    return PlaytimeSettings(
        summoner_name=args.summoner_name,
        server=args.server,
        api_key=args.api_key,
        verbose=args.verbose,
        request_timeout=args.request_timeout,
        workers=args.workers,
    )


def main(argv=None) -> int:
    load_dotenv(override=True)
    settings = settings_from_args(parse_args(argv))

    print(f"Querying summoner '{settings.summoner_name}' in server region '{settings.server}'")

    cancel = threading.Event()
    limiter = DualWindowLimiter.from_limits(settings.rate_limits)
    client = RiotAPIClient(
        api_key=settings.api_key,
        server=settings.server,
        limiter=limiter,
        request_timeout=settings.request_timeout,
    )
    try:
        result = run_pipeline(
            client,
            settings.summoner_name,
            verbose=settings.verbose,
            workers=settings.workers,
            cancel=cancel,
        )
    except PlaytimeError as exc:
        print(f"Error {exc.stage}: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        cancel.set()
        print("Interrupted.", file=sys.stderr)
        return 130
    finally:
        limiter.close()

    print(
        f"You have played {result.match_count} matches, "
        f"which cost you {result.total_hours} hours of your life."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
