"""High-level orchestration for fetching weekly fares and producing the prices report.

Usage patterns:

1. Single run, credentials from the environment / .env:
   python -m farewatch.pipeline

2. Keep running and refresh the report every day:
   python -m farewatch.pipeline --schedule-at 06:00
"""
import argparse
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Sequence

import requests
import schedule
from tqdm import tqdm

from farewatch.config import API_HOSTS, SECONDARY, ConfigError, Settings
from farewatch.logging_config import setup_logging
from farewatch.models import Offer, Report, WeekRecord
from farewatch.processing import cascade
from farewatch.processing.carriers import CarrierTable, load_carriers
from farewatch.processing.combos import ComboBuilder
from farewatch.provider.auth import AuthenticationFailure, authenticate
from farewatch.provider.retry import Sleeper
from farewatch.provider.search import SearchClient
from farewatch.report import write_report

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_weekday_after(today: date, weekday: int) -> date:
    """Next occurrence of weekday strictly after today (a week later if today matches)."""
    return today + timedelta(days=(weekday - today.weekday() - 1) % 7 + 1)


def target_weeks(today: date, count: int, weekday: int = 3, return_offset_days: int = 3) -> list[tuple[date, date]]:
    first = next_weekday_after(today, weekday)
    weeks = []
    for i in range(count):
        outbound = first + timedelta(weeks=i)
        weeks.append((outbound, outbound + timedelta(days=return_offset_days)))
    return weeks


@dataclass(slots=True)
class RunSummary:
    api_source: str = ''
    weeks: int = 0
    combos: int = 0
    empty_weeks: int = 0
    empty_searches: int = 0

    @property
    def synthetic_prices(self) -> bool:
        return self.api_source == SECONDARY

    def log(self) -> None:
        logging.info(f"API: {self.api_source} | {self.weeks} weeks | {self.combos} combos")
        if self.empty_searches:
            logging.warning(f"{self.empty_searches} searches returned no offers")
        if self.empty_weeks:
            logging.warning(f"{self.empty_weeks} empty weeks")
        if self.synthetic_prices:
            logging.warning("Using secondary (test) API: prices are synthetic, not real market prices!")


class WeekPipeline:
    """Runs search -> cascade -> combos for each target week, one week at a time.

    Each direction has its own SearchClient (and session); a client is only ever used
    by one search at a time.
    """

    def __init__(self, settings: Settings, outbound_client: SearchClient, return_client: SearchClient,
                 token: str, carriers: CarrierTable, sleep: Sleeper = time.sleep, clock: Clock = _utc_now):
        self.settings = settings
        self.outbound_client = outbound_client
        self.return_client = return_client
        self.token = token
        self.builder = ComboBuilder(carriers)
        self.sleep = sleep
        self.clock = clock

    def _fetch_both(self, executor: ThreadPoolExecutor, outbound_day: date,
                    return_day: date) -> tuple[list[Offer], list[Offer]]:
        s = self.settings
        outbound = executor.submit(self.outbound_client.search, self.token, s.origin, s.destination, outbound_day)
        back = executor.submit(self.return_client.search, self.token, s.destination, s.origin, return_day)
        return outbound.result(), back.result()

    @staticmethod
    def _reduce(label: str, raw: Sequence[Offer], min_hour: int) -> list[Offer]:
        stage, pool = cascade.reduce_with_stage(raw, min_hour)
        if stage is cascade.CascadeStage.RELAXED:
            logging.info(f"  Relaxed {label} to >={min_hour - cascade.RELAXED_HOURS}h")
        elif stage is cascade.CascadeStage.LAST_RESORT:
            logging.info(f"  Using cheapest {label} flights (no options after {min_hour - cascade.RELAXED_HOURS}h)")
        return pool

    def run_week(self, executor: ThreadPoolExecutor, outbound_day: date, return_day: date,
                 summary: RunSummary) -> WeekRecord:
        s = self.settings
        logging.info(f"--- {outbound_day} -> {return_day} ---")
        outbound_raw, return_raw = self._fetch_both(executor, outbound_day, return_day)
        for label, day, raw in (("outbound", outbound_day, outbound_raw), ("return", return_day, return_raw)):
            if not raw:
                summary.empty_searches += 1
                logging.warning(f"  No {label} offers for {day}")
        logging.info(f"  Raw: outbound={len(outbound_raw)} return={len(return_raw)}")

        outbound_pool = self._reduce("outbound", outbound_raw, s.min_hour_outbound)
        return_pool = self._reduce("return", return_raw, s.min_hour_return)
        logging.info(f"  Final: outbound={len(outbound_pool)} return={len(return_pool)}")

        combos = self.builder.build(outbound_pool, return_pool)
        for combo in combos:
            tag = "connection" if combo.has_connection else "nonstop"
            logging.info(f"  {combo.carrier_label}: {combo.outbound_price} + {combo.return_price}"
                         f" = {combo.total_price} ({tag})")
        if not combos:
            logging.warning("  No combos found!")
        return WeekRecord(outbound_day, return_day, self.clock(), combos)

    def run(self, weeks: Sequence[tuple[date, date]], summary: RunSummary) -> list[WeekRecord]:
        records: list[WeekRecord] = []
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="fare-search") as executor:
            for i, (outbound_day, return_day) in enumerate(tqdm(weeks, desc="Fetching weeks", leave=False)):
                if i:
                    self.sleep(self.settings.week_pacing_seconds)
                record = self.run_week(executor, outbound_day, return_day, summary)
                records.append(record)
                summary.weeks += 1
                summary.combos += len(record.combos)
                summary.empty_weeks += int(record.is_empty)
        return records


def run_pipeline(
        settings: Settings,
        session_factory: Callable[[], requests.Session] | None = None,
        today: date | None = None,
        sleep: Sleeper | None = None,
        clock: Clock = _utc_now,
) -> tuple[Report, RunSummary]:
    """Authenticate once, process every target week and return the fresh report.

    session_factory builds the HTTP sessions (one for authentication, one per search
    direction); defaults to requests.Session.
    Raises AuthenticationFailure when neither API environment accepts the credentials.
    """
    settings.validate()
    sleep = sleep or time.sleep
    session_factory = session_factory or requests.Session
    carriers = load_carriers(settings.carriers_file)
    with ExitStack() as sessions:
        def _session() -> requests.Session:
            session = session_factory()
            sessions.callback(session.close)
            return session

        logging.info(f"Route: {settings.origin} <-> {settings.destination} | Weeks: {settings.weeks_ahead}")
        token, source = authenticate(settings, _session())
        outbound_client, return_client = (
            SearchClient(
                _session(),
                API_HOSTS[source],
                currency=settings.currency,
                max_results=settings.max_results,
                retries=settings.search_retries,
                sleep=sleep,
            )
            for _ in range(2)
        )
        summary = RunSummary(api_source=source)
        weeks = target_weeks(today or date.today(), settings.weeks_ahead,
                             settings.outbound_weekday, settings.return_offset_days)
        pipeline = WeekPipeline(settings, outbound_client, return_client, token, carriers, sleep=sleep, clock=clock)
        records = pipeline.run(weeks, summary)
    report = Report(
        generated_at=clock(),
        api_source=source,
        synthetic_prices=summary.synthetic_prices,
        config=settings.route_config(),
        weeks=records,
    )
    return report, summary


def generate_report(settings: Settings, output: Path | None = None) -> Path:
    report, summary = run_pipeline(settings)
    path = write_report(report, output or settings.output_json)
    summary.log()
    return path


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Weekly round-trip fare tracker")
    p.add_argument("--output", type=Path, default=None, help="Report path (default: $OUTPUT_JSON or data/prices.json)")
    p.add_argument("--log-level", default=None, help="Overrides $LOG_LEVEL")
    p.add_argument(
        "--schedule-at",
        metavar="HH:MM",
        default=None,
        help="Run the pipeline every day at the given time (e.g. 06:00). "
             "Without this flag the pipeline runs once and exits.",
    )
    return p


def main_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        settings.validate()
    except ConfigError as e:
        setup_logging(args.log_level or "INFO")
        logging.error(f"Invalid configuration: {e}")
        return 2
    setup_logging(args.log_level or settings.log_level)

    def _run() -> bool:
        try:
            generate_report(settings, args.output)
        except AuthenticationFailure as e:
            for env, reason in e.causes.items():
                logging.error(f"{env} environment: {reason}")
            logging.error("Authentication failed, no report written")
            return False
        return True

    if args.schedule_at:
        logging.info(f"Scheduler started – pipeline will run every day at {args.schedule_at}")
        _run()
        schedule.every().day.at(args.schedule_at).do(_run)
        while True:
            try:
                schedule.run_pending()
            except Exception:  # noqa: BLE001
                logging.exception("Scheduler error:")
                time.sleep(60 * 60)
            time.sleep(1)
    return 0 if _run() else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main_cli())
