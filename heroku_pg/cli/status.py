"""Health check command support for the heroku-pg CLI."""

from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Callable, Iterable, List, Sequence

import psycopg

from heroku_pg.application.exceptions import ConnectError, HerokuPostgresError
from heroku_pg.infrastructure.client_factory import get_client

DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass
class CheckResult:
    """Represents a single check outcome."""

    name: str
    ok: bool
    detail: str


def _format_duration(start: float) -> str:
    elapsed = perf_counter() - start
    if elapsed < 0.001:
        return "<1ms"
    return f"{int(elapsed * 1000)}ms"


def _format_exception(exc: Exception) -> str:
    message = str(exc).strip()
    if not message:
        message = exc.__class__.__name__
    return message.splitlines()[0]


def check_database(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> CheckResult:
    """Connect to ``url``, run ``SELECT 1`` and report how long it took."""
    start = perf_counter()
    try:
        with get_client(url, connect_timeout=timeout) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
    except ConnectError as exc:
        return CheckResult(name="DB", ok=False, detail=f"{exc.kind}: {_format_exception(exc)}")
    except (HerokuPostgresError, psycopg.Error) as exc:
        return CheckResult(name="DB", ok=False, detail=_format_exception(exc))
    return CheckResult(name="DB", ok=True, detail=_format_duration(start))


def run_status_checks(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    checks: Sequence[Callable[[], CheckResult]] | None = None,
) -> List[CheckResult]:
    """Executes the checks, allowing override for testing."""

    if checks is None:
        checks = (lambda: check_database(url, timeout),)

    return [check() for check in checks]


def render_results(results: Iterable[CheckResult]) -> str:
    lines = []
    for result in results:
        status = "OK" if result.ok else "FAIL"
        lines.append(f"{result.name:<8} {status:<4} {result.detail}")
    return "\n".join(lines)
