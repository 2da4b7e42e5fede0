# Overview: Retry helpers shared by services that write under contention.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked") and
    StaleDataError. The session is rolled back before each retry, so `func`
    must re-read everything it needs.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


def call_with_backoff(func, *, attempts: int, retry_on: tuple, backoff_base: float = 0.5):
    """
    Call a non-DB function (HTTP upload, mail) retrying on `retry_on` errors.

    The last exception is re-raised once attempts are exhausted.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except retry_on:
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
