"""Post-mutation snapshot refresh with exponential backoff retry logic"""

import logging
import time
from typing import Callable, ContextManager, Optional

from sqlalchemy.orm import Session

from spurz_engine.config import settings
from spurz_engine.infrastructure.observability.logging import log_refresh_failure
from spurz_engine.infrastructure.observability.metrics import refresh_failure_counter
from spurz_engine.services.snapshot import SnapshotService

SessionScope = Callable[[], ContextManager[Session]]


class SnapshotRefresher:
    """
    Background task that regenerates a snapshot after a ledger, card or profile mutation.

    Retry strategy:
    - Exponential backoff: base, 2*base, 4*base ... (base * 2^(attempt-1))
    - Each attempt runs in a fresh session scope
    - Final failure is logged and counted, never raised: the triggering
      mutation has already been committed and answered
    """

    def __init__(
        self,
        session_scope: SessionScope,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session_scope = session_scope
        self.max_retries = max(1, max_retries if max_retries is not None else settings.refresh_max_retries)
        self.backoff_base = backoff_base if backoff_base is not None else settings.refresh_backoff_base
        self.sleep = sleep

    def run(self, owner_id: str, trigger: str = "mutation") -> bool:
        """Returns True once a snapshot was stored, False after the last failed attempt"""
        attempt = 0
        while attempt < self.max_retries:
            try:
                with self.session_scope() as db:
                    SnapshotService(db).generate_snapshot(owner_id)
                return True

            except Exception as e:
                attempt += 1
                logging.warning(
                    f"Snapshot refresh attempt {attempt} failed: {e}",
                    extra={"user_id": owner_id, "trigger": trigger},
                )

                if attempt >= self.max_retries:
                    refresh_failure_counter.inc()
                    log_refresh_failure(owner_id, trigger, attempt, e)
                    return False

                backoff = self.backoff_base * (2 ** (attempt - 1))
                self.sleep(backoff)

        return False
