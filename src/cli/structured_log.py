"""
Structured JSON event logger for batch runs.

Emits one JSON object per line to stderr so a wrapper script or log
aggregator can follow what was cancelled or placed without scraping the
human-readable output.

Optional webhook: when configured, failure events (item_failed, error,
batch_aborted) are POSTed to the URL.
"""

from __future__ import annotations

import json
import logging
import sys
import urllib.request
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("zerodha.events")

# Events an operator must hear about even when nobody watches stderr.
ALERT_EVENTS = frozenset({"item_failed", "batch_aborted", "error"})

WEBHOOK_TIMEOUT_SEC = 5


class StructuredEventLogger:
    """One logger per command run; every record carries the command name."""

    def __init__(
        self,
        command: str,
        *,
        enabled: bool = True,
        webhook_url: str = "",
        stream: Any = None,
    ) -> None:
        self.command = command
        self.enabled = enabled
        self.webhook_url = webhook_url.strip()
        self.stream = stream or sys.stderr

    def _emit(self, event: str, **fields: Any) -> dict:
        """Write one batch event and return it.

        Every record has ``ts`` (UTC ISO-8601), ``event`` and ``command``.
        Item events add the order id or instrument (``order_id``, ``symbol``,
        ``exchange``, ``quantity`` or ``item``/``reason``); batch events add
        the counts (``items``, ``succeeded``, ``failed``, ``skipped``).
        Alert events are also posted to the webhook, if one is set.
        """
        record = {"ts": datetime.now(timezone.utc).isoformat(), "event": event, "command": self.command}
        record.update(fields)
        if self.enabled:
            print(json.dumps(record), file=self.stream, flush=True)
        if self.webhook_url and event in ALERT_EVENTS:
            self._alert(record)
        return record

    def _alert(self, record: dict) -> None:
        try:
            req = urllib.request.Request(
                self.webhook_url,
                data=json.dumps(record).encode("utf-8"),
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            urllib.request.urlopen(req, timeout=WEBHOOK_TIMEOUT_SEC)
        except (OSError, ValueError) as exc:
            # A dead webhook must not abort a half-finished batch.
            logger.warning("Alert webhook %s failed for %s: %s", self.webhook_url, record["event"], exc)

    def batch_start(self, items: int, dry_run: bool = False) -> dict:
        return self._emit("batch_start", items=items, dry_run=dry_run)

    def order_cancelled(self, order_id: str, symbol: str) -> dict:
        return self._emit("order_cancelled", order_id=order_id, symbol=symbol)

    def exit_order_placed(
        self,
        symbol: str,
        exchange: str,
        quantity: int,
        order_id: str | None,
    ) -> dict:
        return self._emit(
            "exit_order_placed",
            symbol=symbol,
            exchange=exchange,
            quantity=quantity,
            order_id=order_id,
        )

    def item_failed(self, item: str, reason: str) -> dict:
        return self._emit("item_failed", item=item, reason=reason)

    def batch_aborted(self, skipped: int) -> dict:
        return self._emit("batch_aborted", skipped=skipped)

    def batch_complete(self, succeeded: int, failed: int, skipped: int) -> dict:
        return self._emit(
            "batch_complete",
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
        )

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)
