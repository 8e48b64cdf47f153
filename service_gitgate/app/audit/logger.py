"""
Append-only audit trail of access decisions.
"""

import asyncio
import json
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..models import AuditAction, AuditOutcome, AuditRecord


class AuditLogger:
    """Records every terminal decision of the delivery pipeline.

    Records go to the ``gitgate.audit`` structured logger and, when a log
    file is configured, are appended to it as JSON lines. Persisting is best
    effort: failures are logged and counted but never raised.
    """

    def __init__(self, log_file: Optional[Union[str, Path]] = None, *, metrics: Optional[MetricsCollector] = None):
        self.log_file = Path(log_file) if log_file else None
        self.metrics = metrics
        self.logger = get_logger("gitgate.audit")
        # Held by the writer thread, so it is not tied to any event loop
        self._write_lock = threading.Lock()

        if self.log_file is not None:
            try:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                self.logger.error("Audit log directory unavailable", path=str(self.log_file), error=str(e))

    async def log(
        self,
        device_id: str,
        action: Union[AuditAction, str],
        resource: str,
        outcome: Union[AuditOutcome, str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            record = AuditRecord(
                device_id=device_id,
                action=AuditAction(action),
                resource=resource,
                outcome=AuditOutcome(outcome),
                metadata=dict(metadata) if metadata else None,
            )
            self.logger.info("audit", **record.to_dict())

            if self.log_file is not None:
                line = json.dumps(record.to_dict(), default=str) + "\n"
                await asyncio.to_thread(self._append, line)
        except Exception as e:
            self.logger.error("Failed to write audit record", device_id=device_id, resource=resource, error=str(e))
            if self.metrics:
                self.metrics.record_audit_failure()

    def _append(self, line: str) -> None:
        with self._write_lock, open(self.log_file, "a", encoding="utf-8") as f:
            f.write(line)
