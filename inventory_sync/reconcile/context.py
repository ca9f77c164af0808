"""
Per-run context threaded through the reconciler.

Holds the run identity and in-flight operation timings, and offers the
specialised log helpers used while processing a batch. One instance per run;
nothing here is global.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any, Dict, Optional

from inventory_sync.utils.logging import get_logger


@dataclass
class Operation:
    name: str
    started: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class RunContext:
    """Run identity, operation tracking and log helpers for one batch."""

    def __init__(
        self,
        platform: str,
        logger: Optional[logging.Logger] = None,
        run_id: Optional[str] = None,
    ) -> None:
        self.platform = platform
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.started_at = datetime.now(timezone.utc)
        self.logger = logger or get_logger("inventory_sync.run")
        self._operations: Dict[str, Operation] = {}

    @property
    def active_operations(self) -> Dict[str, Operation]:
        return dict(self._operations)

    def _extra(self, **details: Any) -> Dict[str, Any]:
        return {"run_id": self.run_id, "platform": self.platform, **details}

    # ========== OPERATION TRACKING ==========

    def start_operation(self, name: str, **metadata: Any) -> str:
        """Start timing an operation and return its id."""
        operation_id = f"{name}-{uuid.uuid4().hex[:9]}"
        self._operations[operation_id] = Operation(name=name, started=time.perf_counter(), metadata=metadata)
        self.logger.debug(
            f"Operation started: {name}",
            extra=self._extra(operation_id=operation_id, **metadata),
        )
        return operation_id

    def end_operation(self, operation_id: str, **result: Any) -> Optional[float]:
        """Finish an operation; returns its duration in milliseconds."""
        operation = self._operations.pop(operation_id, None)
        if operation is None:
            self.logger.warning("Unknown operation ended", extra=self._extra(operation_id=operation_id))
            return None

        duration_ms = (time.perf_counter() - operation.started) * 1000
        self.logger.debug(
            f"Operation completed: {operation.name}",
            extra=self._extra(
                operation_id=operation_id,
                duration_ms=round(duration_ms, 1),
                **operation.metadata,
                **result,
            ),
        )
        return duration_ms

    def fail_operation(self, operation_id: str, error: BaseException, **details: Any) -> Optional[float]:
        """Finish an operation that raised; returns its duration in milliseconds."""
        operation = self._operations.pop(operation_id, None)
        if operation is None:
            self.logger.error(
                f"Operation failed: {error}",
                extra=self._extra(operation_id=operation_id, error=str(error)),
            )
            return None

        duration_ms = (time.perf_counter() - operation.started) * 1000
        self.logger.error(
            f"Operation failed: {operation.name}",
            extra=self._extra(
                operation_id=operation_id,
                duration_ms=round(duration_ms, 1),
                error=str(error),
                error_type=type(error).__name__,
                **operation.metadata,
                **details,
            ),
        )
        return duration_ms

    # ========== LOG HELPERS ==========

    def file_event(self, path: str, action: str, **details: Any) -> None:
        self.logger.info(
            f"File {action}",
            extra=self._extra(report_file=PurePath(path).name, action=action, **details),
        )

    def sheet_operation(self, operation: str, table: Any, **details: Any) -> None:
        self.logger.info(
            f"Spreadsheet {operation}",
            extra=self._extra(operation=operation, table=str(table), **details),
        )

    def vm_operation(self, action: str, hostname: Optional[str], **details: Any) -> None:
        self.logger.info(
            f"VM {action}",
            extra=self._extra(vm_hostname=hostname, action=action, **details),
        )

    def batch_summary(self, total: int, succeeded: int, failed: int, duration_ms: float) -> None:
        success_rate = f"{succeeded / total * 100:.1f}%" if total else "0%"
        self.logger.info(
            "Batch operation completed",
            extra=self._extra(
                batch_size=total,
                success_count=succeeded,
                error_count=failed,
                duration_ms=round(duration_ms, 1),
                success_rate=success_rate,
            ),
        )
