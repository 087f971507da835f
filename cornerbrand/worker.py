"""Background thread that runs one stamping batch for the desktop host."""
from __future__ import annotations

import logging
import os
import uuid
from typing import Dict, List, Optional

from PySide6.QtCore import QThread, Signal

from cornerbrand.batch import (
    ProgressUpdate,
    SettingsPayload,
    stamp_batch_preview,
    stamp_batch_with_progress,
)
from cornerbrand.cancellation import CancellationRegistry, default_registry
from cornerbrand.constants import CANCELLED_MESSAGE
from cornerbrand.results import StampFileResult, failure_results

logger = logging.getLogger(__name__)


# =====================================================================
# WORKER THREAD
# =====================================================================
class StampBatchThread(QThread):
    """
    Runs ``stamp_batch_with_progress`` off the UI thread.

    Signals cross back to the UI thread as queued connections, so emitting
    never waits for the receiver.
    """

    progress_update = Signal(object)  # ProgressUpdate
    log_message = Signal(str)
    finished_processing = Signal(bool, object)  # cancelled, [StampFileResult]

    def __init__(
        self,
        paths: List[str],
        settings: SettingsPayload,
        logo_path: str,
        output_dir: Optional[str] = None,
        request_id: Optional[str] = None,
        size_percent_by_path: Optional[Dict[str, float]] = None,
        preview: bool = False,
        registry: Optional[CancellationRegistry] = None,
    ):
        super().__init__()
        self.paths = list(paths)
        self.settings = settings
        self.logo_path = logo_path
        self.output_dir = output_dir
        self.request_id = request_id or uuid.uuid4().hex
        self.size_percent_by_path = dict(size_percent_by_path or {})
        self.preview = preview
        self.registry = registry if registry is not None else default_registry
        self.results: List[StampFileResult] = []

    def cancel(self) -> bool:
        """Ask the batch to stop before its next file."""
        return self.registry.cancel(self.request_id)

    def run(self) -> None:
        with self.registry.begin(self.request_id):
            try:
                results = self._run_batch()
            except Exception as e:
                logger.exception("Batch %s crashed", self.request_id)
                msg = f"Batch processing stopped unexpectedly: {e}"
                self.log_message.emit(msg)
                results = failure_results(self.paths, msg)

        self.results = results
        cancelled = any(result.error == CANCELLED_MESSAGE for result in results)
        self.finished_processing.emit(cancelled, results)

    def _run_batch(self) -> List[StampFileResult]:
        if self.preview:
            return stamp_batch_preview(
                self.paths,
                self.settings,
                self.logo_path,
                self.request_id,
                on_progress=self._on_progress,
                size_percent_by_path=self.size_percent_by_path,
                registry=self.registry,
            )

        return stamp_batch_with_progress(
            self.paths,
            self.settings,
            self.logo_path,
            output_base_dir=self.output_dir or None,
            request_id=self.request_id,
            on_progress=self._on_progress,
            size_percent_by_path=self.size_percent_by_path,
            registry=self.registry,
        )

    def _on_progress(self, update: ProgressUpdate) -> None:
        self.progress_update.emit(update)
        if not update.ok:
            self.log_message.emit(f"Failed {os.path.basename(update.input_path)}")
