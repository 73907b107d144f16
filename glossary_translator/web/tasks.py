"""
Background translation jobs for the web interface.

Each job runs one translation session on its own thread and event loop.
Cancelling a job cancels its asyncio task; the session still deletes a
glossary it already created.
"""

from __future__ import annotations

import asyncio
import threading
import time
import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Tuple

from glossary_translator.logger import get_logger
from glossary_translator.config import SessionConfig
from glossary_translator.api.exceptions import TranslationError
from glossary_translator.session import run_session

logger = get_logger(__name__)


@dataclass
class JobState:
    """In-memory representation of an asynchronous job."""

    job_id: str
    text: str
    source_lang: str
    target_lang: str
    back_translate: Optional[bool] = None
    cancel_requested: bool = False
    state: str = "pending"  # pending|running|completed|failed|cancelled
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    error_step: Optional[str] = None
    last_update: float = field(default_factory=time.time)

    def request_cancel(self):
        """Mark this job as requested for cancellation."""
        self.cancel_requested = True
        self.last_update = time.time()

    @property
    def finished(self) -> bool:
        return self.state in ("completed", "failed", "cancelled")

    def to_dict(self) -> Dict[str, Any]:
        # Worker threads update jobs under the same lock
        with _jobs_lock:
            return asdict(self)


_jobs: Dict[str, JobState] = {}
# job_id -> (event loop, session task) while the job is running
_runners: Dict[str, Tuple[asyncio.AbstractEventLoop, asyncio.Task]] = {}
_jobs_lock = threading.Lock()
_JOB_RETENTION_SECONDS = 600  # Retain job info for 10 minutes after completion


def create_translation_job(
    text: str,
    session_config: SessionConfig,
    back_translate: Optional[bool] = None,
) -> JobState:
    """
    Create and launch a background translation job.

    Returns:
        JobState for the new job (already registered and running in background).
    """
    job_id = uuid.uuid4().hex
    job_state = JobState(
        job_id=job_id,
        text=text,
        source_lang=session_config.source_lang,
        target_lang=session_config.target_lang,
        back_translate=back_translate,
    )

    with _jobs_lock:
        _cleanup_jobs_locked()
        _jobs[job_id] = job_state

    thread = threading.Thread(
        target=_run_translation_job,
        args=(job_state, session_config),
        name=f"translation-job-{job_id}",
        daemon=True,
    )
    thread.start()
    logger.info(
        "Translation job %s started (%s -> %s, back_translate=%s)",
        job_id,
        job_state.source_lang,
        job_state.target_lang,
        back_translate,
    )
    return job_state


def get_job(job_id: str) -> Optional[JobState]:
    """Fetch a job by ID (if still retained)."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job and job.finished_at and (time.time() - job.finished_at) > _JOB_RETENTION_SECONDS:
            # Expired; remove
            _jobs.pop(job_id, None)
            return None
        return job


def cancel_job(job_id: str) -> bool:
    """
    Request cancellation of a pending or running job.

    Only the first request counts; the running session is cancelled once
    and then left to finish deleting its glossary.

    Returns:
        True if job was found and cancellation requested, False otherwise.
    """
    with _jobs_lock:
        job = _jobs.get(job_id)
        if not job or job.finished or job.cancel_requested:
            return False
        job.request_cancel()
        runner = _runners.get(job_id)
        if runner:
            loop, task = runner
            loop.call_soon_threadsafe(task.cancel)
        logger.info("Cancellation requested for job %s", job_id)
        return True


def _update_job(job: JobState, **fields: Any):
    """Apply field changes to a job under the registry lock."""
    with _jobs_lock:
        for key, value in fields.items():
            setattr(job, key, value)
        job.last_update = time.time()


def _run_translation_job(job: JobState, session_config: SessionConfig):
    """Worker function executed in a background thread."""
    _update_job(job, state="running", started_at=time.time())

    outcome: Dict[str, Any] = {}
    loop = asyncio.new_event_loop()
    try:
        task = loop.create_task(run_session(job.text, session_config, back_translate=job.back_translate))
        with _jobs_lock:
            _runners[job.job_id] = (loop, task)
            if job.cancel_requested:
                task.cancel()

        session_result = loop.run_until_complete(task)

        outcome = {"state": "completed", "result": session_result.to_dict()}
        logger.info("Translation job %s finished (warnings=%s)", job.job_id, len(session_result.warnings))
    except asyncio.CancelledError:
        outcome = {"state": "cancelled"}
        logger.info("Translation job %s cancelled", job.job_id)
    except TranslationError as exc:
        outcome = {"state": "failed", "error": str(exc), "error_code": exc.code, "error_step": exc.step}
        logger.error("✗ Translation job %s failed: %s", job.job_id, exc)
    except Exception as exc:
        outcome = {"state": "failed", "error": f"{type(exc).__name__}: {exc}"}
        logger.exception("✗ Translation job %s failed: %s", job.job_id, outcome["error"])
    finally:
        with _jobs_lock:
            _runners.pop(job.job_id, None)
        loop.close()
        outcome.setdefault("state", "failed")
        _update_job(job, finished_at=time.time(), **outcome)


def _cleanup_jobs_locked():
    """Remove completed jobs that exceeded retention period (call with lock held)."""
    now = time.time()
    expired = [
        job_id
        for job_id, job in _jobs.items()
        if job.finished_at and (now - job.finished_at) > _JOB_RETENTION_SECONDS
    ]
    for job_id in expired:
        _jobs.pop(job_id, None)
