"""Translation API routes."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from flask import Blueprint, jsonify, request

from glossary_translator import config
from glossary_translator.logger import get_logger
from glossary_translator.api.client import fetch_usage
from glossary_translator.api.exceptions import ConfigurationError, TranslationError
from glossary_translator.session import run_session_sync
from glossary_translator.web.tasks import create_translation_job, get_job, cancel_job

translation_bp = Blueprint("translation", __name__)
logger = get_logger(__name__)


def error_response(e: TranslationError):
    """JSON body naming the failed step; 400 for configuration, 502 for the remote side."""
    status = 400 if isinstance(e, ConfigurationError) else 502
    return jsonify(e.to_dict()), status


def _parse_request() -> Dict[str, Any]:
    """
    Validate the JSON body of a translate request.

    Raises:
        ConfigurationError: On invalid fields or missing credentials
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}

    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        raise ConfigurationError("Field 'text' is required", code="text_missing", details={"field": "text"})

    back_translate: Optional[bool] = data.get("back_translate")
    if back_translate is not None and not isinstance(back_translate, bool):
        raise ConfigurationError(
            "Field 'back_translate' must be a boolean",
            code="invalid_field",
            details={"field": "back_translate"},
        )

    session_config = config.get_session_config().with_overrides(
        source_lang=data.get("source_lang") or None,
        target_lang=data.get("target_lang") or None,
    )
    return {"text": text, "back_translate": back_translate, "session_config": session_config}


@translation_bp.post("/translate")
def translate():
    """Run one translation session and return its result."""
    try:
        parsed = _parse_request()
        result = run_session_sync(
            parsed["text"],
            parsed["session_config"],
            back_translate=parsed["back_translate"],
        )
    except TranslationError as e:
        logger.warning("Translation request failed: %s", e)
        return error_response(e)

    return jsonify(result.to_dict())


@translation_bp.post("/translate/jobs")
def start_translation_job():
    """Start a background translation job."""
    try:
        parsed = _parse_request()
    except TranslationError as e:
        return error_response(e)

    job = create_translation_job(
        parsed["text"],
        parsed["session_config"],
        back_translate=parsed["back_translate"],
    )
    return jsonify({"job_id": job.job_id, "job": job.to_dict()}), 202


@translation_bp.get("/translate/jobs/<job_id>")
def get_translation_job(job_id: str):
    """Return status (and result, once finished) of a background job."""
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found or expired", "code": "job_not_found"}), 404
    return jsonify(job.to_dict())


@translation_bp.post("/translate/jobs/<job_id>/cancel")
def cancel_translation_job(job_id: str):
    """Cancel a pending or running job."""
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found or expired", "code": "job_not_found"}), 404

    if cancel_job(job_id):
        return jsonify({"status": "cancellation_requested", "job_id": job_id})
    return jsonify({"error": "Job already finished or being cancelled", "code": "job_cannot_cancel"}), 400


@translation_bp.get("/usage")
def get_usage():
    """Character usage of the configured DeepL account."""
    try:
        session_config = config.get_session_config()
        usage = asyncio.run(fetch_usage(session_config.credentials, timeout=session_config.timeout))
    except TranslationError as e:
        logger.warning("Usage check failed: %s", e)
        return error_response(e)
    return jsonify(usage.to_dict())
