"""Settings and glossary file API routes."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict

from flask import Blueprint, jsonify, request

import glossary_translator.config as config
from glossary_translator import language_codes as lc
from glossary_translator.api.exceptions import ConfigurationError
from glossary_translator.api.models import ApiPlan
from glossary_translator.glossary import parse_glossary_csv, read_glossary_text, save_glossary_text
from glossary_translator.logger import get_logger, LOG_FILE, LOG_MODES, refresh_log_mode

settings_bp = Blueprint("settings", __name__)
logger = get_logger(__name__)

API_KEY_MASK = "********"
SESSION_KEYS = ("source_lang", "target_lang", "glossary_name", "glossary_file", "back_translate", "unique_glossary_name")
DEEPL_KEYS = ("api_key", "plan", "timeout")


def mask_config(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of the config with the API key hidden."""
    masked = copy.deepcopy(config_dict)
    api_key = masked.get("deepl", {}).get("api_key", "")
    if api_key and api_key != config.API_KEY_PLACEHOLDER:
        masked["deepl"]["api_key"] = API_KEY_MASK
    return masked


@settings_bp.get("/")
def get_settings():
    """Return the stored configuration (API key masked) and the language tables."""
    current_config = config.load_config(apply_env=False)
    return jsonify({
        "config": mask_config(current_config),
        "meta": {
            "plans": [p.value for p in ApiPlan],
            "log_modes": list(LOG_MODES),
            "source_languages": lc.get_source_languages(),
            "target_languages": lc.get_target_languages(),
        },
    })


@settings_bp.put("/")
def update_settings():
    """Update the stored configuration."""
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get("config"), dict):
        return jsonify({"error": "Request body must contain a 'config' object"}), 400

    new_config = data["config"]
    validation_error = validate_settings(new_config)
    if validation_error:
        return jsonify({"error": validation_error}), 400

    current_config = config.load_config(apply_env=False)

    for key in DEEPL_KEYS:
        if key in new_config.get("deepl", {}):
            value = new_config["deepl"][key]
            # The masked key from GET means "unchanged"
            if key == "api_key" and value == API_KEY_MASK:
                continue
            current_config["deepl"][key] = value

    for key in SESSION_KEYS:
        if key in new_config.get("session", {}):
            current_config["session"][key] = new_config["session"][key]

    if "log_mode" in new_config:
        current_config["log_mode"] = new_config["log_mode"]

    session = current_config["session"]
    try:
        config.validate_languages(session.get("source_lang"), session.get("target_lang"))
    except ConfigurationError as e:
        return jsonify(e.to_dict()), 400

    config.save_config(current_config)

    # New log mode takes effect for all existing loggers
    refresh_log_mode()

    logger.info("Settings updated successfully")
    return jsonify({"message": "Settings updated successfully", "config": mask_config(current_config)})


def validate_settings(config_dict: Dict[str, Any]) -> str | None:
    """Validate configuration structure and return error message if invalid."""
    deepl_config = config_dict.get("deepl", {})
    session_config = config_dict.get("session", {})
    if not isinstance(deepl_config, dict) or not isinstance(session_config, dict):
        return "'deepl' and 'session' must be objects"

    if "api_key" in deepl_config and not isinstance(deepl_config["api_key"], str):
        return "api_key must be a string"

    if "plan" in deepl_config:
        try:
            ApiPlan.parse(deepl_config["plan"])
        except ValueError as e:
            return str(e)

    if "timeout" in deepl_config:
        timeout = deepl_config["timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            return "timeout must be a positive number"

    if "glossary_name" in session_config:
        name = session_config["glossary_name"]
        if not isinstance(name, str) or not name.strip():
            return "glossary_name must be a non-empty string"

    for key in ("back_translate", "unique_glossary_name"):
        if key in session_config and not isinstance(session_config[key], bool):
            return f"{key} must be a boolean"

    if "log_mode" in config_dict and config_dict["log_mode"] not in LOG_MODES:
        return f"log_mode must be one of: {', '.join(LOG_MODES)}"

    return None


def _glossary_path() -> Path:
    return Path(config.load_config(apply_env=False)["session"].get("glossary_file", "glossary.csv"))


@settings_bp.get("/glossary")
def get_glossary():
    """Return the raw glossary file and what it parses to."""
    path = _glossary_path()
    if not path.exists():
        return jsonify({"path": str(path), "text": "", "entry_count": 0, "skipped": [], "exists": False})

    try:
        text = read_glossary_text(path)
    except ConfigurationError as e:
        return jsonify(e.to_dict()), 400

    entries = parse_glossary_csv(text)
    return jsonify({
        "path": str(path),
        "text": text,
        "entry_count": entries.entry_count,
        "skipped": [{"line": line, "reason": reason} for line, reason in entries.skipped],
        "exists": True,
    })


@settings_bp.put("/glossary")
def update_glossary():
    """Replace the glossary file with the posted CSV text."""
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str):
        return jsonify({"error": "Field 'text' must be a string"}), 400

    path = _glossary_path()
    try:
        entries = save_glossary_text(path, text)
    except OSError as e:
        logger.error(f"Failed to save glossary {path}: {e}")
        return jsonify({"error": f"Could not write glossary file: {e}"}), 500

    return jsonify({
        "path": str(path),
        "entry_count": entries.entry_count,
        "skipped": [{"line": line, "reason": reason} for line, reason in entries.skipped],
    })


@settings_bp.delete("/logs")
def clear_logs():
    """Delete all log files to free up disk space."""
    log_dir = Path(LOG_FILE).parent
    deleted_count = 0
    if log_dir.exists():
        for log_path in log_dir.glob("*.log"):
            log_path.unlink()
            deleted_count += 1

    if deleted_count > 0:
        logger.info("Deleted %s log file(s)", deleted_count)
        return jsonify({"message": f"Successfully deleted {deleted_count} log file(s)"})
    return jsonify({"message": "No log files found to delete"})
