import copy
import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv

from glossary_translator.logger import get_logger
from glossary_translator import language_codes as lc
from glossary_translator.api.exceptions import ConfigurationError
from glossary_translator.api.models import ApiPlan, Credentials

logger = get_logger(__name__)

# Get base directory (project root)
BASE_DIR = Path(__file__).parent.parent
CONFIG_DIR = BASE_DIR / "config"
CONFIG_FILE = CONFIG_DIR / "config.json"

API_KEY_PLACEHOLDER = "YOUR_API_KEY_HERE"

# Environment variables that override the config file
ENV_API_KEY = "DEEPL_AUTH_KEY"
ENV_API_PLAN = "DEEPL_API_PLAN"
ENV_CONFIG_PATH = "GLOSSARY_TRANSLATOR_CONFIG"

# Default configuration template
DEFAULT_CONFIG = {
    "deepl": {
        "api_key": API_KEY_PLACEHOLDER,
        "plan": "free",
        "timeout": 30,
    },
    "session": {
        "source_lang": "JA",
        "target_lang": "EN",
        "glossary_name": "Tmp",
        "glossary_file": "glossary.csv",
        "back_translate": True,
        "unique_glossary_name": True,
    },
    "log_mode": "off"
}


@dataclass(frozen=True)
class SessionConfig:
    """Validated settings for one translation session."""

    credentials: Credentials
    source_lang: str = "JA"
    target_lang: str = "EN"
    glossary_name: str = "Tmp"
    glossary_file: Path = Path("glossary.csv")
    back_translate: bool = True
    unique_glossary_name: bool = True
    timeout: float = 30.0

    def with_overrides(self, **overrides) -> "SessionConfig":
        """Return a copy with the non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "glossary_file" in values:
            values["glossary_file"] = Path(values["glossary_file"])
        for key in ("source_lang", "target_lang"):
            if key in values:
                values[key] = lc.normalize_code(values[key])
        if "glossary_name" in values and not str(values["glossary_name"]).strip():
            raise ConfigurationError(
                "Glossary name must not be empty",
                code="config_invalid",
                details={"field": "glossary_name"},
            )
        updated = replace(self, **values)
        validate_languages(updated.source_lang, updated.target_lang)
        return updated


def get_config_path() -> Path:
    """Config file location, overridable via GLOSSARY_TRANSLATOR_CONFIG."""
    env_path = os.getenv(ENV_CONFIG_PATH)
    return Path(env_path) if env_path else CONFIG_FILE


def ensure_config_directory(path: Optional[Path] = None):
    """Ensure the config directory exists."""
    config_dir = (path or get_config_path()).parent
    config_dir.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Config directory ensured: {config_dir}")


def create_default_config(path: Optional[Path] = None):
    """Create the default config.json file."""
    path = path or get_config_path()
    ensure_config_directory(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(DEFAULT_CONFIG, f, indent=4, ensure_ascii=False)
    logger.info(f"Created default config file: {path}")


def initialize_app(write_defaults: bool = False):
    """
    Initialize the application.

    Loads a .env file from the working directory and, when asked, writes the
    default configuration if no config file exists yet.
    """
    load_dotenv()

    if write_defaults and not get_config_path().exists():
        logger.info("No config file found, writing defaults")
        create_default_config()

    # Loggers created before the config was readable still run with 'off'
    from glossary_translator.logger import refresh_log_mode
    refresh_log_mode()


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None, apply_env: bool = True) -> Dict[str, Any]:
    """
    Load the configuration file merged over DEFAULT_CONFIG.

    Args:
        path: Config file; defaults to get_config_path()
        apply_env: Apply DEEPL_AUTH_KEY / DEEPL_API_PLAN overrides

    Raises:
        ConfigurationError: If the file exists but is not valid JSON.
    """
    path = path or get_config_path()
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                stored = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse config file {path}: {e}")
            raise ConfigurationError(
                f"Config file {path} is not valid JSON: {e}",
                code="config_corrupt",
                details={"path": str(path)},
            )
        if not isinstance(stored, dict):
            raise ConfigurationError(
                f"Config file {path} must contain a JSON object",
                code="config_corrupt",
                details={"path": str(path)},
            )
        config = _merge(config, stored)
        for section in ("deepl", "session"):
            if not isinstance(config[section], dict):
                raise ConfigurationError(
                    f"'{section}' in config file {path} must be an object",
                    code="config_invalid",
                    details={"path": str(path), "field": section},
                )
        logger.debug(f"Configuration loaded from {path}")
    else:
        logger.debug(f"No config file at {path}, using defaults")

    if apply_env:
        api_key = os.getenv(ENV_API_KEY)
        if api_key:
            config["deepl"]["api_key"] = api_key
        plan = os.getenv(ENV_API_PLAN)
        if plan:
            config["deepl"]["plan"] = plan

    return config


def save_config(config: Dict[str, Any], path: Optional[Path] = None):
    """Save the configuration to the config file."""
    path = path or get_config_path()
    ensure_config_directory(path)
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=4, ensure_ascii=False)
        logger.info(f"Configuration saved to {path}")
    except OSError as e:
        logger.error(f"Failed to save config to {path}: {e}")
        raise


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate that the DeepL and session configuration is usable.

    Raises:
        ConfigurationError: If configuration is invalid or missing, with code and details.
    """
    deepl_config = config.get("deepl")
    if not isinstance(deepl_config, dict):
        raise ConfigurationError(
            "DeepL configuration not found",
            code="config_missing",
            details={"missing_field": "deepl"},
        )

    api_key = deepl_config.get("api_key", "")
    if not isinstance(api_key, str):
        raise ConfigurationError(
            "DeepL API key must be a string",
            code="config_invalid",
            details={"field": "api_key"},
        )
    if not api_key or api_key == API_KEY_PLACEHOLDER:
        raise ConfigurationError(
            f"DeepL API key not configured. Set {ENV_API_KEY} or deepl.api_key in the config file.",
            code="api_key_missing",
            details={"missing_field": "api_key"},
        )

    try:
        plan = ApiPlan.parse(deepl_config.get("plan", "free"))
    except ValueError as e:
        raise ConfigurationError(str(e), code="plan_invalid", details={"field": "plan"})

    # Free keys end in ':fx'; a mismatch sends every call to the wrong host
    if plan is ApiPlan.PRO and api_key.endswith(":fx"):
        logger.warning("API key looks like a DeepL Free key but plan is 'pro'")

    timeout = deepl_config.get("timeout", 30)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigurationError(
            f"Invalid timeout: {timeout!r}",
            code="timeout_invalid",
            details={"field": "timeout"},
        )

    session_config = config.get("session", {})
    if not isinstance(session_config, dict):
        raise ConfigurationError(
            "Session configuration must be an object",
            code="config_invalid",
            details={"field": "session"},
        )
    validate_languages(session_config.get("source_lang", ""), session_config.get("target_lang", ""))

    if not str(session_config.get("glossary_name", "")).strip():
        raise ConfigurationError(
            "Glossary name must not be empty",
            code="config_invalid",
            details={"field": "glossary_name"},
        )

    if not isinstance(session_config.get("glossary_file", "glossary.csv"), str):
        raise ConfigurationError(
            "Glossary file must be a path string",
            code="config_invalid",
            details={"field": "glossary_file"},
        )


def validate_languages(source_lang: Any, target_lang: Any) -> None:
    """Raise ConfigurationError unless DeepL can translate source_lang -> target_lang."""
    if not lc.is_source_language(source_lang):
        raise ConfigurationError(
            f"Unsupported source language: {source_lang!r}",
            code="language_invalid",
            details={"field": "source_lang", "value": source_lang},
        )
    if not lc.is_target_language(target_lang):
        raise ConfigurationError(
            f"Unsupported target language: {target_lang!r}",
            code="language_invalid",
            details={"field": "target_lang", "value": target_lang},
        )
    if lc.languages_match(source_lang, target_lang):
        raise ConfigurationError(
            f"Source and target language are the same: {source_lang} -> {target_lang}",
            code="language_invalid",
            details={"field": "target_lang", "value": target_lang},
        )


def get_session_config(config: Optional[Dict[str, Any]] = None) -> SessionConfig:
    """Validate a configuration dict (loaded if not given) and build a SessionConfig."""
    if config is None:
        config = load_config()
    validate_config(config)

    deepl_config = config["deepl"]
    session_config = config.get("session", {})

    return SessionConfig(
        credentials=Credentials(
            api_key=deepl_config["api_key"],
            plan=ApiPlan.parse(deepl_config.get("plan", "free")),
        ),
        source_lang=lc.normalize_code(session_config["source_lang"]),
        target_lang=lc.normalize_code(session_config["target_lang"]),
        glossary_name=str(session_config["glossary_name"]).strip(),
        glossary_file=Path(session_config.get("glossary_file", "glossary.csv")),
        back_translate=bool(session_config.get("back_translate", True)),
        unique_glossary_name=bool(session_config.get("unique_glossary_name", True)),
        timeout=float(deepl_config.get("timeout", 30)),
    )
