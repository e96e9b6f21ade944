"""
Configuration for the Event Promoter engine.

Settings come from a ``config.yml`` file. The backend API token is never
stored there; it is read from a Docker secret file named by
``api.token_file``.

Usage:
    >>> from config import load_config
    >>> config = load_config()
    >>> api_url = config.get("api", {}).get("url")
"""
import logging
from pathlib import Path
from typing import Dict, Any, Optional

import yaml


logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yml"
DEFAULT_LOCALE = "en"
SUPPORTED_LOCALES = ("en", "de", "es")
DEFAULT_API_URL = "http://localhost:4000/api"
DEFAULT_FILES_BASE_URL = "http://localhost:4000"

LOCALE_DISPLAY_NAMES = {
    "en": "English",
    "de": "Deutsch",
    "es": "Español",
}


def find_config_file() -> Optional[Path]:
    """Locate config.yml in the working directory, its parents, or the project root."""
    cwd = Path.cwd()
    search_dirs = [cwd, *cwd.parents, Path(__file__).resolve().parents[2]]
    for directory in search_dirs:
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load engine settings from YAML.

    A missing or malformed file never aborts startup: the
    defaults of get_default_config() are returned instead and the problem
    is logged. The configured locale is normalized before returning.

    Args:
        config_path: Explicit file to read; searched for when omitted

    Returns:
        Configuration mapping

    Example:
        >>> config = load_config("/etc/promoter/config.yml")
        >>> config["api"]["timeout"]
        30
    """
    path = Path(config_path) if config_path else find_config_file()
    if path is None:
        logger.warning(f"{CONFIG_FILENAME} not found, using default configuration")
        return get_default_config()

    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {path}")
        return get_default_config()
    except yaml.YAMLError as e:
        logger.error(f"Cannot parse configuration file {path}: {e}")
        return get_default_config()

    if not isinstance(config, dict):
        logger.warning(f"Configuration root in {path} is not a mapping, using default configuration")
        return get_default_config()

    config["locale"] = get_locale_name(config)
    logger.info(f"Loaded configuration from {path}")
    return config


def get_default_config() -> Dict[str, Any]:
    """Settings used when no usable config.yml exists."""
    return {
        "locale": DEFAULT_LOCALE,
        "api": {
            "url": DEFAULT_API_URL,
            "timeout": 30,
            "max_workers": 8,
            "token_file": "/run/secrets/promoter_api_token"
        },
        "files": {
            "base_url": DEFAULT_FILES_BASE_URL
        },
        "editor": {
            "hide_auto_filled": True,
            "default_max_length": 1000
        }
    }


def _base_language(locale: str) -> str:
    return locale.strip().replace("_", "-").split("-")[0].lower()


def get_valid_locale(locale: Optional[str]) -> str:
    """Normalize a locale code to one of the supported locales.

    'de-DE' becomes 'de'; unknown or empty values become the default locale.

    Example:
        >>> get_valid_locale("es-MX")
        'es'
        >>> get_valid_locale("fr")
        'en'
    """
    if not locale or not isinstance(locale, str):
        return DEFAULT_LOCALE
    language = _base_language(locale)
    return language if language in SUPPORTED_LOCALES else DEFAULT_LOCALE


def get_locale_display_name(locale: Optional[str]) -> str:
    """Human-readable name of a locale, e.g. 'de-DE' -> 'Deutsch'."""
    return LOCALE_DISPLAY_NAMES[get_valid_locale(locale)]


def get_locale_name(config: Dict[str, Any]) -> str:
    """Return a validated locale from config, with English fallback."""
    locale = config.get("locale", DEFAULT_LOCALE)
    if not isinstance(locale, str) or not locale.strip():
        logger.warning(f"Invalid locale configuration {locale!r}; falling back to {DEFAULT_LOCALE}")
        return DEFAULT_LOCALE

    if _base_language(locale) not in SUPPORTED_LOCALES:
        logger.warning(f"Unsupported locale '{locale}'; falling back to {DEFAULT_LOCALE}")
        return DEFAULT_LOCALE
    return get_valid_locale(locale)


def read_secret_file(filepath: str) -> Optional[str]:
    """Return the stripped contents of a Docker secret, or None.

    A missing file is normal (no token configured) and only logged at
    debug level.

    Example:
        >>> token = read_secret_file("/run/secrets/promoter_api_token")
    """
    try:
        with open(filepath, "r") as f:
            return f.read().strip()
    except FileNotFoundError:
        logger.debug(f"Secret file not found: {filepath}")
        return None
    except OSError as e:
        logger.error(f"Cannot read secret file {filepath}: {e}")
        return None
