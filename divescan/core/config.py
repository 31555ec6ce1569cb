"""User settings loaded from ``$XDG_CONFIG_HOME/divescan/config.yaml``."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from divescan.core.catalog_loader import load_yaml_document, validate_document
from divescan.core.errors import ConfigError

LOGGER = logging.getLogger(__name__)

DEFAULT_SCAN_TIMEOUT_S = 30.0
USB_KEY_ID_PAIR = "id_pair"
USB_KEY_SERIAL = "serial"


@dataclass(frozen=True)
class Settings:
    scan_timeout: float | None = DEFAULT_SCAN_TIMEOUT_S
    isolate_listeners: bool = True
    usb_device_key: str = USB_KEY_ID_PAIR
    log_level: str = "WARNING"


def config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "divescan/config.yaml"


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ConfigError(f"{context} must be boolean true/false")


def load_settings(path: Path | None = None) -> Settings:
    """Load settings, falling back to defaults when no config file exists."""
    path = path or config_path()
    if not path.is_file():
        LOGGER.debug("No config file at %s; using defaults", path)
        return Settings()

    doc = load_yaml_document(path, error_cls=ConfigError, load_error_cls=ConfigError)
    if isinstance(doc.get("log_level"), str):
        doc["log_level"] = doc["log_level"].strip().upper()
    validate_document(doc, "config.schema.json", path, error_cls=ConfigError)

    defaults = Settings()
    scan_timeout = doc.get("scan_timeout", defaults.scan_timeout)
    return Settings(
        scan_timeout=float(scan_timeout) if scan_timeout else None,
        isolate_listeners=_normalize_bool(
            doc.get("isolate_listeners", defaults.isolate_listeners),
            context=f"{path}: isolate_listeners",
        ),
        usb_device_key=doc.get("usb_device_key", defaults.usb_device_key),
        log_level=doc.get("log_level", defaults.log_level),
    )
