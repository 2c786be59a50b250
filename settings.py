from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional

import httpx
from dotenv import load_dotenv

from normalized_catalogs import CatalogLoader, FileCatalogLoader, HttpCatalogLoader, SampleCatalogLoader

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s]: %(message)s"

Getter = Callable[[str], str]


class SettingsError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    catalog_dir: Optional[Path] = None
    catalog_url: Optional[str] = None
    catalog_timeout_s: float = 10.0
    default_product_id: str = "shirt-001"
    log_level: str = "INFO"
    currency: str = "USD"


def _env_getter(env: Mapping[str, str]) -> Getter:
    def _get(key: str) -> str:
        return str(env.get(key, "") or "").strip()

    return _get


def settings_from(get: Getter) -> Settings:
    """
    Build settings from a key lookup (environment, Streamlit secrets, or both).
    """
    defaults = Settings()

    timeout_raw = get("CONFIGURATOR_CATALOG_TIMEOUT_S")
    timeout_s = defaults.catalog_timeout_s
    if timeout_raw:
        try:
            timeout_s = float(timeout_raw)
        except ValueError as e:
            raise SettingsError(f"CONFIGURATOR_CATALOG_TIMEOUT_S must be a number (got {timeout_raw!r})") from e
        if timeout_s <= 0:
            raise SettingsError("CONFIGURATOR_CATALOG_TIMEOUT_S must be positive")

    log_level = (get("CONFIGURATOR_LOG_LEVEL") or defaults.log_level).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise SettingsError(f"Unknown CONFIGURATOR_LOG_LEVEL: {log_level!r}")

    catalog_dir = get("CONFIGURATOR_CATALOG_DIR")
    return Settings(
        catalog_dir=Path(catalog_dir).expanduser() if catalog_dir else None,
        catalog_url=get("CONFIGURATOR_CATALOG_URL") or None,
        catalog_timeout_s=timeout_s,
        default_product_id=get("CONFIGURATOR_DEFAULT_PRODUCT") or defaults.default_product_id,
        log_level=log_level,
        currency=(get("CONFIGURATOR_CURRENCY") or defaults.currency).upper(),
    )


def load_settings(env: Optional[Mapping[str, str]] = None, *, dotenv_path: Optional[Path] = None) -> Settings:
    """
    Read settings from the process environment after loading `.env` (existing variables win).

    Passing `env` skips `.env` loading and reads only that mapping.
    """
    if env is None:
        load_dotenv(dotenv_path=dotenv_path or Path.cwd() / ".env")
        env = os.environ
    return settings_from(_env_getter(env))


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(format=LOG_FORMAT, level=level.upper())
    logging.getLogger().setLevel(level.upper())


def catalog_loader_from_settings(settings: Settings, *, client: Optional[httpx.Client] = None) -> CatalogLoader:
    """
    HTTP when a catalog URL is configured, else files when a catalog directory is, else built-ins.
    """
    if settings.catalog_url:
        return HttpCatalogLoader(settings.catalog_url, timeout_s=settings.catalog_timeout_s, client=client)
    if settings.catalog_dir is not None:
        return FileCatalogLoader(settings.catalog_dir)
    return SampleCatalogLoader()
