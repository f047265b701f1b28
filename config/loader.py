# config/loader.py
from __future__ import annotations
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

REPO = Path(__file__).resolve().parents[1]


def load_config(config_path: Path | None = None) -> Dict[str, Any]:
    """
    Load config.toml from repo root by default.
    """
    if config_path is None:
        config_path = REPO / "config.toml"

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with config_path.open("rb") as f:
        return tomllib.load(f)


@dataclass(frozen=True)
class Settings:
    home_currency: str = "SGD"
    currency_symbol: str = "$"
    catalog_path: Path = REPO / "data" / "sg_cards.yaml"
    db_path: Path = REPO / "data" / "cardwise.sqlite"
    keywords_path: Optional[Path] = None
    log_level: str = "INFO"


def _resolve(base: Path, value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    p = Path(value).expanduser()
    return p if p.is_absolute() else (base / p)


def load_settings(config_path: Path | None = None) -> Settings:
    """
    Typed view over config.toml. Missing file or keys fall back to defaults;
    relative paths resolve against the config file's directory.
    """
    path = config_path or (REPO / "config.toml")
    try:
        cfg = load_config(path)
    except FileNotFoundError:
        return Settings()

    base = path.resolve().parent
    app = cfg.get("app", {})
    paths = cfg.get("paths", {})
    defaults = Settings()
    return Settings(
        home_currency=app.get("home_currency", defaults.home_currency),
        currency_symbol=app.get("currency_symbol", defaults.currency_symbol),
        catalog_path=_resolve(base, paths.get("catalog")) or defaults.catalog_path,
        db_path=_resolve(base, paths.get("db")) or defaults.db_path,
        keywords_path=_resolve(base, paths.get("keywords")),
        log_level=cfg.get("logging", {}).get("level", defaults.log_level),
    )
