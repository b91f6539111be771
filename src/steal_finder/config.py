from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml


DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; StealFinder/1.0)"
DEFAULT_CONFIG_FILES = ("config.yaml", "config.json")


class ConfigError(ValueError):
    """Raised when configuration is invalid."""


@dataclass(frozen=True, slots=True)
class WatchDefinition:
    name: str
    url: str
    item_selector: str
    link_selector: str | None = None
    title_selector: str | None = None
    price_selector: str | None = None
    max_price: float | None = None
    expected_resale_value: float | None = None
    min_profit: float | None = None


@dataclass(slots=True)
class DiscordSettings:
    token_env_var: str = "DISCORD_TOKEN"
    channel_env_var: str = "CHANNEL_ID"


@dataclass(slots=True)
class PollingSettings:
    interval_seconds: int = 60


@dataclass(slots=True)
class PostingSettings:
    notify_pause_seconds: float = 1.0
    dry_run: bool = False


@dataclass(slots=True)
class HttpSettings:
    timeout_seconds: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(slots=True)
class StorageSettings:
    type: str = "json"
    path: str = "seen.json"


@dataclass(slots=True)
class AppConfig:
    watches: list[WatchDefinition]
    discord: DiscordSettings = field(default_factory=DiscordSettings)
    polling: PollingSettings = field(default_factory=PollingSettings)
    posting: PostingSettings = field(default_factory=PostingSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    log_level: str = "INFO"


@dataclass(slots=True)
class RuntimeSettings:
    token: str
    channel_id: str
    poll_interval_seconds: int


_WATCH_FIELD_ALIASES = {
    "itemSelector": "item_selector",
    "titleSelector": "title_selector",
    "priceSelector": "price_selector",
    "linkSelector": "link_selector",
    "maxPrice": "max_price",
    "expectedResaleValue": "expected_resale_value",
    "minProfit": "min_profit",
}

_STORAGE_TYPES = {"json", "sqlite"}


def _as_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value

    if isinstance(value, int) and value in {0, 1}:
        return bool(value)

    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off"}:
            return False

    raise ConfigError(f"{field_name} must be a boolean")


def _as_int(value: Any, *, field_name: str, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer")

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc

    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _as_float(value: Any, *, field_name: str, minimum: float | None = None) -> float:
    # Quoted numbers are rejected.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{field_name} must be a number")

    parsed = float(value)
    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _as_optional_float(value: Any, *, field_name: str) -> float | None:
    if value is None:
        return None
    return _as_float(value, field_name=field_name)


def _as_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    value = value or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{field_name} must be a mapping")
    return value


def _resolve_relative_path(config_path: Path, raw_path: str) -> str:
    candidate = Path(raw_path).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((config_path.parent / candidate).resolve())


def parse_watch(raw: Any, *, index: int) -> WatchDefinition:
    if not isinstance(raw, dict):
        raise ConfigError(f"Watch entry #{index} must be a mapping")

    values = {_WATCH_FIELD_ALIASES.get(key, key): value for key, value in raw.items()}

    url = str(values.get("url") or "").strip()
    item_selector = str(values.get("item_selector") or "").strip()
    if not url or not item_selector:
        raise ConfigError(f"Watch entry #{index} missing one of: url, item_selector")

    name = str(values.get("name") or "").strip() or url
    prefix = f"watches[{index}]"

    return WatchDefinition(
        name=name,
        url=url,
        item_selector=item_selector,
        link_selector=_as_optional_text(values.get("link_selector")),
        title_selector=_as_optional_text(values.get("title_selector")),
        price_selector=_as_optional_text(values.get("price_selector")),
        max_price=_as_optional_float(values.get("max_price"), field_name=f"{prefix}.max_price"),
        expected_resale_value=_as_optional_float(
            values.get("expected_resale_value"),
            field_name=f"{prefix}.expected_resale_value",
        ),
        min_profit=_as_optional_float(values.get("min_profit"), field_name=f"{prefix}.min_profit"),
    )


def load_config(path: str | Path) -> AppConfig:
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            parsed = yaml.safe_load(handle) or {}
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {config_path} is not valid YAML/JSON: {exc}") from exc

    # A bare list is the legacy config.json layout: watches only.
    if isinstance(parsed, list):
        parsed = {"watches": parsed}

    if not isinstance(parsed, dict):
        raise ConfigError("Config root must be a mapping or a list of watches")

    raw_watches = parsed.get("watches", [])
    if not isinstance(raw_watches, list) or not raw_watches:
        raise ConfigError("Config must define at least one watch")

    watches = [
        parse_watch(raw_watch, index=index)
        for index, raw_watch in enumerate(raw_watches, start=1)
    ]

    raw_discord = _as_mapping(parsed.get("discord"), field_name="discord")
    discord_settings = DiscordSettings(
        token_env_var=str(raw_discord.get("token_env_var", "DISCORD_TOKEN")).strip()
        or "DISCORD_TOKEN",
        channel_env_var=str(raw_discord.get("channel_env_var", "CHANNEL_ID")).strip()
        or "CHANNEL_ID",
    )

    raw_polling = _as_mapping(parsed.get("polling"), field_name="polling")
    polling_settings = PollingSettings(
        interval_seconds=_as_int(
            raw_polling.get("interval_seconds", 60),
            field_name="polling.interval_seconds",
            minimum=1,
        ),
    )

    raw_posting = _as_mapping(parsed.get("posting"), field_name="posting")
    posting_settings = PostingSettings(
        notify_pause_seconds=_as_float(
            raw_posting.get("notify_pause_seconds", 1.0),
            field_name="posting.notify_pause_seconds",
            minimum=0,
        ),
        dry_run=_as_bool(
            raw_posting.get("dry_run", False),
            field_name="posting.dry_run",
        ),
    )

    raw_http = _as_mapping(parsed.get("http"), field_name="http")
    http_settings = HttpSettings(
        timeout_seconds=_as_float(
            raw_http.get("timeout_seconds", 30),
            field_name="http.timeout_seconds",
            minimum=1,
        ),
        user_agent=str(raw_http.get("user_agent", DEFAULT_USER_AGENT)).strip()
        or DEFAULT_USER_AGENT,
    )

    raw_storage = _as_mapping(parsed.get("storage"), field_name="storage")
    storage_type = str(raw_storage.get("type", "json")).strip().lower() or "json"
    if storage_type not in _STORAGE_TYPES:
        raise ConfigError(f"Unsupported storage type: {storage_type}")

    storage_path = str(raw_storage.get("path", "seen.json")).strip() or "seen.json"
    storage_settings = StorageSettings(
        type=storage_type,
        path=_resolve_relative_path(config_path, storage_path),
    )

    return AppConfig(
        watches=watches,
        discord=discord_settings,
        polling=polling_settings,
        posting=posting_settings,
        http=http_settings,
        storage=storage_settings,
        log_level=str(parsed.get("log_level", "INFO")).upper(),
    )


def load_runtime_settings(
    app_config: AppConfig,
    environ: Mapping[str, str] | None = None,
) -> RuntimeSettings:
    env = os.environ if environ is None else environ

    token = env.get(app_config.discord.token_env_var, "").strip()
    channel_id = env.get(app_config.discord.channel_env_var, "").strip()
    if not token or not channel_id:
        raise ConfigError(
            f"Missing {app_config.discord.token_env_var} or "
            f"{app_config.discord.channel_env_var} in environment"
        )

    return RuntimeSettings(
        token=token,
        channel_id=channel_id,
        poll_interval_seconds=resolve_poll_interval(app_config, env),
    )


def resolve_poll_interval(
    app_config: AppConfig,
    environ: Mapping[str, str] | None = None,
) -> int:
    env = os.environ if environ is None else environ
    raw_interval = env.get("POLL_INTERVAL_SEC", "").strip()
    if not raw_interval:
        return app_config.polling.interval_seconds
    return _as_int(raw_interval, field_name="POLL_INTERVAL_SEC", minimum=1)


def default_config_path(environ: Mapping[str, str] | None = None) -> str:
    """Config path from $CONFIG_PATH or $CONFIG_JSON, else the first existing default file."""
    env = os.environ if environ is None else environ
    for name in ("CONFIG_PATH", "CONFIG_JSON"):
        value = env.get(name, "").strip()
        if value:
            return value

    for candidate in DEFAULT_CONFIG_FILES:
        if Path(candidate).exists():
            return candidate
    return DEFAULT_CONFIG_FILES[0]
