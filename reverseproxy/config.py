from os import getenv
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .rule import Rule


class ConfigError(Exception):
    """Raised when the rule configuration cannot be read or validated."""


class Settings(BaseModel):
    rules: list[Rule] = Field(default_factory=list)
    upstream_timeout: float = 20.0


_rule_list = TypeAdapter(list[Rule])


def parse_settings(raw: str | bytes) -> Settings:
    """
    Parse a JSON configuration document. Either an object
    {"rules": [...], "upstream_timeout": ...} or a bare list of rules.
    """
    try:
        if raw.lstrip()[:1] in ('[', b'['):
            return Settings(rules=_rule_list.validate_json(raw))
        return Settings.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f'Invalid proxy configuration: {exc}') from exc


def load_settings(path: str | Path | None) -> Settings:
    """Load settings from a JSON file; no path means an empty rule table."""
    if not path:
        return Settings()
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f'Cannot read proxy configuration {path}: {exc}') from exc
    return parse_settings(raw)


# loaded once at import; swap the whole object to reload
settings = load_settings(getenv('PROXY_CONFIG'))
