"""Configuration — frozen dataclasses built from YAML, env vars and CLI args."""

import logging
import os
import re
from dataclasses import asdict, dataclass, field

import yaml

from logstasher.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".logstasher.yml")

# Keys written by save_yaml_config. The password is never persisted.
PERSISTED_KEYS = (
    "url", "index_pattern", "timestamp_field", "format",
    "initial_entries", "follow_page_size", "user", "ssh_tunnel",
)


@dataclass(frozen=True)
class QueryDefinition:
    terms: list[str] = field(default_factory=list)
    timestamp_field: str = "@timestamp"
    after_date_time: str = ""
    before_date_time: str = ""
    format: str = "%message"

    def is_date_time_filtered(self) -> bool:
        return bool(self.after_date_time or self.before_date_time)


@dataclass(frozen=True)
class SearchTarget:
    url: str = "http://127.0.0.1:9200"
    index_pattern: str = r"logstash-[0-9].*"
    tunnel_url: str = ""


@dataclass(frozen=True)
class Config:
    search_target: SearchTarget = field(default_factory=SearchTarget)
    query_definition: QueryDefinition = field(default_factory=QueryDefinition)
    initial_entries: int = 50
    follow_page_size: int = 9000
    list_only: bool = False
    user: str = ""
    password: str = ""
    ssh_tunnel: str = ""
    # Terms read from the settings file, written back unchanged by a plain --save.
    saved_terms: list[str] = field(default_factory=list)
    trace_requests: bool = False
    color: bool = True

    @property
    def effective_url(self) -> str:
        """URL the client connects to: the tunnel endpoint when one is up."""
        return self.search_target.tunnel_url or self.search_target.url


def load_yaml_config(path: str | None) -> dict:
    """Load saved settings from a YAML file. Returns empty dict if missing."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.info("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def save_yaml_config(path: str, config: Config, save_query: bool = False) -> None:
    """Persist connection and format settings so later runs can reuse them."""
    flat = _flatten(config)
    data = {key: flat[key] for key in PERSISTED_KEYS}
    terms = config.query_definition.terms if save_query else config.saved_terms
    if terms:
        data["terms"] = list(terms)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    logger.info("Saved config to %s", path)


def merge_terms(saved: list[str], cli_terms: list[str], save_query: bool) -> list[str]:
    """Combine saved query terms with the ones given on the command line.

    With ``save_query`` the command line replaces the saved query. Otherwise
    command-line terms narrow the saved query with an explicit AND.
    """
    if save_query:
        return list(cli_terms)
    if not cli_terms:
        return list(saved)
    if not saved:
        return list(cli_terms)
    return [*saved, "AND", *cli_terms]


def _flatten(config: Config) -> dict:
    flat = asdict(config)
    flat.update(flat.pop("search_target"))
    flat.update(flat.pop("query_definition"))
    return flat


def _int_setting(name: str, value) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number


def _saved_terms(yaml_data: dict) -> list[str]:
    terms = yaml_data.get("terms") or []
    if isinstance(terms, str):
        return [terms]
    if not isinstance(terms, list):
        raise ConfigError(f"terms must be a list of strings, got {terms!r}")
    return [str(term) for term in terms]


def _pick(cli_value, env_name: str, yaml_data: dict, key: str, default):
    """CLI value <- env var <- YAML value <- default."""
    if cli_value is not None:
        return cli_value
    if env_name in os.environ:
        return os.environ[env_name]
    return yaml_data.get(key, default)


def load_config(cli_args, yaml_data: dict) -> Config:
    """Build Config from parsed CLI args, env vars and saved YAML settings."""
    target = SearchTarget(
        url=_pick(cli_args.url, "LOGSTASHER_URL", yaml_data, "url", SearchTarget.url),
        index_pattern=_pick(cli_args.index_pattern, "LOGSTASHER_INDEX_PATTERN",
                            yaml_data, "index_pattern", SearchTarget.index_pattern),
    )
    saved_terms = _saved_terms(yaml_data)
    query = QueryDefinition(
        terms=merge_terms(saved_terms,
                          list(cli_args.terms), cli_args.save_query),
        timestamp_field=_pick(cli_args.timestamp_field, "LOGSTASHER_TIMESTAMP_FIELD",
                              yaml_data, "timestamp_field", QueryDefinition.timestamp_field),
        after_date_time=cli_args.after or "",
        before_date_time=cli_args.before or "",
        format=_pick(cli_args.format, "LOGSTASHER_FORMAT",
                     yaml_data, "format", QueryDefinition.format),
    )
    initial_entries = _int_setting("initial entries", _pick(
        cli_args.initial_entries, "LOGSTASHER_INITIAL_ENTRIES",
        yaml_data, "initial_entries", Config.initial_entries))
    follow_page_size = _int_setting("follow page size", _pick(
        cli_args.follow_page_size, "LOGSTASHER_FOLLOW_PAGE_SIZE",
        yaml_data, "follow_page_size", Config.follow_page_size))

    try:
        re.compile(target.index_pattern)
    except re.error as exc:
        raise ConfigError(f"Invalid index pattern {target.index_pattern!r}: {exc}") from exc

    return Config(
        search_target=target,
        query_definition=query,
        initial_entries=initial_entries,
        follow_page_size=follow_page_size,
        list_only=cli_args.list_only,
        user=_pick(cli_args.user, "LOGSTASHER_USER", yaml_data, "user", "") or "",
        ssh_tunnel=_pick(cli_args.ssh, "LOGSTASHER_SSH_TUNNEL", yaml_data, "ssh_tunnel", "") or "",
        trace_requests=cli_args.trace,
        color=not cli_args.no_color,
        saved_terms=saved_terms,
    )
