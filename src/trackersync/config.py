from __future__ import annotations

import copy
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml
from jsonschema import Draft7Validator

from .env_auth import EnvAuthConfig, EnvironmentAuthManager, create_env_auth_manager
from .logging import get_logger
from .schemas import get_config_schema

CONFIG_DEFAULT = ".github/sync-config.yml"
CONFIG_ENV_VAR = "TRACKERSYNC_CONFIG"


class ErrorCodes:
    EFS01 = "EFS01"  # configuration file not found, defaults used
    ECFG01 = "ECFG01"  # YAML syntax error
    ECFG02 = "ECFG02"  # empty or non-mapping document
    ECFG03 = "ECFG03"  # schema / semantic validation failure
    ETOK01 = "ETOK01"  # missing platform token


class ConfigError(RuntimeError):
    def __init__(self, message: str, code: str | None = None):
        super().__init__(f"{code}: {message}" if code else message)
        self.code = code


_BOOLEAN_FIELDS: tuple[tuple[str, ...], ...] = (
    ("sync", "issues", "enabled"),
    ("sync", "issues", "sync_comments"),
    ("logging", "json_enabled"),
    ("environment", "load_dotenv"),
)
_TRUTHY = {"true", "yes", "on", "1", "y"}
_FALSY = {"false", "no", "off", "0", "n", ""}

# `key = value` slips; indentation is kept so nesting survives the repair
_RE_EQUALS_ASSIGNMENT = re.compile(r"^(\s*)([^\s:#=][^:=#]*?)\s*=\s*(.+)$", re.MULTILINE)


@dataclass
class PlatformSettings:
    platform: str
    url: str
    api_url: str = ""
    token: str | None = None
    owner: str | None = None
    repo: str | None = None
    project: str | None = None

    @property
    def display_name(self) -> str:
        if self.platform == "github":
            return f"github:{self.owner}/{self.repo}"
        return f"gitlab:{self.project}"


@dataclass
class SyncConfig:
    source_file: Path | None
    github: PlatformSettings
    gitlab: PlatformSettings
    direction: str
    issues_enabled: bool
    sync_comments: bool
    logging_json_enabled: bool
    logging_level: str
    env_load_dotenv: bool
    env_dotenv_path: str | None

    def settings_for(self, platform: str) -> PlatformSettings:
        return self.github if platform == "github" else self.gitlab

    def passes(self) -> list[tuple[PlatformSettings, PlatformSettings]]:
        """(source, target) pairs in execution order for the configured direction."""
        if not self.issues_enabled:
            return []
        forward = (self.github, self.gitlab)
        backward = (self.gitlab, self.github)
        if self.direction == "gitlab-to-github":
            return [backward]
        if self.direction == "both":
            return [forward, backward]
        return [forward]

    def platforms_in_use(self) -> tuple[str, ...]:
        used: list[str] = []
        for source, target in self.passes():
            for settings in (source, target):
                if settings.platform not in used:
                    used.append(settings.platform)
        return tuple(used)


def default_config() -> dict[str, Any]:
    return {
        "github": {
            "owner": None,
            "repo": None,
            "token": None,
            "api_url": "https://api.github.com",
            "web_url": "https://github.com",
        },
        "gitlab": {
            "url": "https://gitlab.com",
            "project": None,
            "token": None,
        },
        "sync": {
            "direction": "github-to-gitlab",
            "issues": {"enabled": True, "sync_comments": True},
        },
        "logging": {"json_enabled": False, "level": "INFO"},
        "environment": {"load_dotenv": True, "dotenv_path": None},
    }


def _resolve_env_var(value: Any) -> Any:
    """Resolve ``$NAME`` references; unresolved references become None."""
    if isinstance(value, str) and value.startswith("$"):
        return os.getenv(value[1:].strip("{}")) or None
    return value


def normalize_yaml_arrays(obj: Any) -> Any:
    """Turn ``labels`` mappings with numeric keys back into lists.

    Some emitters serialise ``[a, b]`` as ``{0: a, 1: b}``; those are
    converted when every value is a string.
    """
    if isinstance(obj, list):
        return [normalize_yaml_arrays(v) for v in obj]
    if isinstance(obj, dict):
        result: dict[Any, Any] = {}
        for key, value in obj.items():
            if (
                key == "labels"
                and isinstance(value, dict)
                and all(isinstance(v, str) for v in value.values())
                and all(re.fullmatch(r"\d+", str(k)) for k in value.keys())
            ):
                result[key] = [value[k] for k in sorted(value, key=lambda k: int(str(k)))]
                continue
            result[key] = normalize_yaml_arrays(value)
        return result
    return obj


def coerce_booleans(raw: dict[str, Any]) -> dict[str, Any]:
    """Convert boolean-like strings ("yes", "off", "1") for known boolean fields."""
    doc = copy.deepcopy(raw)
    for path in _BOOLEAN_FIELDS:
        node: Any = doc
        for key in path[:-1]:
            node = node.get(key) if isinstance(node, dict) else None
        if not isinstance(node, dict) or path[-1] not in node:
            continue
        value = node[path[-1]]
        if isinstance(value, str):
            low = value.strip().lower()
            if low in _TRUTHY:
                node[path[-1]] = True
            elif low in _FALSY:
                node[path[-1]] = False
        elif isinstance(value, int) and not isinstance(value, bool):
            node[path[-1]] = bool(value)
    logging_section = doc.get("logging")
    if isinstance(logging_section, dict) and isinstance(logging_section.get("level"), str):
        logging_section["level"] = logging_section["level"].upper()
    return doc


def merge_with_defaults(user: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in user.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_with_defaults(value, merged[key])
        elif value is not None or key not in merged:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_document(doc: dict[str, Any]) -> None:
    validator = Draft7Validator(get_config_schema())
    errors = sorted(validator.iter_errors(doc), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        lines = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in errors
        ]
        raise ConfigError("Config validation failed:\n" + "\n".join(lines), ErrorCodes.ECFG03)


def _parse_yaml(text: str) -> Any:
    log = get_logger()
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as yaml_error:
        log.warning(f"{ErrorCodes.ECFG01}: YAML parsing error: {yaml_error}")
        repaired = _RE_EQUALS_ASSIGNMENT.sub(r"\1\2: \3", text)
        if repaired == text:
            raise ConfigError(f"YAML parsing error: {yaml_error}", ErrorCodes.ECFG01) from yaml_error
        try:
            data = yaml.safe_load(repaired)
        except yaml.YAMLError:
            raise ConfigError(
                f"YAML parsing error: {yaml_error}", ErrorCodes.ECFG01
            ) from yaml_error
        log.info("Fixed YAML syntax errors automatically")
        return data


def _read_document(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    content = path.read_text(encoding="utf-8")
    if not content.strip():
        raise ConfigError(f"Empty configuration file: {path}", ErrorCodes.ECFG02)
    parsed = _parse_yaml(content)
    if not isinstance(parsed, dict) or not parsed:
        raise ConfigError(f"Empty or invalid configuration: {path}", ErrorCodes.ECFG02)
    return cast(dict[str, Any], normalize_yaml_arrays(parsed))


def _platform_settings(doc: dict[str, Any]) -> tuple[PlatformSettings, PlatformSettings]:
    gh = doc["github"]
    gl = doc["gitlab"]
    project = gl.get("project")
    github = PlatformSettings(
        platform="github",
        url=gh["web_url"],
        api_url=gh["api_url"],
        token=_resolve_env_var(gh.get("token")),
        owner=gh.get("owner"),
        repo=gh.get("repo"),
    )
    gitlab = PlatformSettings(
        platform="gitlab",
        url=gl["url"],
        api_url=f"{gl['url'].rstrip('/')}/api/v4",
        token=_resolve_env_var(gl.get("token")),
        project=str(project) if project is not None else None,
    )
    return github, gitlab


def resolve_platforms(cfg: SyncConfig, auth_manager: EnvironmentAuthManager | None = None) -> None:
    """Check required fields and fill in tokens for the platforms in use."""
    auth = auth_manager or create_env_auth_manager(
        EnvAuthConfig(load_dotenv=cfg.env_load_dotenv, dotenv_path=cfg.env_dotenv_path)
    )
    for platform in cfg.platforms_in_use():
        settings = cfg.settings_for(platform)
        if platform == "github" and not (settings.owner and settings.repo):
            raise ConfigError("github.owner and github.repo are required", ErrorCodes.ECFG03)
        if platform == "gitlab" and not settings.project:
            raise ConfigError("gitlab.project is required", ErrorCodes.ECFG03)
        if not settings.token:
            settings.token = auth.get_token(platform)
        if not settings.token:
            hints = auth.get_authentication_recommendations((platform,))
            raise ConfigError(
                f"No {platform} token found in the configuration or environment"
                + "".join(f"; {hint}" for hint in hints),
                ErrorCodes.ETOK01,
            )


def load_config(
    path: str | Path | None = None,
    *,
    auth_manager: EnvironmentAuthManager | None = None,
) -> SyncConfig:
    """Load, normalise, validate and resolve the sync policy document.

    A missing file falls back to the built-in defaults; tokens and required
    platform fields are checked only for platforms the configured direction
    actually uses.
    """
    log = get_logger()
    p = Path(path or os.environ.get(CONFIG_ENV_VAR) or CONFIG_DEFAULT)
    raw = _read_document(p)
    if raw is None:
        log.info(f"{ErrorCodes.EFS01}: {p} not found, using default configuration")
        raw = {}
    doc = merge_with_defaults(coerce_booleans(raw), default_config())
    validate_document(doc)

    github, gitlab = _platform_settings(doc)
    env = doc.get("environment") or {}
    cfg = SyncConfig(
        source_file=p if p.exists() else None,
        github=github,
        gitlab=gitlab,
        direction=doc["sync"]["direction"],
        issues_enabled=bool(doc["sync"]["issues"].get("enabled", True)),
        sync_comments=bool(doc["sync"]["issues"].get("sync_comments", True)),
        logging_json_enabled=bool(doc["logging"].get("json_enabled", False)),
        logging_level=str(doc["logging"].get("level", "INFO")),
        env_load_dotenv=bool(env.get("load_dotenv", True)),
        env_dotenv_path=env.get("dotenv_path"),
    )
    resolve_platforms(cfg, auth_manager)
    return cfg


def _mask(token: str | None) -> str:
    if not token:
        return "<missing>"
    return "***" + token[-4:] if len(token) > 8 else "***"


def describe_config(cfg: SyncConfig) -> list[str]:
    lines = [
        f"config: {cfg.source_file or '<defaults>'}",
        f"direction: {cfg.direction}",
        f"issues: {'enabled' if cfg.issues_enabled else 'disabled'}",
        f"comments: {'enabled' if cfg.sync_comments else 'disabled'}",
    ]
    for platform in cfg.platforms_in_use():
        settings = cfg.settings_for(platform)
        lines.append(f"{settings.display_name} ({settings.url}) token={_mask(settings.token)}")
    return lines


__all__ = [
    "CONFIG_DEFAULT",
    "ConfigError",
    "ErrorCodes",
    "PlatformSettings",
    "SyncConfig",
    "coerce_booleans",
    "default_config",
    "describe_config",
    "load_config",
    "merge_with_defaults",
    "normalize_yaml_arrays",
    "resolve_platforms",
]
