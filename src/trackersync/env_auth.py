"""Environment-based token discovery for the tracker platforms.

Tokens come from environment variables, optionally populated from a ``.env``
file first (``python-dotenv``). Explicit tokens in the policy document win;
see :func:`trackersync.config.load_config`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

GITHUB_TOKEN_ALTERNATIVES = ("GH_TOKEN", "GITHUB_ACCESS_TOKEN", "GH_ACCESS_TOKEN", "GITHUB_PAT")
GITLAB_TOKEN_ALTERNATIVES = ("GL_TOKEN", "GITLAB_ACCESS_TOKEN", "GITLAB_PRIVATE_TOKEN", "CI_JOB_TOKEN")
DOTENV_LOCATIONS = (".env", ".env.local", ".venv/.env")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    github_token_var: str = "GITHUB_TOKEN"
    gitlab_token_var: str = "GITLAB_TOKEN"
    extra_vars: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: {
            "github": GITHUB_TOKEN_ALTERNATIVES,
            "gitlab": GITLAB_TOKEN_ALTERNATIVES,
        }
    )


class EnvironmentAuthManager:
    """Resolves platform tokens through environment variables and .env files."""

    def __init__(self, config: EnvAuthConfig):
        self.config = config
        self.logger = get_logger()
        self._dotenv_loaded = False
        if config.load_dotenv:
            self._load_dotenv()

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def _load_dotenv(self) -> None:
        if self.config.dotenv_path:
            candidates: tuple[str, ...] = (self.config.dotenv_path,)
        else:
            candidates = DOTENV_LOCATIONS
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                # Existing environment variables take precedence over the file
                load_dotenv(str(env_path), override=False)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    def _lookup(self, primary: str, alternatives: tuple[str, ...]) -> str | None:
        token = os.getenv(primary)
        if token:
            self.logger.debug(f"Found token in {primary}")
            return token
        for alt_var in alternatives:
            token = os.getenv(alt_var)
            if token:
                self.logger.debug(f"Found token in {alt_var}")
                return token
        return None

    def get_github_token(self) -> str | None:
        return self._lookup(self.config.github_token_var, self.config.extra_vars.get("github", ()))

    def get_gitlab_token(self) -> str | None:
        return self._lookup(self.config.gitlab_token_var, self.config.extra_vars.get("gitlab", ()))

    def get_token(self, platform: str) -> str | None:
        if platform == "github":
            return self.get_github_token()
        if platform == "gitlab":
            return self.get_gitlab_token()
        return None

    def get_authentication_recommendations(self, platforms: tuple[str, ...] = ("github", "gitlab")) -> list[str]:
        recommendations: list[str] = []
        if "github" in platforms and not self.get_github_token():
            recommendations.append(
                f"Set {self.config.github_token_var} (or GH_TOKEN) or add it to a .env file"
            )
        if "gitlab" in platforms and not self.get_gitlab_token():
            recommendations.append(
                f"Set {self.config.gitlab_token_var} (or GL_TOKEN) or add it to a .env file"
            )
        return recommendations


def create_env_auth_manager(config: EnvAuthConfig | None = None) -> EnvironmentAuthManager:
    if config is None:
        config = EnvAuthConfig()
    return EnvironmentAuthManager(config)


__all__ = ["EnvAuthConfig", "EnvironmentAuthManager", "create_env_auth_manager"]
