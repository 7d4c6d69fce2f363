from typing import Any

import toml
from pydantic import BaseModel

_config: dict[str, Any] | None = None

DEFAULT_PUSH_MAX_ATTEMPTS = 3


class ConfigNotFound(Exception):
    pass


class SecretNotFound(Exception):
    pass


class GitIdentity(BaseModel, frozen=True):
    """Author of the commits and owner of the push credentials."""

    user: str
    email: str
    token: str = ""


def get_config() -> dict[str, Any]:
    if _config is None:
        raise ConfigNotFound("configuration has not been initialized")
    return _config


def init(config: dict[str, Any]) -> dict[str, Any]:
    global _config  # noqa: PLW0603
    _config = config
    return _config


def init_from_toml(configfile: str) -> dict[str, Any]:
    return init(toml.load(configfile))


def _walk(path: str) -> Any:
    config: Any = get_config()
    for t in path.split("/"):
        config = config[t]
    return config


def read(secret: dict[str, str]) -> Any:
    path = secret["path"]
    field = secret["field"]
    try:
        return _walk(path)[field]
    except Exception as e:
        raise SecretNotFound(f"key not found in config file {path}: {e!s}") from None


def read_all(secret: dict[str, str]) -> Any:
    path = secret["path"]
    try:
        return _walk(path)
    except Exception as e:
        raise SecretNotFound(f"secret {path} not found in config file: {e!s}") from None


def git_identity_from_config() -> GitIdentity:
    """
    Reads the [git] section. The token may be given inline or as a
    reference to another section:

        [git]
        user = "gitops-bot"
        email = "gitops-bot@example.com"
        token = { path = "secrets/git", field = "token" }
    """
    try:
        git = get_config()["git"]
        token = git.get("token", "")
        if isinstance(token, dict):
            token = read(token)
        return GitIdentity(user=git["user"], email=git["email"], token=token)
    except KeyError as e:
        raise ConfigNotFound(f"missing git setting in config file: {e!s}") from None


def push_max_attempts() -> int:
    push = get_config().get("push", {})
    return int(push.get("max_attempts", DEFAULT_PUSH_MAX_ATTEMPTS))
