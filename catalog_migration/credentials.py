# =============================================================================
# Credentials
# =============================================================================
# Connection secrets are never persisted in the repository. Settings read
# from the environment / .env first; whatever is still missing is requested
# from a SecretProvider, interactively by default for manual operator runs.
# =============================================================================

import getpass
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, TypeVar

from pydantic_settings import BaseSettings

from catalog_migration.errors import ConfigurationError

__all__ = [
    "SecretProvider",
    "PromptSecretProvider",
    "NoInputSecretProvider",
    "PromptField",
    "MONGO_PROMPTS",
    "POSTGRES_PROMPTS",
    "complete_settings",
]

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=BaseSettings)


class SecretProvider(ABC):
    """Source of connection values the environment did not supply."""

    @abstractmethod
    def get(self, label: str, *, secret: bool = False) -> Optional[str]:
        """
        Return a value for ``label``, or None if none is available.

        Args:
            label: Human-readable name of the value (e.g. "MongoDB password")
            secret: Whether the value must not be echoed or logged
        """


class PromptSecretProvider(SecretProvider):
    """Asks the operator on the terminal; secrets are read without echo."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        getpass_func: Callable[[str], str] = getpass.getpass,
    ):
        self._input = input_func
        self._getpass = getpass_func

    def get(self, label: str, *, secret: bool = False) -> Optional[str]:
        reader = self._getpass if secret else self._input
        try:
            value = reader(f"{label}: ")
        except EOFError:
            return None
        if not secret:
            value = value.strip()
        return value or None


class NoInputSecretProvider(SecretProvider):
    """Never supplies anything; used for unattended runs (--no-input)."""

    def get(self, label: str, *, secret: bool = False) -> Optional[str]:
        return None


@dataclass(frozen=True)
class PromptField:
    """A settings field that may be completed through a SecretProvider."""

    name: str
    label: str
    env_var: str
    secret: bool = False
    required: bool = True


MONGO_PROMPTS: Sequence[PromptField] = (
    PromptField("username", "MongoDB username", "MONGO_USERNAME"),
    PromptField("password", "MongoDB password", "MONGO_PASSWORD", secret=True),
    PromptField("database", "MongoDB database name", "MONGO_DATABASE"),
    PromptField("replica_set", "MongoDB replica set name (blank for none)", "MONGO_REPLICA_SET", required=False),
)

POSTGRES_PROMPTS: Sequence[PromptField] = (
    PromptField("user", "PostgreSQL user", "POSTGRES_USER"),
    PromptField("password", "PostgreSQL password", "POSTGRES_PASSWORD", secret=True),
    PromptField("database", "PostgreSQL database name", "POSTGRES_DB"),
)


def complete_settings(settings: S, fields: Sequence[PromptField], provider: SecretProvider) -> S:
    """
    Fill the fields the environment left empty.

    Args:
        settings: Settings loaded from the environment
        fields: Fields eligible for completion, in prompt order
        provider: Where missing values come from

    Returns:
        A copy of ``settings`` with the supplied values set

    Raises:
        ConfigurationError: If a required field is still missing
    """
    updates: dict[str, str] = {}
    for field in fields:
        if getattr(settings, field.name):
            continue
        value = provider.get(field.label, secret=field.secret)
        if value:
            updates[field.name] = value
        elif field.required:
            raise ConfigurationError(
                f"{field.label} is required: set {field.env_var} or run interactively"
            )
    if updates:
        # Field names only; values may be secrets
        logger.debug(f"Completed settings fields: {sorted(updates)}")
    return settings.model_copy(update=updates)
