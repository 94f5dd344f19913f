"""Configuration of Polaris accounts and the SDK.

Accounts are read from JSON credential files. Environment variables override
what is in the files, and an account may be given entirely through the
environment.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Self, override
from urllib.parse import urlsplit

from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    ValidationError,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, configure_logging

from .constants import DEFAULT_API_URL_TEMPLATE, SESSION_ROUTE
from .exceptions import ConfigurationError, NotFoundError

__all__ = [
    "DEFAULT_SERVICE_ACCOUNT_FILE",
    "DEFAULT_USER_ACCOUNT_FILE",
    "EnvFirstSettings",
    "PolarisSettings",
    "ServiceAccount",
    "UserAccount",
]

DEFAULT_SERVICE_ACCOUNT_FILE = Path("~/.rubrik/polaris-service-account.json")
"""Default location of the service account credentials file."""

DEFAULT_USER_ACCOUNT_FILE = Path("~/.rubrik/polaris-accounts.json")
"""Default location of the local user accounts file."""

_SERVICE_ACCOUNT_ENV = (
    "RUBRIK_POLARIS_SERVICEACCOUNT_NAME",
    "RUBRIK_POLARIS_SERVICEACCOUNT_CLIENTID",
    "RUBRIK_POLARIS_SERVICEACCOUNT_CLIENTSECRET",
    "RUBRIK_POLARIS_SERVICEACCOUNT_ACCESSTOKENURI",
)

_USER_ACCOUNT_ENV = (
    "RUBRIK_POLARIS_ACCOUNT_NAME",
    "RUBRIK_POLARIS_ACCOUNT_USERNAME",
    "RUBRIK_POLARIS_ACCOUNT_PASSWORD",
    "RUBRIK_POLARIS_ACCOUNT_URL",
)


def _load_json(value: str, source: str) -> Any:
    try:
        return json.loads(value)
    except ValueError as e:
        msg = f"failed to unmarshal {source}: {e!s}"
        raise ConfigurationError(msg) from e


def _read_file(path: Path) -> Any:
    """Read a JSON credentials file, expanding ``~`` and variables."""
    expanded = Path(os.path.expandvars(path.expanduser())).absolute()
    try:
        content = expanded.read_text()
    except OSError as e:
        msg = f"failed to read account file {expanded}: {e.strerror}"
        raise ConfigurationError(msg) from e
    return _load_json(content, str(expanded))


def _split_host(url: str, description: str) -> tuple[str, str]:
    """Return the account name and FQDN of an account URL."""
    fqdn = urlsplit(url).hostname or ""
    name, sep, _ = fqdn.partition(".")
    if not sep:
        raise ValueError(f"invalid {description}: no account name found")
    return name, fqdn


class EnvFirstSettings(BaseSettings):
    """Base class for Pydantic settings with environment overrides.

    Classes that inherit from this base class will prioritize environment
    variables over arguments to the class constructor. Environment variable
    names are case-sensitive, so ``RUBRIK_POLARIS_*`` variables must be given
    in upper case. The lowercase field names accepted from credential files
    are validation aliases too, and are therefore also read from the
    environment when a variable with exactly that name is set.
    """

    model_config = SettingsConfigDict(
        case_sensitive=True, extra="ignore", populate_by_name=True
    )

    @override
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate :file:`.env` and secret file support. Allow environment
        variables to override init parameters, since init parameters come
        from the credentials files.
        """
        return (env_settings, init_settings)


class PolarisSettings(EnvFirstSettings):
    """Process-wide settings of the SDK."""

    log_level: LogLevel = Field(
        LogLevel.INFO,
        title="Logging level",
        description="Python logging level",
        validation_alias=AliasChoices("RUBRIK_POLARIS_LOGLEVEL", "log_level"),
    )

    def configure_logging(self) -> None:
        """Configure logging based on the SDK settings."""
        configure_logging(name="polaris", log_level=self.log_level)


class ServiceAccount(EnvFirstSettings):
    """Credentials of a service account.

    The field names match the credentials file downloaded when the service
    account is created.
    """

    name: str = Field(
        "",
        title="Service account name",
        validation_alias=AliasChoices(
            "RUBRIK_POLARIS_SERVICEACCOUNT_NAME", "name"
        ),
    )

    client_id: str = Field(
        "",
        title="Client ID",
        validation_alias=AliasChoices(
            "RUBRIK_POLARIS_SERVICEACCOUNT_CLIENTID", "client_id"
        ),
    )

    client_secret: SecretStr = Field(
        SecretStr(""),
        title="Client secret",
        validation_alias=AliasChoices(
            "RUBRIK_POLARIS_SERVICEACCOUNT_CLIENTSECRET", "client_secret"
        ),
    )

    access_token_uri: str = Field(
        "",
        title="Access token URI",
        description="Such as https://example.my.rubrik.com/api/client_token",
        validation_alias=AliasChoices(
            "RUBRIK_POLARIS_SERVICEACCOUNT_ACCESSTOKENURI", "access_token_uri"
        ),
    )

    @model_validator(mode="after")
    def _validate_account(self) -> Self:
        if not self.name:
            raise ValueError("invalid service account name")
        if not self.client_id:
            raise ValueError("invalid service account client id")
        if not self.client_secret.get_secret_value():
            raise ValueError("invalid service account client secret")
        _split_host(self.access_token_uri, "service account access token uri")
        return self

    @property
    def account_name(self) -> str:
        """Name of the account, the first label of its hostname."""
        return _split_host(self.access_token_uri, "access token uri")[0]

    @property
    def account_fqdn(self) -> str:
        """Fully-qualified hostname of the account."""
        return _split_host(self.access_token_uri, "access token uri")[1]

    @property
    def api_url(self) -> str:
        """Base URL of the account API."""
        return self.access_token_uri.rstrip("/").rsplit("/", 1)[0]

    @property
    def token_url(self) -> str:
        """URL of the access token endpoint."""
        return self.access_token_uri

    @classmethod
    def from_env(cls) -> Self:
        """Load a service account entirely from the environment.

        Returns
        -------
        ServiceAccount
            Service account.

        Raises
        ------
        ConfigurationError
            Raised if the account in the environment is invalid.
        NotFoundError
            Raised if no service account variables are set.
        """
        data = cls._env_credentials()
        env_set = any(k in os.environ for k in _SERVICE_ACCOUNT_ENV)
        if data is None and not env_set:
            raise NotFoundError("failed to read service account from env")
        return cls._create(data or {})

    @classmethod
    def from_file(cls, path: Path | None = None) -> Self:
        """Load a service account from a credentials file.

        The file path may be overridden with
        ``RUBRIK_POLARIS_SERVICEACCOUNT_FILE``, and each field may be
        overridden by the environment. A file that cannot be read is not an
        error if the environment supplies a complete account.

        Parameters
        ----------
        path
            Path to the credentials file. Defaults to
            `DEFAULT_SERVICE_ACCOUNT_FILE`.

        Returns
        -------
        ServiceAccount
            Service account.

        Raises
        ------
        ConfigurationError
            Raised if no valid account could be assembled.
        """
        env_path = os.environ.get("RUBRIK_POLARIS_SERVICEACCOUNT_FILE")
        path = Path(env_path) if env_path else path
        data: dict[str, Any] = {}
        file_error: ConfigurationError | None = None
        try:
            content = _read_file(path or DEFAULT_SERVICE_ACCOUNT_FILE)
            if not isinstance(content, dict):
                msg = "service account file is not an object"
                raise ConfigurationError(msg)
            data.update(content)
        except ConfigurationError as e:
            file_error = e
        if env_data := cls._env_credentials():
            data.update({k: v for k, v in env_data.items() if v})
        try:
            return cls._create(data)
        except ConfigurationError as e:
            if file_error:
                msg = f"{e!s} (service account file error: {file_error!s})"
                raise ConfigurationError(msg) from e
            raise

    @classmethod
    def _env_credentials(cls) -> dict[str, Any] | None:
        creds = os.environ.get("RUBRIK_POLARIS_SERVICEACCOUNT_CREDENTIALS")
        if creds is None:
            return None
        data = _load_json(creds, "RUBRIK_POLARIS_SERVICEACCOUNT_CREDENTIALS")
        if not isinstance(data, dict):
            msg = "RUBRIK_POLARIS_SERVICEACCOUNT_CREDENTIALS is not an object"
            raise ConfigurationError(msg)
        return data

    @classmethod
    def _create(cls, data: dict[str, Any]) -> Self:
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(_first_error(e)) from e


class UserAccount(EnvFirstSettings):
    """Credentials of a local user account.

    A user accounts file maps account names to the remaining fields.
    """

    name: str = Field(
        "",
        title="Account name",
        validation_alias=AliasChoices("RUBRIK_POLARIS_ACCOUNT_NAME", "name"),
    )

    username: str = Field(
        "",
        title="Username",
        validation_alias=AliasChoices(
            "RUBRIK_POLARIS_ACCOUNT_USERNAME", "username"
        ),
    )

    password: SecretStr = Field(
        SecretStr(""),
        title="Password",
        validation_alias=AliasChoices(
            "RUBRIK_POLARIS_ACCOUNT_PASSWORD", "password"
        ),
    )

    url: str = Field(
        "",
        title="API URL",
        description="Defaults to https://<name>.my.rubrik.com/api",
        validation_alias=AliasChoices("RUBRIK_POLARIS_ACCOUNT_URL", "url"),
    )

    @model_validator(mode="after")
    def _validate_account(self) -> Self:
        if not self.name:
            raise ValueError("invalid user account name")
        if not self.username:
            raise ValueError("invalid user account username")
        if not self.password.get_secret_value():
            raise ValueError("invalid user account password")
        _split_host(self.api_url, "url")
        return self

    @property
    def account_name(self) -> str:
        """Name of the account, the first label of its hostname."""
        return _split_host(self.api_url, "url")[0]

    @property
    def account_fqdn(self) -> str:
        """Fully-qualified hostname of the account."""
        return _split_host(self.api_url, "url")[1]

    @property
    def api_url(self) -> str:
        """Base URL of the account API."""
        if self.url:
            return self.url.rstrip("/")
        return DEFAULT_API_URL_TEMPLATE.format(name=self.name)

    @property
    def token_url(self) -> str:
        """URL of the session endpoint."""
        return f"{self.api_url}/{SESSION_ROUTE}"

    @classmethod
    def from_env(cls, name: str = "") -> Self:
        """Load a user account entirely from the environment.

        Parameters
        ----------
        name
            Name of the account to select from
            ``RUBRIK_POLARIS_ACCOUNT_CREDENTIALS`` if it holds more than one
            account. Overridden by ``RUBRIK_POLARIS_ACCOUNT_NAME``.

        Returns
        -------
        UserAccount
            User account.

        Raises
        ------
        ConfigurationError
            Raised if the account in the environment is invalid.
        NotFoundError
            Raised if no user account variables are set.
        """
        accounts = cls._env_accounts()
        env_set = any(k in os.environ for k in _USER_ACCOUNT_ENV)
        if accounts is None and not env_set:
            raise NotFoundError("failed to read user account from env")
        name = os.environ.get("RUBRIK_POLARIS_ACCOUNT_NAME", name)
        return cls._create(_lookup_account(name, accounts or {}))

    @classmethod
    def from_file(cls, name: str, path: Path | None = None) -> Self:
        """Load a user account from a user accounts file.

        The file path may be overridden with ``RUBRIK_POLARIS_ACCOUNT_FILE``,
        and each field may be overridden by the environment.

        Parameters
        ----------
        name
            Name of the account in the file. Overridden by
            ``RUBRIK_POLARIS_ACCOUNT_NAME``.
        path
            Path to the user accounts file. Defaults to
            `DEFAULT_USER_ACCOUNT_FILE`.

        Returns
        -------
        UserAccount
            User account.

        Raises
        ------
        ConfigurationError
            Raised if no valid account could be assembled.
        """
        env_path = os.environ.get("RUBRIK_POLARIS_ACCOUNT_FILE")
        path = Path(env_path) if env_path else path
        name = os.environ.get("RUBRIK_POLARIS_ACCOUNT_NAME", name)
        data: dict[str, Any] = {"name": name}
        file_error: ConfigurationError | None = None
        try:
            accounts = _read_file(path or DEFAULT_USER_ACCOUNT_FILE)
            if not isinstance(accounts, dict) or name not in accounts:
                msg = f"failed to lookup user account {name!r}"
                raise ConfigurationError(msg)
            if not isinstance(accounts[name], dict):
                msg = f"user account {name!r} is not an object"
                raise ConfigurationError(msg)
            data.update(accounts[name])
        except ConfigurationError as e:
            file_error = e
        if env_accounts := cls._env_accounts():
            env_data = _lookup_account(name, env_accounts)
            data.update({k: v for k, v in env_data.items() if v})
        try:
            return cls._create(data)
        except ConfigurationError as e:
            if file_error:
                msg = f"{e!s} (user account file error: {file_error!s})"
                raise ConfigurationError(msg) from e
            raise

    @classmethod
    def _env_accounts(cls) -> dict[str, Any] | None:
        creds = os.environ.get("RUBRIK_POLARIS_ACCOUNT_CREDENTIALS")
        if creds is None:
            return None
        data = _load_json(creds, "RUBRIK_POLARIS_ACCOUNT_CREDENTIALS")
        if not isinstance(data, dict):
            msg = "RUBRIK_POLARIS_ACCOUNT_CREDENTIALS is not an object"
            raise ConfigurationError(msg)
        return data

    @classmethod
    def _create(cls, data: dict[str, Any]) -> Self:
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(_first_error(e)) from e


def _lookup_account(name: str, accounts: dict[str, Any]) -> dict[str, Any]:
    """Select an account from a mapping of account names to accounts.

    A mapping with a single account always selects that account.
    """
    if len(accounts) == 1:
        name, account = next(iter(accounts.items()))
    elif name in accounts:
        account = accounts[name]
    else:
        return {"name": name}
    if not isinstance(account, dict):
        msg = f"user account {name!r} is not an object"
        raise ConfigurationError(msg)
    return {**account, "name": name}


def _first_error(exc: ValidationError) -> str:
    """Return the message of the first error of a validation failure."""
    error = exc.errors()[0]
    return error["msg"].removeprefix("Value error, ")
