"""AgamaSettings — one frozen object merging flags, environment, and TOML.

Highest priority first:

1. CLI flags (init kwargs); unset flags arrive as None and are dropped
2. ``AGAMACTL_*`` environment variables, ``__`` for nested sections
3. ``agamactl.toml`` (see :func:`agamactl.config.discovery.find_config`)
4. Defaults baked into :mod:`agamactl.config.models`

Sources are deep-merged by pydantic-settings, so ``--bus session`` on the
command line keeps the ``[bus] address`` from the file.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from agamactl.config.discovery import find_config
from agamactl.config.models import BusConfig, InterfacesConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by a single TOML file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path is not None:
            self._data = read_toml(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path*, turning syntax errors into a CLI-friendly exception."""
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc


# The TOML path cannot go through __init__ kwargs without becoming a field value.
_tls = threading.local()


class AgamaSettings(BaseSettings):
    """Settings for one agamactl invocation, stored on the AppContext.

    Attributes:
        config_path: The TOML file that was loaded, if any.
        debug_bus: Let dbus-fast debug records through when verbose.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "AGAMACTL_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- Output and logging ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    debug_bus: bool = False

    # --- TOML sections ---
    bus: BusConfig = Field(default_factory=BusConfig)
    interfaces: InterfacesConfig = Field(default_factory=InterfacesConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        start: Path | None = None,
        bus_type: str | None = None,
        bus_address: str | None = None,
        **cli_flags: Any,
    ) -> AgamaSettings:
        """Build settings for a CLI run.

        An explicit *config_path* must exist; otherwise the file is
        discovered from *start* (default: cwd).

        Raises:
            click.ClickException: The config file is missing or invalid.
        """
        if config_path:
            toml_path: Path | None = Path(config_path)
            if not toml_path.is_file():
                msg = f"Config file not found: {config_path}"
                raise click.ClickException(msg)
        else:
            toml_path = find_config(start)

        overrides = {key: value for key, value in cli_flags.items() if value is not None}
        bus = {
            key: value
            for key, value in (("type", bus_type), ("address", bus_address))
            if value is not None
        }
        if bus:
            overrides["bus"] = bus

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None
