"""
function_wrapper/utils/settings.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single source of truth* for runtime configuration
of the function wrapper.

It is responsible for:
- Defining all supported configuration fields (via Pydantic BaseSettings)
- Loading default values from parameters/parameters.yaml
- Overriding defaults with environment variables (FUNCTION_WRAPPER_*)
- Honouring the platform's delimiter variables (START_DELIMITER / END_DELIMITER)
- Exposing a cached, fully-validated Settings object to the wrapper

LOAD & PRECEDENCE MODEL
-----------------------
Configuration is loaded in the following order (last wins):

1) YAML defaults from:
       parameters/parameters.yaml
2) Environment variables:
       FUNCTION_WRAPPER_*
       START_DELIMITER, END_DELIMITER (no prefix; set by the host)

Empty environment values are ignored, so an exported but empty
START_DELIMITER falls back to the default delimiter.

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- Parsing the invocation arguments
- Normalizing handler results
- Writing the response

It should only define *configuration structure and loading rules*.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import structlog
import yaml
from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemas.policy_schema import AdapterPolicy

logger = structlog.get_logger(__name__)

PARAMETERS_PATH = Path(__file__).resolve().parents[2] / "parameters" / "parameters.yaml"

DEFAULT_START_DELIMITER = "<<<<<<<<<<<<<<<response<<<<<<<<<<<<<<<"
DEFAULT_END_DELIMITER = ">>>>>>>>>>>>>>>response>>>>>>>>>>>>>>>"


class Settings(BaseSettings):
    """
    Runtime settings for the function wrapper.

    Load order / precedence:
        1) YAML defaults (parameters/parameters.yaml)
        2) Environment variables (FUNCTION_WRAPPER_*, START_DELIMITER, END_DELIMITER)
    """

    model_config = SettingsConfigDict(
        env_prefix="FUNCTION_WRAPPER_",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    # Service metadata
    service_name: str = "function_wrapper"
    environment: str = "local"
    log_level: str = "INFO"

    # Handler reference, "module:attribute"
    handler: str = "main:main"

    # Response framing
    start_delimiter: str = Field(
        default=DEFAULT_START_DELIMITER,
        validation_alias=AliasChoices("START_DELIMITER", "FUNCTION_WRAPPER_START_DELIMITER", "start_delimiter"),
    )
    end_delimiter: str = Field(
        default=DEFAULT_END_DELIMITER,
        validation_alias=AliasChoices("END_DELIMITER", "FUNCTION_WRAPPER_END_DELIMITER", "end_delimiter"),
    )

    # Adapter policy (see schemas/policy_schema.py)
    framed: bool = True
    bytes_status_code: Literal[200, 202] = 202
    include_body_on_error: bool = True
    unclassified_is_error: bool = False

    # Host bridge
    host_command: List[str] = Field(
        default_factory=lambda: ["./compiled_function"],
        description="Command line of the wrapped function executable, run by the host bridge.",
    )
    host_timeout_seconds: Optional[float] = None

    def policy(self) -> AdapterPolicy:
        return AdapterPolicy(
            framed=self.framed,
            bytes_status_code=self.bytes_status_code,
            include_body_on_error=self.include_body_on_error,
            unclassified_is_error=self.unclassified_is_error,
        )


@lru_cache(maxsize=1)
def _load_yaml_parameters() -> Dict[str, Any]:
    """
    Load base configuration from parameters/parameters.yaml.

    The file is optional: a missing or malformed file yields no defaults.
    """
    if not PARAMETERS_PATH.exists():
        logger.debug("parameters_yaml_missing", expected=str(PARAMETERS_PATH))
        return {}

    try:
        with PARAMETERS_PATH.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(
                "parameters_yaml_not_dict",
                path=str(PARAMETERS_PATH),
                type=type(data).__name__,
            )
            return {}
        logger.debug("parameters_yaml_loaded", path=str(PARAMETERS_PATH))
        return data
    except (OSError, yaml.YAMLError) as exc:
        logger.error("parameters_yaml_load_error", path=str(PARAMETERS_PATH), error=str(exc))
        return {}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Construct and return the final validated Settings object.

    Cached (singleton per process). Code needing configuration should call
    this function rather than instantiate Settings() directly.
    """
    # 1) YAML defaults
    yaml_data = _load_yaml_parameters()

    # 2) env overrides (partial)
    try:
        env_settings = Settings()
        env_data = env_settings.model_dump(exclude_unset=True)
        logger.debug("settings_loaded_env_only_partial", fields=list(env_data.keys()))
    except ValidationError as exc:
        logger.warning("settings_env_validation_error", errors=exc.errors())
        env_data = {}

    # 3) merge + final validation
    merged: Dict[str, Any] = {**yaml_data, **env_data}
    settings = Settings.model_validate(merged)

    logger.debug(
        "settings_loaded",
        environment=settings.environment,
        service_name=settings.service_name,
        handler=settings.handler,
        framed=settings.framed,
        bytes_status_code=settings.bytes_status_code,
        include_body_on_error=settings.include_body_on_error,
        unclassified_is_error=settings.unclassified_is_error,
    )

    return settings
