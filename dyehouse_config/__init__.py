"""
dyehouse_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the runtime way to obtain ``EngineParameters`` through
    ``get_active_parameters()``.  Engines never read files; services load
    parameters once and inject them.

Architecture position:
    Configuration -- YAML-driven, validated before use.  Sits beside
    ``dyehouse_kernel``; the kernel MUST NEVER import from here.  Engines
    may import ``dyehouse_config.schema`` for the parameter type only.

Failure modes:
    - ``FileNotFoundError`` -- no parameter set with the requested name.
    - ``InvalidEngineParameterError`` -- the set failed parsing or
      validation.

Audit relevance:
    Every successful ``get_active_parameters()`` call emits a
    ``DYEHOUSE_CONFIG_TRACE`` log entry with the set name, version and
    checksum, tying every report back to the parameters it was computed
    with.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dyehouse_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_engine_parameters,
)
from dyehouse_config.schema import DEFAULT_PARAMETERS, EngineParameters
from dyehouse_config.validator import validate_parameters

_logger = logging.getLogger("dyehouse_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_parameters(
    name: str = "default",
    config_dir: Path | None = None,
) -> EngineParameters:
    """Load, validate and return the named engine parameter set.

    Args:
        name: Parameter set name; resolves to ``<config_dir>/<name>.yaml``.
        config_dir: Override path to the sets directory.
            Defaults to dyehouse_config/sets/.

    Raises:
        FileNotFoundError: If the set does not exist.
        InvalidEngineParameterError: If parsing or validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"

    data = load_yaml_file(path)
    params = parse_engine_parameters(data)
    validate_parameters(params).raise_if_invalid()

    _logger.info(
        "DYEHOUSE_CONFIG_TRACE",
        extra={
            "trace_type": "DYEHOUSE_CONFIG_TRACE",
            "config_name": params.name,
            "config_version": params.version,
            "checksum": compute_checksum(data),
            "source": str(path),
        },
    )
    return params


__all__ = [
    "DEFAULT_PARAMETERS",
    "EngineParameters",
    "get_active_parameters",
    "validate_parameters",
]
