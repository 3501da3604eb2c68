"""Build metabolic rate engines from YAML configuration.

An engine config has two top-level keys:

    engine:
      gates: {activation: true, maintenance: true, ...}
      basal_coefficient: 1.51
      maintenance_length_dependence: [[0.0, 0.5], [1.0, 1.0], ...]
      ...
    muscles:
      - {muscle_name: soleus, mass: 0.4, slow_twitch_ratio: 0.8}
      - {muscle_name: vastus, max_isometric_force: 5000, optimal_fiber_length: 0.09}

A muscle record gives either its `mass`, or the `max_isometric_force` and
`optimal_fiber_length` from which the mass is estimated.
"""

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Optional

from metabolax.config.config import load_config, load_yaml_file
from metabolax.errors import ConfigurationError
from metabolax.metabolics.curves import PiecewiseLinearFunction
from metabolax.metabolics.engine import MetabolicRateEngine
from metabolax.metabolics.engine_config import EngineConfig, MetabolicRateGates, ReportMode
from metabolax.metabolics.parameters import MetabolicMuscleParameter, ParameterTable
from metabolax.types import deep_merge

logger = logging.getLogger(__name__)


DEFAULT_ENGINE_CONFIG_NAME = "metabolics"

_GATE_KEYS = ("activation", "maintenance", "shortening", "basal", "mechanical_work")
_ENGINE_KEYS = (
    "name",
    "gates",
    "use_force_dependent_shortening_constant",
    "normalize_mechanical_work_by_mass",
    "basal_coefficient",
    "basal_exponent",
    "maintenance_length_dependence",
    "report_mode",
)
_MASS_ESTIMATE_KEYS = ("max_isometric_force", "optimal_fiber_length")


def _check_keys(section: str, d: Mapping[str, Any], allowed: Sequence[str]) -> None:
    unknown = sorted(set(d) - set(allowed))
    if unknown:
        raise ConfigurationError(f"Unknown keys in {section} config: {unknown}")


def _flag(key: str, value: Any) -> bool:
    # YAML 1.2 loads `off`, `no` and quoted booleans as strings
    if not isinstance(value, bool):
        raise ConfigurationError(f"{key} must be true or false, got {value!r}")
    return value


def engine_config_from_dict(d: Mapping[str, Any]) -> EngineConfig:
    """Construct an `EngineConfig` from the `engine` section of a config."""
    _check_keys("engine", d, _ENGINE_KEYS)
    kwargs: dict[str, Any] = {}

    gates = d.get("gates")
    if gates is not None:
        _check_keys("gates", gates, _GATE_KEYS)
        kwargs["gates"] = MetabolicRateGates(
            **{k: _flag(f"gates.{k}", v) for k, v in gates.items()}
        )

    for key in ("use_force_dependent_shortening_constant", "normalize_mechanical_work_by_mass"):
        if key in d:
            kwargs[key] = _flag(key, d[key])

    for key in ("basal_coefficient", "basal_exponent"):
        if key in d:
            try:
                kwargs[key] = float(d[key])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"{key} must be a number, got {d[key]!r}") from e

    if d.get("maintenance_length_dependence") is not None:
        kwargs["maintenance_length_dependence"] = PiecewiseLinearFunction.from_points(
            d["maintenance_length_dependence"]
        )

    if "report_mode" in d:
        try:
            kwargs["report_mode"] = ReportMode(d["report_mode"])
        except ValueError as e:
            raise ConfigurationError(
                f"report_mode must be one of {[m.value for m in ReportMode]}, "
                f"got {d['report_mode']!r}"
            ) from e

    if "name" in d:
        kwargs["name"] = str(d["name"])

    return EngineConfig(**kwargs)


def muscle_parameter_from_dict(record: Mapping[str, Any]) -> MetabolicMuscleParameter:
    """Construct one `MetabolicMuscleParameter` from a muscle record."""
    record = dict(record)
    try:
        name = record.pop("muscle_name")
    except KeyError as e:
        raise ConfigurationError(f"Muscle record is missing `muscle_name`: {record}") from e

    try:
        if "mass" in record:
            return MetabolicMuscleParameter(muscle_name=name, **record)
        if all(k in record for k in _MASS_ESTIMATE_KEYS):
            return MetabolicMuscleParameter.from_muscle_properties(name, **record)
    except TypeError as e:
        raise ConfigurationError(f"Invalid record for muscle '{name}': {e}") from e

    raise ConfigurationError(
        f"Muscle '{name}' needs either `mass` or both of {list(_MASS_ESTIMATE_KEYS)}"
    )


def parameter_table_from_dict(records: Sequence[Mapping[str, Any]]) -> ParameterTable:
    """Construct a `ParameterTable` from the `muscles` section of a config."""
    return ParameterTable([muscle_parameter_from_dict(r) for r in records or ()])


def load_engine(source: Optional[str | Path] = None) -> MetabolicRateEngine:
    """Load an unattached engine.

    Args:
        source: A path to a YAML file, or the name of a config resource.
            Its contents are merged over the packaged defaults. If `None`,
            only the defaults are used.
    """
    config = load_config(DEFAULT_ENGINE_CONFIG_NAME)

    if source is not None:
        path = Path(source).expanduser()
        if path.suffix in (".yml", ".yaml") or path.exists():
            overrides = load_yaml_file(path)
        else:
            overrides = load_config(str(source))
        config = deep_merge(config, overrides)

    _check_keys("metabolics", config, ("engine", "muscles"))
    engine_config = engine_config_from_dict(config.get("engine") or {})
    table = parameter_table_from_dict(config.get("muscles") or [])
    logger.info(
        f"Loaded metabolic engine config '{engine_config.name}' with {len(table)} muscles"
    )
    return MetabolicRateEngine(engine_config, table)
