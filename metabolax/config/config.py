import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any, Optional, TypeVar

import jax.tree as jt
from ruamel.yaml import YAML

from metabolax.types import TreeNamespace, deep_merge, dict_to_namespace

logger = logging.getLogger(__name__)


CONFIG_DIR_ENV_VAR_NAME = "METABOLAX_CONFIG_DIR"
RESOURCE_ROOT = "metabolax.config"


T = TypeVar("T", bound=TreeNamespace)


yaml = YAML(typ="safe")


def _maybe_open_yaml(resource_root: str, stem: str) -> Optional[dict]:
    """Return parsed YAML from package resources, or None if missing."""
    try:
        path = resources.files(resource_root) / f"{stem}.yml"
    except ModuleNotFoundError:
        return None

    if not path.is_file():
        return None

    with resources.as_file(path) as real_path:
        with open(real_path, "r", encoding="utf-8") as f:
            return yaml.load(f) or {}


def get_user_config_dir() -> Optional[Path]:
    """Get user config directory from environment variable, or return None."""
    env_config_dir = os.environ.get(CONFIG_DIR_ENV_VAR_NAME)
    if env_config_dir is None:
        return None
    return Path(env_config_dir).expanduser()


def load_yaml_file(path: str | Path) -> dict[str, Any]:
    """Load a single YAML file as a dict."""
    path = Path(path).expanduser()
    with path.open("r", encoding="utf-8") as f:
        data = yaml.load(f) or {}
    logger.debug(f"Loaded config file `{path}`")
    return data


def load_config(name: str) -> dict[str, Any]:
    """Load a YAML config resource as a dict.

    The packaged `metabolax/config/{name}.yml` provides the defaults. If
    the user config directory (`$METABOLAX_CONFIG_DIR`) contains a file of
    the same name, its contents are merged over the defaults.
    """
    base = _maybe_open_yaml(RESOURCE_ROOT, name)

    user_config_dir = get_user_config_dir()
    user = None
    if user_config_dir is not None:
        upath = user_config_dir / f"{name}.yml"
        if upath.exists():
            user = load_yaml_file(upath)
        else:
            logger.debug(
                f"Config file {name}.yml not found in user config directory "
                f"`{user_config_dir}`; using packaged defaults."
            )

    if base is None and user is None:
        raise ValueError(f"Config '{name}.yml' not found in package resources or user config")

    return deep_merge(base or {}, user or {})


def load_config_as_ns(name: str, to_type: type[T] = TreeNamespace) -> T:
    """Load the contents of a project YAML config file resource as a namespace."""
    return dict_to_namespace(load_config(name), to_type=to_type)


def _normalize_log_level(label: str, lvl: str | int) -> int:
    if isinstance(lvl, str):
        lvl = lvl.strip().upper()
        try:
            lvl = logging.getLevelNamesMapping()[lvl]
        except KeyError:
            raise ValueError(f"Invalid {label} specified in YAML config: {lvl!r}")
    if not isinstance(lvl, int):
        raise ValueError(f"Cannot parse log level {lvl!r}")
    return lvl


def _setup_logging(logging_ns: TreeNamespace) -> TreeNamespace:
    for label in ["file_level", "console_level", "pkg_console_levels"]:
        tree = getattr(logging_ns, label, None)
        if tree is None:
            continue
        tree_normalized = jt.map(
            lambda x: _normalize_log_level(label, x),
            tree,
        )
        setattr(logging_ns, label, tree_normalized)

    return logging_ns
