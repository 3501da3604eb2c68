from metabolax.types import TreeNamespace

from .config import (
    CONFIG_DIR_ENV_VAR_NAME,
    _setup_logging,
    load_config,
    load_config_as_ns,
    load_yaml_file,
)
from .engine import (
    engine_config_from_dict,
    load_engine,
    muscle_parameter_from_dict,
    parameter_table_from_dict,
)

# Project-wide logging settings, from `logging.yml` (user config dir overrides
# the packaged defaults).
LOGGING: TreeNamespace = _setup_logging(load_config_as_ns("logging"))
