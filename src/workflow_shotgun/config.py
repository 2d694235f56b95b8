# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Third-Party Imports
import yaml

# Local Imports
from workflow_shotgun import constants

# ==================================== FUNCTIONS ===================================== #

def resolve_relative_paths(config: Dict, config_dir: Path) -> Dict:
    """Converts any relative paths in the configuration to absolute paths based on 
    the directory of the config file."""
    for key, value in config.items():
        if isinstance(value, str):
            if value.startswith("./") or value.startswith("../"):
                config[key] = (config_dir / value).resolve()
        elif isinstance(value, dict):
            config[key] = resolve_relative_paths(value, config_dir)
    return config


def get_config(
    config_path: Union[str, Path] = constants.DEFAULT_CONFIG
) -> Dict:
    with open(config_path, "r") as file:
        config = yaml.safe_load(file) or {}
    
    config_dir = Path(config_path).resolve().parent
    return resolve_relative_paths(config, config_dir)


def get_section(config: Dict, name: str) -> Dict[str, Any]:
    """Return a nested config section, or an empty dict when it is absent or null."""
    return config.get(name) or {}


def override(config: Dict, **values: Optional[Any]) -> Dict:
    """Return a copy of `config` with every non-None keyword applied on top."""
    merged = dict(config)
    merged.update({k: v for k, v in values.items() if v is not None})
    return merged
