import json
from pathlib import Path
from typing import List, Union

import ruamel.yaml
from pydantic import TypeAdapter

from parabootstrap.client.config.provisioning_config_map import ProvisioningConfigMap
from parabootstrap.client.settings import CONF_DIR_PATH
from parabootstrap.provisioning.data_types import AssetSpec

# Use ruamel.yaml to preserve order and comments in .yml file
yaml = ruamel.yaml.YAML()

_asset_specs_adapter = TypeAdapter(List[AssetSpec])


def resolve_conf_path(file_name: Union[str, Path]) -> Path:
    """
    Bare file names live in the conf/ directory; anything with a directory part is taken as given.
    """
    file_path = Path(file_name)
    if file_path.is_absolute() or file_path.parent != Path("."):
        return file_path
    return CONF_DIR_PATH / file_path


def load_provisioning_config_from_file(file_name: Union[str, Path]) -> ProvisioningConfigMap:
    file_path = resolve_conf_path(file_name)
    with open(file_path) as stream:
        data = yaml.load(stream) or {}
    return ProvisioningConfigMap.model_validate(_plain(data))


def load_asset_specs(file_name: Union[str, Path]) -> List[AssetSpec]:
    file_path = resolve_conf_path(file_name)
    with open(file_path) as fd:
        return _asset_specs_adapter.validate_python(json.load(fd))


def _plain(data):
    # ruamel's CommentedMap/CommentedSeq into builtins so pydantic sees plain containers
    if isinstance(data, dict):
        return {str(key): _plain(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_plain(item) for item in data]
    return data
