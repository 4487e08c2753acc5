from parabootstrap import root_path

CONF_DIR_PATH = root_path() / "conf"
DEFAULT_CONFIG_FILE_NAME = "parabootstrap_conf.yml"
DEFAULT_ASSETS_FILE_NAME = "assets.json"
DEFAULT_METADATA_FILE_NAME = "asset-metadata.json"
