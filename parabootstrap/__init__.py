import logging
from datetime import datetime
from os import makedirs, path
from pathlib import Path
from typing import Optional

from parabootstrap.logger.logger import ParabootstrapLogger

# Loggers created after import are ParabootstrapLogger instances, which adds `network()`.
logging.setLoggerClass(ParabootstrapLogger)

_prefix_path = None


def root_path() -> Path:
    from os.path import join, realpath
    return Path(realpath(join(__file__, "../../")))


def prefix_path() -> str:
    global _prefix_path
    if _prefix_path is None:
        from os.path import join, realpath
        _prefix_path = realpath(join(__file__, "../../"))
    return _prefix_path


def set_prefix_path(p: str):
    global _prefix_path
    _prefix_path = p


def template_path(file_name: str) -> Path:
    return Path(__file__).parent / "templates" / file_name


def get_logging_conf_path(conf_filename: str) -> Path:
    """
    Logging config lookup order: `<prefix>/conf/<conf_filename>`, then the template shipped with the package.
    """
    conf_path = Path(prefix_path()) / "conf" / conf_filename
    if conf_path.exists():
        return conf_path
    return template_path(conf_filename)


def init_logging(conf_filename: str = "parabootstrap_logs.yml",
                 override_log_level: Optional[str] = None,
                 log_file_name: str = "parabootstrap"):
    import io
    import logging.config
    from typing import Dict

    from ruamel.yaml import YAML

    # Do not raise exceptions during log handling
    logging.raiseExceptions = False

    makedirs(path.join(prefix_path(), "logs"), exist_ok=True)

    file_path: Path = get_logging_conf_path(conf_filename)
    yaml_parser: YAML = YAML()
    with open(file_path) as fd:
        yml_source: str = fd.read()
        yml_source = yml_source.replace("$PROJECT_DIR", prefix_path())
        yml_source = yml_source.replace("$DATETIME", datetime.now().strftime("%Y-%m-%d-%H-%M-%S"))
        yml_source = yml_source.replace("$LOG_FILE_NAME", log_file_name)
        io_stream: io.StringIO = io.StringIO(yml_source)
        config_dict: Dict = yaml_parser.load(io_stream)
        if override_log_level is not None and "loggers" in config_dict:
            for logger in config_dict["loggers"]:
                config_dict["loggers"][logger]["level"] = override_log_level
        logging.config.dictConfig(config_dict)
