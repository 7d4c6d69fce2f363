import logging
import os
import sys

from gitops_interceptor.utils import config

GITOPS_INTERCEPTOR_CONFIG = "GITOPS_INTERCEPTOR_CONFIG"
GITOPS_INTERCEPTOR_LOG_LEVEL = "GITOPS_INTERCEPTOR_LOG_LEVEL"

LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FMT = "[%(asctime)s] [%(levelname)s] [%(filename)s:%(funcName)s:%(lineno)d] - %(message)s"


def init_env(
    log_level: str | None = None,
    config_file: str | None = None,
    require_config: bool = True,
) -> None:
    # store env configs in environment variables, so child processes
    # inherit a compatible environment
    if log_level:
        os.environ[GITOPS_INTERCEPTOR_LOG_LEVEL] = log_level
    if config_file:
        os.environ[GITOPS_INTERCEPTOR_CONFIG] = config_file

    logging.basicConfig(
        format=LOG_FMT,
        datefmt=LOG_DATEFMT,
        level=getattr(logging, os.environ.get(GITOPS_INTERCEPTOR_LOG_LEVEL, "INFO")),
    )
    # GitPython logs every git command at DEBUG
    logging.getLogger("git").setLevel(logging.WARNING)

    config_file = os.environ.get(GITOPS_INTERCEPTOR_CONFIG)
    if not config_file:
        if require_config:
            logging.fatal("no config file for gitops-interceptor specified")
            sys.exit(1)
        return
    config.init_from_toml(config_file)
