from services.common.core.logging_config import setup_logging as common_setup_logging

from ..config import GatewayConfig


def setup_logging(gateway_config: GatewayConfig) -> None:
    """
    Load the YAML logging config named by LOG_CONFIG_PATH and initialize logging.
    """
    common_setup_logging(gateway_config.LOG_CONFIG_PATH, level=gateway_config.LOG_LEVEL)
