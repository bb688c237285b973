from .component import BaseComponent
from .config import Settings, get_settings
from .exceptions import ComponentError
from .logging import configure_logging, get_logger

__all__ = ["BaseComponent", "Settings", "get_settings", "ComponentError", "configure_logging", "get_logger"]
