from edgeconsent.core.config.manager import ConfigManager
from edgeconsent.core.config.models import AppConfig, LoggingConfig
from edgeconsent.core.config.paths import ConfigFsPaths

__all__ = ["AppConfig", "ConfigFsPaths", "ConfigManager", "LoggingConfig"]
