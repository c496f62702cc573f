from modhub.core.config.manager import ConfigManager, get_config
from modhub.core.config.models import ModularConfig
from modhub.core.config.paths import ConfigFsPaths

__all__ = ["ConfigManager", "ConfigFsPaths", "ModularConfig", "get_config"]
