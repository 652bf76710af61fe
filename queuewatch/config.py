from typing import Dict, Optional
from urllib.parse import urlparse

from .exceptions import ConfigurationError
from .models import Config


class ConfigManager:
    def __init__(self, overrides: Optional[Dict[str, Optional[str]]] = None):
        self._defaults = {
            'base_url': 'http://localhost:8080',
            'poll_interval_ms': '2500',
            'page_limit': '50',
            'history_size': '120',
            'log_level': 'INFO'
        }
        self._values: Dict[str, str] = {}

        for key, value in (overrides or {}).items():
            if value is not None:
                self.set(key, value)

    def get(self, key: str) -> Optional[str]:
        if key in self._values:
            return self._values[key]
        return self._defaults.get(key)

    def set(self, key: str, value) -> None:
        self._values[key] = str(value)

    def list_all(self) -> Dict[str, str]:
        result = self._defaults.copy()
        result.update(self._values)
        return result

    def get_config(self) -> Config:
        config_dict = self.list_all()

        base_url = config_dict['base_url'].rstrip('/')
        parsed = urlparse(base_url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ConfigurationError(f"base_url must be an http(s) URL, got '{config_dict['base_url']}'")

        log_level = config_dict['log_level'].upper()
        if log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ConfigurationError(f"Unknown log_level '{config_dict['log_level']}'")

        return Config(
            base_url=base_url,
            poll_interval_ms=self._positive_int(config_dict, 'poll_interval_ms'),
            page_limit=self._positive_int(config_dict, 'page_limit'),
            history_size=self._positive_int(config_dict, 'history_size'),
            log_level=log_level,
            log_dir=config_dict.get('log_dir') or None
        )

    def _positive_int(self, config_dict: Dict[str, str], key: str) -> int:
        try:
            value = int(config_dict[key])
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got '{config_dict[key]}'")

        if value <= 0:
            raise ConfigurationError(f"{key} must be positive, got {value}")
        return value
