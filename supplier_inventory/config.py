import os
import configparser
from pathlib import Path
from urllib.parse import quote_plus

from supplier_inventory.exceptions import ConfigError

CONFIG_DIR_ENV = 'SUPPLIER_INVENTORY_CONFIG_DIR'
DATABASE_URL_ENV = 'SUPPLIER_INVENTORY_DATABASE_URL'

# Written to settings.ini on first run and used for any missing option
DEFAULTS = {
    'DATABASE': {
        'url': 'sqlite:///supplier_inventory.db',
        'echo': 'False',
        'pool_size': '5',
        'max_overflow': '10',
        'pool_timeout': '30',
        'pool_recycle': '1800'
    },
    'LOGGING': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'directory': 'logs',
        'max_size_mb': '10',
        'backup_count': '5',
        'console_output': 'True'
    },
    'IMPORT': {
        'namespace': 'inventory',
        'key': 'supplier_data',
        'write_delay_ms': '0',
        'max_retries': '3',
        'backoff_base_seconds': '0.5',
        'backoff_max_seconds': '8.0'
    },
    'AGGREGATION': {
        'unknown_supplier_policy': 'ignore'
    }
}

class Config:
    """Settings for the Supplier Inventory system, read from ``settings.ini``.

    The file lives in ``config/`` or in the directory named by
    ``SUPPLIER_INVENTORY_CONFIG_DIR``, and is created with the defaults
    when missing.
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config_path = Path(os.environ.get(CONFIG_DIR_ENV, 'config')) / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)
        self._config.read_dict(DEFAULTS)

        if self._config_path.exists():
            try:
                self._config.read(self._config_path)
            except configparser.Error as e:
                raise ConfigError(f"Invalid configuration file {self._config_path}: {str(e)}")
        else:
            self._save_config()

        self._initialized = True

    def _save_config(self):
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

    def _read(self, getter, section, key, default):
        try:
            return getter(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get(self, section, key, default=None):
        """Get a configuration value as text."""
        return self._read(self._config.get, section, key, default)

    def get_int(self, section, key, default=None):
        """Get a configuration value as an integer, or ``default`` if invalid."""
        return self._read(self._config.getint, section, key, default)

    def get_float(self, section, key, default=None):
        """Get a configuration value as a float, or ``default`` if invalid."""
        return self._read(self._config.getfloat, section, key, default)

    def get_boolean(self, section, key, default=None):
        """Get a configuration value as a boolean, or ``default`` if invalid."""
        return self._read(self._config.getboolean, section, key, default)

    def set(self, section, key, value):
        """Set a configuration value and save the file."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    def get_db_url(self):
        """SQLAlchemy URL of the local database.

        ``SUPPLIER_INVENTORY_DATABASE_URL`` wins over the file. An empty
        ``url`` option means the URL is assembled from ``engine``, ``host``,
        ``port``, ``database``, ``username`` and ``password``.
        """
        url = os.environ.get(DATABASE_URL_ENV) or self.get('DATABASE', 'url')
        if url:
            return url

        engine = self.get('DATABASE', 'engine', 'postgresql')
        username = quote_plus(self.get('DATABASE', 'username', 'postgres'))
        password = quote_plus(self.get('DATABASE', 'password', ''))
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')
        database = self.get('DATABASE', 'database', 'supplier_inventory')

        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

    @property
    def log_config(self):
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', DEFAULTS['LOGGING']['format']),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def import_config(self):
        """Metafield location of assignment lists and write pacing for imports."""
        return {
            'namespace': self.get('IMPORT', 'namespace', 'inventory'),
            'key': self.get('IMPORT', 'key', 'supplier_data'),
            'write_delay_ms': max(0, self.get_int('IMPORT', 'write_delay_ms', 0)),
            'max_retries': max(0, self.get_int('IMPORT', 'max_retries', 3)),
            'backoff_base_seconds': self.get_float('IMPORT', 'backoff_base_seconds', 0.5),
            'backoff_max_seconds': self.get_float('IMPORT', 'backoff_max_seconds', 8.0)
        }

    @property
    def aggregation_config(self):
        return {
            'unknown_supplier_policy': self.get('AGGREGATION', 'unknown_supplier_policy', 'ignore')
        }

config = Config()
