"""
Export configuration.

Options come from a properties file (``export.properties`` in the working
directory by default), environment variables and command-line flags, in
increasing order of precedence. Every option has a key in the file; the
environment variable name is the key in upper case with dots replaced by
underscores (``export.source.password`` -> ``EXPORT_SOURCE_PASSWORD``).

Example file::

    export.source.url=dbhost:1521/orclpdb1
    export.source.user=scott
    export.source.password=tiger
    export.exclude.tables=audit_log,tmp_import
    export.exclude.columns=customers.photo
    export.parallel.threads=4
    export.target.path=/data/export
    export.target.zip=no
"""

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .errors import ConfigurationError
from .scripts import DEFAULT_IMPORT_DIR
from .source import SOURCE_DRIVERS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "export.properties"

SOURCE_URL = "export.source.url"
SOURCE_USER = "export.source.user"
SOURCE_PASSWORD = "export.source.password"
SOURCE_DRIVER = "export.source.driver"
EXCLUDE_TABLES = "export.exclude.tables"
EXCLUDE_COLUMNS = "export.exclude.columns"
PARALLEL_THREADS = "export.parallel.threads"
TARGET_PATH = "export.target.path"
TARGET_ZIP = "export.target.zip"
TARGET_IMPORT_DIR = "export.target.import_dir"

ALLOWED_KEYS = frozenset({
    SOURCE_URL,
    SOURCE_USER,
    SOURCE_PASSWORD,
    SOURCE_DRIVER,
    EXCLUDE_TABLES,
    EXCLUDE_COLUMNS,
    PARALLEL_THREADS,
    TARGET_PATH,
    TARGET_ZIP,
    TARGET_IMPORT_DIR,
})

YES = "yes"
NO = "no"

DEFAULT_DRIVER = "oracle"
DEFAULT_THREADS = 3


def env_var_name(key: str) -> str:
    """Environment variable overriding a key, e.g. ``EXPORT_TARGET_PATH``."""
    return key.upper().replace(".", "_")


@dataclass
class ExportConfig:
    """
    Validated export options.

    Table and column names in the exclusion sets are lower-cased.
    """

    source_url: str
    source_user: str
    source_password: str = field(repr=False)
    target_path: str
    source_driver: str = DEFAULT_DRIVER
    exclude_tables: frozenset[str] = frozenset()
    exclude_columns: dict[str, frozenset[str]] = field(default_factory=dict)
    parallel_threads: int = DEFAULT_THREADS
    zip: bool = True
    import_dir: str = DEFAULT_IMPORT_DIR

    @classmethod
    def from_properties(cls, props: Mapping[str, str]) -> "ExportConfig":
        """
        Build and validate a configuration from raw key/value pairs

        Args:
            props: Option keys (``export.*``) mapped to their string values

        Returns:
            Validated ExportConfig

        Raises:
            ConfigurationError: If a key is unknown, a required key is
                missing or a value is invalid
        """
        for key in props:
            if key not in ALLOWED_KEYS:
                raise ConfigurationError(f"Property '{key}' is not allowed in configuration")

        def required(key: str) -> str:
            value = props.get(key)
            if value is None:
                raise ConfigurationError(f"Missing property {key}")
            return value

        config = cls(
            source_url=required(SOURCE_URL),
            source_user=required(SOURCE_USER),
            source_password=required(SOURCE_PASSWORD),
            target_path=required(TARGET_PATH),
            source_driver=parse_driver(props.get(SOURCE_DRIVER, DEFAULT_DRIVER)),
            exclude_tables=parse_exclude_tables(props.get(EXCLUDE_TABLES, "")),
            exclude_columns=parse_exclude_columns(props.get(EXCLUDE_COLUMNS, "")),
            parallel_threads=parse_threads(props.get(PARALLEL_THREADS)),
            zip=parse_yes_no(TARGET_ZIP, props.get(TARGET_ZIP, YES)),
            import_dir=props.get(TARGET_IMPORT_DIR, DEFAULT_IMPORT_DIR),
        )
        config.log_settings()
        return config

    def excluded_columns_for_table(self, table_name: str) -> frozenset[str]:
        return self.exclude_columns.get(table_name.lower(), frozenset())

    def is_table_excluded(self, table_name: str) -> bool:
        return table_name.lower() in self.exclude_tables

    def log_settings(self) -> None:
        logger.info(f"source: {self.source_driver} {self.source_url!r} as {self.source_user!r}")
        for table in sorted(self.exclude_tables):
            logger.info(f"exclude table: '{table}'")
        for table, columns in sorted(self.exclude_columns.items()):
            logger.info(f"exclude columns in table '{table}': {', '.join(sorted(columns))}")
        logger.info(
            f"target: {self.target_path!r}, zip={self.zip}, "
            f"threads={self.parallel_threads}, import_dir={self.import_dir!r}"
        )


def parse_driver(value: str) -> str:
    driver = value.strip().lower()
    if driver not in SOURCE_DRIVERS:
        raise ConfigurationError(
            f"Allowed values for {SOURCE_DRIVER} are: {', '.join(sorted(SOURCE_DRIVERS))}"
        )
    return driver


def parse_exclude_tables(value: str) -> frozenset[str]:
    """Comma-separated table names, case-insensitive."""
    return frozenset(
        name.strip() for name in value.lower().split(",") if name.strip()
    )


def parse_exclude_columns(value: str) -> dict[str, frozenset[str]]:
    """
    Parse ``table1.column1,table1.column2,table2.column1``

    Returns:
        Lower-cased table name mapped to its lower-cased column names

    Raises:
        ConfigurationError: If an entry is not of the form table.column
    """
    columns: dict[str, set[str]] = {}
    for entry in value.lower().split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(".")
        if len(parts) != 2 or not all(parts):
            raise ConfigurationError(
                f"Invalid entry '{entry}' in {EXCLUDE_COLUMNS}, format: table1.column1"
            )
        table, column = parts
        columns.setdefault(table, set()).add(column)
    return {table: frozenset(names) for table, names in columns.items()}


def parse_threads(value: str | int | None) -> int:
    if value is None:
        return DEFAULT_THREADS
    try:
        threads = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{PARALLEL_THREADS} must be an integer, got {value!r}") from None
    if threads <= 0:
        raise ConfigurationError(f"{PARALLEL_THREADS} must be greater than 0")
    return threads


def parse_yes_no(key: str, value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    text = value.strip()
    if text == YES:
        return True
    if text == NO:
        return False
    raise ConfigurationError(f"Allowed values for {key} are '{NO}' or '{YES}'")


def load_properties(path: str | Path) -> dict[str, str]:
    """
    Read a properties file

    ``key=value`` and ``key: value`` lines; ``#`` and ``!`` start comments.
    Keys keep their case, values are taken literally.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    parser = configparser.ConfigParser(
        interpolation=None,
        comment_prefixes=("#", "!"),
        delimiters=("=", ":"),
        strict=False,
    )
    parser.optionxform = str
    try:
        with open(path, encoding="utf-8") as f:
            parser.read_string("[properties]\n" + f.read(), source=str(path))
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except configparser.Error as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e
    return dict(parser.items("properties"))


def load_config(
    path: str | Path | None = None,
    overrides: Mapping[str, str | None] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ExportConfig:
    """
    Load the configuration from file, environment and overrides

    Args:
        path: Properties file. If None, ``export.properties`` in the working
            directory is used when it exists.
        overrides: Values from command-line flags keyed by option key;
            None values are ignored
        environ: Environment to read (default: ``os.environ``)

    Returns:
        Validated ExportConfig

    Raises:
        ConfigurationError: If the file is missing or the result is invalid
    """
    environ = os.environ if environ is None else environ

    if path is not None:
        props = load_properties(path)
        logger.info(f"Loaded configuration from {path}")
    elif Path(DEFAULT_CONFIG_FILE).is_file():
        props = load_properties(DEFAULT_CONFIG_FILE)
        logger.info(f"Loaded configuration from {DEFAULT_CONFIG_FILE}")
    else:
        props = {}

    for key in ALLOWED_KEYS:
        value = environ.get(env_var_name(key))
        if value is not None:
            props[key] = value

    for key, value in (overrides or {}).items():
        if value is not None:
            props[key] = str(value)

    return ExportConfig.from_properties(props)


def assert_empty_directory(path: str | Path) -> None:
    """
    Check that the target exists, is a directory and is empty

    Existing exports are never overwritten.

    Raises:
        ConfigurationError: If any of the checks fails
    """
    directory = Path(path)
    logger.debug(f"Checking target directory {directory}")
    if not directory.exists():
        raise ConfigurationError(f"Target path {directory} doesn't exist")
    if not directory.is_dir():
        raise ConfigurationError(f"Target path {directory} is not a directory")
    try:
        has_entries = any(directory.iterdir())
    except OSError as e:
        raise ConfigurationError(f"Error reading target directory {directory}: {e}") from e
    if has_entries:
        raise ConfigurationError(f"The target directory {directory} is not empty")
