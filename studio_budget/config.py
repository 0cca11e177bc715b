"""
Configuration loader for Studio Budget.

Loads settings from budget_config.yaml and provides typed access
to all configuration sections.
"""
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional
from functools import lru_cache

import yaml


# Default config path, shipped next to this module
DEFAULT_CONFIG_PATH = Path(__file__).parent / "budget_config.yaml"

ROLLUP_POLICIES = ("bottom_up", "source_amounts")
SELECTOR_LEVELS = ("estimate", "group", "section", "subsection")


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class BudgetConfig:
    """
    Configuration manager for Studio Budget.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

        if self.rollup_policy not in ROLLUP_POLICIES:
            raise ConfigurationError(
                f"Unknown rollup policy '{self.rollup_policy}'. "
                f"Expected one of: {', '.join(ROLLUP_POLICIES)}"
            )
        if self.default_level not in SELECTOR_LEVELS:
            raise ConfigurationError(
                f"Unknown selector default level '{self.default_level}'"
            )

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        # Clear the cached singleton to force reload on next get_config()
        get_config.cache_clear()

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # Rollup
    # =========================================================================

    @property
    def rollup(self) -> dict:
        """Rollup configuration."""
        return self._config.get("rollup") or {}

    @property
    def rollup_policy(self) -> str:
        """Amount policy for parent levels: 'bottom_up' or 'source_amounts'."""
        return self.rollup.get("policy", "bottom_up")

    @property
    def rollup_tolerance(self) -> Decimal:
        """Absolute tolerance for invariant validation."""
        try:
            return Decimal(str(self.rollup.get("tolerance", "0.01")))
        except InvalidOperation:
            raise ConfigurationError(
                f"Invalid rollup tolerance: {self.rollup.get('tolerance')!r}"
            )

    # =========================================================================
    # Selector
    # =========================================================================

    @property
    def selector(self) -> dict:
        """Allocation selector configuration."""
        return self._config.get("selector") or {}

    @property
    def default_level(self) -> str:
        """Level the selector starts at when nothing is restored."""
        return self.selector.get("default_level", "group")

    # =========================================================================
    # Budget Status
    # =========================================================================

    @property
    def budget_status(self) -> dict:
        """Budget status thresholds."""
        return self._config.get("budget_status") or {}

    @property
    def warning_percent(self) -> float:
        """Percent spent at which a node is flagged as 'warning'."""
        return float(self.budget_status.get("warning_percent", 90))

    # =========================================================================
    # Display
    # =========================================================================

    @property
    def display(self) -> dict:
        """Display configuration."""
        return self._config.get("display") or {}

    @property
    def currency_config(self) -> dict:
        """Currency formatting configuration."""
        return self.display.get("currency", {
            "symbol": "KES",
            "decimal_places": 2,
            "thousands_separator": ","
        })

    # =========================================================================
    # Logging
    # =========================================================================

    @property
    def logging(self) -> dict:
        """Logging configuration."""
        return self._config.get("logging") or {}

    @property
    def log_level(self) -> str:
        return str(self.logging.get("level", "INFO")).upper()

    @property
    def log_format(self) -> str:
        return self.logging.get(
            "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> BudgetConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        BudgetConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return BudgetConfig(path)


def reload_config() -> BudgetConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()
