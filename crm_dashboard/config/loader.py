"""
Configuration loader for YAML files and the environment.
"""

import os
import yaml
from pathlib import Path
from typing import Union
import logging

from .schema import DashboardConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CRM_DASHBOARD_CONFIG"


class ConfigLoader:
    """Load and save dashboard configurations from various sources."""

    @staticmethod
    def from_yaml(path: Union[str, Path]) -> DashboardConfig:
        """
        Load configuration from a YAML file.

        Parameters
        ----------
        path : Union[str, Path]
            Path to the YAML configuration file.

        Returns
        -------
        DashboardConfig
            Validated dashboard configuration.

        Raises
        ------
        FileNotFoundError
            If the configuration file doesn't exist.
        ValueError
            If the configuration is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f) or {}

        try:
            config = DashboardConfig(**config_dict)
            logger.info(f"Loaded configuration '{config.name}' from {path}")
            return config
        except Exception as e:
            raise ValueError(f"Invalid configuration in {path}: {e}")

    @staticmethod
    def to_yaml(config: DashboardConfig, path: Union[str, Path]) -> None:
        """
        Save configuration to a YAML file.

        Parameters
        ----------
        config : DashboardConfig
            Configuration to save.
        path : Union[str, Path]
            Path to save the YAML file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = config.model_dump(mode="json")

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved configuration '{config.name}' to {path}")

    @staticmethod
    def from_dict(config_dict: dict) -> DashboardConfig:
        """Load configuration from a dictionary."""
        return DashboardConfig(**config_dict)

    @staticmethod
    def from_env() -> DashboardConfig:
        """
        Load configuration for a running service.

        Reads the YAML file named by CRM_DASHBOARD_CONFIG when set,
        otherwise uses defaults. PORT overrides api.port.
        """
        path = os.getenv(CONFIG_ENV_VAR)
        if path:
            config = ConfigLoader.from_yaml(path)
        else:
            config = DashboardConfig()

        port = os.getenv("PORT")
        if port:
            config.api.port = int(port)

        return config

    @staticmethod
    def get_template() -> dict:
        """
        Get a template configuration dictionary with all options documented.

        Returns
        -------
        dict
            Template configuration with default values.
        """
        return {
            "name": "crm_dashboard",
            "description": "Marketing/CRM analytics dashboard",
            "warehouse": {
                "project_id": "my-gcp-project",
                "dataset": "marketing",
                "deals_table": "rd_station__deals",
                "contacts_table": "rd_station__contacts",
                "overview_table": "dashboard_overview_daily",
                "echo": False,
            },
            "forecast": {
                "window_size": 14,
                "band": 0.2,
                "default_lookback_days": 90,
            },
            "listing": {
                "default_lookback_days": 30,
                "default_page_size": 50,
                "max_page_size": 500,
            },
            "api": {
                "host": "0.0.0.0",
                "port": 8080,
                "cors_origins": ["http://localhost:5173", "http://localhost:3000"],
                "allow_methods": ["GET"],
            },
        }
