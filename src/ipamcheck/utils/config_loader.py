"""
Configuration loader with validation using Pydantic.
Supports environment variable substitution for sensitive values.
"""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, validator

from ..processors.allocation_index import RESERVED_HANDLE

SERVICE_ACCOUNT_DIR = "/var/run/secrets/kubernetes.io/serviceaccount"


class KubernetesConfig(BaseModel):
    """Kubernetes API server connection configuration."""
    api_server: str = "https://kubernetes.default.svc"
    token: Optional[str] = None
    token_file: Optional[str] = f"{SERVICE_ACCOUNT_DIR}/token"
    ca_file: Optional[str] = f"{SERVICE_ACCOUNT_DIR}/ca.crt"
    verify_ssl: bool = True
    page_size: int = 500
    timeout: int = 30

    @validator('api_server')
    def validate_api_server(cls, v):
        if not v.startswith(('http://', 'https://')):
            raise ValueError('API server URL must start with http:// or https://')
        return v.rstrip('/')

    @validator('page_size')
    def validate_page_size(cls, v):
        if v < 1:
            raise ValueError('page_size must be positive')
        return v


class CheckConfig(BaseModel):
    """IPAM check behaviour."""
    show_all_ips: bool = False
    show_problem_ips: bool = False
    reserved_handle: str = RESERVED_HANDLE
    snapshot: Optional[str] = None


class OutputConfig(BaseModel):
    """Output configuration."""
    base_path: str = "./outputs"
    create_date_subfolder: bool = True
    file_prefix: str = "ipam_check"
    report_file: Optional[str] = None
    excel_export: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    max_size_mb: int = 50
    backup_count: int = 7
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    console_format: str = "%(message)s"

    @validator('level')
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class RetryConfig(BaseModel):
    """Retry configuration for API calls."""
    max_attempts: int = 3
    initial_delay: float = 1
    backoff_multiplier: float = 2
    max_delay: float = 60

    @validator('max_attempts')
    def validate_max_attempts(cls, v):
        if v < 1:
            raise ValueError('max_attempts must be at least 1')
        return v


class AppConfig(BaseModel):
    """Main application configuration."""
    kubernetes: KubernetesConfig = KubernetesConfig()
    check: CheckConfig = CheckConfig()
    output: OutputConfig = OutputConfig()
    logging: LoggingConfig = LoggingConfig()
    retry: RetryConfig = RetryConfig()


def substitute_env_vars(value: str) -> str:
    """
    Substitute environment variables in a string.
    Format: ${VAR_NAME} or $VAR_NAME
    """
    if not isinstance(value, str):
        return value

    pattern = r'\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)'

    def replacer(match):
        var_name = match.group(1) or match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise ValueError(f"Environment variable '{var_name}' is not set")
        return env_value

    return re.sub(pattern, replacer, value)


def process_dict(d: dict) -> dict:
    """Recursively process dictionary to substitute environment variables."""
    result = {}
    for key, value in d.items():
        if isinstance(value, dict):
            result[key] = process_dict(value)
        elif isinstance(value, list):
            result[key] = [
                process_dict(item) if isinstance(item, dict)
                else substitute_env_vars(item) if isinstance(item, str)
                else item
                for item in value
            ]
        elif isinstance(value, str):
            result[key] = substitute_env_vars(value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to the configuration file; None gives the defaults,
            which target the in-cluster API server

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If environment variables are missing or validation fails
    """
    if config_path is None:
        return AppConfig()

    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    processed_config = process_dict(raw_config)

    return AppConfig(**processed_config)


def create_output_directories(config: AppConfig) -> Path:
    """
    Create the export directory based on configuration.

    Returns:
        Path of the export directory
    """
    from datetime import datetime

    export_path = Path(config.output.base_path)

    if config.output.create_date_subfolder:
        date_folder = datetime.now().strftime("%d-%m-%Y")
        export_path = export_path / date_folder

    export_path.mkdir(parents=True, exist_ok=True)

    if config.logging.file:
        Path(config.logging.file).parent.mkdir(parents=True, exist_ok=True)

    return export_path
