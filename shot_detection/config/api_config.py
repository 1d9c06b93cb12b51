"""
API Configuration Module
This module contains the endpoints and request settings for the detection and persistence services.
"""

from typing import Dict, Any
import os
from enum import Enum

class APIEnvironment(Enum):
    """API deployment environments."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"

# Default API Endpoints
DEFAULT_ENDPOINTS = {
    'health_check': '/health',
    'analyze_document': '/analyze_document',
    'analyze': '/analyze',
    'save_result': '/targets/paper-results',
}

# Environment-specific configurations
ENVIRONMENT_CONFIGS = {
    APIEnvironment.DEVELOPMENT: {
        'base_url': 'http://localhost:8000',
        'persistence_url': 'http://localhost:8001',
        'timeout': 30.0,
        'verify_ssl': False,
        'use_document_analysis': True,
    },
    APIEnvironment.PRODUCTION: {
        'base_url': 'https://detector.example.invalid',
        'persistence_url': 'https://api.example.invalid',
        'timeout': 60.0,
        'verify_ssl': True,
        'use_document_analysis': True,
    },
}

# Header Configuration
DEFAULT_HEADERS = {
    'Accept': 'application/json',
    'User-Agent': 'ShotDetection/1.0',
}

# Upload Configuration
UPLOAD_CONFIG = {
    'file_field': 'file',
    'default_filename': 'target.jpg',
    'content_type': 'image/jpeg',
}

# Environment Variable Configuration
ENV_VAR_MAPPING = {
    'SHOT_DETECTION_API_BASE_URL': ('base_url', str),
    'SHOT_DETECTION_API_PERSISTENCE_URL': ('persistence_url', str),
    'SHOT_DETECTION_API_TOKEN': ('token', str),
    'SHOT_DETECTION_API_TIMEOUT': ('timeout', float),
    'SHOT_DETECTION_API_SSL_VERIFY': ('verify_ssl', bool),
    'SHOT_DETECTION_API_DOCUMENT_ANALYSIS': ('use_document_analysis', bool),
}

def get_api_config(environment: APIEnvironment = APIEnvironment.DEVELOPMENT,
                   **overrides) -> Dict[str, Any]:
    """
    Get API configuration for a specific environment with optional overrides.

    Args:
        environment: Target environment
        **overrides: Configuration overrides

    Returns:
        Complete API configuration dictionary
    """
    config = ENVIRONMENT_CONFIGS.get(environment, ENVIRONMENT_CONFIGS[APIEnvironment.DEVELOPMENT]).copy()

    config['endpoints'] = DEFAULT_ENDPOINTS.copy()
    config['headers'] = DEFAULT_HEADERS.copy()
    config['upload'] = UPLOAD_CONFIG.copy()
    config.setdefault('token', None)

    # Apply environment variable overrides
    config.update(_load_environment_overrides())

    # Apply function parameter overrides
    config.update(overrides)

    return config

def _load_environment_overrides() -> Dict[str, Any]:
    """Load configuration from environment variables."""
    overrides = {}

    for env_var, (config_key, value_type) in ENV_VAR_MAPPING.items():
        env_value = os.getenv(env_var)
        if env_value is not None:
            try:
                if value_type == bool:
                    overrides[config_key] = env_value.lower() in ('true', '1', 'yes', 'on')
                elif value_type == float:
                    overrides[config_key] = float(env_value)
                else:
                    overrides[config_key] = env_value
            except (ValueError, TypeError):
                # Skip invalid environment variable values
                continue

    return overrides

def get_endpoint_url(base_url: str, endpoint_key: str) -> str:
    """
    Construct full endpoint URL.

    Args:
        base_url: Base API URL
        endpoint_key: Key from DEFAULT_ENDPOINTS

    Returns:
        Full endpoint URL
    """
    endpoint_path = DEFAULT_ENDPOINTS.get(endpoint_key)

    if not endpoint_path:
        raise ValueError(f"Unknown endpoint key: {endpoint_key}")

    return f"{base_url.rstrip('/')}/{endpoint_path.lstrip('/')}"
