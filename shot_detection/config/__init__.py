"""
Configuration Package for Shot Detection
This package provides centralized configuration for the annotation editor, rendering and service adapters.
"""

from .analysis_config import (
    AnalysisSettings,
    get_analysis_settings,
)

from .visualization_config import (
    get_visualization_config,
    get_tier_colors,
    VISUALIZATION_PRESETS,
    COLOR_PALETTES,
)

from .api_config import (
    get_api_config,
    get_endpoint_url,
    APIEnvironment,
    DEFAULT_ENDPOINTS,
)

__all__ = [
    # Analysis Settings
    'AnalysisSettings',
    'get_analysis_settings',

    # Visualization Configuration
    'get_visualization_config',
    'get_tier_colors',
    'VISUALIZATION_PRESETS',
    'COLOR_PALETTES',

    # API Configuration
    'get_api_config',
    'get_endpoint_url',
    'APIEnvironment',
    'DEFAULT_ENDPOINTS',
]
