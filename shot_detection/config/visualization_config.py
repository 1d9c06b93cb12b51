"""
Visualization Configuration Module
This module contains marker colors and rendering constants for the annotation canvas.
"""

import copy
from typing import Dict, Any

# Color Palettes
COLOR_PALETTES = {
    'default': {
        'primary': '#10B981',      # Green (manual and high confidence)
        'warning': '#F59E0B',      # Amber (medium confidence)
        'danger': '#EF4444',       # Red (low confidence)
        'info': '#3B82F6',         # Blue (max pair highlight)
        'text': '#FFFFFF',         # White text
        'background': '#000000',   # Letterbox fill
    },
    'high_contrast': {
        'primary': '#00FF00',
        'warning': '#FFFF00',
        'danger': '#FF0000',
        'info': '#00FFFF',
        'text': '#FFFFFF',
        'background': '#000000',
    },
}

# Marker rendering
MARKER_VISUALIZATION = {
    'ring_linewidth': 2.5,
    'ring_alpha': 0.9,
    'halo_offset': 6.0,
    'halo_linewidth': 1.0,
    'halo_alpha': 0.3,
    'crosshair_half_length': 6.0,
    'crosshair_color': '#FFFFFF',
    'crosshair_linewidth': 1.5,
}

# Max-pair line rendering
PAIR_VISUALIZATION = {
    'show_max_pair': True,
    'linewidth': 1.5,
    'linestyle': '--',
    'alpha': 0.8,
}

# Snapshot export
SNAPSHOT_CONFIG = {
    'dpi': 100,
    'format': 'jpeg',
    'quality': 90,
}

# Tier -> palette key
TIER_COLOR_KEYS = {
    'manual': 'primary',
    'high': 'primary',
    'medium': 'warning',
    'low': 'danger',
}

VISUALIZATION_PRESETS = {
    'default': {
        'colors': COLOR_PALETTES['default'],
        'markers': MARKER_VISUALIZATION,
        'pairs': PAIR_VISUALIZATION,
        'snapshot': SNAPSHOT_CONFIG,
    },
    'high_contrast': {
        'colors': COLOR_PALETTES['high_contrast'],
        'markers': {**MARKER_VISUALIZATION, 'ring_linewidth': 3.5},
        'pairs': {**PAIR_VISUALIZATION, 'linewidth': 2.5},
        'snapshot': SNAPSHOT_CONFIG,
    },
}


def get_visualization_config(preset: str = 'default', **overrides) -> Dict[str, Any]:
    """
    Get visualization configuration with preset and overrides.

    Args:
        preset: Name of the preset configuration
        **overrides: Configuration overrides

    Returns:
        Complete visualization configuration dictionary
    """
    if preset not in VISUALIZATION_PRESETS:
        preset = 'default'

    config = copy.deepcopy(VISUALIZATION_PRESETS[preset])

    for key, value in overrides.items():
        if key in config and isinstance(config[key], dict) and isinstance(value, dict):
            config[key].update(value)
        else:
            config[key] = value

    return config


def get_tier_colors(preset: str = 'default') -> Dict[str, str]:
    """Map each confidence tier name to its marker color."""
    palette = get_visualization_config(preset)['colors']
    return {tier: palette[key] for tier, key in TIER_COLOR_KEYS.items()}
