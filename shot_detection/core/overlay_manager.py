"""
Overlay Manager Component
This module builds the display-space markers drawn over the target image and
renders the edited snapshot handed to the persistence service.

Markers are derived from the annotation set on demand; nothing here holds
annotation state of its own.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Circle
from PIL import Image

from ..config import get_tier_colors, get_visualization_config
from ..utils.geometry_utils import Point2D
from .annotation_store import PointAnnotation
from .coordinate_system import BoundingBox, DisplayTransform, compute_transform

logger = logging.getLogger(__name__)

DEFAULT_MARKER_RADIUS = 12.0
DEFAULT_HIT_BOX_PX = 40.0

@dataclass(frozen=True)
class Marker:
    """A rendered annotation marker in display coordinates."""
    index: int
    id: str
    center: Point2D
    tier: str
    color: str
    radius: float
    hit_box: BoundingBox
    is_manual: bool

def _tier_name(tier: Any) -> str:
    return str(getattr(tier, 'value', tier))

def build_markers(annotations: Sequence[PointAnnotation],
                  transform: DisplayTransform,
                  tiers: Sequence[Any],
                  radius: float = DEFAULT_MARKER_RADIUS,
                  hit_box_px: float = DEFAULT_HIT_BOX_PX,
                  preset: str = 'default') -> List[Marker]:
    """
    Build display-space markers, one per annotation, in rendering order.

    Args:
        annotations: Current annotations
        transform: Image-to-display transform
        tiers: Confidence tier (enum or name) per annotation
        radius: Marker ring radius in display pixels
        hit_box_px: Side of the touch target in display pixels
        preset: Visualization preset supplying tier colors

    Returns:
        List of Marker objects
    """
    if len(tiers) != len(annotations):
        raise ValueError(f"Expected {len(annotations)} tiers, got {len(tiers)}")

    colors = get_tier_colors(preset)
    markers = []
    for index, (annotation, tier) in enumerate(zip(annotations, tiers)):
        center = transform.to_display(annotation.center)
        name = _tier_name(tier)
        markers.append(Marker(
            index=index,
            id=annotation.id,
            center=center,
            tier=name,
            color=colors.get(name, colors['high']),
            radius=radius,
            hit_box=BoundingBox.square(center, hit_box_px),
            is_manual=annotation.is_manual,
        ))
    return markers

def load_image(image: Union[Image.Image, str, bytes]) -> Image.Image:
    """
    Decode an image given as a PIL image, raw bytes or a base64 string.

    Base64 strings may carry a ``data:image/...;base64,`` prefix.

    Raises:
        ValueError: if the data cannot be decoded
    """
    if isinstance(image, Image.Image):
        return image

    data = image
    if isinstance(data, str):
        if data.startswith('data:'):
            data = data.split(',', 1)[-1]
        try:
            data = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 image data: {e}") from e

    try:
        decoded = Image.open(io.BytesIO(data))
        decoded.load()
    except (OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"Could not decode image: {e}") from e
    return decoded

def _draw_marker(ax, marker: Marker, style: dict):
    """Draw ring, halo and crosshair for a single marker."""
    x, y = marker.center.x, marker.center.y

    ax.add_patch(Circle((x, y), marker.radius,
                        fill=False,
                        edgecolor=marker.color,
                        linewidth=style['ring_linewidth'],
                        alpha=style['ring_alpha'],
                        zorder=5))
    ax.add_patch(Circle((x, y), marker.radius + style['halo_offset'],
                        fill=False,
                        edgecolor=marker.color,
                        linewidth=style['halo_linewidth'],
                        alpha=style['halo_alpha'],
                        zorder=4))

    half = style['crosshair_half_length']
    for xs, ys in (((x - half, x + half), (y, y)), ((x, x), (y - half, y + half))):
        ax.add_line(Line2D(xs, ys,
                           color=style['crosshair_color'],
                           linewidth=style['crosshair_linewidth'],
                           zorder=6))

def render_snapshot(image: Union[Image.Image, str, bytes],
                    annotations: Sequence[PointAnnotation],
                    transform: DisplayTransform,
                    tiers: Sequence[Any],
                    max_pair: Optional[Tuple[int, int]] = None,
                    canvas_side: float = 350.0,
                    preset: str = 'default',
                    marker_radius: float = DEFAULT_MARKER_RADIUS) -> str:
    """
    Render the letterboxed image with its markers into a base64 JPEG.

    Args:
        image: Analyzed image (PIL image, raw bytes or base64 string)
        annotations: Annotations to draw
        transform: Image-to-display transform; recomputed from the image size
            when it is the identity
        tiers: Confidence tier per annotation
        max_pair: Indices of the group-size pair to connect, if any
        canvas_side: Output side length in pixels
        preset: Visualization preset

    Returns:
        Base64-encoded JPEG (no data URL prefix)
    """
    config = get_visualization_config(preset)
    colors = config['colors']
    snapshot = config['snapshot']

    picture = load_image(image).convert('RGB')
    if transform.is_identity:
        transform = compute_transform(picture.width, picture.height, canvas_side)

    dpi = snapshot['dpi']
    figure = Figure(figsize=(canvas_side / dpi, canvas_side / dpi), dpi=dpi)
    canvas = FigureCanvasAgg(figure)
    figure.patch.set_facecolor(colors['background'])

    ax = figure.add_axes([0, 0, 1, 1])
    ax.set_xlim(0, canvas_side)
    ax.set_ylim(canvas_side, 0)
    ax.set_facecolor(colors['background'])
    ax.axis('off')

    width, height = transform.displayed_size(picture.width, picture.height)
    ax.imshow(np.asarray(picture),
              extent=(transform.offset_x, transform.offset_x + width,
                      transform.offset_y + height, transform.offset_y),
              zorder=1)

    markers = build_markers(annotations, transform, tiers,
                            radius=marker_radius, preset=preset)
    for marker in markers:
        _draw_marker(ax, marker, config['markers'])

    pair_style = config['pairs']
    if max_pair is not None and pair_style['show_max_pair']:
        first, second = markers[max_pair[0]].center, markers[max_pair[1]].center
        ax.add_line(Line2D((first.x, second.x), (first.y, second.y),
                           color=colors['info'],
                           linewidth=pair_style['linewidth'],
                           linestyle=pair_style['linestyle'],
                           alpha=pair_style['alpha'],
                           zorder=3))

    buffer = io.BytesIO()
    canvas.print_figure(buffer,
                        format=snapshot['format'],
                        dpi=dpi,
                        facecolor=colors['background'],
                        pil_kwargs={'quality': snapshot['quality']})

    logger.debug(f"Rendered snapshot with {len(markers)} markers ({buffer.tell()} bytes)")
    return base64.b64encode(buffer.getvalue()).decode('ascii')
