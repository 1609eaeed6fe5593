"""
instance_io.py - Strip Packing Instance Import
=============================================
Reads strip packing instances from the common JSON format:

    {
      "name": "...",
      "strip_height": 40.0,
      "items": [
        {"id": 0, "demand": 2, "allowed_orientations": [0.0, 180.0],
         "shape": {"type": "simple_polygon", "data": [[x, y], ...]}}
      ]
    }

Items are expanded by demand, simplified and centred on their centroid.
`allowed_orientations` omitted or null means continuous rotation.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from shapely import affinity
from shapely.geometry import Polygon, box
from shapely.validation import explain_validity

from config import Config
from models import Instance, Item
from utils import load_json

logger = logging.getLogger(__name__)


def parse_shape(shape: Dict[str, Any]) -> Polygon:
    """Build a shapely polygon from a JSON shape description."""
    kind = shape.get('type', 'simple_polygon')
    data = shape.get('data')

    if kind == 'simple_polygon':
        polygon = Polygon(data)
    elif kind == 'polygon':
        polygon = Polygon(data['outer'], data.get('inner', []))
    elif kind == 'rectangle':
        polygon = box(data['x_min'], data['y_min'],
                      data['x_min'] + data['width'], data['y_min'] + data['height'])
    else:
        raise ValueError(f"Unsupported shape type: {kind}")

    if polygon.is_empty or polygon.area <= 0:
        raise ValueError("Item shape has no area")
    if not polygon.is_valid:
        raise ValueError(f"Invalid item shape: {explain_validity(polygon)}")
    return polygon


def normalize_shape(polygon: Polygon, simplification_tolerance: float = 0.0) -> Polygon:
    """
    Simplify relative to the shape's size and move its centroid to the origin.
    Falls back to the unsimplified polygon when simplification would
    invalidate it.
    """
    if simplification_tolerance > 0:
        minx, miny, maxx, maxy = polygon.bounds
        scale = max(maxx - minx, maxy - miny)
        simplified = polygon.simplify(simplification_tolerance * scale, preserve_topology=True)
        if isinstance(simplified, Polygon) and simplified.is_valid and simplified.area > 0:
            polygon = simplified

    centroid = polygon.centroid
    return affinity.translate(polygon, xoff=-centroid.x, yoff=-centroid.y)


def parse_rotations(value: Optional[List[float]]) -> Optional[Tuple[float, ...]]:
    if value is None:
        return None
    rotations = tuple(float(r) for r in value)
    if not rotations:
        raise ValueError("allowed_orientations must not be empty; use null for free rotation")
    return rotations


def parse_instance(data: Dict[str, Any], min_separation: float = 0.0,
                   simplification_tolerance: Optional[float] = None) -> Instance:
    """Build an Instance from an already loaded JSON document."""
    if simplification_tolerance is None:
        simplification_tolerance = Config.COLLISION['poly_simplification_tolerance']

    try:
        name = str(data.get('name', 'unnamed'))
        strip_height = float(data['strip_height'])
        json_items = data['items']
    except KeyError as e:
        raise ValueError(f"Instance is missing required field {e}") from e

    items: List[Item] = []
    for json_item in json_items:
        item_id = int(json_item['id'])
        demand = int(json_item.get('demand', 1))
        if demand < 0:
            raise ValueError(f"Item {item_id} has negative demand {demand}")

        shape = normalize_shape(parse_shape(json_item['shape']), simplification_tolerance)
        rotations = parse_rotations(json_item.get('allowed_orientations'))
        items.extend(Item(id=item_id, shape=shape, allowed_rotations=rotations) for _ in range(demand))

    instance = Instance(name=name, strip_height=strip_height, items=tuple(items),
                        min_separation=min_separation)
    logger.info(
        f"Imported instance {name}: {instance.n_items} items "
        f"({len(json_items)} types), strip height {strip_height}"
    )
    return instance


def load_instance(filepath: Union[str, Path], min_separation: float = 0.0,
                  simplification_tolerance: Optional[float] = None) -> Instance:
    """Load and normalize an instance file."""
    return parse_instance(load_json(filepath), min_separation, simplification_tolerance)
