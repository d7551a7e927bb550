"""
Point -> administrative region lookup over municipal boundary polygons.

Rationale:
- The boundary GeoJSON is parsed once at startup into an immutable
  PolygonDataset; the resolver only reads it, so concurrent requests share it.
- Dataset order is the tie-break: the first polygon that covers the point
  (interior or boundary) wins.
- An STRtree narrows candidates by bounding box; candidates are still checked
  in ascending dataset order so the tie-break is unchanged.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, NamedTuple, Optional, Tuple

from shapely.errors import ShapelyError
from shapely.geometry import Point, shape
from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

logger = logging.getLogger(__name__)

# National Land Numerical Information (N03) administrative-area properties
CITY_PROPERTY = "N03_004"
WARD_PROPERTY = "N03_005"
CODE_PROPERTY = "N03_007"


class GeoPoint(NamedTuple):
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Region:
    city_name: Optional[str] = None
    ward_name: Optional[str] = None
    region_code: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.region_code is not None


NULL_REGION = Region()


@dataclass(frozen=True)
class PolygonDataset:
    geometries: Tuple[BaseGeometry, ...]
    regions: Tuple[Region, ...]

    def __len__(self) -> int:
        return len(self.geometries)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _region_from_properties(
    props: Dict[str, Any],
    city_key: str = CITY_PROPERTY,
    ward_key: str = WARD_PROPERTY,
    code_key: str = CODE_PROPERTY,
) -> Region:
    code = _clean(props.get(code_key))
    if code is None:
        # A region without a code is indistinguishable from "not found"
        return NULL_REGION
    return Region(
        city_name=_clean(props.get(city_key)),
        ward_name=_clean(props.get(ward_key)),
        region_code=code,
    )


def build_polygon_dataset(
    features: Iterable[Dict[str, Any]],
    city_key: str = CITY_PROPERTY,
    ward_key: str = WARD_PROPERTY,
    code_key: str = CODE_PROPERTY,
) -> PolygonDataset:
    """Convert GeoJSON feature dicts into a PolygonDataset, keeping their order."""
    geometries = []
    regions = []
    skipped = 0
    for idx, feature in enumerate(features):
        geometry = feature.get("geometry") if isinstance(feature, dict) else None
        if not geometry:
            skipped += 1
            continue
        try:
            geom = shape(geometry)
        except (ShapelyError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Skipping feature {idx}: invalid geometry ({e})")
            skipped += 1
            continue
        if geom.is_empty:
            skipped += 1
            continue
        geometries.append(geom)
        regions.append(
            _region_from_properties(feature.get("properties") or {}, city_key, ward_key, code_key)
        )

    if skipped:
        logger.warning(f"Skipped {skipped} features without usable geometry")
    return PolygonDataset(geometries=tuple(geometries), regions=tuple(regions))


def load_polygon_dataset(
    path: str,
    city_key: str = CITY_PROPERTY,
    ward_key: str = WARD_PROPERTY,
    code_key: str = CODE_PROPERTY,
) -> PolygonDataset:
    """
    Load the boundary FeatureCollection from disk.
    Raises on a missing file, invalid JSON, or a collection with no usable polygons
    so that a misconfigured server fails at startup rather than per request.
    """
    logger.info(f"Loading boundary polygons from {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    features = data.get("features") if isinstance(data, dict) else None
    if not isinstance(features, list) or not features:
        raise ValueError(f"{path} is not a GeoJSON FeatureCollection with features")

    dataset = build_polygon_dataset(features, city_key, ward_key, code_key)
    if not len(dataset):
        raise ValueError(f"{path} contains no usable polygon geometry")

    logger.info(f"Loaded {len(dataset)} boundary polygons")
    return dataset


class RegionResolver:
    """Resolves a point to the first enclosing region of a PolygonDataset."""

    def __init__(self, dataset: PolygonDataset):
        self._dataset = dataset
        self._tree = STRtree(list(dataset.geometries)) if len(dataset) else None

    @property
    def dataset(self) -> PolygonDataset:
        return self._dataset

    def resolve(self, point: GeoPoint) -> Region:
        if self._tree is None:
            return NULL_REGION

        # GeoJSON coordinates are (longitude, latitude)
        target = Point(point.longitude, point.latitude)
        candidates = sorted(int(i) for i in self._tree.query(target))
        for idx in candidates:
            if self._dataset.geometries[idx].covers(target):
                return self._dataset.regions[idx]
        return NULL_REGION
