"""
Unit tests for point -> region resolution and boundary loading.
"""

import json

import pytest

from conftest import KYOTO_CODE, square_feature
from pollen_survey.regions import (
    NULL_REGION,
    GeoPoint,
    Region,
    RegionResolver,
    build_polygon_dataset,
    load_polygon_dataset,
)


class TestResolve:
    def test_point_inside_known_polygon(self, resolver):
        region = resolver.resolve(GeoPoint(latitude=35.0, longitude=135.0))
        assert region == Region(city_name="京都市", ward_name="中京区", region_code=KYOTO_CODE)
        assert region.found

    def test_second_polygon(self, resolver):
        region = resolver.resolve(GeoPoint(latitude=35.0, longitude=135.2))
        assert region.region_code == "271276"
        assert region.city_name == "大阪市"

    def test_point_outside_all_polygons(self, resolver):
        region = resolver.resolve(GeoPoint(latitude=43.0, longitude=141.3))
        assert region is NULL_REGION
        assert region.city_name is None and region.ward_name is None
        assert not region.found

    def test_shared_edge_goes_to_first_polygon(self, resolver):
        # lng=135.1 is the boundary of both squares
        region = resolver.resolve(GeoPoint(latitude=35.0, longitude=135.1))
        assert region.region_code == KYOTO_CODE

    def test_overlap_first_match_wins(self):
        dataset = build_polygon_dataset([
            square_feature(0, 0, 10, 10, "A", None, "000001"),
            square_feature(2, 2, 4, 4, "B", None, "000002"),
        ])
        region = RegionResolver(dataset).resolve(GeoPoint(latitude=3, longitude=3))
        assert region.region_code == "000001"

    def test_matched_feature_without_code_is_a_miss(self):
        dataset = build_polygon_dataset([square_feature(0, 0, 1, 1, "X", "Y", None)])
        region = RegionResolver(dataset).resolve(GeoPoint(latitude=0.5, longitude=0.5))
        assert region == NULL_REGION

    def test_empty_dataset(self):
        resolver = RegionResolver(build_polygon_dataset([]))
        assert resolver.resolve(GeoPoint(latitude=35.0, longitude=135.0)) == NULL_REGION

    def test_multipolygon(self):
        feature = {
            "type": "Feature",
            "properties": {"N03_004": "島町", "N03_005": None, "N03_007": "123456"},
            "geometry": {
                "type": "MultiPolygon",
                "coordinates": [
                    [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
                    [[[5, 5], [6, 5], [6, 6], [5, 6], [5, 5]]],
                ],
            },
        }
        resolver = RegionResolver(build_polygon_dataset([feature]))
        assert resolver.resolve(GeoPoint(latitude=5.5, longitude=5.5)).region_code == "123456"
        assert resolver.resolve(GeoPoint(latitude=3, longitude=3)) == NULL_REGION


class TestDatasetLoading:
    def test_skips_features_without_geometry(self):
        dataset = build_polygon_dataset([
            {"type": "Feature", "properties": {"N03_007": "1"}, "geometry": None},
            square_feature(0, 0, 1, 1, "A", None, "2"),
        ])
        assert len(dataset) == 1
        assert dataset.regions[0].region_code == "2"

    def test_numeric_code_is_stringified(self):
        dataset = build_polygon_dataset([square_feature(0, 0, 1, 1, "A", None, 261009)])
        assert dataset.regions[0].region_code == "261009"

    def test_load_from_disk(self, tmp_path, features):
        path = tmp_path / "boundaries.geojson"
        path.write_text(
            json.dumps({"type": "FeatureCollection", "features": features}, ensure_ascii=False),
            encoding="utf-8",
        )
        dataset = load_polygon_dataset(str(path))
        assert len(dataset) == 2
        assert dataset.regions[0].region_code == KYOTO_CODE

    def test_load_rejects_empty_collection(self, tmp_path):
        path = tmp_path / "empty.geojson"
        path.write_text(json.dumps({"type": "FeatureCollection", "features": []}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_polygon_dataset(str(path))

    def test_load_missing_file_fails_fast(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_polygon_dataset(str(tmp_path / "nope.geojson"))
