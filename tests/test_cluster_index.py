import pytest

from tripsequence.clustering.index import ClusterIndex, point_to_feature, should_enable_clustering
from tripsequence.core.geo import Coordinate
from tripsequence.domain.models import GeoPoint

WORLD = (-180.0, -90.0, 180.0, 90.0)


def _grid_points(rows: int = 5, cols: int = 5) -> list[GeoPoint]:
    # ~220 m spacing around central Paris: a 5x5 grid covers roughly 1 km^2.
    return [
        GeoPoint(
            id=f"p{r}-{c}",
            coordinate=Coordinate(lat=48.8500 + r * 0.002, lng=2.3400 + c * 0.003),
            properties={"placeType": "spot"},
        )
        for r in range(rows)
        for c in range(cols)
    ]


def _leaf_ids(index: ClusterIndex, features) -> list[str]:
    ids: list[str] = []
    for f in features:
        if f.cluster:
            ids.extend(leaf.id for leaf in index.get_leaves(f.cluster_id, limit=None))
        else:
            ids.append(f.id)
    return ids


def test_should_enable_clustering_threshold():
    assert should_enable_clustering(25) is True
    assert should_enable_clustering(21) is True
    assert should_enable_clustering(20) is False
    assert should_enable_clustering(5, threshold=4) is True


def test_twenty_five_points_merge_at_low_zoom_and_split_at_zoom_16():
    points = _grid_points()
    index = ClusterIndex().load(points)

    low = index.get_clusters(WORLD, 0)
    assert len(low) < 25
    assert sum(f.count for f in low) == 25

    high = index.get_clusters(WORLD, 16)
    assert len(high) == 25
    assert all(not f.cluster and f.count == 1 for f in high)
    assert {f.id for f in high} == {p.id for p in points}


def test_every_zoom_level_covers_each_point_exactly_once():
    points = _grid_points()
    index = ClusterIndex().load(points)
    expected = sorted(p.id for p in points)

    for zoom in range(0, 18):
        features = index.get_clusters(WORLD, zoom)
        assert sorted(_leaf_ids(index, features)) == expected, f"zoom={zoom}"


def test_feature_count_never_drops_as_zoom_increases():
    points = _grid_points(6, 7)
    index = ClusterIndex().load(points)

    counts = [len(index.get_clusters(WORLD, z)) for z in range(0, 18)]

    assert counts == sorted(counts)
    assert counts[0] < counts[-1] == len(points)


def test_children_and_expansion_zoom():
    points = _grid_points()
    index = ClusterIndex().load(points)
    (top,) = index.get_clusters(WORLD, 0)
    assert top.cluster and top.count == 25
    assert top.count_abbreviated == "25"
    assert top.id == f"cluster:{top.cluster_id}"

    children = index.get_children(top.cluster_id)
    assert sum(c.count for c in children) == 25

    expansion = index.get_cluster_expansion_zoom(top.cluster_id)
    assert 1 <= expansion <= 17
    assert len(index.get_clusters(WORLD, expansion - 1)) == 1
    assert len(index.get_clusters(WORLD, expansion)) > 1


def test_leaves_are_paginated():
    index = ClusterIndex().load(_grid_points())
    (top,) = index.get_clusters(WORLD, 0)

    assert len(index.get_leaves(top.cluster_id)) == 10
    assert len(index.get_leaves(top.cluster_id, limit=10, offset=20)) == 5
    leaf = index.get_leaves(top.cluster_id, limit=1)[0]
    assert leaf.properties == {"placeType": "spot"}


def test_viewport_limits_results():
    points = _grid_points()
    index = ClusterIndex().load(points)

    # Only the first row of the grid (lat 48.85) at full resolution.
    features = index.get_clusters((2.33, 48.849, 2.36, 48.851), 17)
    assert sorted(f.id for f in features) == sorted(p.id for p in points if p.id.startswith("p0-"))

    assert index.get_clusters((10.0, 10.0, 11.0, 11.0), 17) == []


def test_viewport_crossing_the_antimeridian():
    points = [
        GeoPoint(id="east", coordinate=Coordinate(lat=0, lng=179.9)),
        GeoPoint(id="west", coordinate=Coordinate(lat=0, lng=-179.9)),
        GeoPoint(id="greenwich", coordinate=Coordinate(lat=0, lng=0)),
    ]
    index = ClusterIndex().load(points)

    features = index.get_clusters((170.0, -10.0, -170.0, 10.0), 17)

    assert sorted(f.id for f in features) == ["east", "west"]


def test_min_points_prevents_small_clusters():
    points = [
        GeoPoint(id="a", coordinate=Coordinate(lat=10.0, lng=10.0)),
        GeoPoint(id="b", coordinate=Coordinate(lat=10.00001, lng=10.00001)),
        GeoPoint(id="far", coordinate=Coordinate(lat=-40.0, lng=-100.0)),
    ]

    default = ClusterIndex().load(points)
    assert len(default.get_clusters(WORLD, 0)) == 2

    strict = ClusterIndex(min_points=3).load(points)
    assert len(strict.get_clusters(WORLD, 0)) == 3


def test_invalid_inputs_are_rejected():
    index = ClusterIndex().load(_grid_points())
    with pytest.raises(ValueError):
        index.get_children(123456789)
    with pytest.raises(ValueError):
        index.get_children(-5)

    dupes = [GeoPoint(id="x", coordinate=Coordinate(lat=0, lng=0))] * 2
    with pytest.raises(ValueError, match="duplicate point ids"):
        ClusterIndex().load(dupes)

    with pytest.raises(ValueError):
        ClusterIndex(min_zoom=10, max_zoom=5)


def test_empty_index_returns_no_features():
    index = ClusterIndex().load([])

    assert index.get_clusters(WORLD, 3) == []


def test_point_to_feature_copies_properties():
    point = GeoPoint(id="h1", coordinate=Coordinate(lat=1, lng=2), properties={"placeType": "hotel"})

    feature = point_to_feature(point)

    assert feature.cluster is False
    assert feature.cluster_id is None
    assert feature.count == 1
    assert feature.properties == {"placeType": "hotel"}
