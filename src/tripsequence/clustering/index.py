"""
Multi-zoom point clustering for map views.

The index follows the Supercluster approach:
- points are projected to Web-Mercator world units (unit square),
- for every zoom from `max_zoom` down to `min_zoom`, each unprocessed point absorbs its
  unprocessed neighbors within `radius / (extent * 2**zoom)` into a weighted cluster,
- each zoom level keeps its own grid index, so viewport queries and child lookups are
  plain range/radius queries.

Level `max_zoom + 1` holds the raw points. A cluster id encodes the level it was
created on and its seed position there, so it can be expanded without extra state.
Nothing outlives the index instance.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Sequence

from tripsequence.config.settings import ClusteringSettings, get_settings
from tripsequence.core.format import format_cluster_count
from tripsequence.core.geo import Coordinate
from tripsequence.core.spatial_index import SpatialGridIndex, lat_y, lng_x, x_lng, y_lat
from tripsequence.domain.models import ClusterFeature, GeoPoint, ensure_unique_ids

logger = logging.getLogger(__name__)

# Cluster ids reserve the low 5 bits for the zoom level.
_ZOOM_BITS = 5


@dataclass(slots=True)
class _Node:
    x: float
    y: float
    # Lowest zoom this node has been processed at (inf = not yet).
    zoom: float
    num_points: int = 1
    parent_id: int = -1
    cluster_id: int | None = None
    point_index: int | None = None


def should_enable_clustering(point_count: int, *, threshold: int | None = None) -> bool:
    """True once a view holds more points than the clustering threshold."""
    if threshold is None:
        threshold = get_settings().clustering.threshold
    return point_count > threshold


def point_to_feature(point: GeoPoint) -> ClusterFeature:
    """Wrap a single point as an unclustered map feature."""
    return ClusterFeature(
        id=point.id,
        coordinate=point.coordinate,
        count=1,
        cluster=False,
        count_abbreviated="1",
        properties=dict(point.properties),
    )


class ClusterIndex:
    def __init__(self, settings: ClusteringSettings | None = None, **options: float) -> None:
        cfg = settings or get_settings().clustering
        if options:
            cfg = ClusteringSettings.model_validate({**cfg.model_dump(), **options})
        self.settings = cfg
        self._points: list[GeoPoint] = []
        self._nodes: dict[int, list[_Node]] = {}
        self._trees: dict[int, SpatialGridIndex[_Node]] = {}

    @property
    def min_zoom(self) -> int:
        return self.settings.min_zoom

    @property
    def max_zoom(self) -> int:
        return self.settings.max_zoom

    def _radius_at(self, zoom: int) -> float:
        return self.settings.radius / (self.settings.extent * math.pow(2, zoom))

    def _store_level(self, zoom: int, nodes: list[_Node]) -> None:
        self._nodes[zoom] = nodes
        self._trees[zoom] = SpatialGridIndex(
            nodes,
            get_xy=lambda n: (n.x, n.y),
            # Sized for the radius queries made against this level.
            cell_size=self._radius_at(zoom - 1),
        )

    def load(self, points: Sequence[GeoPoint]) -> "ClusterIndex":
        """Build every zoom level for `points` (replaces any previous load)."""
        started = time.perf_counter()
        points = list(points)
        ensure_unique_ids([p.id for p in points], kind="point")
        self._points = points
        self._nodes = {}
        self._trees = {}

        nodes = [
            _Node(x=lng_x(p.coordinate.lng), y=lat_y(p.coordinate.lat), zoom=math.inf, point_index=i)
            for i, p in enumerate(points)
        ]
        self._store_level(self.max_zoom + 1, nodes)

        for zoom in range(self.max_zoom, self.min_zoom - 1, -1):
            nodes = self._cluster(zoom)
            self._store_level(zoom, nodes)

        logger.debug(
            "cluster index built for %d points (zoom %d..%d) in %.1f ms",
            len(points),
            self.min_zoom,
            self.max_zoom,
            (time.perf_counter() - started) * 1000,
        )
        return self

    def _cluster(self, zoom: int) -> list[_Node]:
        """Merge the nodes of level `zoom + 1` into the nodes of level `zoom`."""
        finer = self._nodes[zoom + 1]
        tree = self._trees[zoom + 1]
        r = self._radius_at(zoom)
        min_points = self.settings.min_points
        out: list[_Node] = []

        for i, p in enumerate(finer):
            if p.zoom <= zoom:
                continue
            p.zoom = zoom

            neighbors = tree.query_within(x=p.x, y=p.y, radius=r)
            num_points = p.num_points
            for b in neighbors:
                if b.zoom > zoom:
                    num_points += b.num_points

            if num_points > p.num_points and num_points >= min_points:
                cluster_id = (i << _ZOOM_BITS) + (zoom + 1) + len(self._points)
                wx = p.x * p.num_points
                wy = p.y * p.num_points
                for b in neighbors:
                    if b.zoom <= zoom:
                        continue
                    b.zoom = zoom
                    wx += b.x * b.num_points
                    wy += b.y * b.num_points
                    b.parent_id = cluster_id
                p.parent_id = cluster_id
                out.append(
                    _Node(
                        x=wx / num_points,
                        y=wy / num_points,
                        zoom=math.inf,
                        num_points=num_points,
                        cluster_id=cluster_id,
                    )
                )
                continue

            out.append(replace(p, zoom=math.inf, parent_id=-1))
            if num_points > 1:
                for b in neighbors:
                    if b.zoom <= zoom:
                        continue
                    b.zoom = zoom
                    out.append(replace(b, zoom=math.inf, parent_id=-1))
        return out

    def _limit_zoom(self, zoom: float) -> int:
        return max(self.min_zoom, min(int(math.floor(zoom)), self.max_zoom + 1))

    def get_clusters(self, bounds: Sequence[float], zoom: float) -> list[ClusterFeature]:
        """Features inside `bounds` = (west, south, east, north) at `zoom`."""
        west, south, east, north = (float(v) for v in bounds)
        min_lng = (west + 180) % 360 - 180
        min_lat = max(-90.0, min(90.0, south))
        max_lng = 180.0 if east == 180 else (east + 180) % 360 - 180
        max_lat = max(-90.0, min(90.0, north))

        if east - west >= 360:
            min_lng, max_lng = -180.0, 180.0
        elif min_lng > max_lng:
            # The viewport crosses the antimeridian; query both halves.
            eastern = self.get_clusters((min_lng, min_lat, 180.0, max_lat), zoom)
            western = self.get_clusters((-180.0, min_lat, max_lng, max_lat), zoom)
            return eastern + western

        tree = self._trees.get(self._limit_zoom(zoom))
        if tree is None:
            return []
        nodes = tree.query_range(
            min_x=lng_x(min_lng), min_y=lat_y(max_lat), max_x=lng_x(max_lng), max_y=lat_y(min_lat)
        )
        return [self._feature(n) for n in nodes]

    def _decode(self, cluster_id: int) -> tuple[int, int]:
        raw = int(cluster_id) - len(self._points)
        origin_id, origin_zoom = raw >> _ZOOM_BITS, raw % (1 << _ZOOM_BITS)
        if raw < 0 or origin_zoom not in self._nodes or origin_id >= len(self._nodes[origin_zoom]):
            raise ValueError(f"No cluster with id {cluster_id}")
        return origin_id, origin_zoom

    def _child_nodes(self, cluster_id: int) -> list[_Node]:
        origin_id, origin_zoom = self._decode(cluster_id)
        seed = self._nodes[origin_zoom][origin_id]
        r = self._radius_at(origin_zoom - 1)
        children = [
            n
            for n in self._trees[origin_zoom].query_within(x=seed.x, y=seed.y, radius=r)
            if n.parent_id == cluster_id
        ]
        if not children:
            raise ValueError(f"No cluster with id {cluster_id}")
        return children

    def get_children(self, cluster_id: int) -> list[ClusterFeature]:
        """Immediate children (points or sub-clusters) one zoom level finer."""
        return [self._feature(n) for n in self._child_nodes(cluster_id)]

    def get_leaves(self, cluster_id: int, *, limit: int | None = 10, offset: int = 0) -> list[ClusterFeature]:
        """Original points under a cluster, paginated (`limit=None` returns all)."""
        leaves: list[ClusterFeature] = []
        stack = [cluster_id]
        while stack:
            for n in self._child_nodes(stack.pop(0)):
                if n.cluster_id is not None:
                    stack.append(n.cluster_id)
                else:
                    leaves.append(self._feature(n))
        end = None if limit is None else offset + limit
        return leaves[offset:end]

    def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        """Lowest zoom at which the cluster splits into more than one child."""
        _, origin_zoom = self._decode(cluster_id)
        expansion_zoom = origin_zoom - 1
        current: int | None = cluster_id
        while expansion_zoom <= self.max_zoom and current is not None:
            children = self._child_nodes(current)
            expansion_zoom += 1
            if len(children) != 1:
                break
            current = children[0].cluster_id
        return expansion_zoom

    def _feature(self, node: _Node) -> ClusterFeature:
        if node.cluster_id is None:
            return point_to_feature(self._points[node.point_index])
        return ClusterFeature(
            id=f"cluster:{node.cluster_id}",
            coordinate=Coordinate(lat=y_lat(node.y), lng=max(-180.0, min(180.0, x_lng(node.x)))),
            count=node.num_points,
            cluster=True,
            cluster_id=node.cluster_id,
            count_abbreviated=format_cluster_count(node.num_points),
        )
