"""
Request-level entrypoints for the cluster index.

The index is rebuilt per call from the points in the request; callers that want to
reuse an index across calls keep their own `ClusterIndex` instance.
"""

from __future__ import annotations

import logging
from typing import Any

from tripsequence.clustering.index import ClusterIndex, should_enable_clustering
from tripsequence.config.overrides import apply_settings_overrides
from tripsequence.config.settings import Settings, get_settings
from tripsequence.domain.models import ClusterExpandRequest, ClusterQuery

logger = logging.getLogger(__name__)


def query_clusters(query: ClusterQuery, *, settings: Settings | None = None) -> dict[str, Any]:
    """Features for a viewport; below the threshold every point is returned as-is."""
    settings = apply_settings_overrides(settings or get_settings(), query.settings_overrides)
    cfg = settings.clustering
    enabled = should_enable_clustering(len(query.points), threshold=cfg.threshold)

    index = ClusterIndex(cfg).load(query.points)
    # The raw-point level sits one above max_zoom.
    zoom = query.zoom if enabled else cfg.max_zoom + 1
    features = index.get_clusters(query.bounds.as_tuple(), zoom)

    logger.debug(
        "clusters: %d points -> %d features (zoom=%s, clustering=%s)",
        len(query.points),
        len(features),
        query.zoom,
        enabled,
    )
    return {
        "clustering_enabled": enabled,
        "zoom": int(query.zoom),
        "features": [f.model_dump(mode="json") for f in features],
    }


def expand_cluster(request: ClusterExpandRequest, *, settings: Settings | None = None) -> dict[str, Any]:
    """Children and expansion zoom for one cluster id."""
    settings = apply_settings_overrides(settings or get_settings(), request.settings_overrides)
    index = ClusterIndex(settings.clustering).load(request.points)
    children = index.get_children(request.cluster_id)
    return {
        "cluster_id": request.cluster_id,
        "expansion_zoom": index.get_cluster_expansion_zoom(request.cluster_id),
        "children": [c.model_dump(mode="json") for c in children],
    }
