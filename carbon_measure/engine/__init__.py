"""Aggregation engine.

- loader: FeatureIndex loader (fetch + cache of the parcel collection)
- geometry: containment, vertex-average centroid, area estimate
- aggregation: spatial join and attribute sums
- derivation: the six reported metrics and the area-only fallback
- measure: polygon-in, measurement-out entry points
"""
