"""
Woodland Trust Ancient Tree Inventory
The layer does not support point+radius well, so a ~5km bounding box is queried
and trees are ranked by distance here.
"""

from typing import Optional

from data_sources.arcgis import (
    ArcGISFeatureSet,
    ArcGISQuery,
    attr_text,
    feature_distance_km,
    query_features,
)
from data_sources.error_handling import absent_on_failure
from data_sources.models import AncientTree, AncientTrees
from data_sources.utils import count_by, sort_by_distance, sorted_counts

ATI_LAYER_URL = (
    "https://services1.arcgis.com/k6HWkz7DMAcnnYfV/arcgis/rest/services/"
    "Ancient_Tree_Inventory/FeatureServer/0"
)

BOX_DELTA_DEG = 0.05
MAX_FEATURES = 50
TREE_DISPLAY_LIMIT = 20
SPECIES_LIMIT = 10


def summarize_trees(feature_set: ArcGISFeatureSet, lat: float, lng: float) -> AncientTrees:
    trees = sort_by_distance([
        AncientTree(
            species=attr_text(f.attributes, "Species"),
            category=attr_text(f.attributes, "VETERAN"),
            distance=feature_distance_km(f, lat, lng),
        )
        for f in feature_set.features
    ])

    return AncientTrees(
        trees=trees[:TREE_DISPLAY_LIMIT],
        count=len(trees),
        by_category=count_by(t.category or "Unknown" for t in trees),
        by_species=sorted_counts(count_by(t.species or "Unknown" for t in trees), limit=SPECIES_LIMIT),
    )


@absent_on_failure("ancient_tree_inventory")
async def get_ancient_trees(lat: float, lng: float) -> Optional[AncientTrees]:
    """
    Recorded ancient and veteran trees in a ~5km box.

    Returns:
        {trees, count, byCategory, bySpecies: [[name, count]]} or None
    """
    query = ArcGISQuery.within_box(
        lat, lng, BOX_DELTA_DEG,
        out_fields=("Species", "VETERAN"),
        return_geometry=True,
        record_count=MAX_FEATURES,
    )
    feature_set = await query_features(ATI_LAYER_URL, query, "ancient_tree_inventory")
    return summarize_trees(feature_set, lat, lng)
