"""Fact mapping for performance reports."""

from .mappers import (
    MAPPERS_BY_REPORT_TYPE,
    MappingContext,
    MappingResult,
    get_mapper,
    map_campaign_rows,
    map_placement_rows,
    map_stis_rows,
    map_targeting_rows,
)
from .upload import (
    STATUS_MISSING_SNAPSHOT,
    STATUS_OK,
    MapUploadResult,
    map_upload,
    map_uploads,
)

__all__ = [
    "MAPPERS_BY_REPORT_TYPE",
    "MappingContext",
    "MappingResult",
    "get_mapper",
    "map_campaign_rows",
    "map_placement_rows",
    "map_stis_rows",
    "map_targeting_rows",
    "STATUS_MISSING_SNAPSHOT",
    "STATUS_OK",
    "MapUploadResult",
    "map_upload",
    "map_uploads",
]
