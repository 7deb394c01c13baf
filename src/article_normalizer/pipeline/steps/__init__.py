"""Pipeline steps for article extraction."""

from .cleanup import RemoveSelectorsStep, SerializeBodyStep
from .format import FormatStep, PruneStep
from .media import NormalizeMediaStep, ThumbnailStep
from .paginate import PaginateStep
from .parse import AbsolutizeStep, ParseStep
from .rule import ApplyRuleStep
from .sanitize import SanitizeStep

__all__ = [
    "AbsolutizeStep",
    "ApplyRuleStep",
    "FormatStep",
    "NormalizeMediaStep",
    "PaginateStep",
    "PruneStep",
    "ParseStep",
    "RemoveSelectorsStep",
    "SanitizeStep",
    "SerializeBodyStep",
    "ThumbnailStep",
]
