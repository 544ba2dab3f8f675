__all__ = [
    "BikeShareAction",
    "DistanceResolver",
    "PipelineState",
    "RouteImageComposer",
    "extract_address",
    "format_walking_time",
    "top_k",
]

from citybikebot.bikeshare.action import BikeShareAction, PipelineState
from citybikebot.bikeshare.address import extract_address
from citybikebot.bikeshare.distance import DistanceResolver
from citybikebot.bikeshare.ranking import format_walking_time, top_k
from citybikebot.bikeshare.route_image import RouteImageComposer
