"""Service layer used by the routers."""

from .change_feed import ChangeFeed, get_change_feed
from .storage import FileStorage, get_file_storage, resolve_file_url
from .team_formation import partition_groups

__all__ = [
    "ChangeFeed",
    "FileStorage",
    "get_change_feed",
    "get_file_storage",
    "partition_groups",
    "resolve_file_url",
]
