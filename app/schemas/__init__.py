from .common import CacheStatsResponse, ErrorResponse, OkResponse, ReadyResponse

__all__ = ["CacheStatsResponse", "ErrorResponse", "OkResponse", "ReadyResponse"]
