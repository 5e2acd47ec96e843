"""
Upstream boundary: client for the SGP customer API.
"""

from customer_sync.boundary.upstream.sgp_client import (
    FetchResult,
    SgpClient,
    UpstreamAuth,
    full_filters,
    incremental_filters,
)

__all__ = ["FetchResult", "SgpClient", "UpstreamAuth", "full_filters", "incremental_filters"]
