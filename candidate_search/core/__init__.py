"""Core configuration and logging."""

from candidate_search.core.config import GLOBAL_TENANT_ID, Settings, get_settings

__all__ = ["GLOBAL_TENANT_ID", "Settings", "get_settings"]
