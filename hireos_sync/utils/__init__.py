"""
hireos_sync.utils - Utility module

Common utilities including name normalization and path resolution.
"""

from hireos_sync.utils.normalization import name_tokens, normalize_name
from hireos_sync.utils.paths import DEFAULT_CONFIG_DIR, resolve_config_dir

__all__ = ["normalize_name", "name_tokens", "resolve_config_dir", "DEFAULT_CONFIG_DIR"]
