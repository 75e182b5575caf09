# =============================================================================
# Watermap - Water Object Registry Core
# =============================================================================
# Geometry validation, versioned water object records, editorial lifecycle
# and change audit.
# =============================================================================

__version__ = "0.1.0"
