"""
hqmf_parser Version Information
Single source of truth for the package version across all components
"""

# Package Version - Update this single location for all version references
__version__ = "1.0.0"

# Package metadata
APP_NAME = "hqmf_parser"
APP_FULL_NAME = "hqmf_parser - HQMF R2 Data Criteria Extraction"
APP_DESCRIPTION = "Extracts and resolves data criteria from HQMF R2 electronic clinical quality measures"

# Version components for programmatic access
VERSION_MAJOR = 1
VERSION_MINOR = 0
VERSION_PATCH = 0

# Build information
BUILD_TYPE = "stable"  # stable, beta, alpha, dev
