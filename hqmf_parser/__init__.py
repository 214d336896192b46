"""
hqmf_parser: HQMF R2 data criteria extraction and resolution.
"""

from .system.version import __version__
from .parsing.pipeline import HQMFDocument, parse_hqmf

__all__ = ["__version__", "HQMFDocument", "parse_hqmf"]
