"""
pocketrag - local retrieval-augmented generation.
"""

from .core.config import VERSION as __version__
