"""PDTF claims aggregation and provenance engine"""

__version__ = "0.1.0"
