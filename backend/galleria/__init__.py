"""Galleria - multi-user image gallery service"""

__version__ = "0.1.0"
