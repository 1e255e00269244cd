"""Python client for the Galleria API"""
from galleria_client.client import AuthenticationRequired, GalleriaClient

__version__ = "0.1.0"

__all__ = ["AuthenticationRequired", "GalleriaClient"]
