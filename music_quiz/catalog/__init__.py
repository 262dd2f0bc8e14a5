from .base import CatalogCriteria, CatalogError, CatalogProvider
from .deezer import DeezerCatalog
from .endpoints import EndpointRotation

__all__ = ["CatalogCriteria", "CatalogError", "CatalogProvider", "DeezerCatalog", "EndpointRotation"]
