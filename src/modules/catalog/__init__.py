from src.modules.catalog.service import CatalogItem, CatalogService, SeedResult

__all__ = ["CatalogItem", "CatalogService", "SeedResult"]
