from flask import current_app
from .listing_query import ListingQueryEngine, ListingFilters, SortField, SortOrder, apply_listing_payload
from .image_ordering import ImageOrderingManager, ReorderMode
from .favorites import FavoritesManager

# 服务对象按请求创建，配置取自当前应用

def listing_engine() -> ListingQueryEngine:
    return ListingQueryEngine()

def image_manager() -> ImageOrderingManager:
    return ImageOrderingManager.from_config(current_app.config)

def favorites_manager() -> FavoritesManager:
    return FavoritesManager.from_config(current_app.config)
