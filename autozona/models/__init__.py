from .user import User
from .listing import Listing, FuelType, Color, Transmission, BodyType
from .image import ListingImage
from .favorite import FavoriteList, FavoriteItem

__all__ = ['User', 'Listing', 'FuelType', 'Color', 'Transmission', 'BodyType',
           'ListingImage', 'FavoriteList', 'FavoriteItem']
