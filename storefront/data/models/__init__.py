#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from storefront.data.models.cart import CartModel

__all__ = ["CartModel"]
