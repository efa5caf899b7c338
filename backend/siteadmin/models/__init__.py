from .catalog import Product, Category
from .enquiries import Enquiry, EnquiryResponse
from .content import Service, GalleryImage, Client, Brochure
from .auth import AdminUser, SessionToken
from .events import DomainEvent

__all__ = [
    'Product', 'Category',
    'Enquiry', 'EnquiryResponse',
    'Service', 'GalleryImage', 'Client', 'Brochure',
    'AdminUser', 'SessionToken',
    'DomainEvent',
]
