from dwello.models.apartment import Apartment, ApartmentStatus
from dwello.models.blob_index import BlobIndexEntry
from dwello.models.chat_message import ChatMessage, MessageSender
from dwello.models.listing import Listing
from dwello.models.listing_image import ListingImage
from dwello.models.transaction import Transaction, TransactionStatus

__all__ = [
    "Listing",
    "ListingImage",
    "Apartment",
    "ApartmentStatus",
    "BlobIndexEntry",
    "ChatMessage",
    "MessageSender",
    "Transaction",
    "TransactionStatus",
]
