# lambdas/stream_processor/classifier.py
"""
Maps a change record to the topic category its subscribers filter on.

Rules are checked in priority order and the first match wins. Anything
unrecognised falls back to CUSTOMER, so classification never fails.
"""
from .models import Category, ChangeRecord

EVENT_PREFIX = "EVENT#"

# Substrings of the producer's free-form eventType, e.g. "payment.succeeded".
PAYMENT_EVENT_MARKERS = ("payment", "invoice", "subscription")
LICENSE_EVENT_MARKERS = ("license", "machine")

PAYMENT_SORT_KEY_PREFIXES = ("SUB#", "INV#")
LICENSE_KEY_PREFIXES = ("LICENSE#", "DEVICE#", "MACHINE#")
PROFILE_SORT_KEY = "PROFILE"
MEMBER_SORT_KEY_PREFIX = "MEMBER#"

DEFAULT_CATEGORY = Category.CUSTOMER


def classify_event_type(event_type: str) -> Category:
    """
    Decodes the eventType written on EVENT# items into a category.
    Unknown or empty event types are treated as customer events.
    """
    if any(marker in event_type for marker in PAYMENT_EVENT_MARKERS):
        return Category.PAYMENT
    if any(marker in event_type for marker in LICENSE_EVENT_MARKERS):
        return Category.LICENSE
    return DEFAULT_CATEGORY


def classify_record(record: ChangeRecord) -> Category:
    """
    Classifies a change record by key prefixes, or by eventType for EVENT# items.

    Args:
        record: The parsed stream record. Keys and images may be empty.

    Returns:
        The category whose topic should receive the record.
    """
    pk = record.partition_key
    sk = record.sort_key

    if pk.startswith(EVENT_PREFIX):
        return classify_event_type(record.new_image_string("eventType"))

    if sk.startswith(PAYMENT_SORT_KEY_PREFIXES):
        return Category.PAYMENT
    if pk.startswith(LICENSE_KEY_PREFIXES) or sk.startswith(LICENSE_KEY_PREFIXES):
        return Category.LICENSE
    if sk == PROFILE_SORT_KEY or sk.startswith(MEMBER_SORT_KEY_PREFIX):
        return Category.CUSTOMER

    return DEFAULT_CATEGORY
