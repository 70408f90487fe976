"""Gallery archive pricing.

The same tiers are used to display the price on the gallery page and to build
the amount charged through Stripe, so both must go through this module.
"""

SMALL_GALLERY_MAX_PHOTOS = 50
MEDIUM_GALLERY_MAX_PHOTOS = 150

SMALL_GALLERY_PRICE = 3
MEDIUM_GALLERY_PRICE = 5
LARGE_GALLERY_PRICE = 8

# Stripe amounts are expressed in hundredths of the currency unit
MINOR_UNITS_PER_UNIT = 100


def price_for_photo_count(photo_count: int) -> int:
    """Return the archive price, in whole currency units, for a gallery size."""
    if photo_count < 0:
        raise ValueError(f"photo_count must be non-negative, got {photo_count}")
    if photo_count <= SMALL_GALLERY_MAX_PHOTOS:
        return SMALL_GALLERY_PRICE
    if photo_count <= MEDIUM_GALLERY_MAX_PHOTOS:
        return MEDIUM_GALLERY_PRICE
    return LARGE_GALLERY_PRICE


def to_minor_units(price: int) -> int:
    return price * MINOR_UNITS_PER_UNIT
