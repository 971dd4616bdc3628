"""Internal constants shared across the library."""

USER_AGENT = "tripsync/0.1"
DEFAULT_TABLE = "trips"
DEFAULT_TOPIC_PREFIX = "tripsync/trips"
DEFAULT_CACHE_SCHEMA_VERSION = "trip-storage-v3"

DEFAULT_EXCHANGE_RATE = 0.052
DEFAULT_DAY_WEATHER = "Sun"
MAX_ACTIVITY_PHOTOS = 3

# Checklist seeded into every new trip, in display order.
DEFAULT_PACKING_LIST: tuple[str, ...] = (
    "Passport and visa",
    "Credit cards and cash",
    "Phone and charger",
    "Luggage packed",
    "Hotel reservation confirmed",
    "Flight tickets confirmed",
    "Everyday medicine",
    "Camera and memory card",
    "Umbrella or rain gear",
    "Power adapter",
)
