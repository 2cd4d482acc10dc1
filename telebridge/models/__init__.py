# telebridge/models/__init__.py
from telebridge.models.base import Base  # noqa: F401

from telebridge.models.call import CallDirection, CallRecord, CallStatus  # noqa: F401
from telebridge.models.kv_entry import KeyValueEntry  # noqa: F401
