"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (60xxx)
    PROVIDER_ERROR = 60000

    # Local payment/promotion errors (61xxx)
    VALIDATION_ERROR = 61000
    CONFIGURATION_ERROR = 61001
    TRANSACTION_NOT_FOUND = 61002
    PERSISTENCE_ERROR = 61003
    PROMOTIONS_DISABLED = 61004
    TIER_NOT_FOUND = 61005


# Internal verification statuses
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_PENDING = "pending"
STATUS_ABANDONED = "abandoned"

# Provider→internal status mapping; anything unlisted is treated as failed
PROVIDER_STATUS_TO_INTERNAL = {
    "paystack": {
        "success": STATUS_SUCCESS,
        "failed": STATUS_FAILED,
        "reversed": STATUS_FAILED,
        "abandoned": STATUS_ABANDONED,
        "ongoing": STATUS_PENDING,
        "pending": STATUS_PENDING,
        "processing": STATUS_PENDING,
        "queued": STATUS_PENDING,
    },
}
