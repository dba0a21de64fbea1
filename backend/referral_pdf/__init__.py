"""
Referral PDF package for the Safe Life CCP intake backend.

This module bundles reusable utilities for:
  - mapping intake answers onto the referral and consent form fields
  - filling, flattening and merging the fillable PDF templates
  - emailing the merged referral and driving the submission flow
"""

from .errors import (
    ConfigurationError,
    DeliveryFailure,
    IntakeError,
    MalformedDocument,
    ResourceNotFound,
    ValidationError,
)
from .service import ReferralPdfService

__all__ = [
    "ReferralPdfService",
    "IntakeError",
    "ConfigurationError",
    "ResourceNotFound",
    "ValidationError",
    "MalformedDocument",
    "DeliveryFailure",
]
