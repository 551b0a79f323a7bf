from .constants import AppConstants, FormLabels, ResponseMessages
from .validation import ValidationHelpers

__all__ = [
    "AppConstants",
    "FormLabels",
    "ResponseMessages",
    "ValidationHelpers",
]
