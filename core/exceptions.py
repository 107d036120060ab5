"""
Inspection System Exceptions
============================
"""


class InspectionError(Exception):
    """Base class for all inspection system errors"""


class InvalidInputError(InspectionError, ValueError):
    """Raised for out-of-range percentages, negative counts, unknown statuses or policies"""


class InspectionNotFoundError(InspectionError, LookupError):
    """Raised when an inspection id does not exist in the store"""

    def __init__(self, inspection_id):
        self.inspection_id = inspection_id
        super().__init__(f"Inspection not found: {inspection_id}")


class StorageError(InspectionError):
    """Raised when a persistence backend fails"""


class ReportGenerationError(InspectionError):
    """Raised when a report cannot be generated"""
