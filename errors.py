"""Exceptions raised by the survey service."""


class SurveyError(Exception):
    """Base class for every error the survey service raises."""


class FieldError(SurveyError, ValueError):
    """Unknown section, list or field name, or a value that fails validation."""


class DerivedFieldError(FieldError):
    """Raised when a computed field is edited directly."""


class ItemNotFoundError(SurveyError, LookupError):
    """A list row addressed by identifier or index does not exist."""


class InvalidDocumentError(SurveyError, ValueError):
    """Uploaded file is not a readable PDF."""


class ManualEntryRequired(SurveyError):
    """Extraction finished but the bill consumption could not be found."""


class BusyError(SurveyError):
    """An AI request is already pending for the editing session."""


class ExternalServiceError(SurveyError):
    """A collaborator (database, auth provider, Gemini) failed."""


class DatabaseError(ExternalServiceError):
    pass


class AuthError(ExternalServiceError):
    pass


class AIServiceError(ExternalServiceError):
    pass
