"""Error taxonomy for prompt analysis, session state and completion requests"""

from typing import Optional


class PromptTrainerError(Exception):
    """Base class for all prompt trainer failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PromptTrainerError):
    """Input rejected before any work was attempted (e.g. empty prompt)"""


class RequestError(PromptTrainerError):
    """Completion service answered with a non-success status"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseFormatError(PromptTrainerError):
    """Completion service answered successfully but the payload was unusable"""


class ImportFormatError(PromptTrainerError):
    """Import payload could not be parsed or validated"""


class TransportError(PromptTrainerError):
    """Transport failure or anything else unexpected while calling the service"""


class TemplateNotFoundError(PromptTrainerError, KeyError):
    """No template with the requested identifier"""

    def __str__(self) -> str:
        return self.message


class HistoryEntryNotFoundError(PromptTrainerError, KeyError):
    """No history entry with the requested identifier"""

    def __str__(self) -> str:
        return self.message


class PersistenceError(PromptTrainerError):
    """Session state could not be written to the durable store"""
