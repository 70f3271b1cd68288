"""Proctoring exceptions"""


class ProctorError(Exception):
    """Base class for proctoring errors"""


class ProctorInitializationError(ProctorError):
    """A capture device or inference capability could not be set up"""

    USER_MESSAGE = "Failed to initialize proctoring system. Please refresh the page."


class ReportSubmissionError(ProctorError):
    """The backend did not accept a session report"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
