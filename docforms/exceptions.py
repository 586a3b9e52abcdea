"""
Exception classes and error kinds for the document form engine.

Field level validation problems are reported as ErrorKind values attached to a
field path. Exceptions are reserved for failures that cannot be recovered by a
single form control: a malformed field specification, an unreachable template
service, or a duplicate request for an action that is already running.
"""

from typing import Optional, Dict, Any, List


class ErrorKind:
    """Error kind constants."""
    REQUIRED_FIELD = "RequiredField"
    TOO_LONG = "TooLong"
    BELOW_MINIMUM = "BelowMinimum"
    ABOVE_MAXIMUM = "AboveMaximum"
    INVALID_DATE = "InvalidDate"
    INVALID_OPTION = "InvalidOption"
    INVALID_URL = "InvalidUrl"
    INVALID_TYPE = "InvalidType"
    INVALID_SPECIFICATION = "InvalidSpecification"
    TRANSPORT_FAILURE = "TransportFailure"


class DocFormsError(Exception):
    """
    Base exception for the document form engine.
    
    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """
    
    kind: str = ""
    
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)
    
    def __str__(self) -> str:
        return self.message
    
    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'kind': self.kind,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class InvalidSpecificationError(DocFormsError):
    """
    Raised when a field specification violates the input contract.
    
    The form cannot be rendered from such a specification; callers abort
    rendering and show the message instead of a partial form.
    """
    
    kind = ErrorKind.INVALID_SPECIFICATION
    
    def __init__(self, message: str, field_path: Optional[str] = None):
        self.field_path = field_path
        context = {'field_path': field_path} if field_path else {}
        recovery_suggestions = [
            "Re-upload the template so it can be inspected again",
            "Check the template placeholders for duplicate or malformed fields"
        ]
        super().__init__(message, context, recovery_suggestions)


class TransportFailure(DocFormsError):
    """
    Raised when the template service is unreachable or answers with a
    non-success status.
    """
    
    kind = ErrorKind.TRANSPORT_FAILURE
    
    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_body: Optional[str] = None, operation: Optional[str] = None):
        self.status_code = status_code
        self.response_body = response_body
        self.operation = operation
        context = {
            'status_code': status_code,
            'operation': operation
        }
        recovery_suggestions = [
            "Check that the template service is running and reachable",
            "Try the action again; your form input has been kept"
        ]
        super().__init__(message, context, recovery_suggestions)


class RequestInFlightError(DocFormsError):
    """Raised when an action is triggered while the same action is still running."""
    
    def __init__(self, action: str):
        self.action = action
        super().__init__(
            f"A '{action}' request is already in progress",
            {'action': action}
        )
