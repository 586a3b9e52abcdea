"""
Submission handler for the document form engine.
Validates form state and forwards the structured value to the rendering service.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Dict, Any, Optional, Iterator, TYPE_CHECKING
import logging

from .exceptions import RequestInFlightError, TransportFailure
from .model_builder import FieldError, ValidationResult, ValidationSchema

if TYPE_CHECKING:
    from .api_client import TemplateServiceClient
    from .form_state import FormBinding, FormState

logger = logging.getLogger(__name__)

RENDER_ACTION = "render"
INSPECT_ACTION = "inspect"


def submit_form(form_state: 'FormState', schema: ValidationSchema) -> ValidationResult:
    """
    Validate a form state against its schema in one synchronous pass.

    The state is snapshotted first, so the pass sees the values as they were
    when submission was triggered.

    Returns:
        ValidationResult with the structured value or every field error
    """
    snapshot = form_state.snapshot()
    result = schema.validate(snapshot)
    if result.is_valid:
        logger.info(f"Form validated: {len(result.value)} fields")
    else:
        logger.info(f"Form validation failed: {len(result.errors)} field errors")
    return result


def _sanitize_for_json(obj: Any) -> Any:
    """
    Recursively sanitize an object for JSON serialization.
    Converts date, datetime to ISO format strings, Decimal to float and
    whole-number floats to integers.
    """
    if isinstance(obj, dict):
        return {k: _sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_sanitize_for_json(item) for item in obj]
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return float(obj)
    elif isinstance(obj, float) and obj.is_integer():
        return int(obj)
    else:
        return obj


class InFlightRequests:
    """Tracks which logical actions have a request outstanding."""

    def __init__(self):
        self._active = set()

    def is_active(self, action: str) -> bool:
        return action in self._active

    @contextmanager
    def track(self, action: str) -> Iterator[None]:
        """
        Mark an action as in flight for the duration of the block.

        Raises:
            RequestInFlightError: If the action is already in flight
        """
        if action in self._active:
            logger.warning(f"Suppressed duplicate '{action}' request")
            raise RequestInFlightError(action)
        self._active.add(action)
        try:
            yield
        finally:
            self._active.discard(action)


@dataclass
class SubmissionOutcome:
    """Result of one submit attempt."""
    success: bool
    value: Optional[Dict[str, Any]] = None
    document: Optional[bytes] = None
    errors: Dict[str, FieldError] = field(default_factory=dict)
    transport_error: Optional[TransportFailure] = None

    @property
    def request_sent(self) -> bool:
        return self.success or self.transport_error is not None


class SubmissionHandler:
    """Handles the submission workflow for a bound form."""

    def __init__(self, client: 'TemplateServiceClient', tracker: Optional[InFlightRequests] = None):
        self.client = client
        self.tracker = tracker if tracker is not None else InFlightRequests()

    @property
    def in_flight(self) -> bool:
        return self.tracker.is_active(RENDER_ACTION)

    def validate_and_submit(self, binding: 'FormBinding', template_id: str) -> SubmissionOutcome:
        """
        Validate the form and, when valid, send exactly one render request.

        Args:
            binding: Bound form to submit
            template_id: Identifier of the template to render

        Returns:
            SubmissionOutcome; field errors are also recorded on the binding

        Raises:
            RequestInFlightError: If a render request is already outstanding
        """
        if self.in_flight:
            raise RequestInFlightError(RENDER_ACTION)

        captured: Dict[str, Any] = {}
        result = binding.submit(captured.update)

        if not result.is_valid:
            logger.warning(f"Submission for template {template_id} blocked by {len(result.errors)} errors")
            return SubmissionOutcome(success=False, errors=dict(result.errors))

        payload = _sanitize_for_json(captured)

        with self.tracker.track(RENDER_ACTION):
            try:
                document = self.client.render(template_id, payload)
            except TransportFailure as e:
                logger.error(f"Render request for template {template_id} failed: {e}")
                return SubmissionOutcome(success=False, value=payload, transport_error=e)

        logger.info(f"Rendered template {template_id} ({len(document)} bytes)")
        return SubmissionOutcome(success=True, value=payload, document=document)
