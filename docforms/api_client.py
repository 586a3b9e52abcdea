"""
Template service client

Thin wrapper around the template inspection / rendering HTTP API.
Handles request building, response unwrapping and error reporting.
Failures are reported to the caller as TransportFailure and never retried here.
"""

import logging
from typing import Any, Dict, List, NoReturn, Optional

import requests

from .exceptions import InvalidSpecificationError, TransportFailure
from .field_spec import TemplateSpec, TemplateSummary, parse_template_spec

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'http://localhost:4000/api'
DEFAULT_TIMEOUT = 30
DOCX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'


def _error_message_from_response(response: Optional[requests.Response]) -> Optional[str]:
    """Extract the server's error message from a response body, if any."""
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ('error', 'message'):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return None


def _raise_transport_failure(exception: requests.RequestException, operation: str) -> NoReturn:
    """
    Log a RequestException and raise it as TransportFailure.

    Raises:
        TransportFailure: Always
    """
    response = getattr(exception, 'response', None)
    status_code = getattr(response, 'status_code', None)
    response_body = None
    if response is not None:
        try:
            response_body = response.text
        except Exception:
            response_body = None

    server_message = _error_message_from_response(response)
    logger.error(f"Failed to {operation}: status_code={status_code or 'N/A'} error={exception}")

    if server_message:
        message = server_message
    elif status_code:
        message = f"Failed to {operation} (status: {status_code})"
    else:
        message = f"Failed to {operation}: the template service could not be reached"

    raise TransportFailure(
        message,
        status_code=status_code,
        response_body=response_body,
        operation=operation
    ) from exception


class TemplateServiceClient:
    """
    Client for the template service.

    Provides methods for:
        - Inspecting an uploaded template into a field specification
        - Rendering a template with structured data into a document
        - Listing, fetching and deleting stored templates
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = DEFAULT_TIMEOUT,
                 token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.token = token
        self.session = session if session is not None else requests.Session()

        logger.debug(f"TemplateServiceClient initialized: base_url={self.base_url}, timeout={self.timeout}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'TemplateServiceClient':
        api = config.get('api', {})
        return cls(
            base_url=api.get('base_url', DEFAULT_BASE_URL),
            timeout=api.get('timeout', DEFAULT_TIMEOUT),
            token=api.get('token') or None
        )

    def _get_headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, operation: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        headers = self._get_headers()
        headers.update(kwargs.pop('headers', {}))
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            _raise_transport_failure(e, operation)
        return response

    @staticmethod
    def _json_body(response: requests.Response, operation: str) -> Any:
        try:
            body = response.json()
        except ValueError as e:
            raise TransportFailure(
                f"Failed to {operation}: the service returned an unreadable response",
                status_code=response.status_code,
                operation=operation
            ) from e

        if isinstance(body, dict) and body.get('success') is False:
            message = body.get('error') or body.get('message') or f"Failed to {operation}"
            raise TransportFailure(message, status_code=response.status_code, operation=operation)
        return body

    @staticmethod
    def _unwrap_spec(body: Any, operation: str) -> TemplateSpec:
        data = body.get('data', body) if isinstance(body, dict) else body
        try:
            return parse_template_spec(data)
        except InvalidSpecificationError:
            logger.error(f"Service returned a malformed specification while trying to {operation}")
            raise

    def inspect(self, filename: str, content: bytes, content_type: str = DOCX_MIME_TYPE) -> TemplateSpec:
        """
        Upload a template file and return its extracted field specification.

        Returns:
            TemplateSpec with templateId, version and fields
        """
        operation = "inspect template"
        response = self._request(
            'POST', '/templates/inspect', operation,
            files={'file': (filename, content, content_type)}
        )
        spec = self._unwrap_spec(self._json_body(response, operation), operation)
        logger.info(f"Inspected {filename}: template {spec.template_id} v{spec.version}, {len(spec.fields)} fields")
        return spec

    def render(self, template_id: str, data: Dict[str, Any]) -> bytes:
        """
        Render a template with structured data.

        Returns:
            The rendered document as bytes
        """
        operation = "render document"
        response = self._request(
            'POST', '/templates/render/docx', operation,
            json={'templateId': template_id, 'data': data}
        )
        return response.content

    def get_spec(self, template_id: str, version: Optional[int] = None) -> TemplateSpec:
        """Fetch the stored specification of a template (latest version by default)."""
        operation = "load template specification"
        params = {'version': version} if version else {}
        response = self._request('GET', f'/templates/{template_id}/spec', operation, params=params)
        return self._unwrap_spec(self._json_body(response, operation), operation)

    def list_templates(self) -> List[TemplateSummary]:
        """
        List the user's templates.

        The service may answer ``{data: [...]}``, ``{templates: [...]}`` or a bare list.
        """
        operation = "load templates"
        response = self._request('GET', '/templates', operation)
        body = self._json_body(response, operation)

        if isinstance(body, dict):
            entries = body.get('data', body.get('templates', []))
        else:
            entries = body
        if not isinstance(entries, list):
            entries = []

        templates = []
        for entry in entries:
            try:
                templates.append(TemplateSummary.model_validate(entry))
            except ValueError as e:
                logger.warning(f"Skipping malformed template entry: {e}")
        return templates

    def delete_template(self, template_id: str, version: int) -> bool:
        """Delete one version of a template."""
        operation = "delete template"
        response = self._request(
            'DELETE', f'/templates/{template_id}', operation,
            params={'version': version}
        )
        if response.content:
            self._json_body(response, operation)
        logger.info(f"Deleted template {template_id} v{version}")
        return True
