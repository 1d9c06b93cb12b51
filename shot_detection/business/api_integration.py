"""
API Integration Component
This module handles communication with the detection and persistence services.

Both services are black boxes: the clients here only shape requests and turn
failures into ServiceError. Retry policy belongs to the services themselves.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union, runtime_checkable

import requests

from ..config import APIEnvironment, get_api_config
from ..models import ResultPayload
from ..utils.error_handling import ServiceError

logger = logging.getLogger(__name__)

@runtime_checkable
class DetectionSource(Protocol):
    """Anything that turns an image into a detection response body."""

    def detect(self, image_bytes: bytes, filename: Optional[str] = None) -> Mapping[str, Any]:
        ...

@runtime_checkable
class PersistenceSink(Protocol):
    """Anything that stores a final result payload."""

    def save_result(self, payload: Union[ResultPayload, Mapping[str, Any]]) -> Mapping[str, Any]:
        ...

@dataclass
class APIResponse:
    """Represents an API response."""
    success: bool
    status_code: int
    data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    response_time: float = 0.0
    endpoint: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def raise_for_error(self) -> Dict[str, Any]:
        """
        Return the body of a successful response.

        Raises:
            ServiceError: if the request failed
        """
        if not self.success:
            raise ServiceError(self.error_message or "Request failed",
                               status_code=self.status_code,
                               endpoint=self.endpoint)
        return self.data or {}

class ServiceClient:
    """
    Shared HTTP plumbing for the service clients.
    Wraps a requests.Session and reports every call as an APIResponse.
    """

    url_key = 'base_url'

    def __init__(self, base_url: Optional[str] = None,
                 config: Optional[Dict[str, Any]] = None,
                 environment: APIEnvironment = APIEnvironment.DEVELOPMENT,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            base_url: Service base URL (defaults to the environment's)
            config: Configuration overrides
            environment: Deployment environment
            session: requests session to reuse
        """
        self.config = get_api_config(environment, **(config or {}))
        self.base_url = base_url or self.config[self.url_key]
        self.endpoints = self.config['endpoints']
        self.timeout = self.config.get('timeout', 30.0)
        self.verify_ssl = self.config.get('verify_ssl', True)

        self.session = session or requests.Session()
        self.session.headers.update(self.config['headers'])
        token = self.config.get('token')
        if token:
            self.session.headers['Authorization'] = f"Bearer {token}"

        # Statistics and monitoring
        self.request_count: int = 0
        self.successful_requests: int = 0
        self.failed_requests: int = 0
        self.total_response_time: float = 0.0
        self.error_history: List[str] = []

        self.callbacks: Dict[str, List[Callable]] = {
            'request_completed': [],
        }

        logger.info(f"{type(self).__name__} initialized with base_url: {self.base_url}")

    def _url(self, endpoint_key: str) -> str:
        path = self.endpoints.get(endpoint_key)
        if not path:
            raise ValueError(f"Unknown endpoint key: {endpoint_key}")
        return self.base_url.rstrip('/') + '/' + path.lstrip('/')

    def _make_request(self, method: str, endpoint_key: str,
                      json: Optional[Dict[str, Any]] = None,
                      files: Optional[Dict[str, Any]] = None,
                      timeout: Optional[float] = None) -> APIResponse:
        """
        Make a single HTTP request.

        Args:
            method: HTTP method
            endpoint_key: Key into the configured endpoints
            json: JSON body
            files: Multipart files
            timeout: Request timeout (defaults to the configured one)

        Returns:
            APIResponse; transport failures are reported, not raised
        """
        url = self._url(endpoint_key)
        start_time = time.time()
        status_code = 0
        data = None
        error_message = None

        try:
            response = self.session.request(
                method.upper(),
                url,
                json=json,
                files=files,
                timeout=timeout or self.timeout,
                verify=self.verify_ssl,
            )
            status_code = response.status_code

            if 200 <= status_code < 300:
                try:
                    data = response.json()
                except ValueError:
                    data = {'raw_response': response.text}
            else:
                error_message = f"HTTP {status_code}: {response.text[:200]}"

        except requests.exceptions.Timeout:
            error_message = "Request timeout"
        except requests.exceptions.ConnectionError:
            error_message = "Connection error"
        except requests.exceptions.RequestException as e:
            error_message = f"Request error: {e}"

        response_time = time.time() - start_time
        self.request_count += 1
        self.total_response_time += response_time

        api_response = APIResponse(
            success=error_message is None,
            status_code=status_code,
            data=data,
            error_message=error_message,
            response_time=response_time,
            endpoint=url,
        )

        if api_response.success:
            self.successful_requests += 1
            logger.debug(f"{method.upper()} {url} -> {status_code} in {response_time:.2f}s")
        else:
            self.failed_requests += 1
            self._track_error(f"{method.upper()} {url}: {error_message}")

        self._trigger_callbacks('request_completed', api_response)
        return api_response

    def health_check(self) -> APIResponse:
        return self._make_request('GET', 'health_check')

    def _track_error(self, error_message: str):
        """Track error occurrences."""
        self.error_history.append(f"{datetime.now().isoformat()}: {error_message}")

        if len(self.error_history) > 100:
            self.error_history = self.error_history[-50:]

        logger.error(f"API Error: {error_message}")

    def get_statistics(self) -> Dict[str, Any]:
        """Request counters for this client."""
        return {
            'base_url': self.base_url,
            'request_count': self.request_count,
            'successful_requests': self.successful_requests,
            'failed_requests': self.failed_requests,
            'average_response_time': (self.total_response_time / self.request_count
                                      if self.request_count else 0.0),
            'recent_errors': self.error_history[-10:],
        }

    def add_callback(self, event_type: str, callback: Callable):
        if event_type in self.callbacks:
            self.callbacks[event_type].append(callback)
        else:
            logger.warning(f"Unknown callback event type: {event_type}")

    def _trigger_callbacks(self, event_type: str, *args, **kwargs):
        """Trigger all callbacks for a specific event type."""
        for callback in self.callbacks.get(event_type, []):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")

class DetectionClient(ServiceClient):
    """
    Client for the bullet-hole detection service.

    Uploads go to the document endpoint (page rectification plus scale
    calibration) and fall back to the legacy endpoint when it fails.
    """

    def detect(self, image_bytes: bytes, filename: Optional[str] = None) -> Dict[str, Any]:
        """
        Upload an image for analysis.

        Args:
            image_bytes: Encoded image
            filename: Upload filename

        Returns:
            Decoded response body

        Raises:
            ServiceError: if every endpoint tried failed
        """
        upload = self.config['upload']
        name = filename or upload['default_filename']

        def files():
            return {upload['file_field']: (name, image_bytes, upload['content_type'])}

        if self.config.get('use_document_analysis', True):
            response = self._make_request('POST', 'analyze_document', files=files())
            if response.success:
                return response.raise_for_error()
            logger.warning(f"Document analysis failed ({response.error_message}), falling back to legacy endpoint")

        return self._make_request('POST', 'analyze', files=files()).raise_for_error()

class PersistenceClient(ServiceClient):
    """Client for the service that stores corrected results."""

    url_key = 'persistence_url'

    def save_result(self, payload: Union[ResultPayload, Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Post a result payload.

        Raises:
            ServiceError: if the service rejects the payload or is unreachable
        """
        if isinstance(payload, ResultPayload):
            body = payload.model_dump(mode='json')
        else:
            body = dict(payload)

        return self._make_request('POST', 'save_result', json=body).raise_for_error()
