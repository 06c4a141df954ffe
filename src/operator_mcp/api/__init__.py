"""Operator control-plane discovery and client."""

from .client import HEALTH_PATH, OperatorApiClient, OperatorApiError
from .discovery import DESCRIPTOR_RELATIVE_PATH, read_endpoint_descriptor, resolve_base_url
from .models import EndpointDescriptor, HealthResponse, LaunchTicketRequest, LaunchTicketResponse

__all__ = [
    "DESCRIPTOR_RELATIVE_PATH",
    "EndpointDescriptor",
    "HEALTH_PATH",
    "HealthResponse",
    "LaunchTicketRequest",
    "LaunchTicketResponse",
    "OperatorApiClient",
    "OperatorApiError",
    "read_endpoint_descriptor",
    "resolve_base_url",
]
