"""
Client library for the Withings health data API.

Public API:
    WithingsClient: HTTP transport with envelope decoding
    MeasureService: measure, activity and workout actions
    Context: cancellation and deadline for a call
    decode: envelope decoder for raw response bodies

OAuth lives in the withings.oauth subpackage.

Exceptions:
    WithingsError: Base exception
    ConfigurationError: Invalid endpoint or credentials
    Canceled / DeadlineExceeded: Context ended the call
    DecodeError: Response body could not be decoded
    WithingsAPIError: Non-zero envelope status
"""

from .client import USER_AGENT, Response, WithingsClient, validate_base_url
from .context import Context
from .endpoints import ENDPOINT, ENDPOINT_HIPAA
from .envelope import DecodedResponse, Envelope, Pagination, decode
from .exceptions import (
    Canceled,
    ConfigurationError,
    ContextError,
    DeadlineExceeded,
    DecodeError,
    WithingsAPIError,
    WithingsError,
)
from .measure import MeasureService
from .models import (
    Activities,
    Activity,
    ActivityField,
    Category,
    IntradayActivities,
    IntradayActivity,
    IntradayActivityField,
    Measure,
    MeasureGetOptions,
    MeasureGroup,
    Measures,
    MeasureType,
    Workout,
    WorkoutField,
    Workouts,
)

__all__ = [
    # Client
    "WithingsClient",
    "Response",
    "USER_AGENT",
    "ENDPOINT",
    "ENDPOINT_HIPAA",
    "validate_base_url",
    "Context",
    # Envelope
    "decode",
    "DecodedResponse",
    "Envelope",
    "Pagination",
    # Measure
    "MeasureService",
    "MeasureGetOptions",
    "MeasureType",
    "Category",
    "ActivityField",
    "IntradayActivityField",
    "WorkoutField",
    "Measure",
    "MeasureGroup",
    "Measures",
    "Activity",
    "Activities",
    "IntradayActivity",
    "IntradayActivities",
    "Workout",
    "Workouts",
    # Exceptions
    "WithingsError",
    "ConfigurationError",
    "ContextError",
    "Canceled",
    "DeadlineExceeded",
    "DecodeError",
    "WithingsAPIError",
]
