"""
Response envelope decoding for the Withings API.

Every Withings response, success or failure, has the same shape:

    {"status": 0, "body": {...}}

status 0 means success; anything else is an API error, independent of the
HTTP status code. List calls carry a pagination cursor inside body:

    {"status": 0, "body": {"more": true, "offset": 200, ...}}

The body shape differs per call, so the response is parsed once into a
generic document and then decoded twice from that same document: once into
the fixed Envelope model to read status and pagination, and once into the
caller's result type. Both decodes match on JSON field names, so a single
decoder serves every endpoint.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .exceptions import DecodeError

logger = logging.getLogger(__name__)


class Pagination(BaseModel):
    """Pagination cursor embedded in the envelope body."""

    model_config = ConfigDict(extra="ignore")

    more: bool = False
    offset: int = 0


class Envelope(BaseModel):
    """
    Protocol metadata shared by every response.

    Attributes:
        status: Withings status code (0 = success)
        body: Pagination fields found in the body (defaults when absent)
        error: Error message sent along with non-zero statuses
    """

    model_config = ConfigDict(extra="ignore")

    status: int = 0
    body: Pagination = Field(default_factory=Pagination)
    error: Any = None

    @field_validator("body", mode="before")
    @classmethod
    def _empty_body(cls, value: Any) -> Any:
        # Error responses send null or [] instead of an object
        if value is None or value == []:
            return {}
        return value

    @property
    def ok(self) -> bool:
        return self.status == 0

    @property
    def more(self) -> bool:
        return self.body.more

    @property
    def offset(self) -> int:
        return self.body.offset

    @property
    def error_message(self) -> str:
        return "" if self.error is None else str(self.error)


@dataclass(frozen=True)
class DecodedResponse:
    """Result of decoding one response body."""

    envelope: Envelope
    payload: Any = None

    @property
    def status(self) -> int:
        return self.envelope.status

    @property
    def more(self) -> bool:
        return self.envelope.more

    @property
    def offset(self) -> int:
        return self.envelope.offset


@lru_cache(maxsize=128)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def parse_document(raw: Union[bytes, str, None]) -> Dict[str, Any]:
    """
    Parse a response body into a generic JSON object.

    An empty body is not an error: some endpoints answer success with no
    content, which decodes to an empty document.

    Args:
        raw: Raw response body

    Returns:
        Parsed JSON object

    Raises:
        DecodeError: If the body is not valid JSON or not a JSON object
    """
    if raw is None:
        return {}

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(str(e), stage="json") from e

    if not raw.strip():
        return {}

    try:
        document = json.loads(raw)
    except ValueError as e:
        raise DecodeError(str(e), stage="json") from e

    if not isinstance(document, dict):
        raise DecodeError(
            f"expected a JSON object, got {type(document).__name__}", stage="json"
        )

    return document


def decode_metadata(document: Dict[str, Any]) -> Envelope:
    """
    Decode status and pagination from a parsed document.

    Raises:
        DecodeError: If status or pagination fields have the wrong shape
    """
    try:
        return Envelope.model_validate(document)
    except ValidationError as e:
        raise DecodeError(str(e), stage="envelope") from e


def decode_payload(document: Dict[str, Any], target: Any) -> Any:
    """
    Decode a parsed document into the caller's result type.

    Fields are matched by JSON name. Unknown fields are ignored by pydantic
    models and dataclasses; missing fields take their defaults.

    Args:
        document: Parsed response document
        target: Pydantic model, dataclass or typing type (None skips decoding)

    Returns:
        Instance of target, or None when target is None

    Raises:
        DecodeError: If the document cannot populate the target type
    """
    if target is None:
        return None

    try:
        return _adapter(target).validate_python(document)
    except ValidationError as e:
        raise DecodeError(str(e), stage="payload") from e


def decode(raw: Union[bytes, str, None], target: Any = None) -> DecodedResponse:
    """
    Decode a response body into envelope metadata and a typed payload.

    A non-zero status does not raise here; callers inspect
    DecodedResponse.status and treat non-zero values as API errors.
    Failure of either decode pass is a hard failure.

    Args:
        raw: Raw response body
        target: Result type for the payload pass (None to skip)

    Returns:
        DecodedResponse with envelope metadata and decoded payload

    Raises:
        DecodeError: On malformed JSON or a shape mismatch in either pass
    """
    document = parse_document(raw)
    envelope = decode_metadata(document)
    payload = decode_payload(document, target)

    logger.debug(
        f"Decoded envelope: status={envelope.status} "
        f"more={envelope.more} offset={envelope.offset}"
    )
    return DecodedResponse(envelope=envelope, payload=payload)
