"""
Extraction Response Data Class.

Raw answer from the extraction service, before any parsing.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class ExtractionResponse:
    """
    Raw text returned by a vision model plus the envelope it came in.

    Attributes:
        text: Model output text (expected to be a JSON object)
        envelope: Full decoded response body, kept for audit/debugging
        provider: Backend name ("gemini", "openrouter", "replay")
        model: Model identifier used for the call
        observation_year: Year embedded in the prompt
        processing_time: Wall-clock seconds spent on the call
        extraction_timestamp: When the call completed
    """
    text: str
    envelope: Dict[str, Any] = field(default_factory=dict)
    provider: Optional[str] = None
    model: Optional[str] = None
    observation_year: Optional[int] = None
    processing_time: float = 0.0
    extraction_timestamp: Optional[str] = None

    def __post_init__(self):
        if self.extraction_timestamp is None:
            self.extraction_timestamp = datetime.now().isoformat()

    @property
    def raw_envelope(self) -> str:
        """Envelope serialized as a JSON string."""
        return json.dumps(self.envelope, ensure_ascii=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'envelope': self.envelope,
            'provider': self.provider,
            'model': self.model,
            'observation_year': self.observation_year,
            'processing_time': self.processing_time,
            'extraction_timestamp': self.extraction_timestamp
        }

    def __repr__(self) -> str:
        return (
            f"ExtractionResponse("
            f"provider={self.provider}, "
            f"model={self.model}, "
            f"chars={len(self.text)}, "
            f"time={self.processing_time:.2f}s)"
        )
