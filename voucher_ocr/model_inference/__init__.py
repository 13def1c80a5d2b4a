"""
Model Inference Module for the Voucher OCR System.

This module sends voucher images to a vision-capable model and returns
its raw JSON answer.

Features:
    - Year-parameterised extraction prompt
    - Zero-temperature, JSON-only decoding with a 256 token ceiling
    - Interchangeable backends (Gemini, OpenRouter fallback, offline replay)

Author: Voucher OCR Team
"""

from .prompt import build_prompt
from .backends import (
    ExtractionBackend,
    GeminiBackend,
    OpenRouterBackend,
    ReplayBackend,
    create_backend,
    create_fallback_backend,
)
from .extractor import ExtractionClient
from .extraction_result import ExtractionResponse

__all__ = [
    'build_prompt',
    'ExtractionBackend',
    'GeminiBackend',
    'OpenRouterBackend',
    'ReplayBackend',
    'create_backend',
    'create_fallback_backend',
    'ExtractionClient',
    'ExtractionResponse',
]
