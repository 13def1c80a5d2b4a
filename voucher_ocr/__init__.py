"""
Voucher OCR System - Source Package.

Reads a photographed discount voucher, decides whether it is one of the
accepted denominations and works out the calendar dates of its validity
window from day/month fragments that usually carry no year.

Modules:
    - input_handler: Image sourcing and JPEG normalisation
    - model_inference: Prompt, extraction backends and client
    - postprocessor: Parsing, year inference and classification
    - pipeline: End-to-end entry points
    - evaluation: Regression harness over sample images
    - utils: Logging, exceptions and helpers

Architecture:
    Input -> Extraction -> Parsing -> Year Inference -> Classification
                                                      |
                                                  Evaluation
"""

__version__ = "1.0.0"

__all__ = [
    'input_handler',
    'model_inference',
    'postprocessor',
    'pipeline',
    'evaluation',
    'utils'
]
