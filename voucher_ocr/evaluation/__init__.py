"""
Evaluation Module for the Voucher OCR System.

Regression oracle for the pipeline:
    - Sample corpus with expected validity windows
    - Harness running every (image, observation date) case
    - Report aggregation and export

Author: Voucher OCR Team
"""

from .corpus import Corpus, CorpusLoader, EvalCase, SampleImage, default_corpus
from .report import EvalReport, EvalResult, ReportExporter
from .harness import EvaluationHarness

__all__ = [
    'Corpus',
    'CorpusLoader',
    'EvalCase',
    'SampleImage',
    'default_corpus',
    'EvalReport',
    'EvalResult',
    'ReportExporter',
    'EvaluationHarness',
]
