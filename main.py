#!/usr/bin/env python3
"""
Voucher OCR System - Main Entry Point.

Command-line access to the voucher extraction pipeline and to the
evaluation harness.

Usage:
    Command Line:
        python main.py extract --input voucher.jpg --date 2025-12-22
        python main.py extract --input https://example.com/voucher.jpg --fallback
        python main.py evaluate --images data/test-images --output outputs/reports/evals.xlsx
        python main.py evaluate --replay tests/fixtures/recorded.yaml

    Python:
        from main import run_extract
        outcome = run_extract("voucher.jpg", observation_date="2025-12-22")

Exit codes:
    0  success (extract) / every case passed (evaluate)
    1  error, or at least one evaluation case failed
    2  the voucher was rejected (classified failure)

Author: Voucher OCR Team
Version: 1.0.0
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager, get_config
from voucher_ocr.utils.logger import set_level, setup_logger_from_config, get_logger
from voucher_ocr.utils.helpers import generate_timestamp
from voucher_ocr.utils.exceptions import ConfigurationError, ReportExportError


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REJECTED = 2


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Voucher OCR System",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Extract one voucher as if submitted on a given day:
        python main.py extract --input voucher.jpg --date 2026-01-03

    Run the evaluation corpus against the fallback provider:
        python main.py evaluate --fallback --output outputs/reports/evals.json
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # extract
    extract = subparsers.add_parser("extract", help="Extract one voucher image")
    extract.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Image file or http(s) URL"
    )
    extract.add_argument(
        "--date", "-d",
        type=str,
        default=None,
        help="Observation date YYYY-MM-DD (default: today)"
    )
    extract.add_argument(
        "--fallback",
        action="store_true",
        help="Use the fallback extraction provider"
    )

    # evaluate
    evaluate = subparsers.add_parser("evaluate", help="Run the evaluation harness")
    evaluate.add_argument(
        "--images",
        type=str,
        default=None,
        help="Directory holding the sample images (default: paths.test_images)"
    )
    evaluate.add_argument(
        "--corpus",
        type=str,
        default=None,
        help="YAML/JSON corpus file (default: built-in corpus)"
    )
    evaluate.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Report file (.txt, .json or .xlsx)"
    )
    evaluate.add_argument(
        "--fallback",
        action="store_true",
        help="Use the fallback extraction provider"
    )
    evaluate.add_argument(
        "--replay",
        type=str,
        default=None,
        help="Recorded responses file; runs offline without calling a provider"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()

    if args.debug:
        set_level(logging.DEBUG)

    logger.info("=" * 60)
    logger.info("VOUCHER OCR SYSTEM")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Command: {args.command}")

    return config


def run_extract(input_ref: str, observation_date: Optional[str] = None, use_fallback: bool = False):
    """
    Extract one voucher from a local file or URL.

    Args:
        input_ref: Image file path or http(s) URL.
        observation_date: ISO date the image counts as submitted on (default today).
        use_fallback: Use the fallback provider instead of the primary one.

    Returns:
        VoucherExtraction or FailureRecord.

    Raises:
        FileNotFoundError: If a local input does not exist.
        ConfigurationError: If the provider credential is missing.
    """
    from voucher_ocr.input_handler import ImageLoader, LocalImageStore
    from voucher_ocr.model_inference import ExtractionClient, create_backend, create_fallback_backend
    from voucher_ocr.pipeline import VoucherPipeline

    backend = create_fallback_backend() if use_fallback else create_backend()
    client = ExtractionClient(backend)

    if input_ref.startswith(("http://", "https://")):
        pipeline = VoucherPipeline(client=client)
        return pipeline.extract_from_url(input_ref, observation_date)

    path = Path(input_ref)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")

    loader = ImageLoader(store=LocalImageStore(path.parent))
    pipeline = VoucherPipeline(client=client, image_loader=loader)
    return pipeline.extract_from_storage(path.name, observation_date)


def run_evaluation(
    images_dir: Optional[str] = None,
    corpus_path: Optional[str] = None,
    output_path: Optional[str] = None,
    use_fallback: bool = False,
    replay_path: Optional[str] = None
):
    """
    Run the evaluation harness and export its report.

    Returns:
        Tuple of (EvalReport, path of the exported report).
    """
    from voucher_ocr.evaluation import CorpusLoader, EvaluationHarness, ReportExporter
    from voucher_ocr.model_inference import ReplayBackend

    images_dir = images_dir or get_config("paths.test_images")
    corpus = CorpusLoader().load(corpus_path) if corpus_path else None
    backend = ReplayBackend.from_file(replay_path, images_dir) if replay_path else None

    harness = EvaluationHarness(
        backend=backend,
        use_fallback=use_fallback,
        corpus=corpus,
        images_dir=images_dir
    )
    report = harness.run()

    if output_path is None:
        report_format = get_config("evaluation.report_format", "json")
        output_path = str(
            Path(get_config("paths.reports_dir", "outputs/reports"))
            / f"evals_{generate_timestamp()}.{report_format}"
        )

    exported = ReportExporter().export(report, output_path)
    return report, exported


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code.
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        logger = get_logger(__name__)

        if args.command == "extract":
            outcome = run_extract(args.input, args.date, args.fallback)
            print(outcome.to_json())

            if not outcome.success:
                from voucher_ocr.postprocessor import get_failure_message
                logger.warning(get_failure_message(outcome.reason))
                return EXIT_REJECTED
            return EXIT_OK

        report, exported = run_evaluation(
            images_dir=args.images,
            corpus_path=args.corpus,
            output_path=args.output,
            use_fallback=args.fallback,
            replay_path=args.replay
        )
        print(report.print_report())

        logger.info("=" * 60)
        logger.info(f"Evaluation complete: {report.passed}/{report.total} passed. Report: {exported}")
        logger.info("=" * 60)

        return EXIT_OK if report.overall_success else EXIT_ERROR

    # Expected failures get a one-line message instead of a traceback
    except (ConfigurationError, ReportExportError, FileNotFoundError, ValueError) as exc:
        print(f"voucher-ocr: {exc}", file=sys.stderr)
        return EXIT_ERROR

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
