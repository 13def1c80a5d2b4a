"""
Evaluation Corpus Module.

Defines the fixed set of sample voucher images and, for each, the
observation dates it is evaluated under with the validity window the
pipeline must produce. A single image is evaluated under several
observation dates to exercise the year-crossing cases.

Custom corpora can be loaded from YAML or JSON:

    images:
      - filename: feb11-feb17.jpg
        cases:
          - {label: "Feb 10 2026", observed: 2026-02-10,
             validFrom: 2026-02-11, expiry: 2026-02-17}
"""

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import yaml

from voucher_ocr.utils.logger import get_logger
from voucher_ocr.utils.helpers import parse_date
from voucher_ocr.utils.exceptions import ConfigurationError
from voucher_ocr.postprocessor.models import ResolvedValidity

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class EvalCase:
    """
    One (image, observation date) pair with its expected validity.

    Attributes:
        image_ref: Sample image filename
        label: Display name of the observation date ("Jan 1 2026")
        observation_date: Simulated submission date
        expected_validity: Window the pipeline must produce
    """
    image_ref: str
    label: str
    observation_date: date
    expected_validity: ResolvedValidity


@dataclass(frozen=True)
class SampleImage:
    """A corpus image and the cases it is evaluated under."""
    filename: str
    cases: Tuple[EvalCase, ...]


class Corpus:
    """
    Ordered collection of sample images.

    Example:
        >>> corpus = default_corpus()
        >>> corpus.get("feb11-feb17.jpg").cases[0].expected_validity.expiry
        datetime.date(2026, 2, 17)
    """

    def __init__(self, images: List[SampleImage]) -> None:
        self._images: Dict[str, SampleImage] = {}
        for image in images:
            if image.filename in self._images:
                raise ConfigurationError("evaluation.corpus", f"duplicate image {image.filename}")
            self._images[image.filename] = image

    def get(self, filename: str) -> Optional[SampleImage]:
        return self._images.get(filename)

    @property
    def filenames(self) -> List[str]:
        return list(self._images)

    @property
    def cases(self) -> List[EvalCase]:
        return [case for image in self for case in image.cases]

    def __iter__(self) -> Iterator[SampleImage]:
        return iter(self._images.values())

    def __len__(self) -> int:
        return len(self._images)


def make_case(filename: str, label: str, observed, valid_from, expiry) -> EvalCase:
    """Build an EvalCase from ISO strings or dates."""
    return EvalCase(
        image_ref=filename,
        label=label,
        observation_date=parse_date(observed),
        expected_validity=ResolvedValidity(parse_date(valid_from), parse_date(expiry))
    )


def _dec23_jan5_cases(filename: str) -> Tuple[EvalCase, ...]:
    # A 23 Dec - 5 Jan window observed on each default date
    return (
        make_case(filename, "Dec 22 2025", "2025-12-22", "2025-12-23", "2026-01-05"),
        make_case(filename, "Jan 1 2026", "2026-01-01", "2025-12-23", "2026-01-05"),
        make_case(filename, "Jan 3 2026", "2026-01-03", "2025-12-23", "2026-01-05"),
        make_case(filename, "Jan 25 2025", "2025-01-25", "2024-12-23", "2025-01-05"),
        make_case(filename, "Jan 29 2026", "2026-01-29", "2025-12-23", "2026-01-05"),
        make_case(filename, "Feb 1 2026", "2026-02-01", "2025-12-23", "2026-01-05"),
        make_case(filename, "Feb 10 2026", "2026-02-10", "2025-12-23", "2026-01-05"),
    )


def default_corpus() -> Corpus:
    """The built-in sample images."""
    return Corpus([
        SampleImage("23dec-3jan.jpg", _dec23_jan5_cases("23dec-3jan.jpg")),
        SampleImage("23dec-5jan.jpg", _dec23_jan5_cases("23dec-5jan.jpg")),
        SampleImage("29dec-7jan.jpg", (
            make_case("29dec-7jan.jpg", "Dec 22 2025", "2025-12-22", "2025-12-29", "2026-01-07"),
        )),
        SampleImage("30Dec-8jan.jpg", (
            make_case("30Dec-8jan.jpg", "2025-12-28", "2025-12-28", "2025-12-30", "2026-01-08"),
        )),
        SampleImage("dec21-jan5.jpg", (
            make_case("dec21-jan5.jpg", "Dec 22 2025", "2025-12-22", "2025-12-21", "2026-01-05"),
        )),
        SampleImage("26jan-1feb.jpg", (
            make_case("26jan-1feb.jpg", "Jan 25 2025", "2025-01-25", "2025-01-26", "2025-02-01"),
        )),
        SampleImage("jan26-feb01.jpg", (
            make_case("jan26-feb01.jpg", "Jan 25 2025", "2025-01-25", "2025-01-26", "2025-02-01"),
        )),
        SampleImage("feb2nd-feb11th.jpg", (
            make_case("feb2nd-feb11th.jpg", "Feb 1 2026", "2026-02-01", "2026-02-02", "2026-02-11"),
        )),
        SampleImage("feb11-feb17.jpg", (
            make_case("feb11-feb17.jpg", "Feb 10 2026", "2026-02-10", "2026-02-11", "2026-02-17"),
        )),
    ])


class CorpusLoader:
    """
    Loads a corpus definition from a YAML or JSON file.

    Example:
        >>> corpus = CorpusLoader().load("tests/fixtures/corpus.yaml")
    """

    REQUIRED_CASE_FIELDS = ('observed', 'validFrom', 'expiry')

    def load(self, file_path: Union[str, Path]) -> Corpus:
        """
        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the format or a record is invalid.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Corpus file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == '.json':
                data = json.load(f)
            elif path.suffix.lower() in ('.yaml', '.yml'):
                data = yaml.safe_load(f)
            else:
                raise ConfigurationError("evaluation.corpus", f"Unsupported format: {path.suffix}")

        if not isinstance(data, dict) or not isinstance(data.get('images'), list):
            raise ConfigurationError("evaluation.corpus", "expected a mapping with an 'images' list")

        corpus = Corpus([self._parse_image(entry) for entry in data['images']])
        logger.info(f"Loaded {len(corpus)} corpus images ({len(corpus.cases)} cases) from {path.name}")
        return corpus

    def _parse_image(self, entry: Dict[str, Any]) -> SampleImage:
        filename = entry.get('filename') if isinstance(entry, dict) else None
        if not filename:
            raise ConfigurationError("evaluation.corpus", f"image entry without filename: {entry!r}")

        cases = []
        for raw_case in entry.get('cases') or []:
            missing = [name for name in self.REQUIRED_CASE_FIELDS if not raw_case.get(name)]
            if missing:
                raise ConfigurationError(
                    "evaluation.corpus",
                    f"{filename}: case missing {', '.join(missing)}"
                )
            try:
                cases.append(make_case(
                    filename,
                    str(raw_case.get('label') or raw_case['observed']),
                    raw_case['observed'],
                    raw_case['validFrom'],
                    raw_case['expiry']
                ))
            except (AttributeError, TypeError, ValueError) as e:
                raise ConfigurationError("evaluation.corpus", f"{filename}: invalid date ({e})")

        if not cases:
            raise ConfigurationError("evaluation.corpus", f"{filename}: no cases")
        return SampleImage(filename, tuple(cases))
