import json
from datetime import date

import pytest

from voucher_ocr.evaluation import Corpus, CorpusLoader, SampleImage, default_corpus
from voucher_ocr.evaluation.corpus import make_case
from voucher_ocr.postprocessor import ResolvedValidity, resolve_years
from voucher_ocr.utils.exceptions import ConfigurationError

DEFAULT_DATES = {
    date(2025, 12, 22), date(2026, 1, 1), date(2026, 1, 3), date(2025, 1, 25),
    date(2026, 1, 29), date(2026, 2, 1), date(2026, 2, 10),
}


class TestDefaultCorpus:

    def test_nine_sample_images(self):
        corpus = default_corpus()
        assert len(corpus) == 9
        assert corpus.filenames[0] == "23dec-3jan.jpg"
        assert "feb11-feb17.jpg" in corpus.filenames

    def test_year_crossing_images_use_every_default_date(self):
        corpus = default_corpus()
        for filename in ("23dec-3jan.jpg", "23dec-5jan.jpg"):
            dates = {case.observation_date for case in corpus.get(filename).cases}
            assert dates == DEFAULT_DATES

    def test_expected_windows_follow_year_inference(self):
        for case in default_corpus().cases:
            expected = case.expected_validity
            years = resolve_years(
                expected.valid_from.month,
                expected.expiry.month,
                case.observation_date.year,
                case.observation_date.month,
            )
            assert years == (expected.valid_from.year, expected.expiry.year), case.label

    def test_unknown_filename(self):
        assert default_corpus().get("not-in-corpus.jpg") is None

    def test_duplicate_filenames_rejected(self):
        case = make_case("a.jpg", "x", "2026-01-01", "2026-01-01", "2026-01-02")
        with pytest.raises(ConfigurationError):
            Corpus([SampleImage("a.jpg", (case,)), SampleImage("a.jpg", (case,))])


class TestCorpusLoader:

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "corpus.yaml"
        path.write_text(
            "images:\n"
            "  - filename: feb11-feb17.jpg\n"
            "    cases:\n"
            "      - {label: Feb 10 2026, observed: 2026-02-10, validFrom: 2026-02-11, expiry: 2026-02-17}\n"
            "      - {observed: 2027-02-01, validFrom: 2027-02-11, expiry: 2027-02-17}\n",
            encoding="utf-8"
        )

        corpus = CorpusLoader().load(path)
        cases = corpus.get("feb11-feb17.jpg").cases

        assert len(cases) == 2
        assert cases[0].label == "Feb 10 2026"
        assert cases[0].expected_validity == ResolvedValidity(date(2026, 2, 11), date(2026, 2, 17))
        assert cases[1].label == "2027-02-01"

    def test_load_json(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps({"images": [{
            "filename": "x.jpg",
            "cases": [{"label": "a", "observed": "2025-12-22",
                       "validFrom": "2025-12-21", "expiry": "2026-01-05"}],
        }]}), encoding="utf-8")

        corpus = CorpusLoader().load(path)
        assert corpus.cases[0].observation_date == date(2025, 12, 22)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CorpusLoader().load(tmp_path / "absent.yaml")

    @pytest.mark.parametrize("content", [
        "[]",
        "images: {}",
        "images:\n  - cases: []",
        "images:\n  - filename: a.jpg\n    cases: []",
        "images:\n  - filename: a.jpg\n    cases:\n      - {observed: 2026-01-01, validFrom: 2026-01-01}",
        "images:\n  - filename: a.jpg\n    cases:\n      - {observed: soon, validFrom: 2026-01-01, expiry: 2026-01-02}",
    ])
    def test_invalid_corpus(self, tmp_path, content):
        path = tmp_path / "corpus.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError):
            CorpusLoader().load(path)

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "corpus.csv"
        path.write_text("filename,observed", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            CorpusLoader().load(path)
