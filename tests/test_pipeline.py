"""
Tests for greenindex/workflows/pipeline.py and the main.py entry point

Covers:
  - End-to-end run on raw dataset rows
  - Reproducibility under a fixed seed / injected generator
  - Caller data never mutated
  - Empty dataset
  - JSON-ready output
  - PipelineRunner: newer runs supersede older ones
  - CLI: CSV in, JSON out, error exit codes
"""

import copy
import csv
import json

import numpy as np
import pytest

from main import main
from greenindex.config import PipelineConfig
from greenindex.domain.models import CategorizedRecommendations, RecommendationMode
from greenindex.workflows.pipeline import PipelineRunner, run_pipeline


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

HEADERS = [
    "Brand_ID", "Brand_Name", "Country", "Year", "Material_Type",
    "Carbon_Footprint_MT", "Water_Usage_Liters", "Waste_Production_KG",
    "Average_Price_USD", "Sustainability_Rating", "Recycling_Programs",
    "Eco_Friendly_Manufacturing", "Market_Trend",
]


def _rows():
    data = [
        ("B1", "Acme", "Italy", "2020", "Organic Cotton", "10", "2000", "30", "$50", "A", "Yes", "Yes", "Growing"),
        ("B2", "Bolt", "Italy", "2021", "Organic Cotton", "12", "2200", "35", "$65", "B", "Yes", "No", "Stable"),
        ("B3", "Crest", "USA", "2020", "Polyester", "40", "5000", "90", "$20", "D", "No", "No", "Declining"),
        ("B4", "Dune", "USA", "2022", "Polyester", "38", "5200", "80", "$25", "C", "No", "No", "Stable"),
        ("B5", "Echo", "France", "2021", "Hemp", "5", "800", "10", "$90", "A", "Yes", "Yes", "Growing"),
        ("B6", "Fern", "France", "2022", "Hemp", "6", "900", "12", "", "B", "Yes", "Yes", "Growing"),
        ("B7", "Gale", "India", "2020", "Recycled Nylon", "20", "3000", "50", "$45", "B", "Yes", "No", "Growing"),
        ("B8", "Halo", "India", "", "", "25", "", "60", "$30", "", "", "", ""),
    ]
    return [dict(zip(HEADERS, values)) for values in data]


def _write_csv(path, rows):
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=HEADERS)
        writer.writeheader()
        writer.writerows(rows)


# ---------------------------------------------------------------------------
# 1. End-to-end
# ---------------------------------------------------------------------------

class TestRunPipeline:

    def test_outputs_cover_every_record(self):
        result = run_pipeline(_rows())
        assert len(result.records) == 8
        assert len(result.pareto_flags) == 8
        assert all(0.0 <= r.sis <= 1.0 for r in result.records)
        assert sum(result.weights.weights) == pytest.approx(1.0)

    def test_category_aggregates_clustered(self):
        result = run_pipeline(_rows())
        categories = [a.category for a in result.category_aggregates]
        assert categories == sorted(categories)
        assert "Unknown" in categories
        assert len(result.elbow.curve) == len(categories)
        assert all(0 <= a.cluster < result.kmeans.k for a in result.category_aggregates)

    def test_recommendations_default_ranked(self):
        result = run_pipeline(_rows())
        assert result.recommendation_mode == RecommendationMode.RANKED
        scores = [r.final_score for r in result.recommendations]
        assert scores == sorted(scores, reverse=True)

    def test_categorized_mode(self):
        config = PipelineConfig(recommendation_mode=RecommendationMode.CATEGORIZED, top_n=2)
        result = run_pipeline(_rows(), config)
        assert isinstance(result.recommendations, CategorizedRecommendations)
        assert len(result.recommendations.best_value) <= 2
        assert all(r.is_pareto for r in result.recommendations.balanced)

    def test_secondary_groupings(self):
        result = run_pipeline(_rows())
        assert [g.key for g in result.year_aggregates] == [2020, 2021, 2022]
        assert [g.key for g in result.country_aggregates] == ["France", "India", "Italy", "USA"]

    def test_same_seed_same_output(self):
        first = run_pipeline(_rows(), PipelineConfig(random_seed=3)).to_dict()
        second = run_pipeline(_rows(), PipelineConfig(random_seed=3)).to_dict()
        assert json.dumps(first) == json.dumps(second)

    def test_injected_generator(self):
        first = run_pipeline(_rows(), rng=np.random.default_rng(8))
        second = run_pipeline(_rows(), rng=np.random.default_rng(8))
        assert first.kmeans == second.kmeans
        assert first.elbow == second.elbow

    def test_rows_not_mutated(self):
        rows = _rows()
        snapshot = copy.deepcopy(rows)
        run_pipeline(rows)
        assert rows == snapshot

    def test_empty_dataset(self):
        result = run_pipeline([])
        assert result.records == []
        assert result.weights.weights == (0.5, 0.5)
        assert result.category_aggregates == []
        assert result.elbow.best_k == 0
        assert result.recommendations == []

    def test_to_dict_is_strict_json(self):
        payload = run_pipeline(_rows()).to_dict()
        text = json.dumps(payload, allow_nan=False)
        assert "entropy_weights" in json.loads(text)
        assert payload["records"][5]["price"] is None
        assert all("is_pareto" in r for r in payload["records"])


# ---------------------------------------------------------------------------
# 2. PipelineRunner
# ---------------------------------------------------------------------------

class TestPipelineRunner:

    def test_newer_run_supersedes_older(self):
        runner = PipelineRunner()
        old = runner.begin("catalogue")
        new = runner.begin("catalogue")
        assert not runner.is_current(old)
        assert runner.is_current(new)

        old_result = run_pipeline(_rows()[:4])
        new_result = run_pipeline(_rows())
        assert runner.commit(new, new_result)
        assert not runner.commit(old, old_result)
        assert runner.latest("catalogue") is new_result

    def test_keys_are_independent(self):
        runner = PipelineRunner()
        a = runner.begin("a")
        runner.begin("b")
        assert runner.is_current(a)

    def test_run_stores_latest(self):
        runner = PipelineRunner(PipelineConfig(top_n=3))
        result = runner.run("catalogue", _rows())
        assert result is not None
        assert runner.latest("catalogue") is result
        assert len(result.recommendations) == 3

    def test_latest_unknown_key(self):
        assert PipelineRunner().latest("missing") is None


# ---------------------------------------------------------------------------
# 3. CLI
# ---------------------------------------------------------------------------

class TestCli:

    def test_writes_json(self, tmp_path):
        csv_path = tmp_path / "data.csv"
        out_path = tmp_path / "result.json"
        _write_csv(csv_path, _rows())

        code = main([str(csv_path), "--output", str(out_path), "--mode", "pareto_first",
                     "--top-n", "4", "--settings", str(tmp_path / "none.json")])

        assert code == 0
        payload = json.loads(out_path.read_text(encoding="utf-8"))
        assert payload["recommendation_mode"] == "pareto_first"
        assert len(payload["recommendations"]) == 4
        assert len(payload["records"]) == 8

    def test_bad_settings_fall_back_to_defaults(self, tmp_path):
        csv_path = tmp_path / "data.csv"
        out_path = tmp_path / "result.json"
        settings_path = tmp_path / "settings.json"
        _write_csv(csv_path, _rows())
        settings_path.write_text(
            json.dumps({"pipeline": {"random_seed": "7", "elbow_trials": 2.5}}),
            encoding="utf-8",
        )

        code = main([str(csv_path), "--output", str(out_path),
                     "--settings", str(settings_path)])

        assert code == 0
        payload = json.loads(out_path.read_text(encoding="utf-8"))
        assert len(payload["records"]) == 8

    def test_missing_input(self, tmp_path):
        assert main([str(tmp_path / "absent.csv")]) == 1

    def test_invalid_weight(self, tmp_path):
        csv_path = tmp_path / "data.csv"
        _write_csv(csv_path, _rows())
        assert main([str(csv_path), "--weight", "1.5",
                     "--settings", str(tmp_path / "none.json")]) == 1
