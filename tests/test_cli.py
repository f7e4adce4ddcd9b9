"""Tests for CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from grocery_resolver.main import app

runner = CliRunner()


@pytest.fixture
def cli(temp_data_dir, isolated_home):
    """Invoke the CLI in JSON mode against a temporary data directory."""

    def invoke(*args):
        return runner.invoke(app, ["--json", "--data-dir", str(temp_data_dir), *args])

    return invoke


def output(result):
    return json.loads(result.stdout)


class TestNormalizeCommands:
    """Tests for the normalize sub-commands."""

    def test_normalize_size(self, cli):
        result = cli("normalize", "size", "2 pints")
        assert result.exit_code == 0

        normalized = output(result)["data"]["normalized"]
        assert normalized["key"] == "1136:volume"
        assert normalized["display"] == "2pt"
        assert normalized["category"] == "volume"

    def test_normalize_name(self, cli):
        result = cli("normalize", "name", "whole  milks")
        assert result.exit_code == 0
        assert output(result)["data"]["normalized"]["display"] == "Whole Milk"

    def test_normalize_store(self, cli):
        result = cli("normalize", "store", "TESCO EXPRESS")
        assert result.exit_code == 0

        normalized = output(result)["data"]["normalized"]
        assert normalized["store_id"] == "tesco"
        assert normalized["display_name"] == "Tesco"

    def test_normalize_unknown_store(self, cli):
        result = cli("normalize", "store", "Corner Shop")
        assert result.exit_code == 0
        assert output(result)["data"]["normalized"]["store_id"] is None


class TestMatchCommand:
    """Tests for the match command."""

    def test_match_single(self, cli, sample_match_request):
        result = cli("match", "--data", sample_match_request)
        assert result.exit_code == 0

        match = output(result)["data"]["match"]
        assert match["best_match"]["id"] == "list-1"
        assert match["score"] == 95
        assert match["confidence_tier"] == "high"
        assert len(match["all_candidates"]) == 3

    def test_match_from_file(self, cli, sample_match_request, tmp_path):
        request_file = tmp_path / "request.json"
        request_file.write_text(sample_match_request)

        result = cli("match", "--file", str(request_file))
        assert result.exit_code == 0
        assert output(result)["data"]["match"]["best_match"]["name"] == "Whole Milk"

    def test_match_batch(self, cli, sample_candidates):
        request = json.dumps(
            {
                "mentions": [
                    {"name": "whole milk", "unit_price": 1.45, "category": "dairy"},
                    {"name": "zzz"},
                ],
                "candidates": [c.model_dump(mode="json") for c in sample_candidates],
            }
        )
        result = cli("match", "--data", request)
        assert result.exit_code == 0

        batch = output(result)["data"]["batch"]
        assert batch["auto_match_threshold"] == 70
        assert [m["best_match"]["id"] for m in batch["matched"]] == ["list-1"]
        assert [m["mention"]["name"] for m in batch["unmatched"]] == ["zzz"]

    def test_match_requires_input(self, cli):
        result = cli("match")
        assert result.exit_code == 1
        assert output(result)["error"] == "Must provide either --data or --file"

    def test_match_invalid_json(self, cli):
        result = cli("match", "--data", "{not json")
        assert result.exit_code == 1
        assert output(result)["error"].startswith("Invalid JSON")

    def test_match_missing_mention(self, cli):
        result = cli("match", "--data", json.dumps({"candidates": []}))
        assert result.exit_code == 1
        assert output(result)["error_code"] == "INVALID_INPUT"

    def test_match_invalid_candidate(self, cli):
        request = json.dumps({"mention": {"name": "milk"}, "candidates": [{"name": "Milk"}]})
        result = cli("match", "--data", request)
        assert result.exit_code == 1
        assert output(result)["error_code"] == "INVALID_INPUT"

    def test_match_rich_output(self, temp_data_dir, isolated_home, sample_match_request):
        result = runner.invoke(
            app, ["--data-dir", str(temp_data_dir), "match", "--data", sample_match_request]
        )
        assert result.exit_code == 0
        assert "Whole Milk" in result.stdout


class TestDedupCommand:
    """Tests for the dedup command."""

    def test_dedup_sources(self, cli):
        request = json.dumps(
            {
                "sources": {
                    "list-1": {
                        "label": "Weekly Shop",
                        "items": [
                            {"name": "Milk", "quantity": 1, "estimated_price": 1.50},
                            {"name": "Bread"},
                        ],
                    },
                    "list-2": {
                        "label": "Party",
                        "items": [{"name": "milk", "quantity": 2, "estimated_price": 1.40}],
                    },
                }
            }
        )
        result = cli("dedup", "--data", request)
        assert result.exit_code == 0

        dedup = output(result)["data"]["dedup"]
        assert len(dedup["items"]) == 2
        assert dedup["duplicates"][0]["sources"] == ["Weekly Shop", "Party"]
        assert dedup["duplicates"][0]["reason"] == "higher quantity (2 vs 1); quantities combined (3)"

    def test_dedup_pantry_items(self, cli):
        request = json.dumps({"items": [{"name": "Rice"}, {"name": "rice"}, {"name": "Pasta"}]})
        result = cli("dedup", "--data", request)
        assert result.exit_code == 0

        dedup = output(result)["data"]["dedup"]
        assert len(dedup["items"]) == 2
        assert dedup["duplicates"][0]["sources"] == ["pantry"]

    def test_dedup_requires_input(self, cli):
        result = cli("dedup")
        assert result.exit_code == 1


class TestMappingCommands:
    """Tests for the mapping sub-commands."""

    def test_learn_then_lookup(self, cli):
        result = cli(
            "mapping", "learn", "Tesco Express", "TSC WHL MLK", "Whole Milk", "--price", "1.45"
        )
        assert result.exit_code == 0

        mapping = output(result)["data"]["mapping"]
        assert mapping["store_id"] == "tesco"
        assert mapping["raw_pattern"] == "tsc whl mlk"
        assert mapping["typical_price_min"] == 1.45

        result = cli("mapping", "lookup", "Tesco", "tsc  whl mlk")
        assert result.exit_code == 0
        assert output(result)["data"]["lookup"] == {
            "canonical_name": "Whole Milk",
            "confidence": 60,
            "exact": True,
        }

    def test_lookup_is_store_specific(self, cli):
        cli("mapping", "learn", "Tesco", "TSC WHL MLK", "Whole Milk")

        result = cli("mapping", "lookup", "Asda", "TSC WHL MLK")
        assert result.exit_code == 0
        assert output(result)["data"]["lookup"] is None

    def test_repeated_learning_raises_confidence(self, cli):
        for _ in range(3):
            cli("mapping", "learn", "Tesco", "TSC WHL MLK", "Whole Milk")

        result = cli("mapping", "lookup", "Tesco", "TSC WHL MLK")
        assert output(result)["data"]["lookup"]["confidence"] == 80


class TestPriceCommands:
    """Tests for the price sub-commands."""

    def test_resolve_with_nothing_known(self, cli):
        result = cli("price", "resolve", "saffron", "--size", "1g", "--unit", "g")
        assert result.exit_code == 0

        resolved = output(result)["data"]["resolved_price"]
        assert resolved["price"] is None
        assert resolved["source"] == "none"
        assert resolved["confidence"] == 0.0

    def test_resolve_ai_estimate(self, cli):
        result = cli(
            "price", "resolve", "milk", "--size", "2 pints", "--unit", "pint", "--ai-estimate", "1.30"
        )
        resolved = output(result)["data"]["resolved_price"]
        assert resolved["source"] == "ai"
        assert resolved["price"] == 1.30
        assert resolved["confidence"] == 0.5

    def test_record_then_resolve(self, cli):
        result = cli(
            "price", "record", "Milk", "1.25", "--store", "Tesco", "--size", "2 pints", "--reports", "3"
        )
        assert result.exit_code == 0
        assert output(result)["data"]["region"] == "UK"

        result = cli(
            "price", "resolve", "milk", "--size", "2 pints", "--unit", "pint", "--store", "Tesco"
        )
        resolved = output(result)["data"]["resolved_price"]
        assert resolved["source"] == "crowdsourced"
        assert resolved["price"] == 1.25
        assert resolved["store_name"] == "Tesco"
        assert resolved["report_count"] == 3
        assert resolved["confidence"] == pytest.approx(0.85, abs=0.01)

    def test_purchase_beats_crowd(self, cli):
        cli("price", "record", "milk", "1.25", "--store", "Tesco", "--size", "2 pints")
        result = cli(
            "price", "purchase", "alice", "milk", "1.10",
            "--store", "Tesco", "--size", "2 pints", "--unit", "pint", "--date", "2026-02-01",
        )
        assert result.exit_code == 0
        assert output(result)["data"]["purchase_date"] == "2026-02-01T00:00:00"

        result = cli(
            "price", "resolve", "milk", "--size", "2 pints", "--unit", "pint", "--user", "alice"
        )
        resolved = output(result)["data"]["resolved_price"]
        assert resolved["source"] == "personal"
        assert resolved["price"] == 1.10
        assert resolved["confidence"] == 1.0

    def test_purchase_invalid_date(self, cli):
        result = cli(
            "price", "purchase", "alice", "milk", "1.10",
            "--store", "Tesco", "--size", "2 pints", "--unit", "pint", "--date", "yesterday",
        )
        assert result.exit_code == 1


class TestVariantCommands:
    """Tests for variants, best-variant and bracket."""

    @pytest.fixture
    def milk_variants(self, cli):
        cli(
            "variant", "add", "Milk", "Milk 2 pints",
            "--size", "2 pints", "--unit", "pint", "--commonality", "0.9", "--price", "1.15",
        )
        cli(
            "variant", "add", "milk", "Milk 4 pints",
            "--size", "4 pints", "--unit", "pint", "--commonality", "0.5", "--price", "1.65",
        )

    def test_variant_add(self, cli):
        result = cli("variant", "add", "Milk", "Milk 1 pint", "--size", "1 pint", "--unit", "pint")
        assert result.exit_code == 0
        assert output(result)["data"]["base_item"] == "milk"

    def test_best_variant(self, cli, milk_variants):
        result = cli("price", "best-variant", "milk")
        assert result.exit_code == 0

        variant_price = output(result)["data"]["variant_price"]
        assert variant_price["variant"]["variant_name"] == "Milk 2 pints"
        assert variant_price["price"] == 1.15
        assert variant_price["source"] == "ai"

    def test_best_variant_unknown_item(self, cli):
        result = cli("price", "best-variant", "caviar")
        assert result.exit_code == 1
        assert output(result)["error_code"] == "NO_VARIANTS"

    def test_bracket(self, cli, milk_variants):
        result = cli("bracket", "Milk 2 pints", "1.20")
        assert result.exit_code == 0

        bracket = output(result)["data"]["bracket"]
        assert bracket["matched"] is True
        assert bracket["match_type"] == "bracket"
        assert bracket["variant"]["variant_name"] == "Milk 2 pints"

    def test_bracket_no_variants(self, cli):
        result = cli("bracket", "Caviar", "50")
        assert result.exit_code == 0
        assert output(result)["data"]["bracket"]["match_type"] == "no_match"


class TestClosestSizeCommand:
    """Tests for the closest-size command."""

    def test_closest_size(self, cli):
        result = cli("closest-size", "250g", "227g", "500g", "1kg")
        assert result.exit_code == 0

        size_match = output(result)["data"]["size_match"]
        assert size_match["target"] == "250g"
        assert size_match["best_match"]["size"] == "227g"
        assert size_match["has_auto_match"] is True
        assert [m["size"] for m in size_match["all_matches"]] == ["227g", "500g", "1kg"]

    def test_custom_tolerance(self, cli):
        result = cli("closest-size", "250g", "227g", "--tolerance", "0.05")
        assert output(result)["data"]["size_match"]["has_auto_match"] is False

    def test_unrecognised_target(self, cli):
        result = cli("closest-size", "lots", "500g")
        assert result.exit_code == 1
        assert output(result)["error_code"] == "INVALID_INPUT"


class TestConfigErrors:
    """Tests for configuration failures."""

    def test_invalid_config(self, temp_data_dir, isolated_home, tmp_path):
        (tmp_path / "config.toml").write_text("[matching.weights]\ntoken_overlap = 90\n")

        result = runner.invoke(
            app, ["--json", "--data-dir", str(temp_data_dir), "normalize", "name", "milk"]
        )
        assert result.exit_code == 1
        assert output(result)["error_code"] == "INVALID_CONFIG"
