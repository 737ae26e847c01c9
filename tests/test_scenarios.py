"""
Tests for implication scenarios and the scenario registry.
"""
import json
import pytest
from convergence_suite.core.implications.scenarios import (
    BUILTIN_SCENARIOS,
    MetricAdjustment,
    Scenario,
    ScenarioRegistry,
    apply_scenario,
    get_scenario,
)


@pytest.mark.unit
class TestApplyScenario:
    """Tests for applying built-in adjustments."""

    def test_efficient_electricity(self):
        assert apply_scenario("efficient", "ELECTRICITY_USE_PCAP", 1000) == pytest.approx(850)

    def test_electrify(self):
        assert apply_scenario("electrify", "ELECTRICITY_USE_PCAP", 1000) == pytest.approx(1350)

    def test_high_industry_points_clamped(self):
        assert apply_scenario("highIndustry", "INDUSTRY_VA_PCT_GDP", 30) == pytest.approx(35)
        assert apply_scenario("highIndustry", "INDUSTRY_VA_PCT_GDP", 98) == 100

    def test_unmentioned_metric_unchanged(self):
        assert apply_scenario("efficient", "URBAN_POP_PCT", 55.5) == 55.5

    def test_baseline_is_identity(self):
        for code in ("ENERGY_USE_PCAP", "CO2_PCAP", "INDUSTRY_VA_PCT_GDP"):
            assert apply_scenario("baseline", code, 42.0) == 42.0

    def test_unknown_scenario_is_baseline(self):
        assert apply_scenario("doesNotExist", "ELECTRICITY_USE_PCAP", 1000) == 1000
        assert get_scenario("doesNotExist").id == "baseline"

    @pytest.mark.parametrize("value", [None, float("nan"), float("inf")])
    def test_missing_value(self, value):
        assert apply_scenario("efficient", "ELECTRICITY_USE_PCAP", value) is None

    def test_multiplier_then_points(self):
        adj = MetricAdjustment(multiplier=2.0, additive_points=5)
        assert adj.apply(30) == pytest.approx(65)
        assert adj.apply(60) == 100

    def test_non_finite_adjustment_rejected(self):
        with pytest.raises(ValueError):
            MetricAdjustment(multiplier=float("nan"))

    def test_presets(self):
        assert BUILTIN_SCENARIOS["efficient"].presets.grid_loss_pct == 7
        assert BUILTIN_SCENARIOS["highGrowth"].presets.horizon_years == 25
        assert BUILTIN_SCENARIOS["importDependent"].presets.net_imports_pct == 10
        assert BUILTIN_SCENARIOS["baseline"].presets.horizon_years is None

    def test_scenario_round_trip(self):
        s = BUILTIN_SCENARIOS["highIndustry"]
        assert Scenario.from_dict(s.to_dict()) == s


@pytest.mark.unit
class TestScenarioRegistry:
    """Tests for loading custom scenarios from JSON."""

    def _write(self, tmp_path, payload):
        path = tmp_path / "scenarios.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    def test_builtins_only(self):
        registry = ScenarioRegistry()
        assert set(registry.ids()) == set(BUILTIN_SCENARIOS)
        assert registry.get_custom() == {}

    def test_missing_file_is_empty(self, tmp_path):
        registry = ScenarioRegistry(str(tmp_path / "nope.json"))
        assert registry.get_custom() == {}

    def test_loads_list(self, tmp_path):
        path = self._write(tmp_path, [{
            "id": "coalHeavy",
            "label": "Coal heavy",
            "adjustments": {"CO2_PCAP": {"multiplier": 1.2}},
            "presets": {"grid_loss_pct": 15},
        }])
        registry = ScenarioRegistry(path)

        scenario = registry.get("coalHeavy")
        assert not scenario.is_builtin
        assert scenario.presets.grid_loss_pct == 15
        assert apply_scenario("coalHeavy", "CO2_PCAP", 10, registry) == pytest.approx(12)
        assert "coalHeavy" in registry.ids()

    def test_loads_mapping(self, tmp_path):
        """Keyed files may leave out the id; the key supplies it."""
        path = self._write(tmp_path, {"lowUrban": {"adjustments": {"URBAN_POP_PCT": {"additive_points": -5}}}})
        registry = ScenarioRegistry(path)
        assert registry.get("lowUrban").label == "lowUrban"
        assert apply_scenario("lowUrban", "URBAN_POP_PCT", 3, registry) == 0

    def test_mapping_key_wins_over_id(self, tmp_path, caplog):
        path = self._write(tmp_path, {"coastal": {"id": "inland", "label": "Coastal"}})
        with caplog.at_level("WARNING"):
            registry = ScenarioRegistry(path)
        assert set(registry.get_custom()) == {"coastal"}
        assert "disagrees" in caplog.text

    def test_mapping_key_cannot_shadow_builtin(self, tmp_path):
        path = self._write(tmp_path, {"efficient": {"adjustments": {"CO2_PCAP": {"multiplier": 3}}}})
        registry = ScenarioRegistry(path)
        assert registry.get_custom() == {}
        assert apply_scenario("efficient", "CO2_PCAP", 10, registry) == pytest.approx(8.5)

    def test_cannot_shadow_builtin(self, tmp_path):
        path = self._write(tmp_path, [
            {"id": "efficient", "adjustments": {"ELECTRICITY_USE_PCAP": {"multiplier": 5}}},
        ])
        registry = ScenarioRegistry(path)
        assert registry.get_custom() == {}
        assert apply_scenario("efficient", "ELECTRICITY_USE_PCAP", 1000, registry) == pytest.approx(850)

    def test_custom_cannot_claim_builtin_flag(self, tmp_path):
        path = self._write(tmp_path, [{"id": "mine", "is_builtin": True}])
        assert ScenarioRegistry(path).get("mine").is_builtin is False

    def test_malformed_file_logged(self, tmp_path, caplog):
        path = tmp_path / "scenarios.json"
        path.write_text("{not json", encoding="utf-8")
        with caplog.at_level("WARNING"):
            registry = ScenarioRegistry(str(path))
        assert registry.get_custom() == {}
        assert "Could not load custom scenarios" in caplog.text

    def test_bad_entry_discards_file(self, tmp_path):
        path = self._write(tmp_path, [{"id": "ok"}, {"label": "no id"}])
        assert ScenarioRegistry(path).get_custom() == {}
