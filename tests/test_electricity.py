"""
Tests for electricity build-out, technology equivalents and housing.
"""
import pytest
from convergence_suite.core.implications.electricity import (
    DEFAULT_ASSUMPTIONS,
    MIX_PRESETS,
    CapacityBaseline,
    ImplicationAssumptions,
    PowerSource,
    average_gw,
    baseline_multipliers,
    electricity_demand,
    get_mix_preset,
    homes_needed,
    max_annual_growth,
    mix_buildout,
    observed_electricity,
    tech_equivalents,
)
from convergence_suite.core.implications.scenarios import BUILTIN_SCENARIOS


@pytest.mark.unit
class TestElectricityDemand:
    """Tests for demand change and required domestic generation."""

    def test_grid_loss_grosses_up(self):
        d = electricity_demand(500, 1000, 400)
        assert d.demand_delta_twh == pytest.approx(500)
        assert d.required_domestic_generation_twh == pytest.approx(1000 / 0.9)
        assert d.buildout_delta_twh == pytest.approx(1000 / 0.9 - 400)

    def test_net_imports_reduce_requirement(self):
        a = ImplicationAssumptions(grid_loss_pct=0, net_imports_pct=10)
        d = electricity_demand(500, 1000, None, a)
        assert d.required_domestic_generation_twh == pytest.approx(900)
        assert d.buildout_delta_twh is None

    def test_buildout_never_negative(self):
        d = electricity_demand(500, 600, 5000)
        assert d.buildout_delta_twh == 0.0

    def test_grid_loss_clamped(self):
        a = ImplicationAssumptions(grid_loss_pct=90)
        d = electricity_demand(None, 100, None, a)
        assert d.required_domestic_generation_twh == pytest.approx(200)
        assert d.demand_delta_twh is None

    def test_missing_future(self):
        d = electricity_demand(500, None, 400)
        assert d.required_domestic_generation_twh is None
        assert d.buildout_delta_twh is None
        assert d.demand_delta_avg_gw is None

    def test_average_gw(self):
        assert average_gw(8.76) == pytest.approx(1.0)
        d = electricity_demand(0, 87.6, None)
        assert d.demand_delta_avg_gw == pytest.approx(10.0)

    def test_presets_overlay(self):
        a = DEFAULT_ASSUMPTIONS.with_presets(BUILTIN_SCENARIOS["efficient"].presets)
        assert a.grid_loss_pct == 7
        assert a.net_imports_pct == 0
        assert DEFAULT_ASSUMPTIONS.with_presets(BUILTIN_SCENARIOS["baseline"].presets) is DEFAULT_ASSUMPTIONS


@pytest.mark.unit
class TestTechEquivalents:
    """Tests for expressing a TWh gap as capacity."""

    def test_defaults(self):
        eq = tech_equivalents(87.6)
        assert eq.nuclear_gw == pytest.approx(87.6 / (8.76 * 0.9))
        assert eq.solar_gw == pytest.approx(50.0)
        assert eq.wind_gw == pytest.approx(87.6 / (8.76 * 0.35))
        assert eq.coal_plants == eq.coal_gw
        # 400 W at 20% -> 700.8 kWh per panel per year
        assert eq.solar_panels == pytest.approx(87.6e9 / 700.8)
        assert eq.wind_turbines == pytest.approx(eq.wind_gw * 1000 / 3)

    def test_capacity_factor_clamped(self):
        a = ImplicationAssumptions(solar_cf=0.9, nuclear_cf=0.0)
        eq = tech_equivalents(8.76, a)
        assert eq.solar_gw == pytest.approx(1 / 0.5)
        assert eq.nuclear_gw == pytest.approx(1 / 0.05)

    @pytest.mark.parametrize("delta", [None, float("nan")])
    def test_missing_delta(self, delta):
        assert tech_equivalents(delta) is None


@pytest.mark.unit
class TestHomesNeeded:

    def test_divides_by_household(self):
        assert homes_needed(1e8, 4) == pytest.approx(2.5e7)

    def test_invalid(self):
        assert homes_needed(None, 4) is None
        assert homes_needed(100, 0) is None


def _coal_snapshot(twh=52.56):
    """2020 snapshot: 100 TWh total, `twh` of it from coal."""
    return observed_electricity({2020: 100.0}, {PowerSource.COAL: {2020: twh}})


@pytest.mark.unit
class TestObservedElectricity:
    """Tests for picking the generation snapshot."""

    def test_latest_year_with_sources(self):
        """2021 has a total but no breakdown, so 2020 is used."""
        obs = observed_electricity(
            {2019: 500.0, 2020: 600.0, 2021: 700.0},
            {
                PowerSource.COAL: {2019: 300.0, 2020: 350.0},
                PowerSource.SOLAR: [(2020, 60.0)],
            },
        )
        assert obs.year == 2020
        assert obs.total_twh == 600.0
        assert obs.by_source_twh[PowerSource.COAL] == 350.0
        assert obs.by_source_twh[PowerSource.WIND] is None
        assert obs.shares_pct[PowerSource.SOLAR] == pytest.approx(10.0)
        assert obs.shares_pct[PowerSource.COAL] == pytest.approx(350 / 6)
        assert obs.shares_pct[PowerSource.NUCLEAR] is None

    def test_skips_non_positive_total(self):
        obs = observed_electricity({2019: 400.0, 2020: 0.0}, {PowerSource.COAL: {2019: 100.0, 2020: 100.0}})
        assert obs.year == 2019

    def test_zero_source_counts(self):
        obs = observed_electricity({2020: 500.0}, {PowerSource.NUCLEAR: {2020: 0.0}})
        assert obs.shares_pct[PowerSource.NUCLEAR] == 0.0

    def test_negative_or_missing_sources(self):
        assert observed_electricity({2020: 500.0}, {PowerSource.COAL: {2020: -1.0}}) is None
        assert observed_electricity({2020: 500.0}, {PowerSource.COAL: {2020: None}}) is None
        assert observed_electricity({2020: 500.0}) is None
        assert observed_electricity(None, {PowerSource.COAL: {2020: 1.0}}) is None


@pytest.mark.unit
class TestBaselineMultipliers:
    """Tests for comparing required capacity with today's fleet."""

    def test_inferred_from_generation(self):
        """52.56 TWh of coal at a 0.6 capacity factor is a 10 GW fleet."""
        result = baseline_multipliers(tech_equivalents(87.6), _coal_snapshot())
        assert result.kind == CapacityBaseline.INFERRED
        assert result.year == 2020
        assert result.ratios[PowerSource.COAL] == pytest.approx(87.6 / 5.256 / 10)
        assert result.ratios[PowerSource.SOLAR] is None

    def test_reported_capacity_wins(self):
        capacity = {PowerSource.SOLAR: {2018: 10.0, 2022: 25.0}}
        result = baseline_multipliers(tech_equivalents(87.6), _coal_snapshot(), capacity)
        assert result.kind == CapacityBaseline.REPORTED
        assert result.year == 2022
        assert result.ratios[PowerSource.SOLAR] == pytest.approx(50.0 / 25.0)
        assert result.ratios[PowerSource.COAL] == pytest.approx(87.6 / 5.256 / 10)

    def test_non_positive_report_falls_back(self):
        capacity = {PowerSource.COAL: {2021: 0.0}}
        result = baseline_multipliers(tech_equivalents(87.6), _coal_snapshot(), capacity)
        assert result.kind == CapacityBaseline.INFERRED
        assert result.ratios[PowerSource.COAL] == pytest.approx(87.6 / 5.256 / 10)

    def test_nothing_needed(self):
        result = baseline_multipliers(tech_equivalents(0.0), _coal_snapshot())
        assert all(r is None for r in result.ratios.values())

    def test_missing_inputs(self):
        assert baseline_multipliers(None, _coal_snapshot()) is None
        assert baseline_multipliers(tech_equivalents(87.6), None) is None


@pytest.mark.unit
class TestMaxAnnualGrowth:

    def test_fastest_growth(self):
        series = {2010: 10.0, 2011: 12.0, 2012: 20.0, 2015: 26.0, 2016: 25.0, 2017: 40.0}
        max_yoy, max_5y = max_annual_growth(series)
        assert max_yoy == pytest.approx(15.0)
        assert max_5y == pytest.approx(4.0)

    def test_gap_spread_over_years(self):
        max_yoy, max_5y = max_annual_growth([(2000, 0.0), (2010, 50.0)])
        assert max_yoy == pytest.approx(5.0)
        assert max_5y is None

    @pytest.mark.parametrize("series", [None, {2010: 5.0}, {2010: 5.0, 2015: 3.0}])
    def test_no_growth(self, series):
        assert max_annual_growth(series) == (None, None)


@pytest.mark.unit
class TestMixBuildout:
    """Tests for splitting a generation gap across a power mix."""

    def test_clean_mix(self):
        result = mix_buildout(87.6, 10)
        assert result.share_sum == 100
        assert result.percent == {
            PowerSource.SOLAR: 60, PowerSource.WIND: 30, PowerSource.NUCLEAR: 10, PowerSource.COAL: 0,
        }

        solar = result.tech[PowerSource.SOLAR]
        assert solar.twh == pytest.approx(52.56)
        assert solar.gw == pytest.approx(30.0)
        assert solar.gw_per_year == pytest.approx(3.0)
        assert solar.panels == pytest.approx(30e9 / 400)
        assert solar.plants is None

        wind = result.tech[PowerSource.WIND]
        assert wind.turbines == pytest.approx(wind.gw * 1000 / 3)
        assert result.tech[PowerSource.NUCLEAR].plants == pytest.approx(1 / 0.9)
        assert result.tech[PowerSource.COAL].gw == 0.0
        assert result.baseline_kind == CapacityBaseline.INFERRED
        assert solar.capacity_x is None
        assert solar.pace_x is None

    def test_shares_normalized(self):
        result = mix_buildout(100.0, 10, {"solar": 1, PowerSource.WIND: 1})
        assert result.fractions[PowerSource.SOLAR] == pytest.approx(0.5)
        assert result.fractions[PowerSource.COAL] == 0.0
        assert result.percent[PowerSource.WIND] == 50

    def test_empty_mix_falls_back(self):
        result = mix_buildout(100.0, 10, {})
        assert result.share_sum == 0
        assert result.fractions[PowerSource.SOLAR] == 0.6
        assert result.fractions[PowerSource.NUCLEAR] == 0.1

    def test_percent_rounds_half_up(self):
        result = mix_buildout(100.0, 10, {"solar": 1, "wind": 7})
        assert result.percent[PowerSource.SOLAR] == 13
        assert result.percent[PowerSource.WIND] == 88

    def test_multipliers_and_pace(self):
        history = {PowerSource.COAL: {2010: 20.0, 2015: 40.0, 2020: 52.56}}
        result = mix_buildout(87.6, 10, MIX_PRESETS["coal"], _coal_snapshot(), generation=history)
        coal = result.tech[PowerSource.COAL]
        assert coal.generation_x == pytest.approx(87.6 / 52.56)
        assert coal.capacity_x == pytest.approx(87.6 / 5.256 / 10)
        assert coal.max_5y_twh_per_year == pytest.approx(4.0)
        assert coal.pace_x == pytest.approx(8.76 / 4.0)
        assert result.tech[PowerSource.SOLAR].generation_x is None

    def test_reported_capacity(self):
        capacity = {PowerSource.COAL: [(2020, 20.0)]}
        result = mix_buildout(87.6, 10, get_mix_preset("coal"), _coal_snapshot(), capacity)
        assert result.baseline_kind == CapacityBaseline.REPORTED
        assert result.tech[PowerSource.COAL].capacity_x == pytest.approx(87.6 / 5.256 / 20)

    def test_assumptions_clamped(self):
        a = ImplicationAssumptions(solar_cf=0.9, panel_watts=50)
        result = mix_buildout(87.6, 10, assumptions=a)
        assert result.assumptions.solar_cf == 0.5
        assert result.assumptions.panel_watts == 100
        assert result.tech[PowerSource.SOLAR].gw == pytest.approx(52.56 / (8.76 * 0.5))

    @pytest.mark.parametrize("delta", [None, 0.0, -5.0, float("nan")])
    def test_nothing_to_build(self, delta):
        assert mix_buildout(delta, 10) is None

    def test_horizon_must_be_positive(self):
        with pytest.raises(ValueError):
            mix_buildout(100.0, 0)

    def test_presets(self):
        assert set(MIX_PRESETS) == {"clean", "renewables", "nuclear", "coal", "balanced"}
        assert MIX_PRESETS["balanced"].shares()[PowerSource.COAL] == 20
        assert get_mix_preset("hydro") is None

    def test_unknown_source_rejected(self):
        with pytest.raises(ValueError):
            mix_buildout(100.0, 10, {"hydro": 1})
