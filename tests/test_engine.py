import logging

import pytest
import jax
import jax.numpy as jnp

from metabolax.errors import (
    AttachmentError,
    DuplicateMuscleError,
    NotReadyError,
    UnknownMuscleError,
)
from metabolax.metabolics.curves import PiecewiseLinearFunction
from metabolax.metabolics.engine import MetabolicRateEngine, resolve
from metabolax.metabolics.engine_config import EngineConfig, MetabolicRateGates, ReportMode
from metabolax.metabolics.host import HostState, MuscleArrayHost, muscle_quantities
from metabolax.metabolics.parameters import MetabolicMuscleParameter, ParameterTable
from metabolax.metabolics.report import PerMuscleRateReport, TotalRateReport


jax.config.update("jax_enable_x64", True)


def soleus_parameter(**kwargs):
    kwargs = dict(
        muscle_name="soleus",
        mass=0.5,
        slow_twitch_ratio=0.5,
        activation_constant_slow=40.0,
        activation_constant_fast=40.0,
        maintenance_constant_slow=74.0,
        maintenance_constant_fast=74.0,
    ) | kwargs
    return MetabolicMuscleParameter(**kwargs)


@pytest.fixture
def flat_config():
    return EngineConfig(maintenance_length_dependence=PiecewiseLinearFunction.constant(1.0))


@pytest.fixture
def single_muscle_state():
    return muscle_quantities(
        excitation=jnp.array([1.0]),
        fiber_velocity=jnp.array([-0.1]),
        active_fiber_force=jnp.array([500.0]),
        isometric_fiber_force=jnp.array([600.0]),
        norm_fiber_length=jnp.array([1.0]),
    )


@pytest.fixture
def three_muscle_host():
    return MuscleArrayHost(["tibant", "soleus", "gastroc"], body_mass=75.0)


@pytest.fixture
def three_muscle_state():
    return muscle_quantities(
        excitation=jnp.array([0.2, 0.8, 0.5]),
        fiber_velocity=jnp.array([0.05, -0.1, 0.0]),
        active_fiber_force=jnp.array([100.0, 900.0, 400.0]),
        isometric_fiber_force=jnp.array([120.0, 1000.0, 450.0]),
        norm_fiber_length=jnp.array([0.9, 1.0, 1.2]),
    )


class TestResolve:

    def test_unknown_muscle(self, three_muscle_host):
        table = ParameterTable([MetabolicMuscleParameter(muscle_name="psoas", mass=0.3)])
        with pytest.raises(UnknownMuscleError, match="psoas"):
            resolve(three_muscle_host, table)

    def test_unknown_muscle_from_attach(self, three_muscle_host):
        table = ParameterTable([MetabolicMuscleParameter(muscle_name="psoas", mass=0.3)])
        engine = MetabolicRateEngine(EngineConfig(), table)
        with pytest.raises(UnknownMuscleError):
            engine.attach(three_muscle_host)
        assert not engine.is_ready

    def test_duplicate_muscle(self, three_muscle_host):
        table = ParameterTable([
            MetabolicMuscleParameter(muscle_name="soleus", mass=0.3),
            MetabolicMuscleParameter(muscle_name="soleus", mass=0.4),
        ])
        with pytest.raises(DuplicateMuscleError, match="soleus"):
            resolve(three_muscle_host, table)

    def test_lookup_errors_are_attachment_errors(self):
        assert issubclass(UnknownMuscleError, AttachmentError)
        assert issubclass(DuplicateMuscleError, AttachmentError)

    def test_handles_follow_table_order(self, three_muscle_host):
        table = ParameterTable([
            MetabolicMuscleParameter(muscle_name="gastroc", mass=0.3),
            MetabolicMuscleParameter(muscle_name="tibant", mass=0.2),
        ])
        resolved = resolve(three_muscle_host, table)
        assert resolved.muscle_names == ("gastroc", "tibant")
        assert [h.index for h in resolved.handles] == [2, 0]

    def test_empty_table_warns(self, three_muscle_host, caplog):
        with caplog.at_level(logging.WARNING, logger="metabolax"):
            resolved = resolve(three_muscle_host, ParameterTable())
        assert resolved.handles == ()
        assert "empty" in caplog.text


class TestEngineLifecycle:

    def test_not_ready_before_attach(self, single_muscle_state):
        engine = MetabolicRateEngine(EngineConfig(), ParameterTable([soleus_parameter()]))
        assert not engine.is_ready
        with pytest.raises(NotReadyError):
            engine.total_rate(single_muscle_state)
        with pytest.raises(NotReadyError):
            engine.probe_labels()

    def test_attach_returns_ready_copy(self):
        host = MuscleArrayHost(["soleus"], 70.0)
        engine = MetabolicRateEngine(EngineConfig(), ParameterTable([soleus_parameter()]))
        attached = engine.attach(host)
        assert attached.is_ready
        assert not engine.is_ready
        assert attached.muscle_names == ("soleus",)

    def test_constants_of_attached_engine(self, three_muscle_host, three_muscle_state):
        table = ParameterTable([
            MetabolicMuscleParameter(muscle_name="gastroc", mass=0.3, slow_twitch_ratio=0.6),
            MetabolicMuscleParameter(muscle_name="tibant", mass=0.2),
        ])
        engine = MetabolicRateEngine(EngineConfig(), table).attach(three_muscle_host)
        assert jnp.allclose(engine.constants.mass, jnp.array([0.3, 0.2]))
        assert jnp.allclose(engine.constants.slow_twitch_ratio, jnp.array([0.6, 0.5]))
        assert jnp.allclose(
            engine.probe_values(three_muscle_state),
            jnp.reshape(engine.total_rate(three_muscle_state), (1,)),
        )

    def test_constants_need_attach(self):
        engine = MetabolicRateEngine(EngineConfig(), ParameterTable([soleus_parameter()]))
        with pytest.raises(NotReadyError):
            engine.constants

    def test_second_attach_fails(self):
        host = MuscleArrayHost(["soleus"], 70.0)
        engine = MetabolicRateEngine(EngineConfig(), ParameterTable([soleus_parameter()]))
        attached = engine.attach(host)
        with pytest.raises(AttachmentError):
            attached.attach(host)


class TestSingleMuscle:
    """One muscle at full excitation with v < 0 and a 70 kg body."""

    @pytest.fixture
    def engine(self, flat_config):
        host = MuscleArrayHost(["soleus"], 70.0)
        return MetabolicRateEngine(flat_config, ParameterTable([soleus_parameter()])).attach(host)

    def test_terms(self, engine, single_muscle_state):
        rates = engine.evaluate(single_muscle_state)
        assert jnp.allclose(rates.muscles.activation, 20.0)
        assert jnp.allclose(rates.muscles.maintenance, 37.0)
        assert jnp.allclose(rates.muscles.shortening, 0.0)
        assert jnp.allclose(rates.muscles.mechanical_work, 0.0)
        assert jnp.isclose(rates.basal, 105.7)

    def test_total(self, engine, single_muscle_state):
        assert jnp.isclose(engine.total_rate(single_muscle_state), 162.7)

    def test_total_report(self, engine, single_muscle_state):
        report = engine.report(single_muscle_state)
        assert isinstance(report, TotalRateReport)
        assert report.labels == ("metabolic_power",)
        assert report.values.shape == (1,)
        assert jnp.isclose(report.total, 162.7)
        assert jnp.isclose(report.as_dict()["metabolic_power"], 162.7)

    def test_basal_gate_off(self, single_muscle_state):
        config = EngineConfig(
            gates=MetabolicRateGates(basal=False),
            maintenance_length_dependence=PiecewiseLinearFunction.constant(1.0),
        )
        host = MuscleArrayHost(["soleus"], 70.0)
        engine = MetabolicRateEngine(config, ParameterTable([soleus_parameter()])).attach(host)
        assert jnp.isclose(engine.total_rate(single_muscle_state), 57.0)

    def test_zero_basal_coefficient(self, single_muscle_state):
        config = EngineConfig(
            basal_coefficient=0.0,
            maintenance_length_dependence=PiecewiseLinearFunction.constant(1.0),
        )
        host = MuscleArrayHost(["soleus"], 70.0)
        engine = MetabolicRateEngine(config, ParameterTable([soleus_parameter()])).attach(host)
        assert jnp.isclose(engine.total_rate(single_muscle_state), 57.0)

    def test_body_mass_from_state(self, engine, single_muscle_state):
        state = HostState(muscles=single_muscle_state, body_mass=80.0)
        assert jnp.isclose(engine.basal_rate(state), 1.51 * 80.0)
        assert jnp.isclose(engine.total_rate(state), 57.0 + 1.51 * 80.0)

    def test_non_negative_velocity_branch(self, engine):
        """With v >= 0 both the shortening heat and the work term are active."""
        state = muscle_quantities(
            excitation=jnp.array([1.0]),
            fiber_velocity=jnp.array([0.1]),
            active_fiber_force=jnp.array([500.0]),
            isometric_fiber_force=jnp.array([600.0]),
            norm_fiber_length=jnp.array([1.0]),
        )
        rates = engine.evaluate(state)
        assert jnp.allclose(rates.muscles.shortening, -0.025)
        assert jnp.allclose(rates.muscles.mechanical_work, -50.0)
        assert jnp.isclose(rates.total, 20.0 + 37.0 - 0.025 - 50.0 + 105.7)

    def test_jit(self, engine, single_muscle_state):
        total = jax.jit(engine.total_rate)(single_muscle_state)
        assert jnp.isclose(total, 162.7)

    def test_vmap_over_states(self, engine):
        states = muscle_quantities(
            excitation=jnp.array([[0.0], [1.0]]),
            fiber_velocity=jnp.array([[-0.1], [-0.1]]),
            active_fiber_force=jnp.array([[500.0], [500.0]]),
            isometric_fiber_force=jnp.array([[600.0], [600.0]]),
            norm_fiber_length=jnp.array([[1.0], [1.0]]),
        )
        totals = jax.vmap(engine.total_rate)(states)
        assert jnp.allclose(totals, jnp.array([105.7, 162.7]))


class TestMultipleMuscles:

    @pytest.fixture
    def table(self):
        return ParameterTable([
            MetabolicMuscleParameter(muscle_name="soleus", mass=0.4, slow_twitch_ratio=0.8),
            MetabolicMuscleParameter(muscle_name="tibant", mass=0.2, slow_twitch_ratio=0.7),
        ])

    def test_unlisted_host_muscles_are_ignored(self, table, three_muscle_host, three_muscle_state):
        engine = MetabolicRateEngine(EngineConfig(), table).attach(three_muscle_host)
        rates = engine.evaluate(three_muscle_state)
        assert rates.muscles.total.shape == (2,)
        assert jnp.isclose(
            rates.total, rates.basal + rates.muscles.total[0] + rates.muscles.total[1]
        )

    def test_rates_follow_table_order(self, table, three_muscle_host, three_muscle_state):
        engine = MetabolicRateEngine(EngineConfig(), table).attach(three_muscle_host)
        rates = engine.muscle_rates(three_muscle_state)

        host_soleus = MuscleArrayHost(["soleus"], 75.0)
        soleus_only = MetabolicRateEngine(
            EngineConfig(), ParameterTable([table.entries[0]])
        ).attach(host_soleus)
        soleus_state = three_muscle_state.take(jnp.array([1]))
        assert jnp.allclose(rates.total[0], soleus_only.muscle_rates(soleus_state).total[0])

    def test_per_muscle_report(self, table, three_muscle_host, three_muscle_state):
        config = EngineConfig(report_mode=ReportMode.PER_MUSCLE, name="edot")
        engine = MetabolicRateEngine(config, table).attach(three_muscle_host)
        report = engine.report(three_muscle_state)

        assert isinstance(report, PerMuscleRateReport)
        assert report.labels == ("edot_soleus", "edot_tibant")
        assert engine.n_probe_outputs == 2
        rates = engine.evaluate(three_muscle_state)
        assert jnp.allclose(report.values, rates.muscles.total)
        assert jnp.isclose(report.basal, rates.basal)
        assert jnp.isclose(report.total, rates.total)

    def test_per_muscle_labels_fixed_at_attach(self, table, three_muscle_host):
        config = EngineConfig(report_mode=ReportMode.PER_MUSCLE)
        engine = MetabolicRateEngine(config, table).attach(three_muscle_host)
        assert engine.probe_labels() == (
            "metabolic_power_soleus",
            "metabolic_power_tibant",
        )


class TestEmptyTable:

    def test_total_is_basal(self, three_muscle_host, three_muscle_state):
        engine = MetabolicRateEngine(EngineConfig(), ParameterTable()).attach(three_muscle_host)
        assert jnp.isclose(engine.total_rate(three_muscle_state), 1.51 * 75.0)

    def test_per_muscle_report_has_no_channels(self, three_muscle_host, three_muscle_state):
        config = EngineConfig(report_mode=ReportMode.PER_MUSCLE)
        engine = MetabolicRateEngine(config, ParameterTable()).attach(three_muscle_host)
        report = engine.report(three_muscle_state)
        assert report.values.shape == (0,)
        assert report.labels == ()
        assert jnp.isclose(report.total, 1.51 * 75.0)
