"""Tests for instance eligibility classification."""

import logging

import pytest

from eip_controller.elastic_ip.eligibility import Classification, EligibilityClassifier
from eip_controller.elastic_ip.registry import Instance


def _inst(state="running", tags=None, can_hold=False) -> Instance:
    return Instance(instance_id="i-1", state=state, tags=tags or {}, can_hold_address=can_hold)


class TestClassify:
    def test_running_pool_member(self):
        assert EligibilityClassifier().classify(_inst()) == Classification(True, True, 1)

    @pytest.mark.parametrize("state", ["pending", "shutting-down", "terminated", "stopping", "stopped"])
    def test_non_running_states_cannot_hold(self, state):
        result = EligibilityClassifier().classify(_inst(state=state, can_hold=True))
        assert result == Classification(True, False, 0)

    def test_master_is_not_pool_member(self):
        result = EligibilityClassifier().classify(_inst(tags={"k8s.io/role/master": ""}))
        assert result.pool_member is False
        assert result.can_hold_address is True

    def test_custom_master_tag(self):
        classifier = EligibilityClassifier(master_role_tag="role/control-plane")
        assert classifier.classify(_inst(tags={"k8s.io/role/master": "1"})).pool_member is True
        assert classifier.classify(_inst(tags={"role/control-plane": "1"})).pool_member is False

    @pytest.mark.parametrize("prior", [True, False])
    def test_unknown_state_keeps_prior_eligibility(self, prior, caplog):
        with caplog.at_level(logging.WARNING):
            result = EligibilityClassifier().classify(_inst(state="hibernating", can_hold=prior))
        assert result == Classification(True, prior, 0)
        assert "Unknown instance state for instance i-1: 'hibernating'" in caplog.text


class TestApply:
    def test_stores_result_on_instance(self):
        inst = _inst(tags={"k8s.io/role/master": "1"})
        EligibilityClassifier().apply(inst)
        assert (inst.pool_member, inst.can_hold_address, inst.goodness) == (False, True, 1)
        assert inst.eligible is False

    def test_goodness_reset_on_each_classification(self):
        inst = _inst()
        classifier = EligibilityClassifier()
        classifier.apply(inst)
        inst.state = "stopping"
        classifier.apply(inst)
        assert inst.goodness == 0
        assert inst.eligible is False
