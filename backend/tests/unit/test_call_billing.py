"""Tests for video call billing arithmetic."""

import pytest

from modelhub.services.call_billing import (
    calculate_call_cost,
    capped_charge,
    creator_earnings,
    is_billable_call,
)


class TestCalculateCallCost:
    """Cost is ceil(duration / 60) * rate, and 0 for non-positive inputs."""

    @pytest.mark.parametrize(
        ("duration", "rate", "expected"),
        [
            (30, 10, 10),
            (60, 10, 10),
            (61, 10, 20),
            (600, 5, 50),
            (1, 1, 1),
            (3599, 2, 120),
        ],
    )
    def test_rounds_up_to_started_minute(self, duration, rate, expected):
        assert calculate_call_cost(duration, rate) == expected

    @pytest.mark.parametrize(
        ("duration", "rate"),
        [(0, 10), (-5, 10), (60, 0), (60, -1), (0, 0)],
    )
    def test_non_positive_inputs_cost_nothing(self, duration, rate):
        assert calculate_call_cost(duration, rate) == 0


class TestCreatorEarnings:
    """Earnings are floored to whole coins."""

    @pytest.mark.parametrize(
        ("charged", "share", "expected"),
        [(100, 0.7, 70), (70, 0.7, 49), (15, 0.7, 10), (1, 0.7, 0), (10, 1.0, 10)],
    )
    def test_floors_share(self, charged, share, expected):
        assert creator_earnings(charged, share) == expected

    def test_nothing_charged_earns_nothing(self):
        assert creator_earnings(0, 0.7) == 0


class TestBillingRules:
    """Only non-model callers calling a model pay; charges cap at balance."""

    @pytest.mark.parametrize(
        ("initiator", "recipient", "billable"),
        [
            ("fan", "model", True),
            ("brand", "model", True),
            ("model", "model", False),
            ("fan", "fan", False),
            ("model", "fan", False),
            (None, "model", True),
            ("fan", None, False),
        ],
    )
    def test_is_billable_call(self, initiator, recipient, billable):
        assert is_billable_call(initiator, recipient) is billable

    def test_charge_capped_at_balance(self):
        assert capped_charge(50, 30) == 30

    def test_charge_uncapped_when_affordable(self):
        assert capped_charge(20, 30) == 20

    def test_empty_balance_charges_nothing(self):
        assert capped_charge(20, 0) == 0
