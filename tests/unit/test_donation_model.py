"""Unit tests for donation domain models."""

import pytest

from newsroom_api.domain.donation import (
    Cardholder,
    Donation,
    Frequency,
    PayMethod,
    generate_order_number,
)


class TestGenerateOrderNumber:
    def test_format(self):
        order_number = generate_order_number("twreporter", 42)

        assert order_number.startswith("twreporter-")
        assert len(order_number) <= 50

    def test_unique(self):
        numbers = {generate_order_number("twreporter", 1) for _ in range(200)}

        assert len(numbers) == 200

    def test_long_prefix_trimmed(self):
        assert len(generate_order_number("x" * 60, 1)) == 50


class TestDonation:
    def make(self, **overrides):
        fields = dict(
            order_number="twreporter-1",
            amount=100,
            currency="TWD",
            details="donation",
            pay_method=PayMethod.CREDIT_CARD,
            merchant_id="GlobalTesting_CTBC",
            cardholder=Cardholder(email="donor@example.org"),
            user_id=1,
        )
        fields.update(overrides)
        return Donation(**fields)

    def test_one_time_frequency(self):
        assert self.make().frequency is Frequency.ONE_TIME

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            self.make(amount=0)

    def test_cardholder_requires_email(self):
        with pytest.raises(ValueError):
            Cardholder(email="")
