"""Unit tests for OwnershipGuard."""

import pytest

from newsroom_api.domain.exceptions import Forbidden
from newsroom_api.domain.identity import Identity
from newsroom_api.domain.ownership import Decision, OwnershipGuard


@pytest.fixture
def guard():
    return OwnershipGuard()


@pytest.fixture
def identity():
    return Identity(user_id=1, email="donor@example.org")


class TestEvaluate:
    def test_owner_allowed(self, guard, identity):
        assert guard.evaluate(identity, 1) is Decision.ALLOW

    def test_other_owner_denied(self, guard, identity):
        assert guard.evaluate(identity, 2) is Decision.DENY


class TestClaimCheck:
    """The user_id a request states about itself."""

    def test_absent_claim_passes(self, guard, identity):
        guard.check_claim(identity, None)

    def test_matching_claim_passes(self, guard, identity):
        guard.check_claim(identity, 1)

    def test_mismatching_claim_forbidden(self, guard, identity):
        with pytest.raises(Forbidden):
            guard.check_claim(identity, 1000)

    @pytest.mark.parametrize("claimed", ["1000", 1000.0, True, {"id": 1000}])
    def test_non_integer_claim_left_to_validation(self, guard, identity, claimed):
        guard.check_claim(identity, claimed)


class TestOwnerCheck:
    """The stored owner of a record."""

    def test_owner_passes(self, guard, identity):
        guard.check_owner(identity, 1)

    def test_non_owner_forbidden(self, guard, identity):
        with pytest.raises(Forbidden):
            guard.check_owner(identity, 2)
