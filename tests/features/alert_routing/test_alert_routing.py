"""BDD tests for alert routing."""

import pytest
from pytest_bdd import scenarios

scenarios("alert_routing.feature")

pytestmark = [
    pytest.mark.tier(2),
    pytest.mark.core,
]
