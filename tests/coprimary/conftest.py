"""Shared design parameters for co-primary endpoint tests."""

import pytest


@pytest.fixture
def design():
    """Worked example: two continuous endpoints, modest correlations."""
    return dict(
        beta1=0.1,
        beta2=0.1,
        var_y1=0.23,
        var_y2=0.25,
        rho01=0.025,
        rho02=0.025,
        rho1=0.01,
        rho2=0.05,
    )
