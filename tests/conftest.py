"""
Shared fixtures for all tests in the sqlscore project.
"""

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
import statsmodels.formula.api as smf


# ====================== Data Fixtures ======================


def make_credit_data(n_samples=400, seed=42):
    """Create synthetic credit data with continuous, categorical and boolean columns."""
    rng = np.random.RandomState(seed)

    data = pd.DataFrame({
        "age": rng.uniform(18, 75, n_samples),
        "effort_rate": rng.uniform(0, 0.5, n_samples),
        "nb_credits": rng.randint(1, 5, n_samples),
        "region": rng.choice(["north", "south", "east"], n_samples),
        "home_owner": rng.choice([True, False], n_samples),
    })

    region_effect = data["region"].map({"north": 0.0, "south": 0.4, "east": -0.3})
    logits = (
        -1.0
        + 0.02 * (data["age"] - 40)
        + 2.0 * data["effort_rate"]
        - 0.2 * data["nb_credits"]
        + region_effect
        + rng.randn(n_samples) * 0.5
    )
    probs = 1 / (1 + np.exp(-logits))
    data["presence_unpaid"] = (rng.uniform(0, 1, n_samples) < probs).astype(int)
    data["amount_credit"] = 5000 + 40 * data["age"] + 3000 * data["effort_rate"] + rng.randn(n_samples) * 200
    data["nb_incidents"] = rng.poisson(np.exp(-0.5 + 0.02 * data["age"]))
    data["id"] = np.arange(n_samples)

    return data


@pytest.fixture
def credit_data():
    """Synthetic credit data for testing."""
    return make_credit_data()


# ====================== Model Fixtures ======================


@pytest.fixture
def gaussian_glm(credit_data):
    """Gaussian GLM with continuous terms only."""
    return smf.glm("amount_credit ~ age + effort_rate", data=credit_data).fit()


@pytest.fixture
def factor_glm(credit_data):
    """Gaussian GLM with factor, boolean and interaction terms."""
    return smf.glm(
        "amount_credit ~ age * effort_rate + C(region) + home_owner + C(nb_credits)",
        data=credit_data
    ).fit()


@pytest.fixture
def binomial_glm(credit_data):
    """Binomial GLM with the canonical logit link."""
    return smf.glm(
        "presence_unpaid ~ age + effort_rate + nb_credits + region",
        data=credit_data,
        family=sm.families.Binomial()
    ).fit()


@pytest.fixture
def probit_glm(credit_data):
    """Binomial GLM with a probit link."""
    return smf.glm(
        "presence_unpaid ~ age + effort_rate",
        data=credit_data,
        family=sm.families.Binomial(link=sm.families.links.Probit())
    ).fit()


@pytest.fixture
def poisson_glm(credit_data):
    """Poisson GLM with the canonical log link."""
    return smf.glm(
        "nb_incidents ~ age + region",
        data=credit_data,
        family=sm.families.Poisson()
    ).fit()
