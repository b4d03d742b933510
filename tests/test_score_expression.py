"""
Tests for score expression synthesis and SQL statement generation
"""

import math
import unittest

import numpy as np
import pytest
import sqlalchemy as sa
from sklearn.linear_model import LinearRegression, LogisticRegression

from sqlscore import (
    BoostedGLM,
    Call,
    ScoringConfig,
    UnsupportedLinkError,
    UnsupportedModelError,
    create_statement,
    extract_linear_predictor,
    select_statement,
    synthesize,
)


def normal_cdf(values):
    """Standard normal CDF, used as the SQL 'probit' function in evaluation."""
    return np.array([0.5 * (1 + math.erf(v / math.sqrt(2))) for v in np.ravel(values)])


# ====================== Synthesis ======================


def test_gaussian_identity(gaussian_glm, credit_data):
    """Gaussian GLMs have no response wrapper."""
    expr = synthesize(gaussian_glm)
    assert expr == extract_linear_predictor(gaussian_glm)
    np.testing.assert_allclose(expr.evaluate(credit_data), gaussian_glm.predict(credit_data), rtol=1e-9)


def test_factor_model(factor_glm, credit_data):
    """Factor, boolean and interaction terms score like the fitted model."""
    expr = synthesize(factor_glm)
    np.testing.assert_allclose(expr.evaluate(credit_data), factor_glm.predict(credit_data), rtol=1e-9)
    assert "CASE WHEN region = 'south' THEN 1 ELSE 0 END" in expr.to_sql()


def test_binomial_logistic(binomial_glm, credit_data):
    """Binomial GLMs are wrapped in the logistic function."""
    expr = synthesize(binomial_glm)
    assert expr.op == "/"
    assert "EXP(" in expr.to_sql()
    np.testing.assert_allclose(expr.evaluate(credit_data), binomial_glm.predict(credit_data), rtol=1e-9)


def test_poisson_exponential(poisson_glm, credit_data):
    """Poisson GLMs are wrapped in EXP."""
    expr = synthesize(poisson_glm)
    assert isinstance(expr, Call)
    assert expr.name == "EXP"
    np.testing.assert_allclose(expr.evaluate(credit_data), poisson_glm.predict(credit_data), rtol=1e-9)


def test_override_wraps_unmodified_predictor(binomial_glm):
    """A response override is a single call around the linear predictor."""
    expr = synthesize(binomial_glm, "probit")
    assert expr == Call("probit", (extract_linear_predictor(binomial_glm),))


def test_probit_requires_override(probit_glm, credit_data):
    """Probit links fail without an override and score correctly with one."""
    with pytest.raises(UnsupportedLinkError):
        synthesize(probit_glm)

    expr = synthesize(probit_glm, override_name="probit")
    assert expr.to_sql().startswith("probit(")
    scores = expr.evaluate(credit_data, functions={"probit": normal_cdf})
    np.testing.assert_allclose(scores, probit_glm.predict(credit_data), rtol=1e-7)


def test_retry_with_override_after_link_error(probit_glm):
    """The documented escape path: catch the link error and retry by name."""
    try:
        expr = synthesize(probit_glm)
    except UnsupportedLinkError:
        expr = synthesize(probit_glm, "probit")
    assert expr.name == "probit"


def test_sklearn_models(credit_data):
    """scikit-learn estimators score like their own predict methods."""
    features = credit_data[["age", "effort_rate", "nb_credits"]]

    linear = LinearRegression().fit(features, credit_data["amount_credit"])
    np.testing.assert_allclose(synthesize(linear).evaluate(credit_data), linear.predict(features), rtol=1e-9)

    logistic = LogisticRegression(max_iter=1000).fit(features, credit_data["presence_unpaid"])
    np.testing.assert_allclose(
        synthesize(logistic).evaluate(credit_data),
        logistic.predict_proba(features)[:, 1],
        rtol=1e-9
    )


def test_boosted_binomial_matches_glm(binomial_glm, credit_data):
    """A recoded boosted model scores like the equivalent plain GLM."""
    offset = -0.25
    stored = {name: value / 2 for name, value in binomial_glm.params.items()}
    stored["Intercept"] = binomial_glm.params["Intercept"] / 2 - offset
    boosted = BoostedGLM.binomial(stored, offset=offset)
    np.testing.assert_allclose(
        synthesize(boosted).evaluate(credit_data),
        binomial_glm.predict(credit_data),
        rtol=1e-9
    )


def test_unsupported_model():
    """Unrecognized models are rejected whether or not an override is given."""
    with pytest.raises(UnsupportedModelError):
        synthesize(object())
    with pytest.raises(UnsupportedModelError):
        synthesize(object(), "probit")


def test_only_raw_columns_referenced(factor_glm):
    """Expressions reference input columns, never formula intermediates."""
    columns = synthesize(factor_glm).columns()
    assert columns == {"age", "effort_rate", "region", "home_owner", "nb_credits"}


# ====================== Statements ======================


class TestStatements(unittest.TestCase):
    """Test SELECT and CREATE TABLE generation."""

    def setUp(self):
        """Set up a model with known coefficients."""
        self.model = BoostedGLM({"(Intercept)": 1.0, "x1": 2.0, "x2": -0.5})
        self.score = "((1.0 + (2.0 * x1)) + ((-0.5) * x2))"

    def test_select(self):
        """Test a basic SELECT statement."""
        sql = select_statement(self.model, "foo", src_schema="bar")
        self.assertEqual(sql, f'SELECT "id", {self.score} AS "score" FROM "bar"."foo"')

    def test_select_options(self):
        """Test key columns, response override and configuration."""
        config = ScoringConfig(score_column="pd", quote_columns=True)
        sql = select_statement(
            self.model, "foo", src_schema="bar", src_catalog="baz",
            pk=("customer_id", "as_of"), response="probit", config=config
        )
        self.assertEqual(
            sql,
            'SELECT "customer_id", "as_of", probit(((1.0 + (2.0 * "x1")) + ((-0.5) * "x2"))) '
            'AS "pd" FROM "baz"."bar"."foo"'
        )

    def test_single_key_column_name(self):
        """Test a key given as one string is treated as one column."""
        sql = select_statement(self.model, "foo", pk="customer_id")
        self.assertEqual(sql, f'SELECT "customer_id", {self.score} AS "score" FROM "foo"')
        sql = create_statement(self.model, "scores", "foo", pk="customer_id")
        self.assertIn('AS SELECT "customer_id", ', sql)

    def test_keyword_columns_run_in_sqlite(self):
        """Test a model over keyword-named columns scores inside SQLite."""
        model = BoostedGLM({"(Intercept)": 1.0, "group": 2.0, "order": -0.5})
        engine = sa.create_engine("sqlite://")
        with engine.begin() as conn:
            conn.execute(sa.text('CREATE TABLE foo ("id" INTEGER, "group" FLOAT, "order" FLOAT)'))
            conn.execute(sa.text('INSERT INTO foo VALUES (1, 1.0, 2.0), (2, 3.0, 4.0)'))
            rows = conn.execute(sa.text(select_statement(model, "foo"))).fetchall()
        self.assertEqual([row[0] for row in rows], [1, 2])
        np.testing.assert_allclose([row[1] for row in rows], [2.0, 5.0])

    def test_create(self):
        """Test CREATE TABLE AS SELECT."""
        sql = create_statement(self.model, "scores", "foo", dest_schema="out", src_schema="bar")
        self.assertEqual(
            sql,
            f'CREATE TABLE "out"."scores" AS SELECT "id", {self.score} AS "score" FROM "bar"."foo"'
        )

    def test_create_drop_temporary(self):
        """Test drop and temporary flags."""
        sql = create_statement(self.model, "scores", "foo", drop=True, temporary=True)
        self.assertTrue(sql.startswith('DROP TABLE IF EXISTS "scores"; CREATE TEMPORARY TABLE "scores" AS SELECT'))

    def test_invalid_config(self):
        """Test configuration validation."""
        with self.assertRaises(ValueError):
            select_statement(self.model, "foo", config=ScoringConfig(score_column=""))
        with self.assertRaises(ValueError):
            ScoringConfig(intercept_names=()).validate()

    def test_invalid_tables(self):
        """Test identifier errors propagate from statement builders."""
        with self.assertRaises(ValueError):
            select_statement(self.model, "")
        with self.assertRaises(ValueError):
            create_statement(self.model, "scores", "foo", dest_catalog="c")


if __name__ == '__main__':
    unittest.main()
