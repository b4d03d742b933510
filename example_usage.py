"""
Example usage of sqlscore: score a credit GLM inside the database
"""

import logging

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from sqlalchemy.dialects import postgresql

from sqlscore import (
    BoostedGLM,
    UnsupportedLinkError,
    create_statement,
    quote_identifier,
    synthesize,
    to_sqlalchemy
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def generate_sample_data(n_samples=1000):
    """Generate sample data for demonstration."""
    np.random.seed(42)

    data = pd.DataFrame({
        'credit_score': np.random.randint(300, 850, n_samples),
        'debt_to_income': np.random.uniform(0, 1, n_samples),
        'months_employed': np.random.randint(0, 240, n_samples),
        'payment_history': np.random.choice(['good', 'late', 'default'], n_samples),
    })

    logits = (
        4.0
        - 0.008 * data['credit_score']
        + 2.0 * data['debt_to_income']
        - 0.01 * data['months_employed']
        + data['payment_history'].map({'good': 0.0, 'late': 0.5, 'default': 1.5})
        + np.random.randn(n_samples) * 0.5
    )
    probs = 1 / (1 + np.exp(-logits))
    data['presence_unpaid'] = (np.random.uniform(0, 1, n_samples) < probs).astype(int)

    return data


def main():
    """Fit a model and print its in-database scoring SQL."""
    data = generate_sample_data()

    print("=" * 60)
    print("LOGISTIC GLM")
    print("=" * 60)
    logit = smf.glm(
        'presence_unpaid ~ credit_score + debt_to_income * months_employed + C(payment_history)',
        data=data,
        family=sm.families.Binomial()
    ).fit()
    expr = synthesize(logit)
    print(expr.to_sql())

    scores = expr.evaluate(data)
    print(f"Max difference vs. model predictions: {np.max(np.abs(scores - logit.predict(data))):.2e}")

    print("\nPostgreSQL rendering via SQLAlchemy:")
    compiled = to_sqlalchemy(expr).compile(
        dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}
    )
    print(compiled)

    print("\n" + "=" * 60)
    print("PROBIT GLM (named response)")
    print("=" * 60)
    probit = smf.glm(
        'presence_unpaid ~ credit_score + debt_to_income',
        data=data,
        family=sm.families.Binomial(link=sm.families.links.Probit())
    ).fit()
    try:
        expr = synthesize(probit)
    except UnsupportedLinkError as e:
        print(f"No closed form: {e}")
        expr = synthesize(probit, override_name='probit')
    print(expr.to_sql())

    print("\n" + "=" * 60)
    print("BOOSTED BINOMIAL MODEL")
    print("=" * 60)
    boosted = BoostedGLM.binomial(
        {'(Intercept)': -0.4, 'credit_score': -0.002, 'debt_to_income': 0.9},
        offset=0.15
    )
    print(synthesize(boosted).to_sql())

    print("\n" + "=" * 60)
    print("SCORING STATEMENT")
    print("=" * 60)
    print(f"Source table: {quote_identifier('applications', schema='credit', catalog='warehouse')}")
    print(create_statement(
        logit,
        dest_table='application_scores',
        src_table='applications',
        dest_schema='scoring',
        src_schema='credit',
        src_catalog='warehouse',
        pk=['application_id'],
        drop=True
    ))


if __name__ == "__main__":
    main()
