"""
Ordinary least squares with an optional interaction term.
"""

import logging
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import statsmodels.api as sm

from ..core import constants
from ..core.errors import InsufficientDataError, SingularFitError


class OLSRegression:
    """
    Regression model for the partitioned model runner.

    Fits ``response ~ x1 [+ x2 [+ x1:x2]]`` on the complete cases of a
    partition and reports estimate, standard error, t statistic and p-value
    per coefficient.
    """

    def __init__(
        self,
        response: str,
        predictors: Union[str, Sequence[str]],
        interaction: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize regression model.

        Args:
            response: Response column
            predictors: One or two predictor columns
            interaction: Add the product of the two predictors as a term
            logger: Logger instance
        """
        self.response = response
        self.predictors: List[str] = [predictors] if isinstance(predictors, str) else list(predictors)
        self.interaction = interaction
        self.logger = logger or logging.getLogger(__name__)

        if len(self.predictors) not in (1, 2):
            raise ValueError("OLS regression takes one or two predictors")
        if interaction and len(self.predictors) != 2:
            raise ValueError("An interaction term needs exactly two predictors")

    @property
    def terms(self) -> List[str]:
        terms = ["Intercept"] + self.predictors
        if self.interaction:
            terms.append(":".join(self.predictors))
        return terms

    def design(self, partition: pd.DataFrame):
        """
        Build the response vector and design matrix from complete cases.

        Returns:
            Tuple of (response Series, design DataFrame with one column per term)
        """
        columns = [self.response] + self.predictors
        missing = [c for c in columns if c not in partition.columns]
        if missing:
            raise KeyError(f"Regression needs columns {missing}")

        data = partition[columns].apply(pd.to_numeric, errors="coerce")
        data = data.replace([np.inf, -np.inf], np.nan).dropna()

        exog = data[self.predictors].copy()
        if self.interaction:
            first, second = self.predictors
            exog[f"{first}:{second}"] = data[first] * data[second]
        exog = sm.add_constant(exog, prepend=True, has_constant="add")
        exog = exog.rename(columns={"const": "Intercept"})
        return data[self.response], exog

    def __call__(self, partition: pd.DataFrame) -> pd.DataFrame:
        endog, exog = self.design(partition)
        n, k = exog.shape

        if n <= k:
            raise InsufficientDataError(
                f"OLS with {k} coefficients needs more than {k} complete rows, got {n}"
            )
        if np.linalg.matrix_rank(exog.to_numpy(dtype=float)) < k:
            raise SingularFitError(
                f"Design matrix for {', '.join(exog.columns)} is rank deficient"
            )

        try:
            fit = sm.OLS(endog.to_numpy(dtype=float), exog.to_numpy(dtype=float)).fit()
        except np.linalg.LinAlgError as e:
            raise SingularFitError(str(e)) from e

        self.logger.debug(f"OLS fit on {n} rows: R^2={fit.rsquared:.3f}")
        return pd.DataFrame(
            {
                "term": list(exog.columns),
                "estimate": fit.params,
                "std_error": fit.bse,
                "statistic": fit.tvalues,
                "p_value": fit.pvalues,
            },
            columns=constants.MODEL_OUTPUT_COLUMNS,
        )

    def __repr__(self) -> str:
        return f"OLSRegression({self.response!r} ~ {' + '.join(self.terms[1:])})"
