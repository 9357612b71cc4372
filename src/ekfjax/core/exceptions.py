"""
Exceptions raised by ekfjax
ekfjax异常定义
"""

import numpy as np


class InnovationCovarianceError(RuntimeError):
    """
    Cholesky factorization of the innovation covariance failed.
    新息协方差的Cholesky分解失败（S 非正定）。

    Raised by a correction step before the belief is touched; the
    offending matrix is kept on ``S`` and printed in the message.
    """

    def __init__(self, S):
        self.S = np.asarray(S)
        super().__init__(
            "Cholesky factorization of innovation covariance failed, got S = "
            f"{np.array2string(self.S, precision=6)}"
        )
