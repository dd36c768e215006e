#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Definition of the Linkgen PHY Object class"""

from abc import ABC
import numpy as np
import tensorflow as tf
from .config import config, dtypes

class Object(ABC):
    """Abstract class for Linkgen PHY objects

    Parameters
    ----------
    precision : `None` (default) | "single" | "double"
        Precision used for internal calculations.
        If set to `None`, the default
        :attr:`~linkgen.phy.config.Config.precision` is used.
    """

    # pylint: disable=unused-argument
    def __init__(self, *args, precision=None, **kwargs):
        if precision is None:
            self._precision = config.precision
        elif precision in ['single', 'double']:
            self._precision = precision
        else:
            raise ValueError("'precision' must be 'single' or 'double'")

    @property
    def precision(self):
        """
        `str`, "single" | "double" : Precision used for all compuations
        """
        return self._precision

    @property
    def rdtype(self):
        """
        `tf.float` : Type for real floating point numbers
        """
        return dtypes[self.precision]['tf']['rdtype']

    @property
    def np_rdtype(self):
        """
        `np.float` : NumPy type for real floating point numbers
        """
        return dtypes[self.precision]['np']['rdtype']

    def _cast(self, v):
        """Casts a scalar, array or tensor to the object's real precision"""
        if not isinstance(v, tf.Tensor):
            v = tf.convert_to_tensor(np.asarray(v))
        return tf.cast(v, self.rdtype)
