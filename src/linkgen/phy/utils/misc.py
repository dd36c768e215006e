#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Miscellaneous utility functions of Linkgen PHY and SYS"""

import numpy as np
import tensorflow as tf
from tensorflow.experimental.numpy import log10 as _log10

from linkgen.phy.constants import PI


def log10(x):
    # pylint: disable=C0301
    """TensorFlow implementation of NumPy's `log10` function

    Simple extension to `tf.experimental.numpy.log10`
    which casts the result to the `dtype` of the input.
    """
    return tf.cast(_log10(x), x.dtype)


def rad_2_deg(x):
    r"""
    Convert radian to degree

    Input
    ------
        x : Tensor
            Angles in radian

    Output
    -------
        y : Tensor
            Angles ``x`` converted to degree
    """
    return x*tf.constant(180.0/PI, x.dtype)


def normal_to_uniform(x):
    r"""
    Maps standard normal samples to :math:`\mathcal{U}(0,1)` through the
    probability integral transform :math:`\frac{1}{2}\left(1 +
    \text{erf}\left(x/\sqrt{2}\right)\right)`

    Input
    -----
    x : `tf.float`
        Samples of a standard normal distribution

    Output
    ------
    : `tf.float`
        Uniformly distributed samples in :math:`[0,1]`
    """
    sqrt2 = tf.constant(np.sqrt(2.), x.dtype)
    return 0.5*(1. + tf.math.erf(x/sqrt2))
