#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Utility functions for the channel module"""

import numpy as np
import tensorflow as tf


def time_lag_discrete_time_channel(sampling_frequency, maximum_delay=3e-6):
    # pylint: disable=line-too-long
    r"""
    Compute the smallest and largest time-lag for the discrete complex
    baseband channel, i.e., :math:`L_{\text{min}}` and
    :math:`L_{\text{max}}`.

    The smallest time-lag (:math:`L_{\text{min}}`) returned is always -6, as
    this value is small enough to capture the tails of the sinc filters.

    The largest time-lag (:math:`L_{\text{max}}`) is computed from the
    ``sampling_frequency`` and ``maximum_delay`` as follows:

    .. math::
        L_{\text{max}} = \lceil W \tau_{\text{max}} \rceil + 6

    where :math:`W` is the ``sampling_frequency`` and
    :math:`\tau_{\text{max}}` the ``maximum_delay``.

    Input
    ------
    sampling_frequency : `float`
        Sampling frequency (:math:`W`) [Hz]

    maximum_delay : `float`
        Largest path delay [s]. Defaults to 3us.

    Output
    -------
    l_min : `int`
        Smallest time-lag (:math:`L_{\text{min}}`)

    l_max : `int`
        Largest time-lag (:math:`L_{\text{max}}`)
    """
    l_min = -6
    l_max = int(np.ceil(maximum_delay*sampling_frequency)) + 6
    return l_min, l_max


def path_filters(delays, sampling_frequency, l_min=None, l_max=None):
    # pylint: disable=line-too-long
    r"""
    Compute the discrete-time filters of a set of paths

    The path with delay :math:`\tau_m` is represented by the taps

    .. math::
        g_{m,\ell} = \text{sinc}\left(\ell - W\tau_m\right),
        \quad \ell = L_{\text{min}}, \dots, L_{\text{max}}

    where :math:`W` is the ``sampling_frequency``. Filtering a signal with
    :math:`\sum_m a_m g_{m,\ell}` applies the channel with path coefficients
    :math:`a_m`, as for the discrete complex baseband channel.

    Input
    ------
    delays : [num_paths], `tf.float`
        Path delays [s]

    sampling_frequency : `float`
        Sampling frequency (:math:`W`) [Hz]

    l_min : `None` (default) | `int`
        Smallest time-lag. If `None`, it is computed with
        :func:`~linkgen.phy.channel.time_lag_discrete_time_channel`.

    l_max : `None` (default) | `int`
        Largest time-lag. If `None`, it is computed with
        :func:`~linkgen.phy.channel.time_lag_discrete_time_channel` from the
        largest path delay.

    Output
    -------
    : [num_paths, l_max - l_min + 1], `tf.float`
        Filter taps
    """
    delays = tf.convert_to_tensor(delays)
    real_dtype = delays.dtype
    if not real_dtype.is_floating:
        real_dtype = tf.float32
        delays = tf.cast(delays, real_dtype)
    if l_min is None or l_max is None:
        max_delay = float(tf.reduce_max(delays)) if delays.shape[0] else 0.
        default_min, default_max = time_lag_discrete_time_channel(
                                        sampling_frequency, max_delay)
        l_min = default_min if l_min is None else l_min
        l_max = default_max if l_max is None else l_max

    # Time lags for which to compute the channel taps
    l = tf.range(l_min, l_max+1, dtype=real_dtype)

    # sinc pulse shaping
    tau = tf.expand_dims(delays, axis=-1)
    w = tf.cast(sampling_frequency, real_dtype)
    return tf.experimental.numpy.sinc(tf.expand_dims(l, 0) - tau*w)
