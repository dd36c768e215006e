#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Functions extending TensorFlow linear algebra operations"""

import tensorflow as tf

def matrix_sqrt(tensor):
    r"""Computes the square root of a symmetric matrix

    Given a batch of real symmetric matrices :math:`\mathbf{A}`, returns
    matrices :math:`\mathbf{B}` such that
    :math:`\mathbf{B}\mathbf{B}^{\textsf{T}} = \mathbf{A}`, computed from
    the eigendecomposition of :math:`\mathbf{A}`.

    Cross-correlation matrices of large scale parameters are not always
    positive semi-definite. Negative eigenvalues are replaced by their
    absolute value, which yields the principal square root whenever the
    input is positive semi-definite.

    Input
    -----
    tensor : [..., M, M], `tf.float`
        Input tensor of rank greater than or equal to two

    Output
    ------
    : [..., M, M], `tf.float`
        A tensor of the same shape and type as ``tensor`` containing
        the matrix square root of its last two dimensions
    """
    s, u = tf.linalg.eigh(tensor)

    # Compute sqrt of eigenvalues
    s = tf.sqrt(tf.abs(s))

    # Matrix multiplication
    s = tf.expand_dims(s, -2)
    return tf.matmul(u*s, u, adjoint_b=True)
