#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Global Linkgen PHY Configuration"""

import numpy as np
import tensorflow as tf

# Mapping from precision to dtypes
dtypes = {
    'single' : {
        'tf' : {
            'cdtype' : tf.complex64,
            'rdtype' : tf.float32
        },
        'np' : {
            'cdtype' : np.complex64,
            'rdtype' : np.float32
        }
    },
    'double' : {
        'tf' : {
            'cdtype' : tf.complex128,
            'rdtype' : tf.float64
        },
        'np' : {
            'cdtype' : np.complex128,
            'rdtype' : np.float64
        }
    }
}

class Config():
    """Linkgen PHY Configuration Class

    This singleton holds the global precision and the global random number
    generators. Channel links do not draw from the global generators but
    from dedicated streams created with :meth:`stream`, so that a link's
    realization only depends on the scenario seed and on the identity of
    the link. It is instantiated immediately and its properties can be
    accessed as :code:`linkgen.phy.config.desired_property`.
    """

    # This object is a singleton
    _instance = None
    def __new__(cls):
        if cls._instance is None:
            instance = object.__new__(cls)
            cls._instance = instance
        return cls._instance

    def __init__(self):
        self._seed = None
        self._np_rng = None
        self._tf_rng = None
        self._precision = None

        # Set default properties
        self.precision = 'single'

    @property
    def np_rng(self):
        """
        `np.random.Generator` : NumPy random number generator

        .. code-block:: python

            from linkgen.phy import config
            config.seed = 42 # Set seed for deterministic results

            # Use generator instead of np.random
            noise = config.np_rng.normal(size=[4])
        """
        if self._np_rng is None:
            self._np_rng = np.random.default_rng()
        return self._np_rng

    @property
    def tf_rng(self):
        """
        `tf.random.Generator` : TensorFlow random number generator

        Used whenever a random field or a link quantity is generated
        without an explicit stream.
        """
        if self._tf_rng  is None:
            self._tf_rng = tf.random.Generator.from_non_deterministic_state()
        return self._tf_rng

    @property
    def seed(self):
        """
        `None` (default) | `int` : Get/set seed for the global random number
        generators

        It defaults to `None` which implies that a random seed will be used.
        Note that the scenario seed of a
        :class:`~linkgen.sys.LinkRegistry` is independent of this value.
        """
        return self._seed

    @seed.setter
    def seed(self, seed):
        # Store seed
        if seed is not None:
            seed = int(seed)
        self._seed = seed

        #TensorFlow
        self.tf_rng.reset_from_seed(seed)

        # NumPy
        self._np_rng = np.random.default_rng(seed)

    def stream(self, seed):
        """Creates an independent, deterministic random stream

        Input
        -----
        seed : `int` | `None`
            Seed of the stream. If `None`, a stream is split off the global
            TensorFlow generator.

        Output
        ------
        : `tf.random.Generator`
            Random number generator
        """
        if seed is None:
            return self.tf_rng.split(1)[0]
        return tf.random.Generator.from_seed(int(seed))

    @property
    def precision(self):
        """
        "single" (default) | "double" : Default precision used for all
        computations
        """
        return self._precision

    @precision.setter
    def precision(self, v):
        if v not in ["single", "double"]:
            raise ValueError("Precision must be ``single`` or ``double``.")
        self._precision = v

    @property
    def np_rdtype(self):
        """
        `np.dtype` : Default NumPy dtype for real floating point numbers
        """
        return dtypes[self.precision]['np']['rdtype']

    @property
    def tf_rdtype(self):
        """
        `tf.dtype` : Default TensorFlow dtype for real floating point numbers
        """
        return dtypes[self.precision]['tf']['rdtype']

config = Config()
