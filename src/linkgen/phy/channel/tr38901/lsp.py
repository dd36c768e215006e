#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""
Class for sampling large scale parameters (LSPs) and pathloss following the
3GPP TR38.901 specifications and according to a channel simulation scenario.
"""

import tensorflow as tf

from linkgen.phy import Object
from linkgen.phy.constants import MAX_AZIMUTH_SPREAD, MAX_ZENITH_SPREAD
from linkgen.phy.utils import matrix_sqrt


class LSP:
    r"""
    Class for conveniently storing LSPs

    Parameters
    -----------

    sf : [], `tf.float`
        Shadow fading [dB]. Positive values increase the received power.

    k_factor : `None` | [], `tf.float`
        Rician K-factor [dB]

    ds : `None` | [], `tf.float`
        RMS delay spread [s]

    asd : `None` | [], `tf.float`
        Azimuth angle spread of departure [deg]

    asa : `None` | [], `tf.float`
        Azimuth angle spread of arrival [deg]

    zsd : `None` | [], `tf.float`
        Zenith angle spread of departure [deg]

    zsa : `None` | [], `tf.float`
        Zenith angle spread of arrival [deg]

    All parameters but ``sf`` are `None` if fast fading is not modeled.
    """
    def __init__(self, sf, k_factor=None, ds=None, asd=None, asa=None,
                 zsd=None, zsa=None):
        self.sf = sf
        self.k_factor = k_factor
        self.ds = ds
        self.asd = asd
        self.asa = asa
        self.zsd = zsd
        self.zsa = zsa


class LSPGenerator(Object):
    # pylint: disable=line-too-long
    r"""
    Sample large scale parameters (LSP) following step 4 of Section 7.5 of
    TR 38.901

    A vector :math:`\mathbf{s}` of seven :math:`\mathcal{N}(0,1)` variables,
    in the order SF, K, DS, ASD, ASA, ZSD, ZSA, is correlated with the square
    root of the cross-correlation matrix, then scaled and shifted to the
    statistics of the link:

    .. math::
        \tilde{\mathbf{s}} = \mathbf{C}^{1/2}\mathbf{s}

    The shadow fading is :math:`\sigma_\text{SF}\tilde{s}_0`, the K-factor
    :math:`\mu_K + \sigma_K\tilde{s}_1`, and the spreads
    :math:`10^{\mu + \sigma\tilde{s}_i}`. Azimuth spreads are limited to 104
    degrees and zenith spreads to 52 degrees. If fast fading is not
    modeled, only the shadow fading is generated, and the cross-correlation
    matrix is replaced by the identity on its first element.

    If the inter-site distance of the scenario is defined, :math:`\mathbf{s}`
    is spatially consistent, i.e., sampled from the large scale parameter
    fields of a :class:`~linkgen.phy.channel.tr38901.ScenarioCache`.
    The field of a link is identified by its site and propagation
    condition. Indoor user equipment on different floors use uncorrelated
    fields: if there are more sites than the floor number, the field of
    another site is reused, otherwise one column per floor is used.
    Without inter-site distance, :math:`\mathbf{s}` is drawn from the
    site and user equipment stream of the link.

    Parameters
    ----------
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    precision : `None` (default) | "single" | "double"
        Precision used for internal calculations and outputs.
        If set to `None`,
        :attr:`~linkgen.phy.config.Config.precision` is used.

    Input
    -----
    params : :class:`~linkgen.phy.channel.tr38901.LinkParameters`
        Statistical parameters of the link

    rng : `tf.random.Generator`
        Site and user equipment stream of the link

    sigma_sf : `float`
        Shadow fading standard deviation [dB]

    fast_fading : `bool`
        If `False`, only the shadow fading is generated

    cache : `None` | :class:`~linkgen.phy.channel.tr38901.ScenarioCache`
        Scenario cache. Required if the inter-site distance is defined.

    site : `int`
        Zero-based site index

    ue_position : [3], `float`
        User equipment position [m]

    indoor : `bool`
        O2I link

    los : `bool`
        LOS state

    n_fl : `int`
        Floor number of the user equipment

    Output
    ------
    : :class:`~linkgen.phy.channel.tr38901.LSP`
        Large scale parameters
    """
    def __init__(self, scenario_config, precision=None):
        super().__init__(precision=precision)
        self._config = scenario_config

    def field_subscripts(self, num_rows, site, indoor, los, n_fl):
        """
        Returns the row and column of the large scale parameter field of a
        link

        Input
        -----
        num_rows : `int`
            Number of sites

        site : `int`
            Zero-based site index

        indoor : `bool`
            O2I link

        los : `bool`
            LOS state

        n_fl : `int`
            Floor number

        Output
        ------
        : (`int`, `int`)
            Row and column
        """
        if not indoor:
            return site, int(los)
        if num_rows > n_fl:
            return (site + n_fl) % num_rows, 2
        return site, n_fl + 1

    def sample_normal(self, params, rng, cache, site, ue_position, indoor,
                      los, n_fl):
        r"""
        Returns the vector of seven :math:`\mathcal{N}(0,1)` variables of a
        link before cross-correlation
        """
        if self._config.inter_site_distance is None:
            return rng.normal([7], dtype=self.rdtype)
        if cache is None:
            raise ValueError("A scenario cache is required for spatially "
                             "consistent large scale parameters")
        row, column = self.field_subscripts(cache.num_sites, site, indoor,
                                            los, n_fl)
        field = cache.lsp_field(row, column, params.correlation_distances)
        return tf.cast(field.sample_normal(ue_position), self.rdtype)

    def cross_correlation_sqrt(self, params, fast_fading):
        """Square root of the cross-correlation matrix of the LSPs"""
        if not fast_fading:
            return tf.linalg.diag(tf.constant([1., 0., 0., 0., 0., 0., 0.],
                                              self.rdtype))
        c = tf.constant(params.cross_correlation_matrix, self.rdtype)
        return matrix_sqrt(c)

    def __call__(self, params, rng, sigma_sf, fast_fading, cache=None, site=0,
                 ue_position=None, indoor=False, los=False, n_fl=0):

        s = self.sample_normal(params, rng, cache, site, ue_position, indoor,
                               los, n_fl)
        s = tf.linalg.matvec(self.cross_correlation_sqrt(params, fast_fading),
                             s)

        sf = s[0]*sigma_sf
        if not fast_fading:
            return LSP(sf)

        def spread(i, name):
            return tf.pow(tf.constant(10., self.rdtype),
                          params.log_mean(name) + s[i]*params.log_std(name))

        k_factor = params.mu_k + s[1]*params.sigma_k
        ds = spread(2, "DS")
        asd = tf.minimum(spread(3, "ASD"), MAX_AZIMUTH_SPREAD)
        asa = tf.minimum(spread(4, "ASA"), MAX_AZIMUTH_SPREAD)
        zsd = tf.minimum(spread(5, "ZSD"), MAX_ZENITH_SPREAD)
        zsa = tf.minimum(spread(6, "ZSA"), MAX_ZENITH_SPREAD)
        return LSP(sf, k_factor, ds, asd, asa, zsd, zsa)
