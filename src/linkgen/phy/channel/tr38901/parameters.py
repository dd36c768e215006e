# pylint: disable=line-too-long
#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Statistical link parameters following Tables 7.5-6 to 7.5-11 of TR 38.901"""

import json
from importlib_resources import files
import numpy as np

from . import models # pylint: disable=relative-beyond-top-level


# Order of the large scale parameters. The cross-correlation matrix and the
# spatially consistent large scale parameter fields follow this order.
LSP_NAMES = ("SF", "K", "DS", "ASD", "ASA", "ZSD", "ZSA")

# Carrier frequency [GHz] below which the tables are evaluated at this value
MIN_CARRIER_FREQUENCY = {"UMi" : 2.,
                         "UMa" : 6.,
                         "RMa" : 0.,
                         "InH" : 6.,
                         "InF" : 6.}

# Loaded tables, keyed by file name
_tables = {}


def load_table(family, condition):
    r"""
    Loads the parameter table of a scenario family and propagation condition

    Tables are read once from the JSON files of the
    :mod:`~linkgen.phy.channel.tr38901.models` package and cached.
    Entries that are not applicable are `None`.

    Input
    -----
    family : "UMi" | "UMa" | "RMa" | "InH" | "InF"
        Scenario family

    condition : "LOS" | "NLOS" | "O2I"
        Propagation condition

    Output
    ------
    : `dict`
        Table entries
    """
    name = f"{family}_{condition}.json"
    if name not in _tables:
        source = files(models).joinpath(name)
        if not source.is_file():
            raise ValueError(f"No '{condition}' parameters for the "
                             f"{family} scenarios")
        # pylint: disable=unspecified-encoding
        with open(source) as f:
            _tables[name] = json.load(f)
    return _tables[name]


class LinkParameters():
    r"""
    Statistical parameters of one link

    Evaluates the entries of the scenario tables which depend on the carrier
    frequency and on the link geometry: log-normal means and standard
    deviations of the spreads, ZSD statistics and ZOD offset (Tables
    7.5-7 to 7.5-11), cluster delay spread, and the cross-correlation
    matrix of the large scale parameters.

    Parameters
    ----------
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    carrier_frequency : `float`
        Carrier frequency [Hz]

    los : `bool`
        Line-of-sight state of the (outdoor part of the) link

    indoor : `bool`
        If `True`, the O2I parameters are used. Only supported by the UMi, UMa
        and RMa scenarios.

    distance_2d : `float`
        2D distance between the base station and the user equipment [m]

    h_bs : `float`
        Base station height [m]

    h_ut : `float`
        User equipment height [m]
    """
    def __init__(self,
                 scenario_config,
                 carrier_frequency,
                 los,
                 indoor,
                 distance_2d,
                 h_bs,
                 h_ut):

        scenario = scenario_config.scenario
        if indoor and not scenario.is_cellular:
            raise ValueError("O2I links are only supported by the UMi, UMa "
                             "and RMa scenarios")
        self._scenario = scenario
        self._config = scenario_config
        self._los = bool(los)
        self._indoor = bool(indoor)
        if self._indoor:
            self._condition = "O2I"
        else:
            self._condition = "LOS" if self._los else "NLOS"
        self._table = load_table(scenario.family, self._condition)

        fc = carrier_frequency/1e9
        self._fc = max(fc, MIN_CARRIER_FREQUENCY[scenario.family])
        self._d2d = float(distance_2d)
        self._h_bs = float(h_bs)
        self._h_ut = float(h_ut)

    def _value(self, name, default=0.):
        v = self._table.get(name)
        return default if v is None else float(v)

    def _log_fit(self, name):
        # a*log10(b+fc)+c
        a = self._value(name + "a")
        b = self._value(name + "b")
        c = self._value(name + "c")
        if a == 0.:
            return c
        return a*np.log10(b + self._fc) + c

    @property
    def condition(self):
        """
        "LOS" | "NLOS" | "O2I" : Propagation condition selecting the table
        """
        return self._condition

    @property
    def carrier_frequency(self):
        """
        `float` : Carrier frequency at which the tables are evaluated [GHz]
        """
        return self._fc

    @property
    def num_clusters(self):
        """
        `int` : Number of clusters
        """
        return int(self._value("numClusters"))

    @property
    def num_rays(self):
        """
        `int` : Number of rays per cluster
        """
        return int(self._value("numRays"))

    @property
    def r_tau(self):
        """
        `float` : Delay scaling parameter
        """
        return self._value("rTau")

    @property
    def zeta(self):
        """
        `float` : Per cluster shadowing standard deviation [dB]
        """
        return self._value("zeta")

    @property
    def mu_xpr(self):
        """
        `float` : Mean of the cross-polarization power ratio [dB]
        """
        return self._value("muXPR")

    @property
    def sigma_xpr(self):
        """
        `float` : Standard deviation of the cross-polarization power ratio
        [dB]
        """
        return self._value("sigmaXPR")

    @property
    def mu_k(self):
        """
        `float` : Mean of the Ricean K-factor [dB]. 0 if not applicable.
        """
        return self._value("muK")

    @property
    def sigma_k(self):
        """
        `float` : Standard deviation of the Ricean K-factor [dB]. 0 if not
        applicable.
        """
        return self._value("sigmaK")

    @property
    def sigma_sf(self):
        """
        `float` | `None` : Shadow fading standard deviation of the O2I
        condition [dB], `None` otherwise
        """
        return self._value("sigmaSF", None)

    @property
    def c_ds(self):
        r"""
        `float` | `None` : Cluster delay spread [s], computed as
        :math:`\max(a, b - c\log_{10}(f_c))` ns. `None` if not defined by the
        scenario.
        """
        a = self._table.get("cDSa")
        if a is None:
            return None
        b = self._value("cDSb")
        c = self._value("cDSc")
        return max(a, b - c*np.log10(self._fc))*1e-9

    @property
    def c_asd(self):
        """
        `float` : Cluster ASD [deg]
        """
        return self._value("cASD")

    @property
    def c_asa(self):
        """
        `float` : Cluster ASA [deg]
        """
        return self._value("cASA")

    @property
    def c_zsa(self):
        """
        `float` : Cluster ZSA [deg]
        """
        return self._value("cZSA")

    @property
    def c_zsd(self):
        r"""
        `float` : Cluster ZSD [deg], equal to
        :math:`\frac{3}{8}10^{\mu_{\text{lgZSD}}}`
        """
        return 3./8.*10.**self.log_mean("ZSD")

    def log_mean(self, name):
        r"""
        Mean of the base-10 logarithm of a spread

        Input
        -----
        name : "DS" | "ASD" | "ASA" | "ZSD" | "ZSA"
            Spread

        Output
        ------
        : `float`
            Mean of the spread in the log-domain, with the delay spread in
            seconds and the angular spreads in degrees
        """
        if name == "ZSD":
            return self._zsd_statistics()[0]
        if name == "DS" and "muDSVSa" in self._table:
            volume, surface = self._config.hall_volume_and_surface
            return (np.log10(self._value("muDSVSa")*volume/surface
                             + self._value("muDSVSb"))
                    + self._value("muDSVSc"))
        return self._log_fit("mu" + name)

    def log_std(self, name):
        """
        Standard deviation of the base-10 logarithm of a spread

        Input
        -----
        name : "DS" | "ASD" | "ASA" | "ZSD" | "ZSA"
            Spread

        Output
        ------
        : `float`
            Standard deviation of the spread in the log-domain
        """
        if name == "ZSD":
            return self._zsd_statistics()[1]
        return self._log_fit("sigma" + name)

    @property
    def zod_offset(self):
        """
        `float` : Offset of the zenith angles of departure
        """
        return self._zsd_statistics()[2]

    def _zsd_statistics(self):
        # Tables 7.5-7 to 7.5-11. Returns mu_lgZSD, sigma_lgZSD, ZOD offset.
        # The distance is in km in the ZSD means.
        d = self._d2d
        d_km = d/1000.
        h_ut = self._h_ut
        h_bs = self._h_bs
        fc = self._fc
        los = self._los

        def umi():
            if los:
                mu = max(-0.21, -14.8*d_km + 0.01*abs(h_ut - h_bs) + 0.83)
                offset = 0.
            else:
                mu = max(-0.5, -3.1*d_km + 0.01*max(h_ut - h_bs, 0.) + 0.2)
                offset = 10.**(-1.5*np.log10(max(10., d)) + 3.3)
            return mu, 0.35, offset

        def uma():
            if los:
                mu = max(-0.5, -2.1*d_km - 0.01*(h_ut - 1.5) + 0.75)
                return mu, 0.40, 0.
            mu = max(-0.5, -2.1*d_km - 0.01*(h_ut - 1.5) + 0.9)
            a = 0.208*np.log10(fc) - 0.782
            c = -0.13*np.log10(fc) + 2.03
            e = 7.66*np.log10(fc) - 5.96
            offset = e - 10.**(a*np.log10(max(25., d)) + c
                               - 0.07*(h_ut - 1.5))
            return mu, 0.49, offset

        def rma():
            if los and not self._indoor:
                mu = max(-1., -0.17*d_km - 0.01*(h_ut - 1.5) + 0.22)
                return mu, 0.34, 0.
            mu = max(-1., -0.19*d_km - 0.01*(h_ut - 1.5) + 0.28)
            offset = np.arctan((35. - 3.5)/d) - np.arctan((35. - 1.5)/d)
            return mu, 0.30, offset

        def inh():
            if los:
                return (-1.43*np.log10(1. + fc) + 2.228,
                        0.13*np.log10(1. + fc) + 0.30,
                        0.)
            return 1.08, 0.36, 0.

        def inf():
            if los:
                return 1.35, 0.35, 0.
            return 1.2, 0.55, 0.

        return self._scenario.select(umi, uma, rma, inh, inf)

    @property
    def correlation_distances(self):
        """
        [7], `np.float64` : Correlation distances of the large scale
        parameters in the order of ``LSP_NAMES`` [m]. `nan` if not defined.
        """
        return np.array([self._value("corrDist" + n, np.nan)
                         for n in LSP_NAMES])

    @property
    def cross_correlation_matrix(self):
        r"""
        [7, 7], `np.float64` : Cross-correlation matrix of the large scale
        parameters in the order of ``LSP_NAMES``
        """
        n = len(LSP_NAMES)
        c = np.eye(n)
        for i in range(n):
            for j in range(i+1, n):
                a, b = LSP_NAMES[i], LSP_NAMES[j]
                key = f"corr{b}vs{a}"
                if key not in self._table:
                    key = f"corr{a}vs{b}"
                c[i, j] = c[j, i] = self._value(key)
        return c
