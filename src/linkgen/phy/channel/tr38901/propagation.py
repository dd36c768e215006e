#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Propagation condition, path loss and mobility models of TR 38.901"""

import warnings
import numpy as np
import tensorflow as tf

from linkgen.phy.config import config, dtypes
from linkgen.phy.constants import PI, SPEED_OF_LIGHT
from linkgen.phy.utils import log10, rad_2_deg


def _rdtype(precision):
    if precision is None:
        precision = config.precision
    return dtypes[precision]['tf']['rdtype']


def los_probability(scenario_config, distance_2d_out, h_bs, h_ut,
                    precision=None):
    # pylint: disable=line-too-long
    r"""
    Line-of-sight probability following Section 7.4.2 of TR 38.901

    The outdoor 2D distance is used for all scenarios. For the InH scenarios,
    it takes the place of the indoor distance of Table 7.4.2-1, as the link
    is considered to have no O2I penetration. A warning is issued if the
    result is not in :math:`[0,1]`, which can happen for InF scenarios with
    unusual clutter parameters.

    Input
    -----
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    distance_2d_out : [...], `float`
        Outdoor 2D distance [m]

    h_bs : [...], `float`
        Base station height [m]

    h_ut : [...], `float`
        User equipment height [m]

    precision : `None` (default) | "single" | "double"
        Precision used for the computations

    Output
    ------
    : [...], `tf.float`
        LOS probability
    """
    rdtype = _rdtype(precision)
    d = tf.cast(distance_2d_out, rdtype)
    h_bs = tf.cast(h_bs, rdtype)
    h_ut = tf.cast(h_ut, rdtype)
    one = tf.ones_like(d)

    def umi():
        dd = tf.maximum(d, 18.)
        return 18./dd + tf.exp(-dd/36.)*(1. - 18./dd)

    def uma():
        dd = tf.maximum(d, 18.)
        c = tf.where(h_ut <= 13., tf.zeros_like(h_ut),
                     tf.pow(tf.maximum(h_ut - 13., 0.)/10., 1.5))
        p = ((18./dd + tf.exp(-dd/63.)*(1. - 18./dd))
             * (1. + c*5./4.*tf.pow(dd/100., 3.)*tf.exp(-dd/150.)))
        return tf.where(d <= 18., one, p)

    def rma():
        return tf.where(d <= 10., one, tf.exp(-(d - 10.)/1e3))

    def inh(breakpoints, den, m):
        return tf.where(d < breakpoints[0], one,
                        tf.where(d < breakpoints[1],
                                 tf.exp(-(d - breakpoints[0])/den[0]),
                                 tf.exp(-(d - breakpoints[1])/den[1])*m))

    def inf(low_bs):
        k = -scenario_config.clutter_size \
            / np.log(1. - scenario_config.clutter_density)
        if not low_bs:
            k = k*(h_bs - h_ut)/(scenario_config.clutter_height - h_ut)
        return tf.exp(-d/k)

    scenario = scenario_config.scenario
    p = scenario.select(umi, uma, rma,
                        {"Mixed" : lambda: inh([1.2, 6.5], [4.7, 32.6], 0.32),
                         "Open" : lambda: inh([5., 49.], [70.8, 211.7], 0.54)},
                        {"SL" : lambda: inf(True),
                         "DL" : lambda: inf(True),
                         "SH" : lambda: inf(False),
                         "DH" : lambda: inf(False),
                         "HH" : lambda: one})

    if tf.reduce_any(p < 0.) or tf.reduce_any(p > 1.):
        names = {"UMi" : ["2D outdoor distance"],
                 "UMa" : ["2D outdoor distance", "UE height"],
                 "RMa" : ["2D outdoor distance"],
                 "InH" : ["2D indoor distance"],
                 "InF" : ["2D distance", "BS height", "UE height",
                          "clutter size", "clutter density",
                          "clutter height"]}[scenario.family]
        values = {"2D outdoor distance" : d,
                  "2D indoor distance" : d,
                  "2D distance" : d,
                  "BS height" : h_bs,
                  "UE height" : h_ut,
                  "clutter size" : scenario_config.clutter_size,
                  "clutter density" : scenario_config.clutter_density,
                  "clutter height" : scenario_config.clutter_height}
        details = ", ".join(f"{n} ({np.asarray(values[n])})" for n in names)
        warnings.warn(f"The LOS probability ({p.numpy()}) is outside of "
                      f"[0,1] for the scenario {scenario.value}, {details}")
    return p


def environment_height(scenario_config, rng, distance_2d, h_ut,
                       precision=None):
    r"""
    Effective environment height :math:`h_E` following Note 1 of Table
    7.4.1-1 of TR 38.901

    For UMa, :math:`h_E=1` m with probability :math:`1/(1+C(d_\text{2D},
    h_\text{UT}))`, and is otherwise chosen uniformly from
    :math:`\{12, 15, \dots, h_\text{UT}-1.5\}`. It equals 1 m for UMi and is
    not used by the other scenarios, for which 0 is returned.

    Input
    -----
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    rng : `tf.random.Generator`
        Random stream. Only used for UMa.

    distance_2d : `float`
        2D distance [m]

    h_ut : `float`
        User equipment height [m]

    precision : `None` (default) | "single" | "double"
        Precision used for the computations

    Output
    ------
    : [], `tf.float`
        Environment height [m]
    """
    rdtype = _rdtype(precision)

    def uma():
        if h_ut < 13.:
            c = 0.
        else:
            if distance_2d <= 18.:
                g = 0.
            else:
                g = 5./4.*(distance_2d/100.)**3*np.exp(-distance_2d/150.)
            c = ((h_ut - 13.)/10.)**1.5*g
        if rng.uniform([], dtype=rdtype) < 1./(1. + c):
            return 1.
        heights = np.arange(12., h_ut - 1.5 + 1e-9, 3.)
        if heights.size == 0:
            return 12.
        i = rng.uniform([], minval=0, maxval=heights.size, dtype=tf.int32)
        return heights[int(i)]

    h_e = scenario_config.scenario.select(1., uma, 0., 0., 0.)
    return tf.constant(h_e, rdtype)


def o2i_loss(scenario_config, rng, distance_2d_in, carrier_frequency,
             field=None, ue_position=None, precision=None):
    # pylint: disable=line-too-long
    r"""
    Outdoor-to-indoor building penetration loss following Section 7.4.3 of
    TR 38.901

    O2I penetration only applies to the UMi, UMa and RMa scenarios and to
    user equipment with a non-zero indoor distance. Below 6 GHz, the single
    frequency model of Table 7.4.3-3 is used, for which no random variable
    is drawn. Otherwise, the building type (low or high loss) is drawn with
    the low-loss ratios of Table 7.8-1 (all buildings are low-loss for RMa)
    and the loss is computed with Table 7.4.3-2.

    If an O2I random field is provided, the building type and the
    penetration loss deviation are spatially consistent (Section 7.6.3.3):
    the building type is obtained from the uniform transform of field 0,
    and the deviation from field 1 (high loss) or 2 (low loss).

    Input
    -----
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    rng : `tf.random.Generator`
        Random stream used if ``field`` is `None`

    distance_2d_in : `float`
        Indoor 2D distance [m]

    carrier_frequency : `float`
        Carrier frequency [Hz]

    field : `None` (default) | :class:`~linkgen.phy.channel.tr38901.AutoCorrelationField`
        Spatially consistent O2I random fields

    ue_position : `None` (default) | [3], `float`
        User equipment position [m]. Required if ``field`` is provided.

    precision : `None` (default) | "single" | "double"
        Precision used for the computations

    Output
    ------
    : [], `tf.float`
        Penetration loss [dB]
    """
    rdtype = _rdtype(precision)
    if not scenario_config.scenario.is_cellular or distance_2d_in == 0.:
        return tf.constant(0., rdtype)

    pl_in = 0.5*distance_2d_in
    if carrier_frequency < 6e9:
        # Table 7.4.3-3
        return tf.constant(20. + pl_in, rdtype)

    low_loss_ratio = scenario_config.scenario.select(0.5, 0.5, 1.0, None,
                                                     None)
    if field is None:
        rv = rng.uniform([], dtype=rdtype)
    else:
        rv = field.sample_uniform(ue_position, 0)
    low_loss = bool(rv < low_loss_ratio)

    # Tables 7.4.3-1 and 7.4.3-2
    fc = carrier_frequency/1e9
    l_glass = 2. + 0.2*fc
    l_iirglass = 23. + 0.3*fc
    l_concrete = 5. + 4.*fc
    if low_loss:
        pl_tw = 5. - 10.*np.log10(0.3*10.**(-l_glass/10.)
                                  + 0.7*10.**(-l_concrete/10.))
        sigma_p = 4.4
    else:
        pl_tw = 5. - 10.*np.log10(0.7*10.**(-l_iirglass/10.)
                                  + 0.3*10.**(-l_concrete/10.))
        sigma_p = 6.5

    if field is None:
        rv = rng.normal([], dtype=rdtype)
    else:
        rv = field.sample_normal(ue_position, 1 + int(low_loss))
    return tf.cast(pl_tw + pl_in, rdtype) + tf.cast(rv, rdtype)*sigma_p


def basic_pathloss(scenario_config, los, carrier_frequency, bs_position,
                   ue_position, h_e=1., precision=None):
    r"""
    Basic path loss and shadow fading standard deviation following Table
    7.4.1-1 of TR 38.901

    Input
    -----
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    los : `bool`
        Line-of-sight state

    carrier_frequency : `float`
        Carrier frequency [Hz]

    bs_position : [3], `float`
        Base station position [m]

    ue_position : [3], `float`
        User equipment position [m]

    h_e : `float`
        Environment height used by the UMi and UMa breakpoint distance [m]

    precision : `None` (default) | "single" | "double"
        Precision used for the computations

    Output
    ------
    pathloss : [], `tf.float`
        Basic path loss [dB]

    sigma_sf : `float`
        Shadow fading standard deviation [dB]
    """
    rdtype = _rdtype(precision)
    bs_position = tf.cast(bs_position, rdtype)
    ue_position = tf.cast(ue_position, rdtype)
    distance_2d = tf.norm(bs_position[:2] - ue_position[:2])
    distance_3d = tf.norm(bs_position - ue_position)
    h_bs = bs_position[2]
    h_ut = ue_position[2]
    fc = tf.cast(carrier_frequency/1e9, rdtype)
    h_e = tf.cast(h_e, rdtype)

    def umi():
        distance_breakpoint = 4.*(h_bs-h_e)*(h_ut-h_e)*carrier_frequency \
                              /SPEED_OF_LIGHT
        pl_1 = 32.4 + 21.0*log10(distance_3d) + 20.0*log10(fc)
        pl_2 = (32.4 + 40.0*log10(distance_3d) + 20.0*log10(fc)
                - 9.5*log10(tf.square(distance_breakpoint)
                            + tf.square(h_bs-h_ut)))
        pl_los = tf.where(distance_2d <= distance_breakpoint, pl_1, pl_2)
        if los:
            return pl_los, 4.0
        pl_3 = (35.3*log10(distance_3d) + 22.4 + 21.3*log10(fc)
                - 0.3*(h_ut-1.5))
        return tf.maximum(pl_los, pl_3), 7.82

    def uma():
        distance_breakpoint = 4.*(h_bs-h_e)*(h_ut-h_e)*carrier_frequency \
                              /SPEED_OF_LIGHT
        pl_1 = 28.0 + 22.0*log10(distance_3d) + 20.0*log10(fc)
        pl_2 = (28.0 + 40.0*log10(distance_3d) + 20.0*log10(fc)
                - 9.0*log10(tf.square(distance_breakpoint)
                            + tf.square(h_bs-h_ut)))
        pl_los = tf.where(distance_2d <= distance_breakpoint, pl_1, pl_2)
        if los:
            return pl_los, 4.0
        pl_3 = (13.54 + 39.08*log10(distance_3d) + 20.0*log10(fc)
                - 0.6*(h_ut-1.5))
        return tf.maximum(pl_los, pl_3), 6.0

    def rma():
        # Average building height and street width
        h = tf.constant(5.0, rdtype)
        w = tf.constant(20.0, rdtype)
        distance_breakpoint = 2.*PI*h_bs*h_ut*carrier_frequency/SPEED_OF_LIGHT

        def pl_1(d):
            return (20.0*log10(40.0*PI*d*fc/3.)
                    + tf.minimum(0.03*tf.pow(h, 1.72), 10.0)*log10(d)
                    - tf.minimum(0.044*tf.pow(h, 1.72), 14.77)
                    + 0.002*log10(h)*d)

        below = distance_2d <= distance_breakpoint
        pl_los = tf.where(below, pl_1(distance_3d),
                          pl_1(distance_breakpoint)
                          + 40.0*log10(distance_3d/distance_breakpoint))
        if los:
            return pl_los, 4.0 if bool(below) else 6.0
        pl_3 = (161.04 - 7.1*log10(w) + 7.5*log10(h)
                - (24.37 - 3.7*tf.square(h/h_bs))*log10(h_bs)
                + (43.42 - 3.1*log10(h_bs))*(log10(distance_3d)-3.0)
                + 20.0*log10(fc)
                - (3.2*tf.square(log10(11.75*h_ut)) - 4.97))
        return tf.maximum(pl_los, pl_3), 8.0

    def inh():
        pl_los = 32.4 + 17.3*log10(distance_3d) + 20.0*log10(fc)
        if los:
            return pl_los, 3.0
        pl_nlos = 17.3 + 38.3*log10(distance_3d) + 24.9*log10(fc)
        return tf.maximum(pl_los, pl_nlos), 8.03

    def inf():
        pl_los = 31.84 + 21.50*log10(distance_3d) + 19.00*log10(fc)
        variant = scenario_config.scenario.variant
        if los or variant == "HH":
            return pl_los, 4.3
        pl_sl = 33.0 + 25.5*log10(distance_3d) + 20.0*log10(fc)
        pl_dl = 18.6 + 35.7*log10(distance_3d) + 20.0*log10(fc)
        pl_sh = 32.4 + 23.0*log10(distance_3d) + 20.0*log10(fc)
        pl_dh = 33.63 + 21.9*log10(distance_3d) + 20.0*log10(fc)
        if variant == "SL":
            return tf.maximum(pl_los, pl_sl), 5.7
        if variant == "DL":
            return tf.maximum(tf.maximum(pl_los, pl_sl), pl_dl), 7.2
        if variant == "SH":
            return tf.maximum(pl_los, pl_sh), 5.9
        return tf.maximum(pl_los, pl_dh), 4.0

    return scenario_config.scenario.select(umi, uma, rma, inh, inf)


def bs_orientation(sector, num_sectors):
    r"""
    Default orientation of a base station array

    The bearing of the sector with zero-based index :math:`s` among
    :math:`S` sectors is :math:`360s/S+30` degrees, with zero downtilt and
    slant.

    Input
    -----
    sector : `int`
        Zero-based sector index

    num_sectors : `int`
        Number of sectors per site

    Output
    ------
    : [3], `np.float64`
        Bearing, downtilt and slant angles [deg]
    """
    return np.array([sector*360./num_sectors + 30., 0., 0.])


def ue_orientation(rng, precision=None):
    """
    Draws the orientation of a user equipment array with a uniformly
    distributed bearing in [-180, 180) degrees

    Input
    -----
    rng : `tf.random.Generator`
        Random stream

    precision : `None` (default) | "single" | "double"
        Precision used for the computations

    Output
    ------
    : [3], `tf.float`
        Bearing, downtilt and slant angles [deg]
    """
    rdtype = _rdtype(precision)
    bearing = rng.uniform([], dtype=rdtype)*360. - 180.
    return tf.stack([bearing, tf.zeros_like(bearing), tf.zeros_like(bearing)])


def ue_mobility(scenario_config, rng, carrier_frequency, indoor,
                precision=None):
    r"""
    Draws the mobility of a user equipment

    The speed is 3 km/h for UMi, UMa and InH (Tables 7.2-1 and 7.2-2), 3 km/h
    indoors and 120 km/h outdoors for RMa, and 0 km/h for InF. The
    direction of travel is horizontal with a uniformly distributed azimuth.

    Input
    -----
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    rng : `tf.random.Generator`
        Random stream

    carrier_frequency : `float`
        Carrier frequency [Hz]

    indoor : `bool`
        If `True`, the user equipment is indoors

    precision : `None` (default) | "single" | "double"
        Precision used for the computations

    Output
    ------
    max_doppler_shift : [], `tf.float`
        Maximum Doppler shift [Hz]

    direction_of_travel : [2], `tf.float`
        Azimuth and zenith of the direction of travel [deg]
    """
    rdtype = _rdtype(precision)
    speed = scenario_config.scenario.select(3., 3., 3. if indoor else 120.,
                                            3., 0.)
    max_doppler_shift = tf.constant(speed/3.6/SPEED_OF_LIGHT
                                    *carrier_frequency, rdtype)
    azimuth = rng.uniform([], dtype=rdtype)*360. - 180.
    direction = tf.stack([azimuth, tf.constant(90., rdtype)])
    return max_doppler_shift, direction


def los_angles(bs_position, ue_position, precision=None):
    r"""
    Angles of the line-of-sight direction between a base station and a user
    equipment

    Input
    -----
    bs_position : [3], `float`
        Base station position [m]

    ue_position : [3], `float`
        User equipment position [m]

    precision : `None` (default) | "single" | "double"
        Precision used for the computations

    Output
    ------
    aoa : [], `tf.float`
        Azimuth angle of arrival [deg]

    aod : [], `tf.float`
        Azimuth angle of departure [deg]

    zoa : [], `tf.float`
        Zenith angle of arrival [deg]

    zod : [], `tf.float`
        Zenith angle of departure [deg]
    """
    rdtype = _rdtype(precision)
    v = tf.cast(ue_position, rdtype) - tf.cast(bs_position, rdtype)
    v = v/tf.norm(v)
    aod = rad_2_deg(tf.atan2(v[1], v[0]))
    aoa = rad_2_deg(tf.atan2(-v[1], -v[0]))
    zod = rad_2_deg(tf.acos(tf.clip_by_value(v[2], -1., 1.)))
    zoa = 180. - zod
    return aoa, aod, zoa, zod
