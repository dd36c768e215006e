# pylint: disable=line-too-long
#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Spatially correlated random fields used for spatial consistency"""

import numpy as np
import tensorflow as tf
import matplotlib.pyplot as plt

from linkgen.phy import Object
from linkgen.phy.constants import GRID_RESOLUTION, CORRELATION_CUTOFF
from linkgen.phy.utils import normal_to_uniform


class SpatialGrid():
    r"""
    Pixel grid rasterizing a rectangular region of the horizontal plane

    The region spanned by ``min_corner`` and ``max_corner`` is extended on
    all sides by ``margin``. The grid is anchored at
    ``min_corner - margin``, and a position :math:`\mathbf{p}` maps to
    the pixel :math:`\lfloor (\mathbf{p}-\mathbf{a})/r \rfloor`, where
    :math:`\mathbf{a}` is the anchor and :math:`r` the resolution.

    Parameters
    ----------
    min_corner : [2], `float`
        Lower-left corner of the region [m]

    max_corner : [2], `float`
        Upper-right corner of the region [m]

    margin : `float`
        Extension of the region on all sides [m]. Must be a multiple of
        ``resolution``.

    resolution : `float`
        Pixel size [m]. Defaults to
        :data:`~linkgen.phy.constants.GRID_RESOLUTION`.
    """
    def __init__(self, min_corner, max_corner, margin=0.,
                 resolution=GRID_RESOLUTION):

        min_corner = np.asarray(min_corner, np.float64)
        max_corner = np.asarray(max_corner, np.float64)
        if min_corner.shape != (2,) or max_corner.shape != (2,):
            raise ValueError("Grid corners must be 2D positions")
        if np.any(max_corner < min_corner):
            raise ValueError("'max_corner' must not be smaller than "
                             "'min_corner'")
        self._resolution = float(resolution)
        self._margin = float(margin)
        self._anchor = min_corner - self._margin
        self._shape = tuple(self._pixel(max_corner + self._margin) + 1)

    @classmethod
    def for_correlation_distances(cls, min_corner, max_corner, distances,
                                  resolution=GRID_RESOLUTION):
        r"""
        Creates a grid with a margin suited to the given correlation
        distances

        The margin equals :data:`~linkgen.phy.constants.CORRELATION_CUTOFF`
        times the largest defined correlation distance, rounded up to a
        multiple of ``resolution``. Beyond this distance, the exponential
        correlation drops below 1%.

        Input
        -----
        min_corner : [2], `float`
            Lower-left corner of the region [m]

        max_corner : [2], `float`
            Upper-right corner of the region [m]

        distances : [num_fields], `float`
            Correlation distances [m]. `nan` entries are ignored.

        resolution : `float`
            Pixel size [m]

        Output
        ------
        : :class:`~linkgen.phy.channel.tr38901.SpatialGrid`
            Grid
        """
        return cls(min_corner, max_corner,
                   margin=margin_for_distances(distances, resolution),
                   resolution=resolution)

    @property
    def anchor(self):
        """
        [2], `np.float64` : Position of the pixel ``(0, 0)`` [m]
        """
        return self._anchor

    @property
    def shape(self):
        """
        (`int`, `int`) : Number of pixels along the x- and y-axis
        """
        return self._shape

    @property
    def resolution(self):
        """
        `float` : Pixel size [m]
        """
        return self._resolution

    @property
    def margin(self):
        """
        `float` : Extension of the region on all sides [m]
        """
        return self._margin

    def _pixel(self, position):
        return np.floor((position - self._anchor)/self._resolution).astype(np.int64)

    def to_pixel(self, position):
        r"""
        Returns the pixel containing a position

        This is the only mapping from positions to pixels, such that all
        lookups agree on the nearest pixel.

        Input
        -----
        position : [>=2], `float`
            Position [m]. Only the first two coordinates are used.

        Output
        ------
        : (`int`, `int`)
            Pixel indices along the x- and y-axis
        """
        position = np.asarray(position, np.float64)[:2]
        pixel = self._pixel(position)
        if np.any(pixel < 0) or np.any(pixel >= np.array(self._shape)):
            raise ValueError(f"Position ({position[0]:.3f}, "
                             f"{position[1]:.3f}) is outside of the "
                             "spatial consistency grid")
        return int(pixel[0]), int(pixel[1])

    def pixel_center(self, pixel):
        """
        Returns the position of the center of a pixel

        Input
        -----
        pixel : (`int`, `int`)
            Pixel indices

        Output
        ------
        : [2], `np.float64`
            Position [m]
        """
        return self._anchor + (np.asarray(pixel, np.float64) + 0.5)*self._resolution


def margin_for_distances(distances, resolution=GRID_RESOLUTION):
    """
    Returns the grid margin for a set of correlation distances

    Input
    -----
    distances : [num_fields], `float`
        Correlation distances [m]. `nan` entries are ignored.

    resolution : `float`
        Pixel size [m]

    Output
    ------
    : `float`
        Margin [m], a multiple of ``resolution``
    """
    distances = np.asarray(distances, np.float64)
    if np.all(np.isnan(distances)):
        return 0.
    e = CORRELATION_CUTOFF*np.nanmax(distances)
    return float(np.ceil(e/resolution)*resolution)


def exponential_kernel(distance, resolution=GRID_RESOLUTION):
    r"""
    Returns the 2D exponential filter kernel
    :math:`h(x,y) = \exp\left(-\sqrt{x^2+y^2}/d\right)`

    The kernel extends over
    :data:`~linkgen.phy.constants.CORRELATION_CUTOFF` correlation distances
    on each side of its center.

    Input
    -----
    distance : `float`
        Correlation distance :math:`d` [m]

    resolution : `float`
        Pixel size [m]

    Output
    ------
    : [2K+1, 2K+1], `np.float64`
        Kernel, centered on the pixel ``(K, K)``
    """
    half = int(margin_for_distances([distance], resolution)/resolution)
    offsets = resolution*np.arange(-half, half+1)
    r = np.sqrt(offsets[:, None]**2 + offsets[None, :]**2)
    return np.exp(-r/distance)


class AutoCorrelationField(Object):
    # pylint: disable=line-too-long
    r"""
    Spatially correlated Gaussian random fields

    One field is generated per correlation distance :math:`d` by filtering
    a grid of i.i.d. :math:`\mathcal{N}(0,1)` samples with the kernel
    :math:`h(x,y) = \exp\left(-\sqrt{x^2+y^2}/d\right)`
    [WINNER II D1.1.2, Section 3.3.1]. Each field is then divided by its
    standard deviation computed over the pixels which are not affected by
    the grid boundary, so that the samples have unit variance.

    All fields share one :class:`~linkgen.phy.channel.tr38901.SpatialGrid`
    whose margin is determined by the largest correlation distance. Fields
    with an undefined (`nan`) correlation distance are all zeros, which
    disables the corresponding random effect. Their white noise is drawn
    nonetheless, so that the other fields do not depend on which distances
    are defined.

    Parameters
    ----------
    rng : `tf.random.Generator`
        Random stream used to draw the white noise

    min_corner : [2], `float`
        Lower-left corner of the region [m]

    max_corner : [2], `float`
        Upper-right corner of the region [m]

    correlation_distances : [num_fields], `float`
        Correlation distances [m]. Each must be positive and finite, or
        `nan`.

    resolution : `float`
        Pixel size [m]. Defaults to
        :data:`~linkgen.phy.constants.GRID_RESOLUTION`.

    precision : `None` (default) | "single" | "double"
        Precision used for internal calculations and outputs.
        If set to `None`,
        :attr:`~linkgen.phy.config.Config.precision` is used.

    Example
    -------
    .. code-block:: python

        from linkgen.phy import config
        from linkgen.phy.channel.tr38901 import AutoCorrelationField

        field = AutoCorrelationField(config.stream(1),
                                     [0., 0.], [200., 100.],
                                     [50., 10.])
        x = field.sample_normal([20., 30.])  # [2]
        u = field.sample_uniform([20., 30.], index=0)
    """
    def __init__(self,
                 rng,
                 min_corner,
                 max_corner,
                 correlation_distances,
                 resolution=GRID_RESOLUTION,
                 precision=None):
        super().__init__(precision=precision)

        distances = np.atleast_1d(np.asarray(correlation_distances,
                                             np.float64))
        if distances.ndim != 1 or distances.size == 0:
            raise ValueError("'correlation_distances' must be a non-empty "
                             "vector")
        defined = ~np.isnan(distances)
        if np.any(~np.isfinite(distances[defined])) or \
                np.any(distances[defined] <= 0.):
            raise ValueError("Correlation distances must be positive and "
                             "finite, or nan")
        self._distances = distances
        self._grid = SpatialGrid.for_correlation_distances(min_corner,
                                                           max_corner,
                                                           distances,
                                                           resolution)
        num_x, num_y = self._grid.shape

        # One white noise grid per field
        noise = rng.normal([distances.size, num_x, num_y],
                           dtype=self.rdtype)

        fields = []
        for i, d in enumerate(distances):
            if np.isnan(d):
                fields.append(tf.zeros([num_x, num_y], self.rdtype))
            else:
                kernel = tf.cast(exponential_kernel(d, resolution),
                                 self.rdtype)
                fields.append(self._normalize(_filter2(noise[i], kernel),
                                              kernel.shape[0]//2))
        # [num_x, num_y, num_fields]
        self._values = tf.stack(fields, axis=-1)

    def _normalize(self, field, center):
        # Standard deviation over the pixels not affected by the boundary
        num_x, num_y = self._grid.shape
        interior = field[center:num_x-center, center:num_y-center]
        n = tf.size(interior)
        if n < 2:
            interior = field
            n = tf.size(interior)
        n = tf.cast(n, self.rdtype)
        mean = tf.reduce_mean(interior)
        var = tf.reduce_sum(tf.square(interior - mean))/(n - 1.)
        return field/tf.sqrt(var)

    @property
    def grid(self):
        """
        :class:`~linkgen.phy.channel.tr38901.SpatialGrid` : Pixel grid of
        the fields
        """
        return self._grid

    @property
    def correlation_distances(self):
        """
        [num_fields], `np.float64` : Correlation distances [m]
        """
        return self._distances

    @property
    def num_fields(self):
        """
        `int` : Number of fields
        """
        return self._distances.size

    @property
    def values(self):
        """
        [num_x, num_y, num_fields], `tf.float` : Field values
        """
        return self._values

    def sample_normal(self, position, index=None):
        r"""
        Samples the fields at the pixel containing a position

        Input
        -----
        position : [>=2], `float`
            Position [m]

        index : `None` (default) | `int` | [n], `int`
            Fields to sample. If `None`, all fields are sampled.

        Output
        ------
        : [num_fields] | [] | [n], `tf.float`
            :math:`\mathcal{N}(0,1)` distributed samples
        """
        i, j = self._grid.to_pixel(position)
        values = self._values[i, j]
        if index is None:
            return values
        return tf.gather(values, index)

    def sample_uniform(self, position, index=None):
        r"""
        Samples the fields at the pixel containing a position and maps the
        samples to :math:`\mathcal{U}(0,1)` with the probability integral
        transform :math:`\frac{1}{2}\left(1+\text{erf}(x/\sqrt{2})\right)`

        Input
        -----
        position : [>=2], `float`
            Position [m]

        index : `None` (default) | `int` | [n], `int`
            Fields to sample. If `None`, all fields are sampled.

        Output
        ------
        : [num_fields] | [] | [n], `tf.float`
            Samples in :math:`[0,1]`
        """
        return normal_to_uniform(self.sample_normal(position, index))

    def show(self, index=0, fig=None, cmap="viridis"):
        """
        Visualizes one of the fields

        Input
        -----
        index : `int`
            Field to visualize. Defaults to 0.

        fig : `matplotlib.figure.Figure` | `None` (default)
            Existing figure handle on which the field is drawn.
            If `None`, then a new figure is created

        cmap : `str`
            Matplotlib colormap

        Output
        ------
        fig : `matplotlib.figure.Figure`
            Figure handle
        """
        if fig is None:
            fig, ax = plt.subplots()
        else:
            ax = fig.gca()
        num_x, num_y = self._grid.shape
        res = self._grid.resolution
        x0, y0 = self._grid.anchor
        im = ax.imshow(self._values[:, :, index].numpy().T,
                       origin="lower",
                       extent=[x0, x0 + num_x*res, y0, y0 + num_y*res],
                       cmap=cmap)
        fig.colorbar(im, ax=ax)
        ax.set_xlabel("x [m]")
        ax.set_ylabel("y [m]")
        ax.set_title(f"Correlation distance {self._distances[index]:g} m")
        ax.set_aspect('equal', adjustable='box')
        fig.tight_layout()
        return fig


def _filter2(x, kernel):
    # Linear 2D convolution of x with an odd-sized kernel, cropped to the
    # size of x ("same" mode), computed with zero-padded FFTs
    num_x, num_y = x.shape
    k = kernel.shape[0]
    fft_length = [num_x + k - 1, num_y + k - 1]
    y = tf.signal.irfft2d(tf.signal.rfft2d(x, fft_length)
                          * tf.signal.rfft2d(kernel, fft_length),
                          fft_length)
    c = k//2
    return tf.cast(y[c:c+num_x, c:c+num_y], x.dtype)
