#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Geometry of hexagonal site layouts: wrap-around and system boundary"""

import numpy as np

from linkgen.phy.constants import PI


def wraparound_offsets(inter_site_distance, num_sites, num_sectors):
    # pylint: disable=line-too-long
    r"""
    Returns the displacements of the wrap-around images of a hexagonal site
    layout

    The offsets follow Rec. ITU-R M.2101-0, Attachment 2 to Annex 1, for 19
    sites, with the rings of 6 and 12 sites rotated as in TR 38.901.
    Layouts of 7 sites and of 3 tri-sectorized sites are handled alike. The
    first offset is always zero, i.e., the original layout.

    Input
    -----
    inter_site_distance : `float`
        Inter-site distance [m]

    num_sites : `int`
        Number of sites. Must be 7 or 19, or 3 if ``num_sectors`` is 3.

    num_sectors : `int`
        Number of sectors per site

    Output
    ------
    : [7, 2], `np.float64`
        Horizontal displacements [m]
    """
    isd = inter_site_distance
    if num_sites == 3 and num_sectors == 3:
        x = [0., -0.5, 0.5, -0.5, 0.5, -1., 1.]
        y = [0., -1.5, 1.5, 1.5, -1.5, 0., 0.]
    elif num_sites == 7:
        x = [0., -0.5, 0.5, -1., 1., -1.5, 1.5]
        y = [0., -2.5, 2.5, 2., -2., -0.5, 0.5]
    elif num_sites == 19:
        x = [0., -1., 1., -1.5, 1.5, -2.5, 2.5]
        y = [0., -4., 4., 3.5, -3.5, -0.5, 0.5]
    else:
        raise ValueError(f"Wrap-around does not support {num_sites} sites "
                         f"with {num_sectors} sectors. Use 3 sites with "
                         "three sectors each, or 7 or 19 sites.")
    return np.stack([np.array(x)*np.sqrt(3.)*isd, np.array(y)*isd], axis=-1)


def nearest_image(bs_position, ue_position, offsets):
    r"""
    Returns the wrap-around image of a base station which is closest to a
    user equipment in the horizontal plane

    Ties are resolved in favor of the first offset.

    Input
    -----
    bs_position : [3], `float`
        Base station position [m]

    ue_position : [3], `float`
        User equipment position [m]

    offsets : [num_images, 2], `float`
        Horizontal displacements of the images [m]

    Output
    ------
    bs_position : [3], `np.float64`
        Position of the closest image [m]

    distance_3d : `float`
        3D distance between the closest image and the user equipment [m]
    """
    bs_position = np.asarray(bs_position, np.float64)
    ue_position = np.asarray(ue_position, np.float64)
    offsets = np.asarray(offsets, np.float64)
    d = np.linalg.norm(bs_position[:2] + offsets - ue_position[:2], axis=-1)
    i = int(np.argmin(d))
    image = bs_position + np.array([offsets[i, 0], offsets[i, 1], 0.])
    return image, float(np.linalg.norm(image - ue_position))


def site_polygon(inter_site_distance):
    r"""
    Returns the vertices of the hexagon bounding a site

    Input
    -----
    inter_site_distance : `float`
        Inter-site distance [m]

    Output
    ------
    x : [7], `np.float64`
        x-coordinates of the vertices relative to the site center [m].
        The first vertex is repeated at the end.

    y : [7], `np.float64`
        y-coordinates of the vertices relative to the site center [m]
    """
    angles = np.arange(0., 361., 60.)*PI/180.
    radius = inter_site_distance/np.sqrt(3.)
    return radius*np.cos(angles), radius*np.sin(angles)


def check_ue_position(scenario_extents, ue_position):
    """
    Raises a `ValueError` if a user equipment is outside of the system
    boundary

    Input
    -----
    scenario_extents : [4], `float`
        System boundary ``[left, bottom, width, height]`` [m]

    ue_position : [>=2], `float`
        User equipment position [m]
    """
    extents = np.asarray(scenario_extents, np.float64)
    min_pos = extents[:2]
    max_pos = min_pos + extents[2:]
    xy = np.asarray(ue_position, np.float64)[:2]
    if np.any(xy < min_pos) or np.any(xy > max_pos):
        raise ValueError(f"UE position x={xy[0]:.3f}, y={xy[1]:.3f} is "
                         "outside of the system boundary "
                         f"x={min_pos[0]:.3f}...{max_pos[0]:.3f}, "
                         f"y={min_pos[1]:.3f}...{max_pos[1]:.3f}")
