# Copyright 2024, m3shware
#
# Permission is hereby granted, free of charge, to any person obtaining a
# copy of this software and associated documentation files (the "Software"),
# to deal in the Software without restriction, including without limitation
# the rights to use, copy, modify, merge, publish, distribute, sublicense,
# and/or sell copies of the Software, and to permit persons to whom the
# Software is furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING
# FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS
# IN THE SOFTWARE.


""" Small vector helpers.

Scalar-loop versions of a few NumPy routines for single 2- or
3-dimensional vectors, where the overhead of the general NumPy functions
dominates. :func:`cosine_angle` also accepts arrays of side lengths.
"""

import math
import numpy as np


def cross(u, v):
    """ Cross product of two 3-vectors.

    Raises
    ------
    ValueError
        If an argument does not have exactly three components.
    """
    x0, x1, x2 = u
    y0, y1, y2 = v

    return np.array([x1*y2 - x2*y1, x2*y0 - x0*y2, x0*y1 - x1*y0])


def norm(u):
    """ Euclidean length of a vector.

    Parameters
    ----------
    u : ~numpy.ndarray, shape (n, )
        Input vector.

    Returns
    -------
    float
    """
    return math.sqrt(u.dot(u))


def divide(u, s):
    """ Divide `u` by `s` in place and return it.

    No check for division by zero is performed.
    """
    u /= s
    return u


def clamp(x, lo, hi):
    """ Restrict `x` to the interval [`lo`, `hi`].
    """
    assert lo <= hi

    return min(max(x, lo), hi)


def cosine_angle(a, b, c):
    r""" Law of cosines.

    Cosine of the angle enclosed by the sides of length `a` and `b` of a
    triangle whose third side has length `c`,

    .. math::

       \cos(\gamma) = \frac{a^2 + b^2 - c^2}{2ab}.

    Parameters
    ----------
    a, b : float or ~numpy.ndarray
        Lengths of the sides adjacent to the angle.
    c : float or ~numpy.ndarray
        Length of the opposite side.

    Returns
    -------
    float or ~numpy.ndarray
        Unclamped cosine value. Rounding may push it slightly outside
        of [-1, 1] for nearly degenerate triangles.
    """
    return (a*a + b*b - c*c) / (2.0 * a * b)
