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


""" Mesh measurements.

Bounding boxes, edge length statistics, triangle areas and connected
components.
"""

import numpy as np

import lscm.linalg as linalg
from lscm.hds import Face
from lscm.iterators import verts_bfs


def bounds(points):
    """ Axis-aligned bounding box.

    Parameters
    ----------
    points : array_like, shape (n, k)
        One point per row, any dimension `k`.

    Returns
    -------
    lo : ~numpy.ndarray, shape (k, )
        Component-wise minimum.
    hi : ~numpy.ndarray, shape (k, )
        Component-wise maximum.
    """
    points = np.asarray(points)

    return points.min(axis=0), points.max(axis=0)


def edge_length(item):
    """ Shortest, longest and mean edge length.

    Parameters
    ----------
    item : Face or Mesh
        Either the three edges of a face or all edges of a mesh are
        measured.

    Raises
    ------
    ValueError
        If there are no edges.

    Returns
    -------
    tuple(float, float, float)
        Minimum, maximum and mean edge length.
    """
    if isinstance(item, Face):
        edges = [h.edge for h in item._hiter()]
    else:
        edges = item.edges

    if not edges:
        raise ValueError('no edges')

    lengths = [e.length for e in edges]

    return min(lengths), max(lengths), sum(lengths) / len(lengths)


def face_area(face):
    """ Area of a triangle in 3-space.
    """
    h = face.halfedge
    n = linalg.cross(h.vector, h.next.vector)

    return 0.5 * linalg.norm(n)


def components(mesh):
    """ Connected components.

    Vertices connected by a path of edges share a component. Isolated
    vertices form components of their own.

    Parameters
    ----------
    mesh : Mesh
        Mesh instance.

    Returns
    -------
    list[list[int]]
        Sorted vertex indices per component. Components are ordered by
        their smallest vertex index.
    """
    seen = set()
    result = []

    for v in mesh._viter():
        if v in seen:
            continue

        component = [w for w, _ in verts_bfs(v)]
        seen.update(component)
        result.append(sorted(int(w) for w in component))

    return result
