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


""" Neighborhood iterators.

Thin dispatch layer over the iteration protocol of the mesh classes. Each
function accepts a :class:`~lscm.hds.Mesh` (all live items) or a single
mesh item (its neighborhood).

Around a vertex, items are visited counter-clockwise starting at the
vertex's stored halfedge. The sweep of a boundary vertex stops at the
boundary gap, it never wraps around.

Note
----
Vertex neighborhoods rely on canonical boundary halfedges. The stored
halfedges are refreshed by :meth:`~lscm.hds.Mesh.update_boundary`, which
runs on demand if faces were added since its last call.
"""

from collections import deque


def verts(obj):
    """ Vertex iterator.

    Parameters
    ----------
    obj : Vertex or Face or Mesh
        Adjacent vertices of a vertex, the three corners of a face, or
        all live vertices of a mesh in index order.

    Yields
    ------
    Vertex
    """
    return obj._viter()


def verts_bfs(item, stop=None):
    """ Breadth-first vertex traversal.

    Parameters
    ----------
    item : Vertex or Halfedge or Face
        Seed item. Its own vertices have distance zero.
    stop : int, optional
        Maximal edge distance. Unbounded if :obj:`None`, the traversal
        then covers the connected component of the seed.

    Yields
    ------
    Vertex
        Next vertex in breadth-first order.
    int
        Edge distance to the seed.
    """
    # Faces and halfedges iterate over their vertices.
    try:
        seeds = list(item)
    except TypeError:
        seeds = [item]

    dist = {v: 0 for v in seeds}
    queue = deque(seeds)

    while queue:
        v = queue.popleft()

        if stop is not None and dist[v] > stop:
            break

        yield v, dist[v]

        for w in v._viter():
            if w not in dist:
                dist[w] = dist[v] + 1
                queue.append(w)


def halfs(obj):
    """ Halfedge iterator.

    Parameters
    ----------
    obj : Vertex or Face or Mesh
        Incoming halfedges of a vertex, the loop of a face, or all
        halfedges of a mesh.

    Yields
    ------
    Halfedge
    """
    return obj._hiter()


def edges(mesh):
    """ Iterate over all edges of `mesh` in index order.
    """
    return mesh._eiter()


def faces(obj):
    """ Face iterator.

    Two faces are adjacent if they share an edge. A vertex sees the faces
    of its fan.

    Parameters
    ----------
    obj : Vertex or Face or Mesh
        Incident faces of a vertex, edge-adjacent faces of a face, or all
        faces of a mesh.

    Yields
    ------
    Face
    """
    return obj._fiter()
