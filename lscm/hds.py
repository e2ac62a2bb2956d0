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


""" Halfedge data structure.

A triangle mesh (with or without boundary) is stored as a set of arenas,
parallel containers addressed by dense integer indices:

    - vertex coordinates, texture coordinates, normals and flags,
    - halfedge records (target vertex, next, prev, edge, face),
    - edge records (one or two halfedges, cached length),
    - face records (one halfedge of the face's loop).

These containers and the relations between their items are managed by the
:class:`Mesh` class. The classes :class:`Vertex`, :class:`Halfedge`,
:class:`Edge` and :class:`Face` are lightweight handles into the arenas.

A halfedge points to its **target** vertex. The stored halfedge of a vertex
is one of its incoming halfedges. For boundary vertices it is the last
halfedge of the vertex's triangle fan, i.e., the one reached by repeatedly
taking ``h.other.prev`` until ``h.other`` is :obj:`None`. The pass that
establishes this, :meth:`Mesh.update_boundary`, runs lazily before any
query that depends on it.

Note
----
Deleted vertices stay in the arenas until :meth:`Mesh.clean` compacts
them. Vertex indices are only guaranteed to be dense after compaction.
"""

import logging
from pathlib import Path
from time import perf_counter

import numpy as np

import lscm.obj as obj
from lscm.flags import VertexFlag


logger = logging.getLogger(__name__)


def _as_rows(data, k, what):
    """ Interpret flat or 2-dimensional data as an array with `k` columns.

    Raises
    ------
    ShapeError
        If the data cannot be split into rows of length `k`.
    """
    arr = np.array(data, dtype=float)

    if arr.ndim == 1:
        if arr.size % k != 0:
            msg = f'the number of {what} values must be divisible by {k}'
            raise ShapeError(msg)

        return arr.reshape(-1, k)

    if arr.ndim != 2 or arr.shape[1] != k:
        raise ShapeError(f'{what} of shape {arr.shape} given, '
                         f'expected (n, {k})')

    return arr


class Mesh:
    """ Mesh kernel.

    The combinatorics of a mesh can be built by reading from a file, by
    converting a sequence of vertex coordinates and a sequence of face
    definitions, or incrementally via :meth:`add_vertex` and
    :meth:`add_face`.

    Parameters
    ----------
    points : array_like, optional
        Vertex coordinates, shape (n, 3) or flat with 3 values per vertex.
    faces : array_like, optional
        Triangle definitions, 0-based vertex indexing.
    uvs : array_like, optional
        Texture coordinates, shape (n, 2) or flat. Only the rows of fixed
        vertices are used by :func:`~lscm.conformal.run_lscm`.
    normals : array_like, optional
        Vertex normals. Not used by any algorithm, kept for writing.
    fixed : iterable of int or dict, optional
        Indices of fixed vertices. A dictionary maps indices to
        prescribed texture coordinates, overriding `uvs`.
    name : str, optional
        Name tag.

    Raises
    ------
    ShapeError
        If array sizes do not match.
    TopologyError
        If faces reference invalid vertices or are non-manifold.
    """

    def __init__(self, points=None, faces=None, *, uvs=None, normals=None,
                 fixed=None, name=None):
        if points is None and faces is not None:
            msg = "face definitions require 'points' argument != None"
            raise ShapeError(msg)

        points = [] if points is None else points
        self._points = _as_rows(points, 3, 'point')
        n = len(self._points)

        if uvs is None:
            self._uvs = np.zeros((n, 2))
        else:
            self._uvs = _as_rows(uvs, 2, 'uv')

            if len(self._uvs) != n:
                msg = (f'number of uvs ({len(self._uvs)}) != '
                       f'number of points ({n})')
                raise ShapeError(msg)

        if normals is None:
            self._normals = None
        else:
            self._normals = _as_rows(normals, 3, 'normal')

            if len(self._normals) != n:
                msg = (f'number of normals ({len(self._normals)}) != '
                       f'number of points ({n})')
                raise ShapeError(msg)

        # Vertex arena. A stored halfedge of -1 marks a dangling vertex.
        self._vflags = [VertexFlag(0) for _ in range(n)]
        self._vhalf = [-1] * n
        self._vdel = [False] * n

        # Halfedge arena.
        self._hvert = []
        self._hnext = []
        self._hprev = []
        self._hedge = []
        self._hface = []

        # Edge arena. The second halfedge of a boundary edge is -1. The
        # dictionary maps sorted vertex index pairs to edges.
        self._ehalf = []
        self._emap = dict()
        self._elen = None

        # Face arena.
        self._fhalf = []

        # Set whenever the combinatorics change, cleared by the boundary
        # update pass.
        self._stale = False

        if faces is not None:
            for face in faces:
                self.add_face(face)

        if fixed is not None:
            if isinstance(fixed, dict):
                items = fixed.items()
            else:
                items = ((i, None) for i in fixed)

            for i, uv in items:
                self._check_vertex_index(i)
                self._vflags[i] |= VertexFlag.FIXED

                if uv is not None:
                    self._uvs[i] = uv

        # Typically one does not expect isolated vertices in a mesh.
        if faces is not None:
            dangling = sum(1 for h in self._vhalf if h == -1)

            if dangling:
                logger.warning('%d dangling vertices', dangling)

        self.name = name

    @classmethod
    def from_buffers(cls, points, uvs, normals, indices, fixed_indices, *,
                     base=0, name=None):
        """ Build mesh from flat buffers.

        Parameters
        ----------
        points : array_like
            Vertex coordinates, 3 values per vertex.
        uvs : array_like
            Texture coordinates, 2 values per vertex. Only meaningful for
            fixed vertices.
        normals : array_like or None
            Vertex normals, 3 values per vertex.
        indices : array_like
            Vertex indices, 3 per triangle.
        fixed_indices : array_like
            Indices of fixed vertices, at least two.
        base : int, optional
            Index of the first vertex in `indices` and `fixed_indices`,
            use 1 for OBJ style indexing.
        name : str, optional
            Name tag.

        Raises
        ------
        ShapeError
            If buffer sizes do not match or less than two distinct
            fixed indices are given.
        TopologyError
            If an index is out of range.

        Returns
        -------
        Mesh
            The new mesh.
        """
        points = np.ravel(np.asarray(points, dtype=float))
        uvs = np.ravel(np.asarray(uvs, dtype=float))
        indices = np.ravel(np.asarray(indices, dtype=np.int64))

        if len(points) % 3 != 0:
            raise ShapeError('the number of points must be divisible by 3')

        if len(uvs) % 2 != 0:
            raise ShapeError('the number of uvs must be divisible by 2')

        if len(points) // 3 != len(uvs) // 2:
            msg = 'there must be 2 uv coordinates for every 3 point coordinates'
            raise ShapeError(msg)

        if normals is not None:
            normals = np.ravel(np.asarray(normals, dtype=float))

            if len(normals) != len(points):
                msg = 'there must be 3 normal coordinates for every vertex'
                raise ShapeError(msg)

        if len(indices) % 3 != 0:
            raise ShapeError('the number of indices must be divisible by 3')

        fixed = sorted({int(i) - base for i in fixed_indices})

        if len(fixed) < 2:
            msg = 'the number of distinct fixed indices must be at least 2'
            raise ShapeError(msg)

        faces = (indices - base).reshape(-1, 3).tolist()

        return cls(points, faces, uvs=uvs, normals=normals, fixed=fixed,
                   name=name)

    def __iter__(self):
        """ Face iterator.

        Yields
        ------
        Face
            Next face in insertion order traversal.
        """
        return self._fiter()

    def __copy__(self):
        raise NotImplementedError('build a new mesh from the arrays instead')

    def __bool__(self):
        return True

    @property
    def points(self):
        """ Vertex coordinate array.

        Direct read and write access to vertex coordinates. Assigning a
        new array (or a single :attr:`Vertex.point`) invalidates cached
        edge lengths. In-place edits of the array do not, call
        :meth:`update_lengths` after those.

        :type: ~numpy.ndarray
        """
        return self._points

    @points.setter
    def points(self, value):
        value = _as_rows(value, 3, 'point')

        if len(value) != len(self._points):
            raise ShapeError('cannot change the number of points')

        self._points = value
        self._elen = None

    @property
    def uvs(self):
        """ Texture coordinate array.

        One row per vertex. Overwritten by a conformal projection, the
        rows of fixed vertices serve as input.

        :type: ~numpy.ndarray
        """
        return self._uvs

    @uvs.setter
    def uvs(self, value):
        value = _as_rows(value, 2, 'uv')

        if len(value) != len(self._uvs):
            raise ShapeError('cannot change the number of uvs')

        self._uvs = value

    @property
    def normals(self):
        """ Vertex normal array or :obj:`None`.

        :type: ~numpy.ndarray
        """
        return self._normals

    @property
    def vertices(self):
        """ List of live vertices.

        :type: list[Vertex]
        """
        return list(self._viter())

    @property
    def faces(self):
        """ Face list.

        :type: list[Face]
        """
        return list(self._fiter())

    @property
    def edges(self):
        """ Edge list.

        :type: list[Edge]
        """
        return list(self._eiter())

    @property
    def halfedges(self):
        """ Halfedge list.

        :type: list[Halfedge]
        """
        return list(self._hiter())

    @property
    def fixed(self):
        """ Indices of fixed vertices.

        :type: list[int]
        """
        return [v._idx for v in self._viter() if v.fixed]

    @property
    def size(self):
        """ Mesh size.

        The attribute value :math:`(v, e, f)` holds the number of live
        vertices, the number of edges, and the number of faces.

        :type: (int, int, int)
        """
        return (self._vdel.count(False), len(self._ehalf), len(self._fhalf))

    @property
    def name(self):
        """ Name property.

        :type: str
        """
        return self._name

    @name.setter
    def name(self, value):
        self._name = value if value is None else Path(value).stem

    @classmethod
    def read(cls, filename, *, quiet=True):
        """ Read mesh from file.

        Read vertex coordinates, normals, fixed vertices and faces from
        an OBJ file. See :mod:`lscm.obj` for the fixed vertex syntax.

        Parameters
        ----------
        filename : str or path-like or text stream
            Name of an OBJ file.
        quiet : bool, optional
            Log at debug level only.

        Returns
        -------
        Mesh
            Mesh object.
        """
        level = logging.DEBUG if quiet else logging.INFO
        start = perf_counter()

        points, uvs, normals, faces, fixed = obj.read(filename)
        name = filename if isinstance(filename, (str, Path)) else None
        mesh = cls(points, faces, uvs=uvs, normals=normals,
                   fixed=list(fixed), name=name)

        logger.log(level, 'read %d vertices, %d faces, %d fixed (%.3f sec)',
                   len(points), len(faces), len(fixed),
                   perf_counter() - start)

        return mesh

    def write(self, filename, *, quiet=True, fmt='.6f'):
        """ Write mesh to file.

        Vertex coordinates, texture coordinates, normals (if present) and
        faces are written. Each face vertex refers to texture coordinates
        and normal of the same index.

        Parameters
        ----------
        filename : str or path-like or text stream
            Name of an OBJ file.
        quiet : bool, optional
            Log at debug level only.
        fmt : str, optional
            Format specification of floating point values.
        """
        level = logging.DEBUG if quiet else logging.INFO
        start = perf_counter()

        data = {'v': self._points, 'vt': self._uvs}
        has_normals = self._normals is not None

        if has_normals:
            data['vn'] = self._normals

        faces = [[(int(v), int(v), int(v) if has_normals else None)
                  for v in f] for f in self]

        obj.write(filename, f=faces, fmt=fmt, **data)

        logger.log(level, 'wrote %d vertices, %d faces (%.3f sec)',
                   len(self._points), len(faces), perf_counter() - start)

    def add_vertex(self, point, *, uv=None, normal=None, fixed=False):
        """ Create and add new vertex.

        Parameters
        ----------
        point : array_like, shape (3, )
            Vertex coordinates.
        uv : array_like, shape (2, ), optional
            Texture coordinates, prescribed value for fixed vertices.
        normal : array_like, shape (3, ), optional
            Vertex normal.
        fixed : bool, optional
            Mark the vertex as fixed.

        Raises
        ------
        ShapeError
            If any argument has the wrong shape.

        Returns
        -------
        Vertex
            The newly created :class:`Vertex` instance.
        """
        point = np.asarray(point, dtype=float)
        uv = np.zeros(2) if uv is None else np.asarray(uv, dtype=float)

        if point.shape != (3, ):
            raise ShapeError(f'point of shape {point.shape} given')

        if uv.shape != (2, ):
            raise ShapeError(f'uv of shape {uv.shape} given')

        if normal is not None:
            normal = np.asarray(normal, dtype=float)

            if normal.shape != (3, ):
                raise ShapeError(f'normal of shape {normal.shape} given')

            if self._normals is None:
                self._normals = np.zeros_like(self._points)

        if self._normals is not None:
            normal = np.zeros(3) if normal is None else normal
            self._normals = obj._array_append(self._normals, normal)

        self._points = obj._array_append(self._points, point)
        self._uvs = obj._array_append(self._uvs, uv)

        self._vflags.append(VertexFlag.FIXED if fixed else VertexFlag(0))
        self._vhalf.append(-1)
        self._vdel.append(False)

        return Vertex(self, len(self._vhalf) - 1)

    def add_face(self, face, *args):
        """ Create and add new triangle.

        Vertex identifiers used in the definition of a face have to
        refer to existing vertices of the mesh.

        Parameters
        ----------
        face : list[int] or list[Vertex]
            Combinatorial face definition.
        *args
            Variable number of :class:`Vertex` or :class:`int` arguments.

        Raises
        ------
        ShapeError
            If the face is not a triangle.
        TopologyError
            If vertex indices are out of range, duplicated, or the new
            face would create a non-manifold or inconsistently oriented
            edge.

        Returns
        -------
        Face
            The newly created :class:`Face` instance.
        """
        face = [face, *args] if len(args) else face
        face = [int(v) for v in face]

        if len(face) != 3:
            raise ShapeError(f'triangular face required, got {len(face)} '
                             'vertices')

        for v in face:
            self._check_vertex_index(v)

        if len(set(face)) != 3:
            raise TopologyError(f'face {face} contains duplicate vertices')

        # Dry run. Halfedge k runs from face[k - 1] to face[k]. Nothing is
        # modified before all edges passed the manifold tests.
        for k in range(3):
            a, b = face[k - 1], face[k]
            e = self._emap.get((min(a, b), max(a, b)))

            if e is None:
                continue

            h0, h1 = self._ehalf[e]

            if h1 != -1:
                raise TopologyError(f'edge ({a}, {b}) is non-manifold')

            if self._hvert[h0] == b:
                msg = f'edge ({a}, {b}) has inconsistent orientation'
                raise TopologyError(msg)

        f = len(self._fhalf)
        base = len(self._hvert)

        for k in range(3):
            h = base + k

            self._hvert.append(face[k])
            self._hnext.append(base + (k + 1) % 3)
            self._hprev.append(base + (k + 2) % 3)
            self._hface.append(f)

            # Last halfedge visited wins. The boundary update pass
            # replaces this value for boundary vertices.
            self._vhalf[face[k]] = h

            a, b = face[k - 1], face[k]
            key = (min(a, b), max(a, b))
            e = self._emap.get(key)

            if e is None:
                e = len(self._ehalf)
                self._emap[key] = e
                self._ehalf.append([h, -1])
            else:
                self._ehalf[e][1] = h

            self._hedge.append(e)

        self._fhalf.append(base)
        self._elen = None
        self._stale = True

        return Face(self, f)

    def delete_vertex(self, vertex):
        """ Mark isolated vertex as deleted.

        The vertex slot is kept until the next call of :meth:`clean`.

        Parameters
        ----------
        vertex : Vertex or int
            An isolated vertex.

        Raises
        ------
        TopologyError
            If the vertex is not isolated.
        """
        i = int(vertex)
        self._check_vertex_index(i)

        if self._vhalf[i] != -1:
            raise TopologyError(f'vertex #{i} is not isolated')

        self._vdel[i] = True

    def remove_dangling_vertices(self):
        """ Remove vertices that are not referenced by any face.

        All dangling vertices are marked as deleted, then the vertex
        arenas are compacted by :meth:`clean`. Previously obtained vertex
        indices may become invalid.

        Returns
        -------
        int
            Number of removed vertices.
        """
        count = 0

        for i, h in enumerate(self._vhalf):
            if h == -1 and not self._vdel[i]:
                self._vdel[i] = True
                count += 1

        if any(self._vdel):
            self.clean()

        if count:
            logger.debug('removed %d dangling vertices', count)

        return count

    def clean(self):
        """ Garbage collection.

        Removes all deleted vertices from the vertex arenas, preserving
        the relative order of the remaining vertices, and renumbers
        vertex indices densely. Halfedge targets and edge keys are
        remapped accordingly.
        """
        keep = [i for i, d in enumerate(self._vdel) if not d]

        remap = np.full(len(self._vdel), -1, dtype=np.int64)
        remap[keep] = np.arange(len(keep))

        self._points = self._points[keep]
        self._uvs = self._uvs[keep]

        if self._normals is not None:
            self._normals = self._normals[keep]

        self._vflags = [self._vflags[i] for i in keep]
        self._vhalf = [self._vhalf[i] for i in keep]
        self._vdel = [False] * len(keep)

        # Deleted vertices are isolated, hence no halfedge refers to them
        # and the remapped target is never -1.
        self._hvert = [int(remap[v]) for v in self._hvert]

        self._emap = dict()

        for e, (h0, _) in enumerate(self._ehalf):
            a, b = self._hvert[h0], self._hvert[self._hprev[h0]]
            self._emap[min(a, b), max(a, b)] = e

    def update_boundary(self):
        """ Detect boundary vertices and canonicalize their halfedges.

        For every edge with a single halfedge, both its vertices are
        flagged as boundary vertices. Their stored halfedge becomes the
        counter-clockwise end of the open fan that contains the edge.

        Raises
        ------
        TopologyError
            If the halfedge links around a boundary vertex form a cycle.
        """
        for i in range(len(self._vflags)):
            self._vflags[i] &= ~VertexFlag.BOUNDARY

        # The rotation starts at an incoming halfedge of the boundary
        # edge's own face, so it walks an open fan even at a vertex where
        # a closed fan meets an open one.
        for h0, h1 in self._ehalf:
            if h1 == -1:
                for h in (h0, self._hprev[h0]):
                    v = self._hvert[h]
                    self._vflags[v] |= VertexFlag.BOUNDARY
                    self._rotate_ccw(v, h)

        self._stale = False

    def update_lengths(self):
        """ Recompute edge lengths from current vertex coordinates.

        Returns
        -------
        ~numpy.ndarray
            Edge length array, indexed by edge.
        """
        if not self._ehalf:
            self._elen = np.zeros(0)
            return self._elen

        hvert = np.asarray(self._hvert)
        h0 = np.array([h for h, _ in self._ehalf])
        src = hvert[np.asarray(self._hprev)[h0]]
        tgt = hvert[h0]

        self._elen = np.linalg.norm(self._points[tgt] - self._points[src],
                                    axis=1)

        return self._elen

    def _check_vertex_index(self, i):
        if not 0 <= i < len(self._vhalf) or self._vdel[i]:
            raise TopologyError(f'vertex index {i} out of range')

    def _ensure_boundary(self):
        if self._stale:
            self.update_boundary()

    def _other(self, h):
        """ Index of the sibling halfedge or -1.
        """
        h0, h1 = self._ehalf[self._hedge[h]]
        return h1 if h0 == h else h0

    def _rotate_ccw(self, v, start):
        """ Store the end of the fan of `v` that contains `start`.
        """
        h = start

        while True:
            o = self._other(h)

            if o == -1:
                break

            h = self._hprev[o]

            if h == start:
                raise TopologyError(f'vertex #{v} has a closed fan')

        self._vhalf[v] = h

    def _check(self):
        """ Perform sanity checks.
        """
        for f, h in enumerate(self._fhalf):
            assert self._hface[h] == f
            assert self._hnext[self._hnext[self._hnext[h]]] == h

        for h, e in enumerate(self._hedge):
            assert h in self._ehalf[e]
            assert self._hprev[self._hnext[h]] == h

        for v, h in enumerate(self._vhalf):
            assert h == -1 or self._hvert[h] == v

    def _viter(self):
        return (Vertex(self, i) for i, d in enumerate(self._vdel) if not d)

    def _fiter(self):
        return (Face(self, f) for f in range(len(self._fhalf)))

    def _hiter(self):
        return (Halfedge(self, h) for h in range(len(self._hvert)))

    def _eiter(self):
        return (Edge(self, e) for e in range(len(self._ehalf)))


class _Handle:
    """ Mesh item handle base class.

    A handle is a pair of a mesh and an index into one of its arenas.
    Handles compare equal if they refer to the same item of the same
    mesh. Handles can be used as list and array indices.
    """

    __slots__ = ('_mesh', '_idx')

    def __init__(self, mesh, index):
        self._mesh = mesh
        self._idx = index

    def __repr__(self):
        return f'{type(self).__name__}({self._idx})'

    def __eq__(self, other):
        return (type(self) is type(other) and self._mesh is other._mesh
                and self._idx == other._idx)

    def __hash__(self):
        return hash((type(self).__name__, id(self._mesh), self._idx))

    def __index__(self):
        return self._idx

    def __int__(self):
        return self._idx

    def __bool__(self):
        return True

    @property
    def index(self):
        """ Position of the item in its arena.

        :type: int
        """
        return self._idx


class Vertex(_Handle):
    """ Vertex handle.

    Parameters
    ----------
    mesh : Mesh
        The parent mesh.
    index : int
        Vertex index.
    """

    __slots__ = ()

    def __str__(self):
        return f'v {self._idx} {self.point} {self.flags}'

    @property
    def id(self):
        """ Vertex id, same as :attr:`index`.

        Dense in ``range(n)`` after :meth:`Mesh.clean`.

        :type: int
        """
        return self._idx

    @property
    def point(self):
        """ Vertex coordinates.

        View of the row of the parent mesh's coordinate array. Adding
        vertices or compacting the mesh replaces that array, earlier views
        keep their values but no longer track the mesh.

        :type: ~numpy.ndarray
        """
        return self._mesh._points[self._idx]

    @point.setter
    def point(self, value):
        self._mesh._points[self._idx] = value
        self._mesh._elen = None

    @property
    def uv(self):
        """ Texture coordinates.

        View of the row of the parent mesh's texture coordinate array,
        see :attr:`point`.

        :type: ~numpy.ndarray
        """
        return self._mesh._uvs[self._idx]

    @uv.setter
    def uv(self, value):
        self._mesh._uvs[self._idx] = value

    @property
    def normal(self):
        """ Vertex normal or :obj:`None` if the mesh has no normals.

        :type: ~numpy.ndarray
        """
        if self._mesh._normals is None:
            return None

        return self._mesh._normals[self._idx]

    @property
    def flags(self):
        """ Vertex flags.

        :type: VertexFlag
        """
        return self._mesh._vflags[self._idx]

    @property
    def fixed(self):
        """ Fixed state.

        :type: bool
        """
        return VertexFlag.FIXED in self._mesh._vflags[self._idx]

    @fixed.setter
    def fixed(self, value):
        if value:
            self._mesh._vflags[self._idx] |= VertexFlag.FIXED
        else:
            self._mesh._vflags[self._idx] &= ~VertexFlag.FIXED

    @property
    def boundary(self):
        """ Topological state.

        A vertex is a boundary vertex if it is incident to an edge with
        a single halfedge.

        :type: bool
        """
        self._mesh._ensure_boundary()
        return VertexFlag.BOUNDARY in self._mesh._vflags[self._idx]

    @property
    def halfedge(self):
        """ Stored incoming halfedge.

        The most counter-clockwise incoming halfedge for boundary vertices,
        :obj:`None` for isolated vertices.

        :type: Halfedge
        """
        self._mesh._ensure_boundary()
        h = self._mesh._vhalf[self._idx]

        return None if h == -1 else Halfedge(self._mesh, h)

    @property
    def isolated(self):
        """ Topological state.

        :obj:`True` if no face references the vertex (a dangling vertex).

        :type: bool
        """
        return self._mesh._vhalf[self._idx] == -1

    @property
    def deleted(self):
        """ Marked for removal by the next :meth:`Mesh.clean`.

        :type: bool
        """
        return self._mesh._vdel[self._idx]

    @property
    def valence(self):
        """ Number of adjacent vertices.

        :type: int
        """
        return sum(1 for _ in self._viter())

    def _hiter(self):
        """ Incoming halfedge iterator.

        A single sweep around the vertex starting at its stored halfedge.
        For boundary vertices the sweep ends at the boundary gap.
        """
        mesh = self._mesh
        mesh._ensure_boundary()

        start = h = mesh._vhalf[self._idx]

        if h == -1:
            return

        while True:
            yield Halfedge(mesh, h)
            h = mesh._other(mesh._hnext[h])

            if h == -1 or h == start:
                return

    def _fiter(self):
        """ Incident face iterator.
        """
        return (h.face for h in self._hiter())

    def _viter(self):
        """ Adjacent vertex iterator.
        """
        last = None

        for h in self._hiter():
            yield h.source
            last = h

        # The outgoing boundary halfedge at the end of an open fan leads
        # to one more neighbor.
        if last is not None and last.next.other is None:
            yield last.next.target


class Halfedge(_Handle):
    """ Halfedge handle.

    A halfedge belongs to one face and one edge and points to its target
    vertex. Successor and predecessor refer to the next and previous
    halfedge in the face's loop.

    Parameters
    ----------
    mesh : Mesh
        The parent mesh.
    index : int
        Halfedge index.
    """

    __slots__ = ()

    def __str__(self):
        return f'h ({self.source._idx}, {self.target._idx})'

    def __iter__(self):
        yield self.source
        yield self.target

    @property
    def vertex(self):
        """ Target vertex, same as :attr:`target`.

        :type: Vertex
        """
        return Vertex(self._mesh, self._mesh._hvert[self._idx])

    @property
    def target(self):
        """ Halfedge target vertex.

        :type: Vertex
        """
        return Vertex(self._mesh, self._mesh._hvert[self._idx])

    @property
    def source(self):
        """ Halfedge source vertex, the target of :attr:`prev`.

        :type: Vertex
        """
        mesh = self._mesh
        return Vertex(mesh, mesh._hvert[mesh._hprev[self._idx]])

    @property
    def vector(self):
        """ Halfedge direction vector.

        :type: ~numpy.ndarray
        """
        return self.target.point - self.source.point

    @property
    def next(self):
        """ Successor halfedge.

        :type: Halfedge
        """
        return Halfedge(self._mesh, self._mesh._hnext[self._idx])

    @property
    def prev(self):
        """ Predecessor halfedge.

        :type: Halfedge
        """
        return Halfedge(self._mesh, self._mesh._hprev[self._idx])

    @property
    def other(self):
        """ Sibling halfedge of the same edge.

        :obj:`None` for a boundary edge.

        :type: Halfedge
        """
        h = self._mesh._other(self._idx)
        return None if h == -1 else Halfedge(self._mesh, h)

    @property
    def edge(self):
        """ Edge the halfedge belongs to.

        :type: Edge
        """
        return Edge(self._mesh, self._mesh._hedge[self._idx])

    @property
    def face(self):
        """ Face the halfedge belongs to.

        :type: Face
        """
        return Face(self._mesh, self._mesh._hface[self._idx])

    @property
    def boundary(self):
        """ :obj:`True` if the halfedge has no sibling.

        :type: bool
        """
        return self._mesh._other(self._idx) == -1


class Edge(_Handle):
    """ Edge handle.

    An unordered pair of at most two halfedges.

    Parameters
    ----------
    mesh : Mesh
        The parent mesh.
    index : int
        Edge index.
    """

    __slots__ = ()

    def __iter__(self):
        return iter(Halfedge(self._mesh, self._mesh._ehalf[self._idx][0]))

    @property
    def halfedges(self):
        """ The one or two halfedges of the edge.

        :type: tuple(Halfedge, ...)
        """
        return tuple(Halfedge(self._mesh, h)
                     for h in self._mesh._ehalf[self._idx] if h != -1)

    @property
    def boundary(self):
        """ :obj:`True` for edges with a single halfedge.

        :type: bool
        """
        return self._mesh._ehalf[self._idx][1] == -1

    @property
    def length(self):
        """ Cached edge length.

        Valid after :meth:`Mesh.update_lengths`, which is called on first
        access after the combinatorics changed.

        :type: float
        """
        if self._mesh._elen is None:
            self._mesh.update_lengths()

        return float(self._mesh._elen[self._idx])


class Face(_Handle):
    """ Face handle.

    A triangle defined by the loop of halfedges starting at
    :attr:`halfedge`.

    Parameters
    ----------
    mesh : Mesh
        The parent mesh.
    index : int
        Face index.


    The vertices of a face are visited in the order of its definition:

    .. code-block:: python

        for v in face:
            print(v.point)
    """

    __slots__ = ()

    def __str__(self):
        return f'f {self._idx} {[int(v) for v in self]}'

    def __len__(self):
        return 3

    def __contains__(self, item):
        return (item in self._viter()) or (item in self._hiter())

    def __iter__(self):
        """ Vertex iterator.

        Yields
        ------
        Vertex
            Next vertex in counter-clockwise traversal.
        """
        return self._viter()

    @property
    def halfedge(self):
        """ Base halfedge, targets the first vertex of the face.

        :type: Halfedge
        """
        return Halfedge(self._mesh, self._mesh._fhalf[self._idx])

    @property
    def halfedges(self):
        """ The three halfedges of the face loop.

        :type: list[Halfedge]
        """
        return list(self._hiter())

    def _hiter(self):
        mesh = self._mesh
        h = start = mesh._fhalf[self._idx]

        while True:
            yield Halfedge(mesh, h)
            h = mesh._hnext[h]

            if h == start:
                return

    def _viter(self):
        return (h.target for h in self._hiter())

    def _fiter(self):
        """ Edge-adjacent face iterator.
        """
        for h in self._hiter():
            other = h.other

            if other is not None:
                yield other.face


class MeshError(Exception):
    """ Mesh exception base class.
    """

    pass


class ShapeError(MeshError, ValueError):
    """ Raised for malformed input array sizes.
    """

    pass


class TopologyError(MeshError, IndexError):
    """ Raised for invalid vertex references and broken halfedge structure.
    """

    pass
