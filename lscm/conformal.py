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


r""" Least-squares conformal maps.

Computes texture coordinates of a triangle mesh that minimize the discrete
conformal energy subject to a set of fixed (pinned) vertices. Each face is
flattened isometrically into a local 2-dimensional frame where its
conformality condition becomes a linear equation in the complex texture
coordinates :math:`w = u + iv` of its vertices,

.. math::

   \sum_{j=0}^{2} c_j \, w_j = 0.

Splitting real and imaginary parts yields an overdetermined real system in
the free vertices' coordinates that is solved in the least-squares sense.
The result is rescaled to the unit square.

Use :func:`run_lscm` for the common case:

>>> mesh = Mesh.read('input-file.obj')
>>> run_lscm(mesh)
>>> mesh.write('output-file.obj')

All transient solver state (partition indices, per-halfedge coefficients,
the raw solution) lives on the :class:`LSCM` instance, the mesh only
receives the final texture coordinates.
"""

import logging
from time import perf_counter

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import splu

import lscm.linalg as linalg
import lscm.traits as traits
from lscm.hds import MeshError, TopologyError


logger = logging.getLogger(__name__)

TOLERANCE = 1e-12
""" Default relative tolerance for degeneracy tests. """

METHODS = ('sparse', 'dense')
""" Available least-squares solvers. """


class LSCM:
    """ Conformal projection solver.

    Parameters
    ----------
    mesh : Mesh
        A triangle mesh without dangling vertices and with at least two
        fixed vertices.
    method : str, optional
        Either ``'sparse'`` (normal equations, sparse LU factorization)
        or ``'dense'`` (:func:`numpy.linalg.lstsq`).
    tol : float, optional
        Relative tolerance for degenerate faces and UV ranges.

    Attributes
    ----------
    free : ~numpy.ndarray
        Indices of free vertices, ordered by partition index.
    fixed : ~numpy.ndarray
        Indices of fixed vertices, ordered by partition index.
    index : ~numpy.ndarray
        Partition index of every vertex, an index into `free` or `fixed`
        depending on the vertex's state.
    coefficients : ~numpy.ndarray, shape (n_halfedges, 2)
        Complex conformal coefficient of each halfedge. The coefficient
        applies to the target of the halfedge's successor.
    solution : ~numpy.ndarray
        Least-squares solution, free u-coordinates followed by free
        v-coordinates.
    raw : ~numpy.ndarray, shape (n, 2)
        Texture coordinates before normalization.
    """

    def __init__(self, mesh, *, method='sparse', tol=TOLERANCE):
        if method not in METHODS:
            raise ValueError(f"invalid method '{method}', "
                             f"expected one of {METHODS}")

        self.mesh = mesh
        self.method = method
        self.tol = tol

        self.free = None
        self.fixed = None
        self.index = None
        self.coefficients = None
        self.solution = None
        self.raw = None

        self._is_fixed = None
        self._halfs = None

    def project(self):
        """ Compute and assign texture coordinates.

        The mesh's texture coordinates are only written after the solve
        and the normalization succeeded.

        Raises
        ------
        TopologyError
            If the mesh has dangling or deleted vertices.
        InsufficientFixedVerticesError
            If fewer than two vertices are fixed.
        DegenerateGeometryError
            For faces of (near) zero area or a zero UV range.
        SolveError
            If the least-squares system could not be solved.
        """
        mesh = self.mesh
        start = perf_counter()

        if any(mesh._vdel) or -1 in mesh._vhalf:
            msg = 'mesh has dangling vertices, remove them first'
            raise TopologyError(msg)

        mesh._ensure_boundary()

        self._partition()
        self._compute_coefficients()

        if len(self.free):
            a, r = self._assemble()
            x = self._solve(a, r)
        else:
            x = np.zeros(0)

        n_free = len(self.free)
        raw = mesh.uvs.copy()
        raw[self.free, 0] = x[:n_free]
        raw[self.free, 1] = x[n_free:]

        self.solution = x
        self.raw = raw

        mesh.uvs[...] = self._normalize(raw)

        logger.debug('projected %d free, %d fixed vertices (%.3f sec)',
                     n_free, len(self.fixed), perf_counter() - start)

    def _partition(self):
        """ Split vertices into free and fixed sets.
        """
        mesh = self.mesh
        fixed = np.array([v.fixed for v in mesh._viter()], dtype=bool)

        if fixed.sum() < 2:
            msg = (f'at least two fixed vertices are required, '
                   f'got {fixed.sum()}')
            raise InsufficientFixedVerticesError(msg)

        self.free = np.flatnonzero(~fixed)
        self.fixed = np.flatnonzero(fixed)

        # Two independent dense sequences, one per set.
        self.index = np.empty(len(fixed), dtype=np.int64)
        self.index[self.free] = np.arange(len(self.free))
        self.index[self.fixed] = np.arange(len(self.fixed))

        self._is_fixed = fixed

    def _face_halfedges(self):
        """ Halfedge indices of all faces, shape (F, 3).

        Column ``j`` holds the halfedge ``j`` steps ahead of the face's
        base halfedge.
        """
        mesh = self.mesh
        hnext = np.asarray(mesh._hnext, dtype=np.int64)

        h = np.empty((len(mesh._fhalf), 3), dtype=np.int64)
        h[:, 0] = mesh._fhalf
        h[:, 1] = hnext[h[:, 0]]
        h[:, 2] = hnext[h[:, 1]]

        return h

    def _compute_coefficients(self):
        """ Per-halfedge conformal coefficients.

        Each face is placed in a local frame with its first corner at the
        origin and its second corner on the positive x-axis. The third
        corner follows from the law of cosines.
        """
        mesh = self.mesh
        lengths = mesh.update_lengths()
        h = self._face_halfedges()

        hedge = np.asarray(mesh._hedge, dtype=np.int64)
        l = lengths[hedge[h]]
        l0, l1, l2 = l.T

        with np.errstate(divide='ignore', invalid='ignore'):
            cos_a = linalg.cosine_angle(l0, l2, l1)

        bad = np.any(l <= 0.0, axis=1) | ~(np.abs(cos_a) <= 1.0 + 1e-9)
        self._check_faces(bad, 'zero length edge or violated triangle '
                               'inequality')

        a = np.arccos(np.clip(cos_a, -1.0, 1.0))

        p = np.zeros((len(h), 3, 3))
        p[:, 1, 0] = l0
        p[:, 2, 0] = l2 * np.cos(a)
        p[:, 2, 1] = l2 * np.sin(a)

        n = np.cross(p[:, 1] - p[:, 0], p[:, 2] - p[:, 0])
        area = np.linalg.norm(n, axis=1) / 2.0

        bad = area <= self.tol * np.max(l, axis=1)**2
        self._check_faces(bad, 'zero area')

        n /= area[:, np.newaxis]

        # Edge vectors p[(i+1) % 3] - p[i] of the local triangle, rotated
        # by the scaled normal.
        e = np.roll(p, -1, axis=1) - p
        c = np.cross(n[:, np.newaxis, :], e)
        c /= np.sqrt(area)[:, np.newaxis, np.newaxis]

        self.coefficients = np.zeros((len(mesh._hvert), 2))
        self.coefficients[h.ravel()] = c[:, :, :2].reshape(-1, 2)

        self._halfs = h

    def _check_faces(self, bad, reason):
        if np.any(bad):
            faces = np.flatnonzero(bad)
            shown = ', '.join(str(f) for f in faces[:10])
            more = ', ...' if len(faces) > 10 else ''

            msg = f'{len(faces)} degenerate faces ({reason}): {shown}{more}'
            raise DegenerateGeometryError(msg)

    def _assemble(self):
        """ Assemble the least-squares system.

        Returns
        -------
        a : ~scipy.sparse.csr_matrix, shape (2F, 2U)
            Coefficient matrix of the free vertices.
        r : ~numpy.ndarray, shape (2F, )
            Right-hand side :math:`-B f` contributed by fixed vertices.
        """
        mesh = self.mesh
        h = self._halfs
        n_faces = len(h)

        hvert = np.asarray(mesh._hvert, dtype=np.int64)
        hnext = np.asarray(mesh._hnext, dtype=np.int64)

        verts = hvert[hnext[h]]
        rows = np.broadcast_to(np.arange(n_faces)[:, np.newaxis], h.shape)
        cols = self.index[verts]
        cx = self.coefficients[h, 0]
        cy = self.coefficients[h, 1]

        pinned = self._is_fixed[verts]
        free = ~pinned

        a = _complex_block(rows[free], cols[free], cx[free], cy[free],
                           n_faces, len(self.free))
        b = _complex_block(rows[pinned], cols[pinned], cx[pinned],
                           cy[pinned], n_faces, len(self.fixed))

        uv = mesh.uvs[self.fixed]
        f = np.concatenate((uv[:, 0], uv[:, 1]))

        return a, -(b @ f)

    def _solve(self, a, r):
        """ Least-squares solution of ``a x = r``.
        """
        n = a.shape[1]

        if self.method == 'dense':
            try:
                x, _, rank, _ = np.linalg.lstsq(a.toarray(), r, rcond=None)
            except np.linalg.LinAlgError as err:
                raise SolveError(f'least-squares solve failed: {err}') \
                    from err

            if rank < n:
                msg = f'rank deficient system (rank {rank} < {n})'
                raise SolveError(msg)
        else:
            at = a.T.tocsr()

            try:
                lu = splu((at @ a).tocsc())
            except RuntimeError as err:
                raise SolveError(f'normal equations are singular: {err}') \
                    from err

            # SuperLU only fails for exactly zero pivots, rounding usually
            # leaves tiny ones behind.
            pivots = np.abs(lu.U.diagonal())

            if pivots.min() <= self.tol * pivots.max():
                raise SolveError('normal equations are singular')

            x = lu.solve(at @ r)

        if not np.all(np.isfinite(x)):
            raise SolveError('least-squares solution is not finite')

        return x

    def _normalize(self, uv):
        """ Map the bounding box of `uv` to the unit square.
        """
        lo, hi = traits.bounds(uv)
        span = hi - lo
        scale = np.maximum(np.maximum(np.abs(lo), np.abs(hi)), 1.0)

        if np.any(span <= self.tol * scale):
            axes = ', '.join('uv'[i] for i in np.flatnonzero(
                span <= self.tol * scale))
            raise DegenerateGeometryError(f'zero texture coordinate range '
                                          f'along {axes}')

        return (uv - lo) / span


def _complex_block(rows, cols, cx, cy, n_rows, n_cols):
    r""" Real embedding of a sparse complex matrix.

    A complex entry :math:`c_x + i c_y` at position (row, col) becomes the
    block

    .. math::

       \begin{pmatrix} c_x & -c_y \\ c_y & c_x \end{pmatrix}

    at rows ``(row, n_rows + row)`` and columns ``(col, n_cols + col)``.
    """
    data = np.concatenate((cx, cx, -cy, cy))
    i = np.concatenate((rows, n_rows + rows, rows, n_rows + rows))
    j = np.concatenate((cols, n_cols + cols, n_cols + cols, cols))

    shape = (2 * n_rows, 2 * n_cols)

    return sparse.coo_matrix((data, (i, j)), shape=shape).tocsr()


def run_lscm(mesh, *, method='sparse', tol=TOLERANCE, quiet=True):
    """ Conformal texture parameterization.

    Removes dangling vertices, updates the boundary state and assigns
    texture coordinates in :math:`[0, 1]^2` to all vertices of the mesh.
    Fixed vertices serve as anchors, their prescribed texture coordinates
    are rescaled together with all others.

    Parameters
    ----------
    mesh : Mesh
        Triangle mesh with at least two fixed vertices. Modified in place.
    method : str, optional
        Least-squares solver, see :class:`LSCM`.
    tol : float, optional
        Relative tolerance for degeneracy tests.
    quiet : bool, optional
        Log at debug level only.

    Returns
    -------
    LSCM
        The solver instance holding the intermediate results.
    """
    level = logging.DEBUG if quiet else logging.INFO
    start = perf_counter()

    mesh.remove_dangling_vertices()
    mesh.update_boundary()

    count = len(traits.components(mesh))

    if count > 1:
        logger.warning('mesh has %d connected components, each one needs '
                       'two fixed vertices', count)

    solver = LSCM(mesh, method=method, tol=tol)
    solver.project()

    v, e, f = mesh.size
    logger.log(level, 'lscm: %d vertices, %d edges, %d faces (%.3f sec)',
               v, e, f, perf_counter() - start)

    return solver


class InsufficientFixedVerticesError(MeshError):
    """ Raised if fewer than two vertices are fixed.
    """

    pass


class DegenerateGeometryError(MeshError):
    """ Raised for degenerate faces and degenerate texture coordinates.
    """

    pass


class SolveError(MeshError):
    """ Raised if the least-squares system could not be solved.
    """

    pass
