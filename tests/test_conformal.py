import unittest

import numpy as np

from lscm.conformal import (LSCM, DegenerateGeometryError,
                            InsufficientFixedVerticesError, SolveError,
                            run_lscm)
from lscm.hds import Mesh, MeshError, TopologyError


SQUARE_POINTS = np.array(
    [
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [1.0, 1.0, 0.0],
        [0.0, 1.0, 0.0],
    ]
)
SQUARE_FACES = [[0, 1, 2], [0, 2, 3]]


def grid(n=3, height=None):
    """ Planar n x n grid over [0, n-1]^2, optionally displaced in z.
    """
    points = []

    for y in range(n):
        for x in range(n):
            z = 0.0 if height is None else height(x, y)
            points.append([float(x), float(y), z])

    faces = []

    for y in range(n - 1):
        for x in range(n - 1):
            a = y * n + x
            b, c, d = a + 1, a + n + 1, a + n
            faces.append([a, b, c])
            faces.append([a, c, d])

    return np.array(points), faces


def rotation(axis, angle):
    axis = np.asarray(axis, dtype=float)
    axis /= np.linalg.norm(axis)
    x, y, z = axis
    k = np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])

    return np.eye(3) + np.sin(angle) * k + (1 - np.cos(angle)) * k @ k


class TestSquare(unittest.TestCase):
    def test_flat_square_is_reproduced(self):
        mesh = Mesh(SQUARE_POINTS, SQUARE_FACES,
                    fixed={0: (0.0, 0.0), 2: (1.0, 1.0)})

        run_lscm(mesh)

        np.testing.assert_allclose(mesh.uvs, SQUARE_POINTS[:, :2],
                                   atol=1e-9)

    def test_flat_square_from_buffers(self):
        mesh = Mesh.from_buffers(
            SQUARE_POINTS.ravel(),
            [0.0, 0.0, 0.0, 0.0, 1.0, 1.0, 0.0, 0.0],
            np.tile([0.0, 0.0, 1.0], 4),
            [1, 2, 3, 1, 3, 4],
            [1, 3],
            base=1,
        )

        run_lscm(mesh, method='dense')

        np.testing.assert_allclose(mesh.uvs[1], [1.0, 0.0], atol=1e-9)
        np.testing.assert_allclose(mesh.uvs[3], [0.0, 1.0], atol=1e-9)

    def test_coefficients_annihilate_planar_coordinates(self):
        mesh = Mesh(SQUARE_POINTS, SQUARE_FACES,
                    fixed={0: (0.0, 0.0), 2: (1.0, 1.0)})
        solver = run_lscm(mesh)

        for f in mesh:
            total = 0j

            for h in f.halfedges:
                cx, cy = solver.coefficients[int(h)]
                u, v = SQUARE_POINTS[int(h.next.target), :2]
                total += complex(cx, cy) * complex(u, v)

            self.assertAlmostEqual(abs(total), 0.0, places=12)

    def test_solver_does_not_store_state_on_mesh(self):
        mesh = Mesh(SQUARE_POINTS, SQUARE_FACES,
                    fixed={0: (0.0, 0.0), 2: (1.0, 1.0)})

        first = run_lscm(mesh).raw.copy()
        second = run_lscm(mesh).raw

        np.testing.assert_allclose(first, second, atol=1e-12)


class TestGrid(unittest.TestCase):
    def setUp(self):
        self.points, self.faces = grid()
        self.pins = {0: (0.0, 0.0), 8: (1.0, 1.0)}

    def test_planar_grid_is_similar_to_input(self):
        mesh = Mesh(self.points, self.faces, fixed=self.pins)

        run_lscm(mesh)

        np.testing.assert_allclose(mesh.uvs, self.points[:, :2] / 2.0,
                                   atol=1e-9)

    def test_result_is_invariant_under_rigid_motion(self):
        r = rotation([1.0, 2.0, 3.0], 0.7)
        moved = self.points @ r.T + [3.0, -1.0, 2.0]

        mesh = Mesh(moved, self.faces, fixed=self.pins)
        run_lscm(mesh)

        np.testing.assert_allclose(mesh.uvs, self.points[:, :2] / 2.0,
                                   atol=1e-9)

    def test_sparse_and_dense_solvers_agree(self):
        points, faces = grid(4, height=lambda x, y: 0.3 * np.sin(x) * y)
        pins = {0: (0.0, 0.0), 15: (1.0, 1.0)}

        sparse = Mesh(points, faces, fixed=pins)
        dense = Mesh(points, faces, fixed=pins)

        run_lscm(sparse, method='sparse')
        run_lscm(dense, method='dense')

        np.testing.assert_allclose(sparse.uvs, dense.uvs, atol=1e-8)

    def test_partition_indices(self):
        mesh = Mesh(self.points, self.faces, fixed=self.pins)
        solver = run_lscm(mesh)

        free = [v.id for v in mesh.vertices if not v.fixed]
        fixed = [v.id for v in mesh.vertices if v.fixed]

        self.assertEqual(sorted(solver.index[free]), list(range(7)))
        self.assertEqual(sorted(solver.index[fixed]), [0, 1])
        np.testing.assert_array_equal(solver.free, free)
        np.testing.assert_array_equal(solver.fixed, fixed)
        self.assertEqual(solver.solution.shape, (14, ))

    def test_fixed_vertices_keep_uvs_before_normalization(self):
        pins = {0: (0.25, 0.5), 8: (0.75, 1.5)}
        mesh = Mesh(self.points, self.faces, fixed=pins)
        solver = run_lscm(mesh)

        np.testing.assert_array_equal(solver.raw[0], [0.25, 0.5])
        np.testing.assert_array_equal(solver.raw[8], [0.75, 1.5])

        # The similarity through both pins maps the grid corners to
        # (0.25, 0.5), (1, 0.75), (0, 1.25) and (0.75, 1.5). Normalization
        # rescales fixed vertices along with all others.
        np.testing.assert_allclose(mesh.uvs[0], [0.25, 0.0], atol=1e-9)
        np.testing.assert_allclose(mesh.uvs[8], [0.75, 1.0], atol=1e-9)

    def test_curved_surface_is_normalized(self):
        points, faces = grid(5, height=lambda x, y: 0.2 * (x - 2)**2)
        mesh = Mesh(points, faces, fixed=[0, 24])
        mesh.uvs[24] = [1.0, 1.0]

        run_lscm(mesh)

        self.assertTrue(np.isfinite(mesh.uvs).all())
        np.testing.assert_allclose(mesh.uvs.min(axis=0), [0.0, 0.0],
                                   atol=1e-12)
        np.testing.assert_allclose(mesh.uvs.max(axis=0), [1.0, 1.0],
                                   atol=1e-12)

    def test_dangling_vertices_are_removed_before_solving(self):
        points = np.vstack((self.points, [[9.0, 9.0, 9.0]]))
        mesh = Mesh(points, self.faces, fixed=self.pins)

        solver = run_lscm(mesh)

        self.assertEqual(len(mesh.points), 9)
        self.assertEqual(len(solver.index), 9)
        np.testing.assert_allclose(mesh.uvs, self.points[:, :2] / 2.0,
                                   atol=1e-9)


class TestErrors(unittest.TestCase):
    def test_insufficient_fixed_vertices(self):
        mesh = Mesh(SQUARE_POINTS, SQUARE_FACES, fixed=[0])

        with self.assertRaises(InsufficientFixedVerticesError):
            run_lscm(mesh)

    def test_dangling_fixed_vertex_does_not_count(self):
        points = np.vstack((SQUARE_POINTS, [[2.0, 2.0, 0.0]]))
        mesh = Mesh(points, SQUARE_FACES, fixed=[0, 4])

        with self.assertRaises(InsufficientFixedVerticesError):
            run_lscm(mesh)

    def test_zero_area_face(self):
        points = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0],
                  [0.0, 1.0, 0.0]]
        mesh = Mesh(points, [[0, 1, 2], [0, 2, 3]], fixed=[1, 3])
        mesh.uvs[3] = [1.0, 1.0]
        before = mesh.uvs.copy()

        with self.assertRaises(DegenerateGeometryError):
            run_lscm(mesh)

        np.testing.assert_array_equal(mesh.uvs, before)

    def test_zero_length_edge(self):
        points = [[0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [1.0, 0.0, 0.0],
                  [0.0, 1.0, 0.0]]
        mesh = Mesh(points, [[0, 1, 2], [0, 2, 3]], fixed=[2, 3])

        with self.assertRaises(DegenerateGeometryError):
            run_lscm(mesh)

    def test_zero_uv_range(self):
        mesh = Mesh(SQUARE_POINTS[:3], [[0, 1, 2]],
                    fixed={0: (0.0, 0.0), 1: (1.0, 0.0), 2: (2.0, 0.0)})
        before = mesh.uvs.copy()

        with self.assertRaises(DegenerateGeometryError):
            run_lscm(mesh)

        np.testing.assert_array_equal(mesh.uvs, before)

    def test_all_vertices_fixed(self):
        mesh = Mesh(SQUARE_POINTS[:3], [[0, 1, 2]],
                    fixed={0: (0.0, 0.0), 1: (2.0, 0.0), 2: (2.0, 4.0)})

        run_lscm(mesh)

        np.testing.assert_allclose(mesh.uvs, [[0, 0], [1, 0], [1, 1]])

    def test_singular_system(self):
        points = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0],
                  [3.0, 0.0, 0.0], [4.0, 0.0, 0.0], [3.0, 1.0, 0.0]]
        faces = [[0, 1, 2], [3, 4, 5]]

        for method in ('sparse', 'dense'):
            with self.subTest(method=method):
                mesh = Mesh(points, faces, fixed={0: (0, 0), 1: (1, 0)})
                before = mesh.uvs.copy()

                with self.assertRaises(SolveError):
                    run_lscm(mesh, method=method)

                np.testing.assert_array_equal(mesh.uvs, before)

    def test_errors_share_base_class(self):
        mesh = Mesh(SQUARE_POINTS, SQUARE_FACES, fixed=[0])

        with self.assertRaises(MeshError):
            run_lscm(mesh)

    def test_project_requires_compacted_mesh(self):
        points = np.vstack((SQUARE_POINTS, [[2.0, 2.0, 0.0]]))
        mesh = Mesh(points, SQUARE_FACES, fixed=[0, 2])

        with self.assertRaises(TopologyError):
            LSCM(mesh).project()

    def test_invalid_method(self):
        mesh = Mesh(SQUARE_POINTS, SQUARE_FACES, fixed=[0, 2])

        with self.assertRaises(ValueError):
            LSCM(mesh, method='qr')


if __name__ == '__main__':
    unittest.main()
