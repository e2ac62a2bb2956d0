import math
import unittest

import numpy as np

import lscm.linalg as linalg
import lscm.traits as traits
from lscm.hds import Face, Mesh, Vertex
from lscm.iterators import edges, faces, halfs, verts, verts_bfs


SQUARE_POINTS = np.array(
    [
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [1.0, 1.0, 0.0],
        [0.0, 1.0, 0.0],
    ]
)
SQUARE_FACES = [[0, 1, 2], [0, 2, 3]]


class TestLinalg(unittest.TestCase):
    def test_cross(self):
        np.testing.assert_array_equal(linalg.cross([1, 0, 0], [0, 1, 0]),
                                      [0, 0, 1])

        with self.assertRaises(ValueError):
            linalg.cross([1, 0], [0, 1, 0])

    def test_norm_and_divide(self):
        u = np.array([3.0, 4.0])

        self.assertEqual(linalg.norm(u), 5.0)

        result = linalg.divide(u, 5.0)

        self.assertIs(result, u)
        np.testing.assert_allclose(u, [0.6, 0.8])

    def test_clamp(self):
        self.assertEqual(linalg.clamp(2.0, -1.0, 1.0), 1.0)
        self.assertEqual(linalg.clamp(-2.0, -1.0, 1.0), -1.0)
        self.assertEqual(linalg.clamp(0.5, -1.0, 1.0), 0.5)

    def test_cosine_angle(self):
        self.assertAlmostEqual(linalg.cosine_angle(3.0, 4.0, 5.0), 0.0)
        self.assertAlmostEqual(linalg.cosine_angle(1.0, 1.0, 1.0), 0.5)

        # Vectorized over arrays of side lengths.
        c = linalg.cosine_angle(np.ones(2), np.ones(2), np.array([0.0, 2.0]))
        np.testing.assert_allclose(c, [1.0, -1.0])


class TestIterators(unittest.TestCase):
    def setUp(self):
        self.mesh = Mesh(SQUARE_POINTS, SQUARE_FACES)

    def test_mesh_iterators(self):
        mesh = self.mesh

        self.assertEqual([int(v) for v in verts(mesh)], [0, 1, 2, 3])
        self.assertEqual(len(list(halfs(mesh))), 6)
        self.assertEqual(len(list(edges(mesh))), 5)
        self.assertEqual([int(f) for f in faces(mesh)], [0, 1])

    def test_vertex_neighborhood(self):
        v = Vertex(self.mesh, 0)

        self.assertEqual(sorted(int(w) for w in verts(v)), [1, 2, 3])
        self.assertEqual(sorted(int(f) for f in faces(v)), [0, 1])

        for h in halfs(v):
            self.assertEqual(h.target, v)

    def test_face_neighborhood(self):
        f = Face(self.mesh, 0)

        self.assertEqual([int(v) for v in verts(f)], [0, 1, 2])
        self.assertEqual([int(g) for g in faces(f)], [1])
        self.assertEqual(len(list(halfs(f))), 3)

    def test_breadth_first(self):
        v = Vertex(self.mesh, 1)
        visited = {int(w): d for w, d in verts_bfs(v)}

        self.assertEqual(visited, {1: 0, 0: 1, 2: 1, 3: 2})
        self.assertEqual([int(w) for w, _ in verts_bfs(v, stop=0)], [1])

    def test_breadth_first_from_face(self):
        f = Face(self.mesh, 1)
        visited = {int(w): d for w, d in verts_bfs(f)}

        self.assertEqual(visited, {0: 0, 2: 0, 3: 0, 1: 1})


class TestTraits(unittest.TestCase):
    def test_bounds(self):
        lo, hi = traits.bounds([[0.0, 2.0], [1.0, -1.0], [0.5, 0.5]])

        np.testing.assert_array_equal(lo, [0.0, -1.0])
        np.testing.assert_array_equal(hi, [1.0, 2.0])

    def test_edge_length(self):
        mesh = Mesh(SQUARE_POINTS, SQUARE_FACES)
        lo, hi, avg = traits.edge_length(mesh)

        self.assertAlmostEqual(lo, 1.0)
        self.assertAlmostEqual(hi, math.sqrt(2.0))
        self.assertAlmostEqual(avg, (4.0 + math.sqrt(2.0)) / 5.0)

        lo, hi, _ = traits.edge_length(Face(mesh, 0))

        self.assertAlmostEqual(lo, 1.0)
        self.assertAlmostEqual(hi, math.sqrt(2.0))

    def test_edge_length_without_edges(self):
        with self.assertRaises(ValueError):
            traits.edge_length(Mesh(SQUARE_POINTS))

    def test_face_area(self):
        mesh = Mesh(SQUARE_POINTS * 2.0, SQUARE_FACES)

        for f in mesh.faces:
            self.assertAlmostEqual(traits.face_area(f), 2.0)

    def test_components(self):
        points = np.vstack((SQUARE_POINTS, SQUARE_POINTS[:3] + 5.0))
        mesh = Mesh(points, SQUARE_FACES + [[4, 5, 6]])

        self.assertEqual(traits.components(mesh), [[0, 1, 2, 3], [4, 5, 6]])

    def test_isolated_vertex_is_a_component(self):
        points = np.vstack((SQUARE_POINTS, [[9.0, 9.0, 9.0]]))
        mesh = Mesh(points, SQUARE_FACES)

        self.assertEqual(traits.components(mesh), [[0, 1, 2, 3], [4]])
