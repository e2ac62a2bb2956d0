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


""" OBJ file I/O.

Low-level functions to read and write OBJ files. Only the subset of the
OBJ standard needed for texture parameterization is supported: vertex
coordinates, texture vertices, vertex normals and triangular faces.

A vertex record may carry the non-standard suffix ``fix u v`` which marks
the vertex as fixed and prescribes its texture coordinates,

.. code-block:: text

   v 0.0 0.0 0.0 fix 0.0 0.0
   v 1.0 0.0 0.0
   v 1.0 1.0 0.0 fix 1.0 1.0

Standard OBJ readers ignore trailing tokens of vertex records, such files
remain readable by other software.
"""

import logging
from contextlib import nullcontext

import numpy as np


logger = logging.getLogger(__name__)


def _array_append(array, item):
    """ Append `item` as a new row of `array`.

    Always returns a new array, views of the old one stay valid but no
    longer track it. :obj:`None` starts a new array of shape
    ``(1, *item.shape)``.

    Raises
    ------
    ValueError
        If `item` does not match the row shape of `array`.

    Returns
    -------
    ~numpy.ndarray
        The grown array.
    """
    if array is None:
        return np.array([item], dtype=float)

    if array.shape[1:] != np.shape(item):
        msg = f'cannot add item with shape {np.shape(item)}'
        raise ValueError(msg)

    item = np.asarray(item, dtype=array.dtype)

    return np.concatenate((array, item[np.newaxis]))


def _opened(file, mode):
    """ Context manager for filenames and text streams alike.
    """
    if hasattr(file, 'read') or hasattr(file, 'write'):
        return nullcontext(file)

    return open(file, mode)


def _parse_index(block):
    """ Parse vertex definition of a face record.

    Parameters
    ----------
    block : str
        A v, v/vt, v//vn or v/vt/vn string.

    Raises
    ------
    ValueError
        If the string could not be parsed.

    Returns
    -------
    int
        Vertex index as written in the file (1-based or negative).
    """
    bits = block.split('/')

    if len(bits) > 3 or not bits[0]:
        raise ValueError('invalid vertex definition: ' + block)

    return int(bits[0])


def read(file):
    """ Read from file.

    Parameters
    ----------
    file : str or path-like or text stream
        Name of an OBJ file or an open text stream.

    Raises
    ------
    ValueError
        If a record could not be parsed.

    Returns
    -------
    points : ~numpy.ndarray, shape (n, 3)
        Vertex coordinates.
    uvs : ~numpy.ndarray, shape (n, 2)
        Texture coordinates. Only rows of fixed vertices are set, all
        other rows are zero.
    normals : ~numpy.ndarray or None
        Vertex normals, matched to vertices by order of appearance. Only
        returned if there is one normal per vertex, a count mismatch is
        logged as a warning.
    faces : list[list[int]]
        Face definitions, 0-based vertex indexing.
    fixed : dict[int, tuple(float, float)]
        Maps the index of each fixed vertex to its prescribed texture
        coordinates.


    To build a mesh from the returned data blocks do

    >>> points, uvs, normals, faces, fixed = read('input-file.obj')
    >>> mesh = Mesh(points, faces, uvs=uvs, normals=normals, fixed=fixed)
    """
    points = []
    normals = []
    faces = []
    fixed = dict()

    with _opened(file, 'r') as stream:
        for lineno, line in enumerate(stream, start=1):
            # The split() method strips all whitespace, empty lines
            # result in an empty list of blocks.
            blocks = line.split()

            if not blocks or blocks[0].startswith('#'):
                continue

            tag, blocks = blocks[0], blocks[1:]

            try:
                if tag == 'v':
                    points.append([float(b) for b in blocks[:3]])

                    if len(points[-1]) != 3:
                        raise ValueError('expected three coordinates')

                    if len(blocks) > 3 and blocks[3] == 'fix':
                        if len(blocks) != 6:
                            raise ValueError('expected "fix u v" suffix')

                        fixed[len(points) - 1] = (float(blocks[4]),
                                                  float(blocks[5]))
                elif tag == 'vn':
                    normals.append([float(b) for b in blocks[:3]])

                    if len(normals[-1]) != 3:
                        raise ValueError('expected three coordinates')
                elif tag == 'f':
                    face = [_parse_index(b) for b in blocks]

                    # Negative indices are relative to the number of
                    # vertices read up to this point.
                    faces.append([len(points) + i if i < 0 else i - 1
                                  for i in face])
            except ValueError as err:
                raise ValueError(f'line {lineno}: {err}') from err

    points = np.array(points, dtype=float).reshape(-1, 3)
    uvs = np.zeros((len(points), 2))

    for i, uv in fixed.items():
        uvs[i] = uv

    if len(normals) == len(points) and normals:
        normals = np.array(normals, dtype=float)
    else:
        if normals:
            logger.warning('ignoring %d normals for %d vertices',
                           len(normals), len(points))

        normals = None

    return points, uvs, normals, faces, fixed


def write(file, *, f=None, fmt='.6f', **data):
    """ Write to file.

    Each face is a list of vertex definitions. A definition is either a
    vertex index or a (v, vt, vn) triple with :obj:`None` for absent
    entries. Indices are 0-based in memory and 1-based on disk.

    Parameters
    ----------
    file : str or path-like or text stream
        Name of output file or an open text stream.
    f : list, optional
        Face definitions.
    fmt : str, optional
        Format specification of floating point values.
    **data
        Keyword arguments.


    Data blocks are passed via keyword arguments:

    >>> write('output-file.obj', v=points, vt=uvs, f=faces)

    This assumes that each data block can be interpreted as a
    2-dimensional array. The contents of each row are written to a line
    that starts with the given tag. Blocks are written in argument order.
    """
    faces = [] if f is None else f

    with _opened(file, 'w') as stream:
        for key, value in data.items():
            for row in value:
                stream.write(key)

                for element in row:
                    stream.write(f' {element:{fmt}}')

                stream.write('\n')

        for face in faces:
            stream.write('f')

            for vertex in face:
                try:
                    v = vertex[0] + 1
                except TypeError:
                    stream.write(f' {int(vertex) + 1}')
                else:
                    vt = '' if vertex[1] is None else vertex[1] + 1

                    if vertex[2] is not None:
                        stream.write(f' {v}/{vt}/{vertex[2] + 1}')
                    elif vertex[1] is not None:
                        stream.write(f' {v}/{vt}')
                    else:
                        stream.write(f' {v}')

            stream.write('\n')
