from ._mesh import (
    GeneralMesh,
    TriMesh,
    QuadMesh,
    TetMesh,
    CubicMesh)
