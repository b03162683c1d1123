"""CPU backend public API.

Importing from this module gives access to the CPU implementations of the
pyVOLMESH meshes (numpy storage, numba geometry kernels):

>>> from pyVOLMESH.CPU import TriMesh, TetMesh, GeneralMesh
"""

from ..geom.commons._mesh import VolumetricMesh, DEFAULT_TOLERANCE
from ..geom.commons._arity import ElementArity, UniformArity, MixedArity
from ..geom.CPU import *
