import numpy as np
import numpy.typing as npt

FACE = npt.NDArray[np.int32]
INDEX = npt.NDArray[np.int32]
POSITIONS = npt.NDArray[np.float64]
VEC3 = npt.NDArray[np.float64]
MASK = npt.NDArray[np.bool_]
LINK = tuple[int, int, float]
GEN_GRID = tuple[POSITIONS, list[LINK], FACE]
VIEW = npt.NDArray[np.float32]
PROJ = npt.NDArray[np.float32]
