from .buffer import FrameBuffer, capacity_for
from .frame import Frame

__all__ = ["Frame", "FrameBuffer", "capacity_for"]
