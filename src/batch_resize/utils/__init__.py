from .media_types import determine_mime, human_file_size
from .profiling import timed

__all__ = ["determine_mime", "human_file_size", "timed"]
