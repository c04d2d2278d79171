"""Triangle mesh segmentation, PLY conversion, point cloud filter chains and tool path sequencing."""

__version__ = "0.1.0"